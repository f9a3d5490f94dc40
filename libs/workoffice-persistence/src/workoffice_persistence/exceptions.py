"""Domain exceptions for the persistence layer.

SQLAlchemy and driver exceptions are caught by the data context and re-raised
as one of these domain exceptions so that upstream callers never see raw
database errors. The original exception is always chained as ``__cause__``.
"""

from __future__ import annotations


class PersistenceError(Exception):
    """Base exception for all persistence-layer errors.

    Attributes:
        entity_name: The name of the entity involved, or ``None`` when the
            failure is not tied to a single entity type.
        operation: The context operation that failed (e.g. ``"save"``, ``"insert"``).
        detail: A sanitised description of what went wrong.
    """

    def __init__(
        self,
        *,
        entity_name: str | None = None,
        operation: str,
        detail: str,
        cause: Exception | None = None,
    ) -> None:
        self.entity_name = entity_name
        self.operation = operation
        self.detail = detail
        prefix = f"[{entity_name}] " if entity_name else ""
        msg = f"{prefix}{operation} failed: {detail}"
        super().__init__(msg)
        if cause is not None:
            self.__cause__ = cause


class InvalidArgumentError(PersistenceError, ValueError):
    """Raised for a missing entity or action, or a malformed order-by expression."""


class QueryError(PersistenceError):
    """Raised when a read cannot be executed by the store."""


class EntityNotFoundError(PersistenceError):
    """Raised when an expected record does not exist."""


class ContextDisposedError(PersistenceError):
    """Raised when a data context is used after it was closed."""


class OperationCancelledError(PersistenceError):
    """Raised when an operation did not complete before its timeout."""


class StoreUnavailableError(PersistenceError):
    """Raised when the store cannot be reached. Eligible for transaction retry."""


class RetryLimitExceededError(StoreUnavailableError):
    """Raised when a transaction kept failing transiently after every retry."""


class StoreUpdateError(PersistenceError):
    """Raised when the store rejects a write (constraint violation, bad data)."""


class DuplicateEntityError(StoreUpdateError):
    """Raised when a write violates a primary key or uniqueness constraint."""


class ConcurrencyConflictError(StoreUpdateError):
    """Raised when an update or delete matched no row (optimistic-lock violation)."""
