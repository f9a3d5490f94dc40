"""WorkOffice Persistence: unit-of-work data context with soft delete and audit stamping."""

from workoffice_persistence.connections import (
    ConnectionManager,
    ConnectionProfile,
    InvalidConnectionURL,
    create_schema,
    load_connections,
    redact_url,
)
from workoffice_persistence.context import DataContext, EntityState
from workoffice_persistence.entities import (
    Base,
    BaseEntity,
    DeletableEntity,
    TrimmedString,
    Worker,
    WorkerType,
)
from workoffice_persistence.exceptions import (
    ConcurrencyConflictError,
    ContextDisposedError,
    DuplicateEntityError,
    EntityNotFoundError,
    InvalidArgumentError,
    OperationCancelledError,
    PersistenceError,
    QueryError,
    RetryLimitExceededError,
    StoreUnavailableError,
    StoreUpdateError,
)
from workoffice_persistence.query import EntityQuery, ListResult, paginate, resolve_order_by
from workoffice_persistence.retry import NO_RETRY, RetryPolicy, is_transient_error

__all__ = [
    "NO_RETRY",
    "Base",
    "BaseEntity",
    "ConcurrencyConflictError",
    "ConnectionManager",
    "ConnectionProfile",
    "ContextDisposedError",
    "DataContext",
    "DeletableEntity",
    "DuplicateEntityError",
    "EntityNotFoundError",
    "EntityQuery",
    "EntityState",
    "InvalidArgumentError",
    "InvalidConnectionURL",
    "ListResult",
    "OperationCancelledError",
    "PersistenceError",
    "QueryError",
    "RetryLimitExceededError",
    "RetryPolicy",
    "StoreUnavailableError",
    "StoreUpdateError",
    "TrimmedString",
    "Worker",
    "WorkerType",
    "create_schema",
    "is_transient_error",
    "load_connections",
    "paginate",
    "redact_url",
    "resolve_order_by",
]
