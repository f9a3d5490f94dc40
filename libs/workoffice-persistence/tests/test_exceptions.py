"""Tests for the persistence domain exceptions module."""

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


def test_persistence_error_message():
    """PersistenceError formats entity, operation and detail into message."""
    exc = PersistenceError(entity_name="Worker", operation="save", detail="something broke")
    assert str(exc) == "[Worker] save failed: something broke"
    assert exc.entity_name == "Worker"
    assert exc.operation == "save"
    assert exc.detail == "something broke"


def test_message_without_entity():
    exc = ContextDisposedError(operation="query", detail="The data context has been closed.")
    assert str(exc) == "query failed: The data context has been closed."
    assert exc.entity_name is None


def test_persistence_error_with_cause():
    """PersistenceError chains the original cause."""
    cause = ValueError("original")
    exc = StoreUpdateError(entity_name="Worker", operation="save", detail="wrapped", cause=cause)
    assert exc.__cause__ is cause


def test_invalid_argument_is_value_error():
    exc = InvalidArgumentError(operation="insert", detail="entity can't be None.")
    assert isinstance(exc, ValueError)
    assert isinstance(exc, PersistenceError)


def test_store_update_family():
    assert issubclass(DuplicateEntityError, StoreUpdateError)
    assert issubclass(ConcurrencyConflictError, StoreUpdateError)


def test_retry_limit_is_store_unavailable():
    assert issubclass(RetryLimitExceededError, StoreUnavailableError)


def test_every_error_is_persistence_error():
    for cls in (
        QueryError,
        EntityNotFoundError,
        ContextDisposedError,
        OperationCancelledError,
        StoreUnavailableError,
        StoreUpdateError,
    ):
        assert issubclass(cls, PersistenceError)
