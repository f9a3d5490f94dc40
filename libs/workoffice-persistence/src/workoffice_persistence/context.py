"""Unit-of-work data context over a SQLAlchemy ``AsyncSession``.

The context is the single point through which entities are read and written.
Mutations are staged in memory and only reach the store on :meth:`DataContext.save`,
which stamps audit fields and turns deletes of soft-deletable entities into
updates before committing the whole batch.

A context is scoped to one logical operation (typically one HTTP request) and
must not be shared between concurrently running tasks.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeVar

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.orm import make_transient_to_detached
from sqlalchemy.orm.exc import StaleDataError

from workoffice_persistence.entities.common import BaseEntity, DeletableEntity, soft_delete_criteria
from workoffice_persistence.exceptions import (
    ConcurrencyConflictError,
    ContextDisposedError,
    DuplicateEntityError,
    InvalidArgumentError,
    OperationCancelledError,
    PersistenceError,
    QueryError,
    RetryLimitExceededError,
    StoreUnavailableError,
    StoreUpdateError,
)
from workoffice_persistence.query import EntityQuery
from workoffice_persistence.retry import RetryPolicy, is_transient_error

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=BaseEntity)
T = TypeVar("T")


class EntityState(str, Enum):
    """Pending operation for a staged entity."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _translate(exc: SQLAlchemyError, *, entity_name: str | None, operation: str, write: bool) -> PersistenceError:
    """Map a SQLAlchemy exception onto the domain taxonomy."""
    if isinstance(exc, StaleDataError):
        return ConcurrencyConflictError(
            entity_name=entity_name,
            operation=operation,
            detail="The row was changed or removed by another operation.",
            cause=exc,
        )
    if isinstance(exc, IntegrityError):
        return DuplicateEntityError(
            entity_name=entity_name,
            operation=operation,
            detail="A record violates a key or uniqueness constraint.",
            cause=exc,
        )
    if is_transient_error(exc):
        return StoreUnavailableError(
            entity_name=entity_name,
            operation=operation,
            detail="Database connection failed.",
            cause=exc,
        )
    if write:
        return StoreUpdateError(
            entity_name=entity_name,
            operation=operation,
            detail="The store rejected the changes.",
            cause=exc,
        )
    return QueryError(entity_name=entity_name, operation=operation, detail="Query execution failed.", cause=exc)


class DataContext:
    """Stages entity changes and commits them as one unit of work.

    Args:
        engine: The async engine the context opens its session on.
        retry_policy: Backoff used by :meth:`execute_transaction` for transient
            failures. Defaults to :class:`RetryPolicy` defaults.
        clock: Returns the current aware UTC time used for audit fields.

    Use as an async context manager so the session is always released::

        async with DataContext(engine) as ctx:
            ctx.insert(worker)
            await ctx.save()
    """

    def __init__(
        self,
        engine: AsyncEngine,
        *,
        retry_policy: RetryPolicy | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session: AsyncSession | None = AsyncSession(engine, expire_on_commit=False, autoflush=False)
        self._retry_policy = retry_policy or RetryPolicy()
        self._clock = clock or _utcnow
        self._changes: dict[int, tuple[BaseEntity, EntityState]] = {}
        self._in_transaction = False

    async def __aenter__(self) -> DataContext:
        self._ensure_open("open")
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def is_closed(self) -> bool:
        return self._session is None

    @property
    def pending_changes(self) -> int:
        """Number of explicitly staged entities awaiting :meth:`save`."""
        return len(self._changes)

    # -- Guards ---------------------------------------------------------------

    def _ensure_open(self, operation: str) -> AsyncSession:
        if self._session is None:
            raise ContextDisposedError(operation=operation, detail="The data context has been closed.")
        return self._session

    @staticmethod
    def _require_entity(entity: Any, operation: str) -> BaseEntity:
        if entity is None:
            raise InvalidArgumentError(operation=operation, detail="entity can't be None.")
        if not isinstance(entity, BaseEntity):
            raise InvalidArgumentError(
                entity_name=type(entity).__name__,
                operation=operation,
                detail="object is not a mapped entity.",
            )
        return entity

    @staticmethod
    def _require_entity_type(entity_type: Any, operation: str) -> None:
        if not (isinstance(entity_type, type) and issubclass(entity_type, BaseEntity)) or not hasattr(
            entity_type, "__table__"
        ):
            raise InvalidArgumentError(
                entity_name=getattr(entity_type, "__name__", None),
                operation=operation,
                detail="type is not a mapped entity.",
            )

    # -- Staging --------------------------------------------------------------

    def insert(self, entity: BaseEntity) -> None:
        """Stage *entity* for insertion. Entities already stored are rejected; use :meth:`edit`."""
        self._ensure_open("insert")
        self._require_entity(entity, "insert")
        if sa.inspect(entity).key is not None:
            raise InvalidArgumentError(
                entity_name=type(entity).__name__,
                operation="insert",
                detail="entity is already stored; stage it with edit instead.",
            )
        self._changes[id(entity)] = (entity, EntityState.ADDED)
        logger.debug("Staged insert of %s", type(entity).__name__)

    def edit(self, entity: BaseEntity) -> None:
        """Stage *entity* for update. Editing a staged insert keeps it an insert."""
        self._ensure_open("edit")
        self._require_entity(entity, "edit")
        staged = self._changes.get(id(entity))
        if staged is not None and staged[1] is EntityState.ADDED:
            return
        self._changes[id(entity)] = (entity, EntityState.MODIFIED)
        logger.debug("Staged update of %s", type(entity).__name__)

    def delete(self, entity: BaseEntity) -> None:
        """Stage *entity* for deletion. Deleting a staged insert discards it."""
        self._ensure_open("delete")
        self._require_entity(entity, "delete")
        self._stage_delete(entity)

    def delete_many(self, entities: Iterable[BaseEntity]) -> None:
        """Stage every entity in *entities* for deletion.

        The whole batch is validated before anything is staged.
        """
        self._ensure_open("delete_many")
        if entities is None:
            raise InvalidArgumentError(operation="delete_many", detail="entities can't be None.")
        batch = [self._require_entity(entity, "delete_many") for entity in entities]
        for entity in batch:
            self._stage_delete(entity)

    def _stage_delete(self, entity: BaseEntity) -> None:
        staged = self._changes.get(id(entity))
        if staged is not None and staged[1] is EntityState.ADDED:
            del self._changes[id(entity)]
            return
        self._changes[id(entity)] = (entity, EntityState.DELETED)
        logger.debug("Staged delete of %s", type(entity).__name__)

    # -- Reads ----------------------------------------------------------------

    def query(
        self,
        entity_type: type[E],
        *,
        ignore_filters: bool = False,
        trackable: bool = False,
    ) -> EntityQuery[E]:
        """Return a composable query over *entity_type*.

        Args:
            entity_type: The mapped entity class.
            ignore_filters: Include soft-deleted rows.
            trackable: Keep loaded entities attached so that changes to them are
                written by :meth:`save`. Untracked results are detached snapshots.
        """
        self._ensure_open("query")
        self._require_entity_type(entity_type, "query")
        stmt = sa.select(entity_type)
        if not ignore_filters:
            stmt = stmt.where(*soft_delete_criteria(entity_type))
        return EntityQuery(self, entity_type, stmt, trackable=trackable)

    async def get_by_id(self, entity_type: type[E], *keys: Any) -> E | None:
        """Return the live entity with the given primary key, or ``None``.

        The result is tracked. Soft-deleted rows are never returned.
        """
        self._ensure_open("get_by_id")
        self._require_entity_type(entity_type, "get_by_id")
        mapper = sa.inspect(entity_type)
        pk_columns = mapper.primary_key
        if len(keys) != len(pk_columns) or any(key is None for key in keys):
            raise InvalidArgumentError(
                entity_name=entity_type.__name__,
                operation="get_by_id",
                detail=f"expected {len(pk_columns)} key value(s), got {len(keys)}.",
            )
        criteria = [
            getattr(entity_type, mapper.get_property_by_column(column).key) == key
            for column, key in zip(pk_columns, keys)
        ]
        return await self.query(entity_type, trackable=True).where(*criteria).first()

    async def _fetch_entities(self, entity_type: type[E], statement: sa.Select[Any], *, trackable: bool) -> list[E]:
        session = self._ensure_open("query")
        attrs = None if trackable else list(sa.inspect(entity_type).column_attrs)
        if attrs is not None:
            statement = statement.with_only_columns(*(attr.columns[0] for attr in attrs))
        try:
            result = await session.execute(statement)
            if attrs is None:
                return list(result.scalars().all())
            rows = result.all()
        except SQLAlchemyError as exc:
            logger.error("SQL query failed for %s: %s", entity_type.__name__, type(exc).__name__)
            raise _translate(exc, entity_name=entity_type.__name__, operation="query", write=False) from exc

        snapshots = []
        for row in rows:
            snapshot = entity_type(**{attr.key: value for attr, value in zip(attrs, row)})
            make_transient_to_detached(snapshot)
            snapshots.append(snapshot)
        return snapshots

    async def _fetch_scalar(self, entity_type: type[Any], statement: sa.Select[Any]) -> Any:
        session = self._ensure_open("query")
        try:
            result = await session.execute(statement)
            return result.scalar_one()
        except SQLAlchemyError as exc:
            logger.error("SQL count failed for %s: %s", entity_type.__name__, type(exc).__name__)
            raise _translate(exc, entity_name=entity_type.__name__, operation="count", write=False) from exc

    # -- Save -----------------------------------------------------------------

    async def save(self, *, timeout: float | None = None) -> int:
        """Write every pending change and return the number of entities written.

        Before anything is sent to the store, each entry is rewritten by its
        pending operation:

        * added: ``creation_date`` is set to now and ``updated_date`` cleared;
          soft-deletable entities are reset to not deleted.
        * modified: ``updated_date`` is set to now; soft-deletable entities are
          reset to not deleted, so an update revives a deleted row.
        * deleted: soft-deletable entities become an update with ``is_deleted``
          set and ``deleted_date`` stamped. Other entities are removed.

        Inside :meth:`execute_transaction` the changes are flushed and the
        enclosing transaction decides whether they are committed.

        Raises:
            ConcurrencyConflictError: An update or delete matched no row.
            DuplicateEntityError: A key or uniqueness constraint was violated.
            StoreUpdateError: The store rejected the write.
            StoreUnavailableError: The store could not be reached.
            OperationCancelledError: *timeout* elapsed before the write finished.
        """
        session = self._ensure_open("save")
        entries = self._collect_entries(session)
        if not entries:
            return 0

        entries = self._apply_audit(entries)
        entity_names = ", ".join(sorted({type(entity).__name__ for entity, _ in entries}))
        try:
            if timeout is None:
                await self._write(session, entries)
            else:
                await asyncio.wait_for(self._write(session, entries), timeout)
        except asyncio.TimeoutError as exc:
            await self._abort(session)
            raise OperationCancelledError(
                entity_name=entity_names,
                operation="save",
                detail=f"save did not complete within {timeout}s.",
                cause=exc,
            ) from exc
        except PersistenceError:
            await self._abort(session)
            raise
        except SQLAlchemyError as exc:
            logger.error("SQL save failed for %s: %s", entity_names, type(exc).__name__)
            await self._abort(session)
            raise _translate(exc, entity_name=entity_names, operation="save", write=True) from exc

        self._changes.clear()
        logger.debug("Saved %d change(s) for %s", len(entries), entity_names)
        return len(entries)

    def _collect_entries(self, session: AsyncSession) -> list[tuple[BaseEntity, EntityState]]:
        entries = list(self._changes.values())
        for obj in session.dirty:
            if id(obj) in self._changes or not isinstance(obj, BaseEntity):
                continue
            if session.is_modified(obj):
                entries.append((obj, EntityState.MODIFIED))
        return entries

    def _apply_audit(self, entries: list[tuple[BaseEntity, EntityState]]) -> list[tuple[BaseEntity, EntityState]]:
        now = self._clock()
        rewritten: list[tuple[BaseEntity, EntityState]] = []
        for entity, state in entries:
            deletable = isinstance(entity, DeletableEntity)
            if state is EntityState.ADDED:
                entity.creation_date = now
                entity.updated_date = None
                if deletable:
                    entity.is_deleted = False
                    entity.deleted_date = None
            elif state is EntityState.MODIFIED:
                entity.updated_date = now
                if deletable:
                    entity.is_deleted = False
                    entity.deleted_date = None
            elif deletable:
                state = EntityState.MODIFIED
                entity.is_deleted = True
                entity.deleted_date = now
            rewritten.append((entity, state))
        return rewritten

    async def _write(self, session: AsyncSession, entries: list[tuple[BaseEntity, EntityState]]) -> None:
        for entity, state in entries:
            if state is EntityState.ADDED:
                session.add(entity)
            elif state is EntityState.MODIFIED:
                await self._attach(session, entity)
            else:
                await session.delete(await self._attach(session, entity))

        if self._in_transaction:
            await session.flush()
        else:
            await session.commit()

    async def _attach(self, session: AsyncSession, entity: BaseEntity) -> BaseEntity:
        """Return the session-bound instance for an existing row."""
        if entity in session:
            return entity
        key = sa.inspect(entity).key
        if key is not None and key not in session.identity_map:
            session.add(entity)
            return entity
        merged = await session.merge(entity)
        if sa.inspect(merged).pending:
            session.expunge(merged)
            raise ConcurrencyConflictError(
                entity_name=type(entity).__name__,
                operation="save",
                detail="No stored row matches the entity being changed.",
            )
        return merged

    async def _abort(self, session: AsyncSession) -> None:
        self._changes.clear()
        if not self._in_transaction:
            await session.rollback()

    # -- Transactions ---------------------------------------------------------

    async def execute_transaction(
        self,
        action: Callable[[], Awaitable[T]],
        *,
        timeout: float | None = None,
    ) -> T:
        """Run *action* inside one store transaction and return its result.

        The transaction commits only if *action* returns; any exception rolls it
        back. When the failure is transient the whole action is run again
        according to the retry policy, so *action* must be safe to repeat.
        A call made from inside *action* joins the running transaction.

        Raises:
            InvalidArgumentError: *action* is None.
            RetryLimitExceededError: Every attempt failed transiently.
            OperationCancelledError: *timeout* elapsed (applies per attempt).
        """
        session = self._ensure_open("execute_transaction")
        if action is None:
            raise InvalidArgumentError(
                operation="execute_transaction", detail="cannot perform action: action can't be None."
            )
        if self._in_transaction:
            return await action()

        policy = self._retry_policy
        attempt = 0
        while True:
            attempt += 1
            try:
                if timeout is None:
                    return await self._run_in_transaction(session, action)
                return await asyncio.wait_for(self._run_in_transaction(session, action), timeout)
            except asyncio.TimeoutError as exc:
                raise OperationCancelledError(
                    operation="execute_transaction",
                    detail=f"transaction did not complete within {timeout}s.",
                    cause=exc,
                ) from exc
            except Exception as exc:
                if not is_transient_error(exc):
                    raise
                if attempt >= policy.max_attempts:
                    logger.error("Transaction failed after %d attempt(s): %s", attempt, type(exc).__name__)
                    raise RetryLimitExceededError(
                        operation="execute_transaction",
                        detail=f"gave up after {attempt} attempt(s).",
                        cause=exc,
                    ) from exc
                delay = policy.delay_for(attempt)
                logger.warning(
                    "Transient store failure in transaction (attempt %d/%d): %s; retrying in %.2fs",
                    attempt,
                    policy.max_attempts,
                    type(exc).__name__,
                    delay,
                )
                await asyncio.sleep(delay)

    async def _run_in_transaction(self, session: AsyncSession, action: Callable[[], Awaitable[T]]) -> T:
        self._in_transaction = True
        try:
            result = await action()
            try:
                await session.commit()
            except SQLAlchemyError as exc:
                logger.error("Transaction commit failed: %s", type(exc).__name__)
                raise _translate(exc, entity_name=None, operation="execute_transaction", write=True) from exc
            return result
        except BaseException:
            self._changes.clear()
            await session.rollback()
            raise
        finally:
            self._in_transaction = False

    # -- Lifetime -------------------------------------------------------------

    async def close(self) -> None:
        """Release the session. Further use raises :class:`ContextDisposedError`."""
        if self._session is None:
            return
        session, self._session = self._session, None
        self._changes.clear()
        await session.close()
