"""Composable entity queries, dynamic ordering and pagination."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

import sqlalchemy as sa

from workoffice_persistence.exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from workoffice_persistence.context import DataContext

logger = logging.getLogger(__name__)

E = TypeVar("E")
M = TypeVar("M")

_DIRECTIONS = {"asc": False, "ascending": False, "desc": True, "descending": True}


@dataclass
class ListResult(Generic[M]):
    """One page of results plus the information needed to fetch the next."""

    content: list[M] = field(default_factory=list)
    total_count: int = 0
    has_next_page: bool = False

    @classmethod
    def of(cls, items: Sequence[M]) -> ListResult[M]:
        """Wrap a complete, unpaged sequence."""
        return cls(content=list(items), total_count=len(items), has_next_page=False)


def _normalise(name: str) -> str:
    return name.replace("_", "").lower()


def resolve_order_by(entity_type: type[Any], order_by: str) -> list[sa.ColumnElement[Any]]:
    """Translate a textual ordering into ORDER BY clauses for *entity_type*.

    ``order_by`` is a comma-separated list of field names, each optionally
    followed by ``asc`` or ``desc``. Names match mapped column attributes
    case-insensitively with underscores ignored, so ``FirstName``,
    ``first_name`` and ``firstname`` are equivalent. The primary key is
    appended so that paging is stable across equal sort keys.

    Raises:
        InvalidArgumentError: The expression is empty, names an unknown field,
            or uses an unknown direction.
    """
    entity_name = getattr(entity_type, "__name__", str(entity_type))
    mapper = sa.inspect(entity_type)
    columns = {_normalise(attr.key): attr for attr in mapper.column_attrs}

    if not order_by or not order_by.strip():
        raise InvalidArgumentError(
            entity_name=entity_name, operation="order_by", detail="order by expression must not be empty."
        )

    clauses: list[sa.ColumnElement[Any]] = []
    used: set[str] = set()
    for part in order_by.split(","):
        tokens = part.split()
        if not tokens or len(tokens) > 2:
            raise InvalidArgumentError(
                entity_name=entity_name,
                operation="order_by",
                detail=f"malformed order by segment '{part.strip()}'.",
            )
        attr = columns.get(_normalise(tokens[0]))
        if attr is None:
            raise InvalidArgumentError(
                entity_name=entity_name,
                operation="order_by",
                detail=f"'{tokens[0]}' is not a field of {entity_name}.",
            )
        descending = False
        if len(tokens) == 2:
            direction = tokens[1].lower()
            if direction not in _DIRECTIONS:
                raise InvalidArgumentError(
                    entity_name=entity_name,
                    operation="order_by",
                    detail=f"unknown sort direction '{tokens[1]}'.",
                )
            descending = _DIRECTIONS[direction]
        column = getattr(entity_type, attr.key)
        clauses.append(column.desc() if descending else column.asc())
        used.add(attr.key)

    for pk in mapper.primary_key:
        key = mapper.get_property_by_column(pk).key
        if key not in used:
            clauses.append(getattr(entity_type, key).asc())
    return clauses


class EntityQuery(Generic[E]):
    """An immutable, composable SELECT over one entity type.

    Instances are created by :meth:`DataContext.query`; every builder method
    returns a new query. Execution goes through the owning context so that
    tracking and disposal rules apply.
    """

    def __init__(
        self,
        context: DataContext,
        entity_type: type[E],
        statement: sa.Select[Any],
        *,
        trackable: bool,
    ) -> None:
        self._context = context
        self._entity_type = entity_type
        self._statement = statement
        self._trackable = trackable

    @property
    def entity_type(self) -> type[E]:
        return self._entity_type

    @property
    def statement(self) -> sa.Select[Any]:
        """The underlying SQLAlchemy statement."""
        return self._statement

    @property
    def trackable(self) -> bool:
        return self._trackable

    def _derive(self, statement: sa.Select[Any]) -> EntityQuery[E]:
        return EntityQuery(self._context, self._entity_type, statement, trackable=self._trackable)

    def where(self, *criteria: Any) -> EntityQuery[E]:
        return self._derive(self._statement.where(*criteria))

    def order_by(self, *clauses: Any) -> EntityQuery[E]:
        return self._derive(self._statement.order_by(*clauses))

    def sort_by(self, order_by: str) -> EntityQuery[E]:
        """Order by a textual field expression (see :func:`resolve_order_by`)."""
        return self.order_by(*resolve_order_by(self._entity_type, order_by))

    def offset(self, offset: int) -> EntityQuery[E]:
        return self._derive(self._statement.offset(offset))

    def limit(self, limit: int) -> EntityQuery[E]:
        return self._derive(self._statement.limit(limit))

    async def all(self) -> list[E]:
        return await self._context._fetch_entities(self._entity_type, self._statement, trackable=self._trackable)

    async def first(self) -> E | None:
        statement = self._statement.limit(1)
        rows = await self._context._fetch_entities(self._entity_type, statement, trackable=self._trackable)
        return rows[0] if rows else None

    async def count(self) -> int:
        """Count matching rows, ignoring any ordering and paging on this query."""
        inner = self._statement.order_by(None).limit(None).offset(None).subquery()
        stmt = sa.select(sa.func.count()).select_from(inner)
        return int(await self._context._fetch_scalar(self._entity_type, stmt))


async def paginate(
    query: EntityQuery[E],
    page_index: int,
    items_per_page: int,
    order_by: str,
) -> ListResult[E]:
    """Fetch one page of *query*.

    Reads ``items_per_page + 1`` rows so that the presence of a next page is
    known without a second existence query, then issues one count over the
    unpaged query for ``total_count``. Callers validate that ``page_index >= 0``
    and ``items_per_page > 0``.
    """
    ordered = query.sort_by(order_by)
    rows = await ordered.offset(page_index * items_per_page).limit(items_per_page + 1).all()
    total_count = await query.count()
    has_next_page = len(rows) > items_per_page
    logger.debug(
        "Paginated %s: page=%d size=%d fetched=%d total=%d",
        query.entity_type.__name__,
        page_index,
        items_per_page,
        len(rows),
        total_count,
    )
    return ListResult(content=rows[:items_per_page], total_count=total_count, has_next_page=has_next_page)
