"""Base contracts shared by every persisted entity."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class TrimmedString(sa.types.TypeDecorator):
    """String column that strips surrounding whitespace on write and on read."""

    impl = sa.String
    cache_ok = True

    def process_bind_param(self, value: Any, dialect: sa.Dialect) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value

    def process_result_value(self, value: Any, dialect: sa.Dialect) -> Any:
        if isinstance(value, str):
            return value.strip()
        return value


class Base(DeclarativeBase):
    """Declarative base for all WorkOffice tables.

    Bare ``Mapped[str]`` columns resolve to :class:`TrimmedString`; columns that
    need a length declare ``TrimmedString(n)`` explicitly.
    """

    type_annotation_map = {
        str: TrimmedString(),
        datetime: sa.DateTime(timezone=True),
        uuid.UUID: sa.Uuid(),
    }


class BaseEntity(Base):
    """Identity and audit timestamps.

    ``creation_date`` is written once, when the entity is inserted.
    ``updated_date`` stays ``None`` until the first update. Both are owned by
    :meth:`DataContext.save`; values set by callers are overwritten.
    """

    __abstract__ = True

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    creation_date: Mapped[datetime] = mapped_column(nullable=False)
    updated_date: Mapped[datetime | None] = mapped_column(nullable=True)


class DeletableEntity(BaseEntity):
    """Entity that is soft-deleted instead of removed.

    ``is_deleted`` is true exactly when ``deleted_date`` is set. Reads through
    the data context hide deleted rows unless filters are explicitly ignored.
    """

    __abstract__ = True

    is_deleted: Mapped[bool] = mapped_column(nullable=False, default=False)
    deleted_date: Mapped[datetime | None] = mapped_column(nullable=True)


def is_soft_deletable(entity_type: type[Any]) -> bool:
    """Return True when *entity_type* supports soft delete."""
    return isinstance(entity_type, type) and issubclass(entity_type, DeletableEntity)


def soft_delete_criteria(entity_type: type[BaseEntity]) -> list[sa.ColumnElement[bool]]:
    """Return the global read filter for *entity_type* (empty when not soft-deletable)."""
    if not is_soft_deletable(entity_type):
        return []
    return [entity_type.is_deleted.is_(False)]
