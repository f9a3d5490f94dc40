"""Mapped entities. Importing this package registers every table on ``Base.metadata``."""

from workoffice_persistence.entities.common import (
    Base,
    BaseEntity,
    DeletableEntity,
    TrimmedString,
    is_soft_deletable,
    soft_delete_criteria,
)
from workoffice_persistence.entities.worker import Worker, WorkerType

__all__ = [
    "Base",
    "BaseEntity",
    "DeletableEntity",
    "TrimmedString",
    "Worker",
    "WorkerType",
    "is_soft_deletable",
    "soft_delete_criteria",
]
