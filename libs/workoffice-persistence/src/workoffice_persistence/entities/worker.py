"""Worker entity."""

from __future__ import annotations

from datetime import date
from enum import Enum

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from workoffice_persistence.entities.common import DeletableEntity, TrimmedString


class WorkerType(str, Enum):
    """Contract category of a worker. Persisted by name."""

    EMPLOYEE = "Employee"
    CONTRACTOR = "Contractor"
    FREELANCER = "Freelancer"
    INTERN = "Intern"
    CONSULTANT = "Consultant"


class Worker(DeletableEntity):
    """A person registered with the office."""

    __tablename__ = "workers"

    first_name: Mapped[str] = mapped_column(TrimmedString(256), nullable=False)
    last_name: Mapped[str] = mapped_column(TrimmedString(256), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(sa.Date, nullable=False)

    city: Mapped[str] = mapped_column(TrimmedString(50), nullable=False)
    country: Mapped[str] = mapped_column(TrimmedString(50), nullable=False)
    home_address: Mapped[str] = mapped_column(TrimmedString(256), nullable=False)

    # ASCII-only columns
    cellphone_number: Mapped[str] = mapped_column(TrimmedString(30), nullable=False)
    email_address: Mapped[str] = mapped_column(TrimmedString(100), nullable=False)

    worker_type: Mapped[WorkerType] = mapped_column(
        sa.Enum(
            WorkerType,
            native_enum=False,
            length=20,
            validate_strings=True,
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"Worker(id={self.id!r}, first_name={self.first_name!r}, last_name={self.last_name!r})"
