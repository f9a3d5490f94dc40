"""Shared fixtures for workoffice-persistence tests."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import Mapped, mapped_column
from workoffice_persistence import DataContext, RetryPolicy, Worker, WorkerType, create_schema
from workoffice_persistence.entities import BaseEntity, TrimmedString


class AuditNote(BaseEntity):
    """Entity without soft delete, used to exercise physical deletes."""

    __tablename__ = "audit_notes"

    text: Mapped[str] = mapped_column(TrimmedString(200), nullable=False)


class FakeClock:
    """Deterministic clock; every call returns the current value."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
async def engine(tmp_path: Path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'workoffice.db'}")
    await create_schema(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def fast_retry() -> RetryPolicy:
    return RetryPolicy(max_retry_count=3, max_retry_delay=0.0, base_delay=0.0)


@pytest.fixture
async def ctx(engine: AsyncEngine, clock: FakeClock, fast_retry: RetryPolicy):
    context = DataContext(engine, retry_policy=fast_retry, clock=clock)
    yield context
    await context.close()


@pytest.fixture
def open_context(engine: AsyncEngine, clock: FakeClock, fast_retry: RetryPolicy):
    """Factory for additional contexts on the same database."""

    def _open() -> DataContext:
        return DataContext(engine, retry_policy=fast_retry, clock=clock)

    return _open


@pytest.fixture
def make_worker():
    """Builder for a valid, unsaved worker; keyword arguments override fields."""

    def _make(**overrides: Any) -> Worker:
        fields: dict[str, Any] = {
            "first_name": "Ada",
            "last_name": "Lovelace",
            "date_of_birth": date(1990, 12, 10),
            "city": "London",
            "country": "UK",
            "home_address": "12 St James's Square",
            "cellphone_number": "+44 20 7946 0000",
            "email_address": "ada@example.com",
            "worker_type": WorkerType.EMPLOYEE,
        }
        fields.update(overrides)
        return Worker(**fields)

    return _make


@pytest.fixture
def audit_note_type() -> type[AuditNote]:
    return AuditNote
