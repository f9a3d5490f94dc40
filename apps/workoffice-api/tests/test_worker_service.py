"""Tests for WorkerService against a real SQLite database."""

from __future__ import annotations

import uuid
from datetime import date
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from workoffice_api.schemas import SaveWorkerRequest
from workoffice_api.service import WorkerService
from workoffice_persistence import (
    DataContext,
    EntityNotFoundError,
    InvalidArgumentError,
    Worker,
    WorkerType,
    create_schema,
)


@pytest.fixture
async def engine(tmp_path: Path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'service.db'}")
    await create_schema(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
async def service(engine):
    async with DataContext(engine) as context:
        yield WorkerService(context)


def _request(**overrides) -> SaveWorkerRequest:
    fields = {
        "first_name": "Grace",
        "last_name": "Hopper",
        "date_of_birth": date(1906, 12, 9),
        "city": "Arlington",
        "country": "USA",
        "home_address": "1 Navy Way",
        "cellphone_number": "555-0100",
        "email_address": "grace@example.com",
        "worker_type": WorkerType.CONSULTANT,
    }
    fields.update(overrides)
    return SaveWorkerRequest(**fields)


async def test_save_inserts(service):
    saved = await service.save(_request())
    assert saved.id is not None
    assert saved.worker_type is WorkerType.CONSULTANT
    assert saved.creation_date is not None
    assert saved.updated_date is None
    assert await service.get(saved.id) == saved


async def test_save_updates_existing(service, engine):
    saved = await service.save(_request())
    updated = await service.save(_request(id=saved.id, country="Canada"))
    assert updated.id == saved.id
    assert updated.country == "Canada"
    assert updated.updated_date is not None

    async with DataContext(engine) as reader:
        stored = await reader.get_by_id(Worker, saved.id)
    assert stored.updated_date is not None


async def test_get_missing_returns_none(service):
    assert await service.get(uuid.uuid4()) is None


async def test_delete_soft_deletes(service, engine):
    saved = await service.save(_request())
    await service.delete(saved.id)
    assert await service.get(saved.id) is None

    async with DataContext(engine) as reader:
        rows = await reader.query(Worker, ignore_filters=True).all()
    assert len(rows) == 1
    assert rows[0].is_deleted is True


async def test_delete_missing_raises_not_found(service):
    with pytest.raises(EntityNotFoundError) as exc_info:
        await service.delete(uuid.uuid4())
    assert exc_info.value.detail == "no worker found"
    assert exc_info.value.operation == "delete"


async def test_list_pages(service):
    for name in ("Ann", "Ben", "Cat"):
        await service.save(_request(first_name=name))
    page = await service.list(0, 2, "FirstName")
    assert [w.first_name for w in page.content] == ["Ann", "Ben"]
    assert page.total_count == 3
    assert page.has_next_page is True


async def test_list_rejects_unknown_order(service):
    with pytest.raises(InvalidArgumentError):
        await service.list(0, 10, "Nickname")


def test_request_strips_whitespace():
    request = _request(first_name="  Grace  ")
    assert request.first_name == "Grace"


def test_request_accepts_camel_case():
    request = SaveWorkerRequest.model_validate(
        {
            "firstName": "Grace",
            "lastName": "Hopper",
            "dateOfBirth": "1906-12-09",
            "city": "Arlington",
            "country": "USA",
            "homeAddress": "1 Navy Way",
            "cellphoneNumber": "555-0100",
            "emailAddress": "grace@example.com",
            "workerType": "Intern",
        }
    )
    assert request.worker_type is WorkerType.INTERN
    assert request.id is None
