"""Request and response models for the worker endpoints (camelCase on the wire)."""

from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel
from workoffice_persistence import WorkerType

# field -> (max length, message)
_TEXT_RULES: dict[str, tuple[int, str]] = {
    "first_name": (256, "you must provide a valid firstname"),
    "last_name": (256, "you must provide a valid lastname"),
    "city": (50, "you must provide a valid city"),
    "country": (50, "you must provide a valid country"),
    "home_address": (256, "you must provide a valid home address"),
    "cellphone_number": (30, "you must provide a valid cellphone number"),
    "email_address": (100, "you must provide a valid email address"),
}


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WorkerModel(CamelModel):
    """A worker as returned by the API."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: uuid.UUID
    first_name: str
    last_name: str
    date_of_birth: date
    city: str
    country: str
    home_address: str
    cellphone_number: str
    email_address: str
    worker_type: WorkerType
    creation_date: datetime
    updated_date: datetime | None = None


class SaveWorkerRequest(CamelModel):
    """Payload for ``POST /api/workers/save``. An ``id`` of an existing worker updates it."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    id: uuid.UUID | None = None
    first_name: str
    last_name: str
    date_of_birth: date = Field(description="Date of birth (ISO 8601).")
    city: str
    country: str
    home_address: str
    cellphone_number: str
    email_address: str
    worker_type: WorkerType

    @field_validator(*_TEXT_RULES)
    @classmethod
    def _check_text(cls, value: str, info: ValidationInfo) -> str:
        max_length, message = _TEXT_RULES[info.field_name]
        if not value or len(value) > max_length:
            raise ValueError(message)
        return value

    @field_validator("cellphone_number", "email_address")
    @classmethod
    def _check_ascii(cls, value: str) -> str:
        if not value.isascii():
            raise ValueError("only ASCII characters are allowed")
        return value


class WorkerListResult(CamelModel):
    """One page of workers."""

    content: list[WorkerModel]
    total_count: int
    has_next_page: bool
