"""Map persistence errors and request validation failures onto problem-details responses."""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from workoffice_persistence import (
    ContextDisposedError,
    EntityNotFoundError,
    InvalidArgumentError,
    OperationCancelledError,
    PersistenceError,
    QueryError,
    StoreUnavailableError,
    StoreUpdateError,
)

logger = logging.getLogger(__name__)

PROBLEM_JSON = "application/problem+json"

# First match wins; subclasses must precede their bases.
_STATUS_BY_ERROR: tuple[tuple[type[PersistenceError], int], ...] = (
    (InvalidArgumentError, 400),
    (EntityNotFoundError, 404),
    (OperationCancelledError, 408),
    (ContextDisposedError, 503),
    (StoreUnavailableError, 503),
    (StoreUpdateError, 500),
    (QueryError, 500),
)


def status_for(exc: PersistenceError) -> int:
    """Return the HTTP status for a persistence error (500 when unmapped)."""
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


def problem(status: int, detail: str, **extra: Any) -> JSONResponse:
    """Build a problem-details response."""
    body: dict[str, Any] = {"title": HTTPStatus(status).phrase, "status": status, "detail": detail}
    body.update(extra)
    return JSONResponse(body, status_code=status, media_type=PROBLEM_JSON)


async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error(
            "%s %s failed with %s (%s)", request.method, request.url.path, type(exc).__name__, exc.operation
        )
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, type(exc).__name__)
    return problem(status, exc.detail)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": ".".join(str(part) for part in error["loc"][1:]), "message": error["msg"]}
        for error in exc.errors()
    ]
    detail = "; ".join(f"{e['field']}: {e['message']}" if e["field"] else e["message"] for e in errors)
    return problem(400, detail or "The request is invalid.", errors=errors)


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PersistenceError, persistence_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_error_handler)  # type: ignore[arg-type]
