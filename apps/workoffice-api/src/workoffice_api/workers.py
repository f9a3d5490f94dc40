"""HTTP routes for worker records under ``/api/workers``."""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, Path, Query, Request
from workoffice_persistence import ConnectionManager, DataContext, EntityNotFoundError

from workoffice_api.schemas import SaveWorkerRequest, WorkerListResult, WorkerModel
from workoffice_api.service import WorkerService

DEFAULT_PAGE_INDEX = 0
DEFAULT_ITEMS_PER_PAGE = 50
MAX_ITEMS_PER_PAGE = 1000
DEFAULT_ORDER_BY = "FirstName"

router = APIRouter(prefix="/api/workers", tags=["workers"])


async def get_data_context(request: Request) -> AsyncIterator[DataContext]:
    """Open one data context for the duration of a request."""
    connections: ConnectionManager = request.app.state.connections
    async with DataContext(connections.get_sql_engine(), retry_policy=connections.retry_policy()) as context:
        yield context


def get_worker_service(context: DataContext = Depends(get_data_context)) -> WorkerService:
    return WorkerService(context)


@router.delete("/delete")
async def delete_worker(
    worker_id: uuid.UUID = Query(alias="workerId"),
    service: WorkerService = Depends(get_worker_service),
) -> str:
    await service.delete(worker_id)
    return "worker successfully deleted"


@router.get("/get", response_model=WorkerListResult, response_model_exclude_none=True)
async def list_workers(
    page_index: int = Query(DEFAULT_PAGE_INDEX, alias="pageIndex", ge=0),
    items_per_page: int = Query(DEFAULT_ITEMS_PER_PAGE, alias="itemsPerPage", ge=1, le=MAX_ITEMS_PER_PAGE),
    order_by: str = Query(DEFAULT_ORDER_BY, alias="orderBy", min_length=1),
    service: WorkerService = Depends(get_worker_service),
) -> WorkerListResult:
    return await service.list(page_index, items_per_page, order_by)


@router.get("/get/{worker_id}", response_model=WorkerModel, response_model_exclude_none=True)
async def get_worker(
    worker_id: uuid.UUID,
    service: WorkerService = Depends(get_worker_service),
) -> WorkerModel:
    worker = await service.get(worker_id)
    if worker is None:
        raise EntityNotFoundError(entity_name="Worker", operation="get", detail="no worker found")
    return worker


@router.get(
    "/get/{page_index}/{items_per_page}/{order_by}",
    response_model=WorkerListResult,
    response_model_exclude_none=True,
)
async def get_worker_page(
    page_index: int = Path(ge=0),
    items_per_page: int = Path(ge=1, le=MAX_ITEMS_PER_PAGE),
    order_by: str = Path(min_length=1),
    service: WorkerService = Depends(get_worker_service),
) -> WorkerListResult:
    """Page through live workers ordered by ``order_by`` (e.g. ``LastName desc``)."""
    return await service.list(page_index, items_per_page, order_by)


@router.post("/save", response_model=WorkerModel, response_model_exclude_none=True)
async def save_worker(
    request: SaveWorkerRequest,
    service: WorkerService = Depends(get_worker_service),
) -> WorkerModel:
    return await service.save(request)
