"""Worker use cases on top of a request-scoped :class:`DataContext`."""

from __future__ import annotations

import logging
import uuid

from workoffice_persistence import DataContext, EntityNotFoundError, Worker, paginate

from workoffice_api.schemas import SaveWorkerRequest, WorkerListResult, WorkerModel

logger = logging.getLogger(__name__)


class WorkerService:
    """Maps between API models and the ``Worker`` entity.

    Requests arrive already validated; the service only orchestrates the
    data context.
    """

    def __init__(self, context: DataContext) -> None:
        self._context = context

    async def get(self, worker_id: uuid.UUID) -> WorkerModel | None:
        worker = await self._context.get_by_id(Worker, worker_id)
        if worker is None:
            return None
        return WorkerModel.model_validate(worker)

    async def list(self, page_index: int, items_per_page: int, order_by: str) -> WorkerListResult:
        page = await paginate(self._context.query(Worker), page_index, items_per_page, order_by)
        return WorkerListResult(
            content=[WorkerModel.model_validate(worker) for worker in page.content],
            total_count=page.total_count,
            has_next_page=page.has_next_page,
        )

    async def save(self, request: SaveWorkerRequest) -> WorkerModel:
        """Insert a new worker, or update the live worker with ``request.id``.

        An id that matches no live worker is ignored and a new worker is
        created with a fresh id.
        """
        fields = request.model_dump(exclude={"id"})
        worker = await self._context.get_by_id(Worker, request.id) if request.id is not None else None

        if worker is None:
            worker = Worker(**fields)
            self._context.insert(worker)
        else:
            for name, value in fields.items():
                setattr(worker, name, value)
            self._context.edit(worker)

        await self._context.save()
        logger.info("Saved worker %s", worker.id)
        return WorkerModel.model_validate(worker)

    async def delete(self, worker_id: uuid.UUID) -> None:
        worker = await self._context.get_by_id(Worker, worker_id)
        if worker is None:
            raise EntityNotFoundError(entity_name="Worker", operation="delete", detail="no worker found")
        self._context.delete(worker)
        await self._context.save()
        logger.info("Deleted worker %s", worker_id)
