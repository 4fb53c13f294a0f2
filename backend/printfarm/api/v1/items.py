"""
Item workflow API endpoints.

Station-facing routes for moving items through production, requesting and
completing reprints, and reading priority-ordered work queues. Domain errors
propagate to the application's exception handlers.
"""

from uuid import UUID

from fastapi import APIRouter, Query, status

from printfarm.api.deps import Engine
from printfarm.core.exceptions import InvalidInputError
from printfarm.core.logging import get_logger
from printfarm.schemas.items import (
    AdvanceStatusRequest,
    BatchAdvanceRequest,
    ItemResponse,
    QueueItemResponse,
    ReprintCompleteRequest,
    ReprintRequest,
    StatusHistoryResponse,
)
from printfarm.services.workflow.enums import ItemStatus

logger = get_logger(__name__)

router = APIRouter(prefix="/items", tags=["items"])


@router.get(
    "/",
    response_model=list[QueueItemResponse],
    summary="List items in a status",
    description="Items in priority order: express first, then earliest ship-by date",
)
async def list_items(
    engine: Engine,
    item_status: str = Query(..., alias="status", description="e.g. 'In Queue'"),
    include_archived: bool = Query(False),
) -> list[QueueItemResponse]:
    try:
        parsed = ItemStatus.from_string(item_status)
    except ValueError as e:
        raise InvalidInputError(str(e), status=item_status) from e
    items = await engine.list_items_by_status(parsed, include_archived=include_archived)
    return [QueueItemResponse.from_item(item) for item in items]


@router.get(
    "/reprints",
    response_model=list[QueueItemResponse],
    summary="List items with parts flagged for reprint",
)
async def list_reprint_queue(engine: Engine) -> list[QueueItemResponse]:
    items = await engine.list_reprint_queue()
    return [QueueItemResponse.from_item(item) for item in items]


@router.post(
    "/batch-advance",
    response_model=list[ItemResponse],
    summary="Advance several items together",
    description="All items move or none do",
)
async def batch_advance(
    request: BatchAdvanceRequest, engine: Engine
) -> list[ItemResponse]:
    logger.info(
        "Batch advance requested",
        count=len(request.item_ids),
        target_status=request.target_status.value,
    )
    items = await engine.batch_advance(
        request.item_ids, request.target_status, request.reason
    )
    return [ItemResponse.model_validate(item) for item in items]


@router.get("/{item_id}", response_model=QueueItemResponse, summary="Get item")
async def get_item(item_id: UUID, engine: Engine) -> QueueItemResponse:
    return QueueItemResponse.from_item(await engine.get_item(item_id))


@router.get(
    "/{item_id}/history",
    response_model=list[StatusHistoryResponse],
    summary="Get item status history, oldest first",
)
async def get_item_history(
    item_id: UUID, engine: Engine
) -> list[StatusHistoryResponse]:
    history = await engine.get_item_history(item_id)
    return [StatusHistoryResponse.model_validate(entry) for entry in history]


@router.post(
    "/{item_id}/advance",
    response_model=ItemResponse,
    summary="Advance item to the next status",
)
async def advance_item(
    item_id: UUID, request: AdvanceStatusRequest, engine: Engine
) -> ItemResponse:
    item = await engine.advance_status(item_id, request.target_status, request.reason)
    return ItemResponse.model_validate(item)


@router.post(
    "/{item_id}/reprint",
    response_model=ItemResponse,
    summary="Request a reprint",
    description="Omit part_ids to reprint the whole item",
)
async def request_reprint(
    item_id: UUID, request: ReprintRequest, engine: Engine
) -> ItemResponse:
    item = await engine.request_reprint(item_id, request.to_scope(), request.reason)
    return ItemResponse.model_validate(item)


@router.post(
    "/{item_id}/reprint-complete",
    response_model=ItemResponse,
    status_code=status.HTTP_200_OK,
    summary="Clear reprint flags on parts",
)
async def mark_reprint_complete(
    item_id: UUID, request: ReprintCompleteRequest, engine: Engine
) -> ItemResponse:
    item = await engine.mark_reprint_complete(item_id, request.part_ids)
    return ItemResponse.model_validate(item)
