"""
Order API endpoints.

Order entry (create, edit, numbering), order listing and the order-level
workflow operations: readiness checks and shipping.
"""

from uuid import UUID

from fastapi import APIRouter, Query, status

from printfarm.api.deps import Engine, OrderEntry
from printfarm.core.logging import get_logger
from printfarm.schemas.items import OrderReadinessResponse, StatusBreakdownResponse
from printfarm.schemas.orders import (
    NextOrderNumberResponse,
    OrderCreateRequest,
    OrderResponse,
    OrderSummaryResponse,
    OrderUpdateRequest,
)
from printfarm.services.workflow.enums import ItemStatus

logger = get_logger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post(
    "/",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create order",
    description="Create an order with its products and items in one transaction",
)
async def create_order(request: OrderCreateRequest, service: OrderEntry) -> OrderResponse:
    logger.info(
        "Creating order",
        customer_name=request.customer_name,
        platform=request.platform.value,
        product_count=len(request.products),
    )
    order = await service.create_order(
        customer_name=request.customer_name,
        platform=request.platform,
        ship_by_date=request.ship_by_date,
        products=[product.to_spec() for product in request.products],
        order_number=request.order_number,
        notes=request.notes,
        is_express=request.is_express,
    )
    return OrderResponse.model_validate(order)


@router.get(
    "/",
    response_model=list[OrderSummaryResponse],
    summary="List orders",
    description="Active orders, express first, then earliest ship-by date",
)
async def list_orders(
    service: OrderEntry,
    archived: bool = Query(False, description="List shipped orders instead"),
) -> list[OrderSummaryResponse]:
    if archived:
        orders = await service.list_archived_orders()
    else:
        orders = await service.list_active_orders()
    return [OrderSummaryResponse.from_order(order) for order in orders]


@router.get(
    "/next-number",
    response_model=NextOrderNumberResponse,
    summary="Preview the next sequential order number",
)
async def next_order_number(service: OrderEntry) -> NextOrderNumberResponse:
    return NextOrderNumberResponse(order_number=await service.next_order_number())


@router.get("/{order_id}", response_model=OrderResponse, summary="Get order")
async def get_order(order_id: UUID, service: OrderEntry) -> OrderResponse:
    return OrderResponse.model_validate(await service.get_order(order_id))


@router.patch("/{order_id}", response_model=OrderResponse, summary="Edit order details")
async def update_order(
    order_id: UUID, request: OrderUpdateRequest, service: OrderEntry
) -> OrderResponse:
    order = await service.update_order(order_id, **request.model_dump(exclude_unset=True))
    return OrderResponse.model_validate(order)


@router.get(
    "/{order_id}/readiness",
    response_model=OrderReadinessResponse,
    summary="Check whether the order can be packed or shipped",
)
async def order_readiness(order_id: UUID, engine: Engine) -> OrderReadinessResponse:
    breakdown = await engine.order_status_breakdown(order_id)
    return OrderReadinessResponse(
        order_id=order_id,
        ready_to_pack=breakdown.all_in(ItemStatus.ASSEMBLED),
        ready_to_ship=breakdown.all_in(ItemStatus.PACKED),
        breakdown=StatusBreakdownResponse.from_breakdown(breakdown),
    )


@router.post(
    "/{order_id}/ship",
    response_model=OrderResponse,
    summary="Ship order",
    description="Moves every Packed item to Shipped and archives the order",
)
async def ship_order(order_id: UUID, engine: Engine) -> OrderResponse:
    order = await engine.ship_order(order_id)
    return OrderResponse.model_validate(order)
