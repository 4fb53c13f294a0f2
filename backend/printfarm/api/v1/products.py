"""Product API endpoints."""

from uuid import UUID

from fastapi import APIRouter

from printfarm.api.deps import Engine
from printfarm.schemas.items import ProductReadinessResponse, StatusBreakdownResponse
from printfarm.services.workflow.enums import ItemStatus

router = APIRouter(prefix="/products", tags=["products"])


@router.get(
    "/{product_id}/readiness",
    response_model=ProductReadinessResponse,
    summary="Check whether all items of a product are printed",
)
async def product_readiness(
    product_id: UUID, engine: Engine
) -> ProductReadinessResponse:
    breakdown = await engine.product_status_breakdown(product_id)
    return ProductReadinessResponse(
        product_id=product_id,
        ready_for_assembly=breakdown.all_in(ItemStatus.PRINTED),
        breakdown=StatusBreakdownResponse.from_breakdown(breakdown),
    )
