"""
Item workflow Pydantic schemas for API request/response validation.

This module defines schemas for status transitions, reprint requests,
status history, priority-ordered queue views and readiness reports.
"""

from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from printfarm.services.workflow.engine import StatusBreakdown
from printfarm.services.workflow.enums import ItemStatus
from printfarm.services.workflow.scope import EntireItem, PartSubset, ReprintScope


def _parse_status(v: Any) -> Any:
    if isinstance(v, str):
        return ItemStatus.from_string(v)
    return v


class AdvanceStatusRequest(BaseModel):
    """Move an item to the next production status."""

    target_status: ItemStatus = Field(..., description="Direct successor status")
    reason: Optional[str] = Field(None, max_length=500)

    @field_validator("target_status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        """Accept "Printed", "printed" or "PRINTED"."""
        return _parse_status(v)


class BatchAdvanceRequest(BaseModel):
    """Move several items to the same status, all or nothing."""

    item_ids: list[UUID] = Field(..., min_length=1)
    target_status: ItemStatus
    reason: Optional[str] = Field(None, max_length=500)

    @field_validator("target_status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        """Accept "Printed", "printed" or "PRINTED"."""
        return _parse_status(v)


class ReprintRequest(BaseModel):
    """
    Reprint request.

    Omit ``part_ids`` to reprint the entire item; send a non-empty list to
    flag only those parts.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    reason: str = Field(..., min_length=1, max_length=500)
    part_ids: Optional[list[UUID]] = Field(None, min_length=1)

    def to_scope(self) -> ReprintScope:
        if self.part_ids is None:
            return EntireItem()
        return PartSubset.of(self.part_ids)


class ReprintCompleteRequest(BaseModel):
    part_ids: list[UUID] = Field(..., min_length=1)


class ColorSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    color_name: str
    hex_code: str


class PartSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    part_code: str
    part_name: str


class ItemColorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    color_order: int
    color: ColorSummary


class ItemPartResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    needs_reprint: bool
    part: PartSummary


class ItemResponse(BaseModel):
    """Item with its colors and parts."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    product_id: UUID
    item_name: str
    status: ItemStatus
    version_id: int
    needs_reprint: bool
    colors: list[ItemColorResponse]
    parts: list[ItemPartResponse]
    created_at: datetime
    updated_at: datetime


class QueueItemResponse(ItemResponse):
    """Item with the order context list views are sorted by."""

    product_name: str
    order_id: UUID
    order_number: str
    customer_name: str
    ship_by_date: date
    is_express: bool

    @classmethod
    def from_item(cls, item: Any) -> "QueueItemResponse":
        """Build from an item whose product and order are loaded."""
        product = item.product
        order = product.order
        base = ItemResponse.model_validate(item).model_dump()
        return cls(
            **base,
            product_name=product.product_name,
            order_id=order.id,
            order_number=order.order_number,
            customer_name=order.customer_name,
            ship_by_date=order.ship_by_date,
            is_express=order.is_express,
        )


class StatusHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    item_id: UUID
    old_status: Optional[ItemStatus] = None
    new_status: ItemStatus
    changed_at: datetime
    reason: Optional[str] = None


class StatusBreakdownResponse(BaseModel):
    """Item counts per status."""

    total: int
    counts: dict[str, int]

    @classmethod
    def from_breakdown(cls, breakdown: StatusBreakdown) -> "StatusBreakdownResponse":
        return cls(
            total=breakdown.total,
            counts={status.value: count for status, count in breakdown.counts.items()},
        )


class ProductReadinessResponse(BaseModel):
    product_id: UUID
    ready_for_assembly: bool
    breakdown: StatusBreakdownResponse


class OrderReadinessResponse(BaseModel):
    order_id: UUID
    ready_to_pack: bool
    ready_to_ship: bool
    breakdown: StatusBreakdownResponse
