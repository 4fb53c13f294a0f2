"""
Order entry Pydantic schemas for API request/response validation.

This module defines schemas for creating orders with nested products and
items, editing order details, and order responses with the full
product/item tree.
"""

from datetime import date, datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from printfarm.database.models.catalog import MAX_ITEM_COLORS
from printfarm.schemas.items import ItemResponse
from printfarm.services.orders.service import ItemSpec, ProductSpec
from printfarm.services.workflow.enums import ItemStatus, Platform


def _parse_platform(v: Any) -> Any:
    if isinstance(v, str):
        return Platform.from_string(v)
    return v


class ItemCreateRequest(BaseModel):
    """Item to create; needs part ids, a template, or both."""

    model_config = ConfigDict(str_strip_whitespace=True)

    item_name: str = Field(..., min_length=1, max_length=255)
    color_ids: list[UUID] = Field(
        ...,
        min_length=1,
        max_length=MAX_ITEM_COLORS,
        description="Colors in display order",
    )
    part_ids: list[UUID] = Field(default_factory=list)
    template_id: Optional[UUID] = None

    @field_validator("color_ids")
    @classmethod
    def validate_distinct_colors(cls, v: list[UUID]) -> list[UUID]:
        """Colors on an item must be distinct."""
        if len(set(v)) != len(v):
            raise ValueError("color_ids must be distinct")
        return v

    @model_validator(mode="after")
    def validate_parts_source(self) -> "ItemCreateRequest":
        if not self.part_ids and self.template_id is None:
            raise ValueError("Either part_ids or template_id is required")
        return self

    def to_spec(self) -> ItemSpec:
        return ItemSpec(
            item_name=self.item_name,
            color_ids=tuple(self.color_ids),
            part_ids=tuple(self.part_ids),
            template_id=self.template_id,
        )


class ProductCreateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    product_name: str = Field(..., min_length=1, max_length=255)
    items: list[ItemCreateRequest] = Field(..., min_length=1)

    def to_spec(self) -> ProductSpec:
        return ProductSpec(
            product_name=self.product_name,
            items=[item.to_spec() for item in self.items],
        )


class OrderCreateRequest(BaseModel):
    """
    Request to create an order.

    ``order_number`` is generated when omitted.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    customer_name: str = Field(..., min_length=1, max_length=255)
    platform: Platform
    ship_by_date: date
    products: list[ProductCreateRequest] = Field(..., min_length=1)
    order_number: Optional[str] = Field(None, min_length=1, max_length=50)
    notes: Optional[str] = None
    is_express: bool = False

    @field_validator("platform", mode="before")
    @classmethod
    def normalize_platform(cls, v: Any) -> Any:
        return _parse_platform(v)


class OrderUpdateRequest(BaseModel):
    """Partial order update; only fields that are sent are changed."""

    model_config = ConfigDict(str_strip_whitespace=True)

    order_number: Optional[str] = Field(None, min_length=1, max_length=50)
    customer_name: Optional[str] = Field(None, min_length=1, max_length=255)
    platform: Optional[Platform] = None
    notes: Optional[str] = None
    ship_by_date: Optional[date] = None
    is_express: Optional[bool] = None

    @field_validator("platform", mode="before")
    @classmethod
    def normalize_platform(cls, v: Any) -> Any:
        return _parse_platform(v)


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_id: UUID
    product_name: str
    items: list[ItemResponse]
    created_at: datetime


class OrderResponse(BaseModel):
    """Order with its full product and item tree."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_number: str
    customer_name: str
    platform: Platform
    notes: Optional[str] = None
    ship_by_date: date
    is_express: bool
    is_archived: bool
    shipped_at: Optional[datetime] = None
    products: list[ProductResponse]
    created_at: datetime
    updated_at: datetime


class OrderSummaryResponse(BaseModel):
    """Order row for list views with per-status item counts."""

    id: UUID
    order_number: str
    customer_name: str
    platform: Platform
    ship_by_date: date
    is_express: bool
    is_archived: bool
    product_count: int
    item_count: int
    status_counts: dict[str, int]

    @classmethod
    def from_order(cls, order: Any) -> "OrderSummaryResponse":
        counts: dict[str, int] = {}
        for item in order.items:
            counts[item.status.value] = counts.get(item.status.value, 0) + 1
        ordered = {
            status.value: counts[status.value]
            for status in ItemStatus
            if status.value in counts
        }
        return cls(
            id=order.id,
            order_number=order.order_number,
            customer_name=order.customer_name,
            platform=order.platform,
            ship_by_date=order.ship_by_date,
            is_express=order.is_express,
            is_archived=order.is_archived,
            product_count=len(order.products),
            item_count=len(order.items),
            status_counts=ordered,
        )


class NextOrderNumberResponse(BaseModel):
    order_number: str
