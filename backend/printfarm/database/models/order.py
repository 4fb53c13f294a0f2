"""
Order and Product models.

An order is the unit of customer fulfillment. It groups one or more products,
each of which groups one or more printable items. Products carry no stored
status; their state is derived from their items by the workflow engine.
"""

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    String,
    Text,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from printfarm.database.base import BaseModel
from printfarm.services.workflow.enums import Platform

if TYPE_CHECKING:
    from printfarm.database.models.item import Item


class Order(BaseModel):
    """
    Customer order tracked through production.

    Attributes:
        id: Unique order identifier
        order_number: Human-readable, user-editable order number
        customer_name: Name of the customer
        platform: Sales channel the order came from
        notes: Free-form notes
        ship_by_date: Date the order must ship by
        is_express: Express orders sort ahead of everything else
        is_archived: Set once when the order ships, never reverted
        shipped_at: Timestamp the order was shipped
        products: Products belonging to the order
    """

    __tablename__ = "orders"

    order_number: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="Human-readable order number",
    )

    customer_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Customer name",
    )

    platform: Mapped[Platform] = mapped_column(
        SQLEnum(
            Platform,
            name="order_platform",
            values_callable=lambda e: [member.value for member in e],
            create_constraint=True,
            validate_strings=True,
        ),
        nullable=False,
        comment="Sales channel",
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Free-form order notes",
    )

    ship_by_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        comment="Date the order must ship by",
    )

    is_express: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
        comment="Express orders are prioritized in every list view",
    )

    is_archived: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
        comment="Set when the order ships",
    )

    shipped_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Timestamp the order was shipped",
    )

    products: Mapped[list["Product"]] = relationship(
        "Product",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="Product.created_at",
    )

    __table_args__ = (
        Index("ix_orders_priority", "is_archived", "is_express", "ship_by_date"),
        {"comment": "Customer orders tracked through production"},
    )

    @validates("order_number", "customer_name")
    def validate_required_text(self, key: str, value: str) -> str:
        """Strip required text fields and reject blanks."""
        if value is None or not value.strip():
            raise ValueError(f"{key} cannot be empty")
        return value.strip()

    @property
    def items(self) -> list["Item"]:
        """All items of the order across its products."""
        return [item for product in self.products for item in product.items]

    def __repr__(self) -> str:
        return (
            f"<Order(id={self.id}, order_number={self.order_number!r}, "
            f"archived={self.is_archived})>"
        )


class Product(BaseModel):
    """
    Product within an order, grouping printable items.

    Attributes:
        id: Unique product identifier
        order_id: Owning order
        product_name: Product display name
        items: Printable items of the product
    """

    __tablename__ = "products"

    order_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning order",
    )

    product_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Product display name",
    )

    order: Mapped["Order"] = relationship(
        "Order",
        back_populates="products",
        lazy="raise",
    )

    items: Mapped[list["Item"]] = relationship(
        "Item",
        back_populates="product",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="Item.created_at",
    )

    __table_args__ = ({"comment": "Products within orders"},)

    @validates("product_name")
    def validate_product_name(self, key: str, value: str) -> str:
        if value is None or not value.strip():
            raise ValueError("product_name cannot be empty")
        return value.strip()

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name={self.product_name!r})>"
