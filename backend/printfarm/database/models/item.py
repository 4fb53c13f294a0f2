"""
Item, item association and status history models.

An item is a single printable plate and the only entity that carries a
production status. Items are versioned: every update increments
``version_id`` and an update against a stale version fails, so two stations
cannot silently overwrite each other's transitions.
"""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from printfarm.database.base import Base, BaseModel, utc_now
from printfarm.services.workflow.enums import ItemStatus

if TYPE_CHECKING:
    from printfarm.database.models.catalog import Color, Part
    from printfarm.database.models.order import Product


def _status_enum(create_constraint: bool = True) -> SQLEnum:
    return SQLEnum(
        ItemStatus,
        name="item_status",
        values_callable=lambda e: [member.value for member in e],
        create_constraint=create_constraint,
        validate_strings=True,
    )


class Item(BaseModel):
    """
    Printable plate progressing through production stages.

    Attributes:
        id: Unique item identifier
        product_id: Owning product
        item_name: Item display name
        status: Current production status
        version_id: Optimistic concurrency counter
        colors: Ordered color assignments (1..4)
        parts: Part assignments with their reprint flags
    """

    __tablename__ = "items"

    product_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning product",
    )

    item_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Item display name",
    )

    status: Mapped[ItemStatus] = mapped_column(
        _status_enum(),
        nullable=False,
        default=ItemStatus.IN_QUEUE,
        index=True,
        comment="Current production status",
    )

    version_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Optimistic concurrency version counter",
    )

    product: Mapped["Product"] = relationship(
        "Product",
        back_populates="items",
        lazy="raise",
    )

    colors: Mapped[list["ItemColor"]] = relationship(
        "ItemColor",
        back_populates="item",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="ItemColor.color_order",
    )

    parts: Mapped[list["ItemPart"]] = relationship(
        "ItemPart",
        back_populates="item",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version_id}

    __table_args__ = ({"comment": "Printable items carrying production status"},)

    @property
    def needs_reprint(self) -> bool:
        """True if any part of the item is flagged for reprint."""
        return any(part.needs_reprint for part in self.parts)

    def part_link(self, part_id: uuid.UUID) -> Optional["ItemPart"]:
        """Return the association for ``part_id`` or None if not on the item."""
        for link in self.parts:
            if link.part_id == part_id:
                return link
        return None

    def __repr__(self) -> str:
        return (
            f"<Item(id={self.id}, name={self.item_name!r}, "
            f"status={self.status.value if self.status else None})>"
        )


class ItemColor(Base):
    """Color assigned to an item at a 1-based position."""

    __tablename__ = "item_colors"

    item_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("items.id", ondelete="CASCADE"),
        primary_key=True,
    )

    color_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("colors.id", ondelete="RESTRICT"),
        primary_key=True,
        index=True,
    )

    color_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="1-based position of the color on the item",
    )

    item: Mapped["Item"] = relationship(
        "Item",
        back_populates="colors",
        lazy="raise",
    )

    color: Mapped["Color"] = relationship("Color", lazy="selectin")

    __table_args__ = (
        CheckConstraint(
            "color_order BETWEEN 1 AND 4",
            name="ck_item_colors_color_order_range",
        ),
        UniqueConstraint("item_id", "color_order", name="uq_item_colors_position"),
    )


class ItemPart(Base):
    """Part required by an item, with its reprint flag."""

    __tablename__ = "item_parts"

    item_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("items.id", ondelete="CASCADE"),
        primary_key=True,
    )

    part_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("parts.id", ondelete="RESTRICT"),
        primary_key=True,
        index=True,
    )

    needs_reprint: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=false(),
        comment="Part is flagged for reprint",
    )

    item: Mapped["Item"] = relationship(
        "Item",
        back_populates="parts",
        lazy="raise",
    )

    part: Mapped["Part"] = relationship("Part", lazy="selectin")

    __table_args__ = (
        Index("ix_item_parts_needs_reprint", "needs_reprint"),
    )


class StatusHistory(Base):
    """
    Append-only audit row for an item status change.

    The integer primary key is monotonic, so ordering by id gives the exact
    order changes were recorded in even when timestamps collide.
    """

    __tablename__ = "status_history"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    item_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Item whose status changed",
    )

    old_status: Mapped[Optional[ItemStatus]] = mapped_column(
        _status_enum(create_constraint=False),
        nullable=True,
        comment="Status before the change, NULL on creation",
    )

    new_status: Mapped[ItemStatus] = mapped_column(
        _status_enum(create_constraint=False),
        nullable=False,
        comment="Status after the change",
    )

    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
        comment="When the change was recorded",
    )

    reason: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
        comment="Reason for the change",
    )

    item: Mapped["Item"] = relationship("Item", lazy="raise")

    __table_args__ = (
        Index("ix_status_history_item_changed", "item_id", "changed_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<StatusHistory(id={self.id}, item_id={self.item_id}, "
            f"{self.old_status} -> {self.new_status})>"
        )
