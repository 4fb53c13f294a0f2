"""
Reference data models: filament colors, printable parts and product templates.

Reference records are soft deleted through ``is_active`` and are never
physically removed, so items created against them keep valid references.
"""

import re
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from printfarm.database.base import Base, ReferenceModel

HEX_CODE_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")

MAX_ITEM_COLORS = 4


class Color(ReferenceModel):
    """
    Filament color available for printing.

    Attributes:
        color_name: Unique display name
        hex_code: Display color as #RRGGBB
        pantone_code: Optional Pantone reference
        material_type: Filament material, e.g. PLA or PETG
        supplier: Filament supplier
        category: Free-form grouping such as "Basic" or "Silk"
        cost_per_gram: Filament cost per gram
        stock_grams: Filament on hand
    """

    __tablename__ = "colors"

    color_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
        comment="Unique color name",
    )

    hex_code: Mapped[str] = mapped_column(
        String(7),
        nullable=False,
        comment="Display color as #RRGGBB",
    )

    pantone_code: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )

    material_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="PLA",
        server_default="PLA",
    )

    supplier: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        index=True,
    )

    category: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )

    cost_per_gram: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=8, scale=4),
        nullable=True,
    )

    stock_grams: Mapped[Decimal] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=False,
        default=Decimal("0"),
        server_default="0",
    )

    __table_args__ = (
        CheckConstraint("stock_grams >= 0", name="ck_colors_stock_non_negative"),
        {"comment": "Filament colors"},
    )

    @validates("hex_code")
    def validate_hex_code(self, key: str, value: str) -> str:
        """Validate and upper-case a #RRGGBB hex code."""
        if value is None or not HEX_CODE_PATTERN.match(value):
            raise ValueError(f"Invalid hex code: {value!r}")
        return value.upper()

    @validates("color_name")
    def validate_color_name(self, key: str, value: str) -> str:
        if value is None or not value.strip():
            raise ValueError("color_name cannot be empty")
        return value.strip()

    def __repr__(self) -> str:
        return f"<Color(id={self.id}, name={self.color_name!r}, active={self.is_active})>"


class Part(ReferenceModel):
    """
    Printable part identified by a unique SKU.

    Attributes:
        part_code: Unique SKU
        part_name: Unique display name
        description: Optional description
    """

    __tablename__ = "parts"

    part_code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="Unique part SKU",
    )

    part_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Unique part name",
    )

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = ({"comment": "Printable parts"},)

    @validates("part_code", "part_name")
    def validate_required_text(self, key: str, value: str) -> str:
        if value is None or not value.strip():
            raise ValueError(f"{key} cannot be empty")
        return value.strip()

    def __repr__(self) -> str:
        return f"<Part(id={self.id}, code={self.part_code!r}, active={self.is_active})>"


class ProductTemplate(ReferenceModel):
    """
    Reusable product definition that pre-populates item parts.

    Attributes:
        template_name: Unique template name
        description: Optional description
        num_colors: Number of colors an item built from it carries (1..4)
        print_time_minutes: Estimated print time
        print_cost: Estimated print cost
        parts: Parts with quantities
    """

    __tablename__ = "product_templates"

    template_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Unique template name",
    )

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    num_colors: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        server_default="1",
    )

    print_time_minutes: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )

    print_cost: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=10, scale=2),
        nullable=True,
    )

    parts: Mapped[list["TemplatePart"]] = relationship(
        "TemplatePart",
        back_populates="template",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint(
            f"num_colors BETWEEN 1 AND {MAX_ITEM_COLORS}",
            name="ck_product_templates_num_colors_range",
        ),
        {"comment": "Reusable product templates"},
    )

    @validates("template_name")
    def validate_template_name(self, key: str, value: str) -> str:
        if value is None or not value.strip():
            raise ValueError("template_name cannot be empty")
        return value.strip()

    @validates("num_colors")
    def validate_num_colors(self, key: str, value: int) -> int:
        if value is None or not 1 <= value <= MAX_ITEM_COLORS:
            raise ValueError(f"num_colors must be between 1 and {MAX_ITEM_COLORS}")
        return value

    @property
    def part_count(self) -> int:
        return len(self.parts)

    def __repr__(self) -> str:
        return f"<ProductTemplate(id={self.id}, name={self.template_name!r})>"


class TemplatePart(Base):
    """Part used by a template, with a quantity."""

    __tablename__ = "template_parts"

    template_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("product_templates.id", ondelete="CASCADE"),
        primary_key=True,
    )

    part_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("parts.id", ondelete="RESTRICT"),
        primary_key=True,
        index=True,
    )

    quantity: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        server_default="1",
    )

    template: Mapped["ProductTemplate"] = relationship(
        "ProductTemplate",
        back_populates="parts",
        lazy="raise",
    )

    part: Mapped["Part"] = relationship("Part", lazy="selectin")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_template_parts_quantity_positive"),
    )
