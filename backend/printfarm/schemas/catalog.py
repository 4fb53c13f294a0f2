"""
Reference data Pydantic schemas for API request/response validation.

Covers filament colors, printable parts and product templates with their
part lists.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from printfarm.database.models.catalog import HEX_CODE_PATTERN, MAX_ITEM_COLORS


def _validate_hex(v: Optional[str]) -> Optional[str]:
    if v is not None and not HEX_CODE_PATTERN.match(v):
        raise ValueError("hex_code must look like #RRGGBB")
    return v.upper() if v is not None else v


class ColorCreateRequest(BaseModel):
    """Request to create a filament color."""

    model_config = ConfigDict(str_strip_whitespace=True)

    color_name: str = Field(..., min_length=1, max_length=100)
    hex_code: str = Field(..., description="Display color as #RRGGBB")
    pantone_code: Optional[str] = Field(None, max_length=50)
    material_type: str = Field(default="PLA", min_length=1, max_length=50)
    supplier: Optional[str] = Field(None, max_length=100)
    category: Optional[str] = Field(None, max_length=50)
    cost_per_gram: Optional[Decimal] = Field(None, ge=0)
    stock_grams: Decimal = Field(default=Decimal("0"), ge=0)

    @field_validator("hex_code")
    @classmethod
    def validate_hex_code(cls, v: str) -> str:
        """Validate #RRGGBB format."""
        return _validate_hex(v)


class ColorUpdateRequest(BaseModel):
    """Partial color update; only fields that are sent are changed."""

    model_config = ConfigDict(str_strip_whitespace=True)

    color_name: Optional[str] = Field(None, min_length=1, max_length=100)
    hex_code: Optional[str] = None
    pantone_code: Optional[str] = Field(None, max_length=50)
    material_type: Optional[str] = Field(None, min_length=1, max_length=50)
    supplier: Optional[str] = Field(None, max_length=100)
    category: Optional[str] = Field(None, max_length=50)
    cost_per_gram: Optional[Decimal] = Field(None, ge=0)
    stock_grams: Optional[Decimal] = Field(None, ge=0)

    @field_validator("hex_code")
    @classmethod
    def validate_hex_code(cls, v: Optional[str]) -> Optional[str]:
        return _validate_hex(v)


class ColorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    color_name: str
    hex_code: str
    pantone_code: Optional[str] = None
    material_type: str
    supplier: Optional[str] = None
    category: Optional[str] = None
    cost_per_gram: Optional[Decimal] = None
    stock_grams: Decimal
    is_active: bool
    created_at: datetime
    updated_at: datetime


class PartCreateRequest(BaseModel):
    """Request to create a printable part."""

    model_config = ConfigDict(str_strip_whitespace=True)

    part_code: str = Field(..., min_length=1, max_length=50, description="Unique SKU")
    part_name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class PartUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    part_code: Optional[str] = Field(None, min_length=1, max_length=50)
    part_name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None


class PartResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    part_code: str
    part_name: str
    description: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class TemplatePartRequest(BaseModel):
    part_id: UUID
    quantity: int = Field(default=1, ge=1)


class TemplatePartQuantityRequest(BaseModel):
    quantity: int = Field(..., ge=1)


class TemplateCreateRequest(BaseModel):
    """Request to create a product template with its parts."""

    model_config = ConfigDict(str_strip_whitespace=True)

    template_name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    num_colors: int = Field(default=1, ge=1, le=MAX_ITEM_COLORS)
    print_time_minutes: Optional[int] = Field(None, ge=0)
    print_cost: Optional[Decimal] = Field(None, ge=0)
    parts: list[TemplatePartRequest] = Field(default_factory=list)


class TemplateUpdateRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    template_name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    num_colors: Optional[int] = Field(None, ge=1, le=MAX_ITEM_COLORS)
    print_time_minutes: Optional[int] = Field(None, ge=0)
    print_cost: Optional[Decimal] = Field(None, ge=0)


class TemplatePartResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    part_id: UUID
    quantity: int
    part: PartResponse


class TemplateResponse(BaseModel):
    """Template with its typed part list."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    template_name: str
    description: Optional[str] = None
    num_colors: int
    print_time_minutes: Optional[int] = None
    print_cost: Optional[Decimal] = None
    is_active: bool
    part_count: int
    parts: list[TemplatePartResponse]
    created_at: datetime
    updated_at: datetime
