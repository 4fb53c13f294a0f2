"""
Reference data administration API endpoints.

CRUD plus soft delete and reactivation for colors, parts and product
templates. There are no hard-delete routes.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from printfarm.api.deps import Catalog
from printfarm.schemas.catalog import (
    ColorCreateRequest,
    ColorResponse,
    ColorUpdateRequest,
    PartCreateRequest,
    PartResponse,
    PartUpdateRequest,
    TemplateCreateRequest,
    TemplatePartQuantityRequest,
    TemplatePartRequest,
    TemplateResponse,
    TemplateUpdateRequest,
)

router = APIRouter(prefix="/admin", tags=["admin"])


# ============================================================================
# Colors
# ============================================================================


@router.get("/colors", response_model=list[ColorResponse], summary="List colors")
async def list_colors(
    catalog: Catalog,
    include_inactive: bool = Query(False),
    search: Optional[str] = Query(None, min_length=1, description="Name substring"),
    supplier: Optional[str] = Query(None, min_length=1),
) -> list[ColorResponse]:
    if search is not None:
        colors = await catalog.search_colors(search, include_inactive)
    elif supplier is not None:
        colors = await catalog.list_colors_by_supplier(supplier)
    else:
        colors = await catalog.list_colors(include_inactive)
    return [ColorResponse.model_validate(color) for color in colors]


@router.post(
    "/colors",
    response_model=ColorResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create color",
)
async def create_color(request: ColorCreateRequest, catalog: Catalog) -> ColorResponse:
    color = await catalog.create_color(**request.model_dump())
    return ColorResponse.model_validate(color)


@router.get("/colors/{color_id}", response_model=ColorResponse, summary="Get color")
async def get_color(color_id: UUID, catalog: Catalog) -> ColorResponse:
    return ColorResponse.model_validate(await catalog.get_color(color_id))


@router.patch("/colors/{color_id}", response_model=ColorResponse, summary="Update color")
async def update_color(
    color_id: UUID, request: ColorUpdateRequest, catalog: Catalog
) -> ColorResponse:
    color = await catalog.update_color(color_id, **request.model_dump(exclude_unset=True))
    return ColorResponse.model_validate(color)


@router.post(
    "/colors/{color_id}/deactivate",
    response_model=ColorResponse,
    summary="Soft delete color",
)
async def deactivate_color(color_id: UUID, catalog: Catalog) -> ColorResponse:
    return ColorResponse.model_validate(await catalog.deactivate_color(color_id))


@router.post(
    "/colors/{color_id}/activate",
    response_model=ColorResponse,
    summary="Reactivate color",
)
async def activate_color(color_id: UUID, catalog: Catalog) -> ColorResponse:
    return ColorResponse.model_validate(await catalog.activate_color(color_id))


# ============================================================================
# Parts
# ============================================================================


@router.get("/parts", response_model=list[PartResponse], summary="List parts")
async def list_parts(
    catalog: Catalog,
    include_inactive: bool = Query(False),
    search: Optional[str] = Query(None, min_length=1, description="Name or code substring"),
) -> list[PartResponse]:
    if search is not None:
        parts = await catalog.search_parts(search, include_inactive)
    else:
        parts = await catalog.list_parts(include_inactive)
    return [PartResponse.model_validate(part) for part in parts]


@router.post(
    "/parts",
    response_model=PartResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create part",
)
async def create_part(request: PartCreateRequest, catalog: Catalog) -> PartResponse:
    part = await catalog.create_part(**request.model_dump())
    return PartResponse.model_validate(part)


@router.get("/parts/by-code/{part_code}", response_model=PartResponse, summary="Get part by SKU")
async def get_part_by_code(part_code: str, catalog: Catalog) -> PartResponse:
    return PartResponse.model_validate(await catalog.get_part_by_code(part_code))


@router.get("/parts/{part_id}", response_model=PartResponse, summary="Get part")
async def get_part(part_id: UUID, catalog: Catalog) -> PartResponse:
    return PartResponse.model_validate(await catalog.get_part(part_id))


@router.patch("/parts/{part_id}", response_model=PartResponse, summary="Update part")
async def update_part(
    part_id: UUID, request: PartUpdateRequest, catalog: Catalog
) -> PartResponse:
    part = await catalog.update_part(part_id, **request.model_dump(exclude_unset=True))
    return PartResponse.model_validate(part)


@router.post(
    "/parts/{part_id}/deactivate", response_model=PartResponse, summary="Soft delete part"
)
async def deactivate_part(part_id: UUID, catalog: Catalog) -> PartResponse:
    return PartResponse.model_validate(await catalog.deactivate_part(part_id))


@router.post(
    "/parts/{part_id}/activate", response_model=PartResponse, summary="Reactivate part"
)
async def activate_part(part_id: UUID, catalog: Catalog) -> PartResponse:
    return PartResponse.model_validate(await catalog.activate_part(part_id))


# ============================================================================
# Templates
# ============================================================================


@router.get("/templates", response_model=list[TemplateResponse], summary="List templates")
async def list_templates(
    catalog: Catalog, include_inactive: bool = Query(False)
) -> list[TemplateResponse]:
    templates = await catalog.list_templates(include_inactive)
    return [TemplateResponse.model_validate(template) for template in templates]


@router.post(
    "/templates",
    response_model=TemplateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create template with parts",
)
async def create_template(
    request: TemplateCreateRequest, catalog: Catalog
) -> TemplateResponse:
    template = await catalog.create_template(
        template_name=request.template_name,
        num_colors=request.num_colors,
        parts=[(part.part_id, part.quantity) for part in request.parts],
        description=request.description,
        print_time_minutes=request.print_time_minutes,
        print_cost=request.print_cost,
    )
    return TemplateResponse.model_validate(template)


@router.get(
    "/templates/{template_id}", response_model=TemplateResponse, summary="Get template"
)
async def get_template(template_id: UUID, catalog: Catalog) -> TemplateResponse:
    return TemplateResponse.model_validate(await catalog.get_template(template_id))


@router.patch(
    "/templates/{template_id}",
    response_model=TemplateResponse,
    summary="Update template metadata",
)
async def update_template(
    template_id: UUID, request: TemplateUpdateRequest, catalog: Catalog
) -> TemplateResponse:
    template = await catalog.update_template(
        template_id, **request.model_dump(exclude_unset=True)
    )
    return TemplateResponse.model_validate(template)


@router.post(
    "/templates/{template_id}/parts",
    response_model=TemplateResponse,
    summary="Add a part to a template or replace its quantity",
)
async def add_template_part(
    template_id: UUID, request: TemplatePartRequest, catalog: Catalog
) -> TemplateResponse:
    template = await catalog.add_template_part(
        template_id, request.part_id, request.quantity
    )
    return TemplateResponse.model_validate(template)


@router.put(
    "/templates/{template_id}/parts/{part_id}",
    response_model=TemplateResponse,
    summary="Change a template part's quantity",
)
async def update_template_part(
    template_id: UUID,
    part_id: UUID,
    request: TemplatePartQuantityRequest,
    catalog: Catalog,
) -> TemplateResponse:
    template = await catalog.update_template_part_quantity(
        template_id, part_id, request.quantity
    )
    return TemplateResponse.model_validate(template)


@router.delete(
    "/templates/{template_id}/parts/{part_id}",
    response_model=TemplateResponse,
    summary="Remove a part from a template",
)
async def remove_template_part(
    template_id: UUID, part_id: UUID, catalog: Catalog
) -> TemplateResponse:
    template = await catalog.remove_template_part(template_id, part_id)
    return TemplateResponse.model_validate(template)


@router.post(
    "/templates/{template_id}/deactivate",
    response_model=TemplateResponse,
    summary="Soft delete template",
)
async def deactivate_template(template_id: UUID, catalog: Catalog) -> TemplateResponse:
    return TemplateResponse.model_validate(await catalog.deactivate_template(template_id))


@router.post(
    "/templates/{template_id}/activate",
    response_model=TemplateResponse,
    summary="Reactivate template",
)
async def activate_template(template_id: UUID, catalog: Catalog) -> TemplateResponse:
    return TemplateResponse.model_validate(await catalog.activate_template(template_id))
