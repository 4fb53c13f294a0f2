"""
Reference data administration for colors, parts and product templates.

Reference records are soft deleted: ``deactivate`` hides a record from new
orders and ``activate`` restores it. There is no hard delete.
"""

import uuid
from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence

from printfarm.core.exceptions import (
    InactiveReferenceError,
    InvalidInputError,
    NotFoundError,
)
from printfarm.core.logging import get_logger
from printfarm.database.base import utc_now
from printfarm.database.models.catalog import (
    Color,
    Part,
    ProductTemplate,
    TemplatePart,
)
from printfarm.database.store import EntityStore
from printfarm.services.catalog.repository import CatalogRepository

logger = get_logger(__name__)

COLOR_FIELDS = frozenset(
    {
        "color_name",
        "hex_code",
        "pantone_code",
        "material_type",
        "supplier",
        "category",
        "cost_per_gram",
        "stock_grams",
    }
)
PART_FIELDS = frozenset({"part_code", "part_name", "description"})
TEMPLATE_FIELDS = frozenset(
    {"template_name", "description", "num_colors", "print_time_minutes", "print_cost"}
)


def _check_fields(allowed: frozenset, fields: dict[str, Any], **context: Any) -> None:
    unknown = sorted(set(fields) - allowed)
    if unknown:
        raise InvalidInputError("Fields cannot be edited", fields=unknown, **context)


def _apply(record: Any, fields: dict[str, Any]) -> None:
    """Assign fields, turning model validation failures into InvalidInputError."""
    try:
        for name, value in fields.items():
            setattr(record, name, value)
    except ValueError as e:
        raise InvalidInputError(str(e), model=type(record).__name__) from e


class CatalogService:
    """Create, read, update, soft-delete and search reference data."""

    def __init__(self, store: EntityStore):
        self.store = store

    # ------------------------------------------------------------------
    # Colors
    # ------------------------------------------------------------------

    async def create_color(
        self,
        color_name: str,
        hex_code: str,
        pantone_code: Optional[str] = None,
        material_type: str = "PLA",
        supplier: Optional[str] = None,
        category: Optional[str] = None,
        cost_per_gram: Optional[Decimal] = None,
        stock_grams: Decimal = Decimal("0"),
    ) -> Color:
        """
        Create a filament color.

        Raises:
            InvalidInputError: If the name or hex code is invalid
            DuplicateKeyError: If the color name is already used
        """
        color = Color(id=uuid.uuid4(), is_active=True)
        _apply(
            color,
            {
                "color_name": color_name,
                "hex_code": hex_code,
                "pantone_code": pantone_code,
                "material_type": material_type,
                "supplier": supplier,
                "category": category,
                "cost_per_gram": cost_per_gram,
                "stock_grams": stock_grams,
            },
        )
        async with self.store.transaction() as session:
            await CatalogRepository(session).add(color, color_name=color.color_name)
        logger.info("Color created", color_id=str(color.id), color_name=color.color_name)
        return color

    async def get_color(self, color_id: uuid.UUID) -> Color:
        """Get a color, active or not."""
        async with self.store.session() as session:
            color = await CatalogRepository(session).get_color(color_id)
        if color is None:
            raise NotFoundError("Color not found", color_id=str(color_id))
        return color

    async def list_colors(self, include_inactive: bool = False) -> Sequence[Color]:
        async with self.store.session() as session:
            return await CatalogRepository(session).list_colors(include_inactive)

    async def search_colors(
        self, term: str, include_inactive: bool = False
    ) -> Sequence[Color]:
        async with self.store.session() as session:
            return await CatalogRepository(session).search_colors(term, include_inactive)

    async def list_colors_by_supplier(self, supplier: str) -> Sequence[Color]:
        async with self.store.session() as session:
            return await CatalogRepository(session).list_colors_by_supplier(supplier)

    async def update_color(self, color_id: uuid.UUID, **fields: Any) -> Color:
        """
        Update color fields.

        Raises:
            NotFoundError: If the color does not exist
            InvalidInputError: If a field is unknown or invalid
            DuplicateKeyError: If the new name is already used
        """
        _check_fields(COLOR_FIELDS, fields, color_id=str(color_id))
        async with self.store.transaction() as session:
            repository = CatalogRepository(session)
            color = await self._require(repository.get_color, "Color", color_id)
            _apply(color, fields)
            await repository.flush(model="Color", color_id=str(color_id))
        logger.info("Color updated", color_id=str(color_id), fields=sorted(fields))
        return color

    async def deactivate_color(self, color_id: uuid.UUID) -> Color:
        return await self._set_active(CatalogRepository.get_color, "Color", color_id, False)

    async def activate_color(self, color_id: uuid.UUID) -> Color:
        return await self._set_active(CatalogRepository.get_color, "Color", color_id, True)

    # ------------------------------------------------------------------
    # Parts
    # ------------------------------------------------------------------

    async def create_part(
        self,
        part_code: str,
        part_name: str,
        description: Optional[str] = None,
    ) -> Part:
        """
        Create a printable part.

        Raises:
            InvalidInputError: If the code or name is blank
            DuplicateKeyError: If the code or name is already used
        """
        part = Part(id=uuid.uuid4(), is_active=True)
        _apply(
            part,
            {"part_code": part_code, "part_name": part_name, "description": description},
        )
        async with self.store.transaction() as session:
            await CatalogRepository(session).add(
                part, part_code=part.part_code, part_name=part.part_name
            )
        logger.info("Part created", part_id=str(part.id), part_code=part.part_code)
        return part

    async def get_part(self, part_id: uuid.UUID) -> Part:
        async with self.store.session() as session:
            part = await CatalogRepository(session).get_part(part_id)
        if part is None:
            raise NotFoundError("Part not found", part_id=str(part_id))
        return part

    async def get_part_by_code(self, part_code: str) -> Part:
        async with self.store.session() as session:
            part = await CatalogRepository(session).get_part_by_code(part_code)
        if part is None:
            raise NotFoundError("Part not found", part_code=part_code)
        return part

    async def list_parts(self, include_inactive: bool = False) -> Sequence[Part]:
        async with self.store.session() as session:
            return await CatalogRepository(session).list_parts(include_inactive)

    async def search_parts(
        self, term: str, include_inactive: bool = False
    ) -> Sequence[Part]:
        async with self.store.session() as session:
            return await CatalogRepository(session).search_parts(term, include_inactive)

    async def update_part(self, part_id: uuid.UUID, **fields: Any) -> Part:
        """
        Update part fields.

        Raises:
            NotFoundError: If the part does not exist
            InvalidInputError: If a field is unknown or invalid
            DuplicateKeyError: If the new code or name is already used
        """
        _check_fields(PART_FIELDS, fields, part_id=str(part_id))
        async with self.store.transaction() as session:
            repository = CatalogRepository(session)
            part = await self._require(repository.get_part, "Part", part_id)
            _apply(part, fields)
            await repository.flush(model="Part", part_id=str(part_id))
        logger.info("Part updated", part_id=str(part_id), fields=sorted(fields))
        return part

    async def deactivate_part(self, part_id: uuid.UUID) -> Part:
        return await self._set_active(CatalogRepository.get_part, "Part", part_id, False)

    async def activate_part(self, part_id: uuid.UUID) -> Part:
        return await self._set_active(CatalogRepository.get_part, "Part", part_id, True)

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    async def create_template(
        self,
        template_name: str,
        num_colors: int = 1,
        parts: Iterable[tuple[uuid.UUID, int]] = (),
        description: Optional[str] = None,
        print_time_minutes: Optional[int] = None,
        print_cost: Optional[Decimal] = None,
    ) -> ProductTemplate:
        """
        Create a product template with its part list in one transaction.

        Args:
            template_name: Unique template name
            num_colors: Colors per item built from the template (1..4)
            parts: (part_id, quantity) pairs; repeated parts add up
            description: Optional description
            print_time_minutes: Estimated print time
            print_cost: Estimated print cost

        Raises:
            InvalidInputError: If a field or quantity is invalid
            NotFoundError: If a part does not exist
            InactiveReferenceError: If a part is soft deleted
            DuplicateKeyError: If the template name is already used
        """
        quantities: dict[uuid.UUID, int] = {}
        for part_id, quantity in parts:
            self._check_quantity(quantity, part_id)
            quantities[part_id] = quantities.get(part_id, 0) + quantity

        template = ProductTemplate(id=uuid.uuid4(), is_active=True)
        _apply(
            template,
            {
                "template_name": template_name,
                "description": description,
                "num_colors": num_colors,
                "print_time_minutes": print_time_minutes,
                "print_cost": print_cost,
            },
        )

        async with self.store.transaction() as session:
            repository = CatalogRepository(session)
            found = await repository.get_parts(quantities)
            for part_id in quantities:
                self._check_attachable(found.get(part_id), part_id)
            for part_id, quantity in quantities.items():
                template.parts.append(
                    TemplatePart(part=found[part_id], quantity=quantity)
                )
            await repository.add(template, template_name=template.template_name)

        logger.info(
            "Template created",
            template_id=str(template.id),
            template_name=template.template_name,
            part_count=len(quantities),
        )
        return template

    async def get_template(self, template_id: uuid.UUID) -> ProductTemplate:
        """Get a template with its typed part list."""
        async with self.store.session() as session:
            template = await CatalogRepository(session).get_template(template_id)
        if template is None:
            raise NotFoundError("Template not found", template_id=str(template_id))
        return template

    async def list_templates(
        self, include_inactive: bool = False
    ) -> Sequence[ProductTemplate]:
        async with self.store.session() as session:
            return await CatalogRepository(session).list_templates(include_inactive)

    async def update_template(
        self, template_id: uuid.UUID, **fields: Any
    ) -> ProductTemplate:
        """
        Update template metadata. Parts are edited with the part methods.

        Raises:
            NotFoundError: If the template does not exist
            InvalidInputError: If a field is unknown or invalid
            DuplicateKeyError: If the new name is already used
        """
        _check_fields(TEMPLATE_FIELDS, fields, template_id=str(template_id))
        async with self.store.transaction() as session:
            repository = CatalogRepository(session)
            template = await self._require(
                repository.get_template, "Template", template_id
            )
            _apply(template, fields)
            await repository.flush(model="ProductTemplate", template_id=str(template_id))
        logger.info("Template updated", template_id=str(template_id), fields=sorted(fields))
        return template

    async def add_template_part(
        self, template_id: uuid.UUID, part_id: uuid.UUID, quantity: int = 1
    ) -> ProductTemplate:
        """Add a part to a template, replacing the quantity if already present."""
        self._check_quantity(quantity, part_id)
        async with self.store.transaction() as session:
            repository = CatalogRepository(session)
            template = await self._require(
                repository.get_template, "Template", template_id
            )
            self._check_attachable(await repository.get_part(part_id), part_id)
            link = await repository.get_template_part(template_id, part_id)
            if link is None:
                part = await repository.get_part(part_id)
                template.parts.append(TemplatePart(part=part, quantity=quantity))
            else:
                link.quantity = quantity
            template.updated_at = utc_now()
            await repository.flush(model="TemplatePart", template_id=str(template_id))
        logger.info(
            "Template part set",
            template_id=str(template_id),
            part_id=str(part_id),
            quantity=quantity,
        )
        return template

    async def update_template_part_quantity(
        self, template_id: uuid.UUID, part_id: uuid.UUID, quantity: int
    ) -> ProductTemplate:
        """
        Change the quantity of a part already on a template.

        Raises:
            NotFoundError: If the template or the template part does not exist
        """
        self._check_quantity(quantity, part_id)
        async with self.store.transaction() as session:
            repository = CatalogRepository(session)
            template = await self._require(
                repository.get_template, "Template", template_id
            )
            link = await repository.get_template_part(template_id, part_id)
            if link is None:
                raise NotFoundError(
                    "Part is not on the template",
                    template_id=str(template_id),
                    part_id=str(part_id),
                )
            link.quantity = quantity
            template.updated_at = utc_now()
        return template

    async def remove_template_part(
        self, template_id: uuid.UUID, part_id: uuid.UUID
    ) -> ProductTemplate:
        """
        Remove a part from a template.

        Raises:
            NotFoundError: If the template or the template part does not exist
        """
        async with self.store.transaction() as session:
            repository = CatalogRepository(session)
            template = await self._require(
                repository.get_template, "Template", template_id
            )
            link = await repository.get_template_part(template_id, part_id)
            if link is None:
                raise NotFoundError(
                    "Part is not on the template",
                    template_id=str(template_id),
                    part_id=str(part_id),
                )
            template.parts.remove(link)
            template.updated_at = utc_now()
        logger.info(
            "Template part removed", template_id=str(template_id), part_id=str(part_id)
        )
        return template

    async def deactivate_template(self, template_id: uuid.UUID) -> ProductTemplate:
        return await self._set_active(
            CatalogRepository.get_template, "Template", template_id, False
        )

    async def activate_template(self, template_id: uuid.UUID) -> ProductTemplate:
        return await self._set_active(
            CatalogRepository.get_template, "Template", template_id, True
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _require(getter: Any, kind: str, record_id: uuid.UUID) -> Any:
        record = await getter(record_id)
        if record is None:
            raise NotFoundError(f"{kind} not found", record_id=str(record_id))
        return record

    async def _set_active(
        self, getter: Any, kind: str, record_id: uuid.UUID, active: bool
    ) -> Any:
        async with self.store.transaction() as session:
            repository = CatalogRepository(session)
            record = await getter(repository, record_id)
            if record is None:
                raise NotFoundError(f"{kind} not found", record_id=str(record_id))
            if active:
                record.activate()
            else:
                record.deactivate()
        return record

    @staticmethod
    def _check_quantity(quantity: int, part_id: uuid.UUID) -> None:
        if quantity < 1:
            raise InvalidInputError(
                "Quantity must be at least 1", part_id=str(part_id), quantity=quantity
            )

    @staticmethod
    def _check_attachable(part: Optional[Part], part_id: uuid.UUID) -> None:
        if part is None:
            raise NotFoundError("Part not found", part_id=str(part_id))
        if not part.is_active:
            raise InactiveReferenceError(
                "Cannot attach inactive part", part_id=str(part_id)
            )

