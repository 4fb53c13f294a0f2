"""
Reference data repository for colors, parts and product templates.

Lists return active records only unless ``include_inactive`` is set, and are
ordered by display name. Nothing is ever deleted from these tables.
"""

import uuid
from typing import Any, Iterable, Optional, Sequence, TypeVar

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from printfarm.core.exceptions import (
    DuplicateKeyError,
    InvalidInputError,
    StorageError,
)
from printfarm.core.logging import get_logger
from printfarm.database.base import ReferenceModel
from printfarm.database.connection import is_unique_violation
from printfarm.database.models.catalog import (
    Color,
    Part,
    ProductTemplate,
    TemplatePart,
)

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=ReferenceModel)


def _like(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped.lower()}%"


class CatalogRepository:
    """Repository for reference data access operations."""

    def __init__(self, session: AsyncSession):
        """
        Initialize catalog repository.

        Args:
            session: Async database session
        """
        self.session = session

    async def add(self, record: Any, **context: Any) -> Any:
        """
        Persist a new record.

        Raises:
            DuplicateKeyError: If a unique name or code is already used
        """
        self.session.add(record)
        await self.flush(model=type(record).__name__, **context)
        return record

    async def flush(self, **context: Any) -> None:
        """
        Flush pending changes, translating integrity violations.

        Raises:
            DuplicateKeyError: If a unique constraint is violated
            InvalidInputError: If any other integrity constraint is violated
        """
        try:
            await self.session.flush()
        except IntegrityError as e:
            if not is_unique_violation(e):
                logger.warning("Reference data integrity violation", error=str(e.orig), **context)
                raise InvalidInputError(
                    "Record violates a data integrity constraint", **context
                ) from e
            logger.warning("Reference data uniqueness violation", error=str(e.orig), **context)
            raise DuplicateKeyError(
                "A record with the same unique name or code already exists",
                **context,
            ) from e

    # Generic helpers

    async def _get(self, model: type[ModelT], record_id: uuid.UUID) -> Optional[ModelT]:
        try:
            return await self.session.get(model, record_id)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch record",
                model=model.__name__,
                record_id=str(record_id),
                error=str(e),
            )
            raise StorageError(
                "Failed to fetch record",
                model=model.__name__,
                record_id=str(record_id),
                error=str(e),
            ) from e

    async def _get_many(
        self, model: type[ModelT], record_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, ModelT]:
        ids = set(record_ids)
        if not ids:
            return {}
        result = await self.session.execute(select(model).where(model.id.in_(ids)))
        return {record.id: record for record in result.scalars().all()}

    async def _list(
        self,
        model: type[ModelT],
        order_column: Any,
        include_inactive: bool,
        *conditions: Any,
    ) -> Sequence[ModelT]:
        stmt = select(model).where(*conditions)
        if not include_inactive:
            stmt = stmt.where(model.is_active.is_(True))
        stmt = stmt.order_by(order_column)
        try:
            result = await self.session.execute(stmt)
            return result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Failed to list records", model=model.__name__, error=str(e))
            raise StorageError(
                "Failed to list records", model=model.__name__, error=str(e)
            ) from e

    async def _get_by(self, model: type[ModelT], column: Any, value: Any) -> Optional[ModelT]:
        result = await self.session.execute(select(model).where(column == value))
        return result.scalar_one_or_none()

    # Colors

    async def get_color(self, color_id: uuid.UUID) -> Optional[Color]:
        return await self._get(Color, color_id)

    async def get_colors(self, color_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, Color]:
        return await self._get_many(Color, color_ids)

    async def get_color_by_name(self, color_name: str) -> Optional[Color]:
        return await self._get_by(Color, Color.color_name, color_name)

    async def list_colors(self, include_inactive: bool = False) -> Sequence[Color]:
        return await self._list(Color, Color.color_name, include_inactive)

    async def search_colors(
        self, term: str, include_inactive: bool = False
    ) -> Sequence[Color]:
        """Case-insensitive substring search on color name."""
        return await self._list(
            Color,
            Color.color_name,
            include_inactive,
            func.lower(Color.color_name).like(_like(term), escape="\\"),
        )

    async def list_colors_by_supplier(
        self, supplier: str, include_inactive: bool = False
    ) -> Sequence[Color]:
        return await self._list(
            Color, Color.color_name, include_inactive, Color.supplier == supplier
        )

    # Parts

    async def get_part(self, part_id: uuid.UUID) -> Optional[Part]:
        return await self._get(Part, part_id)

    async def get_parts(self, part_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, Part]:
        return await self._get_many(Part, part_ids)

    async def get_part_by_code(self, part_code: str) -> Optional[Part]:
        return await self._get_by(Part, Part.part_code, part_code)

    async def list_parts(self, include_inactive: bool = False) -> Sequence[Part]:
        return await self._list(Part, Part.part_name, include_inactive)

    async def search_parts(
        self, term: str, include_inactive: bool = False
    ) -> Sequence[Part]:
        """Case-insensitive substring search on part name or code."""
        pattern = _like(term)
        return await self._list(
            Part,
            Part.part_name,
            include_inactive,
            or_(
                func.lower(Part.part_name).like(pattern, escape="\\"),
                func.lower(Part.part_code).like(pattern, escape="\\"),
            ),
        )

    # Templates

    async def get_template(self, template_id: uuid.UUID) -> Optional[ProductTemplate]:
        return await self._get(ProductTemplate, template_id)

    async def get_templates(
        self, template_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, ProductTemplate]:
        return await self._get_many(ProductTemplate, template_ids)

    async def list_templates(
        self, include_inactive: bool = False
    ) -> Sequence[ProductTemplate]:
        return await self._list(
            ProductTemplate, ProductTemplate.template_name, include_inactive
        )

    async def get_template_part(
        self, template_id: uuid.UUID, part_id: uuid.UUID
    ) -> Optional[TemplatePart]:
        return await self.session.get(TemplatePart, (template_id, part_id))
