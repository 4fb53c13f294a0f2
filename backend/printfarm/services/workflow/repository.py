"""
Item data access repository for the workflow engine.

Provides async queries for loading items, priority-ordered list views,
status history, and per-product / per-order status breakdowns. The
repository never commits; it runs inside the caller's transaction.
"""

import uuid
from typing import Iterable, Optional, Sequence

from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager

from printfarm.core.exceptions import StorageError
from printfarm.core.logging import get_logger
from printfarm.database.models.item import Item, ItemPart, StatusHistory
from printfarm.database.models.order import Order, Product
from printfarm.services.workflow.enums import ItemStatus

logger = get_logger(__name__)


def _priority_ordered(stmt: Select) -> Select:
    """Apply the shared list ordering: express first, then earliest ship date."""
    return stmt.order_by(
        Order.is_express.desc(),
        Order.ship_by_date.asc(),
        Order.created_at.asc(),
        Item.created_at.asc(),
    )


def _items_with_context() -> Select:
    return (
        select(Item)
        .join(Item.product)
        .join(Product.order)
        .options(contains_eager(Item.product).contains_eager(Product.order))
    )


class ItemRepository:
    """
    Repository for item data access operations.

    Methods returning a single entity return None when it does not exist;
    the engine decides whether that is an error.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize item repository.

        Args:
            session: Async database session
        """
        self.session = session

    async def get_item(self, item_id: uuid.UUID) -> Optional[Item]:
        """
        Get item by ID with its colors and parts.

        Args:
            item_id: Item identifier

        Returns:
            Item if found, None otherwise

        Raises:
            StorageError: If query fails
        """
        try:
            return await self.session.get(Item, item_id)
        except SQLAlchemyError as e:
            logger.error("Failed to fetch item", item_id=str(item_id), error=str(e))
            raise StorageError(
                "Failed to fetch item", item_id=str(item_id), error=str(e)
            ) from e

    async def get_item_with_context(self, item_id: uuid.UUID) -> Optional[Item]:
        """Get item by ID with its product and order loaded."""
        try:
            stmt = _items_with_context().where(Item.id == item_id)
            result = await self.session.execute(stmt)
            return result.unique().scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Failed to fetch item", item_id=str(item_id), error=str(e))
            raise StorageError(
                "Failed to fetch item", item_id=str(item_id), error=str(e)
            ) from e

    async def get_items(self, item_ids: Iterable[uuid.UUID]) -> dict[uuid.UUID, Item]:
        """
        Get several items by ID.

        Args:
            item_ids: Item identifiers

        Returns:
            Mapping of id to item for every id that exists
        """
        ids = list(item_ids)
        if not ids:
            return {}
        try:
            result = await self.session.execute(select(Item).where(Item.id.in_(ids)))
            return {item.id: item for item in result.scalars().all()}
        except SQLAlchemyError as e:
            logger.error("Failed to fetch items", count=len(ids), error=str(e))
            raise StorageError(
                "Failed to fetch items", count=len(ids), error=str(e)
            ) from e

    async def list_by_status(
        self,
        status: ItemStatus,
        include_archived: bool = False,
    ) -> Sequence[Item]:
        """
        List items in a status in priority order.

        Args:
            status: Status to filter on
            include_archived: Include items of archived orders

        Returns:
            Items ordered express first, then by ship-by date
        """
        try:
            stmt = _items_with_context().where(Item.status == status)
            if not include_archived:
                stmt = stmt.where(Order.is_archived.is_(False))
            result = await self.session.execute(_priority_ordered(stmt))
            items = result.unique().scalars().all()
            logger.debug(
                "Items listed by status",
                status=status.value,
                include_archived=include_archived,
                count=len(items),
            )
            return items
        except SQLAlchemyError as e:
            logger.error(
                "Failed to list items by status", status=status.value, error=str(e)
            )
            raise StorageError(
                "Failed to list items by status", status=status.value, error=str(e)
            ) from e

    async def list_reprint_queue(self) -> Sequence[Item]:
        """List items of active orders with at least one part flagged for reprint."""
        try:
            flagged = (
                select(ItemPart.item_id)
                .where(ItemPart.needs_reprint.is_(True))
                .distinct()
            )
            stmt = _items_with_context().where(
                Item.id.in_(flagged),
                Order.is_archived.is_(False),
            )
            result = await self.session.execute(_priority_ordered(stmt))
            return result.unique().scalars().all()
        except SQLAlchemyError as e:
            logger.error("Failed to list reprint queue", error=str(e))
            raise StorageError("Failed to list reprint queue", error=str(e)) from e

    async def get_history(self, item_id: uuid.UUID) -> Sequence[StatusHistory]:
        """
        Get status history for an item, oldest first.

        Args:
            item_id: Item identifier

        Returns:
            History rows in the order they were recorded
        """
        try:
            stmt = (
                select(StatusHistory)
                .where(StatusHistory.item_id == item_id)
                .order_by(StatusHistory.id.asc())
            )
            result = await self.session.execute(stmt)
            return result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch status history", item_id=str(item_id), error=str(e)
            )
            raise StorageError(
                "Failed to fetch status history", item_id=str(item_id), error=str(e)
            ) from e

    async def product_exists(self, product_id: uuid.UUID) -> bool:
        result = await self.session.execute(
            select(Product.id).where(Product.id == product_id)
        )
        return result.scalar_one_or_none() is not None

    async def order_exists(self, order_id: uuid.UUID) -> bool:
        result = await self.session.execute(
            select(Order.id).where(Order.id == order_id)
        )
        return result.scalar_one_or_none() is not None

    async def product_status_breakdown(
        self, product_id: uuid.UUID
    ) -> dict[ItemStatus, int]:
        """
        Count items of a product per status.

        Args:
            product_id: Product identifier

        Returns:
            Mapping of status to item count; statuses with no items are absent
        """
        stmt = (
            select(Item.status, func.count())
            .where(Item.product_id == product_id)
            .group_by(Item.status)
        )
        return await self._breakdown(stmt, product_id=str(product_id))

    async def order_status_breakdown(
        self, order_id: uuid.UUID
    ) -> dict[ItemStatus, int]:
        """
        Count items of an order, across all its products, per status.

        Args:
            order_id: Order identifier

        Returns:
            Mapping of status to item count; statuses with no items are absent
        """
        stmt = (
            select(Item.status, func.count())
            .join(Item.product)
            .where(Product.order_id == order_id)
            .group_by(Item.status)
        )
        return await self._breakdown(stmt, order_id=str(order_id))

    async def _breakdown(self, stmt: Select, **context: str) -> dict[ItemStatus, int]:
        try:
            result = await self.session.execute(stmt)
            breakdown = {status: count for status, count in result.all()}
            logger.debug(
                "Status breakdown fetched",
                breakdown={s.value: c for s, c in breakdown.items()},
                **context,
            )
            return breakdown
        except SQLAlchemyError as e:
            logger.error("Failed to fetch status breakdown", error=str(e), **context)
            raise StorageError(
                "Failed to fetch status breakdown", error=str(e), **context
            ) from e
