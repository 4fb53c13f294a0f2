"""
Order data access repository.

Provides async methods for persisting new orders, loading orders with their
full product/item tree, and listing orders in priority order. A taken
order number surfaces as DuplicateKeyError and any other integrity violation
as InvalidInputError; the repository never commits.
"""

import uuid
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from printfarm.core.exceptions import (
    DuplicateKeyError,
    InvalidInputError,
    StorageError,
)
from printfarm.core.logging import get_logger
from printfarm.database.connection import is_unique_violation
from printfarm.database.models.order import Order

logger = get_logger(__name__)


class OrderRepository:
    """
    Repository for order data access operations.

    Loading an order loads its products, their items and the items' color
    and part associations.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize order repository.

        Args:
            session: Async database session
        """
        self.session = session

    async def add(self, order: Order) -> Order:
        """
        Persist a new order with everything attached to it.

        Args:
            order: Transient order with products and items

        Returns:
            The flushed order

        Raises:
            DuplicateKeyError: If the order number is already used
            InvalidInputError: If another integrity constraint is violated
        """
        self.session.add(order)
        await self.flush(order_number=order.order_number)
        logger.info(
            "Order persisted",
            order_id=str(order.id),
            order_number=order.order_number,
            product_count=len(order.products),
        )
        return order

    async def flush(self, **context: str) -> None:
        """
        Flush pending changes, translating integrity violations.

        Raises:
            DuplicateKeyError: If the order number is already used
            InvalidInputError: If any other integrity constraint is violated
        """
        try:
            await self.session.flush()
        except IntegrityError as e:
            if is_unique_violation(e, column="order_number"):
                logger.warning("Order number already taken", error=str(e.orig), **context)
                raise DuplicateKeyError(
                    "Order number already exists", **context
                ) from e
            logger.warning("Order integrity violation", error=str(e.orig), **context)
            raise InvalidInputError(
                "Order violates a data integrity constraint", **context
            ) from e

    async def get_order_by_id(self, order_id: uuid.UUID) -> Optional[Order]:
        """
        Get order by ID with products and items.

        Args:
            order_id: Order identifier

        Returns:
            Order if found, None otherwise

        Raises:
            StorageError: If query fails
        """
        try:
            logger.debug("Fetching order by ID", order_id=str(order_id))
            return await self.session.get(Order, order_id)
        except SQLAlchemyError as e:
            logger.error("Failed to fetch order", order_id=str(order_id), error=str(e))
            raise StorageError(
                "Failed to fetch order", order_id=str(order_id), error=str(e)
            ) from e

    async def get_order_by_number(self, order_number: str) -> Optional[Order]:
        """
        Get order by order number.

        Args:
            order_number: Human-readable order number

        Returns:
            Order if found, None otherwise
        """
        try:
            result = await self.session.execute(
                select(Order).where(Order.order_number == order_number)
            )
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error(
                "Failed to fetch order by number",
                order_number=order_number,
                error=str(e),
            )
            raise StorageError(
                "Failed to fetch order by number",
                order_number=order_number,
                error=str(e),
            ) from e

    async def get_order_numbers(self) -> Sequence[str]:
        """Get every order number in use, archived orders included."""
        try:
            result = await self.session.execute(select(Order.order_number))
            return result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Failed to fetch order numbers", error=str(e))
            raise StorageError("Failed to fetch order numbers", error=str(e)) from e

    async def list_orders(self, include_archived: bool = False) -> Sequence[Order]:
        """
        List orders in priority order.

        Args:
            include_archived: Include shipped orders

        Returns:
            Orders ordered express first, then by ship-by date
        """
        try:
            stmt = select(Order)
            if not include_archived:
                stmt = stmt.where(Order.is_archived.is_(False))
            stmt = stmt.order_by(
                Order.is_express.desc(),
                Order.ship_by_date.asc(),
                Order.created_at.asc(),
            )
            result = await self.session.execute(stmt)
            orders = result.scalars().all()
            logger.debug(
                "Orders listed", include_archived=include_archived, count=len(orders)
            )
            return orders
        except SQLAlchemyError as e:
            logger.error("Failed to list orders", error=str(e))
            raise StorageError("Failed to list orders", error=str(e)) from e
