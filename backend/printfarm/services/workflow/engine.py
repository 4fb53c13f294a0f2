"""
Item status workflow engine.

The engine is the only writer of item status. It validates every transition
against the production sequence, records exactly one history row per status
change, handles reprint requests, and answers the aggregate readiness
questions the packing and shipping stations depend on.

Every mutating operation runs in a single EntityStore transaction, so a
failure at any point leaves no partial effect behind.
"""

import uuid
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from printfarm.core.exceptions import (
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    NotReadyError,
    UnknownPartError,
)
from printfarm.core.logging import get_logger, log_performance
from printfarm.database.base import utc_now
from printfarm.database.models.item import Item, StatusHistory
from printfarm.database.models.order import Order
from printfarm.database.store import EntityStore
from printfarm.services.workflow.enums import ItemStatus
from printfarm.services.workflow.repository import ItemRepository
from printfarm.services.workflow.scope import EntireItem, PartSubset, ReprintScope
from printfarm.services.workflow.state_machine import ItemStateMachine

logger = get_logger(__name__)

SHIP_REASON = "order shipped"


@dataclass(frozen=True)
class StatusBreakdown:
    """Item counts per status for a product or an order."""

    counts: dict[ItemStatus, int]

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def count(self, status: ItemStatus) -> int:
        return self.counts.get(status, 0)

    def all_in(self, status: ItemStatus) -> bool:
        """True if there is at least one item and every item is in ``status``."""
        return self.total > 0 and self.count(status) == self.total


class WorkflowEngine:
    """
    Workflow operations over items, products and orders.

    Example:
        store = EntityStore.from_settings()
        engine = WorkflowEngine(store)
        await engine.advance_status(item_id, ItemStatus.IN_PRINTFARM)
    """

    def __init__(self, store: EntityStore):
        self.store = store

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def advance_status(
        self,
        item_id: uuid.UUID,
        target_status: ItemStatus,
        reason: Optional[str] = None,
    ) -> Item:
        """
        Move an item one step forward.

        Args:
            item_id: Item to advance
            target_status: Must be the direct successor of the current status
            reason: Optional history reason, defaults to "status advanced"

        Returns:
            The updated item

        Raises:
            NotFoundError: If the item does not exist
            InvalidTransitionError: If target is not the next status
            TransactionConflictError: If another writer changed the item first
            StorageError: If the database fails
        """
        async with self.store.transaction() as session:
            repository = ItemRepository(session)
            item = await self._require_item(repository, item_id)
            ItemStateMachine(session).advance(item, target_status, reason)
        return item

    async def batch_advance(
        self,
        item_ids: Iterable[uuid.UUID],
        target_status: ItemStatus,
        reason: Optional[str] = None,
    ) -> list[Item]:
        """
        Advance several items to the same status, all or nothing.

        Every item is validated before any is changed. Duplicate ids are
        processed once.

        Args:
            item_ids: Items to advance
            target_status: Target status for every item
            reason: Optional history reason

        Returns:
            The updated items in request order

        Raises:
            NotFoundError: If any item does not exist
            InvalidTransitionError: If any item is not eligible
        """
        ids = list(dict.fromkeys(item_ids))
        if not ids:
            return []

        with log_performance(
            logger, "batch_advance", count=len(ids), target_status=target_status.value
        ):
            async with self.store.transaction() as session:
                repository = ItemRepository(session)
                found = await repository.get_items(ids)

                missing = [str(item_id) for item_id in ids if item_id not in found]
                if missing:
                    raise NotFoundError(
                        "Items not found", item_ids=missing
                    )

                machine = ItemStateMachine(session)
                items = [found[item_id] for item_id in ids]
                ineligible = []
                for item in items:
                    try:
                        machine.validate_advance(item, target_status)
                    except InvalidTransitionError:
                        ineligible.append(
                            {"item_id": str(item.id), "status": item.status.value}
                        )
                if ineligible:
                    raise InvalidTransitionError(
                        f"{len(ineligible)} item(s) cannot move to "
                        f"{target_status.value}",
                        target_status=target_status.value,
                        ineligible=ineligible,
                    )

                for item in items:
                    machine.advance(item, target_status, reason)

        return items

    async def request_reprint(
        self,
        item_id: uuid.UUID,
        scope: ReprintScope,
        reason: str,
    ) -> Item:
        """
        Send an item back to the queue for reprint.

        For a PartSubset the named parts are flagged first. When the item is
        already in the queue the flags are still recorded and no history row
        is written.

        Args:
            item_id: Item to reprint
            scope: EntireItem or PartSubset(part_ids)
            reason: Reason recorded in history

        Returns:
            The updated item

        Raises:
            NotFoundError: If the item does not exist
            UnknownPartError: If a named part is not on the item
            NoOpTransitionError: If an entire-item reprint targets a queued item
            InvalidTransitionError: If the item has shipped
        """
        if not reason or not reason.strip():
            raise InvalidInputError("A reprint reason is required", item_id=str(item_id))

        async with self.store.transaction() as session:
            repository = ItemRepository(session)
            item = await self._require_item(repository, item_id)
            machine = ItemStateMachine(session)

            if isinstance(scope, EntireItem):
                machine.reset_to_queue(item, reason)
            elif isinstance(scope, PartSubset):
                if item.status.is_terminal():
                    raise InvalidTransitionError(
                        f"Cannot reprint an item that is {item.status.value}",
                        item_id=str(item_id),
                        current_status=item.status.value,
                    )
                links = self._require_part_links(item, scope.part_ids)
                for link in links:
                    link.needs_reprint = True
                if item.status is ItemStatus.IN_QUEUE:
                    item.updated_at = utc_now()
                else:
                    machine.reset_to_queue(item, reason)
            else:
                raise InvalidInputError(
                    f"Unsupported reprint scope: {type(scope).__name__}",
                    item_id=str(item_id),
                )

            logger.info(
                "Reprint requested",
                item_id=str(item_id),
                scope=type(scope).__name__,
                flagged_parts=(
                    sorted(str(p) for p in scope.part_ids)
                    if isinstance(scope, PartSubset)
                    else None
                ),
            )
        return item

    async def mark_reprint_complete(
        self,
        item_id: uuid.UUID,
        part_ids: Iterable[uuid.UUID],
    ) -> Item:
        """
        Clear reprint flags on parts of an item. Never changes status.

        Raises:
            NotFoundError: If the item does not exist
            UnknownPartError: If a named part is not on the item
        """
        part_ids = frozenset(part_ids)
        async with self.store.transaction() as session:
            repository = ItemRepository(session)
            item = await self._require_item(repository, item_id)
            links = self._require_part_links(item, part_ids)
            for link in links:
                link.needs_reprint = False
            item.updated_at = utc_now()

            logger.info(
                "Reprint completed",
                item_id=str(item_id),
                cleared_parts=len(links),
            )
        return item

    async def ship_order(self, order_id: uuid.UUID) -> Order:
        """
        Ship an order: every item Packed -> Shipped and archive the order.

        Raises:
            NotFoundError: If the order does not exist
            NotReadyError: If any item is not Packed, or the order has no items
        """
        with log_performance(logger, "ship_order", order_id=str(order_id)):
            async with self.store.transaction() as session:
                order = await session.get(Order, order_id)
                if order is None:
                    raise NotFoundError("Order not found", order_id=str(order_id))

                breakdown = StatusBreakdown(
                    await ItemRepository(session).order_status_breakdown(order_id)
                )
                if not breakdown.all_in(ItemStatus.PACKED):
                    raise NotReadyError(
                        "Order is not ready to ship",
                        order_id=str(order_id),
                        breakdown={s.value: c for s, c in breakdown.counts.items()},
                    )

                machine = ItemStateMachine(session)
                for item in order.items:
                    machine.advance(item, ItemStatus.SHIPPED, SHIP_REASON)

                now = utc_now()
                order.is_archived = True
                order.shipped_at = now
                order.updated_at = now

                logger.info(
                    "Order shipped",
                    order_id=str(order_id),
                    order_number=order.order_number,
                    item_count=breakdown.total,
                )
        return order

    # ------------------------------------------------------------------
    # Readiness
    # ------------------------------------------------------------------

    async def product_status_breakdown(self, product_id: uuid.UUID) -> StatusBreakdown:
        """Count a product's items per status."""
        async with self.store.session() as session:
            repository = ItemRepository(session)
            if not await repository.product_exists(product_id):
                raise NotFoundError("Product not found", product_id=str(product_id))
            return StatusBreakdown(
                await repository.product_status_breakdown(product_id)
            )

    async def order_status_breakdown(self, order_id: uuid.UUID) -> StatusBreakdown:
        """Count an order's items, across all its products, per status."""
        async with self.store.session() as session:
            repository = ItemRepository(session)
            if not await repository.order_exists(order_id):
                raise NotFoundError("Order not found", order_id=str(order_id))
            return StatusBreakdown(await repository.order_status_breakdown(order_id))

    async def product_ready_for_assembly(self, product_id: uuid.UUID) -> bool:
        """True iff the product has items and all of them are Printed."""
        breakdown = await self.product_status_breakdown(product_id)
        return breakdown.all_in(ItemStatus.PRINTED)

    async def order_ready_to_pack(self, order_id: uuid.UUID) -> bool:
        """True iff the order has items and all of them are Assembled."""
        breakdown = await self.order_status_breakdown(order_id)
        return breakdown.all_in(ItemStatus.ASSEMBLED)

    async def order_ready_to_ship(self, order_id: uuid.UUID) -> bool:
        """True iff the order has items and all of them are Packed."""
        breakdown = await self.order_status_breakdown(order_id)
        return breakdown.all_in(ItemStatus.PACKED)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_item(self, item_id: uuid.UUID) -> Item:
        """Get an item with its product and order loaded."""
        async with self.store.session() as session:
            item = await ItemRepository(session).get_item_with_context(item_id)
            if item is None:
                raise NotFoundError("Item not found", item_id=str(item_id))
            return item

    async def get_item_history(self, item_id: uuid.UUID) -> Sequence[StatusHistory]:
        """Get an item's status history, oldest first."""
        async with self.store.session() as session:
            repository = ItemRepository(session)
            await self._require_item(repository, item_id)
            return await repository.get_history(item_id)

    async def list_items_by_status(
        self, status: ItemStatus, include_archived: bool = False
    ) -> Sequence[Item]:
        """List items in a status, express orders first, then by ship-by date."""
        async with self.store.session() as session:
            return await ItemRepository(session).list_by_status(
                status, include_archived=include_archived
            )

    async def list_reprint_queue(self) -> Sequence[Item]:
        """List items with at least one part flagged for reprint."""
        async with self.store.session() as session:
            return await ItemRepository(session).list_reprint_queue()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _require_item(repository: ItemRepository, item_id: uuid.UUID) -> Item:
        item = await repository.get_item(item_id)
        if item is None:
            raise NotFoundError("Item not found", item_id=str(item_id))
        return item

    @staticmethod
    def _require_part_links(item: Item, part_ids: frozenset[uuid.UUID]) -> list:
        if not part_ids:
            raise InvalidInputError(
                "At least one part id is required", item_id=str(item.id)
            )
        links = {link.part_id: link for link in item.parts}
        unknown = sorted(str(part_id) for part_id in part_ids if part_id not in links)
        if unknown:
            raise UnknownPartError(
                "Parts are not associated with the item",
                item_id=str(item.id),
                part_ids=unknown,
            )
        return [links[part_id] for part_id in part_ids]
