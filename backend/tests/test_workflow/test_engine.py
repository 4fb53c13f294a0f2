"""
Integration tests for WorkflowEngine against a real SQLite database.

Covers single and batch transitions, reprint handling, readiness checks,
shipping, priority-ordered queues and optimistic concurrency.
"""

import asyncio
import uuid

import pytest

from printfarm.core.exceptions import (
    InvalidInputError,
    InvalidTransitionError,
    NoOpTransitionError,
    NotFoundError,
    NotReadyError,
    TransactionConflictError,
    UnknownPartError,
)
from printfarm.database.models.item import Item
from printfarm.services.orders.service import ItemSpec, ProductSpec
from printfarm.services.workflow.engine import SHIP_REASON, StatusBreakdown
from printfarm.services.workflow.enums import ItemStatus
from printfarm.services.workflow.scope import EntireItem, PartSubset
from printfarm.services.workflow.state_machine import CREATION_REASON


def item_ids(order) -> list[uuid.UUID]:
    return [item.id for item in order.items]


# ============================================================================
# Single transitions
# ============================================================================


class TestAdvanceStatus:
    async def test_advance_moves_one_step_and_records_history(
        self, engine, order_factory
    ) -> None:
        order = await order_factory()
        item_id = order.items[0].id

        item = await engine.advance_status(item_id, ItemStatus.IN_PRINTFARM, "plate 3")

        assert item.status is ItemStatus.IN_PRINTFARM
        history = await engine.get_item_history(item_id)
        assert [(h.old_status, h.new_status) for h in history] == [
            (None, ItemStatus.IN_QUEUE),
            (ItemStatus.IN_QUEUE, ItemStatus.IN_PRINTFARM),
        ]
        assert history[0].reason == CREATION_REASON
        assert history[1].reason == "plate 3"

    async def test_advance_increments_version(self, engine, order_factory) -> None:
        order = await order_factory()
        before = order.items[0].version_id

        item = await engine.advance_status(order.items[0].id, ItemStatus.IN_PRINTFARM)

        assert item.version_id == before + 1

    async def test_skipping_a_step_is_rejected(self, engine, order_factory) -> None:
        order = await order_factory()
        item_id = order.items[0].id

        with pytest.raises(InvalidTransitionError):
            await engine.advance_status(item_id, ItemStatus.PRINTED)

        item = await engine.get_item(item_id)
        assert item.status is ItemStatus.IN_QUEUE
        assert len(await engine.get_item_history(item_id)) == 1

    async def test_same_status_is_rejected(self, engine, order_factory, advance_to) -> None:
        order = await order_factory()
        item_id = order.items[0].id
        await advance_to(item_id, ItemStatus.PRINTED)

        with pytest.raises(InvalidTransitionError):
            await engine.advance_status(item_id, ItemStatus.PRINTED)

    async def test_unknown_item(self, engine, store) -> None:
        with pytest.raises(NotFoundError):
            await engine.advance_status(uuid.uuid4(), ItemStatus.IN_PRINTFARM)

    async def test_full_walk_records_one_row_per_change(
        self, engine, order_factory, advance_to
    ) -> None:
        order = await order_factory()
        item_id = order.items[0].id

        await advance_to(item_id, ItemStatus.PACKED)

        history = await engine.get_item_history(item_id)
        assert [h.new_status for h in history] == [
            ItemStatus.IN_QUEUE,
            ItemStatus.IN_PRINTFARM,
            ItemStatus.PRINTED,
            ItemStatus.ASSEMBLED,
            ItemStatus.PACKED,
        ]
        for previous, entry in zip(history, history[1:]):
            assert entry.old_status is previous.new_status


# ============================================================================
# Batch transitions
# ============================================================================


class TestBatchAdvance:
    async def test_batch_moves_every_item(self, engine, order_factory) -> None:
        order = await order_factory(items_per_product=3)

        items = await engine.batch_advance(item_ids(order), ItemStatus.IN_PRINTFARM)

        assert [item.id for item in items] == item_ids(order)
        assert all(item.status is ItemStatus.IN_PRINTFARM for item in items)

    async def test_batch_is_all_or_nothing(self, engine, order_factory) -> None:
        order = await order_factory(items_per_product=3)
        ids = item_ids(order)
        await engine.advance_status(ids[1], ItemStatus.IN_PRINTFARM)

        with pytest.raises(InvalidTransitionError) as exc_info:
            await engine.batch_advance(ids, ItemStatus.IN_PRINTFARM)

        assert exc_info.value.context["ineligible"] == [
            {"item_id": str(ids[1]), "status": ItemStatus.IN_PRINTFARM.value}
        ]
        statuses = [(await engine.get_item(i)).status for i in ids]
        assert statuses == [
            ItemStatus.IN_QUEUE,
            ItemStatus.IN_PRINTFARM,
            ItemStatus.IN_QUEUE,
        ]
        assert len(await engine.get_item_history(ids[0])) == 1

    async def test_batch_with_missing_item_changes_nothing(
        self, engine, order_factory
    ) -> None:
        order = await order_factory()
        item_id = order.items[0].id

        with pytest.raises(NotFoundError):
            await engine.batch_advance([item_id, uuid.uuid4()], ItemStatus.IN_PRINTFARM)

        assert (await engine.get_item(item_id)).status is ItemStatus.IN_QUEUE

    async def test_duplicate_ids_are_processed_once(self, engine, order_factory) -> None:
        order = await order_factory()
        item_id = order.items[0].id

        items = await engine.batch_advance([item_id, item_id], ItemStatus.IN_PRINTFARM)

        assert len(items) == 1
        assert len(await engine.get_item_history(item_id)) == 2

    async def test_empty_batch(self, engine) -> None:
        assert await engine.batch_advance([], ItemStatus.IN_PRINTFARM) == []


# ============================================================================
# Reprints
# ============================================================================


class TestReprint:
    async def test_entire_item_reprint_resets_to_queue(
        self, engine, order_factory, advance_to
    ) -> None:
        order = await order_factory()
        item_id = order.items[0].id
        await advance_to(item_id, ItemStatus.ASSEMBLED)

        item = await engine.request_reprint(item_id, EntireItem(), "warped corner")

        assert item.status is ItemStatus.IN_QUEUE
        assert not item.needs_reprint
        last = (await engine.get_item_history(item_id))[-1]
        assert last.old_status is ItemStatus.ASSEMBLED
        assert last.new_status is ItemStatus.IN_QUEUE
        assert last.reason == "warped corner"

    async def test_part_reprint_flags_parts_and_resets(
        self, engine, order_factory, seeded, advance_to
    ) -> None:
        order = await order_factory()
        item_id = order.items[0].id
        await advance_to(item_id, ItemStatus.PRINTED)

        item = await engine.request_reprint(
            item_id, PartSubset.of([seeded.lid.id]), "lid cracked"
        )

        assert item.status is ItemStatus.IN_QUEUE
        assert item.part_link(seeded.lid.id).needs_reprint
        assert not item.part_link(seeded.base.id).needs_reprint
        assert item.needs_reprint

        queue = await engine.list_reprint_queue()
        assert [queued.id for queued in queue] == [item_id]

    async def test_part_reprint_of_queued_item_only_sets_flags(
        self, engine, order_factory, seeded
    ) -> None:
        order = await order_factory()
        item_id = order.items[0].id

        item = await engine.request_reprint(
            item_id, PartSubset.of([seeded.base.id]), "short shot"
        )

        assert item.status is ItemStatus.IN_QUEUE
        assert item.part_link(seeded.base.id).needs_reprint
        assert len(await engine.get_item_history(item_id)) == 1

    async def test_entire_reprint_of_queued_item_is_noop(
        self, engine, order_factory
    ) -> None:
        order = await order_factory()

        with pytest.raises(NoOpTransitionError):
            await engine.request_reprint(order.items[0].id, EntireItem(), "again")

    async def test_unknown_part_changes_nothing(
        self, engine, order_factory, seeded, advance_to
    ) -> None:
        order = await order_factory()
        item_id = order.items[0].id
        await advance_to(item_id, ItemStatus.PRINTED)

        with pytest.raises(UnknownPartError) as exc_info:
            await engine.request_reprint(
                item_id, PartSubset.of([seeded.lid.id, seeded.hinge.id]), "bad"
            )

        assert exc_info.value.context["part_ids"] == [str(seeded.hinge.id)]
        item = await engine.get_item(item_id)
        assert item.status is ItemStatus.PRINTED
        assert not item.needs_reprint

    async def test_shipped_item_cannot_be_reprinted(
        self, engine, order_factory, seeded, advance_to
    ) -> None:
        order = await order_factory()
        item_id = order.items[0].id
        await advance_to(item_id, ItemStatus.PACKED)
        await engine.ship_order(order.id)

        with pytest.raises(InvalidTransitionError):
            await engine.request_reprint(item_id, EntireItem(), "returned")
        with pytest.raises(InvalidTransitionError):
            await engine.request_reprint(
                item_id, PartSubset.of([seeded.lid.id]), "returned"
            )

    async def test_reason_is_required(self, engine, order_factory) -> None:
        order = await order_factory()
        with pytest.raises(InvalidInputError):
            await engine.request_reprint(order.items[0].id, EntireItem(), "   ")

    async def test_mark_reprint_complete_clears_flags_only(
        self, engine, order_factory, seeded, advance_to
    ) -> None:
        order = await order_factory()
        item_id = order.items[0].id
        await advance_to(item_id, ItemStatus.PRINTED)
        await engine.request_reprint(
            item_id, PartSubset.of([seeded.lid.id, seeded.base.id]), "stringing"
        )
        await engine.advance_status(item_id, ItemStatus.IN_PRINTFARM)

        item = await engine.mark_reprint_complete(item_id, [seeded.lid.id])

        assert item.status is ItemStatus.IN_PRINTFARM
        assert not item.part_link(seeded.lid.id).needs_reprint
        assert item.part_link(seeded.base.id).needs_reprint

        item = await engine.mark_reprint_complete(item_id, [seeded.base.id])
        assert not item.needs_reprint
        assert await engine.list_reprint_queue() == []

    async def test_mark_reprint_complete_rejects_unknown_part(
        self, engine, order_factory, seeded
    ) -> None:
        order = await order_factory()
        with pytest.raises(UnknownPartError):
            await engine.mark_reprint_complete(order.items[0].id, [seeded.hinge.id])


# ============================================================================
# Readiness and shipping
# ============================================================================


class TestReadiness:
    def test_empty_breakdown_is_never_ready(self) -> None:
        breakdown = StatusBreakdown({})
        assert breakdown.total == 0
        assert not breakdown.all_in(ItemStatus.PACKED)

    async def test_product_ready_for_assembly(
        self, engine, order_factory, advance_to
    ) -> None:
        order = await order_factory(items_per_product=2)
        product_id = order.products[0].id
        first, second = item_ids(order)

        await advance_to(first, ItemStatus.PRINTED)
        assert not await engine.product_ready_for_assembly(product_id)

        await advance_to(second, ItemStatus.PRINTED)
        assert await engine.product_ready_for_assembly(product_id)

        breakdown = await engine.product_status_breakdown(product_id)
        assert breakdown.counts == {ItemStatus.PRINTED: 2}

    async def test_order_readiness_spans_products(
        self, engine, order_factory, seeded, advance_to
    ) -> None:
        order = await order_factory(
            products=[
                ProductSpec("Box", [ItemSpec("Box", [seeded.red.id], [seeded.base.id])]),
                ProductSpec("Hinge", [ItemSpec("Pin", [seeded.white.id], [seeded.hinge.id])]),
            ]
        )
        box, pin = item_ids(order)

        await advance_to(box, ItemStatus.ASSEMBLED)
        assert not await engine.order_ready_to_pack(order.id)
        breakdown = await engine.order_status_breakdown(order.id)
        assert breakdown.count(ItemStatus.ASSEMBLED) == 1
        assert breakdown.count(ItemStatus.IN_QUEUE) == 1

        await advance_to(pin, ItemStatus.ASSEMBLED)
        assert await engine.order_ready_to_pack(order.id)
        assert not await engine.order_ready_to_ship(order.id)

        await engine.batch_advance([box, pin], ItemStatus.PACKED)
        assert await engine.order_ready_to_ship(order.id)

    async def test_unknown_product_and_order(self, engine, store) -> None:
        with pytest.raises(NotFoundError):
            await engine.product_ready_for_assembly(uuid.uuid4())
        with pytest.raises(NotFoundError):
            await engine.order_ready_to_ship(uuid.uuid4())


class TestShipOrder:
    async def test_ship_moves_items_and_archives(
        self, engine, order_factory, advance_to
    ) -> None:
        order = await order_factory(items_per_product=2)
        for item_id in item_ids(order):
            await advance_to(item_id, ItemStatus.PACKED)

        shipped = await engine.ship_order(order.id)

        assert shipped.is_archived
        assert shipped.shipped_at is not None
        assert all(item.status is ItemStatus.SHIPPED for item in shipped.items)
        history = await engine.get_item_history(item_ids(order)[0])
        assert history[-1].reason == SHIP_REASON

    async def test_ship_is_atomic_when_not_ready(
        self, engine, order_factory, advance_to
    ) -> None:
        order = await order_factory(items_per_product=2)
        first, second = item_ids(order)
        await advance_to(first, ItemStatus.PACKED)
        await advance_to(second, ItemStatus.ASSEMBLED)

        with pytest.raises(NotReadyError):
            await engine.ship_order(order.id)

        assert (await engine.get_item(first)).status is ItemStatus.PACKED
        assert not (await engine.get_item(first)).product.order.is_archived

    async def test_shipped_order_cannot_ship_again(
        self, engine, order_factory, advance_to
    ) -> None:
        order = await order_factory()
        await advance_to(order.items[0].id, ItemStatus.PACKED)
        await engine.ship_order(order.id)

        with pytest.raises(NotReadyError):
            await engine.ship_order(order.id)

    async def test_unknown_order(self, engine, store) -> None:
        with pytest.raises(NotFoundError):
            await engine.ship_order(uuid.uuid4())


# ============================================================================
# Queues
# ============================================================================


class TestQueues:
    async def test_list_by_status_is_priority_ordered(
        self, engine, order_factory
    ) -> None:
        late = await order_factory(customer_name="Late", ship_in_days=10)
        soon = await order_factory(customer_name="Soon", ship_in_days=2)
        express = await order_factory(customer_name="Express", ship_in_days=9, is_express=True)

        items = await engine.list_items_by_status(ItemStatus.IN_QUEUE)

        assert [item.product.order.id for item in items] == [express.id, soon.id, late.id]

    async def test_archived_orders_are_hidden_by_default(
        self, engine, order_factory, advance_to
    ) -> None:
        order = await order_factory()
        await advance_to(order.items[0].id, ItemStatus.PACKED)
        await engine.ship_order(order.id)

        assert await engine.list_items_by_status(ItemStatus.SHIPPED) == []
        archived = await engine.list_items_by_status(
            ItemStatus.SHIPPED, include_archived=True
        )
        assert [item.id for item in archived] == item_ids(order)

    async def test_get_item_loads_order_context(self, engine, order_factory) -> None:
        order = await order_factory(customer_name="Grace")
        item = await engine.get_item(order.items[0].id)
        assert item.product.product_name == "Desk Organizer"
        assert item.product.order.customer_name == "Grace"

    async def test_history_of_unknown_item(self, engine, store) -> None:
        with pytest.raises(NotFoundError):
            await engine.get_item_history(uuid.uuid4())


# ============================================================================
# Concurrency
# ============================================================================


class TestConcurrentWriters:
    async def test_stale_write_raises_conflict(self, store, engine, order_factory) -> None:
        order = await order_factory()
        item_id = order.items[0].id

        with pytest.raises(TransactionConflictError):
            async with store.transaction() as first:
                stale = await first.get(Item, item_id)
                async with store.transaction() as second:
                    fresh = await second.get(Item, item_id)
                    fresh.status = ItemStatus.IN_PRINTFARM
                stale.status = ItemStatus.IN_PRINTFARM

        item = await engine.get_item(item_id)
        assert item.status is ItemStatus.IN_PRINTFARM
        assert item.version_id == order.items[0].version_id + 1

    async def test_simultaneous_advances_have_one_winner(
        self, engine, order_factory, monkeypatch
    ) -> None:
        order = await order_factory()
        item_id = order.items[0].id
        writers = 4
        loaded = 0
        all_loaded = asyncio.Event()
        load_item = engine._require_item

        async def load_then_wait(repository, wanted_id):
            nonlocal loaded
            item = await load_item(repository, wanted_id)
            loaded += 1
            if loaded == writers:
                all_loaded.set()
            await all_loaded.wait()
            return item

        monkeypatch.setattr(engine, "_require_item", load_then_wait)

        results = await asyncio.gather(
            *[
                engine.advance_status(item_id, ItemStatus.IN_PRINTFARM)
                for _ in range(writers)
            ],
            return_exceptions=True,
        )

        winners = [result for result in results if isinstance(result, Item)]
        losers = [result for result in results if not isinstance(result, Item)]
        assert len(winners) == 1
        assert len(losers) == writers - 1
        assert all(isinstance(error, TransactionConflictError) for error in losers)

        monkeypatch.undo()
        item = await engine.get_item(item_id)
        assert item.status is ItemStatus.IN_PRINTFARM
        assert len(await engine.get_item_history(item_id)) == 2
