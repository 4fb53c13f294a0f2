"""Tests for the entity store and its connection helpers."""

import sqlite3

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError

from printfarm.core.config import Settings
from printfarm.core.exceptions import StorageError, TransactionConflictError
from printfarm.database.connection import (
    convert_database_url_to_async,
    is_unique_violation,
)
from printfarm.database.models.catalog import Color
from printfarm.database.models.item import Item
from printfarm.database.store import EntityStore
from printfarm.services.workflow.enums import ItemStatus


class PostgresUniqueViolation(Exception):
    sqlstate = "23505"


@pytest.mark.parametrize(
    "url,expected",
    [
        (
            "postgresql://user:pw@db:5432/printfarm",
            "postgresql+asyncpg://user:pw@db:5432/printfarm",
        ),
        ("sqlite:///./printfarm.db", "sqlite+aiosqlite:///./printfarm.db"),
        ("sqlite+aiosqlite:///x.db", "sqlite+aiosqlite:///x.db"),
    ],
)
def test_convert_database_url_to_async(url: str, expected: str) -> None:
    assert convert_database_url_to_async(url) == expected


@pytest.mark.parametrize(
    "orig,column,expected",
    [
        (sqlite3.IntegrityError("UNIQUE constraint failed: orders.order_number"), "order_number", True),
        (sqlite3.IntegrityError("UNIQUE constraint failed: colors.color_name"), None, True),
        (sqlite3.IntegrityError("UNIQUE constraint failed: colors.color_name"), "order_number", False),
        (sqlite3.IntegrityError("FOREIGN KEY constraint failed"), None, False),
        (sqlite3.IntegrityError("NOT NULL constraint failed: products.product_name"), None, False),
        (
            PostgresUniqueViolation(
                'duplicate key value violates unique constraint "orders_order_number_key"'
            ),
            "order_number",
            True,
        ),
    ],
)
def test_is_unique_violation(orig: Exception, column, expected: bool) -> None:
    error = IntegrityError("INSERT INTO orders", None, orig)
    assert is_unique_violation(error, column=column) is expected


class TestTransactions:
    async def test_commit_on_success(self, store: EntityStore) -> None:
        async with store.transaction() as session:
            session.add(Color(color_name="Teal", hex_code="#008080"))

        async with store.session() as session:
            names = (await session.scalars(select(Color.color_name))).all()
        assert names == ["Teal"]

    async def test_rollback_on_error(self, store: EntityStore) -> None:
        with pytest.raises(RuntimeError):
            async with store.transaction() as session:
                session.add(Color(color_name="Teal", hex_code="#008080"))
                await session.flush()
                raise RuntimeError("station crashed")

        async with store.session() as session:
            assert (await session.scalars(select(Color))).all() == []

    async def test_database_failure_becomes_storage_error(
        self, engine, order_factory, failing_flushes
    ) -> None:
        order = await order_factory()
        item_id = order.items[0].id
        failing_flushes()

        with pytest.raises(StorageError) as exc_info:
            await engine.advance_status(item_id, ItemStatus.IN_PRINTFARM)

        assert exc_info.value.context["error_type"] == "OperationalError"
        assert isinstance(exc_info.value.__cause__, OperationalError)

    async def test_failed_write_leaves_item_unchanged(
        self, engine, order_factory, failing_flushes
    ) -> None:
        order = await order_factory()
        item_id = order.items[0].id
        failing_flushes()

        with pytest.raises(StorageError):
            await engine.advance_status(item_id, ItemStatus.IN_PRINTFARM)

        item = await engine.get_item(item_id)
        assert item.status is ItemStatus.IN_QUEUE
        assert item.version_id == order.items[0].version_id
        assert len(await engine.get_item_history(item_id)) == 1

    async def test_stale_write_is_still_a_conflict(self, store, order_factory) -> None:
        order = await order_factory()
        item_id = order.items[0].id

        with pytest.raises(TransactionConflictError):
            async with store.transaction() as first:
                stale = await first.get(Item, item_id)
                async with store.transaction() as second:
                    (await second.get(Item, item_id)).status = ItemStatus.IN_PRINTFARM
                stale.status = ItemStatus.PRINTED


class TestHealth:
    async def test_healthy_store(self, store: EntityStore) -> None:
        assert await store.is_healthy() is True

    async def test_unreachable_database(self, tmp_path) -> None:
        settings = Settings(
            environment="test",
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'x.db'}",
        )
        store = EntityStore.from_settings(settings)
        try:
            assert await store.is_healthy() is False
        finally:
            await store.dispose()
