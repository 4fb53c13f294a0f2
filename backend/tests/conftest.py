"""
Pytest configuration and shared test fixtures.

Every test gets its own SQLite database file under ``tmp_path`` with the full
schema created, an EntityStore around it, and the services built on that
store. The ``seeded`` fixture adds a small reference catalog and
``order_factory`` builds orders against it.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import AsyncGenerator, Awaitable, Callable, Iterator, Optional, Sequence

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from printfarm.core.config import Settings, get_settings
from printfarm.database.models.catalog import Color, Part, ProductTemplate
from printfarm.database.models.order import Order
from printfarm.database.store import EntityStore
from printfarm.main import create_app
from printfarm.services.catalog.service import CatalogService
from printfarm.services.orders.service import ItemSpec, OrderEntryService, ProductSpec
from printfarm.services.workflow.engine import WorkflowEngine
from printfarm.services.workflow.enums import ItemStatus, Platform


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a throwaway SQLite database."""
    return Settings(
        environment="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'printfarm.db'}",
        auto_create_schema=False,
        log_level="WARNING",
    )


@pytest.fixture
async def store(settings: Settings) -> AsyncGenerator[EntityStore, None]:
    """Entity store with the schema created; disposed after the test."""
    store = EntityStore.from_settings(settings)
    await store.create_schema()
    yield store
    await store.dispose()


@pytest.fixture
def engine(store: EntityStore) -> WorkflowEngine:
    return WorkflowEngine(store)


@pytest.fixture
def order_service(store: EntityStore, settings: Settings) -> OrderEntryService:
    return OrderEntryService(store, settings)


@pytest.fixture
def catalog(store: EntityStore) -> CatalogService:
    return CatalogService(store)


@dataclass
class Catalog:
    """Reference data created by the ``seeded`` fixture."""

    black: Color
    white: Color
    red: Color
    base: Part
    lid: Part
    hinge: Part
    box_template: ProductTemplate


@pytest.fixture
async def seeded(catalog: CatalogService) -> Catalog:
    """
    Create three colors, three parts and a two-color box template.

    The template uses the base twice and the lid once.
    """
    black = await catalog.create_color("Black", "#000000", supplier="Polymaker")
    white = await catalog.create_color("White", "#ffffff", supplier="Polymaker")
    red = await catalog.create_color("Red", "#FF0000", supplier="Bambu")
    base = await catalog.create_part("BOX-BASE", "Box Base")
    lid = await catalog.create_part("BOX-LID", "Box Lid")
    hinge = await catalog.create_part("HINGE-01", "Hinge")
    box_template = await catalog.create_template(
        "Hinged Box",
        num_colors=2,
        parts=[(base.id, 1), (lid.id, 1), (base.id, 1)],
    )
    return Catalog(black, white, red, base, lid, hinge, box_template)


OrderFactory = Callable[..., Awaitable[Order]]


@pytest.fixture
def order_factory(order_service: OrderEntryService, seeded: Catalog) -> OrderFactory:
    """
    Build orders against the seeded catalog.

    By default an order has one product with ``items_per_product`` items,
    each black with the base and lid parts.
    """

    async def create(
        customer_name: str = "Ada Lovelace",
        platform: Platform = Platform.ETSY,
        ship_in_days: int = 7,
        is_express: bool = False,
        products: Optional[Sequence[ProductSpec]] = None,
        items_per_product: int = 1,
        order_number: Optional[str] = None,
    ) -> Order:
        if products is None:
            products = [
                ProductSpec(
                    "Desk Organizer",
                    [
                        ItemSpec(
                            f"Plate {index + 1}",
                            [seeded.black.id],
                            [seeded.base.id, seeded.lid.id],
                        )
                        for index in range(items_per_product)
                    ],
                )
            ]
        return await order_service.create_order(
            customer_name=customer_name,
            platform=platform,
            ship_by_date=date.today() + timedelta(days=ship_in_days),
            products=products,
            order_number=order_number,
            is_express=is_express,
        )

    return create


@pytest.fixture
def advance_to(engine: WorkflowEngine) -> Callable[..., Awaitable[None]]:
    """Advance a queued item step by step up to ``status``."""

    async def advance(item_id, status: ItemStatus) -> None:
        current = ItemStatus.IN_QUEUE
        while current is not status:
            current = current.next_status
            await engine.advance_status(item_id, current)

    return advance


@pytest.fixture
async def client(
    store: EntityStore, settings: Settings
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an asynchronous test client for the FastAPI application.

    The application shares the test's store, so service-level fixtures and
    HTTP calls see the same data.
    """
    app = create_app(settings=settings, store=store)
    app.dependency_overrides[get_settings] = lambda: settings
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def failing_flushes() -> Iterator[Callable[[], None]]:
    """
    Make every ORM flush fail as if the database file were locked.

    Yields a function that switches the failure on, so a test can write its
    setup data first.
    """

    def locked(session, flush_context, instances) -> None:
        raise OperationalError("UPDATE items", None, Exception("database is locked"))

    def enable() -> None:
        event.listen(Session, "before_flush", locked)

    yield enable
    if event.contains(Session, "before_flush", locked):
        event.remove(Session, "before_flush", locked)
