"""
Order entry service.

Creates orders together with their products, items, color and part
associations and the initial "created" history row for every item, all in
one transaction. Also generates sequential order numbers and edits order
details. Status changes are never made here; those belong to the workflow
engine.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable, Optional, Sequence, Union

from printfarm.core.config import Settings, get_settings
from printfarm.core.exceptions import (
    DuplicateKeyError,
    InactiveReferenceError,
    InvalidInputError,
    NotFoundError,
)
from printfarm.core.logging import get_logger, log_performance
from printfarm.database.models.catalog import MAX_ITEM_COLORS, ProductTemplate
from printfarm.database.models.item import Item, ItemColor, ItemPart
from printfarm.database.models.order import Order, Product
from printfarm.database.store import EntityStore
from printfarm.services.catalog.repository import CatalogRepository
from printfarm.services.orders.numbering import compute_next_order_number
from printfarm.services.orders.repository import OrderRepository
from printfarm.services.workflow.enums import ItemStatus, Platform
from printfarm.services.workflow.state_machine import ItemStateMachine

logger = get_logger(__name__)

EDITABLE_ORDER_FIELDS = frozenset(
    {
        "order_number",
        "customer_name",
        "platform",
        "notes",
        "ship_by_date",
        "is_express",
    }
)


@dataclass
class ItemSpec:
    """
    Item to create.

    ``color_ids`` are given in display order. Parts come from ``part_ids``,
    from the template's part list, or both.
    """

    item_name: str
    color_ids: Sequence[uuid.UUID]
    part_ids: Sequence[uuid.UUID] = field(default_factory=tuple)
    template_id: Optional[uuid.UUID] = None


@dataclass
class ProductSpec:
    """Product to create with its items."""

    product_name: str
    items: Sequence[ItemSpec]


def _coerce_platform(platform: Union[Platform, str, None]) -> Platform:
    if isinstance(platform, Platform):
        return platform
    if platform is None:
        raise InvalidInputError("platform is required")
    try:
        return Platform.from_string(platform)
    except ValueError as e:
        raise InvalidInputError(str(e), platform=platform) from e


def _require_text(value: Optional[str], name: str, **context: Any) -> str:
    if value is None or not value.strip():
        raise InvalidInputError(f"{name} is required", **context)
    return value.strip()


class OrderEntryService:
    """
    Order entry operations.

    Example:
        service = OrderEntryService(store)
        order = await service.create_order(
            customer_name="Ada",
            platform=Platform.ETSY,
            ship_by_date=date(2026, 11, 2),
            products=[ProductSpec("Desk Set", [ItemSpec("Base", [black.id], [base.id])])],
        )
    """

    def __init__(self, store: EntityStore, settings: Optional[Settings] = None):
        """
        Initialize order entry service.

        Args:
            store: Entity store
            settings: Settings for order numbering, defaults to cached settings
        """
        self.store = store
        self.settings = settings or get_settings()

    async def create_order(
        self,
        customer_name: str,
        platform: Union[Platform, str],
        ship_by_date: date,
        products: Sequence[ProductSpec],
        order_number: Optional[str] = None,
        notes: Optional[str] = None,
        is_express: bool = False,
    ) -> Order:
        """
        Create an order with its products and items.

        Args:
            customer_name: Customer name
            platform: Sales channel
            ship_by_date: Date the order must ship by
            products: Products with their items
            order_number: Explicit order number, generated when omitted
            notes: Optional notes
            is_express: Express priority flag

        Returns:
            The created order with products and items

        Raises:
            InvalidInputError: If the request is structurally invalid
            NotFoundError: If a referenced color, part or template is missing
            InactiveReferenceError: If a referenced record is soft deleted
            DuplicateKeyError: If the order number is already used
        """
        customer_name = _require_text(customer_name, "customer_name")
        platform = _coerce_platform(platform)
        if ship_by_date is None:
            raise InvalidInputError("ship_by_date is required")
        self._validate_products(products)

        with log_performance(logger, "create_order", product_count=len(products)):
            async with self.store.transaction() as session:
                orders = OrderRepository(session)
                catalog = CatalogRepository(session)

                colors, parts, templates = await self._resolve_references(
                    catalog, products
                )

                if order_number is None:
                    order_number = compute_next_order_number(
                        await orders.get_order_numbers(),
                        padding=self.settings.order_number_padding,
                        prefix=self.settings.order_number_prefix,
                    )
                else:
                    order_number = _require_text(order_number, "order_number")
                    if await orders.get_order_by_number(order_number) is not None:
                        raise DuplicateKeyError(
                            "Order number already exists", order_number=order_number
                        )

                order = Order(
                    id=uuid.uuid4(),
                    order_number=order_number,
                    customer_name=customer_name,
                    platform=platform,
                    notes=notes,
                    ship_by_date=ship_by_date,
                    is_express=is_express,
                    is_archived=False,
                )

                machine = ItemStateMachine(session)
                for product_spec in products:
                    product = Product(
                        id=uuid.uuid4(),
                        product_name=product_spec.product_name,
                    )
                    order.products.append(product)
                    for item_spec in product_spec.items:
                        item = self._build_item(item_spec, colors, parts, templates)
                        product.items.append(item)
                        machine.record_creation(item)

                await orders.add(order)

                logger.info(
                    "Order created",
                    order_id=str(order.id),
                    order_number=order.order_number,
                    platform=platform.value,
                    item_count=len(order.items),
                    is_express=is_express,
                )
        return order

    async def next_order_number(self) -> str:
        """Preview the order number the next auto-numbered order would get."""
        async with self.store.session() as session:
            numbers = await OrderRepository(session).get_order_numbers()
        return compute_next_order_number(
            numbers,
            padding=self.settings.order_number_padding,
            prefix=self.settings.order_number_prefix,
        )

    async def get_order(self, order_id: uuid.UUID) -> Order:
        """
        Get an order with its products and items.

        Raises:
            NotFoundError: If the order does not exist
        """
        async with self.store.session() as session:
            order = await OrderRepository(session).get_order_by_id(order_id)
        if order is None:
            raise NotFoundError("Order not found", order_id=str(order_id))
        return order

    async def list_active_orders(self) -> Sequence[Order]:
        """List orders that have not shipped, express first, then by ship-by date."""
        async with self.store.session() as session:
            return await OrderRepository(session).list_orders(include_archived=False)

    async def list_archived_orders(self) -> Sequence[Order]:
        """List shipped orders in the same priority order."""
        async with self.store.session() as session:
            orders = await OrderRepository(session).list_orders(include_archived=True)
        return [order for order in orders if order.is_archived]

    async def update_order(self, order_id: uuid.UUID, **fields: Any) -> Order:
        """
        Edit order details.

        Args:
            order_id: Order to edit
            **fields: Any of order_number, customer_name, platform, notes,
                ship_by_date, is_express

        Returns:
            The updated order

        Raises:
            InvalidInputError: If a field is unknown, not editable or invalid
            NotFoundError: If the order does not exist
            DuplicateKeyError: If the new order number is already used
        """
        unknown = sorted(set(fields) - EDITABLE_ORDER_FIELDS)
        if unknown:
            raise InvalidInputError(
                "Fields cannot be edited", order_id=str(order_id), fields=unknown
            )

        async with self.store.transaction() as session:
            repository = OrderRepository(session)
            order = await repository.get_order_by_id(order_id)
            if order is None:
                raise NotFoundError("Order not found", order_id=str(order_id))

            if "order_number" in fields:
                new_number = _require_text(
                    fields["order_number"], "order_number", order_id=str(order_id)
                )
                if new_number != order.order_number:
                    existing = await repository.get_order_by_number(new_number)
                    if existing is not None:
                        raise DuplicateKeyError(
                            "Order number already exists", order_number=new_number
                        )
                fields["order_number"] = new_number
            if "customer_name" in fields:
                fields["customer_name"] = _require_text(
                    fields["customer_name"], "customer_name", order_id=str(order_id)
                )
            if "platform" in fields:
                fields["platform"] = _coerce_platform(fields["platform"])
            if "ship_by_date" in fields and fields["ship_by_date"] is None:
                raise InvalidInputError(
                    "ship_by_date is required", order_id=str(order_id)
                )
            if "is_express" in fields and fields["is_express"] is None:
                raise InvalidInputError(
                    "is_express cannot be null", order_id=str(order_id)
                )

            for name, value in fields.items():
                setattr(order, name, value)

            await repository.flush(order_number=order.order_number)

            logger.info(
                "Order updated",
                order_id=str(order_id),
                fields=sorted(fields),
            )
        return order

    # Helpers

    @staticmethod
    def _validate_products(products: Sequence[ProductSpec]) -> None:
        if not products:
            raise InvalidInputError("An order needs at least one product")
        for p_index, product in enumerate(products):
            _require_text(product.product_name, "product_name", product_index=p_index)
            if not product.items:
                raise InvalidInputError(
                    "A product needs at least one item",
                    product_name=product.product_name,
                )
            for i_index, item in enumerate(product.items):
                context = {"product_index": p_index, "item_index": i_index}
                _require_text(item.item_name, "item_name", **context)
                color_ids = list(item.color_ids)
                if not 1 <= len(color_ids) <= MAX_ITEM_COLORS:
                    raise InvalidInputError(
                        f"An item needs between 1 and {MAX_ITEM_COLORS} colors",
                        color_count=len(color_ids),
                        **context,
                    )
                if len(set(color_ids)) != len(color_ids):
                    raise InvalidInputError("Item colors must be distinct", **context)
                if not item.part_ids and item.template_id is None:
                    raise InvalidInputError(
                        "An item needs part ids or a template", **context
                    )

    @staticmethod
    async def _resolve_references(
        catalog: CatalogRepository, products: Sequence[ProductSpec]
    ) -> tuple[dict, dict, dict]:
        """Load every referenced color, part and template and check they are usable."""
        item_specs = [item for product in products for item in product.items]

        templates = await catalog.get_templates(
            item.template_id for item in item_specs if item.template_id is not None
        )
        _check_references(
            "template",
            {item.template_id for item in item_specs if item.template_id is not None},
            templates,
        )

        part_ids = {part_id for item in item_specs for part_id in item.part_ids}
        for template in templates.values():
            part_ids.update(link.part_id for link in template.parts)

        colors = await catalog.get_colors(
            color_id for item in item_specs for color_id in item.color_ids
        )
        _check_references(
            "color",
            {color_id for item in item_specs for color_id in item.color_ids},
            colors,
        )
        parts = await catalog.get_parts(part_ids)
        _check_references("part", part_ids, parts)

        for item in item_specs:
            if item.template_id is None:
                continue
            template = templates[item.template_id]
            if len(item.color_ids) != template.num_colors:
                raise InvalidInputError(
                    "Color count does not match the template",
                    item_name=item.item_name,
                    template_id=str(template.id),
                    expected=template.num_colors,
                    actual=len(item.color_ids),
                )

        return colors, parts, templates

    @staticmethod
    def _build_item(
        spec: ItemSpec,
        colors: dict,
        parts: dict,
        templates: dict[uuid.UUID, ProductTemplate],
    ) -> Item:
        part_ids: list[uuid.UUID] = []
        if spec.template_id is not None:
            part_ids.extend(link.part_id for link in templates[spec.template_id].parts)
        part_ids.extend(spec.part_ids)

        item = Item(
            id=uuid.uuid4(),
            item_name=spec.item_name.strip(),
            status=ItemStatus.IN_QUEUE,
        )
        for position, color_id in enumerate(spec.color_ids, start=1):
            item.colors.append(ItemColor(color=colors[color_id], color_order=position))
        for part_id in dict.fromkeys(part_ids):
            item.parts.append(ItemPart(part=parts[part_id], needs_reprint=False))
        return item


def _check_references(
    kind: str, requested: Iterable[uuid.UUID], found: dict[uuid.UUID, Any]
) -> None:
    """
    Check that every requested reference exists and is active.

    Raises:
        NotFoundError: If a reference is missing
        InactiveReferenceError: If a reference is soft deleted
    """
    requested = set(requested)
    missing = sorted(str(ref) for ref in requested if ref not in found)
    if missing:
        raise NotFoundError(f"Unknown {kind} reference", kind=kind, ids=missing)
    inactive = sorted(str(ref) for ref in requested if not found[ref].is_active)
    if inactive:
        raise InactiveReferenceError(
            f"Cannot attach inactive {kind}", kind=kind, ids=inactive
        )
