"""
Database models package.

Importing this package registers every model with ``Base.metadata``.
"""

from printfarm.database.models.catalog import Color, Part, ProductTemplate, TemplatePart
from printfarm.database.models.item import Item, ItemColor, ItemPart, StatusHistory
from printfarm.database.models.order import Order, Product

__all__ = [
    "Color",
    "Item",
    "ItemColor",
    "ItemPart",
    "Order",
    "Part",
    "Product",
    "ProductTemplate",
    "StatusHistory",
    "TemplatePart",
]
