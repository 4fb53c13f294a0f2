"""Item status and order platform enums for the production workflow.

Item statuses form a total order with an explicit integer rank, so "next
status" and "is this a forward move" are structural checks instead of string
comparisons.
"""

from enum import Enum
from typing import Dict, Optional, Set


class ItemStatus(str, Enum):
    """Production status of a printable item.

    Valid transitions:
    - IN_QUEUE -> IN_PRINTFARM
    - IN_PRINTFARM -> PRINTED, IN_QUEUE (reprint)
    - PRINTED -> ASSEMBLED, IN_QUEUE (reprint)
    - ASSEMBLED -> PACKED, IN_QUEUE (reprint)
    - PACKED -> SHIPPED, IN_QUEUE (reprint)
    - SHIPPED -> (terminal state)
    """

    IN_QUEUE = "In Queue"
    IN_PRINTFARM = "In Printfarm"
    PRINTED = "Printed"
    ASSEMBLED = "Assembled"
    PACKED = "Packed"
    SHIPPED = "Shipped"

    @classmethod
    def from_string(cls, value: str) -> "ItemStatus":
        """Convert string to ItemStatus enum.

        Accepts display values ("In Queue") and identifier spellings
        ("in_queue"), case-insensitively.

        Args:
            value: String representation of status

        Returns:
            ItemStatus enum value

        Raises:
            ValueError: If value is not a valid status
        """
        normalized = value.strip().replace("_", " ").lower()
        for status in cls:
            if status.value.lower() == normalized:
                return status
        valid_values = ", ".join([s.value for s in cls])
        raise ValueError(
            f"Invalid item status: {value}. Valid values are: {valid_values}"
        )

    @property
    def rank(self) -> int:
        """Position of the status in the production sequence, from 0."""
        return _STATUS_RANK[self]

    @property
    def next_status(self) -> Optional["ItemStatus"]:
        """Immediate successor in the production sequence, if any."""
        return _NEXT_STATUS.get(self)

    def is_terminal(self) -> bool:
        """Check if status is terminal (SHIPPED)."""
        return self.next_status is None

    def can_reset(self) -> bool:
        """Check if a reprint may send an item in this status back to the queue."""
        return self in REPRINT_RESETTABLE


class Platform(str, Enum):
    """Sales channel an order came in through."""

    SHOPIFY = "Shopify"
    ETSY = "Etsy"
    CUSTOM_ORDER = "Custom Order"

    @classmethod
    def from_string(cls, value: str) -> "Platform":
        """Convert string to Platform enum, case-insensitively.

        Raises:
            ValueError: If value is not a valid platform
        """
        normalized = value.strip().replace("_", " ").lower()
        for platform in cls:
            if platform.value.lower() == normalized:
                return platform
        valid_values = ", ".join([p.value for p in cls])
        raise ValueError(
            f"Invalid platform: {value}. Valid values are: {valid_values}"
        )


_STATUS_SEQUENCE = tuple(ItemStatus)
_STATUS_RANK: Dict[ItemStatus, int] = {
    status: rank for rank, status in enumerate(_STATUS_SEQUENCE)
}
_NEXT_STATUS: Dict[ItemStatus, ItemStatus] = dict(
    zip(_STATUS_SEQUENCE, _STATUS_SEQUENCE[1:])
)

REPRINT_RESETTABLE: Set[ItemStatus] = {
    ItemStatus.IN_PRINTFARM,
    ItemStatus.PRINTED,
    ItemStatus.ASSEMBLED,
    ItemStatus.PACKED,
}


def validate_advance(current: ItemStatus, target: ItemStatus) -> bool:
    """Validate a forward advance: target must be the direct successor.

    Args:
        current: Current item status
        target: Desired new status

    Returns:
        True if the advance is valid
    """
    return current.next_status is target


def get_allowed_transitions(current: ItemStatus) -> Set[ItemStatus]:
    """Get all statuses reachable from current, including the reprint reset.

    Args:
        current: Current item status

    Returns:
        Set of allowed next statuses
    """
    allowed: Set[ItemStatus] = set()
    if current.next_status is not None:
        allowed.add(current.next_status)
    if current.can_reset():
        allowed.add(ItemStatus.IN_QUEUE)
    return allowed
