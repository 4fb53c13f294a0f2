"""Item state machine implementation with transition validation.

This module implements the ItemStateMachine class, which applies status
changes to loaded items and records one StatusHistory row per change. It
never commits: the caller owns the transaction, so a batch of transitions
either lands together or not at all.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from printfarm.core.exceptions import InvalidTransitionError, NoOpTransitionError
from printfarm.core.logging import get_logger
from printfarm.database.base import utc_now
from printfarm.database.models.item import Item, StatusHistory
from printfarm.services.workflow.enums import (
    ItemStatus,
    get_allowed_transitions,
    validate_advance,
)

logger = get_logger(__name__)

DEFAULT_ADVANCE_REASON = "status advanced"
CREATION_REASON = "created"


class ItemStateMachine:
    """State machine for item production status.

    Forward moves go one step at a time; the only backward move is the
    reprint reset to IN_QUEUE.
    """

    def __init__(self, session: AsyncSession):
        """Initialize state machine with database session.

        Args:
            session: Session of the enclosing transaction
        """
        self.session = session

    def validate_advance(self, item: Item, target_status: ItemStatus) -> None:
        """Validate that ``target_status`` is the direct successor of the item's status.

        Args:
            item: Item to validate
            target_status: Desired target status

        Raises:
            InvalidTransitionError: If the move is not the next step
        """
        current_status = item.status
        if not validate_advance(current_status, target_status):
            allowed = get_allowed_transitions(current_status) - {ItemStatus.IN_QUEUE}
            raise InvalidTransitionError(
                f"Invalid transition from {current_status.value} to "
                f"{target_status.value}",
                item_id=str(item.id),
                current_status=current_status.value,
                target_status=target_status.value,
                allowed_transitions=sorted(s.value for s in allowed),
            )

    def advance(
        self,
        item: Item,
        target_status: ItemStatus,
        reason: Optional[str] = None,
    ) -> StatusHistory:
        """Validate and apply a forward transition.

        Args:
            item: Item to transition
            target_status: Target status, must be the direct successor
            reason: Reason recorded in history

        Returns:
            The history row added to the session

        Raises:
            InvalidTransitionError: If the move is not the next step
        """
        self.validate_advance(item, target_status)
        return self._apply(item, target_status, reason or DEFAULT_ADVANCE_REASON)

    def reset_to_queue(self, item: Item, reason: str) -> StatusHistory:
        """Send an item back to IN_QUEUE for reprint.

        Args:
            item: Item to reset
            reason: Reprint reason recorded in history

        Returns:
            The history row added to the session

        Raises:
            NoOpTransitionError: If the item is already IN_QUEUE
            InvalidTransitionError: If the item has shipped
        """
        current_status = item.status
        if current_status is ItemStatus.IN_QUEUE:
            raise NoOpTransitionError(
                "Item is already in the queue",
                item_id=str(item.id),
            )
        if not current_status.can_reset():
            raise InvalidTransitionError(
                f"Cannot reprint an item that is {current_status.value}",
                item_id=str(item.id),
                current_status=current_status.value,
                target_status=ItemStatus.IN_QUEUE.value,
            )
        return self._apply(item, ItemStatus.IN_QUEUE, reason)

    def record_creation(self, item: Item) -> StatusHistory:
        """Record the initial IN_QUEUE entry for a newly created item.

        The item must already have its id assigned.
        """
        return self._record_status_change(
            item, None, ItemStatus.IN_QUEUE, CREATION_REASON
        )

    def _apply(
        self, item: Item, target_status: ItemStatus, reason: str
    ) -> StatusHistory:
        old_status = item.status
        item.status = target_status
        item.updated_at = utc_now()

        entry = self._record_status_change(item, old_status, target_status, reason)

        logger.info(
            "Item status changed",
            item_id=str(item.id),
            transition=f"{old_status.value}->{target_status.value}",
            reason=reason,
        )
        return entry

    def _record_status_change(
        self,
        item: Item,
        old_status: Optional[ItemStatus],
        new_status: ItemStatus,
        reason: Optional[str],
    ) -> StatusHistory:
        """Record status change in item history.

        Args:
            item: Item instance
            old_status: Previous status, None on creation
            new_status: New status
            reason: Reason for change
        """
        entry = StatusHistory(
            item_id=item.id,
            old_status=old_status,
            new_status=new_status,
            reason=reason,
            changed_at=utc_now(),
        )
        self.session.add(entry)

        logger.debug(
            "Status change recorded",
            item_id=str(item.id),
            old_status=old_status.value if old_status else None,
            new_status=new_status.value,
        )
        return entry
