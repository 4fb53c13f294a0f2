"""
Tests for ItemStateMachine.

The state machine works on loaded items and a session it only adds history
rows to, so these tests use in-memory items and a mock session.
"""

import uuid
from unittest.mock import Mock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from printfarm.core.exceptions import InvalidTransitionError, NoOpTransitionError
from printfarm.database.models.item import Item, StatusHistory
from printfarm.services.workflow.enums import ItemStatus
from printfarm.services.workflow.state_machine import (
    CREATION_REASON,
    DEFAULT_ADVANCE_REASON,
    ItemStateMachine,
)


@pytest.fixture
def mock_session() -> Mock:
    session = Mock(spec=AsyncSession)
    session.add = Mock()
    return session


@pytest.fixture
def machine(mock_session: Mock) -> ItemStateMachine:
    return ItemStateMachine(mock_session)


def make_item(status: ItemStatus = ItemStatus.IN_QUEUE) -> Item:
    return Item(id=uuid.uuid4(), item_name="Plate", status=status)


class TestAdvance:
    def test_advance_applies_status_and_records_history(
        self, machine: ItemStateMachine, mock_session: Mock
    ) -> None:
        item = make_item()

        entry = machine.advance(item, ItemStatus.IN_PRINTFARM, "picked up")

        assert item.status is ItemStatus.IN_PRINTFARM
        assert item.updated_at is not None
        assert isinstance(entry, StatusHistory)
        assert entry.item_id == item.id
        assert entry.old_status is ItemStatus.IN_QUEUE
        assert entry.new_status is ItemStatus.IN_PRINTFARM
        assert entry.reason == "picked up"
        mock_session.add.assert_called_once_with(entry)

    def test_advance_uses_default_reason(self, machine: ItemStateMachine) -> None:
        entry = machine.advance(make_item(), ItemStatus.IN_PRINTFARM)
        assert entry.reason == DEFAULT_ADVANCE_REASON

    @pytest.mark.parametrize(
        "current,target",
        [
            (ItemStatus.IN_QUEUE, ItemStatus.PRINTED),
            (ItemStatus.PRINTED, ItemStatus.IN_PRINTFARM),
            (ItemStatus.PRINTED, ItemStatus.PRINTED),
            (ItemStatus.SHIPPED, ItemStatus.PACKED),
            (ItemStatus.PACKED, ItemStatus.IN_QUEUE),
        ],
    )
    def test_advance_rejects_non_successor(
        self,
        machine: ItemStateMachine,
        mock_session: Mock,
        current: ItemStatus,
        target: ItemStatus,
    ) -> None:
        item = make_item(current)

        with pytest.raises(InvalidTransitionError) as exc_info:
            machine.advance(item, target)

        assert item.status is current
        assert exc_info.value.context["current_status"] == current.value
        assert exc_info.value.context["target_status"] == target.value
        mock_session.add.assert_not_called()


class TestResetToQueue:
    @pytest.mark.parametrize(
        "current",
        [
            ItemStatus.IN_PRINTFARM,
            ItemStatus.PRINTED,
            ItemStatus.ASSEMBLED,
            ItemStatus.PACKED,
        ],
    )
    def test_reset_from_resettable_status(
        self, machine: ItemStateMachine, current: ItemStatus
    ) -> None:
        item = make_item(current)

        entry = machine.reset_to_queue(item, "layer shift")

        assert item.status is ItemStatus.IN_QUEUE
        assert entry.old_status is current
        assert entry.new_status is ItemStatus.IN_QUEUE
        assert entry.reason == "layer shift"

    def test_reset_of_queued_item_is_noop_error(
        self, machine: ItemStateMachine, mock_session: Mock
    ) -> None:
        with pytest.raises(NoOpTransitionError):
            machine.reset_to_queue(make_item(ItemStatus.IN_QUEUE), "again")
        mock_session.add.assert_not_called()

    def test_reset_of_shipped_item_is_rejected(self, machine: ItemStateMachine) -> None:
        item = make_item(ItemStatus.SHIPPED)
        with pytest.raises(InvalidTransitionError):
            machine.reset_to_queue(item, "customer complaint")
        assert item.status is ItemStatus.SHIPPED


class TestCreation:
    def test_record_creation(self, machine: ItemStateMachine) -> None:
        item = make_item()
        entry = machine.record_creation(item)
        assert entry.old_status is None
        assert entry.new_status is ItemStatus.IN_QUEUE
        assert entry.reason == CREATION_REASON

    def test_rejection_lists_forward_moves(self, machine: ItemStateMachine) -> None:
        with pytest.raises(InvalidTransitionError) as exc_info:
            machine.advance(make_item(ItemStatus.PACKED), ItemStatus.ASSEMBLED)
        assert exc_info.value.context["allowed_transitions"] == ["Shipped"]
