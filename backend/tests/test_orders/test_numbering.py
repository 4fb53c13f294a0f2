"""Tests for sequential order number generation."""

import pytest

from printfarm.services.orders.numbering import (
    compute_next_order_number,
    parse_order_sequence,
)


class TestParseOrderSequence:
    @pytest.mark.parametrize(
        "order_number,expected",
        [
            ("001", 1),
            ("042", 42),
            ("1000", 1000),
            ("ETSY-1234", None),
            ("12a", None),
            ("", None),
            ("١٢", None),
        ],
    )
    def test_plain_numbers(self, order_number: str, expected) -> None:
        assert parse_order_sequence(order_number) == expected

    def test_prefixed_numbers(self) -> None:
        assert parse_order_sequence("TOT-017", prefix="TOT-") == 17
        assert parse_order_sequence("017", prefix="TOT-") is None
        assert parse_order_sequence("TOT-", prefix="TOT-") is None


class TestComputeNextOrderNumber:
    def test_first_number(self) -> None:
        assert compute_next_order_number([]) == "001"

    def test_follows_highest_sequence(self) -> None:
        assert compute_next_order_number(["001", "007", "003"]) == "008"

    def test_ignores_non_sequential_numbers(self) -> None:
        assert compute_next_order_number(["ETSY-99", "005", "SHOP#12"]) == "006"

    def test_outgrows_padding(self) -> None:
        assert compute_next_order_number(["999"]) == "1000"

    def test_custom_padding_and_prefix(self) -> None:
        assert compute_next_order_number(["PF-0009"], padding=4, prefix="PF-") == "PF-0010"
        assert compute_next_order_number(["0009"], padding=4, prefix="PF-") == "PF-0001"
