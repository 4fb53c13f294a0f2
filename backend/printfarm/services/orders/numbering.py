"""Sequential order number generation."""

from typing import Iterable, Optional


def parse_order_sequence(order_number: str, prefix: str = "") -> Optional[int]:
    """
    Parse the sequence number out of an order number.

    Only numbers of the form ``<prefix><digits>`` count; anything else, such
    as a hand-entered "ETSY-1234", returns None.

    Args:
        order_number: Order number to parse
        prefix: Configured order number prefix

    Returns:
        The integer sequence, or None if the number is not sequential
    """
    if not order_number.startswith(prefix):
        return None
    digits = order_number[len(prefix):]
    if not digits or not (digits.isascii() and digits.isdigit()):
        return None
    return int(digits)


def compute_next_order_number(
    existing: Iterable[str], padding: int = 3, prefix: str = ""
) -> str:
    """
    Compute the next sequential order number.

    Takes the highest sequential number among ``existing``, adds one and
    zero-pads to ``padding`` digits. Numbers wider than the padding are left
    as they are ("999" is followed by "1000").

    Args:
        existing: Order numbers already in use
        padding: Minimum digit count
        prefix: Prefix prepended to the digits

    Returns:
        Next order number, e.g. "001" when no sequential numbers exist

    Example:
        >>> compute_next_order_number(["001", "007", "ETSY-99"])
        '008'
    """
    sequences = [
        sequence
        for sequence in (parse_order_sequence(n, prefix) for n in existing)
        if sequence is not None
    ]
    next_sequence = max(sequences, default=0) + 1
    return f"{prefix}{str(next_sequence).zfill(padding)}"
