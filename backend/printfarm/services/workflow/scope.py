"""Reprint scope: either the entire item or an explicit subset of its parts."""

import uuid
from dataclasses import dataclass
from typing import Iterable, Union


@dataclass(frozen=True)
class EntireItem:
    """Reprint every part of the item."""


@dataclass(frozen=True)
class PartSubset:
    """Reprint only the named parts of the item."""

    part_ids: frozenset[uuid.UUID]

    def __post_init__(self) -> None:
        if not self.part_ids:
            raise ValueError("PartSubset requires at least one part id")

    @classmethod
    def of(cls, part_ids: Iterable[uuid.UUID]) -> "PartSubset":
        return cls(frozenset(part_ids))


ReprintScope = Union[EntireItem, PartSubset]
