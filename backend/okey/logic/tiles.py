"""
Tile representation utilities for Okey.

A tile is a face (number, color) or a joker. Two physical tiles with the same
face are interchangeable for gameplay, so equality and hashing use the face
only; the id lets a UI follow one physical tile across renders.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import uuid4

from okey.logic.enums import TileColor

if TYPE_CHECKING:
    from collections.abc import Iterable

MIN_NUMBER = 1
MAX_NUMBER = 13
JOKER_NUMBER = 0  # cosmetic, never read by rule logic
JOKER_COLOR = TileColor.RED


def _new_tile_id() -> str:
    return uuid4().hex


@dataclass(frozen=True)
class Tile:
    """Immutable tile value; id is excluded from equality and hashing."""

    number: int
    color: TileColor
    is_joker: bool = False
    id: str = field(default_factory=_new_tile_id, compare=False, repr=False)

    @classmethod
    def joker(cls) -> Tile:
        return cls(number=JOKER_NUMBER, color=JOKER_COLOR, is_joker=True)

    def __str__(self) -> str:
        if self.is_joker:
            return "joker"
        return f"{self.color.value}-{self.number}"


def next_number(number: int, max_number: int = MAX_NUMBER) -> int:
    """Number that follows `number`, wrapping max_number back to 1."""
    return MIN_NUMBER if number == max_number else number + 1


def derive_okey_tile(indicator: Tile, max_number: int = MAX_NUMBER) -> Tile:
    """
    Build the okey (wild) tile for an indicator.

    Same color as the indicator, number one higher, 13 wraps to 1.
    """
    return Tile(number=next_number(indicator.number, max_number), color=indicator.color)


def build_tile_set(
    max_number: int = MAX_NUMBER,
    copies_per_tile: int = 2,
    num_jokers: int = 2,
) -> list[Tile]:
    """
    Create every tile of a fresh set, unshuffled.

    Order: colors in TileColor order, numbers ascending, copies adjacent,
    jokers last.
    """
    tiles = [
        Tile(number=number, color=color)
        for color in TileColor
        for number in range(MIN_NUMBER, max_number + 1)
        for _ in range(copies_per_tile)
    ]
    tiles.extend(Tile.joker() for _ in range(num_jokers))
    return tiles


def tile_counts(tiles: Iterable[Tile]) -> Counter[Tile]:
    """Count tiles by value (faces), ignoring ids."""
    return Counter(tiles)
