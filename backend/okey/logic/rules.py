"""
Combination validation and scoring for Okey.

Pure functions over tile collections. The okey tile is passed explicitly; any
tile value-equal to it, and every joker, counts as a wild card in sets and
runs.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from okey.logic.enums import CombinationType
from okey.logic.settings import GameSettings

if TYPE_CHECKING:
    from collections.abc import Sequence

    from okey.logic.tiles import Tile

MIN_COMBINATION_SIZE = 3

_DEFAULT_SETTINGS = GameSettings()


def is_wild(tile: Tile, okey_tile: Tile | None) -> bool:
    """Jokers and tiles matching the okey substitute for any tile."""
    return tile.is_joker or (okey_tile is not None and tile == okey_tile)


def split_wilds(tiles: Sequence[Tile], okey_tile: Tile | None) -> tuple[list[Tile], int]:
    """Return (regular tiles, wild count)."""
    regular = [t for t in tiles if not is_wild(t, okey_tile)]
    return regular, len(tiles) - len(regular)


def tile_points(tile: Tile, okey_tile: Tile | None, settings: GameSettings = _DEFAULT_SETTINGS) -> int:
    if tile.is_joker:
        return settings.joker_points
    if okey_tile is not None and tile == okey_tile:
        return settings.okey_points
    return tile.number


def calculate_points(
    tiles: Sequence[Tile],
    okey_tile: Tile | None,
    settings: GameSettings = _DEFAULT_SETTINGS,
) -> int:
    """
    Sum tile points: joker 30, okey-equal tile 20, otherwise the face number.

    The same function scores the opening check and the pot, so both always
    agree.
    """
    return sum(tile_points(t, okey_tile, settings) for t in tiles)


def is_set(tiles: Sequence[Tile], okey_tile: Tile | None) -> bool:
    """
    Same number, pairwise distinct colors, wilds fill missing colors.

    A repeated color among regular tiles is never a set, whatever the number
    of wilds.
    """
    if len(tiles) < MIN_COMBINATION_SIZE:
        return False

    regular, wild_count = split_wilds(tiles, okey_tile)
    if len({t.number for t in regular}) > 1:
        return False

    colors = {t.color for t in regular}
    if len(colors) != len(regular):
        return False

    return len(colors) + wild_count >= MIN_COMBINATION_SIZE


def is_run(tiles: Sequence[Tile], okey_tile: Tile | None) -> bool:
    """
    Same color, consecutive numbers, wilds fill gaps.

    Runs do not wrap: 13 is never followed by 1.
    """
    if len(tiles) < MIN_COMBINATION_SIZE:
        return False

    regular, remaining_wilds = split_wilds(tiles, okey_tile)
    if len({t.color for t in regular}) > 1:
        return False

    numbers = sorted(t.number for t in regular)
    for prev, nxt in zip(numbers, numbers[1:], strict=False):
        gap = nxt - prev - 1
        if gap < 0:
            # duplicate number
            return False
        if gap > remaining_wilds:
            return False
        remaining_wilds -= gap

    return True


def combination_type(tiles: Sequence[Tile], okey_tile: Tile | None) -> CombinationType | None:
    """Classify a selection, preferring SET when both shapes fit (all-wild selections)."""
    if is_set(tiles, okey_tile):
        return CombinationType.SET
    if is_run(tiles, okey_tile):
        return CombinationType.RUN
    return None


def is_valid_combination(tiles: Sequence[Tile], okey_tile: Tile | None) -> bool:
    return combination_type(tiles, okey_tile) is not None


def can_open(
    tiles: Sequence[Tile],
    okey_tile: Tile | None,
    settings: GameSettings = _DEFAULT_SETTINGS,
) -> bool:
    """A player's first play must reach the opening threshold (51 by default)."""
    return calculate_points(tiles, okey_tile, settings) >= settings.opening_threshold
