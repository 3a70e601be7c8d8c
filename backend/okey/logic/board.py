"""
Game board for an Okey session.

The board owns every tile (pool, racks, discard pile, played melds and the
indicator), the players, the turn index, the opened flags and the pot
("per"). Rule checks delegate to okey.logic.rules with the board's okey tile.

Mutators used by the snapshot merge return a bool instead of raising: an
out-of-range seat or a mismatched vector is simply not applied.
"""

from __future__ import annotations

import random
from collections import Counter
from typing import TYPE_CHECKING

import structlog

from okey.logic import rules
from okey.logic.exceptions import UnsupportedSettingsError
from okey.logic.player import Player
from okey.logic.settings import GameSettings
from okey.logic.tiles import Tile, build_tile_set, derive_okey_tile

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

logger = structlog.get_logger()


class GameBoard:
    def __init__(self, settings: GameSettings | None = None, *, tiles: Sequence[Tile] | None = None) -> None:
        """
        Build the tile pool, shuffle, deal and reveal the indicator.

        When `tiles` is given it is used as the pool in that exact order (top
        of the pool is the end of the sequence) and no shuffle is applied.
        """
        self.settings = settings or GameSettings()
        if tiles is None:
            pool = build_tile_set(
                max_number=self.settings.max_number,
                copies_per_tile=self.settings.copies_per_tile,
                num_jokers=self.settings.num_jokers,
            )
            random.Random(self.settings.seed).shuffle(pool)  # noqa: S311
        else:
            pool = list(tiles)

        if self.settings.tiles_needed_to_deal > len(pool):
            raise UnsupportedSettingsError(
                f"{self.settings.num_players} players need {self.settings.tiles_needed_to_deal} tiles, "
                f"pool has {len(pool)}",
            )

        self._tiles: list[Tile] = pool
        self._players: list[Player] = [Player(name=f"Player {i + 1}") for i in range(self.settings.num_players)]
        self._current_player_index = 0
        self._indicator_tile: Tile | None = None
        self._okey_tile: Tile | None = None
        self._has_opened: list[bool] = [False] * self.settings.num_players
        self._per = 0
        self._discards: list[Tile] = []
        self._melds: list[tuple[Tile, ...]] = []

        self._deal_initial_tiles()
        logger.debug(
            "board dealt",
            num_players=len(self._players),
            pool_count=len(self._tiles),
            indicator=str(self._indicator_tile),
            okey=str(self._okey_tile),
        )

    @classmethod
    def from_tiles(cls, tiles: Sequence[Tile], settings: GameSettings | None = None) -> GameBoard:
        """Build a board from an explicit pool order (for tests/replays)."""
        return cls(settings, tiles=tiles)

    def _deal_initial_tiles(self) -> None:
        # one tile per seat per round, not a whole rack at a time
        for _ in range(self.settings.rack_size):
            for player in self._players:
                player.add_tile(self._tiles.pop())

        indicator = self._tiles.pop()
        self._indicator_tile = indicator
        self._okey_tile = derive_okey_tile(indicator, self.settings.max_number)
        # the single materialized okey copy goes back into circulation
        self._tiles.append(self._okey_tile)

    # --- read-only state ---

    @property
    def tiles(self) -> tuple[Tile, ...]:
        """Drawable pool; the last element is the top."""
        return tuple(self._tiles)

    @property
    def players(self) -> tuple[Player, ...]:
        return tuple(self._players)

    @property
    def current_player_index(self) -> int:
        return self._current_player_index

    @property
    def current_player(self) -> Player:
        return self._players[self._current_player_index]

    @property
    def indicator_tile(self) -> Tile | None:
        return self._indicator_tile

    @property
    def okey_tile(self) -> Tile | None:
        return self._okey_tile

    @property
    def has_opened(self) -> tuple[bool, ...]:
        return tuple(self._has_opened)

    @property
    def per(self) -> int:
        return self._per

    @property
    def discards(self) -> tuple[Tile, ...]:
        return tuple(self._discards)

    @property
    def melds(self) -> tuple[tuple[Tile, ...], ...]:
        return tuple(self._melds)

    def all_tiles(self) -> list[Tile]:
        """Every tile instance the board holds, wherever it currently sits."""
        tiles = list(self._tiles)
        for player in self._players:
            tiles.extend(player.rack)
        tiles.extend(self._discards)
        for meld in self._melds:
            tiles.extend(meld)
        if self._indicator_tile is not None:
            tiles.append(self._indicator_tile)
        return tiles

    def tile_counts(self) -> Counter[Tile]:
        return Counter(self.all_tiles())

    def _valid_index(self, player_index: int) -> bool:
        return 0 <= player_index < len(self._players)

    # --- turn flow ---

    def draw_tile(self) -> Tile | None:
        """Pop the top of the pool, or None when the pool is empty."""
        if not self._tiles:
            return None
        return self._tiles.pop()

    def next_turn(self) -> None:
        self._current_player_index = (self._current_player_index + 1) % len(self._players)

    # --- rules ---

    def calculate_points(self, tiles: Sequence[Tile]) -> int:
        return rules.calculate_points(tiles, self._okey_tile, self.settings)

    def is_valid_combination(self, tiles: Sequence[Tile]) -> bool:
        return rules.is_valid_combination(tiles, self._okey_tile)

    def can_open(self, tiles: Sequence[Tile]) -> bool:
        return rules.can_open(tiles, self._okey_tile, self.settings)

    def mark_as_opened(self, player_index: int) -> bool:
        if not self._valid_index(player_index):
            return False
        self._has_opened[player_index] = True
        return True

    def update_per(self, points: int) -> None:
        self._per += points

    # --- player mutators ---

    def add_tile_to_player(self, tile: Tile, player_index: int) -> bool:
        if not self._valid_index(player_index):
            return False
        self._players[player_index].add_tile(tile)
        return True

    def remove_tiles_from_player(self, tiles: Iterable[Tile], player_index: int) -> bool:
        """
        Remove one rack entry per requested tile, matched by value.

        Two equal requested tiles remove two entries. Returns False if the
        seat is invalid; tiles that are not in the rack are skipped.
        """
        if not self._valid_index(player_index):
            return False
        self.take_tiles_from_player(tiles, player_index)
        return True

    def take_tiles_from_player(self, tiles: Iterable[Tile], player_index: int) -> list[Tile]:
        """Remove tiles like remove_tiles_from_player and return the rack instances taken."""
        if not self._valid_index(player_index):
            return []
        player = self._players[player_index]
        taken = (player.remove_tile(tile) for tile in tiles)
        return [tile for tile in taken if tile is not None]

    def player_holds(self, tiles: Sequence[Tile], player_index: int) -> bool:
        """True if the rack holds every requested tile, counting duplicates."""
        if not self._valid_index(player_index):
            return False
        needed = Counter(tiles)
        held = Counter(self._players[player_index].rack)
        return all(held[tile] >= count for tile, count in needed.items())

    def add_points_to_player(self, points: int, player_index: int) -> bool:
        if not self._valid_index(player_index):
            return False
        self._players[player_index].update_score(points)
        return True

    def add_discard(self, tile: Tile) -> None:
        self._discards.append(tile)

    def add_meld(self, tiles: Sequence[Tile]) -> None:
        self._melds.append(tuple(tiles))

    # --- wholesale replacement (snapshot merge) ---

    def update_player_rack(self, rack: Sequence[Tile], player_index: int) -> bool:
        if not self._valid_index(player_index):
            return False
        self._players[player_index].rack = list(rack)
        return True

    def set_player_score(self, score: int, player_index: int) -> bool:
        if not self._valid_index(player_index):
            return False
        self._players[player_index].score = score
        return True

    def update_opened_status(self, status: Sequence[bool]) -> bool:
        if len(status) != len(self._has_opened):
            return False
        self._has_opened = list(status)
        return True

    def set_current_player_index(self, index: int) -> bool:
        if not self._valid_index(index):
            return False
        self._current_player_index = index
        return True

    def set_per(self, per: int) -> None:
        self._per = per

    def set_indicator_tile(self, indicator: Tile | None) -> None:
        """Replace the indicator and re-derive the okey tile from it."""
        self._indicator_tile = indicator
        self._okey_tile = None if indicator is None else derive_okey_tile(indicator, self.settings.max_number)

    def replace_pool(self, tiles: Sequence[Tile]) -> None:
        self._tiles = list(tiles)

    def replace_discards(self, tiles: Sequence[Tile]) -> None:
        self._discards = list(tiles)

    def replace_melds(self, melds: Sequence[Sequence[Tile]]) -> None:
        self._melds = [tuple(meld) for meld in melds]
