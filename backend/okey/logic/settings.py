"""Centralized game settings for Okey - all configurable gameplay rules."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from okey.logic.enums import TileColor

MIN_PLAYERS = 2
MAX_PLAYERS = 4
NUM_COLORS = len(TileColor)


class GameSettings(BaseModel):
    """
    Configuration for a single Okey session.

    Defaults reproduce the standard 106-tile game: two copies of 1-13 in four
    colors plus two jokers, 14 tiles dealt per player, 51 points to open.
    """

    model_config = ConfigDict(frozen=True)

    # --- Table ---
    num_players: int = Field(default=MAX_PLAYERS, ge=MIN_PLAYERS, le=MAX_PLAYERS)
    rack_size: int = Field(default=14, ge=1)

    # --- Tile set ---
    max_number: int = Field(default=13, ge=2)
    copies_per_tile: int = Field(default=2, ge=1)
    num_jokers: int = Field(default=2, ge=0)

    # --- Scoring ---
    opening_threshold: int = 51
    joker_points: int = 30
    okey_points: int = 20

    # --- Shuffle ---
    seed: int | None = None  # None draws from OS entropy

    @property
    def pool_size(self) -> int:
        """Number of tiles built before dealing (okey copy excluded)."""
        return NUM_COLORS * self.max_number * self.copies_per_tile + self.num_jokers

    @property
    def tiles_needed_to_deal(self) -> int:
        """Racks for every seat plus the indicator tile."""
        return self.num_players * self.rack_size + 1
