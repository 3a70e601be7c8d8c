"""
Player state for an Okey session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from uuid import uuid4

from okey.logic.tiles import Tile


def _new_player_id() -> str:
    return uuid4().hex


@dataclass
class Player:
    """
    A seat at the table.

    Instances are owned by GameBoard; everything else goes through the board's
    mutators rather than touching the rack directly.
    """

    name: str
    rack: list[Tile] = field(default_factory=list)  # display order, not rule-relevant
    score: int = 0
    id: str = field(default_factory=_new_player_id)

    def add_tile(self, tile: Tile) -> None:
        self.rack.append(tile)

    def remove_tile(self, tile: Tile) -> Tile | None:
        """Remove the first rack entry value-equal to tile and return that rack instance."""
        for index, held in enumerate(self.rack):
            if held == tile:
                return self.rack.pop(index)
        return None

    def update_score(self, points: int) -> None:
        self.score += points
