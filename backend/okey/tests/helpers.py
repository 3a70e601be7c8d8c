"""Builders for deterministic boards and controllers in tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

from okey.logic.board import GameBoard
from okey.logic.enums import TileColor
from okey.logic.settings import GameSettings
from okey.logic.tiles import Tile
from okey.session.controller import GameController

if TYPE_CHECKING:
    from collections.abc import Sequence

    from okey.messaging.protocol import SnapshotTransport

R, B, K, Y = TileColor.RED, TileColor.BLUE, TileColor.BLACK, TileColor.YELLOW


def t(number: int, color: TileColor = R) -> Tile:
    return Tile(number=number, color=color)


def joker() -> Tile:
    return Tile.joker()


def deal_order(
    racks: Sequence[Sequence[Tile]],
    indicator: Tile,
    pool: Sequence[Tile] = (),
) -> list[Tile]:
    """
    Lay out a pool so that dealing produces exactly `racks`.

    Dealing pops from the end of the pool one tile per seat per round, then
    pops the indicator. `pool` is what remains underneath, its last element
    drawn first (after the okey copy that is pushed on top).
    """
    rack_size = len(racks[0])
    pops = [racks[seat][i] for i in range(rack_size) for seat in range(len(racks))]
    pops.append(indicator)
    return list(pool) + list(reversed(pops))


def make_board(
    racks: Sequence[Sequence[Tile]],
    indicator: Tile | None = None,
    pool: Sequence[Tile] = (),
) -> GameBoard:
    indicator = indicator or t(1, Y)
    settings = GameSettings(num_players=len(racks), rack_size=len(racks[0]))
    return GameBoard.from_tiles(deal_order(racks, indicator, pool), settings)


def make_controller(
    racks: Sequence[Sequence[Tile]],
    indicator: Tile | None = None,
    pool: Sequence[Tile] = (),
    transport: SnapshotTransport | None = None,
) -> GameController:
    return GameController(board=make_board(racks, indicator, pool), transport=transport)


class SignalCounter:
    """State-changed listener that counts calls."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> None:
        self.calls += 1
