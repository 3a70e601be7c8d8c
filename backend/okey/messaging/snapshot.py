"""
Snapshot wire models and the board <-> snapshot projection.

A snapshot is a full projection of the mutable session state, never a delta.
Keys are camelCase on the wire (currentPlayerIndex, selectedTiles, ...); the
internal tile id is not transmitted because tiles compare by value.

Extension keys (indicatorTile, pool, discards, melds, gameOver) carry the rest
of the board so peers converge on the whole tile layout. A peer that omits
them leaves those parts of the receiver's board untouched.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from okey.logic.enums import TileColor
from okey.logic.tiles import Tile
from okey.messaging.encoder import decode, encode

if TYPE_CHECKING:
    from collections.abc import Sequence

    from okey.logic.board import GameBoard


class _WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class TileState(_WireModel):
    number: int = Field(ge=0)
    color: TileColor
    is_joker: bool = Field(default=False, alias="isJoker")

    @classmethod
    def from_tile(cls, tile: Tile) -> TileState:
        return cls(number=tile.number, color=tile.color, is_joker=tile.is_joker)

    def to_tile(self) -> Tile:
        return Tile(number=self.number, color=self.color, is_joker=self.is_joker)


class PlayerState(_WireModel):
    id: str
    name: str
    rack: list[TileState]
    score: int


class GameSnapshot(_WireModel):
    current_player_index: int = Field(alias="currentPlayerIndex")
    players: list[PlayerState]
    selected_tiles: list[TileState] = Field(alias="selectedTiles")
    per: int
    has_opened: list[bool] = Field(alias="hasOpened")

    # extension keys
    indicator_tile: TileState | None = Field(default=None, alias="indicatorTile")
    pool: list[TileState] | None = None
    discards: list[TileState] | None = None
    melds: list[list[TileState]] | None = None
    game_over: bool | None = Field(default=None, alias="gameOver")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_bytes(self) -> bytes:
        return encode(self.to_wire())

    @classmethod
    def from_bytes(cls, data: bytes) -> GameSnapshot:
        """
        Decode and validate a snapshot frame.

        Raises DecodeError for malformed MessagePack and pydantic
        ValidationError for a frame with the wrong shape.
        """
        return cls.model_validate(decode(data))


def _tiles_to_wire(tiles: Sequence[Tile]) -> list[TileState]:
    return [TileState.from_tile(t) for t in tiles]


def _tiles_from_wire(tiles: Sequence[TileState]) -> list[Tile]:
    return [t.to_tile() for t in tiles]


def build_snapshot(
    board: GameBoard,
    selected_tiles: Sequence[Tile],
    *,
    game_over: bool = False,
    include_board: bool = True,
) -> GameSnapshot:
    """Project the board and the current selection into a snapshot."""
    extension: dict[str, Any] = {}
    if include_board:
        extension = {
            "indicator_tile": (
                None if board.indicator_tile is None else TileState.from_tile(board.indicator_tile)
            ),
            "pool": _tiles_to_wire(board.tiles),
            "discards": _tiles_to_wire(board.discards),
            "melds": [_tiles_to_wire(meld) for meld in board.melds],
            "game_over": game_over,
        }
    return GameSnapshot(
        current_player_index=board.current_player_index,
        players=[
            PlayerState(id=p.id, name=p.name, rack=_tiles_to_wire(p.rack), score=p.score) for p in board.players
        ],
        selected_tiles=_tiles_to_wire(selected_tiles),
        per=board.per,
        has_opened=list(board.has_opened),
        **extension,
    )


class ApplyReport(BaseModel):
    """What a snapshot merge did and did not apply."""

    players_applied: int = 0
    players_ignored: int = 0
    opened_applied: bool = False
    current_index_applied: bool = False


def apply_snapshot(board: GameBoard, snapshot: GameSnapshot) -> tuple[list[Tile], ApplyReport]:
    """
    Overwrite the board with a peer's snapshot (last writer wins).

    Racks and scores are overwritten for every seat present in both; extra
    seats are ignored. An opened-flags vector of the wrong length and an
    out-of-range current index are ignored, the rest still applies. Returns
    the selection to adopt and a report of ignored parts.
    """
    report = ApplyReport()
    for index, player_state in enumerate(snapshot.players):
        if index >= len(board.players):
            report.players_ignored += 1
            continue
        board.update_player_rack(_tiles_from_wire(player_state.rack), index)
        board.set_player_score(player_state.score, index)
        report.players_applied += 1

    board.set_per(snapshot.per)
    report.opened_applied = board.update_opened_status(snapshot.has_opened)
    report.current_index_applied = board.set_current_player_index(snapshot.current_player_index)

    if snapshot.indicator_tile is not None:
        board.set_indicator_tile(snapshot.indicator_tile.to_tile())
    if snapshot.pool is not None:
        board.replace_pool(_tiles_from_wire(snapshot.pool))
    if snapshot.discards is not None:
        board.replace_discards(_tiles_from_wire(snapshot.discards))
    if snapshot.melds is not None:
        board.replace_melds([_tiles_from_wire(meld) for meld in snapshot.melds])

    return _tiles_from_wire(snapshot.selected_tiles), report
