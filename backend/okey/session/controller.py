"""
Session orchestration for one Okey game.

GameController holds the board, the player's current selection and the
session phase, and exposes the intents the UI calls. Every intent either
commits completely or leaves the board untouched: all checks run before the
first mutation. Rule violations are raised as GameRuleError inside the
controller and converted to ActionResult at the intent boundary.

After each committed mutation the controller notifies its listeners exactly
once and, when it has a transport, broadcasts a full snapshot.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from okey.logic.board import GameBoard
from okey.logic.enums import GameErrorCode, GamePhase
from okey.logic.exceptions import (
    GameRuleError,
    InsufficientOpeningPointsError,
    InvalidActionError,
    InvalidCombinationError,
)
from okey.logic.types import ActionResult
from okey.messaging.encoder import DecodeError
from okey.messaging.snapshot import ApplyReport, GameSnapshot, apply_snapshot, build_snapshot

if TYPE_CHECKING:
    from okey.logic.player import Player
    from okey.logic.settings import GameSettings
    from okey.logic.tiles import Tile
    from okey.messaging.protocol import SnapshotTransport

logger = structlog.get_logger()

StateListener = Callable[[], None]

OPENING_MESSAGE = "First play must be at least {threshold} points"
INVALID_COMBINATION_MESSAGE = "Invalid combination"
EMPTY_SELECTION_MESSAGE = "Select tiles to play first"
NOT_IN_RACK_MESSAGE = "Selected tiles are not in your rack"
POOL_EXHAUSTED_MESSAGE = "No tiles left to draw"
GAME_OVER_MESSAGE = "The game is over"


class GameController:
    def __init__(
        self,
        settings: GameSettings | None = None,
        *,
        board: GameBoard | None = None,
        transport: SnapshotTransport | None = None,
    ) -> None:
        """Either settings for a fresh deal or a prepared board, not both."""
        if board is not None and settings is not None:
            raise ValueError("pass settings or board, not both")
        self._board = board if board is not None else GameBoard(settings)
        self._transport = transport
        self._selected_tiles: list[Tile] = []
        self._phase = GamePhase.PLAYING
        self._error_message: str | None = None
        self._show_indicator = False
        self._roster: tuple[str, ...] = ()
        self._listeners: list[StateListener] = []

    # --- published state ---

    @property
    def board(self) -> GameBoard:
        return self._board

    @property
    def selected_tiles(self) -> tuple[Tile, ...]:
        return tuple(self._selected_tiles)

    @property
    def phase(self) -> GamePhase:
        return self._phase

    @property
    def is_game_over(self) -> bool:
        return self._phase == GamePhase.GAME_OVER

    @property
    def error_message(self) -> str | None:
        return self._error_message

    @property
    def is_multiplayer(self) -> bool:
        return self._transport is not None

    @property
    def roster(self) -> tuple[str, ...]:
        return self._roster

    @property
    def show_indicator(self) -> bool:
        return self._show_indicator

    @property
    def current_player(self) -> Player:
        return self._board.current_player

    @property
    def current_player_has_opened(self) -> bool:
        return self._board.has_opened[self._board.current_player_index]

    @property
    def indicator_tile(self) -> Tile | None:
        return self._board.indicator_tile

    @property
    def okey_tile(self) -> Tile | None:
        return self._board.okey_tile

    @property
    def per(self) -> int:
        return self._board.per

    # --- notifications ---

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state-changed listener. Returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("state listener failed")

    def _commit(self, *, broadcast: bool = True) -> None:
        self._notify()
        if broadcast:
            self._broadcast_snapshot()

    def _reject(self, error: GameRuleError, intent: str) -> ActionResult:
        message = str(error)
        self._error_message = message
        logger.info("intent rejected", intent=intent, code=error.code, seat=self._board.current_player_index)
        return ActionResult.failed(error.code, message)

    def _ensure_playing(self) -> None:
        if self._phase == GamePhase.GAME_OVER:
            raise InvalidActionError(GAME_OVER_MESSAGE, code=GameErrorCode.GAME_OVER)

    # --- intents ---

    def select_tile(self, tile: Tile) -> ActionResult:
        """Toggle a tile (by value) in the selection."""
        for index, selected in enumerate(self._selected_tiles):
            if selected == tile:
                del self._selected_tiles[index]
                break
        else:
            self._selected_tiles.append(tile)
        self._commit()
        return ActionResult.ok(tile)

    def draw_tile(self) -> ActionResult:
        """
        Draw the top pool tile into the current player's rack.

        The draw that finds the pool empty ends the session; it commits the
        phase change and reports POOL_EXHAUSTED.
        """
        try:
            self._ensure_playing()
        except GameRuleError as e:
            return self._reject(e, "draw")

        tile = self._board.draw_tile()
        if tile is None:
            self._phase = GamePhase.GAME_OVER
            self._error_message = POOL_EXHAUSTED_MESSAGE
            logger.info("pool exhausted, game over", per=self._board.per)
            self._commit()
            return ActionResult.failed(GameErrorCode.POOL_EXHAUSTED, POOL_EXHAUSTED_MESSAGE)

        seat = self._board.current_player_index
        self._board.add_tile_to_player(tile, seat)
        self._error_message = None
        logger.debug("tile drawn", seat=seat, pool_count=len(self._board.tiles))
        self._commit()
        return ActionResult.ok(tile)

    def _validate_play(self, selection: list[Tile]) -> None:
        self._ensure_playing()
        if not selection:
            raise InvalidActionError(EMPTY_SELECTION_MESSAGE, code=GameErrorCode.EMPTY_SELECTION)

        seat = self._board.current_player_index
        if not self._board.player_holds(selection, seat):
            raise InvalidActionError(NOT_IN_RACK_MESSAGE, code=GameErrorCode.TILES_NOT_IN_RACK)

        if not self.current_player_has_opened and not self._board.can_open(selection):
            raise InsufficientOpeningPointsError(
                OPENING_MESSAGE.format(threshold=self._board.settings.opening_threshold),
            )

        if not self._board.is_valid_combination(selection):
            raise InvalidCombinationError(INVALID_COMBINATION_MESSAGE)

    def play_selected_tiles(self) -> ActionResult:
        """
        Play the selection as one set or run.

        An unopened player's selection must also reach the opening threshold.
        Nothing is mutated unless every check passes.
        """
        selection = list(self._selected_tiles)
        try:
            self._validate_play(selection)
        except GameRuleError as e:
            return self._reject(e, "play")

        seat = self._board.current_player_index
        points = self._board.calculate_points(selection)
        opening = not self.current_player_has_opened
        if opening:
            self._board.mark_as_opened(seat)
        self._board.update_per(points)
        meld = self._board.take_tiles_from_player(selection, seat)
        self._board.add_meld(meld)
        self._selected_tiles.clear()
        self._board.next_turn()
        self._error_message = None

        logger.info("tiles played", seat=seat, points=points, opening=opening, per=self._board.per)
        self._commit()
        return ActionResult.ok()

    def discard_tile(self, tile: Tile) -> ActionResult:
        """Move one copy of tile from the current rack to the discard pile and pass the turn."""
        seat = self._board.current_player_index
        try:
            self._ensure_playing()
            if not self._board.player_holds([tile], seat):
                raise InvalidActionError(NOT_IN_RACK_MESSAGE, code=GameErrorCode.TILE_NOT_IN_RACK)
        except GameRuleError as e:
            return self._reject(e, "discard")

        (discarded,) = self._board.take_tiles_from_player([tile], seat)
        self._board.add_discard(discarded)
        if tile in self._selected_tiles:
            self._selected_tiles.remove(tile)
        self._board.next_turn()
        self._error_message = None

        logger.debug("tile discarded", seat=seat, tile=str(tile))
        self._commit()
        return ActionResult.ok(tile)

    def check_for_winner(self) -> Player | None:
        """First player by seat whose rack is empty; does not end the session."""
        return next((p for p in self._board.players if not p.rack), None)

    def toggle_indicator(self) -> None:
        """Show or hide the indicator tile. Local display state, never broadcast."""
        self._show_indicator = not self._show_indicator
        self._commit(broadcast=False)

    # --- synchronization ---

    def snapshot(self) -> GameSnapshot:
        return build_snapshot(self._board, self._selected_tiles, game_over=self.is_game_over)

    def _broadcast_snapshot(self) -> None:
        if self._transport is None:
            return
        data = self.snapshot().to_bytes()
        try:
            self._transport.broadcast(data)
        except (RuntimeError, OSError, ConnectionError) as e:
            logger.warning("snapshot broadcast failed", error=str(e))

    def apply_snapshot(self, snapshot: GameSnapshot) -> ApplyReport:
        """Overwrite local state with a peer's snapshot. Never re-broadcasts."""
        selection, report = apply_snapshot(self._board, snapshot)
        self._selected_tiles = selection
        if snapshot.game_over:
            self._phase = GamePhase.GAME_OVER
        if report.players_ignored or not report.opened_applied or not report.current_index_applied:
            logger.warning(
                "snapshot partially applied",
                players_ignored=report.players_ignored,
                opened_applied=report.opened_applied,
                current_index_applied=report.current_index_applied,
            )
        self._commit(broadcast=False)
        return report

    def apply_snapshot_bytes(self, data: bytes) -> ActionResult:
        """
        Decode and apply an inbound frame.

        A malformed or mis-shaped frame is dropped: local state is kept and a
        diagnostic is surfaced through error_message.
        """
        try:
            snapshot = GameSnapshot.from_bytes(data)
        except (DecodeError, ValidationError) as e:
            message = f"Dropped malformed game state: {e}"
            self._error_message = message
            logger.warning("snapshot dropped", error=str(e), size=len(data))
            return ActionResult.failed(GameErrorCode.SYNC_FAILED, message)

        self.apply_snapshot(snapshot)
        return ActionResult.ok()

    def update_roster(self, participants: list[str]) -> None:
        """Record the connected participants reported by the transport."""
        self._roster = tuple(participants)
        logger.info("roster changed", participants=len(participants))
        self._commit(broadcast=False)
