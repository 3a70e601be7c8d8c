"""
Async session wrapper that serializes every board mutation.

Local intents from the UI and snapshots delivered by the transport can arrive
concurrently. GameSession runs both through one asyncio.Lock so the
controller's synchronous mutators never interleave.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Self

import structlog

from okey.session.controller import GameController

if TYPE_CHECKING:
    from types import TracebackType

    from okey.logic.settings import GameSettings
    from okey.logic.tiles import Tile
    from okey.logic.types import ActionResult
    from okey.messaging.protocol import SnapshotTransport

logger = structlog.get_logger()


class GameSession:
    def __init__(
        self,
        game_id: str,
        settings: GameSettings | None = None,
        *,
        transport: SnapshotTransport | None = None,
        controller: GameController | None = None,
    ) -> None:
        if controller is not None and settings is not None:
            raise ValueError("pass settings or controller, not both")
        self.game_id = game_id
        self._transport = transport
        self._controller = controller or GameController(settings, transport=transport)
        self._lock = asyncio.Lock()
        self._log = logger.bind(game_id=game_id)
        if transport is not None:
            transport.set_snapshot_handler(self.receive_snapshot)
            transport.set_roster_handler(self.receive_roster)

    @property
    def controller(self) -> GameController:
        return self._controller

    async def open(self) -> None:
        if self._transport is not None:
            await self._transport.open()
        self._log.info("session opened", multiplayer=self._transport is not None)

    async def close(self) -> None:
        if self._transport is not None:
            await self._transport.close()
        self._log.info("session closed")

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    # --- local intents ---

    async def select_tile(self, tile: Tile) -> ActionResult:
        async with self._lock:
            return self._controller.select_tile(tile)

    async def draw_tile(self) -> ActionResult:
        async with self._lock:
            return self._controller.draw_tile()

    async def play_selected_tiles(self) -> ActionResult:
        async with self._lock:
            return self._controller.play_selected_tiles()

    async def discard_tile(self, tile: Tile) -> ActionResult:
        async with self._lock:
            return self._controller.discard_tile(tile)

    # --- transport callbacks ---

    async def receive_snapshot(self, data: bytes) -> None:
        async with self._lock:
            result = self._controller.apply_snapshot_bytes(data)
        if not result.success:
            self._log.warning("inbound snapshot rejected", error_code=result.error)

    async def receive_roster(self, participants: list[str]) -> None:
        async with self._lock:
            self._controller.update_roster(participants)
