"""
Relay hub: the reliable ordered broadcast channel between peers of a game.

Each game keeps its connections in join order and one asyncio.Lock. A frame is
validated as a snapshot and then sent to every other connection while the
lock is held, so all receivers see frames in the same order.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from okey.messaging.encoder import DecodeError
from okey.messaging.snapshot import GameSnapshot
from okey.server.types import (
    PlayerJoinedMessage,
    PlayerLeftMessage,
    RelayErrorCode,
    RelayErrorMessage,
    SnapshotMessage,
    WelcomeMessage,
)

if TYPE_CHECKING:
    from okey.server.protocol import ConnectionProtocol
    from okey.server.types import RelayMessage

logger = structlog.get_logger()


class JoinRejectedError(Exception):
    """Connection cannot join: the game is full or the server is at capacity."""

    def __init__(self, reason: str, close_code: int) -> None:
        self.reason = reason
        self.close_code = close_code
        super().__init__(reason)


GAME_FULL_CLOSE_CODE = 4001
AT_CAPACITY_CLOSE_CODE = 4003


class _RelayGame:
    def __init__(self, game_id: str) -> None:
        self.game_id = game_id
        self.connections: dict[str, ConnectionProtocol] = {}
        self.lock = asyncio.Lock()

    @property
    def participants(self) -> list[str]:
        return list(self.connections)


async def _send_to(connections: list[ConnectionProtocol], message: RelayMessage) -> None:
    for connection in connections:
        with contextlib.suppress(RuntimeError, OSError, ConnectionError):
            await connection.send_message(message)


class RelayHub:
    def __init__(self, max_games: int = 100, max_players_per_game: int = 4) -> None:
        self._max_games = max_games
        self._max_players_per_game = max_players_per_game
        self._games: dict[str, _RelayGame] = {}

    @property
    def game_count(self) -> int:
        return len(self._games)

    @property
    def connection_count(self) -> int:
        return sum(len(game.connections) for game in self._games.values())

    def participants(self, game_id: str) -> list[str]:
        game = self._games.get(game_id)
        return game.participants if game is not None else []

    async def join(self, connection: ConnectionProtocol) -> None:
        """
        Add a connection to its game and announce it.

        Raises JoinRejectedError when the game is full or a new game would
        exceed the server's capacity.
        """
        while True:
            game = self._games.get(connection.game_id)
            if game is None:
                if len(self._games) >= self._max_games:
                    raise JoinRejectedError("server_at_capacity", AT_CAPACITY_CLOSE_CODE)
                game = _RelayGame(connection.game_id)
                self._games[connection.game_id] = game

            async with game.lock:
                # the last peer may have left and removed the game while we waited
                if self._games.get(connection.game_id) is not game:
                    continue
                if len(game.connections) >= self._max_players_per_game:
                    raise JoinRejectedError("game_full", GAME_FULL_CLOSE_CODE)
                game.connections[connection.connection_id] = connection
                participants = game.participants
                others = [c for c in game.connections.values() if c is not connection]
                await _send_to(
                    [connection],
                    WelcomeMessage(connection_id=connection.connection_id, participants=participants),
                )
                await _send_to(
                    others,
                    PlayerJoinedMessage(connection_id=connection.connection_id, participants=participants),
                )
            logger.info("peer joined", game_id=game.game_id, participants=len(participants))
            return

    async def leave(self, connection: ConnectionProtocol) -> None:
        game = self._games.get(connection.game_id)
        if game is None:
            return
        async with game.lock:
            if game.connections.pop(connection.connection_id, None) is None:
                return
            participants = game.participants
            if not participants:
                # join re-checks _games once it holds the lock
                if self._games.get(game.game_id) is game:
                    del self._games[game.game_id]
            else:
                await _send_to(
                    list(game.connections.values()),
                    PlayerLeftMessage(connection_id=connection.connection_id, participants=participants),
                )
        if participants:
            logger.info("peer left", game_id=game.game_id, participants=len(participants))
        else:
            logger.info("relay game removed", game_id=game.game_id)

    async def relay(self, connection: ConnectionProtocol, data: bytes) -> bool:
        """
        Forward a snapshot frame to every other peer of the sender's game.

        Malformed frames are answered with an error to the sender only and
        are not forwarded. Returns True if the frame was forwarded.
        """
        game = self._games.get(connection.game_id)
        if game is None or connection.connection_id not in game.connections:
            return False

        try:
            GameSnapshot.from_bytes(data)
        except (DecodeError, ValidationError) as e:
            logger.warning("invalid snapshot frame", connection_id=connection.connection_id, error=str(e))
            await _send_to(
                [connection],
                RelayErrorMessage(code=RelayErrorCode.INVALID_SNAPSHOT, message=str(e)),
            )
            return False

        message = SnapshotMessage(sender=connection.connection_id, data=data)
        async with game.lock:
            others = [c for c in game.connections.values() if c is not connection]
            await _send_to(others, message)
        return True
