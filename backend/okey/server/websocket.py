from __future__ import annotations

import contextlib
import re
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect

from okey.server.protocol import ConnectionProtocol
from okey.server.relay import JoinRejectedError

if TYPE_CHECKING:
    from okey.server.relay import RelayHub

logger = structlog.get_logger()

_GAME_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
_MAX_GAME_ID_LENGTH = 50
INVALID_GAME_ID_CLOSE_CODE = 4000


class WebSocketConnection(ConnectionProtocol):
    def __init__(self, websocket: WebSocket, game_id: str, connection_id: str | None = None) -> None:
        self._websocket = websocket
        self._game_id = game_id
        self._connection_id = connection_id or str(uuid4())

    @property
    def connection_id(self) -> str:
        return self._connection_id

    @property
    def game_id(self) -> str:
        return self._game_id

    async def send_bytes(self, data: bytes) -> None:
        try:
            await self._websocket.send_bytes(data)
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def receive_bytes(self) -> bytes:
        try:
            return await self._websocket.receive_bytes()
        except WebSocketDisconnect:
            raise ConnectionError("WebSocket already disconnected") from None

    async def close(self, code: int = 1000, reason: str = "") -> None:
        with contextlib.suppress(WebSocketDisconnect, RuntimeError):
            await self._websocket.close(code=code, reason=reason)


async def websocket_endpoint(websocket: WebSocket, hub: RelayHub) -> None:
    game_id = websocket.path_params["game_id"]
    if not _GAME_ID_PATTERN.match(game_id) or len(game_id) > _MAX_GAME_ID_LENGTH:
        await websocket.close(code=INVALID_GAME_ID_CLOSE_CODE, reason="invalid_game_id")
        return

    await websocket.accept()
    connection = WebSocketConnection(websocket, game_id=game_id)
    structlog.contextvars.bind_contextvars(game_id=game_id, connection_id=connection.connection_id)

    try:
        await hub.join(connection)
    except JoinRejectedError as e:
        logger.info("join rejected", reason=e.reason)
        await connection.close(code=e.close_code, reason=e.reason)
        structlog.contextvars.clear_contextvars()
        return

    try:
        while True:
            raw = await connection.receive_bytes()
            await hub.relay(connection, raw)
    except (WebSocketDisconnect, RuntimeError, ConnectionError):
        pass
    finally:
        logger.info("websocket disconnected")
        await hub.leave(connection)
        structlog.contextvars.clear_contextvars()
