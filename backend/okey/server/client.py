"""
Peer side of the relay: a SnapshotTransport that talks to the relay server.

Outgoing snapshots are queued and written in order by one writer task, so
`broadcast` never blocks the controller. A reader task unwraps relayed
snapshot frames into the snapshot handler and turns welcome/join/leave
announcements into roster updates.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError
from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed

from okey.messaging.encoder import MAX_FRAME_LEN, DecodeError, decode
from okey.messaging.protocol import SnapshotTransport
from okey.server.protocol import RelayChannel
from okey.server.types import (
    PlayerJoinedMessage,
    PlayerLeftMessage,
    RelayErrorMessage,
    SnapshotMessage,
    WelcomeMessage,
    parse_relay_message,
)

if TYPE_CHECKING:
    from websockets.asyncio.client import ClientConnection

logger = structlog.get_logger()

# relayed frames wrap a full snapshot plus the envelope keys
_MAX_RELAY_FRAME_LEN = MAX_FRAME_LEN + 1024


class WebSocketChannel(RelayChannel):
    """RelayChannel over a `websockets` client connection."""

    def __init__(self, connection: ClientConnection) -> None:
        self._connection = connection

    @classmethod
    async def connect(cls, url: str) -> WebSocketChannel:
        """Open a connection to a relay URL such as ws://host:8710/ws/<game_id>."""
        return cls(await connect(url, max_size=_MAX_RELAY_FRAME_LEN))

    async def send_bytes(self, data: bytes) -> None:
        try:
            await self._connection.send(data)
        except ConnectionClosed as e:
            raise ConnectionError("relay connection closed") from e

    async def receive_bytes(self) -> bytes:
        try:
            message = await self._connection.recv()
        except ConnectionClosed as e:
            raise ConnectionError("relay connection closed") from e
        if isinstance(message, str):
            return message.encode()
        return message

    async def close(self, code: int = 1000, reason: str = "") -> None:
        await self._connection.close(code, reason)


class RelayClientTransport(SnapshotTransport):
    def __init__(self, channel: RelayChannel) -> None:
        super().__init__()
        self._channel = channel
        self._participant_id = ""
        self._outbox: asyncio.Queue[bytes] = asyncio.Queue()
        self._reader_task: asyncio.Task[None] | None = None
        self._writer_task: asyncio.Task[None] | None = None
        self._welcomed = asyncio.Event()
        self._connection_lost = False

    @property
    def participant_id(self) -> str:
        """Connection id assigned by the relay; empty until the welcome arrives."""
        return self._participant_id

    @property
    def is_open(self) -> bool:
        return self._writer_task is not None

    async def open(self) -> None:
        """
        Start reading and wait for the relay's welcome.

        Raises ConnectionError if the relay closes the connection first (for
        example because the game is full).
        """
        if self._reader_task is not None:
            return
        self._reader_task = asyncio.create_task(self._read_loop())
        await self._welcomed.wait()
        if self._connection_lost:
            await self._stop_reader()
            raise ConnectionError("relay closed the connection before welcome")
        self._writer_task = asyncio.create_task(self._write_loop())

    async def close(self) -> None:
        if self._reader_task is None:
            return
        if self._writer_task is not None:
            self._writer_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._writer_task
            self._writer_task = None
        await self._stop_reader()
        with contextlib.suppress(ConnectionError, RuntimeError, OSError):
            await self._channel.close()
        logger.info("relay transport closed", participant_id=self._participant_id)

    async def _stop_reader(self) -> None:
        if self._reader_task is None:
            return
        self._reader_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._reader_task
        self._reader_task = None

    def broadcast(self, data: bytes) -> None:
        if self._writer_task is None:
            logger.debug("broadcast on closed relay transport dropped")
            return
        self._outbox.put_nowait(data)

    async def flush(self) -> None:
        """Wait until every queued outgoing frame has been written."""
        await self._outbox.join()

    async def _write_loop(self) -> None:
        while True:
            data = await self._outbox.get()
            try:
                await self._channel.send_bytes(data)
            except (ConnectionError, OSError, RuntimeError) as e:
                logger.warning("snapshot send to relay failed", error=str(e))
            finally:
                self._outbox.task_done()

    async def _read_loop(self) -> None:
        try:
            while True:
                raw = await self._channel.receive_bytes()
                await self._handle_frame(raw)
        except ConnectionError:
            logger.info("relay connection lost", participant_id=self._participant_id)
            self._connection_lost = True
            self._welcomed.set()

    async def _handle_frame(self, raw: bytes) -> None:
        try:
            message = parse_relay_message(decode(raw))
        except (DecodeError, ValidationError) as e:
            logger.warning("unreadable relay frame dropped", error=str(e), size=len(raw))
            return

        try:
            if isinstance(message, WelcomeMessage):
                self._participant_id = message.connection_id
                self._welcomed.set()
                await self._deliver_roster(message.participants)
            elif isinstance(message, PlayerJoinedMessage | PlayerLeftMessage):
                await self._deliver_roster(message.participants)
            elif isinstance(message, SnapshotMessage):
                await self._deliver_snapshot(message.data)
            elif isinstance(message, RelayErrorMessage):
                logger.warning("relay rejected snapshot", code=message.code, message=message.message)
        except Exception:
            logger.exception("relay message handler failed", message_type=message.type)
