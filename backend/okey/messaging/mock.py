"""In-process broadcast channel used by tests and local hot-seat play."""

import asyncio
import contextlib
from uuid import uuid4

import structlog

from okey.messaging.protocol import SnapshotTransport

logger = structlog.get_logger()


class LoopbackHub:
    """
    Connects LoopbackTransports that share one game.

    Frames from one transport are queued to every other open transport in the
    order they were broadcast.
    """

    def __init__(self) -> None:
        self._transports: dict[str, LoopbackTransport] = {}

    @property
    def participants(self) -> list[str]:
        return list(self._transports)

    def transport(self, participant_id: str | None = None) -> "LoopbackTransport":
        return LoopbackTransport(self, participant_id)

    async def _join(self, transport: "LoopbackTransport") -> None:
        self._transports[transport.participant_id] = transport
        await self._announce_roster()

    async def _leave(self, transport: "LoopbackTransport") -> None:
        if self._transports.pop(transport.participant_id, None) is not None:
            await self._announce_roster()

    async def _announce_roster(self) -> None:
        participants = self.participants
        for transport in list(self._transports.values()):
            await transport._deliver_roster(participants)

    def _fan_out(self, sender_id: str, data: bytes) -> None:
        for participant_id, transport in list(self._transports.items()):
            if participant_id != sender_id:
                transport._enqueue(data)


class LoopbackTransport(SnapshotTransport):
    def __init__(self, hub: LoopbackHub, participant_id: str | None = None) -> None:
        super().__init__()
        self._hub = hub
        self._participant_id = participant_id or str(uuid4())
        self._inbox: asyncio.Queue[bytes] = asyncio.Queue()
        self._pump_task: asyncio.Task[None] | None = None
        self._sent: list[bytes] = []

    @property
    def participant_id(self) -> str:
        return self._participant_id

    @property
    def is_open(self) -> bool:
        return self._pump_task is not None

    @property
    def sent_frames(self) -> list[bytes]:
        return self._sent.copy()

    async def open(self) -> None:
        if self._pump_task is not None:
            return
        self._pump_task = asyncio.create_task(self._pump())
        await self._hub._join(self)

    async def close(self) -> None:
        if self._pump_task is None:
            return
        await self._hub._leave(self)
        self._pump_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._pump_task
        self._pump_task = None

    def broadcast(self, data: bytes) -> None:
        if self._pump_task is None:
            logger.debug("broadcast on closed transport dropped", participant_id=self._participant_id)
            return
        self._sent.append(data)
        self._hub._fan_out(self._participant_id, data)

    def _enqueue(self, data: bytes) -> None:
        self._inbox.put_nowait(data)

    async def drain(self) -> None:
        """Wait until every queued inbound frame has been handled."""
        await self._inbox.join()

    async def _pump(self) -> None:
        while True:
            data = await self._inbox.get()
            try:
                await self._deliver_snapshot(data)
            except Exception:
                logger.exception("snapshot handler failed", participant_id=self._participant_id)
            finally:
                self._inbox.task_done()
