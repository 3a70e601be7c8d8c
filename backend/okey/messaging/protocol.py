"""Abstract transport protocol for snapshot broadcast between peers."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

SnapshotHandler = Callable[[bytes], Awaitable[None]]
RosterHandler = Callable[[list[str]], Awaitable[None]]


class SnapshotTransport(ABC):
    """
    Reliable, ordered broadcast channel to every other participant.

    The engine only needs fire-and-forget `broadcast` plus two inbound
    callbacks. Implementations deliver callbacks on their own event-loop
    context; the receiving side is responsible for serializing them with
    local intents.
    """

    def __init__(self) -> None:
        self._snapshot_handler: SnapshotHandler | None = None
        self._roster_handler: RosterHandler | None = None

    @property
    @abstractmethod
    def participant_id(self) -> str:
        """Unique identifier of the local participant."""
        ...

    @abstractmethod
    async def open(self) -> None:
        """
        Join the channel and start delivering inbound frames.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """
        Leave the channel. Further broadcasts are dropped.
        """
        ...

    @abstractmethod
    def broadcast(self, data: bytes) -> None:
        """
        Queue a frame for every other participant without waiting for delivery.
        """
        ...

    def set_snapshot_handler(self, handler: SnapshotHandler | None) -> None:
        self._snapshot_handler = handler

    def set_roster_handler(self, handler: RosterHandler | None) -> None:
        self._roster_handler = handler

    async def _deliver_snapshot(self, data: bytes) -> None:
        if self._snapshot_handler is not None:
            await self._snapshot_handler(data)

    async def _deliver_roster(self, participants: list[str]) -> None:
        if self._roster_handler is not None:
            await self._roster_handler(participants)
