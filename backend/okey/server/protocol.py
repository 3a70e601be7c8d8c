"""
Byte channels between the relay server and its peers.

Both ends of a relay connection move opaque MessagePack frames. The server
side additionally knows which game and connection it serves and speaks in
typed relay messages.
"""

from abc import ABC, abstractmethod

from okey.messaging.encoder import encode
from okey.server.types import RelayMessage


class RelayChannel(ABC):
    """
    Ordered, reliable binary frame stream to the other end.

    Implementations raise ConnectionError from send and receive once the
    connection is gone, whatever the underlying library raises.
    """

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None: ...

    @abstractmethod
    async def receive_bytes(self) -> bytes: ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...


class ConnectionProtocol(RelayChannel):
    """Server side of one peer connection."""

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Identifier announced to the other peers of the game."""
        ...

    @property
    @abstractmethod
    def game_id(self) -> str:
        """Game ID from the WebSocket URL path (/ws/{game_id})."""
        ...

    async def send_message(self, message: RelayMessage) -> None:
        """Encode a relay message (snapshot sender under the `from` key) and send it."""
        await self.send_bytes(encode(message.model_dump(by_alias=True)))
