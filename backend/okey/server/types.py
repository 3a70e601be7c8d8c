"""Messages the relay server sends to connected peers."""

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class RelayMessageType(StrEnum):
    WELCOME = "welcome"
    PLAYER_JOINED = "player_joined"
    PLAYER_LEFT = "player_left"
    SNAPSHOT = "snapshot"
    ERROR = "error"


class RelayErrorCode(StrEnum):
    INVALID_SNAPSHOT = "invalid_snapshot"


class WelcomeMessage(BaseModel):
    type: Literal[RelayMessageType.WELCOME] = RelayMessageType.WELCOME
    connection_id: str
    participants: list[str]


class PlayerJoinedMessage(BaseModel):
    type: Literal[RelayMessageType.PLAYER_JOINED] = RelayMessageType.PLAYER_JOINED
    connection_id: str
    participants: list[str]


class PlayerLeftMessage(BaseModel):
    type: Literal[RelayMessageType.PLAYER_LEFT] = RelayMessageType.PLAYER_LEFT
    connection_id: str
    participants: list[str]


class SnapshotMessage(BaseModel):
    """A peer's snapshot frame, forwarded untouched in `data`."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal[RelayMessageType.SNAPSHOT] = RelayMessageType.SNAPSHOT
    sender: str = Field(alias="from")
    data: bytes


class RelayErrorMessage(BaseModel):
    type: Literal[RelayMessageType.ERROR] = RelayMessageType.ERROR
    code: RelayErrorCode
    message: str


RelayMessage = Annotated[
    WelcomeMessage | PlayerJoinedMessage | PlayerLeftMessage | SnapshotMessage | RelayErrorMessage,
    Field(discriminator="type"),
]

_relay_message_adapter = TypeAdapter(RelayMessage)


def parse_relay_message(data: dict[str, Any]) -> RelayMessage:
    """Parse a decoded relay frame into its typed message.

    Raises pydantic ValidationError for an unknown type or a wrong shape.
    """
    return _relay_message_adapter.validate_python(data)
