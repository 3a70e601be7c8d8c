"""
Result types shared by the controller and its callers.
"""

from typing import NamedTuple

from okey.logic.enums import GameErrorCode
from okey.logic.tiles import Tile


class ActionResult(NamedTuple):
    """
    Outcome of one controller intent.

    On failure `error` names the reason and `message` is the text shown to
    the player; the board is left exactly as it was. `tile` is the drawn or
    discarded tile when there is one.
    """

    success: bool
    error: GameErrorCode | None = None
    message: str | None = None
    tile: Tile | None = None

    @classmethod
    def ok(cls, tile: Tile | None = None) -> "ActionResult":
        return cls(success=True, tile=tile)

    @classmethod
    def failed(cls, error: GameErrorCode, message: str) -> "ActionResult":
        return cls(success=False, error=error, message=message)
