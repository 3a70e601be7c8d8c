"""Typed domain exceptions for Okey rule violations.

Rule violations raised inside the engine are subclasses of GameRuleError.
GameController catches them at the intent boundary and converts them to an
ActionResult plus a user-facing error message, so none of them ever reaches
the UI as an exception.
"""

from okey.logic.enums import GameErrorCode


class GameRuleError(Exception):
    """Base exception for game rule violations.

    Carries the GameErrorCode reported back to the caller.
    """

    code: GameErrorCode = GameErrorCode.GAME_ERROR

    def __init__(self, message: str, *, code: GameErrorCode | None = None) -> None:
        if code is not None:
            self.code = code
        super().__init__(message)


class InsufficientOpeningPointsError(GameRuleError):
    """First play of a player scores below the opening threshold."""

    code = GameErrorCode.INSUFFICIENT_OPENING_POINTS


class InvalidCombinationError(GameRuleError):
    """Selected tiles form neither a set nor a run."""

    code = GameErrorCode.INVALID_COMBINATION


class InvalidActionError(GameRuleError):
    """Intent is not valid in the current state (empty selection, missing tile, game over)."""


class UnsupportedSettingsError(Exception):
    """Game settings that a board cannot be built with.

    Raised at construction time; this is a configuration error and is not
    converted into an ActionResult.
    """
