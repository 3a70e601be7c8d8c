"""
String enum definitions for Okey game concepts.
"""

from enum import Enum


class TileColor(str, Enum):
    """Tile colors, in the order tiles are generated."""

    RED = "red"
    BLUE = "blue"
    BLACK = "black"
    YELLOW = "yellow"


class GamePhase(str, Enum):
    """Phase of an Okey session."""

    PLAYING = "playing"
    GAME_OVER = "game_over"


class CombinationType(str, Enum):
    """Shapes a played selection can take."""

    SET = "set"
    RUN = "run"


class GameErrorCode(str, Enum):
    """Error codes reported to the UI for rejected intents."""

    EMPTY_SELECTION = "empty_selection"
    TILES_NOT_IN_RACK = "tiles_not_in_rack"
    TILE_NOT_IN_RACK = "tile_not_in_rack"
    INSUFFICIENT_OPENING_POINTS = "insufficient_opening_points"
    INVALID_COMBINATION = "invalid_combination"
    POOL_EXHAUSTED = "pool_exhausted"
    GAME_OVER = "game_over"
    SYNC_FAILED = "sync_failed"
    GAME_ERROR = "game_error"
