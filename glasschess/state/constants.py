"""
Static tables shared by the reducer, selectors and the side-effect layer.

Option tuples are ordered as they appear on the glasses display; the reducer
stores plain indices into them.
"""

from __future__ import annotations

from dataclasses import dataclass

from glasschess.state.contracts import (
    DifficultyLevel,
    DrillType,
    GameMode,
    MenuOption,
)

# --------------------------------------------------------------------------- #
# Menu                                                                         #
# --------------------------------------------------------------------------- #

MENU_OPTIONS: tuple[MenuOption, ...] = (
    "mode",
    "board_markers",
    "view_log",
    "difficulty",
    "reset",
    "exit",
)
MENU_LABELS = ("Mode", "Board Markers", "View Log", "Difficulty", "Reset", "Exit")
MENU_INDEX: dict[MenuOption, int] = {opt: i for i, opt in enumerate(MENU_OPTIONS)}

BOARD_MARKERS_OPTIONS = ("on", "off")
BOARD_MARKERS_LABELS = ("On", "Off")

MODE_OPTIONS: tuple[GameMode, ...] = ("play", "bullet", "academy")
MODE_LABELS = ("Play vs Bot", "Bullet Blitz", "Academy")

DIFFICULTY_OPTIONS: tuple[DifficultyLevel, ...] = ("easy", "casual", "serious")
DIFFICULTY_LABELS = ("Easy", "Casual", "Serious")

DRILL_OPTIONS: tuple[DrillType, ...] = (
    "coordinate",
    "tactics",
    "mate",
    "knight_path",
    "pgn",
)
DRILL_LABELS = ("Coordinates", "Tactics", "Checkmate", "Knight Path", "PGN Study")

CONFIRM_OPTION_COUNT = 2

# --------------------------------------------------------------------------- #
# Promotion                                                                    #
# --------------------------------------------------------------------------- #

# Queen first; the promotion carousel starts at index 0.
PROMOTION_PIECE_KEYS = ("q", "r", "b", "n")
PROMOTION_LABELS = ("Queen", "Rook", "Bishop", "Knight")

# --------------------------------------------------------------------------- #
# Bullet time controls                                                         #
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class TimeControl:
    label: str
    initial_ms: int
    increment_ms: int


TIME_CONTROLS: tuple[TimeControl, ...] = (
    TimeControl("1+0", 60_000, 0),
    TimeControl("1+5", 60_000, 5_000),
    TimeControl("3+0", 180_000, 0),
    TimeControl("3+5", 180_000, 5_000),
    TimeControl("5+0", 300_000, 0),
    TimeControl("5+5", 300_000, 5_000),
)
DEFAULT_TIME_CONTROL_INDEX = 2

# --------------------------------------------------------------------------- #
# Limits                                                                       #
# --------------------------------------------------------------------------- #

MAX_HISTORY_LENGTH = 200
LOG_MAX_VISIBLE = 5
GESTURE_DISAMBIGUATION_MS = 200
LOW_TIME_WARNING_MS = 10_000
