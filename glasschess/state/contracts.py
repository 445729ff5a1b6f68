"""
Typed state contracts: the single GameState record and the value types it holds.

GameState is frozen. The reducer builds a new one with dataclasses.replace()
for every change and hands back the very same object when an action is a
no-op, so subscribers can detect changes by identity alone.

Everything here is plain data: it can be serialized with dataclasses.asdict()
for the web simulator and compared with == in tests.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from glasschess.oracle import MoveOracle

Color = Literal["white", "black"]
GameOverReason = Literal[
    "checkmate",
    "stalemate",
    "repetition",
    "insufficient-material",
    "draw",
    "time-out",
    "unknown",
]
UIPhase = Literal[
    "idle",
    "piece_select",
    "dest_select",
    "promotion_select",
    "menu",
    "view_log",
    "difficulty_select",
    "board_markers_select",
    "reset_confirm",
    "exit_confirm",
    "mode_select",
    "bullet_setup",
    "academy_select",
    "coordinate_drill",
    "tactics_drill",
    "mate_drill",
    "knight_path_drill",
    "pgn_study",
]
GameMode = Literal["play", "bullet", "academy"]
MenuOption = Literal["mode", "board_markers", "view_log", "difficulty", "reset", "exit"]
DifficultyLevel = Literal["easy", "casual", "serious"]
DrillType = Literal["coordinate", "tactics", "mate", "knight_path", "pgn"]
DrillFeedback = Literal["none", "correct", "incorrect"]
NavAxis = Literal["file", "rank"]

STARTING_FEN = "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"


def monotonic_ms() -> int:
    """Default clock for phase-entry and timer timestamps, in milliseconds."""
    return int(time.monotonic() * 1000)


# --------------------------------------------------------------------------- #
# Board entries                                                                #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class CarouselMove:
    """One destination offered in destination-select."""
    uci: str
    san: str
    from_square: str
    to_square: str
    promotion: str | None = None   # piece letter, "q" for a not-yet-chosen promotion
    # (letter, san) for each promotion choice in q, r, b, n order; empty otherwise
    promotion_sans: tuple[tuple[str, str], ...] = ()

    @property
    def is_promotion(self) -> bool:
        return self.promotion is not None


@dataclass(frozen=True)
class PieceEntry:
    id: str            # "w-n-f3"
    label: str         # "Knight F3"
    color: Color
    piece_type: str    # python-chess symbol, lowercase
    square: str
    moves: tuple[CarouselMove, ...]


@dataclass(frozen=True)
class PositionSnapshot:
    """Everything the reducer needs to know about the oracle's position."""
    fen: str
    turn: Color
    pieces: tuple[PieceEntry, ...]
    in_check: bool


# --------------------------------------------------------------------------- #
# Bullet clocks                                                                #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class ClockState:
    white_ms: int
    black_ms: int
    increment_ms: int

    def remaining(self, color: Color) -> int:
        return self.white_ms if color == "white" else self.black_ms


# --------------------------------------------------------------------------- #
# Academy drills                                                               #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class DrillScore:
    correct: int = 0
    total: int = 0

    def record(self, correct: bool) -> DrillScore:
        return DrillScore(self.correct + (1 if correct else 0), self.total + 1)


@dataclass(frozen=True)
class TacticsPuzzle:
    fen: str
    solution: tuple[str, ...]   # UCI moves
    theme: str
    description: str


@dataclass(frozen=True)
class CoordinateDrill:
    target_square: str
    cursor_file: int = 4
    cursor_rank: int = 3
    nav_axis: NavAxis = "file"
    score: DrillScore = field(default_factory=DrillScore)
    feedback: DrillFeedback = "none"
    drill_type: DrillType = field(default="coordinate", init=False)


@dataclass(frozen=True)
class KnightPathDrill:
    start_square: str
    target_square: str
    current_square: str
    optimal_moves: int
    cursor_file: int
    cursor_rank: int
    moves_taken: int = 0
    path: tuple[str, ...] = ()
    score: DrillScore = field(default_factory=DrillScore)
    feedback: DrillFeedback = "none"
    drill_type: DrillType = field(default="knight_path", init=False)


@dataclass(frozen=True)
class TacticsDrill:
    puzzle: TacticsPuzzle
    drill_type: DrillType = "tactics"   # "tactics" or "mate"
    score: DrillScore = field(default_factory=DrillScore)
    feedback: DrillFeedback = "none"

    @property
    def is_mate(self) -> bool:
        return self.drill_type == "mate"


@dataclass(frozen=True)
class PgnStudyDrill:
    game_name: str
    moves: tuple[str, ...]
    current_move_index: int = 0
    start_fen: str = STARTING_FEN
    score: DrillScore = field(default_factory=DrillScore)
    feedback: DrillFeedback = "none"
    drill_type: DrillType = field(default="pgn", init=False)


# One variant per drill type, each carrying only its own fields
AcademyState = CoordinateDrill | KnightPathDrill | TacticsDrill | PgnStudyDrill


# --------------------------------------------------------------------------- #
# GameState                                                                    #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class GameState:
    # Board identity
    fen: str
    turn: Color
    pieces: tuple[PieceEntry, ...]
    history: tuple[str, ...] = ()
    last_move: str | None = None
    last_move_to_square: str | None = None
    player_last_move_to_square: str | None = None
    in_check: bool = False
    game_over: GameOverReason | None = None

    # UI phase and cursors (each meaningful only in the phases that use it)
    phase: UIPhase = "idle"
    phase_entered_at: int = 0
    previous_phase: UIPhase | None = None
    selected_piece_id: str | None = None
    selected_move_index: int = 0
    pending_promotion_move: tuple[str, str] | None = None   # (from, to)
    selected_promotion_index: int = 0
    menu_selected_index: int = 0
    log_scroll_offset: int = 0
    selected_time_control_index: int = 2

    # Hand-off to the side-effect layer
    pending_move: CarouselMove | None = None
    engine_thinking: bool = False
    has_unsaved_changes: bool = False
    exit_requested: bool = False

    # Settings
    mode: GameMode = "play"
    difficulty: DifficultyLevel = "casual"
    show_board_markers: bool = True

    # Bullet clocks; timers is None outside bullet mode
    timers: ClockState | None = None
    timer_active: bool = False
    last_tick_time: int | None = None

    academy: AcademyState | None = None


def build_initial_state(
    oracle: MoveOracle,
    *,
    difficulty: DifficultyLevel = "casual",
    show_board_markers: bool = True,
    now: int | None = None,
) -> GameState:
    """Create the start-of-session state from the oracle's current position."""
    snap = oracle.state_snapshot()
    return GameState(
        fen=snap.fen,
        turn=snap.turn,
        pieces=snap.pieces,
        in_check=snap.in_check,
        difficulty=difficulty,
        show_board_markers=show_board_markers,
        phase_entered_at=monotonic_ms() if now is None else now,
    )
