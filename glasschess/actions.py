"""
Typed action dataclasses: the shared language between input, engine and reducer.

The input mapper and the side-effect layer produce these; reduce() consumes them.
All actions are frozen (immutable) so they are safe to pass across async
boundaries, replay from fixtures and serialize via dataclasses.asdict().
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from glasschess.state.contracts import (
    Color,
    DifficultyLevel,
    DrillType,
    GameMode,
    GameOverReason,
    MenuOption,
    PieceEntry,
    PositionSnapshot,
)

ScrollDirection = Literal["up", "down"]


# --------------------------------------------------------------------------- #
# Gestures                                                                     #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class Scroll:
    direction: ScrollDirection


@dataclass(frozen=True)
class Tap:
    selected_index: int = 0
    selected_name: str = ""


@dataclass(frozen=True)
class DoubleTap:
    pass


@dataclass(frozen=True)
class ForegroundEnter:
    pass


@dataclass(frozen=True)
class ForegroundExit:
    pass


# --------------------------------------------------------------------------- #
# Engine / position                                                            #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class EngineThinking:
    pass


@dataclass(frozen=True)
class EngineError:
    pass


@dataclass(frozen=True)
class EngineMove:
    uci: str
    san: str
    fen: str
    turn: Color
    pieces: tuple[PieceEntry, ...]
    in_check: bool


@dataclass(frozen=True)
class GameOver:
    reason: GameOverReason


@dataclass(frozen=True)
class NewGame:
    pass


@dataclass(frozen=True)
class Refresh:
    fen: str
    turn: Color
    pieces: tuple[PieceEntry, ...]
    in_check: bool

    @classmethod
    def from_snapshot(cls, snap: PositionSnapshot) -> Refresh:
        return cls(fen=snap.fen, turn=snap.turn, pieces=snap.pieces, in_check=snap.in_check)


@dataclass(frozen=True)
class LoadGame:
    fen: str
    history: tuple[str, ...]
    turn: Color
    pieces: tuple[PieceEntry, ...]
    in_check: bool


# --------------------------------------------------------------------------- #
# Menu and settings                                                            #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class OpenMenu:
    pass


@dataclass(frozen=True)
class CloseMenu:
    pass


@dataclass(frozen=True)
class MenuSelect:
    option: MenuOption


@dataclass(frozen=True)
class ConfirmExit:
    save: bool


@dataclass(frozen=True)
class MarkSaved:
    pass


@dataclass(frozen=True)
class SetDifficulty:
    level: DifficultyLevel


@dataclass(frozen=True)
class SetBoardMarkers:
    enabled: bool


@dataclass(frozen=True)
class SetMode:
    mode: GameMode


# --------------------------------------------------------------------------- #
# Bullet                                                                       #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class StartBulletGame:
    time_control_index: int


@dataclass(frozen=True)
class TimerTick:
    pass


@dataclass(frozen=True)
class ApplyIncrement:
    color: Color


# --------------------------------------------------------------------------- #
# Academy                                                                      #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class StartDrill:
    drill_type: DrillType


@dataclass(frozen=True)
class DrillAnswer:
    correct: bool


@dataclass(frozen=True)
class NextDrillQuestion:
    pass


# Union type for type-safe pattern matching in reduce()
Action = (
    Scroll
    | Tap
    | DoubleTap
    | ForegroundEnter
    | ForegroundExit
    | EngineThinking
    | EngineError
    | EngineMove
    | GameOver
    | NewGame
    | Refresh
    | LoadGame
    | OpenMenu
    | CloseMenu
    | MenuSelect
    | ConfirmExit
    | MarkSaved
    | SetDifficulty
    | SetBoardMarkers
    | SetMode
    | StartBulletGame
    | TimerTick
    | ApplyIncrement
    | StartDrill
    | DrillAnswer
    | NextDrillQuestion
)
