"""Engine strength presets, one per difficulty level."""

from __future__ import annotations

from dataclasses import dataclass

from glasschess.state.contracts import DifficultyLevel


@dataclass(frozen=True)
class EngineProfile:
    name: str
    skill: int          # UCI "Skill Level" (0-20)
    depth: int
    movetime_ms: int
    variety: bool = False  # pick among the top MultiPV lines instead of the best one

    @property
    def movetime_seconds(self) -> float:
        return self.movetime_ms / 1000


EASY = EngineProfile("Easy", skill=3, depth=6, movetime_ms=600, variety=True)
CASUAL = EngineProfile("Casual", skill=5, depth=8, movetime_ms=1000)
SERIOUS = EngineProfile("Serious", skill=15, depth=15, movetime_ms=3000)

PROFILE_BY_DIFFICULTY: dict[DifficultyLevel, EngineProfile] = {
    "easy": EASY,
    "casual": CASUAL,
    "serious": SERIOUS,
}


def profile_for(level: str) -> EngineProfile:
    return PROFILE_BY_DIFFICULTY.get(level, CASUAL)  # type: ignore[call-overload]
