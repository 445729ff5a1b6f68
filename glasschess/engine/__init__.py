"""
Engine package.

create_bridge() is the single entry point for building the EngineBridge
a session plays against. An engine section with no command builds a
bridge that only ever plays the random-move fallback.
"""

from __future__ import annotations

import random

from glasschess.config import EngineConfig
from glasschess.engine.bridge import EngineBridge
from glasschess.engine.profiles import (
    CASUAL,
    EASY,
    PROFILE_BY_DIFFICULTY,
    SERIOUS,
    EngineProfile,
    profile_for,
)
from glasschess.engine.turnloop import TurnLoop

__all__ = [
    "EngineBridge",
    "EngineProfile",
    "TurnLoop",
    "EASY",
    "CASUAL",
    "SERIOUS",
    "PROFILE_BY_DIFFICULTY",
    "profile_for",
    "create_bridge",
]


def create_bridge(config: EngineConfig, rng: random.Random | None = None) -> EngineBridge:
    """
    Instantiate an EngineBridge from the engine config section.

    Args:
        config: The loaded engine section.
        rng:    Randomness for the fallback mover and MultiPV variety picks.
    """
    return EngineBridge(
        config.command,
        init_timeout=config.init_timeout,
        grace_seconds=config.grace_seconds,
        multipv=config.multipv,
        fallback_max_think_ms=config.fallback_max_think_ms,
        rng=rng,
    )
