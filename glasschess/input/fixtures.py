"""Canned action sequences for demos and tests."""

from __future__ import annotations

import asyncio
from typing import Callable, Sequence

from glasschess.actions import (
    Action,
    DoubleTap,
    EngineMove,
    EngineThinking,
    Scroll,
    Tap,
)

CANCEL: tuple[Action, ...] = (
    Scroll("down"),
    DoubleTap(),
)

FULL_ROUND: tuple[Action, ...] = (
    Scroll("down"),
    Tap(),
    Tap(),
    EngineThinking(),
    EngineMove(
        uci="e7e5",
        san="e5",
        fen="rnbqkbnr/pppp1ppp/8/4p3/8/N7/PPPPPPPP/R1BQKBNR w KQkq - 0 2",
        turn="white",
        pieces=(),
        in_check=False,
    ),
)


async def replay_fixture(
    fixture: Sequence[Action],
    dispatch: Callable[[Action], None],
    delay_ms: int = 300,
) -> None:
    for action in fixture:
        dispatch(action)
        await asyncio.sleep(delay_ms / 1000)
