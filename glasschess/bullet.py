"""Bullet clock helpers shared by the reducer, selectors and simulators."""

from __future__ import annotations

from glasschess.state.contracts import ClockState, Color


def deduct(clock: ClockState, color: Color, elapsed_ms: int) -> ClockState:
    """Charge elapsed time to one side, never below zero."""
    if color == "white":
        return ClockState(max(0, clock.white_ms - elapsed_ms), clock.black_ms, clock.increment_ms)
    return ClockState(clock.white_ms, max(0, clock.black_ms - elapsed_ms), clock.increment_ms)


def add_increment(clock: ClockState, color: Color) -> ClockState:
    if color == "white":
        return ClockState(clock.white_ms + clock.increment_ms, clock.black_ms, clock.increment_ms)
    return ClockState(clock.white_ms, clock.black_ms + clock.increment_ms, clock.increment_ms)


def is_time_expired(clock: ClockState | None, color: Color) -> bool:
    return clock is not None and clock.remaining(color) <= 0


def format_time(ms: int) -> str:
    """Milliseconds as M:SS, e.g. 65_000 -> "1:05"."""
    total_sec = max(0, ms) // 1000
    return f"{total_sec // 60}:{total_sec % 60:02d}"
