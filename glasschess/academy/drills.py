"""Coordinate drill helpers: random targets and axis-bound cursor movement."""

from __future__ import annotations

import random

from glasschess.squares import FILES, RANKS, indices_to_square
from glasschess.state.contracts import NavAxis

DEFAULT_CURSOR = (4, 3)   # e4


def random_square(rng: random.Random | None = None) -> str:
    r = rng or random
    return f"{r.choice(FILES)}{r.choice(RANKS)}"


def check_coordinate_answer(target: str, guess: str) -> bool:
    return target.lower() == guess.lower()


def step(index: int, direction: str) -> int:
    """Move one of the 0-7 cursor indices, wrapping. Up is +1."""
    return (index + 1) % 8 if direction == "up" else (index - 1) % 8


def move_cursor(file: int, rank: int, axis: NavAxis, direction: str) -> tuple[int, int]:
    if axis == "file":
        return step(file, direction), rank
    return file, step(rank, direction)


def cursor_square(file: int, rank: int) -> str:
    return indices_to_square(file, rank)
