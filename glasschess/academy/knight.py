"""
Knight path challenge: breadth-first distances and puzzle generation.

A puzzle is a (start, target) pair whose shortest knight route falls inside
a requested distance band. The player hops one square at a time and is
graded against the BFS optimum.
"""

from __future__ import annotations

import random
from collections import deque
from dataclasses import dataclass

from glasschess.squares import indices_to_square, is_valid_indices, square_to_indices

_KNIGHT_OFFSETS = (
    (-2, -1), (-2, 1), (-1, -2), (-1, 2),
    (1, -2), (1, 2), (2, -1), (2, 1),
)

_MAX_ATTEMPTS = 100


@dataclass(frozen=True)
class KnightPuzzle:
    start: str
    target: str
    optimal_moves: int


# Used when random sampling keeps missing the distance band
FALLBACK_PUZZLE = KnightPuzzle(start="a1", target="d1", optimal_moves=3)


def knight_moves(square: str) -> list[str]:
    file, rank = square_to_indices(square.lower())
    if not is_valid_indices(file, rank):
        return []
    return [
        indices_to_square(file + df, rank + dr)
        for df, dr in _KNIGHT_OFFSETS
        if is_valid_indices(file + df, rank + dr)
    ]


def knight_distance(start: str, end: str) -> int:
    """Fewest knight hops from start to end, or -1 if unreachable."""
    if start == end:
        return 0
    visited = {start}
    queue = deque([(start, 0)])
    while queue:
        square, distance = queue.popleft()
        for nxt in knight_moves(square):
            if nxt == end:
                return distance + 1
            if nxt not in visited:
                visited.add(nxt)
                queue.append((nxt, distance + 1))
    return -1


def is_valid_knight_move(origin: str, dest: str) -> bool:
    return dest.lower() in knight_moves(origin)


def generate_knight_puzzle(
    min_moves: int = 2,
    max_moves: int = 4,
    rng: random.Random | None = None,
) -> KnightPuzzle:
    r = rng or random
    for _ in range(_MAX_ATTEMPTS):
        start = indices_to_square(r.randrange(8), r.randrange(8))
        target = indices_to_square(r.randrange(8), r.randrange(8))
        if start == target:
            continue
        distance = knight_distance(start, target)
        if min_moves <= distance <= max_moves:
            return KnightPuzzle(start=start, target=target, optimal_moves=distance)
    return FALLBACK_PUZZLE
