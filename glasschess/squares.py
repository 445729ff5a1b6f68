"""
Square notation helpers.

File indices run 0-7 for a-h, rank indices 0-7 for 1-8. Used by the academy
drills, which move a cursor around the board without touching a real position.
"""

from __future__ import annotations

FILES = "abcdefgh"
RANKS = "12345678"


def file_index(square: str) -> int:
    return FILES.find(square[:1].lower()) if square else -1


def rank_index(square: str) -> int:
    return RANKS.find(square[1:2]) if len(square) > 1 else -1


def square_to_indices(square: str) -> tuple[int, int]:
    return file_index(square), rank_index(square)


def indices_to_square(file: int, rank: int) -> str:
    return f"{FILES[file]}{RANKS[rank]}"


def is_valid_indices(file: int, rank: int) -> bool:
    return 0 <= file < 8 and 0 <= rank < 8
