"""Tactics and mate-in-one puzzle tables."""

from __future__ import annotations

import random

from glasschess.state.contracts import TacticsPuzzle


def _p(fen: str, solution: str, theme: str, description: str) -> TacticsPuzzle:
    return TacticsPuzzle(fen=fen, solution=tuple(solution.split()), theme=theme, description=description)


TACTICS_PUZZLES: tuple[TacticsPuzzle, ...] = (
    _p("r1bqkb1r/pppp1ppp/2n2n2/4p2Q/2B1P3/8/PPPP1PPP/RNB1K1NR w KQkq - 4 4",
       "h5f7", "fork", "Scholar's mate threat, fork king and rook"),
    _p("r1bqkbnr/pppp1ppp/2n5/4p3/2B1P3/5N2/PPPP1PPP/RNBQK2R w KQkq - 4 4",
       "f3g5", "fork", "Knight attacks f7 and threatens a fork"),
    _p("r2qkb1r/ppp2ppp/2n1bn2/3pp3/4P3/2N2N2/PPPP1PPP/R1BQKB1R w KQkq - 0 6",
       "e4d5 e6d5 f3e5", "fork", "Knight fork wins material"),
    _p("r1b1kb1r/pppp1ppp/2n2n2/4N3/2B1P2q/8/PPPP1PPP/RNBQK2R w KQkq - 0 5",
       "e5f7", "fork", "Knight forks king and rook"),
    _p("r1bqk2r/pppp1ppp/2n2n2/2b1p3/2B1P3/3P1N2/PPP2PPP/RNBQK2R w KQkq - 0 5",
       "c4f7", "fork", "Bishop sacrifice leads to a fork"),
    _p("r1bqkbnr/pppp1ppp/2n5/4p3/4P3/5N2/PPPP1PPP/RNBQKB1R w KQkq - 2 3",
       "f1b5", "pin", "Pin the knight to the king"),
    _p("r1bqk1nr/pppp1ppp/2n5/2b1p3/2B1P3/5N2/PPPP1PPP/RNBQK2R w KQkq - 4 4",
       "c4f7", "pin", "Attack the pinned f7 pawn"),
    _p("r2qkbnr/ppp2ppp/2np4/4p3/2B1P1b1/5N2/PPPP1PPP/RNBQK2R w KQkq - 0 5",
       "h2h3", "pin", "Break the pin by attacking the bishop"),
    _p("r1bqk2r/pppp1ppp/2n2n2/4p1B1/1b2P3/2N2N2/PPPP1PPP/R2QKB1R b KQkq - 5 5",
       "b4c3", "pin", "Take the pinned knight"),
    _p("r1b1k2r/ppppqppp/2n2n2/4p1B1/1b2P3/2NP1N2/PPP2PPP/R2QKB1R w KQkq - 0 6",
       "g5f6", "pin", "Capture with the pinning piece"),
    _p("4k3/8/8/8/8/8/4R3/4K3 w - - 0 1",
       "e2e8", "skewer", "Rook skewer along the file"),
    _p("r3k3/8/8/8/8/8/8/R3K3 w Qq - 0 1",
       "a1a8", "skewer", "Rook skewer wins the rook"),
    _p("6k1/5ppp/8/8/2B5/8/5PPP/6K1 w - - 0 1",
       "c4e6", "skewer", "Bishop skewer threatens a pawn"),
    _p("r1bqkbnr/pppp1ppp/2n5/4N3/4P3/8/PPPP1PPP/RNBQKB1R b KQkq - 0 3",
       "c6e5", "discovered", "Discovered attack on the queen"),
    _p("r1bqk2r/pppp1ppp/2n2n2/2b1N3/2B1P3/8/PPPP1PPP/RNBQK2R w KQkq - 0 5",
       "e5d7", "discovered", "Knight moves with a discovered attack"),
    _p("6k1/5ppp/8/8/8/8/5PPP/4R1K1 w - - 0 1",
       "e1e8", "back_rank", "Back rank mate in one"),
    _p("r4rk1/5ppp/8/8/8/8/5PPP/R4RK1 w - - 0 1",
       "a1a8", "back_rank", "Rook takes with a back rank threat"),
    _p("3r2k1/5ppp/8/8/8/8/5PPP/3RR1K1 w - - 0 1",
       "e1e8", "back_rank", "Double rook back rank mate"),
)

MATE_PUZZLES: tuple[TacticsPuzzle, ...] = (
    _p("6k1/5ppp/8/8/8/8/5PPP/4R1K1 w - - 0 1", "e1e8", "mate", "Rook back rank mate"),
    _p("6k1/5ppp/8/8/8/8/8/R5K1 w - - 0 1", "a1a8", "mate", "Rook delivers back rank mate"),
    _p("6k1/5ppp/8/8/8/8/8/Q5K1 w - - 0 1", "a1a8", "mate", "Queen back rank mate"),
    _p("6k1/5ppp/8/8/8/8/8/4Q1K1 w - - 0 1", "e1e8", "mate", "Queen mates on e8"),
    _p("6k1/R7/8/8/8/8/8/1R4K1 w - - 0 1", "b1b8", "mate", "Rook ladder mate"),
    _p("7k/R7/8/8/8/8/8/1R4K1 w - - 0 1", "b1b8", "mate", "Double rook mate"),
    _p("7k/8/5N2/8/5K2/8/8/6R1 w - - 0 1", "g1g8", "mate", "Arabian mate"),
    _p("5k2/5P2/5K2/8/8/8/8/7Q w - - 0 1", "h1h8", "mate", "Lolli's mate"),
    _p("r1bqkb1r/pppp1ppp/2n2n2/4p2Q/2B1P3/8/PPPP1PPP/RNB1K1NR w KQkq - 0 1",
       "h5f7", "mate", "Scholar's mate"),
    _p("6k1/5ppp/8/8/8/8/8/3Q2K1 w - - 0 1", "d1d8", "mate", "Corridor mate"),
    _p("5k2/8/4BK2/8/8/8/8/7Q w - - 0 1", "h1h8", "mate", "Max Lange's mate"),
    _p("1k6/1B6/1K6/8/8/8/8/R7 w - - 0 1", "a1a8", "mate", "Opera mate"),
    _p("7k/5Q1p/8/8/8/8/8/6K1 w - - 0 1", "f7f8", "mate", "Triangle mate"),
)


def random_tactics_puzzle(rng: random.Random | None = None) -> TacticsPuzzle:
    return (rng or random).choice(TACTICS_PUZZLES)


def random_mate_puzzle(rng: random.Random | None = None) -> TacticsPuzzle:
    mate_in_one = [p for p in MATE_PUZZLES if len(p.solution) == 1]
    return (rng or random).choice(mate_in_one or MATE_PUZZLES)


def check_tactics_answer(puzzle: TacticsPuzzle, move: str, move_index: int) -> bool:
    if not 0 <= move_index < len(puzzle.solution):
        return False
    return move.lower() == puzzle.solution[move_index].lower()


def uci_to_readable(uci: str) -> str:
    """Convert a UCI move such as e7e8q to the display form E7-E8=Q."""
    if len(uci) < 4:
        return uci
    promo = f"={uci[4].upper()}" if len(uci) > 4 else ""
    return f"{uci[:2].upper()}-{uci[2:4].upper()}{promo}"
