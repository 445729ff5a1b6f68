"""
Thin facade over python-chess Board: the move oracle.

Provides the exact interface the reducer, turn loop and app layer need
without leaking python-chess internals into the rest of the codebase.
All chess rules live in python-chess; this module only shapes its answers
into PieceEntry / CarouselMove values.
"""

from __future__ import annotations

import logging

import chess

from glasschess.state.contracts import (
    CarouselMove,
    Color,
    GameOverReason,
    PieceEntry,
    PositionSnapshot,
)

logger = logging.getLogger(__name__)

_PIECE_LABEL = {
    chess.KING: "King",
    chess.QUEEN: "Queen",
    chess.ROOK: "Rook",
    chess.BISHOP: "Bishop",
    chess.KNIGHT: "Knight",
    chess.PAWN: "Pawn",
}

# q, r, b, n: the promotion carousel order
_PROMOTION_ORDER = (chess.QUEEN, chess.ROOK, chess.BISHOP, chess.KNIGHT)


def piece_id(color: Color, piece_type: str, square: str) -> str:
    """Stable piece identifier, e.g. "w-n-f3" for a white knight on f3."""
    return f"{color[0]}-{piece_type}-{square}"


def _color_name(turn: chess.Color) -> Color:
    return "white" if turn == chess.WHITE else "black"


class MoveOracle:
    """Facade over chess.Board."""

    def __init__(self, fen: str | None = None) -> None:
        self._starting_fen = fen
        self._board = chess.Board(fen) if fen else chess.Board()
        self._pieces_cache: tuple[str, tuple[PieceEntry, ...]] | None = None

    # ------------------------------------------------------------------ #
    # State queries                                                        #
    # ------------------------------------------------------------------ #

    @property
    def fen(self) -> str:
        return self._board.fen()

    @property
    def turn(self) -> Color:
        return _color_name(self._board.turn)

    @property
    def is_check(self) -> bool:
        return self._board.is_check()

    @property
    def is_game_over(self) -> bool:
        # Claimable draws (threefold repetition, fifty moves) end the game
        return self._board.is_game_over(claim_draw=True)

    def game_over_reason(self) -> GameOverReason | None:
        outcome = self._board.outcome(claim_draw=True)
        if outcome is None:
            return None
        match outcome.termination:
            case chess.Termination.CHECKMATE:
                return "checkmate"
            case chess.Termination.STALEMATE:
                return "stalemate"
            case chess.Termination.THREEFOLD_REPETITION | chess.Termination.FIVEFOLD_REPETITION:
                return "repetition"
            case chess.Termination.INSUFFICIENT_MATERIAL:
                return "insufficient-material"
            case chess.Termination.FIFTY_MOVES | chess.Termination.SEVENTYFIVE_MOVES:
                return "draw"
            case _:
                return "unknown"

    def legal_moves_uci(self) -> list[str]:
        return [m.uci() for m in self._board.legal_moves]

    def legal_moves(self, from_square: str | None = None) -> list[CarouselMove]:
        """
        Legal moves as carousel entries, optionally scoped to one origin square.

        The four promotion variants of a pawn move collapse into a single
        entry (promotion="q") carrying the SAN of every choice, so
        destination-select lists each square once.
        """
        if from_square is None:
            moves = list(self._board.legal_moves)
        else:
            try:
                origin = chess.parse_square(from_square)
            except ValueError:
                return []
            moves = [m for m in self._board.legal_moves if m.from_square == origin]
        return self._carousel_moves(moves)

    def pieces_with_moves(self) -> tuple[PieceEntry, ...]:
        """
        Side-to-move pieces that have at least one legal move.

        Ordered rank 1 to 8, then file a to h. Memoized by FEN.
        """
        fen = self._board.fen()
        if self._pieces_cache is not None and self._pieces_cache[0] == fen:
            return self._pieces_cache[1]

        by_square: dict[chess.Square, list[chess.Move]] = {}
        for move in self._board.legal_moves:
            by_square.setdefault(move.from_square, []).append(move)

        entries: list[PieceEntry] = []
        # chess.Square index is rank * 8 + file, which is exactly board order
        for square in sorted(by_square):
            piece = self._board.piece_at(square)
            if piece is None:
                continue
            name = chess.square_name(square)
            color = _color_name(piece.color)
            entries.append(
                PieceEntry(
                    id=piece_id(color, piece.symbol().lower(), name),
                    label=f"{_PIECE_LABEL[piece.piece_type]} {name.upper()}",
                    color=color,
                    piece_type=piece.symbol().lower(),
                    square=name,
                    moves=tuple(self._carousel_moves(by_square[square])),
                )
            )

        pieces = tuple(entries)
        self._pieces_cache = (fen, pieces)
        return pieces

    def state_snapshot(self) -> PositionSnapshot:
        return PositionSnapshot(
            fen=self.fen,
            turn=self.turn,
            pieces=self.pieces_with_moves(),
            in_check=self.is_check,
        )

    def history_san(self) -> list[str]:
        """All moves played since the last reset/load in SAN (replays from start)."""
        board_copy = chess.Board(self._starting_fen) if self._starting_fen else chess.Board()
        san_moves: list[str] = []
        for move in self._board.move_stack:
            san_moves.append(board_copy.san(move))
            board_copy.push(move)
        return san_moves

    # ------------------------------------------------------------------ #
    # Move application                                                    #
    # ------------------------------------------------------------------ #

    def make_move(
        self,
        from_square: str,
        to_square: str,
        promotion: str | None = None,
    ) -> str | None:
        """Apply a move by origin/destination. Returns its SAN, or None if illegal."""
        try:
            origin = chess.parse_square(from_square)
            dest = chess.parse_square(to_square)
            promo = chess.Piece.from_symbol(promotion).piece_type if promotion else None
        except ValueError:
            logger.error("Malformed move %s%s%s", from_square, to_square, promotion or "")
            return None

        move = chess.Move(origin, dest, promotion=promo)
        if promo is None and move not in self._board.legal_moves:
            # A pawn reaching the last rank without a choice promotes to a queen
            queen = chess.Move(origin, dest, promotion=chess.QUEEN)
            if queen in self._board.legal_moves:
                move = queen
        return self._push(move)

    def make_move_uci(self, uci: str) -> str | None:
        """Apply a move given as a UCI string. Returns its SAN, or None if illegal."""
        try:
            move = chess.Move.from_uci(uci.strip())
        except (ValueError, chess.InvalidMoveError):
            logger.error("Malformed UCI move %r", uci)
            return None
        return self._push(move)

    def _push(self, move: chess.Move) -> str | None:
        if move not in self._board.legal_moves:
            logger.error("Illegal move %s in %s", move.uci(), self._board.fen())
            return None
        san = self._board.san(move)
        self._board.push(move)
        return san

    # ------------------------------------------------------------------ #
    # Position management                                                  #
    # ------------------------------------------------------------------ #

    def reset(self) -> None:
        self._starting_fen = None
        self._board.reset()

    def load_fen(self, fen: str) -> bool:
        """Replace the position. Returns False (and keeps the old one) on a bad FEN."""
        try:
            board = chess.Board(fen)
        except ValueError:
            logger.warning("Rejected FEN %r", fen)
            return False
        self._board = board
        self._starting_fen = fen
        return True

    # ------------------------------------------------------------------ #
    # Helpers                                                              #
    # ------------------------------------------------------------------ #

    def _carousel_moves(self, moves: list[chess.Move]) -> list[CarouselMove]:
        grouped: dict[tuple[chess.Square, chess.Square], list[chess.Move]] = {}
        for move in moves:
            grouped.setdefault((move.from_square, move.to_square), []).append(move)

        def sort_key(key: tuple[chess.Square, chess.Square]) -> tuple[int, int, int, int]:
            origin, dest = key
            mover = self._board.color_at(origin)
            rank = chess.square_rank(dest) + 1
            progress = rank if mover == chess.WHITE else 9 - rank
            capture = self._board.is_capture(grouped[key][0])
            # captures first, then furthest toward the opponent, then rank, file
            return (0 if capture else 1, -progress, rank, chess.square_file(dest))

        result: list[CarouselMove] = []
        for key in sorted(grouped, key=sort_key):
            variants = grouped[key]
            origin_name = chess.square_name(key[0])
            dest_name = chess.square_name(key[1])
            promotions = {m.promotion: m for m in variants if m.promotion}
            if promotions:
                sans = tuple(
                    (chess.piece_symbol(p), self._board.san(promotions[p]))
                    for p in _PROMOTION_ORDER
                    if p in promotions
                )
                result.append(
                    CarouselMove(
                        uci=promotions[chess.QUEEN].uci() if chess.QUEEN in promotions else variants[0].uci(),
                        san=sans[0][1],
                        from_square=origin_name,
                        to_square=dest_name,
                        promotion=sans[0][0],
                        promotion_sans=sans,
                    )
                )
            else:
                move = variants[0]
                result.append(
                    CarouselMove(
                        uci=move.uci(),
                        san=self._board.san(move),
                        from_square=origin_name,
                        to_square=dest_name,
                    )
                )
        return result
