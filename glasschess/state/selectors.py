"""
Selectors: read-only display data derived from GameState.

Shared by the terminal simulator (cli/display.py) and the web snapshot
(web/app.py) so both show the same text the glasses would. Selectors never
raise on stale cursors: a selection that no longer resolves renders as
nothing selected.
"""

from __future__ import annotations

import math
import re

from glasschess.academy.drills import cursor_square
from glasschess.academy.pgn import positions_for
from glasschess.bullet import format_time
from glasschess.state.constants import (
    BOARD_MARKERS_LABELS,
    DIFFICULTY_LABELS,
    DIFFICULTY_OPTIONS,
    DRILL_LABELS,
    LOG_MAX_VISIBLE,
    LOW_TIME_WARNING_MS,
    MENU_LABELS,
    MODE_LABELS,
    MODE_OPTIONS,
    PROMOTION_LABELS,
    TIME_CONTROLS,
)
from glasschess.state.contracts import (
    CarouselMove,
    CoordinateDrill,
    GameState,
    KnightPathDrill,
    PgnStudyDrill,
    PieceEntry,
    TacticsDrill,
    UIPhase,
)
from glasschess.state.reducer import MENU_TREE_PHASES, selected_piece

_DRILL_PHASES: frozenset[UIPhase] = frozenset({
    "coordinate_drill",
    "tactics_drill",
    "mate_drill",
    "knight_path_drill",
    "pgn_study",
})

_SAN_PIECE_NAME = {"K": "King", "Q": "Queen", "R": "Rook", "B": "Bishop", "N": "Knight"}

_GAME_OVER_TEXT = {
    "checkmate": "Checkmate",
    "stalemate": "Stalemate",
    "repetition": "Draw by repetition",
    "insufficient-material": "Insufficient material",
    "draw": "Draw",
    "time-out": "Out of time",
    "unknown": "Game over",
}


# --------------------------------------------------------------------------- #
# Selection                                                                    #
# --------------------------------------------------------------------------- #

def get_selected_piece(state: GameState) -> PieceEntry | None:
    return selected_piece(state)


def get_selected_move(state: GameState) -> CarouselMove | None:
    piece = selected_piece(state)
    if piece is None or not 0 <= state.selected_move_index < len(piece.moves):
        return None
    return piece.moves[state.selected_move_index]


def board_preview(state: GameState) -> tuple[str | None, str | None]:
    """(origin, destination) squares to highlight on the board image."""
    if state.phase not in ("piece_select", "dest_select", "promotion_select"):
        return None, None
    piece = selected_piece(state)
    move = get_selected_move(state) if state.phase != "piece_select" else None
    return (piece.square if piece else None, move.to_square if move else None)


def move_number(state: GameState) -> int:
    return len(state.history) // 2 + 1


def is_menu_phase(phase: UIPhase) -> bool:
    """Phases that replace the game display with a text overlay."""
    return phase in MENU_TREE_PHASES or phase in _DRILL_PHASES


def is_confirm_phase(phase: UIPhase) -> bool:
    return phase in ("reset_confirm", "exit_confirm")


# --------------------------------------------------------------------------- #
# Move text                                                                    #
# --------------------------------------------------------------------------- #

def expand_move(san: str, *, pawn_prefix: bool = False) -> str:
    """
    Spell out a SAN move for the display.

    "Nf3" -> "Knight F3", "exd5" -> "takes D5" ("Pawn takes D5" in the log),
    "O-O" -> "Castle Short", "e8=Q" -> "E8=Queen".
    """
    if san.startswith("O-O-O"):
        return "Castle Long"
    if san.startswith("O-O"):
        return "Castle Short"

    clean = re.sub(r"[+#]", "", san)
    promo_match = re.search(r"=([QRBN])", clean)
    promotion = _SAN_PIECE_NAME[promo_match.group(1)] if promo_match else None
    clean = re.sub(r"=[QRBN]", "", clean)
    capture = "x" in clean

    name = _SAN_PIECE_NAME.get(clean[:1])
    if name:
        rest = clean[1:].replace("x", "").upper()
        text = f"{name} takes {rest}" if capture else f"{name} {rest}"
    else:
        dest = clean.split("x", 1)[1].upper() if capture else clean.upper()
        text = f"takes {dest}" if capture else dest
        if pawn_prefix:
            text = f"Pawn {text}"
    return f"{text}={promotion}" if promotion else text


def carousel_items(state: GameState) -> list[str]:
    match state.phase:
        case "piece_select":
            return [p.label for p in state.pieces]
        case "dest_select":
            piece = selected_piece(state)
            return [expand_move(m.san) for m in piece.moves] if piece else []
        case "promotion_select":
            return list(PROMOTION_LABELS)
        case _:
            return []


def carousel_selected_index(state: GameState) -> int:
    match state.phase:
        case "piece_select":
            for i, piece in enumerate(state.pieces):
                if piece.id == state.selected_piece_id:
                    return i
            return 0
        case "dest_select":
            return state.selected_move_index
        case "promotion_select":
            return state.selected_promotion_index
        case _:
            return 0


# --------------------------------------------------------------------------- #
# Status and clocks                                                            #
# --------------------------------------------------------------------------- #

def game_over_text(state: GameState) -> str | None:
    if not state.game_over:
        return None
    return _GAME_OVER_TEXT.get(state.game_over, "Game over")


def clock_text(state: GameState) -> str | None:
    if state.mode != "bullet" or state.timers is None:
        return None

    def fmt(ms: int) -> str:
        text = format_time(ms)
        return f"!{text}!" if ms < LOW_TIME_WARNING_MS else text

    return f"W {fmt(state.timers.white_ms)}  |  B {fmt(state.timers.black_ms)}"


def status_text(state: GameState) -> str:
    over = game_over_text(state)
    if over:
        return f"Game Over: {over}"
    if state.engine_thinking:
        return "Engine thinking..."

    parts = [f"{state.turn.capitalize()} to move"]
    if state.last_move:
        parts.append(f"Last: {state.last_move}")
    parts.append(f"Move {move_number(state)}")
    match state.phase:
        case "idle":
            parts.append("Scroll to select piece")
        case "piece_select":
            parts.append("Tap to choose piece")
        case "dest_select":
            piece = selected_piece(state)
            if piece:
                parts.append(f"{piece.label}: tap to move")
        case "promotion_select":
            parts.append("Tap to promote")
    return " | ".join(parts)


# --------------------------------------------------------------------------- #
# Overlay screens                                                              #
# --------------------------------------------------------------------------- #

def _option_lines(labels: tuple[str, ...], cursor: int, current: int | None = None) -> list[str]:
    lines = []
    for i, label in enumerate(labels):
        prefix = "> " if i == cursor else "  "
        suffix = " *" if i == current else ""
        lines.append(f"{prefix}{label}{suffix}")
    return lines


def log_lines(state: GameState) -> list[str]:
    """Move pairs for the log screen, LOG_MAX_VISIBLE at a time from the scroll offset."""
    if not state.history:
        return ["No moves yet"]
    pair_count = math.ceil(len(state.history) / 2)
    start = min(state.log_scroll_offset, pair_count - 1)
    lines = ["White | Black"]
    if start > 0:
        lines.append(f"... {start} earlier moves")
    for i in range(start, min(pair_count, start + LOG_MAX_VISIBLE)):
        white = state.history[i * 2]
        black = state.history[i * 2 + 1] if i * 2 + 1 < len(state.history) else None
        black_text = expand_move(black, pawn_prefix=True) if black else "-"
        lines.append(f"{i + 1}. {expand_move(white, pawn_prefix=True)} | {black_text}")
    return lines


def overlay_lines(state: GameState) -> list[str] | None:
    """Text for menu and academy screens; None while the board is showing."""
    cursor = state.menu_selected_index
    match state.phase:
        case "menu":
            return ["MENU", *_option_lines(MENU_LABELS, cursor)]
        case "view_log":
            return ["MOVE LOG", *log_lines(state)]
        case "difficulty_select":
            current = DIFFICULTY_OPTIONS.index(state.difficulty)
            return ["DIFFICULTY", *_option_lines(DIFFICULTY_LABELS, cursor, current)]
        case "board_markers_select":
            current = 0 if state.show_board_markers else 1
            return ["BOARD MARKERS", *_option_lines(BOARD_MARKERS_LABELS, cursor, current)]
        case "reset_confirm":
            return [
                "RESET GAME",
                "Start a new game?",
                "Progress will be lost.",
                *_option_lines(("Confirm Reset", "Cancel"), cursor),
            ]
        case "exit_confirm":
            return ["UNSAVED CHANGES", "Save before exit?", *_option_lines(("Save & Exit", "Cancel"), cursor)]
        case "mode_select":
            current = MODE_OPTIONS.index(state.mode)
            return ["SELECT MODE", *_option_lines(MODE_LABELS, cursor, current)]
        case "bullet_setup":
            labels = tuple(tc.label for tc in TIME_CONTROLS)
            return ["BULLET BLITZ", "Select time control:", *_option_lines(labels, state.selected_time_control_index)]
        case "academy_select":
            return ["ACADEMY", "Select drill:", *_option_lines(DRILL_LABELS, cursor)]
        case "coordinate_drill" | "knight_path_drill" | "tactics_drill" | "mate_drill" | "pgn_study":
            return drill_lines(state)
        case _:
            return None


def drill_lines(state: GameState) -> list[str]:
    drill = state.academy
    match drill:
        case CoordinateDrill():
            lines = [
                "COORDINATE DRILL",
                f"Score: {drill.score.correct}/{drill.score.total}",
                f"Find: {drill.target_square.upper()}",
            ]
            guess = cursor_square(drill.cursor_file, drill.cursor_rank).upper()
            if drill.feedback == "correct":
                lines += ["+ CORRECT!", "Tap: next square"]
            elif drill.feedback == "incorrect":
                lines += [f"X WRONG ({guess})", "Tap: next square"]
            elif drill.nav_axis == "file":
                lines += [f"Column: < {guess[0]} >", f"   Row: {guess[1]}"]
            else:
                lines += [f"Column: {guess[0]}", f"   Row: < {guess[1]} >"]
            return lines

        case KnightPathDrill():
            lines = ["KNIGHT PATH", f"Score: {drill.score.correct}/{drill.score.total}"]
            moves = f"Moves: {drill.moves_taken}/{drill.optimal_moves}"
            if drill.feedback == "correct":
                lines += ["+ OPTIMAL!", moves, "Tap: next puzzle"]
            elif drill.feedback == "incorrect":
                lines += ["X TOO MANY MOVES", moves, "Tap: next puzzle"]
            else:
                hop = cursor_square(drill.cursor_file, drill.cursor_rank).upper()
                lines += [
                    f"{drill.start_square.upper()} -> {drill.target_square.upper()}",
                    f"Knight on {drill.current_square.upper()}",
                    moves,
                    f"Move to: < {hop} >",
                ]
            return lines

        case TacticsDrill():
            lines = [
                "CHECKMATE" if drill.is_mate else "TACTICS",
                f"Score: {drill.score.correct}/{drill.score.total}",
            ]
            if drill.feedback == "none":
                lines += [
                    "Find mate in 1!" if drill.is_mate else "Find the best move!",
                    f"Theme: {drill.puzzle.theme}",
                    "Tap: show answer",
                ]
            else:
                first = drill.puzzle.solution[0] if drill.puzzle.solution else ""
                lines += [
                    "Solution:",
                    f"{first[:2].upper()} -> {first[2:4].upper()}",
                    drill.puzzle.description,
                    "Tap: next puzzle",
                ]
            return lines

        case PgnStudyDrill():
            lines = ["PGN STUDY", drill.game_name]
            index = drill.current_move_index
            if index == 0:
                lines += ["Start position", "Scroll: step"]
            elif index >= len(drill.moves):
                lines += ["Game complete!", "Tap: next game"]
            else:
                for i in range(max(0, index - 3), index):
                    prefix = f"{i // 2 + 1}." if i % 2 == 0 else ""
                    marker = ">" if i == index - 1 else " "
                    lines.append(f"{marker}{prefix}{drill.moves[i]}")
                lines.append("Scroll: step  Tap: skip")
            return lines

        case _:
            return ["Loading drill..."]


def pgn_study_fen(state: GameState) -> str | None:
    """Board position after the moves stepped through so far in PGN study."""
    drill = state.academy
    if not isinstance(drill, PgnStudyDrill):
        return None
    fens = positions_for(drill.moves[: drill.current_move_index], drill.start_fen)
    return fens[-1]


def display_fen(state: GameState) -> str:
    """The position the board image should show for the current phase."""
    drill = state.academy
    if state.phase in ("tactics_drill", "mate_drill") and isinstance(drill, TacticsDrill):
        return drill.puzzle.fen
    if state.phase == "pgn_study":
        return pgn_study_fen(state) or state.fen
    return state.fen
