"""
Rich-based terminal rendering of the glasses display.

This is the ONLY place where terminal output happens for the simulator.
It draws what the glasses would show for a GameState: the board (with the
selection markers), the option carousel or menu overlay, clocks and the
status line. All text comes from state/selectors.py.
"""

from __future__ import annotations

import chess
from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from glasschess.academy.drills import cursor_square
from glasschess.state.contracts import CoordinateDrill, GameState, KnightPathDrill
from glasschess.state.selectors import (
    board_preview,
    carousel_items,
    carousel_selected_index,
    clock_text,
    display_fen,
    overlay_lines,
    status_text,
)

console = Console(legacy_windows=False)

_HELP = "[dim]w/up scroll up · s/down scroll down · enter/t tap · dd double-tap · m menu · q quit[/]"


def render_state(state: GameState) -> None:
    """Print one frame for the given state."""
    console.print()
    overlay = overlay_lines(state)
    board = _board_text(state)

    if overlay is not None and state.phase not in _DRILL_BOARD_PHASES:
        console.print(
            Panel(
                "\n".join(overlay),
                title="[bold green] glasschess [/]",
                border_style="green",
                expand=False,
            )
        )
    else:
        body: list[Text | str] = [board]
        if overlay is not None:
            body += ["", *overlay]
        else:
            body += _carousel_lines(state)
        console.print(
            Panel(
                Group(*body),
                subtitle=f"[dim]{display_fen(state)}[/]",
                border_style="red" if state.in_check else "dim",
                padding=(0, 1),
                expand=False,
            )
        )

    clocks = clock_text(state)
    if clocks:
        console.print(f"[bold]{clocks}[/]")
    console.print(f"[dim]{status_text(state)}[/]" if not state.game_over else f"[bold yellow]{status_text(state)}[/]")


def print_help() -> None:
    console.print(_HELP)


def print_banner(engine_label: str) -> None:
    console.print(
        Panel(
            f"[bold white]glasschess[/]  [dim]glasses chess simulator[/]\n[dim]engine: {engine_label}[/]",
            title="[bold green] glasschess [/]",
            border_style="green",
            expand=False,
        )
    )
    print_help()


# --------------------------------------------------------------------------- #
# Board                                                                        #
# --------------------------------------------------------------------------- #

# Drill screens keep the board visible under the drill text
_DRILL_BOARD_PHASES = frozenset({
    "coordinate_drill",
    "knight_path_drill",
    "tactics_drill",
    "mate_drill",
    "pgn_study",
})


def _highlights(state: GameState) -> dict[str, str]:
    marks: dict[str, str] = {}
    drill = state.academy
    if state.phase == "coordinate_drill" and isinstance(drill, CoordinateDrill):
        marks[cursor_square(drill.cursor_file, drill.cursor_rank)] = "reverse"
        return marks
    if state.phase == "knight_path_drill" and isinstance(drill, KnightPathDrill):
        marks[drill.current_square] = "bold green"
        marks[drill.target_square] = "bold red"
        marks[cursor_square(drill.cursor_file, drill.cursor_rank)] = "reverse"
        return marks

    if state.show_board_markers and state.last_move_to_square:
        marks[state.last_move_to_square] = "underline"
    origin, dest = board_preview(state)
    if origin:
        marks[origin] = "reverse"
    if dest:
        marks[dest] = "bold reverse yellow"
    return marks


def _board_text(state: GameState) -> Text:
    try:
        board = chess.Board(display_fen(state))
    except ValueError:
        return Text("(invalid position)", style="red")

    marks = _highlights(state)
    text = Text()
    for rank in range(7, -1, -1):
        text.append(f"{rank + 1} ", style="dim")
        for file in range(8):
            square = chess.square(file, rank)
            piece = board.piece_at(square)
            symbol = piece.unicode_symbol() if piece else ("·" if (file + rank) % 2 else " ")
            name = chess.square_name(square)
            text.append(f" {symbol} ", style=marks.get(name, ""))
        text.append("\n")
    text.append("   " + "".join(f" {f} " for f in "abcdefgh"), style="dim")
    return text


def _carousel_lines(state: GameState) -> list[Text | str]:
    items = carousel_items(state)
    if not items:
        return []
    selected = carousel_selected_index(state)
    line = Text()
    for i, item in enumerate(items):
        if i:
            line.append("  ")
        line.append(item, style="bold reverse" if i == selected else "dim")
    return ["", line]
