"""
State reducer: pure function (state, action) -> state.

Implements the UI state machine driven by scroll / tap / double-tap:

    idle ──scroll/tap──▶ piece_select ──tap──▶ dest_select ──tap──▶ idle
      │                    │ double-tap → idle    │ double-tap → piece_select
      │ double-tap                                │ tap on a promotion
      ▼                                           ▼
    menu ◀──────────── open_menu ──────    promotion_select ──tap──▶ idle

The menu is a small tree (view log, difficulty, board markers, mode, bullet
setup, academy, reset / exit confirmation) and the academy hosts five drill
sub-machines.

reduce() never raises, never touches the oracle, timers, network or storage,
and returns the very same object when an action changes nothing. Move
execution, engine requests and persistence happen in the side-effect layer
(glasschess/app.py), which watches state transitions.

Time and randomness are parameters (`now` in milliseconds, `rng`) so every
transition is reproducible in tests.
"""

from __future__ import annotations

import math
import random
from dataclasses import replace
from typing import Any, NamedTuple

from glasschess.academy.drills import DEFAULT_CURSOR, cursor_square, move_cursor, random_square
from glasschess.academy.knight import generate_knight_puzzle, is_valid_knight_move, knight_moves
from glasschess.academy.pgn import random_famous_game
from glasschess.academy.puzzles import random_mate_puzzle, random_tactics_puzzle
from glasschess.actions import (
    Action,
    ApplyIncrement,
    CloseMenu,
    ConfirmExit,
    DoubleTap,
    DrillAnswer,
    EngineError,
    EngineMove,
    EngineThinking,
    ForegroundEnter,
    ForegroundExit,
    GameOver,
    LoadGame,
    MarkSaved,
    MenuSelect,
    NewGame,
    NextDrillQuestion,
    OpenMenu,
    Refresh,
    Scroll,
    ScrollDirection,
    SetBoardMarkers,
    SetDifficulty,
    SetMode,
    StartBulletGame,
    StartDrill,
    Tap,
    TimerTick,
)
from glasschess.bullet import add_increment, deduct, is_time_expired
from glasschess.squares import square_to_indices
from glasschess.state.constants import (
    BOARD_MARKERS_OPTIONS,
    CONFIRM_OPTION_COUNT,
    DEFAULT_TIME_CONTROL_INDEX,
    DIFFICULTY_OPTIONS,
    DRILL_OPTIONS,
    GESTURE_DISAMBIGUATION_MS,
    LOG_MAX_VISIBLE,
    MAX_HISTORY_LENGTH,
    MENU_INDEX,
    MENU_OPTIONS,
    MODE_OPTIONS,
    PROMOTION_PIECE_KEYS,
    TIME_CONTROLS,
    TimeControl,
)
from glasschess.state.contracts import (
    CarouselMove,
    ClockState,
    CoordinateDrill,
    DrillScore,
    DrillType,
    GameMode,
    GameState,
    KnightPathDrill,
    MenuOption,
    PgnStudyDrill,
    PieceEntry,
    TacticsDrill,
    UIPhase,
    monotonic_ms,
)

_default_rng = random.Random()


class _Env(NamedTuple):
    now: int
    rng: random.Random


# Accepted while a game-over result is showing
_GAME_OVER_ALLOWED = (NewGame, OpenMenu, CloseMenu, DoubleTap)

# Player input that would race ahead of an outstanding engine reply
_BLOCKED_WHILE_THINKING = (
    Scroll,
    Tap,
    DoubleTap,
    OpenMenu,
    CloseMenu,
    MenuSelect,
    SetDifficulty,
    SetBoardMarkers,
    SetMode,
    StartBulletGame,
    StartDrill,
    DrillAnswer,
    NextDrillQuestion,
)

# Screens reached from the menu; opening the menu from one of them keeps
# the gameplay phase recorded when the menu tree was first entered.
MENU_TREE_PHASES: frozenset[UIPhase] = frozenset({
    "menu",
    "view_log",
    "difficulty_select",
    "board_markers_select",
    "reset_confirm",
    "exit_confirm",
    "mode_select",
    "bullet_setup",
    "academy_select",
})

_TIMER_RESUME_PHASES: frozenset[UIPhase] = frozenset({"idle", "piece_select", "dest_select"})

_DRILL_PHASES: dict[DrillType, UIPhase] = {
    "coordinate": "coordinate_drill",
    "tactics": "tactics_drill",
    "mate": "mate_drill",
    "knight_path": "knight_path_drill",
    "pgn": "pgn_study",
}

_NEW_GAME_FIELDS: dict[str, Any] = dict(
    phase="idle",
    selected_piece_id=None,
    selected_move_index=0,
    pending_promotion_move=None,
    selected_promotion_index=0,
    history=(),
    last_move=None,
    last_move_to_square=None,
    player_last_move_to_square=None,
    engine_thinking=False,
    game_over=None,
    pending_move=None,
    has_unsaved_changes=False,
    menu_selected_index=0,
    previous_phase=None,
    log_scroll_offset=0,
)


def reduce(
    state: GameState,
    action: Action,
    *,
    now: int | None = None,
    rng: random.Random | None = None,
) -> GameState:
    """Apply one action. Returns `state` itself when nothing changes."""
    if state.game_over and not isinstance(action, _GAME_OVER_ALLOWED):
        return state
    if state.engine_thinking and isinstance(action, _BLOCKED_WHILE_THINKING):
        return state

    env = _Env(monotonic_ms() if now is None else now, rng or _default_rng)
    new = _apply(state, action, env)
    if new is state:
        return state
    # Re-entering the current phase with nothing else changed is a no-op
    if new.phase == state.phase and replace(new, phase_entered_at=state.phase_entered_at) == state:
        return state
    return new


def _apply(state: GameState, action: Action, env: _Env) -> GameState:
    match action:
        case Scroll(direction=direction):
            return _scroll(state, direction, env)
        case Tap():
            return _tap(state, env)
        case DoubleTap():
            return _double_tap(state, env)
        case EngineThinking():
            return state if state.engine_thinking else replace(state, engine_thinking=True)
        case EngineError():
            return replace(state, engine_thinking=False) if state.engine_thinking else state
        case EngineMove():
            return _engine_move(state, action, env)
        case GameOver(reason=reason):
            return _goto(state, "idle", env, game_over=reason, engine_thinking=False)
        case NewGame():
            return replace(state, **_NEW_GAME_FIELDS, phase_entered_at=env.now)
        case Refresh():
            return replace(
                state,
                fen=action.fen,
                turn=action.turn,
                pieces=action.pieces,
                in_check=action.in_check,
                pending_move=None,
                has_unsaved_changes=len(state.history) > 0,
            )
        case LoadGame():
            return _goto(
                state,
                "idle",
                env,
                fen=action.fen,
                history=tuple(action.history)[-MAX_HISTORY_LENGTH:],
                turn=action.turn,
                pieces=action.pieces,
                in_check=action.in_check,
                last_move=action.history[-1] if action.history else None,
                last_move_to_square=None,
                player_last_move_to_square=None,
                selected_piece_id=None,
                selected_move_index=0,
                has_unsaved_changes=False,
                menu_selected_index=0,
                previous_phase=None,
                log_scroll_offset=0,
            )
        case ForegroundEnter() | ForegroundExit():
            return state
        case OpenMenu():
            return _open_menu(state, env)
        case CloseMenu():
            return _close_menu(state, env)
        case MenuSelect(option=option):
            return _menu_select(state, option, env)
        case ConfirmExit(save=save):
            return _confirm_exit(state, save, env)
        case MarkSaved():
            return replace(state, has_unsaved_changes=False) if state.has_unsaved_changes else state
        case SetDifficulty(level=level):
            return _goto(state, "menu", env, difficulty=level, menu_selected_index=MENU_INDEX["difficulty"])
        case SetBoardMarkers(enabled=enabled):
            return _goto(
                state, "menu", env,
                show_board_markers=enabled,
                menu_selected_index=MENU_INDEX["board_markers"],
            )
        case SetMode(mode=mode):
            return _set_mode(state, mode, env)
        case StartBulletGame(time_control_index=index):
            return _start_bullet_game(state, index, env)
        case TimerTick():
            return _timer_tick(state, env)
        case ApplyIncrement(color=color):
            if state.timers is None or state.timers.increment_ms == 0:
                return state
            return replace(state, timers=add_increment(state.timers, color))
        case StartDrill(drill_type=drill_type):
            return _start_drill(state, drill_type, env)
        case DrillAnswer(correct=correct):
            if state.academy is None:
                return state
            return replace(state, academy=replace(state.academy, score=state.academy.score.record(correct)))
        case NextDrillQuestion():
            if not isinstance(state.academy, CoordinateDrill):
                return state
            return replace(state, academy=_next_coordinate_question(state.academy, env))
        case _:
            return state


# --------------------------------------------------------------------------- #
# Helpers                                                                      #
# --------------------------------------------------------------------------- #

def _goto(state: GameState, phase: UIPhase, env: _Env, **changes: Any) -> GameState:
    return replace(state, phase=phase, phase_entered_at=env.now, **changes)


def _cycle(index: int, count: int, direction: ScrollDirection) -> int:
    if count <= 0:
        return 0
    return (index + 1) % count if direction == "down" else (index - 1) % count


def selected_piece(state: GameState) -> PieceEntry | None:
    if state.selected_piece_id is None:
        return None
    return next((p for p in state.pieces if p.id == state.selected_piece_id), None)


def _piece_index(state: GameState) -> int:
    for i, piece in enumerate(state.pieces):
        if piece.id == state.selected_piece_id:
            return i
    return 0


def _initial_piece(state: GameState) -> PieceEntry | None:
    """The piece that made the player's last move if it is still there, else the first one."""
    if not state.pieces:
        return None
    if state.player_last_move_to_square:
        for piece in state.pieces:
            if piece.square == state.player_last_move_to_square:
                return piece
    return state.pieces[0]


def _enter_piece_select(state: GameState, env: _Env) -> GameState:
    initial = _initial_piece(state)
    if initial is None:
        return state
    changes: dict[str, Any] = dict(selected_piece_id=initial.id, selected_move_index=0)
    if state.mode == "bullet" and state.timers is not None and not state.timer_active:
        changes.update(timer_active=True, last_tick_time=env.now)
    return _goto(state, "piece_select", env, **changes)


def _commit_move(state: GameState, move: CarouselMove, env: _Env, **extra: Any) -> GameState:
    return _goto(
        state,
        "idle",
        env,
        history=(state.history + (move.san,))[-MAX_HISTORY_LENGTH:],
        last_move=move.san,
        last_move_to_square=move.to_square,
        player_last_move_to_square=move.to_square,
        selected_piece_id=None,
        selected_move_index=0,
        pending_move=move,
        has_unsaved_changes=True,
        **extra,
    )


def _back_to_menu(state: GameState, option: MenuOption, env: _Env) -> GameState:
    return _goto(state, "menu", env, menu_selected_index=MENU_INDEX[option])


def _log_max_offset(state: GameState) -> int:
    return max(0, math.ceil(len(state.history) / 2) - LOG_MAX_VISIBLE)


# --------------------------------------------------------------------------- #
# Scroll                                                                       #
# --------------------------------------------------------------------------- #

def _scroll(state: GameState, direction: ScrollDirection, env: _Env) -> GameState:
    match state.phase:
        case "idle":
            return _enter_piece_select(state, env)

        case "piece_select":
            if not state.pieces:
                return state
            piece = state.pieces[_cycle(_piece_index(state), len(state.pieces), direction)]
            return replace(state, selected_piece_id=piece.id, selected_move_index=0)

        case "dest_select":
            piece = selected_piece(state)
            if piece is None or not piece.moves:
                return state
            return replace(
                state,
                selected_move_index=_cycle(state.selected_move_index, len(piece.moves), direction),
            )

        case "promotion_select":
            return replace(
                state,
                selected_promotion_index=_cycle(
                    state.selected_promotion_index, len(PROMOTION_PIECE_KEYS), direction
                ),
            )

        case "menu":
            return _cycle_menu(state, len(MENU_OPTIONS), direction)
        case "difficulty_select":
            return _cycle_menu(state, len(DIFFICULTY_OPTIONS), direction)
        case "board_markers_select":
            return _cycle_menu(state, len(BOARD_MARKERS_OPTIONS), direction)
        case "mode_select":
            return _cycle_menu(state, len(MODE_OPTIONS), direction)
        case "academy_select":
            return _cycle_menu(state, len(DRILL_OPTIONS), direction)

        case "reset_confirm" | "exit_confirm":
            # Two options: either direction flips
            return replace(state, menu_selected_index=1 - min(state.menu_selected_index, CONFIRM_OPTION_COUNT - 1))

        case "view_log":
            if direction == "down":
                offset = min(state.log_scroll_offset + 1, _log_max_offset(state))
            else:
                offset = max(state.log_scroll_offset - 1, 0)
            return state if offset == state.log_scroll_offset else replace(state, log_scroll_offset=offset)

        case "bullet_setup":
            return replace(
                state,
                selected_time_control_index=_cycle(
                    state.selected_time_control_index, len(TIME_CONTROLS), direction
                ),
            )

        case "coordinate_drill":
            drill = state.academy
            if not isinstance(drill, CoordinateDrill):
                return state
            file, rank = move_cursor(drill.cursor_file, drill.cursor_rank, drill.nav_axis, direction)
            return replace(state, academy=replace(drill, cursor_file=file, cursor_rank=rank, feedback="none"))

        case "knight_path_drill":
            drill = state.academy
            if not isinstance(drill, KnightPathDrill):
                return state
            hops = knight_moves(drill.current_square)
            if not hops:
                return state
            highlight = cursor_square(drill.cursor_file, drill.cursor_rank)
            current = hops.index(highlight) if highlight in hops else 0
            file, rank = square_to_indices(hops[_cycle(current, len(hops), direction)])
            return replace(state, academy=replace(drill, cursor_file=file, cursor_rank=rank, feedback="none"))

        case "pgn_study":
            drill = state.academy
            if not isinstance(drill, PgnStudyDrill):
                return state
            if direction == "down":
                index = min(len(drill.moves), drill.current_move_index + 1)
            else:
                index = max(0, drill.current_move_index - 1)
            if index == drill.current_move_index:
                return state
            return replace(state, academy=replace(drill, current_move_index=index))

        case _:
            return state


def _cycle_menu(state: GameState, count: int, direction: ScrollDirection) -> GameState:
    return replace(state, menu_selected_index=_cycle(state.menu_selected_index, count, direction))


# --------------------------------------------------------------------------- #
# Tap                                                                          #
# --------------------------------------------------------------------------- #

def _tap(state: GameState, env: _Env) -> GameState:
    match state.phase:
        case "idle":
            return _enter_piece_select(state, env)

        case "piece_select":
            piece = selected_piece(state) or (state.pieces[0] if state.pieces else None)
            if piece is None:
                return state
            return _goto(state, "dest_select", env, selected_piece_id=piece.id, selected_move_index=0)

        case "dest_select":
            piece = selected_piece(state)
            if piece is None or not 0 <= state.selected_move_index < len(piece.moves):
                return state
            move = piece.moves[state.selected_move_index]
            if move.is_promotion:
                return _goto(
                    state,
                    "promotion_select",
                    env,
                    pending_promotion_move=(move.from_square, move.to_square),
                    selected_promotion_index=0,
                )
            return _commit_move(state, move, env)

        case "promotion_select":
            return _commit_promotion(state, env)

        case "menu":
            return _menu_select(state, MENU_OPTIONS[state.menu_selected_index % len(MENU_OPTIONS)], env)

        case "view_log":
            return _back_to_menu(state, "view_log", env)

        case "exit_confirm":
            if state.menu_selected_index == 0:
                return _confirm_exit(state, True, env)
            return _back_to_menu(state, "exit", env)

        case "reset_confirm":
            if state.menu_selected_index == 0:
                # The side-effect layer sees reset_confirm -> idle and resets the board
                return _goto(state, "idle", env, previous_phase=None)
            return _back_to_menu(state, "reset", env)

        case "difficulty_select":
            level = DIFFICULTY_OPTIONS[state.menu_selected_index % len(DIFFICULTY_OPTIONS)]
            return _goto(state, "menu", env, difficulty=level, menu_selected_index=MENU_INDEX["difficulty"])

        case "board_markers_select":
            enabled = BOARD_MARKERS_OPTIONS[state.menu_selected_index % len(BOARD_MARKERS_OPTIONS)] == "on"
            return _goto(
                state, "menu", env,
                show_board_markers=enabled,
                menu_selected_index=MENU_INDEX["board_markers"],
            )

        case "mode_select":
            return _set_mode(state, MODE_OPTIONS[state.menu_selected_index % len(MODE_OPTIONS)], env)

        case "bullet_setup":
            return _start_bullet_game(state, state.selected_time_control_index, env)

        case "academy_select":
            return _start_drill(state, DRILL_OPTIONS[state.menu_selected_index % len(DRILL_OPTIONS)], env)

        case "coordinate_drill":
            return _coordinate_tap(state, env)
        case "knight_path_drill":
            return _knight_path_tap(state, env)
        case "tactics_drill" | "mate_drill":
            return _tactics_tap(state, env)
        case "pgn_study":
            return _pgn_tap(state, env)

        case _:
            return state


def _commit_promotion(state: GameState, env: _Env) -> GameState:
    if state.pending_promotion_move is None:
        return state
    if not 0 <= state.selected_promotion_index < len(PROMOTION_PIECE_KEYS):
        return state
    origin, dest = state.pending_promotion_move
    key = PROMOTION_PIECE_KEYS[state.selected_promotion_index]

    base = None
    piece = selected_piece(state)
    if piece is not None:
        base = next(
            (m for m in piece.moves if m.from_square == origin and m.to_square == dest),
            None,
        )
    sans = dict(base.promotion_sans) if base is not None else {}
    move = CarouselMove(
        uci=f"{origin}{dest}{key}",
        san=sans.get(key, f"{dest}={key.upper()}"),
        from_square=origin,
        to_square=dest,
        promotion=key,
    )
    return _commit_move(state, move, env, pending_promotion_move=None, selected_promotion_index=0)


# --------------------------------------------------------------------------- #
# Double-tap                                                                   #
# --------------------------------------------------------------------------- #

def _double_tap(state: GameState, env: _Env) -> GameState:
    if state.game_over:
        return _new_game_after_game_over(state, env)

    match state.phase:
        case "idle":
            return _open_menu(state, env)

        case "piece_select":
            # A scroll and a double-tap can arrive coalesced: the scroll lands
            # first and enters piece_select, so a double-tap right after it
            # still means "open the menu".
            if env.now - state.phase_entered_at < GESTURE_DISAMBIGUATION_MS:
                return _open_menu(state, env)
            return _goto(state, "idle", env, selected_piece_id=None, selected_move_index=0)

        case "dest_select":
            return _goto(state, "piece_select", env, selected_move_index=0)

        case "promotion_select":
            return _goto(state, "dest_select", env, pending_promotion_move=None, selected_promotion_index=0)

        case "menu":
            return _close_menu(state, env)

        case "view_log":
            return _back_to_menu(state, "view_log", env)
        case "reset_confirm":
            return _back_to_menu(state, "reset", env)
        case "exit_confirm":
            return _back_to_menu(state, "exit", env)
        case "difficulty_select":
            return _back_to_menu(state, "difficulty", env)
        case "board_markers_select":
            return _back_to_menu(state, "board_markers", env)
        case "mode_select":
            return _back_to_menu(state, "mode", env)

        case "bullet_setup":
            return _goto(state, "mode_select", env, menu_selected_index=MODE_OPTIONS.index("bullet"))
        case "academy_select":
            return _goto(state, "mode_select", env, menu_selected_index=MODE_OPTIONS.index("academy"))

        case "coordinate_drill":
            drill = state.academy
            if isinstance(drill, CoordinateDrill) and drill.nav_axis == "rank":
                return replace(state, academy=replace(drill, nav_axis="file"))
            return _leave_drill(state, env)

        case "tactics_drill" | "mate_drill" | "knight_path_drill" | "pgn_study":
            return _leave_drill(state, env)

        case _:
            return state


def _leave_drill(state: GameState, env: _Env) -> GameState:
    return _goto(state, "academy_select", env, academy=None, menu_selected_index=0)


def _new_game_after_game_over(state: GameState, env: _Env) -> GameState:
    fresh = replace(state, **_NEW_GAME_FIELDS, phase_entered_at=env.now)
    if state.mode != "bullet":
        return fresh
    control = _time_control(state.selected_time_control_index)
    return replace(
        fresh,
        timers=ClockState(control.initial_ms, control.initial_ms, control.increment_ms),
        timer_active=False,
        last_tick_time=None,
    )


# --------------------------------------------------------------------------- #
# Menu                                                                         #
# --------------------------------------------------------------------------- #

def _open_menu(state: GameState, env: _Env) -> GameState:
    if state.engine_thinking:
        return state
    if state.phase in MENU_TREE_PHASES:
        previous = state.previous_phase or "idle"
    else:
        previous = state.phase
    changes: dict[str, Any] = dict(menu_selected_index=0, previous_phase=previous)
    if state.mode == "bullet" and state.timer_active and state.timers is not None:
        changes["timer_active"] = False
    return _goto(state, "menu", env, **changes)


def _close_menu(state: GameState, env: _Env) -> GameState:
    changes: dict[str, Any] = dict(menu_selected_index=0, previous_phase=None)
    if (
        state.mode == "bullet"
        and state.timers is not None
        and not state.game_over
        and state.previous_phase in _TIMER_RESUME_PHASES
    ):
        changes.update(timer_active=True, last_tick_time=env.now)
    return _goto(state, state.previous_phase or "idle", env, **changes)


def _menu_select(state: GameState, option: MenuOption, env: _Env) -> GameState:
    match option:
        case "mode":
            return _goto(state, "mode_select", env, menu_selected_index=MODE_OPTIONS.index(state.mode))
        case "board_markers":
            return _goto(
                state, "board_markers_select", env,
                menu_selected_index=0 if state.show_board_markers else 1,
            )
        case "view_log":
            # Start at the end so the most recent moves are visible
            return _goto(state, "view_log", env, log_scroll_offset=_log_max_offset(state))
        case "difficulty":
            index = DIFFICULTY_OPTIONS.index(state.difficulty) if state.difficulty in DIFFICULTY_OPTIONS else 0
            return _goto(state, "difficulty_select", env, menu_selected_index=index)
        case "reset":
            # Cursor starts on "Cancel"
            return _goto(state, "reset_confirm", env, menu_selected_index=1)
        case "exit":
            if state.has_unsaved_changes:
                return _goto(state, "exit_confirm", env, menu_selected_index=0)
            return _goto(state, "idle", env, previous_phase=None, menu_selected_index=0, exit_requested=True)
        case _:
            return state


def _confirm_exit(state: GameState, save: bool, env: _Env) -> GameState:
    return _goto(
        state,
        "idle",
        env,
        has_unsaved_changes=False if save else state.has_unsaved_changes,
        previous_phase=None,
        exit_requested=True,
    )


def _set_mode(state: GameState, mode: GameMode, env: _Env) -> GameState:
    match mode:
        case "play":
            return _goto(
                state, "idle", env,
                mode="play",
                timers=None,
                timer_active=False,
                last_tick_time=None,
                academy=None,
                menu_selected_index=0,
                previous_phase=None,
                log_scroll_offset=0,
            )
        case "bullet":
            return _goto(state, "bullet_setup", env, mode="bullet", academy=None, log_scroll_offset=0)
        case "academy":
            return _goto(
                state, "academy_select", env,
                mode="academy",
                timers=None,
                timer_active=False,
                last_tick_time=None,
                menu_selected_index=0,
                log_scroll_offset=0,
            )
        case _:
            return state


# --------------------------------------------------------------------------- #
# Bullet                                                                       #
# --------------------------------------------------------------------------- #

def _time_control_index(index: int) -> int:
    return index if 0 <= index < len(TIME_CONTROLS) else DEFAULT_TIME_CONTROL_INDEX


def _time_control(index: int) -> TimeControl:
    return TIME_CONTROLS[_time_control_index(index)]


def _start_bullet_game(state: GameState, index: int, env: _Env) -> GameState:
    control = _time_control(index)
    return replace(
        state,
        **_NEW_GAME_FIELDS,
        phase_entered_at=env.now,
        mode="bullet",
        timers=ClockState(control.initial_ms, control.initial_ms, control.increment_ms),
        # The clock starts with the player's first scroll
        timer_active=False,
        last_tick_time=None,
        selected_time_control_index=_time_control_index(index),
    )


def _timer_tick(state: GameState, env: _Env) -> GameState:
    if not state.timer_active or state.timers is None:
        return state
    elapsed = env.now - state.last_tick_time if state.last_tick_time is not None else 0
    timers = deduct(state.timers, state.turn, max(0, elapsed))
    if is_time_expired(timers, state.turn):
        return _goto(
            state,
            "idle",
            env,
            timers=timers,
            last_tick_time=env.now,
            timer_active=False,
            game_over="time-out",
            engine_thinking=False,
            selected_piece_id=None,
            selected_move_index=0,
            pending_promotion_move=None,
        )
    return replace(state, timers=timers, last_tick_time=env.now)


# --------------------------------------------------------------------------- #
# Engine                                                                       #
# --------------------------------------------------------------------------- #

def _engine_move(state: GameState, action: EngineMove, env: _Env) -> GameState:
    return _goto(
        state,
        "idle",
        env,
        fen=action.fen,
        turn=action.turn,
        pieces=action.pieces,
        in_check=action.in_check,
        last_move=action.san,
        last_move_to_square=action.uci[2:4] if len(action.uci) >= 4 else None,
        history=(state.history + (action.san,))[-MAX_HISTORY_LENGTH:],
        engine_thinking=False,
        selected_piece_id=None,
        selected_move_index=0,
        pending_promotion_move=None,
        pending_move=None,
        has_unsaved_changes=True,
    )


# --------------------------------------------------------------------------- #
# Academy                                                                      #
# --------------------------------------------------------------------------- #

def _start_drill(state: GameState, drill_type: DrillType, env: _Env) -> GameState:
    match drill_type:
        case "coordinate":
            drill = CoordinateDrill(target_square=random_square(env.rng))
        case "knight_path":
            drill = _new_knight_drill(env)
        case "tactics":
            drill = TacticsDrill(puzzle=random_tactics_puzzle(env.rng))
        case "mate":
            drill = TacticsDrill(puzzle=random_mate_puzzle(env.rng), drill_type="mate")
        case "pgn":
            game = random_famous_game(env.rng)
            drill = PgnStudyDrill(game_name=game.name, moves=game.moves)
        case _:
            return state
    return _goto(
        state, _DRILL_PHASES[drill_type], env,
        mode="academy",
        academy=drill,
        menu_selected_index=DRILL_OPTIONS.index(drill_type),
    )


def _next_coordinate_question(drill: CoordinateDrill, env: _Env) -> CoordinateDrill:
    file, rank = DEFAULT_CURSOR
    return replace(
        drill,
        target_square=random_square(env.rng),
        cursor_file=file,
        cursor_rank=rank,
        nav_axis="file",
        feedback="none",
    )


def _coordinate_tap(state: GameState, env: _Env) -> GameState:
    drill = state.academy
    if not isinstance(drill, CoordinateDrill):
        return state
    if drill.feedback != "none":
        return replace(state, academy=_next_coordinate_question(drill, env))
    if drill.nav_axis == "file":
        return replace(state, academy=replace(drill, nav_axis="rank"))
    correct = cursor_square(drill.cursor_file, drill.cursor_rank) == drill.target_square.lower()
    return replace(
        state,
        academy=replace(
            drill,
            feedback="correct" if correct else "incorrect",
            score=drill.score.record(correct),
        ),
    )


def _new_knight_drill(env: _Env, score: DrillScore | None = None) -> KnightPathDrill:
    puzzle = generate_knight_puzzle(2, 4, env.rng)
    file, rank = _first_hop(puzzle.start)
    drill = KnightPathDrill(
        start_square=puzzle.start,
        target_square=puzzle.target,
        current_square=puzzle.start,
        optimal_moves=puzzle.optimal_moves,
        cursor_file=file,
        cursor_rank=rank,
        path=(puzzle.start,),
    )
    return drill if score is None else replace(drill, score=score)


def _first_hop(square: str) -> tuple[int, int]:
    hops = knight_moves(square)
    return square_to_indices(hops[0] if hops else square)


def _knight_path_tap(state: GameState, env: _Env) -> GameState:
    drill = state.academy
    if not isinstance(drill, KnightPathDrill):
        return state
    if drill.feedback != "none":
        return replace(state, academy=_new_knight_drill(env, score=drill.score))

    dest = cursor_square(drill.cursor_file, drill.cursor_rank)
    if not is_valid_knight_move(drill.current_square, dest):
        return state

    moved = replace(
        drill,
        current_square=dest,
        moves_taken=drill.moves_taken + 1,
        path=drill.path + (dest,),
    )
    if dest == drill.target_square.lower():
        optimal = moved.moves_taken <= drill.optimal_moves
        return replace(
            state,
            academy=replace(
                moved,
                feedback="correct" if optimal else "incorrect",
                score=drill.score.record(optimal),
            ),
        )
    if moved.moves_taken >= drill.optimal_moves + 2:
        return replace(state, academy=replace(moved, feedback="incorrect", score=drill.score.record(False)))

    file, rank = _first_hop(dest)
    return replace(state, academy=replace(moved, cursor_file=file, cursor_rank=rank))


def _tactics_tap(state: GameState, env: _Env) -> GameState:
    drill = state.academy
    if not isinstance(drill, TacticsDrill):
        return state
    if drill.feedback != "none":
        puzzle = random_mate_puzzle(env.rng) if drill.is_mate else random_tactics_puzzle(env.rng)
        return replace(state, academy=replace(drill, puzzle=puzzle, feedback="none"))
    # Reveal the solution; a reveal counts as an attempt, not a solve
    return replace(
        state,
        academy=replace(drill, feedback="correct", score=replace(drill.score, total=drill.score.total + 1)),
    )


def _pgn_tap(state: GameState, env: _Env) -> GameState:
    drill = state.academy
    if not isinstance(drill, PgnStudyDrill):
        return state
    if drill.current_move_index >= len(drill.moves):
        game = random_famous_game(env.rng)
        return replace(
            state,
            academy=PgnStudyDrill(game_name=game.name, moves=game.moves, score=drill.score.record(True)),
        )
    return replace(state, academy=replace(drill, current_move_index=len(drill.moves)))
