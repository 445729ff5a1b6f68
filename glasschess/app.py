"""
ChessApp: wires oracle, store, input mapper, turn loop and storage.

The reducer only computes state; everything that touches the outside world
(the engine, the save file, timers, shutting down) happens here in a store
listener that compares each new state with the previous one.

    raw event -> InputMapper -> Action -> Store -> listener -> TurnLoop / storage
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Callable

from glasschess.actions import (
    Action,
    LoadGame,
    MarkSaved,
    NewGame,
    Refresh,
    TimerTick,
)
from glasschess.config import Config
from glasschess.engine import EngineBridge, TurnLoop, create_bridge, profile_for
from glasschess.input.mapper import InputMapper
from glasschess.input.raw_events import RawEvent
from glasschess.oracle import MoveOracle
from glasschess.persistence import GameStorage
from glasschess.state.contracts import CarouselMove, GameState, build_initial_state, monotonic_ms
from glasschess.state.store import Store, StoreListener

logger = logging.getLogger(__name__)


class ChessApp:
    """
    One glasses session.

    Args:
        config: Loaded configuration.
        storage: Save store (default: GameStorage at config.storage.path).
        bridge: Engine bridge (default: built from config.engine).
        oracle: Rules oracle (default: a fresh MoveOracle).
        clock: Millisecond clock shared by the mapper and the reducer.
        rng: Randomness for drills and the engine fallback.
    """

    def __init__(
        self,
        config: Config,
        *,
        storage: GameStorage | None = None,
        bridge: EngineBridge | None = None,
        oracle: MoveOracle | None = None,
        clock: Callable[[], int] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config
        self.storage = storage or GameStorage(config.storage_path)
        self.oracle = oracle or MoveOracle()
        self._clock = clock or monotonic_ms
        self._rng = rng
        self._bridge = bridge or create_bridge(config.engine, rng)
        self.mapper = InputMapper(config.input, clock=self._clock)
        self._store: Store | None = None
        self._turn_loop: TurnLoop | None = None
        self._unsubscribe: Callable[[], None] | None = None
        self._timer_task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()
        self._shutting_down = False
        self.closed = asyncio.Event()

    # ------------------------------------------------------------------ #
    # Accessors                                                            #
    # ------------------------------------------------------------------ #

    @property
    def store(self) -> Store:
        if self._store is None:
            raise RuntimeError("ChessApp.start() has not been called")
        return self._store

    @property
    def state(self) -> GameState:
        return self.store.state

    @property
    def turn_loop(self) -> TurnLoop:
        if self._turn_loop is None:
            raise RuntimeError("ChessApp.start() has not been called")
        return self._turn_loop

    @property
    def timer_running(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    # ------------------------------------------------------------------ #
    # Lifecycle                                                            #
    # ------------------------------------------------------------------ #

    async def start(self) -> None:
        """Restore settings and any saved game, then begin engine startup in the background."""
        difficulty = self.storage.load_difficulty(self.config.game.default_difficulty)
        show_markers = self.storage.load_board_markers()
        saved = self.storage.load_game()

        restored = False
        if saved is not None:
            restored = self.oracle.load_fen(saved.fen)
            if restored:
                difficulty = saved.difficulty
                logger.info("Restoring saved game (%d moves)", len(saved.history))
            else:
                logger.warning("Ignoring saved game with unusable FEN")

        initial = build_initial_state(
            self.oracle,
            difficulty=difficulty,
            show_board_markers=show_markers,
            now=self._clock(),
        )
        self._store = Store(initial, clock=self._clock, rng=self._rng)
        if restored and saved is not None:
            snap = self.oracle.state_snapshot()
            self._store.dispatch(
                LoadGame(
                    fen=snap.fen,
                    history=saved.history,
                    turn=snap.turn,
                    pieces=snap.pieces,
                    in_check=snap.in_check,
                )
            )

        self._turn_loop = TurnLoop(
            self.oracle,
            self._store,
            self._bridge,
            profile_for(self._store.state.difficulty),
            game_over_delay_ms=self.config.game.game_over_delay_ms,
        )
        self._unsubscribe = self._store.subscribe(self._on_state_change)
        self._spawn(self._init_engine())

    async def shutdown(self) -> None:
        """Stop timers and pending work, close the engine. Safe to call more than once."""
        if self._shutting_down:
            await self.closed.wait()
            return
        self._shutting_down = True
        logger.info("Shutting down")

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._stop_timer()

        current = asyncio.current_task()
        pending = [t for t in self._tasks if t is not current and not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        if self._turn_loop is not None:
            await self._turn_loop.destroy()
        self.closed.set()

    # ------------------------------------------------------------------ #
    # Input                                                                #
    # ------------------------------------------------------------------ #

    def handle_event(self, event: RawEvent) -> Action | None:
        action = self.mapper.map_event(event)
        if action is not None:
            self.store.dispatch(action)
        return action

    def handle_payload(self, payload: Any) -> Action | None:
        action = self.mapper.map_payload(payload)
        if action is not None:
            self.store.dispatch(action)
        return action

    def dispatch(self, action: Action) -> None:
        self.store.dispatch(action)

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        return self.store.subscribe(listener)

    # ------------------------------------------------------------------ #
    # Side effects                                                         #
    # ------------------------------------------------------------------ #

    def _on_state_change(self, state: GameState, prev: GameState) -> None:
        if state.pending_move is not None and prev.pending_move is None:
            self._spawn(self._run_turn(state.pending_move))

        # Saved once the oracle has played the move, so fen and history agree
        if state.fen != prev.fen and state.history:
            self._save(state)
            self.store.dispatch(MarkSaved())

        if state.difficulty != prev.difficulty:
            self.turn_loop.set_profile(profile_for(state.difficulty))
            self.storage.save_difficulty(state.difficulty)
            if state.history:
                self._save(state)
            logger.info("Difficulty changed to %s", state.difficulty)

        if state.show_board_markers != prev.show_board_markers:
            self.storage.save_board_markers(state.show_board_markers)
            logger.info("Board markers %s", "on" if state.show_board_markers else "off")

        self._extend_cooldowns(state, prev)
        self._menu_side_effects(state, prev)
        self._sync_timer(self.store.state)

    def _extend_cooldowns(self, state: GameState, prev: GameState) -> None:
        timing = self.config.input
        if state.phase == prev.phase:
            return
        if state.phase == "menu":
            self.mapper.extend_tap_cooldown(timing.tap_cooldown_menu_ms)
        elif state.phase in ("dest_select", "promotion_select"):
            self.mapper.extend_tap_cooldown(timing.tap_cooldown_dest_select_ms)

    def _menu_side_effects(self, state: GameState, prev: GameState) -> None:
        if state.exit_requested and not prev.exit_requested:
            if prev.has_unsaved_changes and not state.has_unsaved_changes:
                self._save(state)
                logger.info("Game saved before exit")
            self._request_shutdown()
            return

        if prev.phase == "reset_confirm" and state.phase == "idle":
            self.oracle.reset()
            self.storage.clear_save()
            self.store.dispatch(NewGame())
            self._refresh()
            logger.info("Game reset")
            return

        if prev.game_over and not state.game_over:
            # The finished game must not come back on the next start
            self.oracle.reset()
            self.storage.clear_save()
            self._refresh()
            return

        if prev.phase == "bullet_setup" and state.phase == "idle" and state.mode == "bullet":
            self.oracle.reset()
            self.storage.clear_save()
            self._refresh()

    def _sync_timer(self, state: GameState) -> None:
        running = state.mode == "bullet" and state.timer_active
        if running and not self.timer_running and not self._shutting_down:
            self._timer_task = asyncio.get_running_loop().create_task(self._tick_timer())
        elif not running:
            self._stop_timer()

    # ------------------------------------------------------------------ #
    # Helpers                                                              #
    # ------------------------------------------------------------------ #

    def _refresh(self) -> None:
        self.store.dispatch(Refresh.from_snapshot(self.oracle.state_snapshot()))

    def _save(self, state: GameState) -> None:
        if not state.history:
            return
        self.storage.save_game(state.fen, state.history, state.turn, state.difficulty)

    def _spawn(self, coro: Any) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _request_shutdown(self) -> None:
        if not self._shutting_down:
            self._spawn(self.shutdown())

    def _stop_timer(self) -> None:
        task, self._timer_task = self._timer_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    async def _init_engine(self) -> None:
        try:
            await self.turn_loop.init()
        except Exception:
            logger.exception("Engine init failed")

    async def _run_turn(self, move: CarouselMove) -> None:
        try:
            await self.turn_loop.on_player_moved(move)
        except Exception:
            logger.exception("Turn loop failed for %s", move.uci)

    async def _tick_timer(self) -> None:
        interval = self.config.game.timer_tick_ms / 1000
        while True:
            await asyncio.sleep(interval)
            if self._timer_task is not asyncio.current_task():
                return
            self.store.dispatch(TimerTick())
