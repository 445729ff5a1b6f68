import asyncio
import random
import unittest
import uuid
from pathlib import Path
from typing import Callable

from glasschess.actions import (
    ConfirmExit,
    DoubleTap,
    GameOver,
    MenuSelect,
    OpenMenu,
    Refresh,
    Scroll,
    SetBoardMarkers,
    SetDifficulty,
    SetMode,
    StartBulletGame,
    Tap,
)
from glasschess.app import ChessApp
from glasschess.config import Config, EngineConfig, GameConfig, StorageConfig
from glasschess.engine.profiles import EASY, SERIOUS
from glasschess.oracle import MoveOracle
from glasschess.persistence import GameStorage
from glasschess.state.constants import MENU_INDEX
from glasschess.state.contracts import STARTING_FEN

AFTER_E4_E5 = "rnbqkbnr/pppp1ppp/8/4p3/4P3/8/PPPP1PPP/RNBQKBNR w KQkq - 0 2"
BACK_RANK_FEN = "6k1/5ppp/8/8/8/8/5PPP/4R1K1 w - - 0 1"


class FakeClock:
    def __init__(self) -> None:
        self.now = 100_000

    def __call__(self) -> int:
        return self.now


class AppTestCase(unittest.IsolatedAsyncioTestCase):
    def _config(self) -> Config:
        path = Path(f".test_app_save_{uuid.uuid4().hex}.json")
        self.addCleanup(lambda: path.unlink(missing_ok=True))
        return Config(
            engine=EngineConfig(command=None, fallback_max_think_ms=0),
            game=GameConfig(default_difficulty="easy", game_over_delay_ms=10, timer_tick_ms=10),
            storage=StorageConfig(path=str(path)),
        )

    async def _start(self, config: Config | None = None, **kwargs) -> ChessApp:
        app = ChessApp(config or self._config(), rng=random.Random(3), **kwargs)
        self.addAsyncCleanup(app.shutdown)
        await app.start()
        return app

    async def _wait_until(self, predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        async with asyncio.timeout(timeout):
            while not predicate():
                await asyncio.sleep(0.01)


class StartupTests(AppTestCase):
    async def test_store_requires_start(self) -> None:
        app = ChessApp(self._config())
        with self.assertRaises(RuntimeError):
            _ = app.state

    async def test_fresh_start_uses_configured_difficulty(self) -> None:
        app = await self._start()
        self.assertEqual(app.state.phase, "idle")
        self.assertEqual(app.state.fen, STARTING_FEN)
        self.assertEqual(app.state.difficulty, "easy")
        self.assertIs(app.turn_loop.profile, EASY)

    async def test_saved_game_is_restored(self) -> None:
        config = self._config()
        GameStorage(config.storage_path).save_game(AFTER_E4_E5, ["e4", "e5"], "white", "serious")
        app = await self._start(config)
        state = app.state
        self.assertEqual(state.fen, AFTER_E4_E5)
        self.assertEqual(state.history, ("e4", "e5"))
        self.assertEqual(state.last_move, "e5")
        self.assertEqual(state.difficulty, "serious")
        self.assertFalse(state.has_unsaved_changes)
        self.assertIs(app.turn_loop.profile, SERIOUS)

    async def test_unusable_save_is_ignored(self) -> None:
        config = self._config()
        GameStorage(config.storage_path).save_game("garbage", ["e4"], "black")
        with self.assertLogs("glasschess.app", level="WARNING"):
            app = await self._start(config)
        self.assertEqual(app.state.fen, STARTING_FEN)
        self.assertEqual(app.state.history, ())


class GameplayTests(AppTestCase):
    async def test_player_move_gets_engine_reply_and_autosaves(self) -> None:
        app = await self._start()
        for action in (Scroll("down"), Tap(), Tap()):
            app.dispatch(action)
        await self._wait_until(lambda: len(app.state.history) == 2 and not app.state.engine_thinking)

        state = app.state
        self.assertEqual(state.history[0], "Na3")
        self.assertEqual(state.turn, "white")
        self.assertFalse(state.has_unsaved_changes)
        saved = app.storage.load_game()
        assert saved is not None
        self.assertEqual(saved.history, state.history)
        self.assertEqual(saved.fen, app.oracle.fen)

    async def test_settings_are_persisted(self) -> None:
        app = await self._start()
        app.dispatch(OpenMenu())
        app.dispatch(SetDifficulty("serious"))
        app.dispatch(SetBoardMarkers(False))
        self.assertEqual(app.storage.load_difficulty(), "serious")
        self.assertFalse(app.storage.load_board_markers())
        self.assertIs(app.turn_loop.profile, SERIOUS)
        self.assertFalse(app.storage.has_saved_game())

    async def test_reset_clears_board_and_save(self) -> None:
        config = self._config()
        GameStorage(config.storage_path).save_game(AFTER_E4_E5, ["e4", "e5"], "white")
        app = await self._start(config)
        app.dispatch(OpenMenu())
        app.dispatch(MenuSelect("reset"))
        app.dispatch(Scroll("up"))
        app.dispatch(Tap())

        self.assertEqual(app.state.phase, "idle")
        self.assertEqual(app.state.history, ())
        self.assertEqual(app.state.fen, STARTING_FEN)
        self.assertEqual(app.oracle.fen, STARTING_FEN)
        self.assertFalse(app.storage.has_saved_game())

    async def test_mating_move_saves_final_position(self) -> None:
        app = await self._start(oracle=MoveOracle(BACK_RANK_FEN))
        app.dispatch(Scroll("down"))
        for _ in range(len(app.state.pieces)):
            if app.state.selected_piece_id == "w-r-e1":
                break
            app.dispatch(Scroll("down"))
        rook = next(p for p in app.state.pieces if p.id == "w-r-e1")
        target = next(i for i, m in enumerate(rook.moves) if m.to_square == "e8")

        app.dispatch(Tap())
        for _ in range(target):
            app.dispatch(Scroll("down"))
        app.dispatch(Tap())
        await self._wait_until(lambda: app.state.game_over is not None)

        self.assertEqual(app.state.game_over, "checkmate")
        saved = app.storage.load_game()
        assert saved is not None
        self.assertEqual(saved.history, ("Re8#",))
        self.assertEqual(saved.fen, app.oracle.fen)
        self.assertNotEqual(saved.fen, BACK_RANK_FEN)

    async def test_new_game_after_game_over_clears_save(self) -> None:
        config = self._config()
        GameStorage(config.storage_path).save_game(AFTER_E4_E5, ["e4", "e5"], "white")
        app = await self._start(config)
        app.dispatch(GameOver(reason="stalemate"))
        self.assertTrue(app.storage.has_saved_game())

        app.dispatch(DoubleTap())
        self.assertIsNone(app.state.game_over)
        self.assertEqual(app.state.fen, STARTING_FEN)
        self.assertEqual(app.oracle.fen, STARTING_FEN)
        self.assertFalse(app.storage.has_saved_game())

    async def test_starting_bullet_game_clears_save(self) -> None:
        config = self._config()
        GameStorage(config.storage_path).save_game(AFTER_E4_E5, ["e4", "e5"], "white")
        app = await self._start(config)
        app.dispatch(OpenMenu())
        app.dispatch(MenuSelect("mode"))
        app.dispatch(SetMode("bullet"))
        app.dispatch(StartBulletGame(0))

        self.assertEqual(app.state.fen, STARTING_FEN)
        self.assertFalse(app.storage.has_saved_game())


class InputTimingTests(AppTestCase):
    async def test_menu_opening_widens_tap_cooldown(self) -> None:
        clock = FakeClock()
        app = await self._start(clock=clock)
        app.dispatch(OpenMenu())
        click = {"listEvent": {"eventType": 0, "currentSelectItemIndex": 0}}
        self.assertIsNone(app.handle_payload(click))
        self.assertEqual(app.state.phase, "menu")

        clock.now += 500
        self.assertIsInstance(app.handle_payload(click), Tap)
        self.assertEqual(app.state.phase, "mode_select")

    async def test_invalid_payload_is_dropped(self) -> None:
        app = await self._start()
        with self.assertLogs("glasschess.input.mapper", level="WARNING"):
            self.assertIsNone(app.handle_payload({"listEvent": "nope"}))
        self.assertEqual(app.state.phase, "idle")


class BulletClockTests(AppTestCase):
    async def test_clock_runs_only_while_playing(self) -> None:
        app = await self._start()
        app.dispatch(OpenMenu())
        app.dispatch(MenuSelect("mode"))
        app.dispatch(SetMode("bullet"))
        app.dispatch(StartBulletGame(0))
        self.assertEqual(app.state.phase, "idle")
        self.assertFalse(app.timer_running)

        app.dispatch(Scroll("down"))
        self.assertTrue(app.timer_running)
        await self._wait_until(lambda: app.state.timers is not None and app.state.timers.white_ms < 60_000)

        app.dispatch(OpenMenu())
        self.assertFalse(app.timer_running)
        timers = app.state.timers
        await asyncio.sleep(0.05)
        self.assertEqual(app.state.timers, timers)


class ExitTests(AppTestCase):
    async def test_exit_without_changes_closes(self) -> None:
        app = await self._start()
        app.dispatch(OpenMenu())
        app.dispatch(MenuSelect("exit"))
        await asyncio.wait_for(app.closed.wait(), timeout=2.0)

    async def test_exit_with_save(self) -> None:
        config = self._config()
        storage = GameStorage(config.storage_path)
        storage.save_game(AFTER_E4_E5, ["e4", "e5"], "white")
        app = await self._start(config)
        storage.clear_save()
        app.dispatch(Refresh.from_snapshot(app.oracle.state_snapshot()))
        self.assertTrue(app.state.has_unsaved_changes)

        app.dispatch(OpenMenu())
        app.dispatch(MenuSelect("exit"))
        self.assertEqual(app.state.phase, "exit_confirm")
        app.dispatch(ConfirmExit(save=True))
        await asyncio.wait_for(app.closed.wait(), timeout=2.0)
        saved = storage.load_game()
        assert saved is not None
        self.assertEqual(saved.history, ("e4", "e5"))

    async def test_game_over_with_cursor_on_exit_keeps_running(self) -> None:
        app = await self._start()
        app.dispatch(OpenMenu())
        for _ in range(MENU_INDEX["exit"]):
            app.dispatch(Scroll("down"))
        self.assertEqual(app.state.menu_selected_index, MENU_INDEX["exit"])

        app.dispatch(GameOver(reason="time-out"))
        await asyncio.sleep(0.05)
        self.assertEqual(app.state.phase, "idle")
        self.assertFalse(app.state.exit_requested)
        self.assertFalse(app.closed.is_set())

    async def test_shutdown_twice(self) -> None:
        app = await self._start()
        await app.shutdown()
        await app.shutdown()
        self.assertTrue(app.closed.is_set())


if __name__ == "__main__":
    unittest.main()
