import asyncio
import unittest
from dataclasses import replace

from glasschess.actions import Action, GameOver
from glasschess.engine.profiles import CASUAL, EngineProfile
from glasschess.engine.turnloop import TurnLoop
from glasschess.oracle import MoveOracle
from glasschess.state.contracts import CarouselMove, ClockState, GameState, build_initial_state
from glasschess.state.store import Store

AFTER_F3_E5 = "rnbqkbnr/pppp1ppp/8/4p3/8/5P2/PPPPP1PP/RNBQKBNR w KQkq - 0 2"
BACK_RANK_FEN = "6k1/5ppp/8/8/8/8/5PPP/4R1K1 w - - 0 1"


class FakeBridge:
    """Scripted stand-in for EngineBridge."""

    def __init__(self, best=None, fallback=None, *, gate: asyncio.Event | None = None) -> None:
        self.best = best
        self.fallback = fallback
        self.gate = gate
        self.calls: list[str] = []
        self.fallback_calls: list[str] = []
        self.destroyed = False

    async def init(self) -> None:
        pass

    async def destroy(self) -> None:
        self.destroyed = True

    async def get_best_move(self, fen: str, profile: EngineProfile) -> str | None:
        self.calls.append(fen)
        if self.gate is not None:
            await self.gate.wait()
        if isinstance(self.best, Exception):
            raise self.best
        return self.best

    async def fallback_move(self, fen: str, profile: EngineProfile) -> str | None:
        self.fallback_calls.append(fen)
        return self.fallback


class RecordingStore(Store):
    def __init__(self, initial: GameState) -> None:
        super().__init__(initial, clock=lambda: 0)
        self.actions: list[str] = []

    def dispatch(self, action: Action) -> None:
        self.actions.append(type(action).__name__)
        super().dispatch(action)


def _move(oracle: MoveOracle, uci: str) -> CarouselMove:
    return next(m for m in oracle.legal_moves(uci[:2]) if m.uci[:4] == uci[:4])


class TurnLoopTestCase(unittest.IsolatedAsyncioTestCase):
    def _setup(self, bridge: FakeBridge, fen: str | None = None, **state_changes) -> TurnLoop:
        self.oracle = MoveOracle(fen)
        state = build_initial_state(self.oracle, now=0)
        if state_changes:
            state = replace(state, **state_changes)
        self.store = RecordingStore(state)
        self.bridge = bridge
        loop = TurnLoop(self.oracle, self.store, bridge, CASUAL, game_over_delay_ms=10)  # type: ignore[arg-type]
        self.addAsyncCleanup(loop.destroy)
        return loop


class RoundTripTests(TurnLoopTestCase):
    async def test_round_ordering(self) -> None:
        loop = self._setup(FakeBridge(best="e7e5"))
        await loop.on_player_moved(_move(self.oracle, "e2e4"))

        self.assertEqual(self.store.actions, ["Refresh", "EngineThinking", "EngineMove"])
        state = self.store.state
        self.assertEqual(state.fen, self.oracle.fen)
        self.assertEqual(state.turn, "white")
        self.assertEqual(state.last_move, "e5")
        self.assertEqual(state.last_move_to_square, "e5")
        self.assertFalse(state.engine_thinking)
        self.assertIsNone(state.pending_move)
        self.assertEqual(self.oracle.history_san(), ["e4", "e5"])
        self.assertFalse(loop.busy)

    async def test_engine_searches_position_after_player_move(self) -> None:
        loop = self._setup(FakeBridge(best="e7e5"))
        await loop.on_player_moved(_move(self.oracle, "e2e4"))
        self.assertEqual(len(self.bridge.calls), 1)
        self.assertIn(" b ", self.bridge.calls[0])

    async def test_illegal_player_move_only_refreshes(self) -> None:
        loop = self._setup(FakeBridge(best="e7e5"))
        bogus = CarouselMove(uci="e2e5", san="e5", from_square="e2", to_square="e5")
        with self.assertLogs("glasschess.engine.turnloop", level="ERROR"):
            await loop.on_player_moved(bogus)
        self.assertEqual(self.store.actions, ["Refresh"])
        self.assertEqual(self.bridge.calls, [])

    async def test_second_move_while_busy_is_dropped(self) -> None:
        gate = asyncio.Event()
        loop = self._setup(FakeBridge(best="e7e5", gate=gate))
        first = asyncio.create_task(loop.on_player_moved(_move(self.oracle, "e2e4")))
        while not self.bridge.calls:
            await asyncio.sleep(0)
        self.assertTrue(loop.busy)

        with self.assertLogs("glasschess.engine.turnloop", level="WARNING"):
            await loop.on_player_moved(_move(MoveOracle(), "d2d4"))
        gate.set()
        await first

        self.assertEqual(len(self.bridge.calls), 1)
        self.assertEqual(self.oracle.history_san(), ["e4", "e5"])

    async def test_profile_switch(self) -> None:
        loop = self._setup(FakeBridge())
        faster = replace(CASUAL, movetime_ms=10)
        loop.set_profile(faster)
        self.assertIs(loop.profile, faster)

    async def test_destroy_tears_down_bridge(self) -> None:
        loop = self._setup(FakeBridge())
        await loop.destroy()
        self.assertTrue(self.bridge.destroyed)


class FallbackTests(TurnLoopTestCase):
    async def test_unplayable_engine_move_falls_back_once(self) -> None:
        loop = self._setup(FakeBridge(best="e2e4", fallback="g8f6"))
        with self.assertLogs("glasschess.engine.turnloop", level="WARNING"):
            await loop.on_player_moved(_move(self.oracle, "e2e4"))
        self.assertEqual(len(self.bridge.fallback_calls), 1)
        self.assertEqual(self.store.state.last_move, "Nf6")

    async def test_engine_exception_falls_back(self) -> None:
        loop = self._setup(FakeBridge(best=RuntimeError("boom"), fallback="e7e5"))
        with self.assertLogs("glasschess.engine.turnloop", level="ERROR"):
            await loop.on_player_moved(_move(self.oracle, "e2e4"))
        self.assertEqual(self.store.actions[-1], "EngineMove")

    async def test_no_move_at_all_clears_thinking(self) -> None:
        loop = self._setup(FakeBridge(best=None, fallback=None))
        with self.assertLogs("glasschess.engine.turnloop", level="ERROR"):
            await loop.on_player_moved(_move(self.oracle, "e2e4"))
        self.assertEqual(
            self.store.actions,
            ["Refresh", "EngineThinking", "EngineError", "Refresh"],
        )
        self.assertFalse(self.store.state.engine_thinking)
        self.assertEqual(self.store.state.turn, "black")
        self.assertFalse(loop.busy)


class GameOverTests(TurnLoopTestCase):
    async def test_player_mate_ends_game_without_engine(self) -> None:
        loop = self._setup(FakeBridge(best="g8h8"), BACK_RANK_FEN)
        await loop.on_player_moved(_move(self.oracle, "e1e8"))
        self.assertEqual(self.store.actions, ["Refresh", "GameOver"])
        self.assertEqual(self.store.state.game_over, "checkmate")
        self.assertEqual(self.bridge.calls, [])

    async def test_engine_mate_is_announced_after_delay(self) -> None:
        loop = self._setup(FakeBridge(best="d8h4"), AFTER_F3_E5)
        await loop.on_player_moved(_move(self.oracle, "g2g4"))
        self.assertEqual(self.store.state.last_move, "Qh4#")
        self.assertIsNone(self.store.state.game_over)

        await asyncio.sleep(0.05)
        self.assertEqual(self.store.state.game_over, "checkmate")

    async def test_destroy_cancels_pending_game_over(self) -> None:
        loop = self._setup(FakeBridge(best="d8h4"), AFTER_F3_E5)
        await loop.on_player_moved(_move(self.oracle, "g2g4"))
        await loop.destroy()
        await asyncio.sleep(0.05)
        self.assertIsNone(self.store.state.game_over)

    async def test_engine_move_after_time_out_is_discarded(self) -> None:
        gate = asyncio.Event()
        loop = self._setup(FakeBridge(best="e7e5", fallback="e7e6", gate=gate))
        task = asyncio.create_task(loop.on_player_moved(_move(self.oracle, "e2e4")))
        while not self.bridge.calls:
            await asyncio.sleep(0)
        self.store.dispatch(GameOver(reason="time-out"))
        gate.set()
        with self.assertLogs("glasschess.engine.turnloop", level="INFO") as logs:
            await task
        self.assertEqual(self.bridge.fallback_calls, [])
        self.assertEqual([r.levelname for r in logs.records], ["INFO"])
        self.assertEqual(self.oracle.turn, "black")
        self.assertEqual(self.store.state.game_over, "time-out")
        self.assertNotIn("EngineMove", self.store.actions)


class BulletIncrementTests(TurnLoopTestCase):
    async def test_both_sides_get_their_increment(self) -> None:
        loop = self._setup(
            FakeBridge(best="e7e5"),
            mode="bullet",
            timers=ClockState(white_ms=60_000, black_ms=60_000, increment_ms=1_000),
            timer_active=True,
        )
        await loop.on_player_moved(_move(self.oracle, "e2e4"))
        self.assertEqual(
            self.store.actions,
            ["Refresh", "ApplyIncrement", "EngineThinking", "EngineMove", "ApplyIncrement"],
        )
        timers = self.store.state.timers
        assert timers is not None
        self.assertEqual((timers.white_ms, timers.black_ms), (61_000, 61_000))

    async def test_no_increment_outside_bullet(self) -> None:
        loop = self._setup(FakeBridge(best="e7e5"))
        await loop.on_player_moved(_move(self.oracle, "e2e4"))
        self.assertNotIn("ApplyIncrement", self.store.actions)


if __name__ == "__main__":
    unittest.main()
