import random
import sys
import time
import unittest
from pathlib import Path

import chess

from glasschess.config import EngineConfig
from glasschess.engine import create_bridge
from glasschess.engine.bridge import EngineBridge
from glasschess.engine.profiles import CASUAL, EASY, SERIOUS, EngineProfile, profile_for

FAKE_ENGINE = Path(__file__).parent / "fixtures" / "fake_uci_engine.py"
START_FEN = chess.STARTING_FEN
MATED_FEN = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"

FAST = EngineProfile("Fast", skill=1, depth=1, movetime_ms=100)
FAST_VARIETY = EngineProfile("Fast variety", skill=1, depth=1, movetime_ms=100, variety=True)
QUICK_THINK = EngineProfile("Quick think", skill=1, depth=1, movetime_ms=20)


def _fake(mode: str) -> list[str]:
    return [sys.executable, str(FAKE_ENGINE), mode]


class ProfileTests(unittest.TestCase):
    def test_profiles_by_difficulty(self) -> None:
        self.assertIs(profile_for("easy"), EASY)
        self.assertIs(profile_for("serious"), SERIOUS)
        self.assertIs(profile_for("grandmaster"), CASUAL)
        self.assertTrue(EASY.variety)
        self.assertEqual(SERIOUS.movetime_seconds, 3.0)


class CreateBridgeTests(unittest.IsolatedAsyncioTestCase):
    async def test_null_command_builds_fallback_bridge(self) -> None:
        bridge = create_bridge(EngineConfig(command=None, fallback_max_think_ms=0), random.Random(2))
        self.addAsyncCleanup(bridge.destroy)
        await bridge.init()
        self.assertTrue(bridge.using_fallback)
        self.assertIsNotNone(await bridge.get_best_move(START_FEN, CASUAL))

    async def test_config_command_is_used(self) -> None:
        bridge = create_bridge(EngineConfig(command=_fake("first"), init_timeout=5.0))
        self.addAsyncCleanup(bridge.destroy)
        await bridge.init()
        self.assertTrue(bridge.ready)
        self.assertEqual(await bridge.get_best_move(START_FEN, FAST), "a2a3")


class FallbackModeTests(unittest.IsolatedAsyncioTestCase):
    def _bridge(self, command) -> EngineBridge:
        bridge = EngineBridge(command, fallback_max_think_ms=0, rng=random.Random(1))
        self.addAsyncCleanup(bridge.destroy)
        return bridge

    async def test_no_command_plays_random_legal_moves(self) -> None:
        bridge = self._bridge(None)
        with self.assertLogs("glasschess.engine.bridge", level="INFO"):
            await bridge.init()
        self.assertTrue(bridge.using_fallback)
        move = await bridge.get_best_move(START_FEN, CASUAL)
        self.assertIn(chess.Move.from_uci(move), chess.Board().legal_moves)

    async def test_missing_binary_selects_fallback(self) -> None:
        bridge = self._bridge("glasschess-no-such-engine")
        with self.assertLogs("glasschess.engine.bridge", level="WARNING"):
            await bridge.init()
        self.assertFalse(bridge.ready)
        self.assertIsNotNone(await bridge.get_best_move(START_FEN, EASY))

    async def test_no_legal_moves(self) -> None:
        bridge = self._bridge(None)
        await bridge.init()
        self.assertIsNone(await bridge.get_best_move(MATED_FEN, CASUAL))

    async def test_bad_fen(self) -> None:
        bridge = self._bridge(None)
        await bridge.init()
        with self.assertLogs("glasschess.engine.bridge", level="ERROR"):
            self.assertIsNone(await bridge.fallback_move("not a fen", CASUAL))

    async def test_think_delay_is_capped(self) -> None:
        bridge = EngineBridge(None, rng=random.Random(1))
        self.addAsyncCleanup(bridge.destroy)
        await bridge.init()

        started = time.monotonic()
        self.assertIsNotNone(await bridge.fallback_move(START_FEN, SERIOUS))
        elapsed = time.monotonic() - started
        self.assertGreaterEqual(elapsed, 0.29)
        self.assertLess(elapsed, 1.0)

        started = time.monotonic()
        self.assertIsNotNone(await bridge.fallback_move(START_FEN, QUICK_THINK))
        self.assertLess(time.monotonic() - started, 0.25)


class UciEngineTests(unittest.IsolatedAsyncioTestCase):
    async def _bridge(self, mode: str, **kwargs) -> EngineBridge:
        kwargs.setdefault("init_timeout", 10.0)
        kwargs.setdefault("grace_seconds", 2.0)
        bridge = EngineBridge(_fake(mode), fallback_max_think_ms=0, rng=random.Random(1), **kwargs)
        self.addAsyncCleanup(bridge.destroy)
        await bridge.init()
        return bridge

    async def test_engine_move_is_used(self) -> None:
        bridge = await self._bridge("first")
        self.assertTrue(bridge.ready)
        self.assertEqual(await bridge.get_best_move(START_FEN, FAST), "a2a3")
        self.assertTrue(bridge.ready)

    async def test_variety_picks_among_top_lines(self) -> None:
        bridge = await self._bridge("first", multipv=3)
        picks = {await bridge.get_best_move(START_FEN, FAST_VARIETY) for _ in range(6)}
        self.assertTrue(picks)
        self.assertTrue(picks <= {"a2a3", "a2a4", "b1a3"})

    async def test_invalid_fen_returns_none_and_keeps_engine(self) -> None:
        bridge = await self._bridge("first")
        with self.assertLogs("glasschess.engine.bridge", level="ERROR"):
            self.assertIsNone(await bridge.get_best_move("8/8/8 w", FAST))
        self.assertTrue(bridge.ready)

    async def test_placeholder_answer_switches_to_fallback(self) -> None:
        bridge = await self._bridge("placeholder")
        self.assertTrue(bridge.ready)
        with self.assertLogs("glasschess.engine.bridge", level="WARNING"):
            move = await bridge.get_best_move(START_FEN, FAST)
        self.assertIn(chess.Move.from_uci(move), chess.Board().legal_moves)
        self.assertTrue(bridge.using_fallback)

    async def test_crash_switches_to_fallback(self) -> None:
        bridge = await self._bridge("crash")
        move = await bridge.get_best_move(START_FEN, FAST)
        self.assertIsNotNone(move)
        self.assertTrue(bridge.using_fallback)

    async def test_silent_engine_times_out(self) -> None:
        bridge = await self._bridge("silent", grace_seconds=0.3)
        with self.assertLogs("glasschess.engine.bridge", level="WARNING"):
            move = await bridge.get_best_move(START_FEN, FAST)
        self.assertIsNotNone(move)
        self.assertTrue(bridge.using_fallback)

    async def test_destroy_is_idempotent(self) -> None:
        bridge = await self._bridge("first")
        await bridge.destroy()
        await bridge.destroy()
        self.assertFalse(bridge.ready)


if __name__ == "__main__":
    unittest.main()
