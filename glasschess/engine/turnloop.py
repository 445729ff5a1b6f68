"""
TurnLoop: orchestrates the player move -> engine reply round trip.

Ordering per round:
  1. apply the player's move to the oracle, then Refresh (clears pending_move)
  2. bullet increment for the player
  3. game over? dispatch GameOver and stop
  4. EngineThinking, await the bridge, apply the reply to the oracle
  5. EngineMove, bullet increment for the engine
  6. game over? dispatch GameOver after a short delay so the last move shows

Only one round runs at a time; a second call while busy is dropped.
"""

from __future__ import annotations

import asyncio
import logging

from glasschess.actions import (
    ApplyIncrement,
    EngineError,
    EngineMove,
    EngineThinking,
    GameOver,
    Refresh,
)
from glasschess.engine.bridge import EngineBridge
from glasschess.engine.profiles import EngineProfile
from glasschess.oracle import MoveOracle
from glasschess.state.contracts import CarouselMove, Color, GameState
from glasschess.state.store import Store

logger = logging.getLogger(__name__)


class TurnLoop:
    def __init__(
        self,
        oracle: MoveOracle,
        store: Store,
        bridge: EngineBridge,
        profile: EngineProfile,
        *,
        game_over_delay_ms: int = 500,
    ) -> None:
        self._oracle = oracle
        self._store = store
        self._bridge = bridge
        self._profile = profile
        self._game_over_delay_ms = game_over_delay_ms
        self._busy = False
        self._pending_game_over: asyncio.TimerHandle | None = None

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def profile(self) -> EngineProfile:
        return self._profile

    async def init(self) -> None:
        await self._bridge.init()

    def set_profile(self, profile: EngineProfile) -> None:
        self._profile = profile

    async def destroy(self) -> None:
        if self._pending_game_over is not None:
            self._pending_game_over.cancel()
            self._pending_game_over = None
        await self._bridge.destroy()

    # ------------------------------------------------------------------ #
    # Round trip                                                           #
    # ------------------------------------------------------------------ #

    async def on_player_moved(self, move: CarouselMove) -> None:
        if self._busy:
            logger.warning("Ignoring concurrent player move %s", move.uci)
            return
        self._busy = True
        try:
            await self._play_round(move)
        finally:
            self._busy = False

    async def _play_round(self, move: CarouselMove) -> None:
        player_color = self._oracle.turn
        san = self._oracle.make_move(move.from_square, move.to_square, move.promotion)
        if san is None:
            logger.error("Player move was illegal: %s", move.uci)
            self._dispatch_refresh()
            return

        self._dispatch_refresh()
        self._apply_increment(self._store.state, player_color)

        if self._oracle.is_game_over:
            self._store.dispatch(GameOver(reason=self._oracle.game_over_reason() or "unknown"))
            return

        self._store.dispatch(EngineThinking())
        engine_color = self._oracle.turn
        fen = self._oracle.fen

        uci, engine_san = await self._engine_reply(fen)
        if uci is None or engine_san is None:
            self._clear_engine_thinking()
            return

        snap = self._oracle.state_snapshot()
        self._store.dispatch(
            EngineMove(
                uci=uci,
                san=engine_san,
                fen=snap.fen,
                turn=snap.turn,
                pieces=snap.pieces,
                in_check=snap.in_check,
            )
        )
        self._apply_increment(self._store.state, engine_color)

        if self._oracle.is_game_over:
            reason = self._oracle.game_over_reason() or "unknown"
            self._schedule_game_over(reason)

    async def _engine_reply(self, fen: str) -> tuple[str | None, str | None]:
        """Ask the engine, then the fallback once. Returns (uci, san) applied to the oracle."""
        try:
            uci = await self._bridge.get_best_move(fen, self._profile)
        except Exception:
            logger.exception("Engine error")
            uci = None

        if self._store.state.game_over:
            # The clock ran out while the engine was thinking
            logger.info("Discarding engine move %s after game over", uci)
            return None, None

        san = self._apply_engine_move(uci)
        if san is not None:
            return uci, san

        logger.warning("Engine gave no playable move (%s); asking the fallback", uci)
        try:
            uci = await self._bridge.fallback_move(fen, self._profile)
        except Exception:
            logger.exception("Fallback move failed")
            return None, None

        san = self._apply_engine_move(uci)
        if san is None:
            logger.error("No engine move available for %s", fen)
            return None, None
        return uci, san

    def _apply_engine_move(self, uci: str | None) -> str | None:
        if not uci:
            return None
        if self._store.state.game_over:
            # The clock ran out while the engine was thinking
            logger.info("Discarding engine move %s after game over", uci)
            return None
        return self._oracle.make_move_uci(uci)

    # ------------------------------------------------------------------ #
    # Helpers                                                              #
    # ------------------------------------------------------------------ #

    def _dispatch_refresh(self) -> None:
        self._store.dispatch(Refresh.from_snapshot(self._oracle.state_snapshot()))

    def _clear_engine_thinking(self) -> None:
        self._store.dispatch(EngineError())
        self._dispatch_refresh()

    def _apply_increment(self, state: GameState, color: Color) -> None:
        if state.mode == "bullet" and state.timer_active and state.timers is not None:
            self._store.dispatch(ApplyIncrement(color=color))

    def _schedule_game_over(self, reason: str) -> None:
        loop = asyncio.get_running_loop()

        def fire() -> None:
            self._pending_game_over = None
            self._store.dispatch(GameOver(reason=reason))  # type: ignore[arg-type]

        if self._pending_game_over is not None:
            self._pending_game_over.cancel()
        self._pending_game_over = loop.call_later(self._game_over_delay_ms / 1000, fire)
