"""
EngineBridge: a UCI engine process behind an async best-move call.

The process is launched once with chess.engine.popen_uci() and reused for
every move. When the engine cannot be started, stalls, crashes or answers
with no usable move, the bridge switches permanently to fallback mode and
plays uniformly random legal moves instead. Callers never see an engine
exception; the worst they get is None (no legal move or a bad FEN).
"""

from __future__ import annotations

import asyncio
import logging
import random

import chess
import chess.engine

from glasschess.engine.profiles import EngineProfile

logger = logging.getLogger(__name__)

_ENGINE_ERRORS = (
    OSError,
    TimeoutError,
    chess.engine.EngineError,
    chess.engine.EngineTerminatedError,
)


class EngineBridge:
    """
    Args:
        command: Engine executable (str or argv list). None starts in fallback mode.
        init_timeout: Seconds allowed for launch plus the uci/isready handshake.
        grace_seconds: Added to the profile movetime before a search is abandoned.
        multipv: Candidate lines searched for variety profiles.
        fallback_max_think_ms: Upper bound of the fallback's artificial delay.
        rng: Source of randomness for variety picks and fallback moves.
    """

    def __init__(
        self,
        command: str | list[str] | None = "stockfish",
        *,
        init_timeout: float = 10.0,
        grace_seconds: float = 2.0,
        multipv: int = 5,
        fallback_max_think_ms: int = 300,
        rng: random.Random | None = None,
    ) -> None:
        self._command = command
        self._init_timeout = init_timeout
        self._grace_seconds = grace_seconds
        self._multipv = multipv
        self._fallback_max_think_ms = fallback_max_think_ms
        self._rng = rng or random.Random()
        self._transport: asyncio.SubprocessTransport | None = None
        self._engine: chess.engine.UciProtocol | None = None
        self._failed = False

    @property
    def ready(self) -> bool:
        return self._engine is not None and not self._failed

    @property
    def using_fallback(self) -> bool:
        return not self.ready

    # ------------------------------------------------------------------ #
    # Lifecycle                                                            #
    # ------------------------------------------------------------------ #

    async def init(self) -> None:
        """Launch and handshake the engine. Never raises; failures select fallback mode."""
        if self._engine is not None or self._failed:
            return
        if not self._command:
            logger.info("No engine command configured, using random-move fallback")
            self._failed = True
            return
        try:
            async with asyncio.timeout(self._init_timeout):
                self._transport, self._engine = await chess.engine.popen_uci(self._command)
                await self._engine.ping()
        except _ENGINE_ERRORS as exc:
            logger.warning(
                "Engine %r unavailable (%s: %s), using random-move fallback",
                self._command, type(exc).__name__, exc,
            )
            await self._mark_failed()
            return
        name = self._engine.id.get("name", self._command)
        logger.info("Engine ready: %s", name)

    async def destroy(self) -> None:
        await self._close_engine()

    # ------------------------------------------------------------------ #
    # Moves                                                                #
    # ------------------------------------------------------------------ #

    async def get_best_move(self, fen: str, profile: EngineProfile) -> str | None:
        """Return the engine's reply as a UCI string, or a fallback move."""
        if not self.ready:
            return await self.fallback_move(fen, profile)

        try:
            board = chess.Board(fen)
        except ValueError:
            logger.error("Refusing to search invalid FEN: %s", fen)
            return None

        move = await self._search(board, profile)
        if move is not None:
            return move.uci()

        logger.warning(
            "Engine returned no usable move; switching to random-move fallback "
            "(difficulty has no effect from now on)"
        )
        await self._mark_failed()
        return await self.fallback_move(fen, profile)

    async def fallback_move(self, fen: str, profile: EngineProfile) -> str | None:
        """Uniformly random legal move after a short think delay."""
        think_ms = min(profile.movetime_ms, self._fallback_max_think_ms)
        await asyncio.sleep(think_ms / 1000)
        try:
            board = chess.Board(fen)
        except ValueError:
            logger.error("Fallback cannot load FEN: %s", fen)
            return None
        moves = list(board.legal_moves)
        if not moves:
            return None
        return self._rng.choice(moves).uci()

    # ------------------------------------------------------------------ #
    # Internals                                                            #
    # ------------------------------------------------------------------ #

    async def _search(self, board: chess.Board, profile: EngineProfile) -> chess.Move | None:
        engine = self._engine
        assert engine is not None
        limit = chess.engine.Limit(depth=profile.depth, time=profile.movetime_seconds)
        try:
            async with asyncio.timeout(profile.movetime_seconds + self._grace_seconds):
                if "Skill Level" in engine.options:
                    await engine.configure({"Skill Level": profile.skill})
                if profile.variety and self._multipv > 1:
                    infos = await engine.analyse(board, limit, multipv=self._multipv)
                    candidates = [
                        info["pv"][0]
                        for info in infos
                        if info.get("pv") and info["pv"][0] in board.legal_moves
                    ]
                    if not candidates:
                        return None
                    return self._rng.choice(candidates)
                result = await engine.play(board, limit)
        except _ENGINE_ERRORS as exc:
            logger.warning("Engine search failed (%s: %s)", type(exc).__name__, exc)
            return None

        # A null move is how placeholder engines say "no idea"
        if not result.move or result.move not in board.legal_moves:
            return None
        return result.move

    async def _mark_failed(self) -> None:
        self._failed = True
        await self._close_engine()

    async def _close_engine(self) -> None:
        engine, transport = self._engine, self._transport
        self._engine = None
        self._transport = None
        if engine is None:
            return
        try:
            async with asyncio.timeout(self._grace_seconds or 1.0):
                await engine.quit()
        except _ENGINE_ERRORS as exc:
            logger.debug("Engine quit did not complete cleanly: %s", exc)
        finally:
            if transport is not None:
                transport.close()
