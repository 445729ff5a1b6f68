"""
Store: the single state slot.

dispatch() runs the reducer and, only when it hands back a different object,
notifies every subscriber with (new_state, previous_state) so it can diff and
decide whether to act. A subscriber that raises is logged and skipped; it
never breaks dispatch for the others.
"""

from __future__ import annotations

import logging
import random
from typing import Callable

from glasschess.actions import Action
from glasschess.state.contracts import GameState, monotonic_ms
from glasschess.state.reducer import reduce

logger = logging.getLogger(__name__)

StoreListener = Callable[[GameState, GameState], None]


class Store:
    def __init__(
        self,
        initial_state: GameState,
        *,
        clock: Callable[[], int] = monotonic_ms,
        rng: random.Random | None = None,
    ) -> None:
        self._state = initial_state
        self._clock = clock
        self._rng = rng
        self._listeners: list[StoreListener] = []

    @property
    def state(self) -> GameState:
        return self._state

    def get_state(self) -> GameState:
        return self._state

    def dispatch(self, action: Action) -> None:
        prev = self._state
        new = reduce(prev, action, now=self._clock(), rng=self._rng)
        if new is prev:
            return
        self._state = new
        # Copy: a listener may unsubscribe (or dispatch) while we iterate
        for listener in list(self._listeners):
            try:
                listener(new, prev)
            except Exception:
                logger.exception("Store listener failed on %s", type(action).__name__)

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
