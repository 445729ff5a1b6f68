"""
InputMapper: raw glasses events to reducer actions.

The glasses report scrolls, clicks and double-clicks from three different
containers. The mapper normalizes them and applies the gesture timing that
keeps a single physical tap from turning into several actions:

- scrolls closer together than scroll_debounce_ms are dropped
- scrolls within scroll_suppress_after_tap_ms of a tap are dropped
- an accepted tap opens a tap_cooldown_ms window in which further taps and
  double-taps are dropped; the app widens the window when a screen with a
  fresh option list opens (extend_tap_cooldown)

All timing state lives on the instance, so every session owns its own.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from glasschess.actions import (
    Action,
    DoubleTap,
    ForegroundEnter,
    ForegroundExit,
    Scroll,
    ScrollDirection,
    Tap,
)
from glasschess.config import InputTiming
from glasschess.input.raw_events import (
    InvalidEventError,
    ListEvent,
    OsEventType,
    RawEvent,
    SysEvent,
    TextEvent,
    parse_hub_event,
)
from glasschess.state.contracts import monotonic_ms

logger = logging.getLogger(__name__)


class InputMapper:
    def __init__(
        self,
        timing: InputTiming | None = None,
        *,
        clock: Callable[[], int] = monotonic_ms,
    ) -> None:
        self.timing = timing or InputTiming()
        self._clock = clock
        self._last_scroll_at: int | None = None
        self._last_tap_at: int | None = None
        self._tap_cooldown_until = 0

    # ------------------------------------------------------------------ #
    # Public API                                                           #
    # ------------------------------------------------------------------ #

    def map_event(self, event: RawEvent) -> Action | None:
        """Translate one raw event, or None when it is dropped or meaningless."""
        match event:
            case ListEvent(event_type=event_type, selected_index=index, selected_name=name):
                if event_type is None:
                    # Simulators omit the type for a plain click on a list item
                    if index is None:
                        return None
                    event_type = OsEventType.CLICK
                return self._map_type(event_type, selected_index=index or 0, selected_name=name)
            case TextEvent(event_type=event_type):
                return self._map_type(event_type or OsEventType.CLICK)
            case SysEvent(event_type=event_type):
                if event_type == OsEventType.FOREGROUND_ENTER:
                    return ForegroundEnter()
                if event_type == OsEventType.FOREGROUND_EXIT:
                    return ForegroundExit()
                return self._map_type(event_type or OsEventType.CLICK)
        return None

    def map_payload(self, payload: Any) -> Action | None:
        """Parse a hub JSON payload and map it; malformed payloads are logged and dropped."""
        try:
            event = parse_hub_event(payload)
        except InvalidEventError as exc:
            logger.warning("Dropping invalid glasses event: %s", exc)
            return None
        return self.map_event(event)

    def extend_tap_cooldown(self, duration_ms: int) -> None:
        """Drop taps for duration_ms from now. Never shortens a running cooldown."""
        until = self._clock() + duration_ms
        if until > self._tap_cooldown_until:
            self._tap_cooldown_until = until

    def reset(self) -> None:
        self._last_scroll_at = None
        self._last_tap_at = None
        self._tap_cooldown_until = 0

    # ------------------------------------------------------------------ #
    # Internals                                                            #
    # ------------------------------------------------------------------ #

    def _map_type(
        self,
        event_type: OsEventType,
        *,
        selected_index: int = 0,
        selected_name: str = "",
    ) -> Action | None:
        match event_type:
            case OsEventType.SCROLL_TOP:
                return self._scroll("up")
            case OsEventType.SCROLL_BOTTOM:
                return self._scroll("down")
            case OsEventType.CLICK:
                if not self._consume_tap():
                    return None
                return Tap(selected_index=selected_index, selected_name=selected_name)
            case OsEventType.DOUBLE_CLICK:
                if not self._consume_tap():
                    return None
                return DoubleTap()
        # Foreground changes only mean something on the system container
        return None

    def _scroll(self, direction: ScrollDirection) -> Scroll | None:
        now = self._clock()
        if self._last_scroll_at is not None and now - self._last_scroll_at < self.timing.scroll_debounce_ms:
            return None
        self._last_scroll_at = now
        if (
            self._last_tap_at is not None
            and now - self._last_tap_at < self.timing.scroll_suppress_after_tap_ms
        ):
            logger.debug("Scroll suppressed after tap")
            return None
        return Scroll(direction=direction)

    def _consume_tap(self) -> bool:
        now = self._clock()
        # Any tap attempt, even a dropped one, suppresses the scroll that
        # the same finger movement tends to produce
        self._last_tap_at = now
        if now < self._tap_cooldown_until:
            logger.debug("Tap dropped during cooldown (%d ms left)", self._tap_cooldown_until - now)
            return False
        self.extend_tap_cooldown(self.timing.tap_cooldown_ms)
        return True
