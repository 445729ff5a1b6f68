"""
Raw glasses events: a closed union validated at the boundary.

The vendor hub delivers JSON blobs with one of three sources (list, text or
system container), and the event type may be a number, a name, or missing
altogether, depending on firmware and simulator. parse_hub_event() turns such
a blob into exactly one of ListEvent / TextEvent / SysEvent, or raises
InvalidEventError. Nothing past this module sees an untyped payload.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import IntEnum
from typing import Any


class OsEventType(IntEnum):
    CLICK = 0
    SCROLL_TOP = 1
    SCROLL_BOTTOM = 2
    DOUBLE_CLICK = 3
    FOREGROUND_ENTER = 4
    FOREGROUND_EXIT = 5


class InvalidEventError(ValueError):
    """A hub payload that does not describe a known event."""

    def __init__(self, message: str, payload: object = None) -> None:
        super().__init__(message)
        self.payload = payload


@dataclass(frozen=True)
class ListEvent:
    event_type: OsEventType | None = None
    selected_index: int | None = None
    selected_name: str = ""


@dataclass(frozen=True)
class TextEvent:
    event_type: OsEventType | None = None


@dataclass(frozen=True)
class SysEvent:
    event_type: OsEventType | None = None


RawEvent = ListEvent | TextEvent | SysEvent

# Firmware and simulator builds disagree on where the type lives
_FALLBACK_TYPE_KEYS = ("eventType", "event_type", "Event_Type", "type")

# Checked in order: "DOUBLE_CLICK_EVENT" must not match CLICK first
_NAME_TOKENS: tuple[tuple[str, OsEventType], ...] = (
    ("FOREGROUND_ENTER", OsEventType.FOREGROUND_ENTER),
    ("FOREGROUND_EXIT", OsEventType.FOREGROUND_EXIT),
    ("DOUBLE", OsEventType.DOUBLE_CLICK),
    ("CLICK", OsEventType.CLICK),
    ("SCROLL_TOP", OsEventType.SCROLL_TOP),
    ("SCROLL_BOTTOM", OsEventType.SCROLL_BOTTOM),
    ("UP", OsEventType.SCROLL_TOP),
    ("DOWN", OsEventType.SCROLL_BOTTOM),
)


def parse_event_type(value: Any) -> OsEventType | None:
    """Normalize a numeric or named event type. None means "not reported"."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidEventError(f"Event type must not be a boolean: {value!r}", value)
    if isinstance(value, int):
        try:
            return OsEventType(value)
        except ValueError as exc:
            raise InvalidEventError(f"Unknown event type code {value}", value) from exc
    if isinstance(value, str):
        text = value.strip().upper()
        if text.isdigit():
            return parse_event_type(int(text))
        for token, event_type in _NAME_TOKENS:
            if token in text:
                return event_type
        raise InvalidEventError(f"Unknown event type name {value!r}", value)
    raise InvalidEventError(f"Unsupported event type value {value!r}", value)


def _fallback_type(payload: Mapping[str, Any]) -> Any:
    if payload.get("eventType") is not None:
        return payload["eventType"]
    json_data = payload.get("jsonData")
    if isinstance(json_data, Mapping):
        for key in _FALLBACK_TYPE_KEYS:
            if json_data.get(key) is not None:
                return json_data[key]
    return None


def parse_hub_event(payload: Any) -> RawEvent:
    """
    Validate a hub payload such as {"listEvent": {"eventType": 0, ...}}.

    Raises:
        InvalidEventError: not a mapping, a malformed source record, an
            unknown event type, or no event source at all.
    """
    if not isinstance(payload, Mapping):
        raise InvalidEventError(f"Event payload must be an object, got {type(payload).__name__}", payload)

    fallback = _fallback_type(payload)

    record = payload.get("listEvent")
    if record is not None:
        record = _record(record, "listEvent", payload)
        index = record.get("currentSelectItemIndex")
        if index is not None and (isinstance(index, bool) or not isinstance(index, int)):
            raise InvalidEventError(f"currentSelectItemIndex must be an integer, got {index!r}", payload)
        name = record.get("currentSelectItemName") or ""
        return ListEvent(
            event_type=parse_event_type(record.get("eventType", fallback)),
            selected_index=index,
            selected_name=str(name),
        )

    record = payload.get("textEvent")
    if record is not None:
        record = _record(record, "textEvent", payload)
        return TextEvent(event_type=parse_event_type(record.get("eventType", fallback)))

    record = payload.get("sysEvent")
    if record is not None:
        record = _record(record, "sysEvent", payload)
        return SysEvent(event_type=parse_event_type(record.get("eventType", fallback)))

    if fallback is not None:
        # Bare typed events come from the hub shell itself
        return SysEvent(event_type=parse_event_type(fallback))

    raise InvalidEventError("Payload has no listEvent, textEvent or sysEvent", payload)


def _record(value: Any, key: str, payload: Any) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise InvalidEventError(f"{key} must be an object", payload)
    return value
