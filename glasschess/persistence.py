"""Local save-game and settings store.

Keeps the in-progress game and the player's settings in one small JSON
document on disk, under two keys. Anything missing, unreadable or malformed
reads as "nothing saved"; write failures are logged and never raised.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, get_args

from glasschess.state.contracts import Color, DifficultyLevel

logger = logging.getLogger(__name__)

SAVE_KEY = "glasschess-save"
SETTINGS_KEY = "glasschess-settings"

_DEFAULT_DIFFICULTY: DifficultyLevel = "casual"


@dataclass(frozen=True)
class SavedGame:
    fen: str
    history: tuple[str, ...]
    turn: Color
    difficulty: DifficultyLevel = _DEFAULT_DIFFICULTY
    saved_at: float = 0.0


class GameStorage:
    def __init__(self, path: str | Path = ".glasschess_save.json") -> None:
        self.path = Path(path)

    # ------------------------------------------------------------------ #
    # Game                                                                 #
    # ------------------------------------------------------------------ #

    def save_game(
        self,
        fen: str,
        history: tuple[str, ...] | list[str],
        turn: Color,
        difficulty: DifficultyLevel = _DEFAULT_DIFFICULTY,
    ) -> None:
        saved = SavedGame(
            fen=fen,
            history=tuple(history),
            turn=turn,
            difficulty=difficulty,
            saved_at=time.time(),
        )
        record = asdict(saved)
        record["history"] = list(saved.history)
        if self._update({SAVE_KEY: record}):
            logger.info("Game saved (%d moves)", len(saved.history))

    def load_game(self) -> SavedGame | None:
        raw = self._read().get(SAVE_KEY)
        if raw is None:
            return None
        if (
            not isinstance(raw, dict)
            or not isinstance(raw.get("fen"), str)
            or not isinstance(raw.get("history"), list)
            or not all(isinstance(san, str) for san in raw["history"])
        ):
            logger.warning("Invalid save data in %s, ignoring", self.path)
            return None
        turn = raw.get("turn")
        difficulty = raw.get("difficulty")
        return SavedGame(
            fen=raw["fen"],
            history=tuple(raw["history"]),
            turn=turn if turn in ("white", "black") else "white",
            difficulty=difficulty if difficulty in get_args(DifficultyLevel) else _DEFAULT_DIFFICULTY,
            saved_at=float(raw.get("saved_at") or 0.0),
        )

    def clear_save(self) -> None:
        doc = self._read()
        if SAVE_KEY not in doc:
            return
        del doc[SAVE_KEY]
        if self._write(doc):
            logger.info("Save cleared")

    def has_saved_game(self) -> bool:
        return SAVE_KEY in self._read()

    # ------------------------------------------------------------------ #
    # Settings                                                             #
    # ------------------------------------------------------------------ #

    def save_difficulty(self, difficulty: DifficultyLevel) -> None:
        self._save_settings(difficulty=difficulty)

    def load_difficulty(self, default: DifficultyLevel = _DEFAULT_DIFFICULTY) -> DifficultyLevel:
        value = self._load_settings().get("difficulty")
        return value if value in get_args(DifficultyLevel) else default

    def save_board_markers(self, show_board_markers: bool) -> None:
        self._save_settings(show_board_markers=show_board_markers)

    def load_board_markers(self) -> bool:
        value = self._load_settings().get("show_board_markers")
        return value if isinstance(value, bool) else True

    def _load_settings(self) -> dict[str, Any]:
        settings = self._read().get(SETTINGS_KEY)
        return settings if isinstance(settings, dict) else {}

    def _save_settings(self, **update: Any) -> None:
        merged = {**self._load_settings(), **update}
        self._update({SETTINGS_KEY: merged})

    # ------------------------------------------------------------------ #
    # File access                                                          #
    # ------------------------------------------------------------------ #

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            doc = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.warning("Could not read %s: %s", self.path, exc)
            return {}
        if not isinstance(doc, dict):
            logger.warning("Ignoring malformed save file %s", self.path)
            return {}
        return doc

    def _update(self, changes: dict[str, Any]) -> bool:
        doc = self._read()
        doc.update(changes)
        return self._write(doc)

    def _write(self, doc: dict[str, Any]) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(doc, indent=2), encoding="utf-8")
        except OSError as exc:
            logger.error("Could not write %s: %s", self.path, exc)
            return False
        return True
