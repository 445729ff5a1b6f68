"""
Configuration loading from config.yaml.

Every section is optional and maps onto one dataclass: the engine process,
the gesture timing windows, game pacing, the save file and logging.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, get_args

import yaml

from glasschess.state.contracts import DifficultyLevel


@dataclass
class EngineConfig:
    command: str | list[str] | None = "stockfish"  # None runs on the random-move fallback
    init_timeout: float = 10.0     # seconds for uci/isready handshake
    grace_seconds: float = 2.0     # added to movetime before a search is abandoned
    multipv: int = 5
    fallback_max_think_ms: int = 300


@dataclass
class InputTiming:
    scroll_debounce_ms: int = 8
    tap_cooldown_ms: int = 220
    tap_cooldown_menu_ms: int = 500
    tap_cooldown_dest_select_ms: int = 280
    scroll_suppress_after_tap_ms: int = 150


@dataclass
class GameConfig:
    default_difficulty: DifficultyLevel = "casual"
    game_over_delay_ms: int = 500
    timer_tick_ms: int = 100


@dataclass
class StorageConfig:
    path: str = "./.glasschess_save.json"


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: str = "./logs/glasschess.log"


@dataclass
class Config:
    engine: EngineConfig = field(default_factory=EngineConfig)
    input: InputTiming = field(default_factory=InputTiming)
    game: GameConfig = field(default_factory=GameConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def storage_path(self) -> Path:
        return Path(self.storage.path)

    @property
    def log_path(self) -> Path:
        return Path(self.logging.file)


def load_config(path: str | Path = "config.yaml", *, missing_ok: bool = False) -> Config:
    """
    Load and validate config.yaml.

    With missing_ok=True an absent file yields the defaults (no engine
    command is assumed installed beyond "stockfish" on PATH).

    Raises:
        FileNotFoundError: config.yaml is missing and missing_ok is False.
        ValueError: fields are malformed or out of range.
    """
    cfg_path = Path(path)
    if not cfg_path.exists():
        if missing_ok:
            return Config()
        raise FileNotFoundError(
            f"Config file not found: {cfg_path.resolve()}\n"
            "Copy config.example.yaml to config.yaml and point engine.command at your engine."
        )

    with cfg_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError("Invalid config.yaml structure: top level must be a mapping")

    try:
        engine_raw = _section(raw, "engine")
        engine_cfg = EngineConfig(
            command=_parse_command(engine_raw.get("command", "stockfish")),
            init_timeout=float(engine_raw.get("init_timeout", 10.0)),
            grace_seconds=float(engine_raw.get("grace_seconds", 2.0)),
            multipv=int(engine_raw.get("multipv", 5)),
            fallback_max_think_ms=int(engine_raw.get("fallback_max_think_ms", 300)),
        )

        input_raw = _section(raw, "input")
        input_cfg = InputTiming(
            scroll_debounce_ms=int(input_raw.get("scroll_debounce_ms", 8)),
            tap_cooldown_ms=int(input_raw.get("tap_cooldown_ms", 220)),
            tap_cooldown_menu_ms=int(input_raw.get("tap_cooldown_menu_ms", 500)),
            tap_cooldown_dest_select_ms=int(input_raw.get("tap_cooldown_dest_select_ms", 280)),
            scroll_suppress_after_tap_ms=int(input_raw.get("scroll_suppress_after_tap_ms", 150)),
        )

        game_raw = _section(raw, "game")
        game_cfg = GameConfig(
            default_difficulty=game_raw.get("default_difficulty", "casual"),
            game_over_delay_ms=int(game_raw.get("game_over_delay_ms", 500)),
            timer_tick_ms=int(game_raw.get("timer_tick_ms", 100)),
        )

        storage_raw = _section(raw, "storage")
        storage_cfg = StorageConfig(path=str(storage_raw.get("path", "./.glasschess_save.json")))

        logging_raw = _section(raw, "logging")
        logging_cfg = LoggingConfig(
            level=str(logging_raw.get("level", "INFO")).upper(),
            file=str(logging_raw.get("file", "./logs/glasschess.log")),
        )

        config = Config(
            engine=engine_cfg,
            input=input_cfg,
            game=game_cfg,
            storage=storage_cfg,
            logging=logging_cfg,
        )
        _validate(config)
        return config

    except (KeyError, TypeError) as exc:
        raise ValueError(f"Invalid config.yaml structure: {exc}") from exc


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be a mapping, got {type(value).__name__}")
    return value


def _parse_command(value: object) -> str | list[str] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    if isinstance(value, list) and value and all(isinstance(v, str) for v in value):
        return list(value)
    raise ValueError(f"engine.command must be a string, a list of strings or null, got {value!r}")


def _validate(config: Config) -> None:
    valid_levels = get_args(DifficultyLevel)
    if config.game.default_difficulty not in valid_levels:
        raise ValueError(
            f"game.default_difficulty must be one of {valid_levels}, "
            f"got '{config.game.default_difficulty}'"
        )
    if config.engine.init_timeout < 0 or config.engine.grace_seconds < 0:
        raise ValueError("engine timeouts must be >= 0")
    if config.engine.multipv < 1:
        raise ValueError("engine.multipv must be >= 1")
    if config.engine.fallback_max_think_ms < 0:
        raise ValueError("engine.fallback_max_think_ms must be >= 0")
    for name, value in vars(config.input).items():
        if value < 0:
            raise ValueError(f"input.{name} must be >= 0")
    if config.game.game_over_delay_ms < 0:
        raise ValueError("game.game_over_delay_ms must be >= 0")
    if config.game.timer_tick_ms < 1:
        raise ValueError("game.timer_tick_ms must be >= 1")
    valid_log_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
    if config.logging.level not in valid_log_levels:
        raise ValueError(f"logging.level must be one of {valid_log_levels}, got '{config.logging.level}'")
