"""Process-wide logging for the entry points (main.py, the web app)."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from glasschess.config import LoggingConfig

LOG_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"


def configure_logging(cfg: LoggingConfig, *, console_level: str | None = None) -> None:
    """
    Console + rotating file logging.

    console_level raises the console threshold above cfg.level, so the
    terminal simulator keeps its screen clean while the file gets everything.
    """
    log_file = Path(cfg.file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    stream = logging.StreamHandler()                               # console
    stream.setLevel(console_level or cfg.level)
    file_handler = logging.handlers.RotatingFileHandler(
        log_file, maxBytes=2 * 1024 * 1024, backupCount=3,         # 2 MB × 3 files
        encoding="utf-8",
    )

    logging.basicConfig(
        level=cfg.level,
        format=LOG_FORMAT,
        handlers=[stream, file_handler],
    )
    # python-chess logs every UCI line at DEBUG
    logging.getLogger("chess.engine").setLevel(logging.INFO)
