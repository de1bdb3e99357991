# src/agent_dispatch/logging_setup.py

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Agent output is logged chunk by chunk; cap the file.
LOG_MAX_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 3


class _ConsoleNoiseFilter(logging.Filter):
    """
    What reaches the terminal:
    - agent_dispatch loggers, except the supervisor's per-chunk DEBUG echo
    - everything else (third-party, py.warnings) only at ERROR+
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not record.name.startswith("agent_dispatch."):
            return record.levelno >= logging.ERROR
        if record.name == "agent_dispatch.agents.supervisor":
            return record.levelno >= logging.INFO
        return True


def _console_handler(level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(_ConsoleNoiseFilter())
    return handler


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = RotatingFileHandler(
        str(path), maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    *,
    log_dir: str | Path = ".local/agent_dispatch",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> Path:
    """
    Route all logging to a filtered stderr handler and a full rotating log file.

    Call once, before the event loop starts. Returns the log file path.
    """
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    log_file = directory / "agent_dispatch.log"

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(_console_handler(console_level, formatter))
    root.addHandler(_file_handler(log_file, file_level, formatter))

    logging.captureWarnings(True)
    logging.getLogger("asyncio").setLevel(logging.INFO)
    return log_file
