# src/crewtasks/logging_setup.py

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOG_FILE_NAME = "crewtasks.log"
LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Minimum level a logger family needs to reach the terminal. First matching prefix wins.
CONSOLE_THRESHOLDS: tuple[tuple[str, int], ...] = (
    ("crewtasks.gateways.", logging.WARNING),
    ("crewtasks.", logging.NOTSET),
)
# Libraries that log every HTTP request or frame.
QUIET_LIBRARIES = ("httpx", "hpack", "websockets", "realtime")


class _ConsoleNoiseFilter(logging.Filter):
    """Keeps the board readable: our records pass, everything else needs ERROR."""

    def filter(self, record: logging.LogRecord) -> bool:
        for prefix, threshold in CONSOLE_THRESHOLDS:
            if record.name.startswith(prefix):
                return record.levelno >= threshold
        # py.warnings and third-party loggers.
        return record.levelno >= logging.ERROR


def _level(value: int | str) -> int:
    if isinstance(value, int):
        return value
    resolved = logging.getLevelName(str(value).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    *,
    log_dir: str | Path = ".local/crewtasks",
    console_level: int | str = logging.WARNING,
    file_level: int | str = logging.DEBUG,
) -> Path:
    """
    Route all logs to stderr (filtered) and to <log_dir>/crewtasks.log (unfiltered).

    Replaces whatever handlers the root logger had. Returns the log file path.
    """
    log_file = Path(log_dir) / LOG_FILE_NAME
    log_file.parent.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(_level(console_level))
    console.addFilter(_ConsoleNoiseFilter())

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(_level(file_level))

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in (console, file_handler):
        handler.setFormatter(formatter)
        root.addHandler(handler)

    logging.captureWarnings(True)
    for name in QUIET_LIBRARIES:
        logging.getLogger(name).setLevel(logging.WARNING)

    return log_file
