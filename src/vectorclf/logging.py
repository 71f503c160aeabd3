"""Logging setup for the command-line tools."""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import ConfigError, LoggingConfig

FILE_FORMAT = "%(asctime)s %(levelname)-7s %(threadName)s %(name)s: %(message)s"
MAIN_LOG_NAME = "vectorclf.log"
DEBUG_LOG_NAME = "debug.log"
PACKAGE_PREFIX = "vectorclf."
LEVELS = ("debug", "info", "warning", "warn", "error", "critical")


class ConsoleFormatter(logging.Formatter):
    """Single-letter level tag, optionally coloured, then the message.

    With ``show_source`` the emitting module is included, shortened to its
    path inside the package (``trainers.svm`` rather than
    ``vectorclf.trainers.svm``).
    """

    TAGS: dict[int, tuple[str, str]] = {
        logging.DEBUG: ("D", "\x1b[2m"),
        logging.INFO: ("I", "\x1b[34m"),
        logging.WARNING: ("W", "\x1b[33m"),
        logging.ERROR: ("E", "\x1b[31m"),
        logging.CRITICAL: ("E", "\x1b[1;31m"),
    }
    RESET = "\x1b[0m"

    def __init__(self, use_color: bool, show_source: bool = False) -> None:
        super().__init__("%(message)s")
        self.use_color = use_color
        self.show_source = show_source

    def format(self, record: logging.LogRecord) -> str:
        tag, color = self.TAGS.get(record.levelno, ("?", ""))
        message = super().format(record)
        if self.show_source:
            source = record.name.removeprefix(PACKAGE_PREFIX)
            message = f"{source}: {message}"
        if self.use_color and color:
            tag = f"{color}{tag}{self.RESET}"
        return f"{tag} {message}"


def configure_logging(logging_config: LoggingConfig, log_dir: Path | None = None) -> list[Path]:
    """Install console logging, plus rotating files when ``log_dir`` is set.

    Python warnings (for example solver convergence warnings raised by
    scikit-learn) are routed through logging as well. Returns the log files
    that will be written.
    """

    level = level_from_string(logging_config.level)
    handlers: list[logging.Handler] = [_console_handler(show_source=level <= logging.DEBUG)]
    files: list[Path] = []
    if log_dir is not None:
        log_dir = log_dir.expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        files.append(log_dir / MAIN_LOG_NAME)
        if logging_config.debug_file:
            files.append(log_dir / DEBUG_LOG_NAME)
        handlers.extend(
            _file_handler(path, logging.DEBUG if path.name == DEBUG_LOG_NAME else logging.INFO)
            for path in files
        )

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    return files


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = RotatingFileHandler(path, maxBytes=5_000_000, backupCount=5, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(FILE_FORMAT))
    return handler


def _console_handler(show_source: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ConsoleFormatter(_use_color(handler.stream), show_source))
    return handler


def _use_color(stream: object) -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    return bool(getattr(stream, "isatty", lambda: False)())


def level_from_string(level: str) -> int:
    normalized = level.strip().lower()
    if normalized not in LEVELS:
        raise ConfigError(f"Unknown log level: {level} (expected one of: {', '.join(LEVELS)})")
    return logging.getLevelName(normalized.upper())


__all__ = ["ConsoleFormatter", "configure_logging", "level_from_string"]
