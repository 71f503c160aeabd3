from __future__ import annotations

import logging
from pathlib import Path

import pytest

from vectorclf.config import ConfigError, LoggingConfig
from vectorclf.logging import ConsoleFormatter, configure_logging, level_from_string


@pytest.fixture(autouse=True)
def _restore_root_logger():
    yield
    logging.captureWarnings(False)
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


def _record(name: str, level: int, message: str) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, message, None, None)


def test_level_from_string() -> None:
    assert level_from_string(" Debug ") == logging.DEBUG
    assert level_from_string("warn") == logging.WARNING
    with pytest.raises(ConfigError):
        level_from_string("loud")


def test_console_formatter_tags_and_shortens_source() -> None:
    plain = ConsoleFormatter(use_color=False)
    verbose = ConsoleFormatter(use_color=False, show_source=True)
    record = _record("vectorclf.trainers.svm", logging.WARNING, "label 2 failed")

    assert plain.format(record) == "W label 2 failed"
    assert verbose.format(record) == "W trainers.svm: label 2 failed"


def test_configure_logging_writes_files(tmp_path: Path) -> None:
    files = configure_logging(LoggingConfig(level="debug", debug_file=True), tmp_path / "logs")

    logging.getLogger("vectorclf.test").debug("hidden from main log")
    logging.getLogger("vectorclf.test").info("visible everywhere")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert [path.name for path in files] == ["vectorclf.log", "debug.log"]
    main_log = (tmp_path / "logs" / "vectorclf.log").read_text(encoding="utf-8")
    debug_log = (tmp_path / "logs" / "debug.log").read_text(encoding="utf-8")
    assert "visible everywhere" in main_log
    assert "hidden from main log" not in main_log
    assert "hidden from main log" in debug_log


def test_configure_logging_without_directory() -> None:
    assert configure_logging(LoggingConfig()) == []
    assert logging.getLogger().level == logging.INFO
