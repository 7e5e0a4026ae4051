from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from pathlib import Path

CLI_LOGGER_NAME = "zenctl.cli"

_current_log_path: Path | None = None


def get_log_path(data_dir: Path, timestamp: str | None = None) -> Path:
    """Construct the log file path for a given data directory and optional timestamp.

    If timestamp is None, uses the current timestamp.
    """
    if timestamp is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return data_dir / f"zenctl.run.{timestamp}.log"


def find_latest_log_path(data_dir: Path) -> Path | None:
    """Find the most recent log file in the data directory."""
    if not data_dir.exists():
        return None

    log_files = list(data_dir.glob("zenctl.run.*.log"))
    if not log_files:
        return None

    return max(log_files, key=lambda p: p.stat().st_mtime)


def get_current_log_path() -> Path | None:
    """Get the current log path that was set during setup_logging."""
    return _current_log_path


class CustomFormatter(logging.Formatter):
    regular = "\x1b[37;20m"
    grey = "\x1b[90;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"
    format = "%(message)s"

    FORMATS = {
        logging.DEBUG: grey + format + reset,
        logging.INFO: grey + format + reset,
        logging.WARNING: yellow + format + reset,
        logging.ERROR: red + format + reset,
        logging.CRITICAL: bold_red + format + reset,
    }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno)
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


class _CliOnlyFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401 – simple predicate
        return record.name.startswith(CLI_LOGGER_NAME)


def setup_logging(verbosity: int, data_dir: Path) -> Path:
    """Configure logging for the current *zenctl* invocation.

    A console handler (stderr) is configured according to *verbosity* and a
    file handler capturing *all* logs at DEBUG level is written to
    ``data_dir/zenctl.run.<timestamp>.log``.

    The function ensures *data_dir* exists and returns the path to the created
    log file.
    """
    global _current_log_path

    data_dir.mkdir(parents=True, exist_ok=True)

    log_path = get_log_path(data_dir)
    _current_log_path = log_path

    root_logger = logging.getLogger()

    # setup_logging may run more than once per interpreter (tests).
    if root_logger.hasHandlers():
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

    root_logger.setLevel(logging.DEBUG)

    # ----------------------------------------------------------------------------
    # File handler (always DEBUG)
    # ----------------------------------------------------------------------------
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")
    )
    root_logger.addHandler(file_handler)

    # ----------------------------------------------------------------------------
    # Console handler – behaviour depends on *verbosity*
    # ----------------------------------------------------------------------------
    console_handler = logging.StreamHandler(sys.stderr)

    if verbosity <= -1:
        console_handler.setLevel(logging.WARNING)
        console_handler.addFilter(_CliOnlyFilter())
    elif verbosity == 0:
        # Only the dedicated CLI logger reaches the console.
        console_handler.setLevel(logging.INFO)
        console_handler.addFilter(_CliOnlyFilter())
    elif verbosity == 1:
        console_handler.setLevel(logging.INFO)
    else:
        console_handler.setLevel(logging.DEBUG)

    if _isatty(sys.stderr):
        console_handler.setFormatter(CustomFormatter())
    else:
        console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    for noisy in ("fastmcp", "mcp", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return log_path


def _isatty(stream) -> bool:
    try:
        return os.isatty(stream.fileno())
    except (AttributeError, OSError, ValueError):
        # pytest capture replaces stderr with objects lacking a real fd
        return False


CLI_LOGGER = logging.getLogger(CLI_LOGGER_NAME)
