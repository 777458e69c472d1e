"""Logging setup for minbar. One named logger, stderr plus an optional file."""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(threadName)s | %(message)s"

# Chatty libraries that log every HTTP request (the Janus long-poll fires constantly).
_NOISY_LOGGERS = ("urllib3", "requests")


def _coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logger(
    name: str = "minbar",
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure and return the application logger.

    Idempotent: a logger that already has handlers is returned untouched,
    so Streamlit reruns do not stack duplicate handlers.

    Args:
        name: Logger name.
        level: Logging level, as an int or a level name such as "DEBUG".
        log_file: Optional path to log file. If None, logs to stderr only.
    """
    log = logging.getLogger(name)
    if log.handlers:
        return log

    log.setLevel(_coerce_level(level))
    fmt = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    h = logging.StreamHandler(sys.stderr)
    h.setFormatter(fmt)
    log.addHandler(h)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setFormatter(fmt)
        log.addHandler(fh)

    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return log


def get_logger(name: str = "minbar") -> logging.Logger:
    """Return the application logger. Use after setup_logger has been called."""
    return logging.getLogger(name)
