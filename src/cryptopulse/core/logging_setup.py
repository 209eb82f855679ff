"""Logging for the monitor console.

:func:`setup_logger` configures the ``cryptopulse`` logger once at startup;
every module logs through ``logging.getLogger(__name__)`` and propagates to
it.  Records go to ``stderr`` and to ``<log_dir>/cryptopulse.log``.

Gateway calls and chart drawing run in worker threads, so the thread name is
part of each line.  The HTTP and plotting libraries are held at ``WARNING``
even under ``--verbose``; their DEBUG output drowns the session's own.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from cryptopulse.core.constants import DEFAULT_LOG_DIR

LOGGER_NAME = "cryptopulse"

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(threadName)s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 10 MB max per file, keep 5 backups
_MAX_BYTES = 10 * 1024 * 1024
_BACKUP_COUNT = 5

_NOISY_LIBRARIES = ("urllib3", "matplotlib", "PIL")

_configured: set[str] = set()


def setup_logger(
    name: str = LOGGER_NAME,
    log_dir: Path | None = None,
    level: int = logging.INFO,
) -> logging.Logger:
    """Attach console and rotating-file handlers to logger *name*.

    Calling again with the same *name* returns the logger untouched.  When
    *log_dir* cannot be created the logger stays console-only.
    """
    logger = logging.getLogger(name)
    if name in _configured:
        return logger

    log_dir = log_dir if log_dir is not None else Path(DEFAULT_LOG_DIR)
    logger.setLevel(level)
    formatter = logging.Formatter(_LOG_FORMAT, datefmt=_DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.setLevel(level)
    logger.addHandler(console)

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / f"{name}.log",
            maxBytes=_MAX_BYTES,
            backupCount=_BACKUP_COUNT,
            encoding="utf-8",
        )
    except OSError as exc:
        logger.warning("Logging to console only, cannot write to %s: %s", log_dir, exc)
    else:
        file_handler.setFormatter(formatter)
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    for lib in _NOISY_LIBRARIES:
        logging.getLogger(lib).setLevel(max(level, logging.WARNING))

    _configured.add(name)
    return logger
