"""
logger.py

Responsibility: Configures the process-wide logging pipeline (stdout, one
line per record) once at startup.
Does NOT: write log files or keep log history; the container runtime
collects stdout.
"""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that log every request or tick at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "apscheduler", "kubernetes", "urllib3")


def setup_logging(level: str = "INFO") -> None:
    """
    Sends all log records to stdout in the application's line format.

    Safe to call more than once; the last call wins.

    Args:
        level: Root level name, e.g. "INFO" or "DEBUG". Unknown names fall
            back to INFO.
    """
    root_level = logging.getLevelName(level.strip().upper())
    if not isinstance(root_level, int):
        root_level = logging.INFO

    logging.basicConfig(
        level=root_level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        stream=sys.stdout,
        force=True,
    )

    quiet = max(root_level, logging.WARNING)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet)
