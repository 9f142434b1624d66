"""Logging setup for the VolunteerVerse service"""

import logging
import sys
from typing import Optional

from volunteerverse.config import config

LOG_FORMAT = "%(asctime)s %(levelname)s:%(name)s:%(message)s"

# Libraries that log every outbound provider request at INFO
NOISY_LOGGERS = ("httpx", "httpcore")


class BelowWarningFilter(logging.Filter):
    """Pass DEBUG and INFO records only; WARNING and above go to stderr"""

    def filter(self, record):
        return record.levelno < logging.WARNING


def setup_logging(log_level: Optional[str] = None):
    """
    Route application logs: DEBUG/INFO to stdout, WARNING/ERROR to stderr.

    Args:
        log_level: Level name overriding ``LOG_LEVEL`` from the config
    """
    level_name = (log_level or config.get("log_level") or "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(logging.DEBUG)
    stdout_handler.addFilter(BelowWarningFilter())
    stdout_handler.setFormatter(formatter)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.WARNING)
    stderr_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(stderr_handler)

    # Provider request URLs carry redirect targets; keep them out of INFO logs
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
