"""Logging setup for the command-line entry point.

Standard `logging` with a single console handler; library modules only
create their own `logging.getLogger(__name__)` loggers.
"""

import logging
from typing import Union

import config

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s | %(message)s"


def setup_logging(level: Union[str, int] = config.LOG_LEVEL) -> None:
    """
    Configure the root logger.

    Args:
        level: Level name or number (default: LOG_LEVEL env var, else INFO)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    root.setLevel(level)

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")

    # Console
    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    root.addHandler(ch)

    # Hub downloads are chatty at INFO
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("filelock").setLevel(logging.WARNING)
