"""Logging setup shared by the service modules."""

import logging
import sys
from typing import Union

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

logger = logging.getLogger("voucher_signer")


def setup_logger(level: Union[str, int] = "INFO") -> logging.Logger:
    """
    Configure the package logger with a single stream handler.

    Calling it again only changes the level; handlers are not duplicated.

    Args:
        level: Level name (e.g. ``"DEBUG"``) or number.

    Returns:
        The ``voucher_signer`` logger.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    logger.setLevel(level)
    return logger
