"""
Logging setup shared by services and infrastructure.
"""

import logging
import sys

from app.core.config import get_settings

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logger(name: str) -> logging.Logger:
    """
    Get a module logger with the application handler attached.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
    logger.setLevel(get_settings().LOG_LEVEL.upper())
    return logger
