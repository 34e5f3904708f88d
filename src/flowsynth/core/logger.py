"""Logging utilities for scripts that drive the synthesis loop."""

import logging
import sys
from typing import Optional, Union


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(
    name: Optional[str] = None,
    level: Union[int, str] = logging.INFO,
) -> logging.Logger:
    """Get a configured logger instance.

    Library modules use ``logging.getLogger(__name__)`` and never attach
    handlers; call this from entry points to see their output.

    Args:
        name: Logger name (defaults to the ``flowsynth`` package logger)
        level: Logging level, as an int or a level name such as "DEBUG"

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name or "flowsynth")
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)
    return logger
