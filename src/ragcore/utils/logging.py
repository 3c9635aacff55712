"""
Logging utilities.

Library modules log through ``logging.getLogger(__name__)`` and never add
handlers themselves. Applications call :func:`configure_logging` once to get
readable output on stderr.
"""

import logging
import sys
from typing import TextIO

ROOT_LOGGER = "ragcore"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(
    level: int | str = logging.INFO,
    stream: TextIO | None = None,
) -> logging.Logger:
    """
    Attach a stream handler to the ``ragcore`` logger.

    Calling this more than once replaces the level but keeps a single handler.

    Args:
        level: Log level name or number
        stream: Output stream (stderr by default)

    Returns:
        The ``ragcore`` root logger
    """
    logger = logging.getLogger(ROOT_LOGGER)

    if not any(getattr(h, "_ragcore", False) for h in logger.handlers):
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._ragcore = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    set_log_level(level)
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger nested under the ``ragcore`` namespace.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger that propagates to the ``ragcore`` root
    """
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def set_log_level(level: int | str) -> None:
    """
    Set the log level for every ragcore logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    logging.getLogger(ROOT_LOGGER).setLevel(level)
