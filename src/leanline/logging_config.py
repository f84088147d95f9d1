"""Logging helpers for leanline.

The library is silent by default (NullHandler on the package logger).
Call ``enable_console_logging`` to see configuration warnings, resets and
milestones while a line runs.
"""

import logging
from typing import Union

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOGGER_NAME = "leanline"


def _get_level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, level.upper(), logging.INFO)


def _get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def enable_console_logging(
    level: Union[str, int] = "INFO",
    format: str = DEFAULT_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
) -> logging.StreamHandler:
    """Attach a stderr handler to the leanline logger.

    Existing stream handlers added by earlier calls are replaced, so calling
    this twice does not duplicate output.

    Returns:
        The handler that was added.
    """
    logger = _get_logger()
    for handler in logger.handlers[:]:
        if isinstance(handler, logging.StreamHandler):
            logger.removeHandler(handler)
            handler.close()

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(format, datefmt=date_format))
    logger.addHandler(handler)
    logger.setLevel(_get_level(level))
    return handler


def set_level(level: Union[str, int]) -> None:
    """Set the level of the leanline logger."""
    _get_logger().setLevel(_get_level(level))


__all__ = ["enable_console_logging", "set_level"]
