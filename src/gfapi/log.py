"""
Logging helpers.

Adds a TRACE level below DEBUG for full request/response payloads and a
console handler printing ``LEVEL message`` lines.
"""
import logging
import sys
from typing import Optional, Union

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

LOGGER_NAME = "gfapi"

LEVELS = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
}


def level_from_name(level: Union[str, int]) -> int:
    """
    Translate a level name such as ``"trace"`` or ``"warn"`` to a logging level.

    Raises:
        ValueError: For unknown level names
    """
    if isinstance(level, int):
        return level
    try:
        return LEVELS[level.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown log level '{level}', expected one of {', '.join(LEVELS)}"
        ) from None


def set_level(level: Union[str, int], name: str = LOGGER_NAME) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level_from_name(level))
    return logger


def configure_logging(
    level: Union[str, int] = "debug",
    stream: Optional[object] = None,
    name: str = LOGGER_NAME,
) -> logging.Logger:
    """
    Attach a console handler to the gfapi logger.

    Calling it again replaces the handler installed by a previous call.

    Args:
        level: Level name or number
        stream: Output stream, defaults to stdout
        name: Logger to configure

    Returns:
        The configured logger
    """
    logger = set_level(level, name)

    for handler in list(logger.handlers):
        if getattr(handler, "_gfapi_console", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    handler._gfapi_console = True
    logger.addHandler(handler)
    return logger
