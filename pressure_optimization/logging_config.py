"""
Logging for command-line runs.

The library modules only create loggers under the "pressure_optimization"
namespace; handlers are attached here, by the CLI, and nowhere else.
"""
import logging
import sys
from typing import Optional

PACKAGE_LOGGER = "pressure_optimization"

# Search reports are multi-line; keep the prefix short
_CONSOLE_FORMAT = "[%(levelname)s] %(message)s"
_FILE_FORMAT = "%(asctime)s %(name)s [%(levelname)s] %(message)s"


def _handler(handler: logging.Handler, fmt: str, level: int) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    return handler


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> logging.Logger:
    """
    Attach console (and optionally file) output to the package logger.

    Args:
        level: Threshold for the package logger and its handlers
        log_file: If given, the run is also written to this file (overwritten)

    Returns:
        The package logger

    Notes:
        - Handlers from an earlier call are replaced, never stacked
        - The package logger does not propagate, so a host application's
          root handlers do not print search reports a second time
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    logger.setLevel(level)
    logger.propagate = False
    logger.addHandler(_handler(logging.StreamHandler(sys.stdout), _CONSOLE_FORMAT, level))
    if log_file:
        logger.addHandler(_handler(logging.FileHandler(log_file, mode="w", encoding="utf-8"),
                                   _FILE_FORMAT, level))
    return logger
