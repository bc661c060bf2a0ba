"""
Logging setup for the recorder CLI.

Modules log through ``logging.getLogger(__name__)``, all under the
``stream_recorder`` package logger. The CLI calls ``setup_logging`` once,
then ``set_log_level("DEBUG")`` for ``--debug``.
"""

import logging
import os
import sys
from typing import Literal

PACKAGE_LOGGER = "stream_recorder"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%H:%M:%S"

# Transport libraries log every CDP frame at DEBUG
CHATTY_LOGGERS = ("websockets", "aiohttp", "asyncio")

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _resolve(level: str) -> int:
    return getattr(logging, level.upper(), logging.INFO)


def setup_logging(level: LogLevel | None = None) -> logging.Logger:
    """
    Send recorder logs to stdout and return the package logger.

    Args:
        level: Log level. Defaults to the LOG_LEVEL env var, then INFO.
    """
    log_level = _resolve(level or os.getenv("LOG_LEVEL", "INFO"))

    # no-op once the root logger has handlers
    logging.basicConfig(format=LOG_FORMAT, datefmt=DATE_FORMAT, stream=sys.stdout)

    for name in CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(log_level)
    return logger


def set_log_level(level: LogLevel) -> None:
    """Change the recorder's log level; transport libraries stay at WARNING."""
    logging.getLogger(PACKAGE_LOGGER).setLevel(_resolve(level))
