"""Shared helpers."""

from .logging import PACKAGE_LOGGER, set_log_level, setup_logging

__all__ = ["PACKAGE_LOGGER", "set_log_level", "setup_logging"]
