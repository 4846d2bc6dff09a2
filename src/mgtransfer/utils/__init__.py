"""Utility functions for the transfer engine."""

from .logging_utils import PACKAGE_LOGGER, ColoredFormatter, setup_logging, log_function_call, Reporter

__all__ = [
    "PACKAGE_LOGGER",
    "ColoredFormatter",
    "setup_logging",
    "log_function_call",
    "Reporter",
]
