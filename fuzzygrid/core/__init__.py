"""
Core module for the fuzzy grid bot.

Provides logging utilities, the exception hierarchy, market models and helpers.
"""

from .logger import get_logger, set_log_level, setup_logger

__all__ = [
    # Logging
    "setup_logger",
    "get_logger",
    "set_log_level",
]
