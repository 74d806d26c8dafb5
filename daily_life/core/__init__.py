"""Core application modules and shared utilities."""

from .exceptions import DailyLifeError
from .logging import setup_logging, get_logger

__all__ = [
    "DailyLifeError",
    "setup_logging",
    "get_logger"
]
