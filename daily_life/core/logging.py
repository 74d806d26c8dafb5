"""
Logging configuration and utilities for the Daily Life Recorder.

This module provides centralized logging setup using Loguru with
console and rotating file output.
"""

import sys
from typing import TYPE_CHECKING, Optional, Dict, Any

from loguru import logger

if TYPE_CHECKING:
    from ..settings import LoggingSettings


# Store configured loggers to avoid reconfiguration
_configured_loggers: Dict[str, bool] = {}


def setup_logging(
    log_settings: "LoggingSettings",
    logger_name: str = "daily_life",
    force: bool = False
) -> None:
    """
    Set up application logging with Loguru.

    Args:
        log_settings: Logging configuration settings
        logger_name: Name of the logger instance
        force: Replace an existing configuration, e.g. after settings were reloaded
    """
    if logger_name in _configured_loggers and not force:
        return  # Already configured

    # Remove default handler
    logger.remove()

    logger.add(
        sys.stderr,
        level=log_settings.level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        ),
        colorize=True,
        backtrace=True,
        diagnose=log_settings.level == "DEBUG"
    )

    if log_settings.file:
        log_settings.file.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_settings.file,
            level=log_settings.level,
            format=(
                "{time:YYYY-MM-DD HH:mm:ss} | "
                "{level: <8} | "
                "{name}:{function}:{line} | "
                "{message}"
            ),
            rotation="10 MB",
            retention="1 month",
            compression="gz",
            encoding="utf-8",
            backtrace=True,
            diagnose=False
        )

    _configured_loggers[logger_name] = True
    logger.info(f"Logging configured for {logger_name} at level {log_settings.level}")


def get_logger(module_name: str) -> Any:
    """
    Get a logger instance for a specific module.

    Args:
        module_name: Name of the module requesting the logger

    Returns:
        Logger bound to the module name
    """
    return logger.bind(module=module_name)


def log_api_call(
    service: str,
    method: str,
    url: Optional[str] = None,
    status_code: Optional[int] = None,
    response_time: Optional[float] = None
) -> None:
    """Log an HTTP call made to or served by the data server."""
    log_data = {
        "service": service,
        "method": method,
        "url": url,
        "status_code": status_code,
        "response_time": response_time
    }

    if status_code and 200 <= status_code < 300:
        logger.bind(**log_data).debug(f"{method} {url} -> {status_code}")
    else:
        logger.bind(**log_data).warning(f"{method} {url} failed or returned non-2xx status ({status_code})")


def log_error_with_context(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    module: Optional[str] = None
) -> None:
    """Log errors with additional context information."""
    error_data = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context or {},
        "module": module
    }

    logger.bind(**error_data).error(f"Error in {module or 'unknown module'}: {type(error).__name__}")
