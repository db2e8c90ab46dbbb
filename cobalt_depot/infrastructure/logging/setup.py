"""
Logging setup and configuration utilities.

This module provides centralized logging configuration using loguru
with support for file rotation and routing of standard library records.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Dict

from loguru import logger as loguru_logger

from ..config.models import LoggingConfig
from ...core.interfaces.lifecycle import IComponent

# Loggers that install their own handlers and must be redirected explicitly
_THIRD_PARTY_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi", "botocore")


class InterceptHandler(logging.Handler):
    """Forward standard library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: Any = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller outside of the logging module
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        loguru_logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging(config: LoggingConfig) -> None:
    """
    Setup application logging with the given configuration.

    Args:
        config: Logging configuration
    """
    # Remove default handler
    loguru_logger.remove()

    if config.console_enabled:
        loguru_logger.add(
            sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                   "<level>{level: <8}</level> | "
                   "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
                   "<level>{message}</level>",
            level=config.level,
            colorize=True,
            backtrace=True,
            diagnose=False
        )

    if config.file_enabled:
        log_dir = Path(config.log_directory)
        log_dir.mkdir(parents=True, exist_ok=True)

        loguru_logger.add(
            log_dir / "depot.log",
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
                   "{name}:{function}:{line} - {message}",
            level=config.level,
            rotation=config.max_file_size,
            retention=config.backup_count,
            compression="zip",
            enqueue=True,
            backtrace=True,
            diagnose=False
        )

    if config.intercept_stdlib:
        _intercept_standard_logging(config.level)


def _intercept_standard_logging(level: str) -> None:
    """Route records from logging.getLogger() users into loguru."""
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    logging.getLogger().setLevel(level.upper())

    for name in _THIRD_PARTY_LOGGERS:
        third_party = logging.getLogger(name)
        third_party.handlers = []
        third_party.propagate = True


class LoggingManager(IComponent):
    """
    Logging manager for runtime logging configuration.

    Owns the logging setup for the lifetime of the application and provides
    the access log used by the HTTP middleware.
    """

    def __init__(self, config: LoggingConfig) -> None:
        self._config = config
        self._started = False
        self._logger = logging.getLogger(__name__)

    @property
    def name(self) -> str:
        return "LoggingManager"

    async def start(self) -> None:
        """Start the logging manager."""
        if self._started:
            return

        setup_logging(self._config)
        self._started = True

        self._logger.info(f"Logging started at level {self._config.level}")

    async def stop(self) -> None:
        """Stop the logging manager."""
        if not self._started:
            return

        self._logger.info("Logging manager stopped")
        # Drain enqueued file records
        await loguru_logger.complete()
        self._started = False

    async def check_health(self) -> Dict[str, Any]:
        """Check logging manager health."""
        log_dir = Path(self._config.log_directory)

        return {
            'healthy': True,
            'status': 'running' if self._started else 'stopped',
            'details': {
                'log_level': self._config.level,
                'log_directory': str(log_dir),
                'log_directory_exists': log_dir.exists(),
                'console_enabled': self._config.console_enabled,
                'file_enabled': self._config.file_enabled,
            }
        }

    def log_access(self, message: str, **kwargs: Any) -> None:
        """
        Log an access message.

        Args:
            message: Access log message
            **kwargs: Additional context bound to the record
        """
        loguru_logger.bind(access_log=True, **kwargs).info(message)
