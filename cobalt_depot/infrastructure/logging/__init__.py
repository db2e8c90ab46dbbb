"""
Logging infrastructure for the application.

This module provides centralized logging configuration and management
capabilities for the entire application.
"""

from .setup import setup_logging, LoggingManager, InterceptHandler

__all__ = [
    "setup_logging",
    "LoggingManager",
    "InterceptHandler",
]
