"""
Infrastructure layer containing external dependencies and I/O operations.

This layer handles configuration, logging, the metadata catalog, blob
storage and the service implementations built on top of them.
"""

from .config import ApplicationConfig, ConfigLoader
from .logging.setup import LoggingManager

__all__ = [
    "ApplicationConfig",
    "ConfigLoader",
    "LoggingManager",
]
