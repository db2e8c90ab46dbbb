"""
Configuration management infrastructure.

This module provides configuration loading, validation and saving
capabilities for the application.
"""

from .models import ApplicationConfig
from .loader import ConfigLoader

__all__ = [
    "ApplicationConfig",
    "ConfigLoader",
]
