"""
API router modules for different endpoints.

This module contains all the API route handlers organized by functionality.
"""

from . import files, health, upload

__all__ = [
    "files",
    "health",
    "upload",
]
