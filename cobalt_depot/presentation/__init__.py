"""
Presentation layer containing the HTTP API.

This layer handles the tus upload protocol endpoints, the file listing
and download endpoints, and request/response processing.
"""

from .api.app import create_app

__all__ = [
    "create_app",
]
