"""
Upload services for the Cobalt Depot application.

This module provides the resumable upload session manager: session
creation, offset synchronized chunk ingestion and asset finalization.
"""

from .manager import UploadSessionManager

__all__ = [
    "UploadSessionManager",
]
