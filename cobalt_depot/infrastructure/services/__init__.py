"""
Service implementations for the Cobalt Depot application.
"""

from .assets import AssetService
from .sweeper import TempSweeper
from .upload import UploadSessionManager

__all__ = [
    "AssetService",
    "TempSweeper",
    "UploadSessionManager",
]
