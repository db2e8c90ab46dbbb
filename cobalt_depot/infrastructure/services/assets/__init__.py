"""
Asset services for listing, downloading and deleting finalized files.
"""

from .service import AssetService

__all__ = [
    "AssetService",
]
