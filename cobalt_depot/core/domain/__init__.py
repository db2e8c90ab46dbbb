"""
Domain models for the core business logic.

These models represent upload sessions, finalized assets and the
metadata wire format shared with upload clients.
"""

from .models import AssetRecord, AssetSummary, SweepReport, UploadSession
from .metadata import UploadMetadata, parse_upload_metadata, sanitize_filename

__all__ = [
    "AssetRecord",
    "AssetSummary",
    "SweepReport",
    "UploadSession",
    "UploadMetadata",
    "parse_upload_metadata",
    "sanitize_filename",
]
