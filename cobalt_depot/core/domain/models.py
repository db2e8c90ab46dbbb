"""
Domain models for upload sessions and finalized assets.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


DEFAULT_FILENAME = "unknown"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class UploadSession:
    """In-progress resumable upload."""
    id: str
    total_length: int
    temp_location: Path
    filename: str = DEFAULT_FILENAME
    content_type: str = DEFAULT_CONTENT_TYPE
    offset: int = 0
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    @property
    def is_complete(self) -> bool:
        return self.offset == self.total_length

    @property
    def remaining(self) -> int:
        return self.total_length - self.offset

    @property
    def progress_percentage(self) -> float:
        return (self.offset / self.total_length) * 100.0

    def advance(self, written: int) -> None:
        """Move the offset forward by bytes confirmed durable."""
        if written < 0 or self.offset + written > self.total_length:
            raise ValueError(
                f"Cannot advance offset {self.offset} by {written} "
                f"(total {self.total_length})"
            )
        if written:
            self.offset += written
            self.updated_at = time.time()


@dataclass(frozen=True)
class AssetRecord:
    """Finalized, catalogued file. Immutable once created."""
    id: str
    original_name: str
    file_name: str
    size: int
    content_type: str
    uploaded_at: str
    storage_locator: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "originalName": self.original_name,
            "fileName": self.file_name,
            "size": self.size,
            "mimetype": self.content_type,
            "uploadDate": self.uploaded_at,
            "storageLocator": self.storage_locator,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssetRecord":
        # Older documents stored an absolute filePath instead of a locator
        locator = data.get("storageLocator")
        if locator is None and data.get("filePath"):
            locator = Path(data["filePath"]).name
        if not locator:
            raise ValueError(f"Record {data.get('id')!r} has no storage locator")

        return cls(
            id=str(data["id"]),
            original_name=data.get("originalName", DEFAULT_FILENAME),
            file_name=data.get("fileName", locator),
            size=int(data["size"]),
            content_type=data.get("mimetype", DEFAULT_CONTENT_TYPE),
            uploaded_at=data.get("uploadDate", utc_now_iso()),
            storage_locator=locator,
        )


@dataclass(frozen=True)
class AssetSummary:
    """Listing view of an asset."""
    id: str
    name: str
    size: int
    upload_date: str
    type: str
    path: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "size": self.size,
            "uploadDate": self.upload_date,
            "type": self.type,
            "path": self.path,
        }


@dataclass
class SweepReport:
    """Outcome of one sweeper pass."""
    expired_sessions: int = 0
    temp_blobs_removed: int = 0
    orphaned_blobs_removed: int = 0
    missing_blobs: int = 0
    errors: int = 0
    finished_at: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "expired_sessions": self.expired_sessions,
            "temp_blobs_removed": self.temp_blobs_removed,
            "orphaned_blobs_removed": self.orphaned_blobs_removed,
            "missing_blobs": self.missing_blobs,
            "errors": self.errors,
            "finished_at": self.finished_at,
        }


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
