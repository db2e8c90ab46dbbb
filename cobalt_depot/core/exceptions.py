"""
Exception hierarchy for the Cobalt Depot application.

Every error raised by the upload protocol, the catalog and the storage
layer derives from DepotError, which carries the HTTP status and a short
machine readable code used by the API error handlers.
"""

from typing import Optional


class DepotError(Exception):
    """Base class for all depot errors."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, *, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict:
        body = {"error": self.code, "message": self.message}
        if self.detail:
            body["detail"] = self.detail
        return body


class InvalidRequest(DepotError):
    """Malformed protocol header or request body."""
    status_code = 400
    code = "invalid_request"


class PayloadTooLarge(DepotError):
    """Declared or streamed length exceeds what the upload may hold."""
    status_code = 413
    code = "payload_too_large"


class SessionNotFound(DepotError):
    """Unknown, finalized, terminated or expired upload session."""
    status_code = 404
    code = "session_not_found"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Upload session not found: {session_id}")
        self.session_id = session_id


class OffsetConflict(DepotError):
    """Client offset claim does not match the session offset."""
    status_code = 409
    code = "offset_conflict"

    def __init__(self, session_id: str, claimed: int, actual: int) -> None:
        super().__init__(
            f"Offset mismatch for {session_id}: claimed {claimed}, expected {actual}"
        )
        self.session_id = session_id
        self.claimed = claimed
        self.actual = actual


class SessionLocked(DepotError):
    """Another request is currently writing to the same session."""
    status_code = 423
    code = "session_locked"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Upload session is busy: {session_id}")
        self.session_id = session_id


class UploadTimeout(DepotError):
    """Chunk ingestion exceeded the configured timeout."""
    status_code = 408
    code = "upload_timeout"


class AssetNotFound(DepotError):
    """Unknown asset id."""
    status_code = 404
    code = "not_found"

    def __init__(self, asset_id: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"File not found: {asset_id}")
        self.asset_id = asset_id


class ConsistencyViolation(AssetNotFound):
    """Catalog entry exists but its backing blob is gone."""

    def __init__(self, asset_id: str, locator: str) -> None:
        super().__init__(asset_id, f"File not found on storage: {asset_id}")
        self.locator = locator


class InternalError(DepotError):
    """I/O failure on the storage backend or the catalog."""
    status_code = 500
    code = "internal_error"


class StorageError(InternalError):
    """Storage backend operation failed."""
    code = "storage_error"


class CatalogError(InternalError):
    """Metadata catalog could not be loaded or persisted."""
    code = "catalog_error"
