"""
Upload service interfaces for the Cobalt Depot application.

This module defines the contract of the resumable upload session manager:
session creation, offset queries, offset-synchronized chunk ingestion and
finalization into catalogued assets.
"""

from abc import abstractmethod
from typing import AsyncIterable, Optional, Set, Tuple

from ..domain.models import AssetRecord, UploadSession
from .lifecycle import IComponent


class IUploadSessionManager(IComponent):
    """
    Interface for the upload session manager.

    Owns the set of active sessions. Appends to one session are strictly
    serialized; a session reaching its declared length is finalized before
    the append returns.
    """

    @property
    @abstractmethod
    def max_size(self) -> int:
        """Largest accepted declared length in bytes."""
        pass

    @property
    @abstractmethod
    def active_count(self) -> int:
        pass

    @abstractmethod
    async def create_session(
        self,
        declared_length: Optional[int],
        metadata_header: Optional[str] = None
    ) -> UploadSession:
        """
        Create a new upload session.

        Args:
            declared_length: Total length announced by the client
            metadata_header: Raw Upload-Metadata header value

        Returns:
            The new session, with offset 0

        Raises:
            PayloadTooLarge: If the length is not positive or exceeds max_size
            InvalidRequest: If the metadata header is malformed
        """
        pass

    @abstractmethod
    def query_offset(self, session_id: str) -> Tuple[int, int]:
        """
        Return ``(offset, total_length)`` for a session.

        Raises:
            SessionNotFound: If the session is unknown
        """
        pass

    @abstractmethod
    def get_session(self, session_id: str) -> UploadSession:
        pass

    @abstractmethod
    async def append_chunk(
        self,
        session_id: str,
        claimed_offset: int,
        chunks: AsyncIterable[bytes]
    ) -> int:
        """
        Append a byte stream at the claimed offset.

        Returns:
            The new offset

        Raises:
            SessionNotFound: If the session is unknown
            OffsetConflict: If claimed_offset differs from the session offset
            SessionLocked: If another append is in progress
            PayloadTooLarge: If the stream runs past the declared length
            UploadTimeout: If writing exceeded the chunk timeout
            InternalError: If writing or finalization failed
        """
        pass

    @abstractmethod
    async def terminate_session(self, session_id: str) -> None:
        """Discard a session and its temp blob."""
        pass

    @abstractmethod
    async def ingest_stream(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        chunks: AsyncIterable[bytes]
    ) -> AssetRecord:
        """Store a whole file received in a single request."""
        pass

    @abstractmethod
    async def expire_idle_sessions(self, retention: float, now: Optional[float] = None) -> int:
        """Drop sessions idle for longer than ``retention`` seconds."""
        pass

    @abstractmethod
    def active_session_ids(self) -> Set[str]:
        pass
