"""
Upload session manager implementation for the Cobalt Depot application.

This module implements the resumable upload state machine: session
creation, offset-synchronized chunk ingestion, completion detection and
promotion of finished temp blobs into catalogued assets.
"""

import asyncio
import logging
import time
import uuid
from typing import Any, AsyncIterable, Dict, Optional, Set, Tuple

from ....core.domain.metadata import build_storage_name, parse_upload_metadata, sanitize_filename
from ....core.domain.models import (
    DEFAULT_CONTENT_TYPE, AssetRecord, UploadSession, utc_now_iso
)
from ....core.exceptions import (
    CatalogError, InvalidRequest, OffsetConflict, PayloadTooLarge,
    SessionLocked, SessionNotFound, StorageError, UploadTimeout
)
from ....core.interfaces.catalog import IMetadataCatalog
from ....core.interfaces.storage import IStorageBackend, ITempArea, WriteProgress
from ....core.interfaces.upload import IUploadSessionManager
from ...config.models import DEFAULT_MAX_UPLOAD_SIZE

logger = logging.getLogger(__name__)


class UploadSessionManager(IUploadSessionManager):
    """
    Upload session manager service implementation.

    Active sessions live in memory, one asyncio.Lock per session. A second
    append arriving while the lock is held is rejected with SessionLocked
    rather than queued, so writes to one blob are never interleaved.
    """

    def __init__(
        self,
        temp_area: ITempArea,
        storage: IStorageBackend,
        catalog: IMetadataCatalog,
        max_size: int = DEFAULT_MAX_UPLOAD_SIZE,
        chunk_timeout: Optional[float] = None
    ):
        """
        Initialize upload session manager.

        Args:
            temp_area: Area holding in-progress blobs
            storage: Backend receiving promoted blobs
            catalog: Catalog receiving finalized asset records
            max_size: Largest accepted declared length in bytes
            chunk_timeout: Seconds allowed for one append, None for no limit
        """
        self._temp = temp_area
        self._storage = storage
        self._catalog = catalog
        self._max_size = max_size
        self._chunk_timeout = chunk_timeout

        self._sessions: Dict[str, UploadSession] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._running = False

        # Statistics
        self._stats = {
            "sessions_created": 0,
            "sessions_completed": 0,
            "sessions_terminated": 0,
            "sessions_expired": 0,
            "offset_conflicts": 0,
            "failed_finalizations": 0,
            "bytes_received": 0,
        }

    @property
    def name(self) -> str:
        return "UploadSessionManager"

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def active_count(self) -> int:
        return len(self._sessions)

    @property
    def statistics(self) -> Dict[str, int]:
        return dict(self._stats)

    async def start(self) -> None:
        """Start the upload session manager."""
        if self._running:
            return
        self._running = True
        logger.info(f"Upload session manager started (max size {self._max_size} bytes)")

    async def stop(self) -> None:
        """Stop the upload session manager."""
        if not self._running:
            return
        self._running = False

        # Temp blobs stay on disk and are reclaimed by the sweeper
        if self._sessions:
            logger.info(f"Dropping {len(self._sessions)} unfinished upload sessions")
        self._sessions.clear()
        self._locks.clear()

        logger.info("Upload session manager stopped")

    async def check_health(self) -> Dict[str, Any]:
        """Perform health check."""
        busy = sum(1 for lock in self._locks.values() if lock.locked())
        return {
            "healthy": self._running,
            "status": "running" if self._running else "stopped",
            "details": {
                "active_sessions": len(self._sessions),
                "busy_sessions": busy,
                "max_size": self._max_size,
                "chunk_timeout": self._chunk_timeout,
                "statistics": self._stats,
            }
        }

    async def create_session(
        self,
        declared_length: Optional[int],
        metadata_header: Optional[str] = None
    ) -> UploadSession:
        """Create a new upload session."""
        if declared_length is None or declared_length <= 0 or declared_length > self._max_size:
            raise PayloadTooLarge(
                f"Upload length must be between 1 and {self._max_size} bytes"
            )

        metadata = parse_upload_metadata(metadata_header)

        session_id = uuid.uuid4().hex
        temp_location = await self._temp.allocate(session_id)

        session = UploadSession(
            id=session_id,
            total_length=declared_length,
            temp_location=temp_location,
            filename=metadata.filename,
            content_type=metadata.content_type,
        )

        self._sessions[session_id] = session
        self._locks[session_id] = asyncio.Lock()
        self._stats["sessions_created"] += 1

        logger.info(
            f"Upload session created: {session_id} ({metadata.filename}, {declared_length} bytes)")
        return session

    def get_session(self, session_id: str) -> UploadSession:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFound(session_id)

    def query_offset(self, session_id: str) -> Tuple[int, int]:
        session = self.get_session(session_id)
        return session.offset, session.total_length

    def active_session_ids(self) -> Set[str]:
        return set(self._sessions)

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks[session_id]
        if lock.locked():
            raise SessionLocked(session_id)
        return lock

    async def append_chunk(
        self,
        session_id: str,
        claimed_offset: int,
        chunks: AsyncIterable[bytes]
    ) -> int:
        """Append a byte stream at the claimed offset."""
        session = self.get_session(session_id)

        async with self._lock_for(session_id):
            if claimed_offset != session.offset:
                self._stats["offset_conflicts"] += 1
                logger.warning(
                    f"Offset conflict on {session_id}: claimed {claimed_offset}, at {session.offset}")
                raise OffsetConflict(session_id, claimed_offset, session.offset)

            progress = WriteProgress()
            try:
                await self._write(session, chunks, progress)
            finally:
                if progress.durable:
                    session.advance(progress.durable)
                    self._stats["bytes_received"] += progress.durable

            logger.debug(
                f"Upload progress: {session.filename} - {session.offset}/{session.total_length} "
                f"bytes ({session.progress_percentage:.0f}%)")

            if session.is_complete:
                await self._finalize(session)

            return session.offset

    async def _write(self, session: UploadSession, chunks: AsyncIterable[bytes], progress: WriteProgress) -> None:
        write = self._temp.write_at(
            session.id, session.offset, chunks, session.remaining, progress
        )
        if self._chunk_timeout is None:
            await write
            return

        try:
            await asyncio.wait_for(write, timeout=self._chunk_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Append to {session.id} timed out after {self._chunk_timeout}s "
                f"({progress.durable} bytes kept)")
            raise UploadTimeout(
                f"Upload chunk not received within {self._chunk_timeout} seconds")

    async def _finalize(self, session: UploadSession) -> AssetRecord:
        """
        Promote a complete session into a catalogued asset.

        On any failure the promoted blob is rolled back and the session is
        left as it was, so the client can retry with an empty append.
        """
        stored_name = build_storage_name(session.filename)

        try:
            locator = await self._storage.promote(
                session.temp_location, stored_name, session.content_type
            )
        except StorageError as e:
            self._stats["failed_finalizations"] += 1
            logger.error(f"Failed to finalize upload {session.id}: {e.message} ({e.detail})")
            raise

        record = AssetRecord(
            id=str(uuid.uuid4()),
            original_name=session.filename,
            file_name=stored_name,
            size=session.total_length,
            content_type=session.content_type,
            uploaded_at=utc_now_iso(),
            storage_locator=locator,
        )

        try:
            await self._catalog.put(record)
        except CatalogError:
            self._stats["failed_finalizations"] += 1
            await self._rollback_promotion(session, locator)
            raise

        self._sessions.pop(session.id, None)
        self._locks.pop(session.id, None)
        await self._discard_temp(session.id)

        self._stats["sessions_completed"] += 1
        logger.info(f"Upload completed: {session.filename} -> {record.id} ({record.size} bytes)")
        return record

    async def _rollback_promotion(self, session: UploadSession, locator: str) -> None:
        try:
            await self._storage.delete(locator)
        except StorageError as e:
            # Left for the sweeper's reconciliation pass
            logger.error(f"Could not roll back promoted blob {locator} for {session.id}: {e.message}")

    async def _discard_temp(self, name: str) -> None:
        try:
            await self._temp.delete(name)
        except StorageError as e:
            logger.warning(f"Failed to remove temp blob {name}: {e.message}")

    async def terminate_session(self, session_id: str) -> None:
        """Discard a session and its temp blob."""
        session = self.get_session(session_id)

        async with self._lock_for(session_id):
            await self._temp.delete(session_id)
            self._sessions.pop(session_id, None)
            self._locks.pop(session_id, None)

        self._stats["sessions_terminated"] += 1
        logger.info(f"Upload session terminated: {session_id} ({session.filename})")

    async def ingest_stream(
        self,
        filename: Optional[str],
        content_type: Optional[str],
        chunks: AsyncIterable[bytes]
    ) -> AssetRecord:
        """Store a whole file received in a single request."""
        blob_name = uuid.uuid4().hex
        temp_location = await self._temp.allocate(blob_name)
        progress = WriteProgress()

        try:
            await self._temp.write_at(blob_name, 0, chunks, self._max_size, progress)
            if progress.durable == 0:
                raise InvalidRequest("No file content received")

            # Never registered as active; it lives only for this request
            session = UploadSession(
                id=blob_name,
                total_length=progress.durable,
                temp_location=temp_location,
                filename=sanitize_filename(filename),
                content_type=content_type or DEFAULT_CONTENT_TYPE,
                offset=progress.durable,
            )
            record = await self._finalize(session)
        except Exception:
            await self._discard_temp(blob_name)
            raise

        self._stats["bytes_received"] += record.size
        return record

    async def expire_idle_sessions(self, retention: float, now: Optional[float] = None) -> int:
        """Drop sessions idle for longer than ``retention`` seconds."""
        now = now if now is not None else time.time()
        expired = 0

        for session_id, session in list(self._sessions.items()):
            if now - session.updated_at <= retention:
                continue
            lock = self._locks.get(session_id)
            if lock is None or lock.locked():
                continue

            async with lock:
                try:
                    await self._temp.delete(session_id)
                except StorageError as e:
                    logger.warning(f"Could not expire session {session_id}: {e.message}")
                    continue
                self._sessions.pop(session_id, None)
                self._locks.pop(session_id, None)

            expired += 1
            logger.info(f"Upload session expired: {session_id} ({session.filename})")

        self._stats["sessions_expired"] += expired
        return expired
