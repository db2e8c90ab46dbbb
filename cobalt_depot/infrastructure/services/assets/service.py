"""
Asset service implementation.

Read and delete access to finalized assets. The catalog is the source of
truth for what exists; the storage backend holds the bytes.
"""

import logging
from typing import Any, Dict, List, Tuple

from ....core.domain.models import AssetRecord, AssetSummary
from ....core.exceptions import ConsistencyViolation, StorageError
from ....core.interfaces.assets import IAssetService
from ....core.interfaces.catalog import IMetadataCatalog
from ....core.interfaces.storage import BlobStream, IStorageBackend

logger = logging.getLogger(__name__)


class AssetService(IAssetService):
    """List, download and delete catalogued assets."""

    def __init__(
        self,
        catalog: IMetadataCatalog,
        storage: IStorageBackend,
        api_prefix: str = "/api",
        chunk_size: int = 1024 * 1024
    ):
        self._catalog = catalog
        self._storage = storage
        self._api_prefix = api_prefix.rstrip("/")
        self._chunk_size = chunk_size
        self._running = False

        self._stats = {
            "downloads": 0,
            "deletions": 0,
            "missing_blobs": 0,
        }

    @property
    def name(self) -> str:
        return "AssetService"

    async def start(self) -> None:
        self._running = True
        logger.info("Asset service started")

    async def stop(self) -> None:
        self._running = False
        logger.info("Asset service stopped")

    async def check_health(self) -> Dict[str, Any]:
        return {
            "healthy": self._running,
            "status": "running" if self._running else "stopped",
            "details": {
                "files": self._catalog.count,
                "storage": self._storage.kind,
                "statistics": self._stats,
            }
        }

    def download_path(self, asset_id: str) -> str:
        return f"{self._api_prefix}/download/{asset_id}"

    def list_assets(self) -> List[AssetSummary]:
        """Summaries of every catalogued asset, newest first."""
        records = sorted(
            self._catalog.list(),
            key=lambda r: (r.uploaded_at, r.id),
            reverse=True
        )
        return [
            AssetSummary(
                id=record.id,
                name=record.original_name,
                size=record.size,
                upload_date=record.uploaded_at,
                type=record.content_type,
                path=self.download_path(record.id),
            )
            for record in records
        ]

    async def download(self, asset_id: str) -> Tuple[AssetRecord, BlobStream]:
        record = self._catalog.get(asset_id)

        info = await self._storage.stat(record.storage_locator)
        if info is None:
            self._stats["missing_blobs"] += 1
            logger.error(
                f"Consistency violation: {asset_id} is catalogued but blob "
                f"{record.storage_locator} is missing from {self._storage.kind} storage")
            raise ConsistencyViolation(asset_id, record.storage_locator)

        stream = await self._storage.open(record.storage_locator, self._chunk_size)
        self._stats["downloads"] += 1
        logger.info(f"Download started: {record.original_name} ({asset_id}, {stream.size} bytes)")
        return record, stream

    async def delete(self, asset_id: str) -> AssetRecord:
        """
        Delete an asset's blob, then its catalog entry.

        Raises:
            AssetNotFound: Unknown id
            StorageError: Backend refused the deletion; the entry is kept
        """
        record = self._catalog.get(asset_id)

        try:
            removed = await self._storage.delete(record.storage_locator)
        except StorageError as e:
            logger.error(f"Failed to delete blob for {asset_id}: {e.message} ({e.detail})")
            raise

        if not removed:
            logger.warning(
                f"Consistency warning: blob {record.storage_locator} for {asset_id} "
                f"was already missing, removing catalog entry")

        await self._catalog.remove(asset_id)
        self._stats["deletions"] += 1
        logger.info(f"File deleted: {record.original_name} ({asset_id})")
        return record
