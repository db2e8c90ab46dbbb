"""
JSON document metadata catalog.

The catalog is a single JSON object mapping asset id to record. It is read
once at start and rewritten in full on every put/remove: the new document
goes to a sibling temp file, is fsynced, then atomically replaces the old
one. Cost is linear in catalog size per mutation, which suits a small
catalog with a low mutation rate.
"""

import asyncio
import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import aiofiles
import aiofiles.os

from ...core.domain.models import AssetRecord
from ...core.exceptions import AssetNotFound, CatalogError
from ...core.interfaces.catalog import IMetadataCatalog

logger = logging.getLogger(__name__)


class JsonMetadataCatalog(IMetadataCatalog):
    """Metadata catalog persisted as one JSON document."""

    def __init__(self, path: str) -> None:
        self._path = Path(path)
        self._records: Dict[str, AssetRecord] = {}
        self._lock = asyncio.Lock()
        self._running = False
        self._last_persisted_at: Optional[float] = None
        self._persist_count = 0

    @property
    def name(self) -> str:
        return "MetadataCatalog"

    @property
    def path(self) -> Path:
        return self._path

    @property
    def persist_count(self) -> int:
        """Number of full document rewrites since start."""
        return self._persist_count

    async def start(self) -> None:
        if self._running:
            return
        await aiofiles.os.makedirs(self._path.parent, exist_ok=True)
        self._records = await self._load()
        self._running = True
        logger.info(f"Loaded {len(self._records)} catalogued files from {self._path}")

    async def stop(self) -> None:
        # Every mutation is already persisted
        self._running = False

    async def check_health(self) -> Dict[str, Any]:
        return {
            "healthy": self._running,
            "status": "running" if self._running else "stopped",
            "details": {
                "path": str(self._path),
                "files": len(self._records),
                "last_persisted_at": self._last_persisted_at,
            }
        }

    def get(self, asset_id: str) -> AssetRecord:
        try:
            return self._records[asset_id]
        except KeyError:
            raise AssetNotFound(asset_id)

    def list(self) -> List[AssetRecord]:
        return list(self._records.values())

    def contains(self, asset_id: str) -> bool:
        return asset_id in self._records

    def locators(self) -> Set[str]:
        return {record.storage_locator for record in self._records.values()}

    @property
    def count(self) -> int:
        return len(self._records)

    async def put(self, record: AssetRecord) -> None:
        async with self._lock:
            previous = self._records.get(record.id)
            self._records[record.id] = record
            try:
                await self._persist()
            except CatalogError:
                if previous is None:
                    del self._records[record.id]
                else:
                    self._records[record.id] = previous
                raise

        logger.debug(f"Catalogued {record.id} ({record.original_name})")

    async def remove(self, asset_id: str) -> AssetRecord:
        async with self._lock:
            record = self._records.pop(asset_id, None)
            if record is None:
                raise AssetNotFound(asset_id)
            try:
                await self._persist()
            except CatalogError:
                self._records[asset_id] = record
                raise

        logger.debug(f"Removed {asset_id} from catalog")
        return record

    async def _load(self) -> Dict[str, AssetRecord]:
        if not await aiofiles.os.path.exists(self._path):
            return {}

        try:
            async with aiofiles.open(self._path, "r", encoding="utf-8") as f:
                raw = await f.read()
        except OSError as e:
            raise CatalogError(f"Cannot read catalog {self._path}", detail=str(e))

        if not raw.strip():
            return {}

        try:
            document = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CatalogError(f"Catalog {self._path} is not valid JSON", detail=str(e))

        if not isinstance(document, dict):
            raise CatalogError(f"Catalog {self._path} must contain a JSON object")

        records = {}
        for asset_id, data in document.items():
            try:
                record = AssetRecord.from_dict({"id": asset_id, **data})
            except (KeyError, TypeError, ValueError) as e:
                raise CatalogError(f"Invalid catalog entry {asset_id!r}", detail=str(e))
            records[record.id] = record
        return records

    async def _persist(self) -> None:
        document = {asset_id: record.to_dict() for asset_id, record in self._records.items()}
        payload = json.dumps(document, indent=2, ensure_ascii=False)
        staging = self._path.with_name(self._path.name + ".tmp")

        try:
            async with aiofiles.open(staging, "w", encoding="utf-8") as f:
                await f.write(payload)
                await f.flush()
                await asyncio.to_thread(os.fsync, f.fileno())
            await aiofiles.os.replace(staging, self._path)
        except OSError as e:
            logger.error(f"Failed to persist catalog {self._path}: {e}")
            raise CatalogError(f"Failed to persist catalog {self._path}", detail=str(e))

        self._persist_count += 1
        self._last_persisted_at = time.time()
