"""
Tests for the asset service.
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from cobalt_depot.core.domain.models import AssetRecord
from cobalt_depot.core.exceptions import AssetNotFound, ConsistencyViolation, StorageError
from cobalt_depot.infrastructure.catalog import JsonMetadataCatalog
from cobalt_depot.infrastructure.services import AssetService
from cobalt_depot.infrastructure.storage import LocalStorageBackend


class TestAssetService:
    """Test cases for AssetService."""

    @pytest.fixture(autouse=True)
    async def setup_components(self, tmp_path: Path) -> None:
        self.storage = LocalStorageBackend(str(tmp_path / "uploads"))
        self.catalog = JsonMetadataCatalog(str(tmp_path / "file-metadata.json"))
        await self.storage.start()
        await self.catalog.start()

        self.service = AssetService(self.catalog, self.storage, api_prefix="/api/", chunk_size=4)
        await self.service.start()

    async def add_asset(self, asset_id: str, uploaded_at: str, content: bytes = b"content") -> AssetRecord:
        locator = f"{asset_id}.bin"
        (self.storage.directory / locator).write_bytes(content)
        record = AssetRecord(
            id=asset_id,
            original_name=f"{asset_id}.txt",
            file_name=locator,
            size=len(content),
            content_type="text/plain",
            uploaded_at=uploaded_at,
            storage_locator=locator,
        )
        await self.catalog.put(record)
        return record

    async def test_list_assets_newest_first(self) -> None:
        await self.add_asset("old", "2024-01-01T00:00:00Z")
        await self.add_asset("new", "2024-06-01T00:00:00Z")
        await self.add_asset("mid", "2024-03-01T00:00:00Z")

        summaries = self.service.list_assets()

        assert [s.id for s in summaries] == ["new", "mid", "old"]
        assert summaries[0].path == "/api/download/new"
        assert summaries[0].to_dict() == {
            "id": "new",
            "name": "new.txt",
            "size": 7,
            "uploadDate": "2024-06-01T00:00:00Z",
            "type": "text/plain",
            "path": "/api/download/new",
        }

    async def test_list_assets_empty(self) -> None:
        assert self.service.list_assets() == []

    async def test_download(self) -> None:
        await self.add_asset("a", "2024-01-01T00:00:00Z", b"0123456789")

        record, stream = await self.service.download("a")

        assert record.id == "a"
        assert stream.size == 10
        assert [chunk async for chunk in stream.chunks] == [b"0123", b"4567", b"89"]

    async def test_download_unknown(self) -> None:
        with pytest.raises(AssetNotFound):
            await self.service.download("missing")

    async def test_download_missing_blob(self) -> None:
        record = await self.add_asset("a", "2024-01-01T00:00:00Z")
        (self.storage.directory / record.storage_locator).unlink()

        with pytest.raises(ConsistencyViolation) as exc_info:
            await self.service.download("a")

        assert exc_info.value.status_code == 404
        assert exc_info.value.locator == record.storage_locator
        assert (await self.service.check_health())["details"]["statistics"]["missing_blobs"] == 1

    async def test_delete(self) -> None:
        record = await self.add_asset("a", "2024-01-01T00:00:00Z")

        deleted = await self.service.delete("a")

        assert deleted == record
        assert not (self.storage.directory / record.storage_locator).exists()
        assert self.catalog.contains("a") is False

    async def test_delete_with_missing_blob(self) -> None:
        record = await self.add_asset("a", "2024-01-01T00:00:00Z")
        (self.storage.directory / record.storage_locator).unlink()

        await self.service.delete("a")

        assert self.catalog.contains("a") is False

    async def test_delete_keeps_entry_on_storage_failure(self) -> None:
        await self.add_asset("a", "2024-01-01T00:00:00Z")

        with patch.object(self.storage, "delete", side_effect=StorageError("permission denied")):
            with pytest.raises(StorageError):
                await self.service.delete("a")

        assert self.catalog.contains("a") is True

    async def test_delete_unknown(self) -> None:
        with pytest.raises(AssetNotFound):
            await self.service.delete("missing")

    async def test_check_health(self) -> None:
        await self.add_asset("a", "2024-01-01T00:00:00Z")

        health = await self.service.check_health()

        assert health["healthy"] is True
        assert health["details"]["files"] == 1
        assert health["details"]["storage"] == "local"
