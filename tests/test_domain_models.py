"""
Tests for upload session and asset record models.
"""

import time
from pathlib import Path

import pytest

from cobalt_depot.core.domain.models import (
    AssetRecord, AssetSummary, SweepReport, UploadSession, utc_now_iso
)


class TestUploadSession:
    """Test cases for UploadSession."""

    def test_new_session_state(self) -> None:
        session = UploadSession(id="abc", total_length=10, temp_location=Path("/tmp/abc"))

        assert session.offset == 0
        assert session.remaining == 10
        assert not session.is_complete
        assert session.progress_percentage == 0.0

    def test_advance_to_completion(self) -> None:
        session = UploadSession(id="abc", total_length=10, temp_location=Path("/tmp/abc"))

        session.advance(4)
        assert session.offset == 4
        assert session.progress_percentage == 40.0

        session.advance(6)
        assert session.is_complete
        assert session.remaining == 0

    def test_advance_past_total_is_rejected(self) -> None:
        session = UploadSession(id="abc", total_length=10, temp_location=Path("/tmp/abc"))
        session.advance(8)

        with pytest.raises(ValueError):
            session.advance(3)
        assert session.offset == 8

    def test_negative_advance_is_rejected(self) -> None:
        session = UploadSession(id="abc", total_length=10, temp_location=Path("/tmp/abc"))

        with pytest.raises(ValueError):
            session.advance(-1)

    def test_advance_refreshes_activity(self) -> None:
        session = UploadSession(id="abc", total_length=10, temp_location=Path("/tmp/abc"))
        session.updated_at = time.time() - 100

        session.advance(0)
        assert time.time() - session.updated_at >= 99

        session.advance(1)
        assert time.time() - session.updated_at < 5


class TestAssetRecord:
    """Test cases for AssetRecord serialization."""

    def make_record(self) -> AssetRecord:
        return AssetRecord(
            id="4f1c",
            original_name="photo.jpg",
            file_name="1700000000000-deadbeef-photo.jpg",
            size=2048,
            content_type="image/jpeg",
            uploaded_at="2024-01-01T00:00:00Z",
            storage_locator="1700000000000-deadbeef-photo.jpg",
        )

    def test_to_dict_keys(self) -> None:
        data = self.make_record().to_dict()

        assert data == {
            "id": "4f1c",
            "originalName": "photo.jpg",
            "fileName": "1700000000000-deadbeef-photo.jpg",
            "size": 2048,
            "mimetype": "image/jpeg",
            "uploadDate": "2024-01-01T00:00:00Z",
            "storageLocator": "1700000000000-deadbeef-photo.jpg",
        }

    def test_from_dict_restores_record(self) -> None:
        record = self.make_record()

        assert AssetRecord.from_dict(record.to_dict()) == record

    def test_from_dict_accepts_legacy_file_path(self) -> None:
        record = AssetRecord.from_dict({
            "id": "old",
            "originalName": "a.txt",
            "fileName": "123-a.txt",
            "size": 3,
            "mimetype": "text/plain",
            "uploadDate": "2023-05-01T10:00:00.000Z",
            "filePath": "/srv/app/uploads/123-a.txt",
        })

        assert record.storage_locator == "123-a.txt"

    def test_from_dict_without_locator_fails(self) -> None:
        with pytest.raises(ValueError):
            AssetRecord.from_dict({"id": "x", "size": 1})

    def test_record_is_immutable(self) -> None:
        record = self.make_record()

        with pytest.raises(AttributeError):
            record.size = 1  # type: ignore[misc]


class TestSummariesAndReports:
    """Test cases for listing and sweep report views."""

    def test_summary_to_dict(self) -> None:
        summary = AssetSummary(
            id="1", name="a.txt", size=1, upload_date="2024-01-01T00:00:00Z",
            type="text/plain", path="/api/download/1",
        )

        assert summary.to_dict()["uploadDate"] == "2024-01-01T00:00:00Z"
        assert summary.to_dict()["path"] == "/api/download/1"

    def test_sweep_report_defaults(self) -> None:
        report = SweepReport()

        assert report.to_dict()["errors"] == 0
        assert report.finished_at is None

    def test_utc_now_iso(self) -> None:
        stamp = utc_now_iso()

        assert stamp.endswith("Z")
        assert "+00:00" not in stamp
