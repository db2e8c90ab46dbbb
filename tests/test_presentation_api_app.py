"""
Tests for the FastAPI application and its routes.

测试FastAPI应用及其路由功能。
"""

from pathlib import Path
from typing import Iterator
from unittest.mock import Mock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from cobalt_depot.application.container import Container
from cobalt_depot.application.startup import ApplicationStartup
from cobalt_depot.core.domain.metadata import encode_metadata_header
from cobalt_depot.core.exceptions import InvalidRequest, StorageError
from cobalt_depot.core.interfaces.assets import IAssetService
from cobalt_depot.core.interfaces.storage import IStorageBackend
from cobalt_depot.infrastructure.config.models import ApplicationConfig
from cobalt_depot.presentation.api.app import create_app
from cobalt_depot.presentation.api.routers.files import content_disposition
from cobalt_depot.presentation.api.routers.upload import parse_upload_length, parse_upload_offset

OCTET = {"Content-Type": "application/offset+octet-stream", "Tus-Resumable": "1.0.0"}


@pytest.fixture
def client(app_config: ApplicationConfig) -> Iterator[TestClient]:
    """Test client driving the full component stack."""
    with patch('cobalt_depot.infrastructure.logging.setup.setup_logging'):
        container = Container()
        app = create_app(container, app_config, ApplicationStartup(container))
        with TestClient(app) as test_client:
            yield test_client


def create_upload(client: TestClient, length: int, **metadata: str) -> str:
    headers = {"Upload-Length": str(length), "Tus-Resumable": "1.0.0"}
    if metadata:
        headers["Upload-Metadata"] = encode_metadata_header(metadata)
    response = client.post("/api/upload", headers=headers)
    assert response.status_code == 201
    return response.headers["Location"].rsplit("/", 1)[-1]


def append(client: TestClient, upload_id: str, offset: int, data: bytes):
    return client.patch(
        f"/api/upload/{upload_id}",
        content=data,
        headers={**OCTET, "Upload-Offset": str(offset)},
    )


class TestCreateApp:
    """测试FastAPI应用创建功能"""

    def test_create_app_basic(self, app_config: ApplicationConfig) -> None:
        """测试基本应用创建"""
        container = Mock(spec=Container)

        app = create_app(container, app_config)

        assert isinstance(app, FastAPI)
        assert app.title == app_config.name
        assert app.state.container is container
        assert app.state.startup is None

    def test_root_endpoint(self, client: TestClient) -> None:
        """测试根端点功能"""
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["health_url"] == "/api/health"

    def test_response_headers(self, client: TestClient) -> None:
        """测试响应头"""
        response = client.get("/api/files", headers={"X-Request-ID": "req-1"})

        assert response.headers["X-Request-ID"] == "req-1"
        assert response.headers["X-Response-Time"].endswith("s")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"

    def test_cors_exposes_protocol_headers(self, client: TestClient) -> None:
        """测试CORS暴露协议头"""
        response = client.get("/api/files", headers={"Origin": "http://example.com"})

        exposed = response.headers["Access-Control-Expose-Headers"]
        assert "Upload-Offset" in exposed
        assert "Location" in exposed


class TestUploadRoutes:
    """测试可恢复上传路由"""

    def test_options(self, client: TestClient) -> None:
        response = client.options("/api/upload")

        assert response.status_code == 204
        assert response.headers["Tus-Resumable"] == "1.0.0"
        assert response.headers["Tus-Version"] == "1.0.0"
        assert response.headers["Tus-Max-Size"] == "1024"
        assert response.headers["Tus-Extension"] == "creation,expiration,termination"

    def test_create(self, client: TestClient) -> None:
        response = client.post("/api/upload", headers={"Upload-Length": "10"})

        assert response.status_code == 201
        assert response.headers["Location"].startswith("/api/upload/")
        assert response.headers["Upload-Offset"] == "0"
        assert response.headers["Tus-Resumable"] == "1.0.0"
        assert "Upload-Expires" not in response.headers

    @pytest.mark.parametrize("length", [None, "abc", "0", "-5", "1025", "1_000", "+5"])
    def test_create_rejects_length(self, client: TestClient, length) -> None:
        headers = {} if length is None else {"Upload-Length": length}

        response = client.post("/api/upload", headers=headers)

        assert response.status_code == 413
        assert response.json()["error"] == "payload_too_large"
        assert response.headers["Tus-Resumable"] == "1.0.0"

    def test_create_rejects_bad_metadata(self, client: TestClient) -> None:
        response = client.post(
            "/api/upload",
            headers={"Upload-Length": "10", "Upload-Metadata": "filename !!!notbase64"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_request"

    def test_head(self, client: TestClient) -> None:
        upload_id = create_upload(client, 10)
        append(client, upload_id, 0, b"abcd")

        response = client.head(f"/api/upload/{upload_id}")

        assert response.status_code == 200
        assert response.headers["Upload-Offset"] == "4"
        assert response.headers["Upload-Length"] == "10"
        assert response.headers["Cache-Control"] == "no-store"

    def test_head_unknown(self, client: TestClient) -> None:
        response = client.head("/api/upload/unknown")

        assert response.status_code == 404
        assert response.headers["Tus-Resumable"] == "1.0.0"

    def test_resumable_upload_and_download(self, client: TestClient) -> None:
        upload_id = create_upload(client, 11, filename="résumé.txt", filetype="text/plain")

        first = append(client, upload_id, 0, b"hello ")
        assert first.status_code == 204
        assert first.headers["Upload-Offset"] == "6"

        second = append(client, upload_id, 6, b"world")
        assert second.status_code == 204
        assert second.headers["Upload-Offset"] == "11"

        assert client.head(f"/api/upload/{upload_id}").status_code == 404

        files = client.get("/api/files").json()
        assert len(files) == 1
        assert files[0]["name"] == "résumé.txt"
        assert files[0]["size"] == 11
        assert files[0]["type"] == "text/plain"
        assert files[0]["path"] == f"/api/download/{files[0]['id']}"

        download = client.get(files[0]["path"])
        assert download.status_code == 200
        assert download.content == b"hello world"
        assert download.headers["Content-Length"] == "11"
        assert download.headers["Content-Type"].startswith("text/plain")
        assert download.headers["Content-Disposition"] == content_disposition("résumé.txt")

    def test_patch_offset_conflict(self, client: TestClient) -> None:
        upload_id = create_upload(client, 10)
        append(client, upload_id, 0, b"abc")

        response = append(client, upload_id, 0, b"abc")

        assert response.status_code == 409
        assert response.json()["error"] == "offset_conflict"
        assert client.head(f"/api/upload/{upload_id}").headers["Upload-Offset"] == "3"

    @pytest.mark.parametrize("offset", [None, "x", "-1", "+0", "0_0"])
    def test_patch_invalid_offset(self, client: TestClient, offset) -> None:
        upload_id = create_upload(client, 10)
        headers = {"Content-Type": "application/offset+octet-stream"}
        if offset is not None:
            headers["Upload-Offset"] = offset

        response = client.patch(f"/api/upload/{upload_id}", content=b"abc", headers=headers)

        assert response.status_code == 400

    def test_patch_overflow(self, client: TestClient) -> None:
        upload_id = create_upload(client, 3)

        response = append(client, upload_id, 0, b"abcdef")

        assert response.status_code == 413
        assert client.head(f"/api/upload/{upload_id}").headers["Upload-Offset"] == "0"

    def test_patch_unknown(self, client: TestClient) -> None:
        response = append(client, "unknown", 0, b"abc")

        assert response.status_code == 404
        assert response.json()["error"] == "session_not_found"

    def test_terminate(self, client: TestClient, app_config: ApplicationConfig) -> None:
        upload_id = create_upload(client, 10)

        response = client.delete(f"/api/upload/{upload_id}")

        assert response.status_code == 204
        assert response.headers["Tus-Resumable"] == "1.0.0"
        assert client.head(f"/api/upload/{upload_id}").status_code == 404
        assert list(Path(app_config.upload.temp_directory).iterdir()) == []

    def test_simple_upload(self, client: TestClient) -> None:
        response = client.post(
            "/api/upload/simple",
            files={"file": ("notes.txt", b"simple body", "text/plain")}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["filename"] == "notes.txt"

        download = client.get(f"/api/download/{body['fileId']}")
        assert download.content == b"simple body"

    def test_simple_upload_without_file(self, client: TestClient) -> None:
        response = client.post("/api/upload/simple")

        assert response.status_code == 400
        assert response.json()["message"] == "No file uploaded"


class TestUploadHeaderParsing:
    """Test parsing of Upload-Length and Upload-Offset values."""

    @pytest.mark.parametrize("value, expected", [
        ("12", 12), (" 12 ", 12), ("0", 0), ("1_000", None), ("+5", None),
        ("-5", None), ("1.5", None), ("²", None), ("١٢", None), ("", None), (None, None),
    ])
    def test_upload_length(self, value, expected) -> None:
        assert parse_upload_length(value) == expected

    @pytest.mark.parametrize("value", ["1_000", "+5", "²", "١٢", ""])
    def test_upload_offset_rejects_non_digits(self, value: str) -> None:
        with pytest.raises(InvalidRequest):
            parse_upload_offset(value)

    def test_upload_offset(self) -> None:
        assert parse_upload_offset(" 7 ") == 7


class TestUploadExpiry:
    """测试过期时间头"""

    def test_upload_expires_when_sweeper_enabled(self, app_config: ApplicationConfig) -> None:
        app_config.sweeper.enabled = True
        with patch('cobalt_depot.infrastructure.logging.setup.setup_logging'):
            container = Container()
            app = create_app(container, app_config, ApplicationStartup(container))
            with TestClient(app) as client:
                response = client.post("/api/upload", headers={"Upload-Length": "10"})
                upload_id = response.headers["Location"].rsplit("/", 1)[-1]
                partial = append(client, upload_id, 0, b"abc")

        assert response.headers["Upload-Expires"].endswith("GMT")
        assert partial.headers["Upload-Expires"].endswith("GMT")


class TestFileRoutes:
    """测试文件路由"""

    def test_list_empty(self, client: TestClient) -> None:
        response = client.get("/api/files")

        assert response.status_code == 200
        assert response.json() == []

    def test_delete(self, client: TestClient) -> None:
        upload_id = create_upload(client, 3, filename="a.txt")
        append(client, upload_id, 0, b"abc")
        file_id = client.get("/api/files").json()[0]["id"]

        response = client.delete(f"/api/files/{file_id}")

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "File deleted successfully"}
        assert client.get("/api/files").json() == []

        missing = client.get(f"/api/download/{file_id}")
        assert missing.status_code == 404
        assert missing.json()["error"] == "not_found"

    def test_delete_unknown(self, client: TestClient) -> None:
        response = client.delete("/api/files/unknown")

        assert response.status_code == 404

    def test_download_missing_blob(self, client: TestClient, app_config: ApplicationConfig) -> None:
        upload_id = create_upload(client, 3, filename="a.txt")
        append(client, upload_id, 0, b"abc")
        file_id = client.get("/api/files").json()[0]["id"]
        for path in Path(app_config.storage.local_directory).iterdir():
            path.unlink()

        response = client.get(f"/api/download/{file_id}")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_storage_failure_returns_500(self, client: TestClient) -> None:
        upload_id = create_upload(client, 3, filename="a.txt")
        append(client, upload_id, 0, b"abc")
        file_id = client.get("/api/files").json()[0]["id"]
        storage = client.app.state.container.resolve(IStorageBackend)

        with patch.object(storage, "delete", side_effect=StorageError("permission denied")):
            response = client.delete(f"/api/files/{file_id}")

        assert response.status_code == 500
        assert response.json()["error"] == "storage_error"
        assert len(client.get("/api/files").json()) == 1

    def test_unhandled_error_returns_500(self, client: TestClient) -> None:
        assets = client.app.state.container.resolve(IAssetService)

        with patch.object(assets, "list_assets", side_effect=RuntimeError("boom")):
            response = client.get("/api/files")

        assert response.status_code == 500
        assert response.json()["error"] == "internal_error"


class TestContentDisposition:
    """测试下载文件名头"""

    def test_ascii_name(self) -> None:
        assert content_disposition("report.pdf") == (
            "attachment; filename=\"report.pdf\"; filename*=UTF-8''report.pdf"
        )

    def test_unicode_name(self) -> None:
        assert content_disposition("résumé.pdf") == (
            "attachment; filename=\"r_sum_.pdf\"; filename*=UTF-8''r%C3%A9sum%C3%A9.pdf"
        )


class TestHealthRoutes:
    """测试健康检查路由"""

    def test_health(self, client: TestClient, app_config: ApplicationConfig) -> None:
        create_upload(client, 10)

        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["message"] == "Server is running"
        assert data["filesCount"] == 0
        assert data["activeUploads"] == 1
        assert data["storage"] == "local"
        assert data["uploadsDirectory"] == app_config.storage.local_directory
        assert data["resumableUploads"] is True
        assert data["maxUploadSize"] == 1024

    def test_detailed_health(self, client: TestClient) -> None:
        response = client.get("/api/health/detailed")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["application"]["environment"] == "testing"
        assert {"MetadataCatalog", "TempArea", "LocalStorageBackend", "UploadSessionManager",
                "AssetService", "TempSweeper", "LoggingManager"} <= set(data["components"])


class TestProtocolScenarios:
    """测试完整协议场景"""

    def test_two_chunk_upload(self, client: TestClient) -> None:
        upload_id = create_upload(client, 10, filename="a.txt")

        first = append(client, upload_id, 0, b"012345")
        assert first.status_code == 204
        assert first.headers["Upload-Offset"] == "6"

        second = append(client, upload_id, 6, b"6789")
        assert second.status_code == 204
        assert second.headers["Upload-Offset"] == "10"

        files = client.get("/api/files").json()
        assert [(f["name"], f["size"]) for f in files] == [("a.txt", 10)]

    def test_stale_offset_on_fresh_session(self, client: TestClient) -> None:
        upload_id = create_upload(client, 10)

        response = append(client, upload_id, 5, b"abc")

        assert response.status_code == 409
        assert client.head(f"/api/upload/{upload_id}").headers["Upload-Offset"] == "0"
        assert client.head(f"/api/upload/{upload_id}").headers["Upload-Offset"] == "0"

    def test_rejected_creation_leaves_no_session(self, client: TestClient) -> None:
        response = client.post("/api/upload", headers={"Upload-Length": "2048"})

        assert response.status_code == 413
        assert client.get("/api/health").json()["activeUploads"] == 0
        assert client.head("/api/upload/0123456789abcdef0123456789abcdef").status_code == 404
