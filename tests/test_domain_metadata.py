"""
Tests for the Upload-Metadata codec and filename sanitization.

测试上传元数据解析与文件名清理功能。
"""

import re

import pytest

from cobalt_depot.core.domain.metadata import (
    build_storage_name, encode_metadata_header, parse_upload_metadata,
    sanitize_filename, split_metadata_header
)
from cobalt_depot.core.exceptions import InvalidRequest


class TestSplitMetadataHeader:
    """测试元数据头拆分"""

    def test_split_pairs_and_bare_keys(self) -> None:
        pairs = split_metadata_header("filename ZmlsZS50eHQ=,filetype dGV4dC9wbGFpbg==,is_confidential")

        assert pairs == {
            "filename": "ZmlsZS50eHQ=",
            "filetype": "dGV4dC9wbGFpbg==",
            "is_confidential": None,
        }

    def test_split_empty_header(self) -> None:
        assert split_metadata_header(None) == {}
        assert split_metadata_header("") == {}

    def test_split_ignores_blank_items(self) -> None:
        assert split_metadata_header("a YQ==, ,") == {"a": "YQ=="}


class TestParseUploadMetadata:
    """测试元数据解析"""

    def test_parse_filename_and_type(self) -> None:
        header = encode_metadata_header({"filename": "report.pdf", "filetype": "application/pdf"})

        metadata = parse_upload_metadata(header)

        assert metadata.filename == "report.pdf"
        assert metadata.content_type == "application/pdf"

    def test_parse_defaults_without_header(self) -> None:
        metadata = parse_upload_metadata(None)

        assert metadata.filename == "unknown"
        assert metadata.content_type == "application/octet-stream"

    def test_parse_key_without_value_uses_default(self) -> None:
        metadata = parse_upload_metadata("filename,filetype")

        assert metadata.filename == "unknown"
        assert metadata.content_type == "application/octet-stream"

    def test_parse_unicode_filename(self) -> None:
        header = encode_metadata_header({"filename": "été 2024.txt"})

        assert parse_upload_metadata(header).filename == "été 2024.txt"

    def test_invalid_base64_for_known_key(self) -> None:
        with pytest.raises(InvalidRequest):
            parse_upload_metadata("filename !!!not-base64!!!")

    def test_invalid_base64_for_unknown_key_is_ignored(self) -> None:
        metadata = parse_upload_metadata("checksum !!!,filename YS50eHQ=")

        assert metadata.filename == "a.txt"

    def test_filename_is_sanitized(self) -> None:
        header = encode_metadata_header({"filename": "../../etc/passwd"})

        assert parse_upload_metadata(header).filename == "passwd"


class TestSanitizeFilename:
    """测试文件名清理"""

    @pytest.mark.parametrize("raw,expected", [
        ("../../etc/passwd", "passwd"),
        ("C:\\Users\\me\\evil.exe", "evil.exe"),
        (".hidden", "hidden"),
        ("a\x00b\nc.txt", "abc.txt"),
        ("  spaced.txt  ", "spaced.txt"),
        ("..", "unknown"),
        ("", "unknown"),
        (None, "unknown"),
    ])
    def test_sanitize(self, raw: str, expected: str) -> None:
        assert sanitize_filename(raw) == expected

    def test_length_is_capped_in_bytes(self) -> None:
        name = sanitize_filename("é" * 200)

        assert len(name.encode("utf-8")) <= 255
        assert set(name) == {"é"}


class TestBuildStorageName:
    """测试存储文件名生成"""

    def test_name_layout(self) -> None:
        name = build_storage_name("report.pdf", now=1700000000.0)

        assert re.fullmatch(r"1700000000000-[0-9a-f]{8}-report\.pdf", name)

    def test_names_do_not_collide(self) -> None:
        names = {build_storage_name("same.txt", now=1700000000.0) for _ in range(50)}

        assert len(names) == 50

    def test_unsafe_name_is_sanitized(self) -> None:
        name = build_storage_name("../secret/..hidden")

        assert "/" not in name
        assert name.endswith("-hidden")
