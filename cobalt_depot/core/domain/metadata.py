"""
Upload-Metadata header codec and filename sanitization.

The header is a comma separated list of ``key base64(value)`` pairs, as sent
by tus clients. The format is an external wire contract and is kept as is.
"""

import base64
import binascii
import re
import secrets
import time
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from ..exceptions import InvalidRequest
from .models import DEFAULT_CONTENT_TYPE, DEFAULT_FILENAME

MAX_FILENAME_BYTES = 255
# Leaves room for the "<millis>-<hex>-" prefix within a 255 byte name
MAX_STORED_SUFFIX_BYTES = 200

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_PATH_SEPARATORS = re.compile(r"[\\/]")


@dataclass(frozen=True)
class UploadMetadata:
    """Known metadata fields extracted from the creation request."""
    filename: str = DEFAULT_FILENAME
    content_type: str = DEFAULT_CONTENT_TYPE


def split_metadata_header(header: Optional[str]) -> Dict[str, Optional[str]]:
    """Split the raw header into ``{key: base64 value or None}``."""
    pairs: Dict[str, Optional[str]] = {}
    if not header:
        return pairs

    for item in header.split(","):
        item = item.strip()
        if not item:
            continue
        parts = item.split(" ")
        key = parts[0]
        value = parts[1] if len(parts) > 1 and parts[1] else None
        pairs[key] = value
    return pairs


def decode_metadata_value(key: str, raw: Optional[str]) -> str:
    if raw is None:
        return ""
    try:
        return base64.b64decode(raw, validate=True).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError):
        raise InvalidRequest(f"Upload-Metadata value for {key!r} is not valid base64")


def encode_metadata_header(values: Mapping[str, str]) -> str:
    """Build a header value; used by clients and tests."""
    return ",".join(
        f"{key} {base64.b64encode(value.encode('utf-8')).decode('ascii')}"
        for key, value in values.items()
    )


def sanitize_filename(name: Optional[str]) -> str:
    """
    Reduce a client supplied name to a safe basename.

    Path components, control characters and leading dots are dropped and
    the result is capped at 255 UTF-8 bytes.
    """
    if not name:
        return DEFAULT_FILENAME

    name = _PATH_SEPARATORS.split(name)[-1]
    name = _CONTROL_CHARS.sub("", name).strip().lstrip(".")

    encoded = name.encode("utf-8")
    if len(encoded) > MAX_FILENAME_BYTES:
        name = encoded[:MAX_FILENAME_BYTES].decode("utf-8", errors="ignore")

    return name or DEFAULT_FILENAME


def build_storage_name(filename: str, now: Optional[float] = None) -> str:
    """Collision resistant permanent blob name that keeps the original name readable."""
    stamp = int((now if now is not None else time.time()) * 1000)
    readable = sanitize_filename(filename).encode("utf-8")[:MAX_STORED_SUFFIX_BYTES]
    return f"{stamp}-{secrets.token_hex(4)}-{readable.decode('utf-8', errors='ignore') or DEFAULT_FILENAME}"


def parse_upload_metadata(header: Optional[str]) -> UploadMetadata:
    """Extract ``filename`` and ``filetype``; other keys are ignored."""
    pairs = split_metadata_header(header)

    filename = DEFAULT_FILENAME
    if "filename" in pairs:
        filename = sanitize_filename(decode_metadata_value("filename", pairs["filename"]))

    content_type = DEFAULT_CONTENT_TYPE
    if "filetype" in pairs:
        decoded = _CONTROL_CHARS.sub("", decode_metadata_value("filetype", pairs["filetype"])).strip()
        content_type = decoded or DEFAULT_CONTENT_TYPE

    return UploadMetadata(filename=filename, content_type=content_type)
