"""
Resumable upload API endpoints.

This module exposes the tus 1.0.0 core protocol with the creation,
expiration and termination extensions, plus a single-request multipart
upload endpoint.
"""

import logging
from email.utils import formatdate
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import APIRouter, Depends, File, Request, Response, UploadFile, status
from pydantic import BaseModel, Field
from starlette.requests import ClientDisconnect

from ....core.domain.models import UploadSession
from ....core.exceptions import InvalidRequest
from ....core.interfaces.upload import IUploadSessionManager
from ....infrastructure.config.models import ApplicationConfig
from ..dependencies import get_config, get_upload_manager

logger = logging.getLogger(__name__)

router = APIRouter()

TUS_RESUMABLE = "1.0.0"
TUS_EXTENSIONS = "creation,expiration,termination"
SIMPLE_UPLOAD_CHUNK_SIZE = 1024 * 1024


def tus_headers(**extra: Any) -> Dict[str, str]:
    """Headers carried by every tus response."""
    headers = {"Tus-Resumable": TUS_RESUMABLE}
    for key, value in extra.items():
        headers[key.replace("_", "-")] = str(value)
    return headers


def parse_upload_length(value: Optional[str]) -> Optional[int]:
    """Missing or malformed lengths are treated as unacceptable sizes."""
    if value is None:
        return None
    value = value.strip()
    if not (value.isascii() and value.isdigit()):
        return None
    return int(value)


def parse_upload_offset(value: Optional[str]) -> int:
    if value is None:
        raise InvalidRequest("Upload-Offset header is required")
    value = value.strip()
    if not (value.isascii() and value.isdigit()):
        raise InvalidRequest(f"Upload-Offset must be a non-negative integer, got {value!r}")
    return int(value)


def upload_expires(session: UploadSession, config: ApplicationConfig) -> Optional[str]:
    if not config.sweeper.enabled:
        return None
    return formatdate(session.updated_at + config.sweeper.retention, usegmt=True)


@router.options("/upload")
async def upload_options(
    config: ApplicationConfig = Depends(get_config)
) -> Response:
    """Advertise protocol capabilities."""
    headers = tus_headers(
        Tus_Version=config.upload.tus_version,
        Tus_Max_Size=config.upload.max_size,
        Tus_Extension=TUS_EXTENSIONS,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=headers)


@router.post("/upload")
async def create_upload(
    request: Request,
    manager: IUploadSessionManager = Depends(get_upload_manager),
    config: ApplicationConfig = Depends(get_config)
) -> Response:
    """Create a resumable upload session."""
    session = await manager.create_session(
        parse_upload_length(request.headers.get("Upload-Length")),
        request.headers.get("Upload-Metadata"),
    )

    headers = tus_headers(
        Location=f"{config.server.api_prefix}/upload/{session.id}",
        Upload_Offset=session.offset,
    )
    expires = upload_expires(session, config)
    if expires:
        headers["Upload-Expires"] = expires

    return Response(status_code=status.HTTP_201_CREATED, headers=headers)


class SimpleUploadResult(BaseModel):
    """Single-request upload result."""
    success: bool = Field(..., description="Whether the file was stored")
    fileId: str = Field(..., description="Identifier of the stored file")
    filename: str = Field(..., description="Sanitized original file name")


@router.post("/upload/simple", response_model=SimpleUploadResult)
async def simple_upload(
    file: Optional[UploadFile] = File(None),
    manager: IUploadSessionManager = Depends(get_upload_manager)
) -> SimpleUploadResult:
    """Store a whole file sent as multipart form field ``file``."""
    if file is None:
        raise InvalidRequest("No file uploaded")

    async def chunks() -> AsyncIterator[bytes]:
        while True:
            data = await file.read(SIMPLE_UPLOAD_CHUNK_SIZE)
            if not data:
                break
            yield data

    try:
        record = await manager.ingest_stream(file.filename, file.content_type, chunks())
    finally:
        await file.close()

    return SimpleUploadResult(success=True, fileId=record.id, filename=record.original_name)


@router.head("/upload/{session_id}")
async def upload_offset(
    session_id: str,
    manager: IUploadSessionManager = Depends(get_upload_manager),
    config: ApplicationConfig = Depends(get_config)
) -> Response:
    """Report how many bytes the server holds for a session."""
    session = manager.get_session(session_id)
    offset, total = manager.query_offset(session_id)

    headers = tus_headers(
        Upload_Offset=offset,
        Upload_Length=total,
        Cache_Control="no-store",
    )
    expires = upload_expires(session, config)
    if expires:
        headers["Upload-Expires"] = expires

    return Response(status_code=status.HTTP_200_OK, headers=headers)


@router.patch("/upload/{session_id}")
async def append_upload(
    session_id: str,
    request: Request,
    manager: IUploadSessionManager = Depends(get_upload_manager),
    config: ApplicationConfig = Depends(get_config)
) -> Response:
    """Append the request body at the offset claimed by the client."""
    claimed = parse_upload_offset(request.headers.get("Upload-Offset"))

    try:
        new_offset = await manager.append_chunk(session_id, claimed, request.stream())
    except ClientDisconnect:
        # Durable bytes are already counted; the client resumes from HEAD
        logger.info(f"Client disconnected during append to {session_id}")
        return Response(status_code=status.HTTP_204_NO_CONTENT, headers=tus_headers())

    headers = tus_headers(Upload_Offset=new_offset)
    # Finalized sessions are gone from the active set
    if session_id in manager.active_session_ids():
        expires = upload_expires(manager.get_session(session_id), config)
        if expires:
            headers["Upload-Expires"] = expires

    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=headers)


@router.delete("/upload/{session_id}")
async def terminate_upload(
    session_id: str,
    manager: IUploadSessionManager = Depends(get_upload_manager)
) -> Response:
    """Abandon a session and release its data."""
    await manager.terminate_session(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers=tus_headers())
