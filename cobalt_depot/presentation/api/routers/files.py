"""
File listing, download and deletion endpoints.
"""

from typing import List
from urllib.parse import quote

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from ....core.interfaces.assets import IAssetService
from ..dependencies import get_asset_service

router = APIRouter()


class FileInfo(BaseModel):
    """Finalized file listing entry."""
    id: str = Field(..., description="File identifier")
    name: str = Field(..., description="Original file name")
    size: int = Field(..., description="Size in bytes")
    uploadDate: str = Field(..., description="ISO-8601 UTC completion time")
    type: str = Field(..., description="Content type")
    path: str = Field(..., description="Download path")


class DeleteResult(BaseModel):
    """File deletion result."""
    success: bool
    message: str


def content_disposition(filename: str) -> str:
    """Attachment header with an ASCII fallback and the UTF-8 name."""
    fallback = filename.encode("ascii", errors="replace").decode("ascii")
    fallback = fallback.replace("?", "_").replace('"', "'")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


@router.get("/files", response_model=List[FileInfo])
async def list_files(
    assets: IAssetService = Depends(get_asset_service)
) -> List[FileInfo]:
    """List finalized files, newest first."""
    return [FileInfo(**summary.to_dict()) for summary in assets.list_assets()]


@router.get("/download/{asset_id}")
async def download_file(
    asset_id: str,
    assets: IAssetService = Depends(get_asset_service)
) -> StreamingResponse:
    """Stream a finalized file."""
    record, stream = await assets.download(asset_id)

    return StreamingResponse(
        stream.chunks,
        media_type=record.content_type,
        headers={
            "Content-Disposition": content_disposition(record.original_name),
            "Content-Length": str(stream.size),
        }
    )


@router.delete("/files/{asset_id}", response_model=DeleteResult)
async def delete_file(
    asset_id: str,
    assets: IAssetService = Depends(get_asset_service)
) -> DeleteResult:
    """Delete a finalized file and its catalog entry."""
    await assets.delete(asset_id)
    return DeleteResult(success=True, message="File deleted successfully")
