"""
Local temp area for in-progress upload blobs.

Each upload session owns one file named after the session id. Chunks are
written in place at the session offset and fsynced before the offset is
allowed to move.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, AsyncIterable, Dict, List, Optional

import aiofiles
import aiofiles.os

from ...core.exceptions import PayloadTooLarge, StorageError
from ...core.interfaces.storage import BlobInfo, ITempArea, WriteProgress

logger = logging.getLogger(__name__)


class LocalTempArea(ITempArea):
    """Temp area backed by a local directory."""

    def __init__(self, directory: str) -> None:
        self._directory = Path(directory)
        self._running = False

    @property
    def name(self) -> str:
        return "TempArea"

    @property
    def directory(self) -> Path:
        return self._directory

    async def start(self) -> None:
        if self._running:
            return
        await aiofiles.os.makedirs(self._directory, exist_ok=True)
        self._running = True
        logger.info(f"Temp area ready at {self._directory}")

    async def stop(self) -> None:
        self._running = False

    async def check_health(self) -> Dict[str, Any]:
        exists = await aiofiles.os.path.isdir(self._directory)
        return {
            "healthy": self._running and exists,
            "status": "running" if self._running else "stopped",
            "details": {
                "directory": str(self._directory),
                "directory_exists": exists,
            }
        }

    def path_for(self, name: str) -> Path:
        if not name or name in (".", "..") or any(c in name for c in ("/", "\\", "\x00")):
            raise ValueError(f"Invalid temp blob name: {name!r}")
        return self._directory / name

    async def allocate(self, name: str) -> Path:
        path = self.path_for(name)
        try:
            # Exclusive create, a session id is never reused
            async with aiofiles.open(path, "xb"):
                pass
        except OSError as e:
            raise StorageError(f"Cannot allocate temp blob {name}", detail=str(e))
        return path

    async def write_at(
        self,
        name: str,
        offset: int,
        chunks: AsyncIterable[bytes],
        limit: int,
        progress: WriteProgress,
    ) -> int:
        path = self.path_for(name)
        try:
            async with aiofiles.open(path, "r+b") as f:
                await f.seek(offset)
                try:
                    async for chunk in chunks:
                        if not chunk:
                            continue
                        if progress.written + len(chunk) > limit:
                            raise PayloadTooLarge(
                                f"Chunk exceeds the declared upload length by "
                                f"{progress.written + len(chunk) - limit} bytes"
                            )
                        await f.write(chunk)
                        progress.written += len(chunk)
                finally:
                    # Runs on success, client disconnect and cancellation alike
                    if progress.written > progress.durable:
                        await f.flush()
                        await asyncio.to_thread(os.fsync, f.fileno())
                        progress.durable = progress.written
        except FileNotFoundError as e:
            raise StorageError(f"Temp blob missing: {name}", detail=str(e))
        except OSError as e:
            raise StorageError(f"Failed writing temp blob {name}", detail=str(e))

        return progress.durable

    async def stat(self, name: str) -> Optional[BlobInfo]:
        try:
            st = await aiofiles.os.stat(self.path_for(name))
        except FileNotFoundError:
            return None
        return BlobInfo(name=name, size=st.st_size, modified_at=st.st_mtime)

    async def list_blobs(self) -> List[BlobInfo]:
        try:
            names = await aiofiles.os.listdir(self._directory)
        except FileNotFoundError:
            return []

        blobs = []
        for entry in names:
            path = self._directory / entry
            if not await aiofiles.os.path.isfile(path):
                continue
            info = await self.stat(entry)
            if info is not None:
                blobs.append(info)
        return blobs

    async def delete(self, name: str) -> bool:
        try:
            await aiofiles.os.remove(self.path_for(name))
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed deleting temp blob {name}", detail=str(e))
        return True
