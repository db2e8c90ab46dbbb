"""
Local filesystem storage backend.

Promoted blobs live flat in one directory; the locator is the file name.
"""

import asyncio
import logging
import os
import shutil
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional

import aiofiles
import aiofiles.os

from ...core.exceptions import StorageError
from ...core.interfaces.storage import BlobInfo, BlobStream, IStorageBackend

logger = logging.getLogger(__name__)


class LocalStorageBackend(IStorageBackend):
    """Storage backend writing promoted blobs into a local directory."""

    def __init__(self, directory: str) -> None:
        self._directory = Path(directory)
        self._running = False

    @property
    def name(self) -> str:
        return "LocalStorageBackend"

    @property
    def kind(self) -> str:
        return "local"

    @property
    def directory(self) -> Path:
        return self._directory

    async def start(self) -> None:
        if self._running:
            return
        await aiofiles.os.makedirs(self._directory, exist_ok=True)
        self._running = True
        logger.info(f"Local storage ready at {self._directory}")

    async def stop(self) -> None:
        self._running = False

    async def check_health(self) -> Dict[str, Any]:
        exists = await aiofiles.os.path.isdir(self._directory)
        return {
            "healthy": self._running and exists,
            "status": "running" if self._running else "stopped",
            "details": {
                "backend": self.kind,
                "directory": str(self._directory),
                "directory_exists": exists,
                "writable": exists and os.access(self._directory, os.W_OK),
            }
        }

    def _path(self, locator: str) -> Path:
        if not locator or locator in (".", "..") or any(c in locator for c in ("/", "\\", "\x00")):
            raise StorageError(f"Invalid storage locator: {locator!r}")
        return self._directory / locator

    async def promote(self, source: Path, name: str, content_type: str) -> str:
        destination = self._path(name)
        if await aiofiles.os.path.exists(destination):
            raise StorageError(f"Storage name already taken: {name}")

        try:
            await aiofiles.os.link(source, destination)
        except OSError as link_error:
            # Different filesystem or no hard link support
            logger.debug(f"Hard link failed for {name} ({link_error}), copying instead")
            partial = destination.with_name(destination.name + ".part")
            try:
                await asyncio.to_thread(shutil.copyfile, source, partial)
                await aiofiles.os.replace(partial, destination)
            except OSError as e:
                await self._discard(partial)
                raise StorageError(f"Failed to promote {source.name} to {name}", detail=str(e))

        logger.debug(f"Promoted {source.name} to {destination}")
        return name

    async def open(self, locator: str, chunk_size: int = 1024 * 1024) -> BlobStream:
        path = self._path(locator)
        try:
            st = await aiofiles.os.stat(path)
        except OSError as e:
            raise StorageError(f"Cannot open blob {locator}", detail=str(e))

        return BlobStream(size=st.st_size, chunks=self._iter_file(path, chunk_size))

    async def _iter_file(self, path: Path, chunk_size: int) -> AsyncIterator[bytes]:
        async with aiofiles.open(path, "rb") as f:
            while True:
                chunk = await f.read(chunk_size)
                if not chunk:
                    break
                yield chunk

    async def stat(self, locator: str) -> Optional[BlobInfo]:
        try:
            st = await aiofiles.os.stat(self._path(locator))
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Cannot stat blob {locator}", detail=str(e))
        return BlobInfo(name=locator, size=st.st_size, modified_at=st.st_mtime)

    async def delete(self, locator: str) -> bool:
        try:
            await aiofiles.os.remove(self._path(locator))
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete blob {locator}", detail=str(e))
        return True

    async def list_blobs(self) -> List[BlobInfo]:
        try:
            names = await aiofiles.os.listdir(self._directory)
        except FileNotFoundError:
            return []

        blobs = []
        for entry in names:
            if not await aiofiles.os.path.isfile(self._directory / entry):
                continue
            info = await self.stat(entry)
            if info is not None:
                blobs.append(info)
        return blobs

    async def _discard(self, path: Path) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove partial copy {path}: {e}")
