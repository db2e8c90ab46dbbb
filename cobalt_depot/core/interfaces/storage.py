"""
Storage interfaces for the Cobalt Depot application.

Two namespaces exist: the temp area, which holds in-progress session blobs
named by session id, and the permanent namespace of a storage backend, which
holds promoted blobs addressed by a backend specific locator.
"""

from abc import abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterable, AsyncIterator, List, Optional

from .lifecycle import IComponent


@dataclass(frozen=True)
class BlobInfo:
    """Basic facts about a stored blob."""
    name: str
    size: int
    modified_at: float


@dataclass
class BlobStream:
    """Readable blob content of a known size."""
    size: int
    chunks: AsyncIterator[bytes]


@dataclass
class WriteProgress:
    """
    Byte counters for a positional write.

    ``written`` counts bytes handed to the file, ``durable`` counts bytes
    confirmed by fsync. Only ``durable`` may move an upload offset.
    """
    written: int = 0
    durable: int = 0


class ITempArea(IComponent):
    """Local area holding in-progress upload blobs."""

    @property
    @abstractmethod
    def directory(self) -> Path:
        pass

    @abstractmethod
    def path_for(self, name: str) -> Path:
        """Resolve a blob name inside the temp area."""
        pass

    @abstractmethod
    async def allocate(self, name: str) -> Path:
        """Create an empty blob and return its location."""
        pass

    @abstractmethod
    async def write_at(
        self,
        name: str,
        offset: int,
        chunks: AsyncIterable[bytes],
        limit: int,
        progress: WriteProgress,
    ) -> int:
        """
        Write a byte stream starting at ``offset``.

        Writing stops with PayloadTooLarge before any chunk that would take
        the total past ``limit`` bytes. ``progress`` is updated in place so
        callers can read the durable count even if the write fails.

        Returns:
            Number of bytes durably written
        """
        pass

    @abstractmethod
    async def stat(self, name: str) -> Optional[BlobInfo]:
        pass

    @abstractmethod
    async def list_blobs(self) -> List[BlobInfo]:
        pass

    @abstractmethod
    async def delete(self, name: str) -> bool:
        """Remove a blob. Returns False if it did not exist."""
        pass


class IStorageBackend(IComponent):
    """Durable storage for promoted blobs."""

    @property
    @abstractmethod
    def kind(self) -> str:
        """Short backend identifier, e.g. ``local`` or ``s3``."""
        pass

    @abstractmethod
    async def promote(self, source: Path, name: str, content_type: str) -> str:
        """
        Copy a finished temp blob into the permanent namespace.

        The source file is left in place; the caller removes it once the
        asset is catalogued.

        Returns:
            Storage locator of the new blob
        """
        pass

    @abstractmethod
    async def open(self, locator: str, chunk_size: int = 1024 * 1024) -> BlobStream:
        """Open a blob for streaming. Raises StorageError if unreadable."""
        pass

    @abstractmethod
    async def stat(self, locator: str) -> Optional[BlobInfo]:
        """Blob facts, or None if the blob does not exist."""
        pass

    @abstractmethod
    async def delete(self, locator: str) -> bool:
        """
        Delete a blob.

        Returns:
            False if the blob was already missing

        Raises:
            StorageError: If the backend refused or failed the deletion
        """
        pass

    @abstractmethod
    async def list_blobs(self) -> List[BlobInfo]:
        """All blobs in the permanent namespace; ``name`` is the locator."""
        pass
