"""
Storage infrastructure: the temp area and the permanent storage backends.
"""

from ..config.models import StorageConfig
from ...core.interfaces.storage import IStorageBackend
from .local import LocalStorageBackend
from .s3 import S3StorageBackend
from .temp import LocalTempArea


def create_storage_backend(config: StorageConfig) -> IStorageBackend:
    """Build the backend selected by ``storage.backend``."""
    if config.backend == "local":
        return LocalStorageBackend(config.local_directory)
    if config.backend == "s3":
        return S3StorageBackend(config.s3)
    raise ValueError(f"Unknown storage backend: {config.backend}")


__all__ = [
    "LocalStorageBackend",
    "S3StorageBackend",
    "LocalTempArea",
    "create_storage_backend",
]
