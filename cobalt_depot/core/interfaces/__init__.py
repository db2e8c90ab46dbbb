"""
Core interfaces defining the contracts for all major system components.

These interfaces provide the foundation for dependency inversion and enable
loose coupling between components.
"""

from .lifecycle import IStartable, IStoppable, IHealthCheckable, IComponent
from .storage import IStorageBackend, ITempArea, BlobInfo, BlobStream, WriteProgress
from .catalog import IMetadataCatalog
from .upload import IUploadSessionManager
from .assets import IAssetService, ITempSweeper

__all__ = [
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "IComponent",
    "IStorageBackend",
    "ITempArea",
    "BlobInfo",
    "BlobStream",
    "WriteProgress",
    "IMetadataCatalog",
    "IUploadSessionManager",
    "IAssetService",
    "ITempSweeper",
]
