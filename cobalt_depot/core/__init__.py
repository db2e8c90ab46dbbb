"""
Core module containing domain models, errors and service interfaces.

This module defines the core abstractions of the Cobalt Depot application,
independent of web frameworks and storage technology.
"""

from .interfaces.lifecycle import IStartable, IStoppable, IHealthCheckable, IComponent
from .interfaces.upload import IUploadSessionManager
from .interfaces.catalog import IMetadataCatalog
from .interfaces.storage import IStorageBackend, ITempArea
from .interfaces.assets import IAssetService, ITempSweeper
from .domain.models import AssetRecord, UploadSession

__all__ = [
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "IComponent",
    "IUploadSessionManager",
    "IMetadataCatalog",
    "IStorageBackend",
    "ITempArea",
    "IAssetService",
    "ITempSweeper",
    "AssetRecord",
    "UploadSession",
]
