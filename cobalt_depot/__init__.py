"""
Cobalt Depot - Resumable file upload server speaking the tus protocol.

This package accepts large uploads over unreliable connections, resumes
interrupted transfers and serves the finished files from local disk or an
S3-compatible object store.
"""

__version__ = "0.1.0"

# Public API exports
from .core.interfaces.lifecycle import IStartable, IStoppable, IHealthCheckable, IComponent
from .core.interfaces.upload import IUploadSessionManager
from .core.interfaces.assets import IAssetService, ITempSweeper
from .core.interfaces.catalog import IMetadataCatalog
from .core.interfaces.storage import IStorageBackend, ITempArea
from .application.container import Container, IContainer

__all__ = [
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "IComponent",
    "IUploadSessionManager",
    "IAssetService",
    "ITempSweeper",
    "IMetadataCatalog",
    "IStorageBackend",
    "ITempArea",
    "Container",
    "IContainer",
]
