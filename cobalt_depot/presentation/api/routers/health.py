"""
Health check API endpoints.

This module provides health check endpoints for monitoring
application and component status.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends

from ....application.container import IContainer
from ....core.interfaces.catalog import IMetadataCatalog
from ....core.interfaces.lifecycle import IComponent
from ....core.interfaces.upload import IUploadSessionManager
from ....infrastructure.config.models import ApplicationConfig
from ..dependencies import get_config, get_container

router = APIRouter()


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _storage_location(config: ApplicationConfig) -> str:
    if config.storage.backend == "s3":
        return f"s3://{config.storage.s3.bucket}/{config.storage.s3.prefix}"
    return config.storage.local_directory


@router.get("")
async def health_check(
    container: IContainer = Depends(get_container),
    config: ApplicationConfig = Depends(get_config)
) -> Dict[str, Any]:
    """
    Basic health check endpoint.

    Reports catalogued file count and in-progress uploads.
    """
    catalog = container.try_resolve(IMetadataCatalog)  # type: ignore[type-abstract]
    uploads = container.try_resolve(IUploadSessionManager)  # type: ignore[type-abstract]

    return {
        "status": "ok",
        "message": "Server is running",
        "timestamp": _timestamp(),
        "filesCount": catalog.count if catalog else 0,
        "activeUploads": uploads.active_count if uploads else 0,
        "storage": config.storage.backend,
        "uploadsDirectory": _storage_location(config),
        "resumableUploads": True,
        "maxUploadSize": config.upload.max_size,
    }


@router.get("/detailed")
async def detailed_health_check(
    container: IContainer = Depends(get_container),
    config: ApplicationConfig = Depends(get_config)
) -> Dict[str, Any]:
    """
    Detailed health check with component status.

    Returns health status for all registered components.
    """
    components_health = {}
    overall_healthy = True

    for service_type in container.get_registrations():
        component_name = service_type.__name__

        try:
            component = container.resolve(service_type)

            if isinstance(component, IComponent):
                health_info = await component.check_health()
                components_health[component.name] = health_info

                if not health_info.get("healthy", True):
                    overall_healthy = False

        except Exception as e:
            components_health[component_name] = {
                "healthy": False,
                "status": "error",
                "details": {"error": str(e)}
            }
            overall_healthy = False

    return {
        "status": "healthy" if overall_healthy else "degraded",
        "timestamp": _timestamp(),
        "application": {
            "name": config.name,
            "version": config.version,
            "environment": config.environment
        },
        "components": components_health
    }
