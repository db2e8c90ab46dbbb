"""
Application startup and configuration logic.

This module builds every component from the application configuration,
registers it with the container under its interface, and drives the
start/stop sequence.
"""

import logging
from typing import Iterable, List, Optional, Type

from .container import IContainer, ServiceLifetime
from ..core.interfaces.assets import IAssetService, ITempSweeper
from ..core.interfaces.catalog import IMetadataCatalog
from ..core.interfaces.lifecycle import IComponent, IStartable, IStoppable
from ..core.interfaces.storage import IStorageBackend, ITempArea
from ..core.interfaces.upload import IUploadSessionManager
from ..infrastructure.config.models import ApplicationConfig
from ..infrastructure.logging.setup import LoggingManager

logger = logging.getLogger(__name__)


class ApplicationStartup:
    """
    Manages application startup and service configuration.

    Components start in dependency order (logging first, sweeper last) and
    stop in reverse. A component that fails to start stops everything
    started before it.
    """

    STARTUP_ORDER: List[str] = [
        'logging_manager',
        'catalog',
        'temp_area',
        'storage',
        'upload_manager',
        'asset_service',
        'sweeper',
    ]

    COMPONENT_TYPES = {
        'logging_manager': LoggingManager,
        'catalog': IMetadataCatalog,
        'temp_area': ITempArea,
        'storage': IStorageBackend,
        'upload_manager': IUploadSessionManager,
        'asset_service': IAssetService,
        'sweeper': ITempSweeper,
    }

    def __init__(self, container: IContainer) -> None:
        self._container = container
        self._started_components: List[IComponent] = []
        self._configured = False

    @property
    def configured(self) -> bool:
        return self._configured

    @property
    def started_components(self) -> List[IComponent]:
        return list(self._started_components)

    async def configure_services(self, config: ApplicationConfig) -> None:
        """
        Configure and register all application services.

        Args:
            config: Application configuration
        """
        logger.info("Configuring application services...")

        self._container.register_instance(ApplicationConfig, config)

        self._register_infrastructure_services(config)
        self._register_application_services(config)
        self._configured = True

        logger.info("Service configuration completed")

    async def start_application(self, only: Optional[Iterable[str]] = None) -> None:
        """
        Start application components in order.

        Args:
            only: Restrict startup to these component names
        """
        logger.info("Starting application components...")
        selected = set(only) if only is not None else None

        for component_name in self.STARTUP_ORDER:
            if selected is not None and component_name not in selected:
                continue
            try:
                component = self._get_component_by_name(component_name)
                if component and isinstance(component, IStartable):
                    logger.debug(f"Starting component: {component_name}")
                    await component.start()

                    if isinstance(component, IComponent):
                        self._started_components.append(component)

                    logger.info(f"Started component: {component_name}")

            except Exception as e:
                logger.error(
                    f"Failed to start component {component_name}: {e}")
                await self.stop_application()
                raise

        logger.info("Application startup completed successfully")

    async def stop_application(self) -> None:
        """Stop all started components in reverse order."""
        logger.info("Stopping application components...")

        for component in reversed(self._started_components):
            try:
                if isinstance(component, IStoppable):
                    logger.debug(f"Stopping component: {component.name}")
                    await component.stop()
                    logger.info(f"Stopped component: {component.name}")

            except Exception as e:
                logger.error(f"Error stopping component {component.name}: {e}")
                # Continue stopping other components

        self._started_components.clear()
        logger.info("Application shutdown completed")

    def _register_infrastructure_services(self, config: ApplicationConfig) -> None:
        """Register logging, catalog and storage components."""
        from ..infrastructure.catalog import JsonMetadataCatalog
        from ..infrastructure.storage import LocalTempArea, create_storage_backend

        self._container.register_instance(LoggingManager, LoggingManager(config.logging))
        self._container.register_instance(
            IMetadataCatalog, JsonMetadataCatalog(config.catalog.path))  # type: ignore[type-abstract]
        self._container.register_instance(
            ITempArea, LocalTempArea(config.upload.temp_directory))  # type: ignore[type-abstract]
        self._container.register_instance(
            IStorageBackend, create_storage_backend(config.storage))  # type: ignore[type-abstract]

        logger.debug(f"Registered infrastructure services ({config.storage.backend} storage)")

    def _register_application_services(self, config: ApplicationConfig) -> None:
        """Register upload, asset and sweeper services as lazy singletons."""
        from ..infrastructure.services import AssetService, TempSweeper, UploadSessionManager

        self._container.register_factory(
            IUploadSessionManager,  # type: ignore[type-abstract]
            lambda c: UploadSessionManager(
                c.resolve(ITempArea),  # type: ignore[type-abstract]
                c.resolve(IStorageBackend),  # type: ignore[type-abstract]
                c.resolve(IMetadataCatalog),  # type: ignore[type-abstract]
                max_size=config.upload.max_size,
                chunk_timeout=config.upload.chunk_timeout,
            ),
            ServiceLifetime.SINGLETON
        )

        self._container.register_factory(
            IAssetService,  # type: ignore[type-abstract]
            lambda c: AssetService(
                c.resolve(IMetadataCatalog),  # type: ignore[type-abstract]
                c.resolve(IStorageBackend),  # type: ignore[type-abstract]
                api_prefix=config.server.api_prefix,
                chunk_size=config.storage.download_chunk_size,
            ),
            ServiceLifetime.SINGLETON
        )

        self._container.register_factory(
            ITempSweeper,  # type: ignore[type-abstract]
            lambda c: TempSweeper(
                c.resolve(IUploadSessionManager),  # type: ignore[type-abstract]
                c.resolve(ITempArea),  # type: ignore[type-abstract]
                c.resolve(IStorageBackend),  # type: ignore[type-abstract]
                c.resolve(IMetadataCatalog),  # type: ignore[type-abstract]
                config.sweeper,
            ),
            ServiceLifetime.SINGLETON
        )

        logger.debug("Registered application services")

    def _get_component_by_name(self, component_name: str) -> Optional[IComponent]:
        """Get a component by its name from the container."""
        service_type: Optional[Type[IComponent]] = self.COMPONENT_TYPES.get(component_name)  # type: ignore[assignment]
        if service_type is None:
            return None
        return self._container.try_resolve(service_type)
