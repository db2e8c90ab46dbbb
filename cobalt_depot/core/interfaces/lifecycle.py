"""
Lifecycle management interfaces for components that need startup/shutdown behavior.

These interfaces provide a consistent way to manage component lifecycles
and health monitoring across the application.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict


class IStartable(ABC):
    """Interface for components that can be started."""

    @abstractmethod
    async def start(self) -> None:
        """
        Start the component.

        This method should acquire any resources needed by the component
        (directories, client connections, loaded documents) and prepare it
        for normal operation.

        Raises:
            Exception: If the component fails to start.
        """
        pass


class IStoppable(ABC):
    """Interface for components that can be stopped."""

    @abstractmethod
    async def stop(self) -> None:
        """
        Stop the component gracefully.

        Raises:
            Exception: If the component fails to stop cleanly.
        """
        pass


class IHealthCheckable(ABC):
    """Interface for components that can report their health status."""

    @abstractmethod
    async def check_health(self) -> Dict[str, Any]:
        """
        Check the health status of the component.

        Returns:
            Dict containing health information with at least:
            - 'healthy': bool indicating if component is healthy
            - 'status': str describing current status
            - 'details': Dict with additional health details

        Example:
            {
                'healthy': True,
                'status': 'running',
                'details': {
                    'active_sessions': 2,
                    'temp_directory': 'temp'
                }
            }
        """
        pass


class IComponent(IStartable, IStoppable, IHealthCheckable):
    """
    Base interface for all major system components.

    Combines the lifecycle interfaces into a single interface that the
    storage, catalog and service components implement.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the component name."""
        pass

    @property
    def version(self) -> str:
        """Get the component version."""
        return "1.0.0"
