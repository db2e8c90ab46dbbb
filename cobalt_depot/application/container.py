"""
Service registry for the components of one application instance.

Components are built explicitly at startup and registered under their
interface type, either as ready instances or as factories that receive the
container and are invoked lazily on first resolution.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum, auto
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ServiceLifetime(Enum):
    """Service lifetime management options."""
    SINGLETON = auto()  # Single instance shared across application
    TRANSIENT = auto()  # New instance created each time


class ServiceRegistration:
    """Registration information for a service."""

    def __init__(self,
                 service_type: Type[Any],
                 factory: Optional[Callable[["IContainer"], Any]] = None,
                 instance: Any = None,
                 lifetime: ServiceLifetime = ServiceLifetime.SINGLETON):
        self.service_type = service_type
        self.factory = factory
        self.instance = instance
        self.lifetime = lifetime


class IContainer(ABC):
    """Interface for service containers."""

    @abstractmethod
    def register_instance(self, service_type: Type[T], instance: T) -> None:
        pass

    @abstractmethod
    def register_factory(self,
                         service_type: Type[T],
                         factory: Callable[["IContainer"], T],
                         lifetime: ServiceLifetime = ServiceLifetime.SINGLETON) -> None:
        pass

    @abstractmethod
    def resolve(self, service_type: Type[T]) -> T:
        """
        Resolve a service instance.

        Raises:
            ServiceNotRegisteredException: If service not registered
            ServiceResolutionException: If the factory fails
        """
        pass

    @abstractmethod
    def try_resolve(self, service_type: Type[T]) -> Optional[T]:
        pass

    @abstractmethod
    def is_registered(self, service_type: Type[T]) -> bool:
        pass

    @abstractmethod
    def get_registrations(self) -> Dict[Type[Any], "ServiceRegistration"]:
        pass


class ServiceNotRegisteredException(Exception):
    """Raised when trying to resolve an unregistered service."""
    pass


class ServiceResolutionException(Exception):
    """Raised when service resolution fails."""
    pass


class CircularDependencyException(Exception):
    """Raised when a factory resolves its own service type, directly or not."""
    pass


class Container(IContainer):
    """Lightweight service container with singleton and transient lifetimes."""

    def __init__(self) -> None:
        self._services: Dict[Type[Any], ServiceRegistration] = {}
        self._resolution_stack: List[Type[Any]] = []

    def register_instance(self, service_type: Type[T], instance: T) -> None:
        """Register a specific instance as a singleton."""
        self._services[service_type] = ServiceRegistration(service_type, instance=instance)
        logger.debug(f"Registered instance of {service_type.__name__}")

    def register_factory(self,
                         service_type: Type[T],
                         factory: Callable[[IContainer], T],
                         lifetime: ServiceLifetime = ServiceLifetime.SINGLETON) -> None:
        """Register a factory called with this container on resolution."""
        self._services[service_type] = ServiceRegistration(
            service_type, factory=factory, lifetime=lifetime
        )
        logger.debug(f"Registered factory for {service_type.__name__} with {lifetime.name} lifetime")

    def resolve(self, service_type: Type[T]) -> T:
        """Resolve a service instance."""
        if service_type in self._resolution_stack:
            cycle = " -> ".join([t.__name__ for t in self._resolution_stack] +
                                [service_type.__name__])
            raise CircularDependencyException(
                f"Circular dependency detected: {cycle}")

        if service_type not in self._services:
            raise ServiceNotRegisteredException(
                f"Service {service_type.__name__} is not registered")

        registration = self._services[service_type]

        if registration.instance is not None:
            return registration.instance  # type: ignore[no-any-return]

        if registration.factory is None:
            raise ServiceResolutionException(
                f"Service {service_type.__name__} has neither instance nor factory")

        self._resolution_stack.append(service_type)
        try:
            instance = registration.factory(self)
        except (CircularDependencyException, ServiceNotRegisteredException):
            raise
        except Exception as e:
            raise ServiceResolutionException(
                f"Failed to resolve {service_type.__name__}: {str(e)}") from e
        finally:
            self._resolution_stack.pop()

        if registration.lifetime == ServiceLifetime.SINGLETON:
            registration.instance = instance

        return instance  # type: ignore[no-any-return]

    def try_resolve(self, service_type: Type[T]) -> Optional[T]:
        """Try to resolve a service instance without raising exceptions."""
        try:
            return self.resolve(service_type)
        except (ServiceNotRegisteredException, ServiceResolutionException, CircularDependencyException):
            return None

    def is_registered(self, service_type: Union[Type[T], Any]) -> bool:
        """Check if a service type is registered."""
        return service_type in self._services

    def get_registrations(self) -> Dict[Type[Any], ServiceRegistration]:
        """Get all service registrations."""
        return self._services.copy()
