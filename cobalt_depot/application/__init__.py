"""
Application layer containing the service container and startup logic.

This layer wires the core interfaces to their infrastructure
implementations and manages the application lifecycle.
"""

from .container import Container, IContainer, ServiceLifetime
from .startup import ApplicationStartup

__all__ = [
    "Container",
    "IContainer",
    "ServiceLifetime",
    "ApplicationStartup",
]
