"""
Managers module - focused Docker managers behind a single async driver:
- BaseManager: Docker client ownership and not-found classification
- NetworkManager: Package network management
- ContainerManager: Container, image and volume lifecycle
- DockerDriver: Async primitives composed from the managers above
"""

from kittynode.commands.managers.base import BaseManager, is_missing_resource_error
from kittynode.commands.managers.container import ContainerManager, container_is_running
from kittynode.commands.managers.driver import DockerDriver
from kittynode.commands.managers.network import NetworkManager

__all__ = [
    "BaseManager",
    "NetworkManager",
    "ContainerManager",
    "DockerDriver",
    "container_is_running",
    "is_missing_resource_error",
]
