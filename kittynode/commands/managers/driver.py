"""
DockerDriver - the async face of every daemon interaction.

The docker SDK is synchronous, so each primitive runs the blocking call in a
worker thread; callers await it like any other I/O.
"""

import asyncio
import logging
from typing import Any, Optional

import docker

from kittynode.commands.managers.base import BaseManager
from kittynode.commands.managers.container import ContainerManager, container_is_running
from kittynode.commands.managers.network import NetworkManager
from kittynode.commands.models import Container

logger = logging.getLogger(__name__)


class DockerDriver(BaseManager):
    """Lifecycle primitives for containers, images, volumes and networks."""

    def __init__(self, client: Optional[docker.DockerClient] = None):
        super().__init__(client)
        self._network_manager: Optional[NetworkManager] = None
        self._container_manager: Optional[ContainerManager] = None

    @property
    def networks(self) -> NetworkManager:
        if self._network_manager is None:
            self._network_manager = NetworkManager(self.client)
        return self._network_manager

    @property
    def containers(self) -> ContainerManager:
        if self._container_manager is None:
            self._container_manager = ContainerManager(self.client)
        return self._container_manager

    async def is_reachable(self) -> bool:
        """Ping the local daemon; any failure means unreachable."""
        try:
            return bool(await asyncio.to_thread(lambda: self.client.ping()))
        except Exception as e:
            logger.debug("Docker is not reachable: %s", e)
            return False

    async def create_or_recreate_network(self, network_name: str) -> None:
        await asyncio.to_thread(self.networks.create_or_recreate_network, network_name)

    async def remove_network(self, network_name: str) -> None:
        await asyncio.to_thread(self.networks.remove_network, network_name)

    async def find_container(self, name: str) -> list[dict[str, Any]]:
        return await asyncio.to_thread(self.containers.find_container, name)

    async def remove_container(self, name: str) -> None:
        await asyncio.to_thread(self.containers.remove_container, name)

    async def pull_and_start_container(self, spec: Container, network_name: str) -> None:
        """Pull the image, create and start the container, then attach the network."""
        await asyncio.to_thread(self.containers.pull_image, spec.image)
        container = await asyncio.to_thread(self.containers.create_and_start, spec)
        await asyncio.to_thread(
            self.networks.connect_container_to_network, container, network_name
        )
        logger.info("Connected '%s' to network '%s'", spec.name, network_name)

    async def stop_named(self, name: str) -> None:
        await asyncio.to_thread(self.containers.stop_named, name)

    async def start_named(self, name: str) -> None:
        await asyncio.to_thread(self.containers.start_named, name)

    async def get_container_logs(self, name: str, tail: Optional[int] = None) -> list[str]:
        return await asyncio.to_thread(self.containers.get_container_logs, name, tail)

    async def remove_image(self, image: str) -> None:
        await asyncio.to_thread(self.containers.remove_image, image)

    async def remove_volume(self, volume_name: str) -> None:
        await asyncio.to_thread(self.containers.remove_volume, volume_name)

    @staticmethod
    def container_is_running(summary: dict[str, Any]) -> bool:
        return container_is_running(summary)
