"""
NetworkManager - Docker network management for package stacks.
"""

import logging
from typing import Optional

import docker

from kittynode.commands.constants import DOCKER_NETWORK_DRIVER
from kittynode.commands.errors import DockerResourceMissingError
from kittynode.commands.managers.base import BaseManager

logger = logging.getLogger(__name__)


class NetworkManager(BaseManager):
    """Manages the bridge network a package's containers share."""

    def __init__(self, client: Optional[docker.DockerClient] = None):
        super().__init__(client)

    def create_or_recreate_network(self, network_name: str) -> None:
        """Remove any network called ``network_name`` and create a fresh bridge."""
        for network in self.client.networks.list(names=[network_name]):
            if network.name != network_name:
                continue
            logger.info("Removing existing network '%s'", network_name)
            network.remove()

        logger.info("Creating network '%s'", network_name)
        self.client.networks.create(network_name, driver=DOCKER_NETWORK_DRIVER)

    def remove_network(self, network_name: str) -> None:
        try:
            network = self.client.networks.get(network_name)
        except docker.errors.NotFound as e:
            raise DockerResourceMissingError(
                f"No such network: {network_name}", resource=network_name
            ) from e
        network.remove()
        logger.info("Removed network '%s'", network_name)

    def connect_container_to_network(self, container, network_name: str) -> None:
        network = self.client.networks.get(network_name)
        network.connect(container)
