"""
ContainerManager - container, image and volume lifecycle for package plans.
"""

import logging
from typing import Any, Optional

import docker

from kittynode.commands.constants import CONTAINER_STOP_TIMEOUT, DEFAULT_IMAGE_TAG
from kittynode.commands.errors import (
    DockerResourceMissingError,
    KittynodeError,
    NotFoundError,
)
from kittynode.commands.managers.base import BaseManager
from kittynode.commands.models import Container

logger = logging.getLogger(__name__)


def container_is_running(summary: dict[str, Any]) -> bool:
    """Decide from a container list entry whether it is running."""
    state = summary.get("State")
    if isinstance(state, dict):
        return bool(state.get("Running"))
    if state:
        return str(state).lower() == "running"
    return str(summary.get("Status", "")).startswith("Up")


def _port_bindings(spec: Container) -> dict[str, list[tuple[str, int]]]:
    return {
        port: [(b.host_ip, int(b.host_port)) for b in bindings]
        for port, bindings in spec.port_bindings.items()
    }


class ContainerManager(BaseManager):
    """Manages the containers, images and volumes declared by a package."""

    def __init__(self, client: Optional[docker.DockerClient] = None):
        super().__init__(client)

    def _list(self, name: str):
        return self.client.containers.list(
            all=True, filters={"name": name}, sparse=True
        )

    def find_container(self, name: str) -> list[dict[str, Any]]:
        """Return list entries for every container matching ``name=<name>``."""
        return [container.attrs for container in self._list(name)]

    def remove_container(self, name: str) -> None:
        """Stop (ignoring errors) and remove every container matching ``name``."""
        for container in self._list(name):
            try:
                container.stop(timeout=CONTAINER_STOP_TIMEOUT)
            except docker.errors.APIError as e:
                logger.debug("Ignoring stop failure for '%s': %s", name, e)
            container.remove()
            logger.info("Removed container '%s' (%s)", name, container.id)

    def pull_image(self, image: str) -> None:
        """Pull ``image:latest``, logging progress lines."""
        logger.info("Pulling image %s:%s", image, DEFAULT_IMAGE_TAG)
        for line in self.client.api.pull(
            image, tag=DEFAULT_IMAGE_TAG, stream=True, decode=True
        ):
            if "error" in line:
                raise KittynodeError(f"Failed to pull image {image}: {line['error']}")
            status = line.get("status")
            if status:
                logger.debug("%s: %s %s", image, status, line.get("progress", ""))

    def create_and_start(self, spec: Container):
        """Create ``spec`` from its :latest image and start it."""
        container = self.client.containers.create(
            image=f"{spec.image}:{DEFAULT_IMAGE_TAG}",
            name=spec.name,
            command=list(spec.cmd),
            ports=_port_bindings(spec),
            volumes=spec.binds(),
        )
        logger.info("Created container '%s'", spec.name)

        container.start()
        logger.info("Started container '%s'", spec.name)
        return container

    def _require(self, name: str):
        containers = self._list(name)
        if not containers:
            raise NotFoundError(f"Container '{name}' not found", resource=name)
        return containers

    def stop_named(self, name: str) -> None:
        for container in self._require(name):
            container.stop(timeout=CONTAINER_STOP_TIMEOUT)
            logger.info("Stopped container '%s'", name)

    def start_named(self, name: str) -> None:
        for container in self._require(name):
            container.start()
            logger.info("Started container '%s'", name)

    def get_container_logs(self, name: str, tail: Optional[int] = None) -> list[str]:
        """Return non-following stdout and stderr, one entry per chunk."""
        try:
            container = self.client.containers.get(name)
        except docker.errors.NotFound as e:
            raise NotFoundError(f"Container '{name}' not found", resource=name) from e

        chunks = container.logs(
            stdout=True,
            stderr=True,
            stream=True,
            follow=False,
            tail="all" if tail is None else tail,
        )
        return [chunk.decode("utf-8", errors="replace") for chunk in chunks]

    def remove_image(self, image: str) -> None:
        try:
            self.client.images.remove(image)
        except docker.errors.ImageNotFound:
            logger.warning("Image %s not found; skipping removal", image)
            return
        logger.info("Removed image %s", image)

    def remove_volume(self, volume_name: str) -> None:
        try:
            volume = self.client.volumes.get(volume_name)
        except docker.errors.NotFound as e:
            raise DockerResourceMissingError(
                f"No such volume: {volume_name}", resource=volume_name
            ) from e
        volume.remove()
        logger.info("Removed volume %s", volume_name)
