"""
BaseManager - Docker client ownership and the shared not-found classifier.
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

import docker

from kittynode.commands.errors import DockerResourceMissingError, DockerUnavailableError

logger = logging.getLogger(__name__)

_MISSING_MARKERS = ("no such volume", "no such network")


def is_missing_resource_error(error: BaseException) -> bool:
    """True when ``error`` means a volume or network is already gone.

    This is the only place that inspects Docker error text; callers that
    tolerate missing resources go through it.
    """
    if isinstance(error, DockerResourceMissingError):
        return True
    message = str(error).lower()
    if any(marker in message for marker in _MISSING_MARKERS):
        return True
    if "not found" in message and ("volume" in message or "network" in message):
        return True
    return False


def docker_socket_candidates() -> list[Path]:
    """Unix sockets tried, in order, when DOCKER_HOST is not set."""
    if sys.platform == "win32":
        return []
    home = Path.home()
    candidates = [
        home / ".docker" / "desktop" / "docker.sock",
        home / ".docker" / "run" / "docker.sock",
        home / ".docker" / "docker.sock",
    ]
    runtime_dir = os.environ.get("XDG_RUNTIME_DIR")
    if runtime_dir:
        candidates.append(Path(runtime_dir) / "docker.sock")
        candidates.append(Path(runtime_dir) / "docker-desktop.sock")
    candidates += [Path("/var/run/docker.sock"), Path("/run/docker.sock")]
    return candidates


def connect_docker() -> docker.DockerClient:
    """Connect to the local daemon, preferring DOCKER_HOST, then known sockets."""
    if os.environ.get("DOCKER_HOST"):
        return docker.from_env()
    for socket_path in docker_socket_candidates():
        if not socket_path.exists():
            continue
        try:
            client = docker.DockerClient(base_url=f"unix://{socket_path}")
        except docker.errors.DockerException as e:
            logger.debug("Skipping Docker socket %s: %s", socket_path, e)
            continue
        logger.debug("Using Docker socket %s", socket_path)
        return client
    return docker.from_env()


class BaseManager:
    """Base class with shared Docker client utilities."""

    def __init__(self, client: Optional[docker.DockerClient] = None):
        """Initialize with an optional Docker client.

        Args:
            client: Optional Docker client. If not provided, one is created on
                first use from the environment.
        """
        self._client = client

    @property
    def client(self) -> docker.DockerClient:
        if self._client is None:
            try:
                self._client = connect_docker()
            except docker.errors.DockerException as e:
                raise DockerUnavailableError(
                    f"Failed to connect to Docker: {e}"
                ) from e
        return self._client
