"""Pytest configuration for kittynode tests.

Every test that touches the data root gets its own temporary home through the
``home`` fixture, and Docker is replaced by ``FakeDriver``.
"""

from typing import Any, Optional

import pytest

from kittynode.commands import docker_autostart
from kittynode.commands.home import override_home
from kittynode.commands.managers.container import container_is_running


class FakeDriver:
    """In-memory stand-in for DockerDriver that records every call."""

    def __init__(self, reachable: bool = True):
        self.reachable = reachable
        self.calls: list[tuple[Any, ...]] = []
        # container name -> list entries as returned by the daemon
        self.containers: dict[str, list[dict[str, Any]]] = {}
        self.missing_volumes: set[str] = set()
        self.missing_networks: set[str] = set()

    def add_container(self, name: str, running: bool = True) -> None:
        self.containers[name] = [
            {"Names": [f"/{name}"], "State": "running" if running else "exited"}
        ]

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]

    async def is_reachable(self) -> bool:
        self.calls.append(("is_reachable",))
        return self.reachable

    async def create_or_recreate_network(self, network_name: str) -> None:
        self.calls.append(("create_or_recreate_network", network_name))

    async def remove_network(self, network_name: str) -> None:
        self.calls.append(("remove_network", network_name))
        if network_name in self.missing_networks:
            raise RuntimeError(f"No such network: {network_name}")

    async def find_container(self, name: str) -> list[dict[str, Any]]:
        self.calls.append(("find_container", name))
        return list(self.containers.get(name, []))

    async def remove_container(self, name: str) -> None:
        self.calls.append(("remove_container", name))
        self.containers.pop(name, None)

    async def pull_and_start_container(self, spec, network_name: str) -> None:
        self.calls.append(("pull_and_start_container", spec.name, network_name))
        self.add_container(spec.name)

    async def stop_named(self, name: str) -> None:
        self.calls.append(("stop_named", name))

    async def start_named(self, name: str) -> None:
        self.calls.append(("start_named", name))

    async def get_container_logs(self, name: str, tail: Optional[int] = None) -> list[str]:
        self.calls.append(("get_container_logs", name, tail))
        return [f"{name} line\n"]

    async def remove_image(self, image: str) -> None:
        self.calls.append(("remove_image", image))

    async def remove_volume(self, volume_name: str) -> None:
        self.calls.append(("remove_volume", volume_name))
        if volume_name in self.missing_volumes:
            raise RuntimeError(f"No such volume: {volume_name}")

    @staticmethod
    def container_is_running(summary: dict[str, Any]) -> bool:
        return container_is_running(summary)


@pytest.fixture
def home(tmp_path):
    """A fresh data root that every Home lookup resolves to."""
    with override_home(tmp_path / ".kittynode") as scoped:
        yield scoped


@pytest.fixture
def driver():
    return FakeDriver()


@pytest.fixture(autouse=True)
def clear_docker_latch():
    docker_autostart.reset_latch()
    yield
    docker_autostart.reset_latch()
