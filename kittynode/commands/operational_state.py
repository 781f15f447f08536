"""
Operational state - whether this machine drives Docker itself or a remote peer.
"""

from typing import Optional

from kittynode.commands.config_store import ConfigStore
from kittynode.commands.constants import DOCKER_NOT_RUNNING_DIAGNOSTIC
from kittynode.commands.home import Home
from kittynode.commands.managers import DockerDriver
from kittynode.commands.models import OperationalMode, OperationalState


def determine_mode(server_url: str) -> OperationalMode:
    if server_url.strip():
        return OperationalMode.REMOTE
    return OperationalMode.LOCAL


def compose_operational_state(
    mode: OperationalMode, docker_running: bool
) -> OperationalState:
    # A remote peer manages its own Docker daemon
    if mode == OperationalMode.REMOTE:
        return OperationalState(
            mode=mode, docker_running=True, can_install=True, can_manage=True
        )

    diagnostics = [] if docker_running else [DOCKER_NOT_RUNNING_DIAGNOSTIC]
    return OperationalState(
        mode=mode,
        docker_running=docker_running,
        can_install=docker_running,
        can_manage=docker_running,
        diagnostics=diagnostics,
    )


async def get_operational_state(
    home: Home, driver: Optional[DockerDriver] = None
) -> OperationalState:
    config = ConfigStore(home).load()
    mode = determine_mode(config.server_url)
    docker_running = True
    if mode == OperationalMode.LOCAL:
        docker_running = await (driver or DockerDriver()).is_reachable()
    return compose_operational_state(mode, docker_running)
