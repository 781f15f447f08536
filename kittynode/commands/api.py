"""
Local engine API - every operation the CLI, the HTTP adaptor and the desktop
shell can call, executed directly against this machine.

Functions take an optional ``home`` (defaults to the resolved data root) and,
where Docker is involved, an optional ``driver`` so tests can substitute one.
"""

import logging
from pathlib import Path
from typing import Optional, Sequence, Union
from urllib.parse import urlsplit

from kittynode.commands import docker_autostart
from kittynode.commands.config_store import Config, ConfigStore, PackageConfigStore
from kittynode.commands.errors import ConfigParseError, ValidationError
from kittynode.commands.home import Home
from kittynode.commands.managers import DockerDriver
from kittynode.commands.models import (
    DockerStartStatus,
    OperationalState,
    Package,
    PackageConfig,
    PackageRuntimeState,
    PackageState,
    SystemInfo,
)
from kittynode.commands.operational_state import get_operational_state as _operational_state
from kittynode.commands.orchestrator import PackageOrchestrator
from kittynode.commands.packages import get_definition
from kittynode.commands.runtime_state import RuntimeStateReporter
from kittynode.commands.system_info import get_system_info as _system_info
from kittynode.commands.web_service import WebServiceStatus, WebServiceSupervisor

logger = logging.getLogger(__name__)


def _home(home: Optional[Home]) -> Home:
    return home or Home.try_default()


def _update_config(home: Optional[Home], mutate) -> Config:
    store = ConfigStore(_home(home))
    config = store.load()
    mutate(config)
    store.save_normalized(config)
    return config


# Capabilities


def add_capability(name: str, home: Optional[Home] = None) -> None:
    _update_config(home, lambda config: config.add_capability(name))


def remove_capability(name: str, home: Optional[Home] = None) -> None:
    _update_config(home, lambda config: config.remove_capability(name))


def get_capabilities(home: Optional[Home] = None) -> list[str]:
    return ConfigStore(_home(home)).load().capabilities


# Global config


def get_config(home: Optional[Home] = None) -> Config:
    return ConfigStore(_home(home)).load()


def init_kittynode(home: Optional[Home] = None) -> None:
    """Write a fresh default config, keeping only the onboarding flag."""
    store = ConfigStore(_home(home))
    try:
        onboarding_completed = store.load().onboarding_completed
    except ConfigParseError as e:
        logger.warning("Ignoring unreadable config during init: %s", e.message)
        onboarding_completed = False

    store.save(Config(onboarding_completed=onboarding_completed).normalize())
    logger.info(
        "Initialized Kittynode, preserved onboarding_completed: %s",
        onboarding_completed,
    )


def delete_kittynode(home: Optional[Home] = None) -> None:
    _home(home).delete_kittynode()


def get_onboarding_completed(home: Optional[Home] = None) -> bool:
    return ConfigStore(_home(home)).load().onboarding_completed


def set_onboarding_completed(completed: bool, home: Optional[Home] = None) -> None:
    def mutate(config: Config) -> None:
        config.onboarding_completed = completed

    _update_config(home, mutate)


def set_auto_start_docker(enabled: bool, home: Optional[Home] = None) -> None:
    def mutate(config: Config) -> None:
        config.auto_start_docker = enabled

    _update_config(home, mutate)


def set_show_tray_icon(enabled: bool, home: Optional[Home] = None) -> None:
    def mutate(config: Config) -> None:
        config.show_tray_icon = enabled

    _update_config(home, mutate)


def validate_server_url(endpoint: str) -> None:
    """Accept an empty value or an http(s) URL with a host and no credentials.

    Raises:
        ValidationError: If the URL is rejected
    """
    if not endpoint:
        return

    def invalid(reason: str) -> ValidationError:
        return ValidationError(
            f"invalid server URL '{endpoint}': {reason}",
            field="server_url",
            value=endpoint,
        )

    try:
        parsed = urlsplit(endpoint)
        hostname = parsed.hostname
        parsed.port  # raises ValueError on a malformed port
    except ValueError as e:
        raise invalid(str(e)) from e

    if not parsed.scheme:
        raise invalid("relative URL without a base")
    if parsed.scheme not in ("http", "https"):
        raise invalid(f"unsupported scheme '{parsed.scheme}' (expected http or https)")
    if not hostname:
        raise invalid("missing host")
    if parsed.username or parsed.password:
        raise invalid("credentials are not supported")


def set_server_url(endpoint: str, home: Optional[Home] = None) -> None:
    trimmed = endpoint.strip()
    validate_server_url(trimmed)

    def mutate(config: Config) -> None:
        if trimmed:
            config.server_url = trimmed
            config.last_server_url = trimmed
        else:
            config.server_url = ""
        config.has_remote_server = bool(trimmed)

    _update_config(home, mutate)


def get_server_url(home: Optional[Home] = None) -> str:
    return ConfigStore(_home(home)).load().server_url


# Packages


def get_package_catalog(home: Optional[Home] = None) -> dict[str, Package]:
    return PackageOrchestrator(_home(home), driver=None).get_package_catalog()


def get_package_config(name: str, home: Optional[Home] = None) -> PackageConfig:
    get_definition(name)
    return PackageConfigStore(_home(home)).load(name)


async def install_package(
    name: str,
    network: Optional[str] = None,
    home: Optional[Home] = None,
    driver: Optional[DockerDriver] = None,
) -> None:
    orchestrator = PackageOrchestrator(_home(home), driver)
    await orchestrator.install_package_with_network(name, network)


async def delete_package(
    name: str,
    include_images: bool = False,
    home: Optional[Home] = None,
    driver: Optional[DockerDriver] = None,
) -> None:
    """Uninstall ``name``; an explicit uninstall always purges user data."""
    orchestrator = PackageOrchestrator(_home(home), driver)
    await orchestrator.delete_package(name, include_images, purge_user_data=True)


async def stop_package(
    name: str, home: Optional[Home] = None, driver: Optional[DockerDriver] = None
) -> None:
    await PackageOrchestrator(_home(home), driver).stop_package(name)


async def start_package(
    name: str, home: Optional[Home] = None, driver: Optional[DockerDriver] = None
) -> None:
    await PackageOrchestrator(_home(home), driver).start_package(name)


async def update_package_config(
    name: str,
    config: PackageConfig,
    home: Optional[Home] = None,
    driver: Optional[DockerDriver] = None,
) -> None:
    await PackageOrchestrator(_home(home), driver).update_package_config(name, config)


async def get_installed_packages(
    home: Optional[Home] = None, driver: Optional[DockerDriver] = None
) -> list[Package]:
    return await RuntimeStateReporter(_home(home), driver).get_installed_packages()


async def get_package(
    name: str, home: Optional[Home] = None, driver: Optional[DockerDriver] = None
) -> PackageState:
    return await RuntimeStateReporter(_home(home), driver).get_package(name)


async def get_packages(
    names: list[str], home: Optional[Home] = None, driver: Optional[DockerDriver] = None
) -> dict[str, PackageState]:
    return await RuntimeStateReporter(_home(home), driver).get_packages(names)


async def get_package_runtime_state(
    name: str, home: Optional[Home] = None, driver: Optional[DockerDriver] = None
) -> PackageRuntimeState:
    return await RuntimeStateReporter(_home(home), driver).package_runtime_state(name)


async def get_packages_runtime_state(
    names: list[str], home: Optional[Home] = None, driver: Optional[DockerDriver] = None
) -> dict[str, PackageRuntimeState]:
    return await RuntimeStateReporter(_home(home), driver).get_packages_runtime_state(names)


async def is_validator_installed(
    home: Optional[Home] = None, driver: Optional[DockerDriver] = None
) -> bool:
    return await RuntimeStateReporter(_home(home), driver).is_validator_installed()


# Docker and host


async def get_container_logs(
    container: str, tail: Optional[int] = None, driver: Optional[DockerDriver] = None
) -> list[str]:
    return await (driver or DockerDriver()).get_container_logs(container, tail)


async def is_docker_running(driver: Optional[DockerDriver] = None) -> bool:
    return await (driver or DockerDriver()).is_reachable()


async def get_operational_state(
    home: Optional[Home] = None, driver: Optional[DockerDriver] = None
) -> OperationalState:
    return await _operational_state(_home(home), driver)


async def start_docker_if_needed(
    home: Optional[Home] = None,
    driver: Optional[DockerDriver] = None,
    launcher: Optional[docker_autostart.DockerLauncher] = None,
) -> DockerStartStatus:
    return await docker_autostart.start_docker_if_needed(_home(home), driver, launcher)


async def start_docker(launcher: Optional[docker_autostart.DockerLauncher] = None) -> None:
    await docker_autostart.start_docker(launcher)


def get_system_info() -> SystemInfo:
    return _system_info()


# Web service (this machine only)


def start_web_service(
    port: Optional[int] = None,
    binary_path: Union[str, Path] = "",
    args: Sequence[str] = (),
    home: Optional[Home] = None,
) -> WebServiceStatus:
    return WebServiceSupervisor(_home(home)).start(port, binary_path, args)


def stop_web_service(home: Optional[Home] = None) -> WebServiceStatus:
    return WebServiceSupervisor(_home(home)).stop()


def get_web_service_status(home: Optional[Home] = None) -> WebServiceStatus:
    return WebServiceSupervisor(_home(home)).status()


def get_web_service_log_path(home: Optional[Home] = None) -> Path:
    return WebServiceSupervisor(_home(home)).log_path()
