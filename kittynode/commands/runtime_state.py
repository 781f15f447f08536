"""
Runtime State Reporter - compares package plans with what Docker reports.
"""

import logging
from typing import Optional

from kittynode.commands.config_store import PackageConfigStore
from kittynode.commands.home import Home
from kittynode.commands.managers import DockerDriver
from kittynode.commands.models import (
    InstallStatus,
    Package,
    PackageRuntimeState,
    PackageState,
    RuntimeStatus,
)
from kittynode.commands.orchestrator import PackageOrchestrator
from kittynode.commands.packages import CATALOG, get_definition
from kittynode.commands.packages.ethereum import LIGHTHOUSE_VALIDATOR_CONTAINER_NAME

logger = logging.getLogger(__name__)


def _install_status(config_present: bool, total: int, missing: int) -> InstallStatus:
    if config_present and missing == 0:
        return InstallStatus.INSTALLED
    if not config_present and missing == total:
        return InstallStatus.NOT_INSTALLED
    return InstallStatus.PARTIALLY_INSTALLED


def _runtime_status(total: int, running: int) -> RuntimeStatus:
    if total and running == total:
        return RuntimeStatus.RUNNING
    if running == 0:
        return RuntimeStatus.NOT_RUNNING
    return RuntimeStatus.PARTIALLY_RUNNING


class RuntimeStateReporter:
    """Derives install and runtime state of packages from container listings."""

    def __init__(self, home: Home, driver: Optional[DockerDriver] = None):
        self.home = home
        self.driver = driver or DockerDriver()
        self.orchestrator = PackageOrchestrator(home, self.driver)
        self.package_configs = PackageConfigStore(home)

    async def package_runtime_state(self, name: str) -> PackageRuntimeState:
        package = self.orchestrator.build_current_package(name, tolerate_unsupported=True)
        if not package.containers:
            return PackageRuntimeState(running=RuntimeStatus.NOT_RUNNING)

        running, missing = await self.orchestrator.scan_containers(package)
        status = _runtime_status(len(package.containers), running)
        return PackageRuntimeState(
            running=status,
            missing_containers=missing if status == RuntimeStatus.PARTIALLY_RUNNING else [],
        )

    async def get_packages_runtime_state(
        self, names: list[str]
    ) -> dict[str, PackageRuntimeState]:
        states = {}
        for name in names:
            states[name] = await self.package_runtime_state(name)
        return states

    async def is_validator_installed(self) -> bool:
        """True when a validator container exists, running or not."""
        return bool(await self.driver.find_container(LIGHTHOUSE_VALIDATOR_CONTAINER_NAME))

    async def get_package(self, name: str) -> PackageState:
        """Install and runtime state of ``name``.

        Docker is not consulted when the current plan has no containers.
        """
        get_definition(name)
        config_present = self.package_configs.exists(name)
        package = self.orchestrator.build_current_package(name, tolerate_unsupported=True)

        if not package.containers:
            return PackageState(
                install=(
                    InstallStatus.PARTIALLY_INSTALLED
                    if config_present
                    else InstallStatus.NOT_INSTALLED
                ),
                runtime=RuntimeStatus.NOT_RUNNING,
                config_present=config_present,
            )

        total = len(package.containers)
        running, missing = await self.orchestrator.scan_containers(package)
        return PackageState(
            install=_install_status(config_present, total, len(missing)),
            runtime=_runtime_status(total, running),
            config_present=config_present,
            missing_containers=missing,
        )

    async def get_packages(self, names: list[str]) -> dict[str, PackageState]:
        states = {}
        for name in names:
            states[name] = await self.get_package(name)
        return states

    async def get_installed_packages(self) -> list[Package]:
        """Packages whose every planned container exists, running or stopped."""
        installed = []
        for name in CATALOG:
            package = self.orchestrator.build_current_package(
                name, tolerate_unsupported=True
            )
            if not package.containers:
                continue
            _, missing = await self.orchestrator.scan_containers(package)
            if not missing:
                installed.append(package)
        logger.debug("Installed packages: %s", [p.name for p in installed])
        return installed
