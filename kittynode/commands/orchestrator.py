"""
Package Orchestrator - install, delete, stop, start and reconfigure packages.

Every operation rebuilds the package plan from the saved config and then
drives Docker through the async driver. Nothing is retried or rolled back:
a half-applied install is recovered by the next install or delete.
"""

import logging
from pathlib import Path
from typing import Optional

from kittynode.commands.config_store import PackageConfigStore
from kittynode.commands.constants import EPHEMERY_CONTAINER_MOUNT
from kittynode.commands.errors import (
    NetworkSelectionError,
    UnconfiguredPackageError,
    UnsupportedNetworkError,
)
from kittynode.commands.file_utils import ensure_secure_dir, remove_path
from kittynode.commands.home import Home
from kittynode.commands.jwt_secret import ensure_jwt_secret
from kittynode.commands.managers import DockerDriver, is_missing_resource_error
from kittynode.commands.models import Package, PackageConfig
from kittynode.commands.packages import CATALOG, get_definition
from kittynode.commands.packages.base import PlanContext
from kittynode.commands.packages.ethereum import ETHEREUM_NAME, NETWORK_KEY

logger = logging.getLogger(__name__)


class PackageOrchestrator:
    """Applies package plans against the local Docker daemon."""

    def __init__(self, home: Home, driver: Optional[DockerDriver] = None):
        self.home = home
        self.driver = driver or DockerDriver()
        self.package_configs = PackageConfigStore(home)

    def build_current_package(
        self, name: str, refresh: bool = False, tolerate_unsupported: bool = False
    ) -> Package:
        """Plan ``name`` from its saved config.

        Args:
            name: Catalog id
            refresh: Fetch fresh network metadata before planning (install only)
            tolerate_unsupported: Plan an unsupported network as an empty package

        Raises:
            NotFoundError: If the package is not in the catalog
            UnsupportedNetworkError: If the saved network is rejected and not tolerated
        """
        definition = get_definition(name)
        config = self.package_configs.load(name)
        try:
            context = definition.plan_context(config, self.home, refresh=refresh)
            return definition.build_package(config, context)
        except UnsupportedNetworkError as e:
            if not tolerate_unsupported:
                raise
            logger.warning("Planning '%s' without containers: %s", name, e.message)
            return definition.build_package(PackageConfig(), PlanContext(home=self.home))

    def get_package_catalog(self) -> dict[str, Package]:
        return {
            name: self.build_current_package(name, tolerate_unsupported=True)
            for name in CATALOG
        }

    async def scan_containers(self, package: Package) -> tuple[int, list[str]]:
        """Return (running count, missing container names) for ``package``."""
        running = 0
        missing: list[str] = []
        for container in package.containers:
            summaries = await self.driver.find_container(container.name)
            if not summaries:
                missing.append(container.name)
                continue
            if any(self.driver.container_is_running(s) for s in summaries):
                running += 1
        return running, missing

    async def install_package(self, name: str) -> None:
        """Install ``name`` from its saved config.

        An installed package is left alone. Leftovers of a half-applied
        install are deleted (user data kept) before installing again.
        """
        ensure_jwt_secret(self.home)
        definition = get_definition(name)
        package = self.build_current_package(name, refresh=True)
        if not package.containers:
            config = self.package_configs.load(name)
            raise UnconfiguredPackageError(
                definition.unconfigured_message(config), package=name
            )

        _, missing = await self.scan_containers(package)
        if not missing and self.package_configs.exists(name):
            logger.info("Package '%s' is already installed", name)
            return
        if len(missing) < len(package.containers):
            logger.info("Package '%s' is partially installed, removing leftovers", name)
            await self.delete_package(name, include_images=False, purge_user_data=False)
            # The delete removed the read-only JWT mount
            ensure_jwt_secret(self.home)

        if any(
            binding.source == str(self.home.lighthouse_dir)
            for container in package.containers
            for binding in container.file_bindings
        ):
            ensure_secure_dir(self.home.lighthouse_dir)

        logger.info("Creating network '%s'...", package.network_name)
        await self.driver.create_or_recreate_network(package.network_name)

        for container in package.containers:
            logger.info("Starting container '%s'...", container.name)
            await self.driver.pull_and_start_container(container, package.network_name)
            logger.info("Container '%s' started successfully", container.name)

        logger.info("Package '%s' installed successfully", name)

    async def install_package_with_network(
        self, name: str, network: Optional[str] = None
    ) -> None:
        """Install ``name``, first saving ``network`` into its config when given."""
        if network is not None:
            definition = get_definition(name)
            if not definition.supports_network_selection():
                raise NetworkSelectionError(name)
            definition.validate_network(network)

            config = self.package_configs.load(name)
            config.values[NETWORK_KEY] = network
            self.package_configs.save(name, config)
            logger.info("Selected network '%s' for package '%s'", network, name)

        await self.install_package(name)

    async def delete_package(
        self, name: str, include_images: bool = False, purge_user_data: bool = False
    ) -> None:
        """Tear down the current plan of ``name``.

        Read-only file mounts are always removed. Writable mounts, the
        Ephemery cache and the package config are only removed when
        ``purge_user_data`` is set.
        """
        package = self.build_current_package(name, tolerate_unsupported=True)
        if package.containers:
            await self._delete_resources(package, include_images, purge_user_data)

        if purge_user_data:
            if name == ETHEREUM_NAME:
                self._remove_directory(self.home.ephemery_dir)
            self._remove_package_config(name)

        logger.info("Package '%s' deleted", name)

    async def _delete_resources(
        self, package: Package, include_images: bool, purge_user_data: bool
    ) -> None:
        images: list[str] = []
        volumes: list[str] = []
        files: list[str] = []
        directories: list[str] = []

        for container in package.containers:
            if include_images and container.image not in images:
                images.append(container.image)
            for binding in container.volume_bindings:
                if binding.source not in volumes:
                    volumes.append(binding.source)

            for binding in container.file_bindings:
                # Writable mounts hold user data and survive config restarts
                if not (binding.read_only or purge_user_data):
                    continue
                path = Path(binding.source)
                if path.is_dir():
                    if binding.destination == EPHEMERY_CONTAINER_MOUNT and not purge_user_data:
                        continue
                    if binding.source not in directories:
                        directories.append(binding.source)
                elif path.exists() and binding.source not in files:
                    files.append(binding.source)

            logger.info("Removing container '%s'...", container.name)
            await self.driver.remove_container(container.name)

        for image in images:
            logger.info("Removing image '%s'...", image)
            await self.driver.remove_image(image)

        for path in files + directories:
            self._remove_bound_path(path)

        for volume in volumes:
            logger.info("Removing volume '%s'...", volume)
            try:
                await self.driver.remove_volume(volume)
            except Exception as e:
                if not is_missing_resource_error(e):
                    raise
                logger.warning(
                    "Skipping removal of volume '%s' because it does not exist", volume
                )

        logger.info("Removing network '%s'...", package.network_name)
        try:
            await self.driver.remove_network(package.network_name)
        except Exception as e:
            if not is_missing_resource_error(e):
                raise
            logger.warning(
                "Skipping removal of network '%s' because it does not exist",
                package.network_name,
            )

    def _remove_bound_path(self, path: str) -> None:
        logger.info("Removing '%s'...", path)
        try:
            if remove_path(path):
                logger.info("'%s' removed successfully", path)
        except PermissionError:
            logger.warning(
                "Skipping removal of '%s' because permissions are insufficient", path
            )

    def _remove_directory(self, path: Path) -> None:
        if remove_path(path):
            logger.info("Directory '%s' removed successfully", path)

    def _remove_package_config(self, name: str) -> None:
        package_dir = self.home.package_dir(name)
        if remove_path(package_dir):
            logger.info("Package configuration '%s' removed successfully", package_dir)

    async def stop_package(self, name: str) -> None:
        package = self.build_current_package(name)
        for container in package.containers:
            logger.info("Stopping container '%s'", container.name)
            await self.driver.stop_named(container.name)
        logger.info("Package '%s' stopped", name)

    async def start_package(self, name: str) -> None:
        package = self.build_current_package(name)
        for container in package.containers:
            logger.info("Starting container '%s'", container.name)
            await self.driver.start_named(container.name)
        logger.info("Package '%s' started", name)

    async def update_package_config(self, name: str, new_config: PackageConfig) -> None:
        """Merge ``new_config`` into the saved config and reapply the package."""
        try:
            previous: Optional[Package] = self.build_current_package(name)
        except UnsupportedNetworkError:
            previous = None

        merged = self.package_configs.load(name)
        merged.values.update(new_config.values)
        self.package_configs.save(name, merged)

        if previous is not None and previous.containers:
            try:
                await self._delete_resources(
                    previous, include_images=False, purge_user_data=False
                )
            except Exception as e:
                if not is_missing_resource_error(e):
                    raise
                logger.warning("Ignoring missing Docker resources during restart: %s", e)

        await self.install_package(name)
