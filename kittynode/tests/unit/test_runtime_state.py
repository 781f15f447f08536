"""
Unit tests for package install and runtime state.
"""

import pytest

from kittynode.commands.config_store import PackageConfigStore
from kittynode.commands.errors import NotFoundError
from kittynode.commands.models import InstallStatus, PackageConfig, RuntimeStatus
from kittynode.commands.runtime_state import (
    RuntimeStateReporter,
    _install_status,
    _runtime_status,
)


def _configure(home, **values):
    PackageConfigStore(home).save("ethereum", PackageConfig(values=values))


class TestStatusRules:
    @pytest.mark.parametrize(
        "config_present,total,missing,expected",
        [
            (True, 2, 0, InstallStatus.INSTALLED),
            (False, 2, 2, InstallStatus.NOT_INSTALLED),
            (True, 2, 1, InstallStatus.PARTIALLY_INSTALLED),
            (False, 2, 0, InstallStatus.PARTIALLY_INSTALLED),
            (True, 2, 2, InstallStatus.PARTIALLY_INSTALLED),
        ],
    )
    def test_install_status(self, config_present, total, missing, expected):
        assert _install_status(config_present, total, missing) == expected

    def test_runtime_status(self):
        assert _runtime_status(2, 2) == RuntimeStatus.RUNNING
        assert _runtime_status(2, 0) == RuntimeStatus.NOT_RUNNING
        assert _runtime_status(2, 1) == RuntimeStatus.PARTIALLY_RUNNING
        assert _runtime_status(0, 0) == RuntimeStatus.NOT_RUNNING


class TestRuntimeStateReporter:
    @pytest.mark.asyncio
    async def test_unconfigured_package_skips_docker(self, home, driver):
        state = await RuntimeStateReporter(home, driver).get_package("ethereum")
        assert state.install == InstallStatus.NOT_INSTALLED
        assert state.runtime == RuntimeStatus.NOT_RUNNING
        assert state.config_present is False
        assert driver.calls == []

    @pytest.mark.asyncio
    async def test_config_without_network_is_partial(self, home, driver):
        _configure(home, validator_enabled="true")
        state = await RuntimeStateReporter(home, driver).get_package("ethereum")
        assert state.install == InstallStatus.PARTIALLY_INSTALLED
        assert driver.calls == []

    @pytest.mark.asyncio
    async def test_installed_and_running(self, home, driver):
        _configure(home, network="hoodi")
        driver.add_container("reth-node")
        driver.add_container("lighthouse-node")

        state = await RuntimeStateReporter(home, driver).get_package("ethereum")

        assert state.install == InstallStatus.INSTALLED
        assert state.runtime == RuntimeStatus.RUNNING
        assert state.missing_containers == []

    @pytest.mark.asyncio
    async def test_partially_running(self, home, driver):
        _configure(home, network="hoodi")
        driver.add_container("reth-node")
        reporter = RuntimeStateReporter(home, driver)

        state = await reporter.get_package("ethereum")
        assert state.install == InstallStatus.PARTIALLY_INSTALLED
        assert state.runtime == RuntimeStatus.PARTIALLY_RUNNING
        assert state.missing_containers == ["lighthouse-node"]

        runtime = await reporter.package_runtime_state("ethereum")
        assert runtime.running == RuntimeStatus.PARTIALLY_RUNNING
        assert runtime.missing_containers == ["lighthouse-node"]

    @pytest.mark.asyncio
    async def test_stopped_containers_still_count_as_installed(self, home, driver):
        _configure(home, network="hoodi")
        driver.add_container("reth-node", running=False)
        driver.add_container("lighthouse-node", running=False)
        reporter = RuntimeStateReporter(home, driver)

        state = await reporter.get_package("ethereum")
        assert state.install == InstallStatus.INSTALLED
        assert state.runtime == RuntimeStatus.NOT_RUNNING

        runtime = await reporter.package_runtime_state("ethereum")
        assert runtime.missing_containers == []

        installed = await reporter.get_installed_packages()
        assert [p.name for p in installed] == ["ethereum"]

    @pytest.mark.asyncio
    async def test_unknown_package(self, home, driver):
        with pytest.raises(NotFoundError):
            await RuntimeStateReporter(home, driver).get_package("solana")

    @pytest.mark.asyncio
    async def test_get_packages(self, home, driver):
        states = await RuntimeStateReporter(home, driver).get_packages(["ethereum"])
        assert list(states) == ["ethereum"]

    @pytest.mark.asyncio
    async def test_nothing_installed(self, home, driver):
        _configure(home, network="hoodi")
        assert await RuntimeStateReporter(home, driver).get_installed_packages() == []

    @pytest.mark.asyncio
    async def test_batch_runtime_state(self, home, driver):
        _configure(home, network="hoodi")
        driver.add_container("reth-node")
        driver.add_container("lighthouse-node")
        reporter = RuntimeStateReporter(home, driver)

        states = await reporter.get_packages_runtime_state(["ethereum"])

        assert list(states) == ["ethereum"]
        assert states["ethereum"].running == RuntimeStatus.RUNNING

        with pytest.raises(NotFoundError):
            await reporter.get_packages_runtime_state(["ethereum", "solana"])

    @pytest.mark.asyncio
    async def test_is_validator_installed(self, home, driver):
        reporter = RuntimeStateReporter(home, driver)
        assert await reporter.is_validator_installed() is False

        driver.add_container("lighthouse-validator", running=False)
        assert await reporter.is_validator_installed() is True
