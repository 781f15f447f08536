"""
Unit tests for PackageOrchestrator against an in-memory Docker driver.
"""

import pytest

from kittynode.commands.config_store import PackageConfigStore
from kittynode.commands.errors import (
    NetworkSelectionError,
    NotFoundError,
    UnconfiguredPackageError,
    UnsupportedNetworkError,
)
from kittynode.commands.models import PackageConfig
from kittynode.commands.orchestrator import PackageOrchestrator


def _configure(home, **values):
    PackageConfigStore(home).save("ethereum", PackageConfig(values=values))


class TestPlanning:
    def test_catalog_tolerates_unsupported_network(self, home, driver):
        _configure(home, network="holesky")
        catalog = PackageOrchestrator(home, driver).get_package_catalog()
        assert list(catalog) == ["ethereum"]
        assert catalog["ethereum"].containers == []

    def test_strict_planning_rejects_unsupported_network(self, home, driver):
        _configure(home, network="holesky")
        with pytest.raises(UnsupportedNetworkError):
            PackageOrchestrator(home, driver).build_current_package("ethereum")

    def test_unknown_package(self, home, driver):
        with pytest.raises(NotFoundError):
            PackageOrchestrator(home, driver).build_current_package("solana")


class TestInstall:
    @pytest.mark.asyncio
    async def test_install_without_network_is_unconfigured(self, home, driver):
        with pytest.raises(UnconfiguredPackageError) as exc_info:
            await PackageOrchestrator(home, driver).install_package("ethereum")
        assert "Network must be selected" in exc_info.value.message
        assert driver.calls == []
        assert home.jwt_path.exists()

    @pytest.mark.asyncio
    async def test_install_with_network_saves_and_starts_in_order(self, home, driver):
        await PackageOrchestrator(home, driver).install_package_with_network(
            "ethereum", "hoodi"
        )

        assert PackageConfigStore(home).load("ethereum").values == {"network": "hoodi"}
        assert driver.calls == [
            ("find_container", "reth-node"),
            ("find_container", "lighthouse-node"),
            ("create_or_recreate_network", "ethereum-network"),
            ("pull_and_start_container", "reth-node", "ethereum-network"),
            ("pull_and_start_container", "lighthouse-node", "ethereum-network"),
        ]
        assert home.lighthouse_dir.is_dir()

    @pytest.mark.asyncio
    async def test_installed_package_is_left_alone(self, home, driver):
        orchestrator = PackageOrchestrator(home, driver)
        await orchestrator.install_package_with_network("ethereum", "hoodi")
        driver.calls.clear()

        await orchestrator.install_package_with_network("ethereum", "hoodi")

        assert driver.call_names() == ["find_container", "find_container"]
        assert home.jwt_path.exists()

    @pytest.mark.asyncio
    async def test_partial_install_is_cleaned_up_first(self, home, driver):
        _configure(home, network="hoodi")
        driver.add_container("reth-node", running=False)

        await PackageOrchestrator(home, driver).install_package("ethereum")

        names = driver.call_names()
        assert names.index("remove_network") < names.index("create_or_recreate_network")
        assert ("remove_container", "reth-node") in driver.calls
        started = [c[1] for c in driver.calls if c[0] == "pull_and_start_container"]
        assert started == ["reth-node", "lighthouse-node"]
        # The leftover delete keeps user config and re-creates the JWT
        assert PackageConfigStore(home).load("ethereum").values == {"network": "hoodi"}
        assert home.jwt_path.exists()

    @pytest.mark.asyncio
    async def test_reinstall_after_purge(self, home, driver):
        orchestrator = PackageOrchestrator(home, driver)
        await orchestrator.install_package_with_network("ethereum", "hoodi")
        await orchestrator.delete_package(
            "ethereum", include_images=True, purge_user_data=True
        )
        assert driver.containers == {}
        assert not PackageConfigStore(home).exists("ethereum")
        driver.calls.clear()

        await orchestrator.install_package_with_network("ethereum", "hoodi")

        assert set(driver.containers) == {"reth-node", "lighthouse-node"}
        assert "remove_container" not in driver.call_names()
        assert PackageConfigStore(home).load("ethereum").values == {"network": "hoodi"}
        assert home.jwt_path.exists()
        assert home.lighthouse_dir.is_dir()

    @pytest.mark.asyncio
    async def test_invalid_network_is_not_saved(self, home, driver):
        with pytest.raises(UnsupportedNetworkError):
            await PackageOrchestrator(home, driver).install_package_with_network(
                "ethereum", "holesky"
            )
        assert not PackageConfigStore(home).exists("ethereum")
        assert driver.calls == []

    @pytest.mark.asyncio
    async def test_network_for_package_without_networks(self, home, driver, monkeypatch):
        from kittynode.commands.packages.ethereum import EthereumPackage

        monkeypatch.setattr(EthereumPackage, "supports_network_selection", lambda self: False)
        with pytest.raises(NetworkSelectionError):
            await PackageOrchestrator(home, driver).install_package_with_network(
                "ethereum", "hoodi"
            )


class TestDelete:
    @pytest.mark.asyncio
    async def test_unconfigured_delete_skips_docker(self, home, driver):
        await PackageOrchestrator(home, driver).delete_package("ethereum")
        assert driver.calls == []

    @pytest.mark.asyncio
    async def test_delete_order_and_read_only_files(self, home, driver):
        orchestrator = PackageOrchestrator(home, driver)
        await orchestrator.install_package_with_network("ethereum", "mainnet")
        driver.calls.clear()

        await orchestrator.delete_package("ethereum", include_images=True)

        assert driver.call_names() == [
            "remove_container",
            "remove_container",
            "remove_image",
            "remove_image",
            "remove_volume",
            "remove_network",
        ]
        # The shared JWT is mounted read-only, so it goes with the package
        assert not home.jwt_path.exists()
        # Writable lighthouse data and the package config survive a plain delete
        assert home.lighthouse_dir.exists()
        assert PackageConfigStore(home).exists("ethereum")

    @pytest.mark.asyncio
    async def test_purge_removes_user_data(self, home, driver):
        orchestrator = PackageOrchestrator(home, driver)
        await orchestrator.install_package_with_network("ethereum", "hoodi")
        home.ephemery_dir.mkdir(parents=True)

        await orchestrator.delete_package("ethereum", purge_user_data=True)

        assert not home.lighthouse_dir.exists()
        assert not home.ephemery_dir.exists()
        assert not home.package_dir("ethereum").exists()
        assert "remove_image" not in driver.call_names()

    @pytest.mark.asyncio
    async def test_missing_volume_and_network_are_tolerated(self, home, driver):
        orchestrator = PackageOrchestrator(home, driver)
        await orchestrator.install_package_with_network("ethereum", "hoodi")
        driver.missing_volumes.add("rethdata")
        driver.missing_networks.add("ethereum-network")

        await orchestrator.delete_package("ethereum")

        assert driver.call_names()[-2:] == ["remove_volume", "remove_network"]


class TestStopStart:
    @pytest.mark.asyncio
    async def test_stop_and_start_each_container(self, home, driver):
        _configure(home, network="sepolia")
        orchestrator = PackageOrchestrator(home, driver)

        await orchestrator.stop_package("ethereum")
        await orchestrator.start_package("ethereum")

        assert driver.calls == [
            ("stop_named", "reth-node"),
            ("stop_named", "lighthouse-node"),
            ("start_named", "reth-node"),
            ("start_named", "lighthouse-node"),
        ]


class TestUpdateConfig:
    @pytest.mark.asyncio
    async def test_merge_keeps_existing_keys_and_reinstalls(self, home, driver):
        orchestrator = PackageOrchestrator(home, driver)
        await orchestrator.install_package_with_network("ethereum", "hoodi")
        driver.calls.clear()

        await orchestrator.update_package_config(
            "ethereum",
            PackageConfig(
                values={"validator_enabled": "true", "validator_fee_recipient": "0xabc"}
            ),
        )

        assert PackageConfigStore(home).load("ethereum").values == {
            "network": "hoodi",
            "validator_enabled": "true",
            "validator_fee_recipient": "0xabc",
        }
        names = driver.call_names()
        assert names.index("remove_network") < names.index("create_or_recreate_network")
        started = [c[1] for c in driver.calls if c[0] == "pull_and_start_container"]
        assert started == ["reth-node", "lighthouse-node", "lighthouse-validator"]
        # Restarting keeps user data in place
        assert home.lighthouse_dir.exists()

    @pytest.mark.asyncio
    async def test_update_from_unsupported_network(self, home, driver):
        _configure(home, network="holesky")
        await PackageOrchestrator(home, driver).update_package_config(
            "ethereum", PackageConfig(values={"network": "mainnet"})
        )
        names = driver.call_names()
        assert "remove_container" not in names
        assert names[: names.index("create_or_recreate_network")] == [
            "find_container",
            "find_container",
        ]
