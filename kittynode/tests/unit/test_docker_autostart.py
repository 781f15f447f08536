"""
Unit tests for Docker Desktop auto-start and its once-per-process latch.
"""

from unittest.mock import MagicMock, patch

import pytest

from kittynode.commands import docker_autostart
from kittynode.commands.config_store import Config, ConfigStore
from kittynode.commands.docker_autostart import (
    DockerInstall,
    LinuxLauncher,
    launch_docker,
    start_docker,
    start_docker_if_needed,
    wait_until_reachable,
)
from kittynode.commands.errors import DockerUnavailableError
from kittynode.commands.models import DockerStartStatus


class StubLauncher:
    def __init__(self, install=DockerInstall("stub", ["docker-desktop"]), error=None):
        self.install = install
        self.error = error
        self.launched = 0

    def detect(self):
        return self.install

    def launch(self, install):
        self.launched += 1
        if self.error:
            raise self.error


def _enable_auto_start(home):
    ConfigStore(home).save_normalized(Config(auto_start_docker=True))


class TestStartDockerIfNeeded:
    @pytest.mark.asyncio
    async def test_running_docker(self, home, driver):
        launcher = StubLauncher()
        status = await start_docker_if_needed(home, driver, launcher)
        assert status == DockerStartStatus.RUNNING
        assert launcher.launched == 0

    @pytest.mark.asyncio
    async def test_disabled(self, home, driver):
        driver.reachable = False
        status = await start_docker_if_needed(home, driver, StubLauncher())
        assert status == DockerStartStatus.DISABLED

    @pytest.mark.asyncio
    async def test_launches_once(self, home, driver):
        _enable_auto_start(home)
        driver.reachable = False
        launcher = StubLauncher()

        first = await start_docker_if_needed(home, driver, launcher)
        second = await start_docker_if_needed(home, driver, launcher)

        assert first == DockerStartStatus.STARTING
        assert second == DockerStartStatus.ALREADY_STARTED
        assert launcher.launched == 1

    @pytest.mark.asyncio
    async def test_reachable_docker_clears_latch(self, home, driver):
        _enable_auto_start(home)
        driver.reachable = False
        launcher = StubLauncher()
        await start_docker_if_needed(home, driver, launcher)

        driver.reachable = True
        assert await start_docker_if_needed(home, driver, launcher) == DockerStartStatus.RUNNING

        driver.reachable = False
        assert await start_docker_if_needed(home, driver, launcher) == DockerStartStatus.STARTING
        assert launcher.launched == 2

    @pytest.mark.asyncio
    async def test_failed_launch_clears_latch(self, home, driver):
        _enable_auto_start(home)
        driver.reachable = False
        failing = StubLauncher(error=DockerUnavailableError("boom"))

        with pytest.raises(DockerUnavailableError):
            await start_docker_if_needed(home, driver, failing)

        assert await start_docker_if_needed(home, driver, StubLauncher()) == (
            DockerStartStatus.STARTING
        )

    @pytest.mark.asyncio
    async def test_remote_mode_never_launches(self, home, driver):
        ConfigStore(home).save_normalized(
            Config(server_url="http://peer", auto_start_docker=True)
        )
        launcher = StubLauncher()
        assert await start_docker_if_needed(home, driver, launcher) == DockerStartStatus.RUNNING
        assert driver.calls == []

    @pytest.mark.asyncio
    async def test_manual_start_resets_latch(self, home, driver):
        _enable_auto_start(home)
        driver.reachable = False
        launcher = StubLauncher()
        await start_docker_if_needed(home, driver, launcher)

        await start_docker(launcher)

        assert await start_docker_if_needed(home, driver, launcher) == (
            DockerStartStatus.STARTING
        )
        assert launcher.launched == 3


class TestLaunchers:
    def test_missing_installation(self):
        with pytest.raises(DockerUnavailableError, match="installation not found"):
            launch_docker(StubLauncher(install=None))

    @patch.object(docker_autostart.shutil, "which")
    def test_linux_candidates_order(self, mock_which):
        mock_which.side_effect = lambda name: f"/usr/bin/{name}"
        candidates = LinuxLauncher().candidates()
        assert [c.description for c in candidates] == [
            "systemd user unit",
            "flatpak",
            "docker-desktop binary",
        ]

    @patch.object(docker_autostart, "_spawn")
    @patch.object(docker_autostart.subprocess, "run")
    @patch.object(docker_autostart.shutil, "which")
    def test_linux_falls_back_after_systemctl_failure(self, mock_which, mock_run, mock_spawn):
        mock_which.side_effect = lambda name: f"/usr/bin/{name}" if name != "flatpak" else None
        mock_run.return_value = MagicMock(returncode=1, stderr="unit not found")
        launcher = LinuxLauncher()

        launcher.launch(launcher.detect())

        mock_spawn.assert_called_once_with(["/usr/bin/docker-desktop"])

    @patch.object(docker_autostart.subprocess, "run")
    @patch.object(docker_autostart.shutil, "which")
    def test_linux_all_candidates_fail(self, mock_which, mock_run):
        mock_which.side_effect = lambda name: "/usr/bin/systemctl" if name == "systemctl" else None
        mock_run.return_value = MagicMock(returncode=5, stderr="no unit")
        launcher = LinuxLauncher()

        with pytest.raises(DockerUnavailableError, match="Failed to start Docker Desktop"):
            launcher.launch(launcher.detect())


class TestWaitUntilReachable:
    @pytest.mark.asyncio
    async def test_returns_when_reachable(self, driver):
        assert await wait_until_reachable(driver, timeout=1, interval=0.01) is True

    @pytest.mark.asyncio
    async def test_times_out(self, driver):
        driver.reachable = False
        assert await wait_until_reachable(driver, timeout=0.05, interval=0.01) is False
