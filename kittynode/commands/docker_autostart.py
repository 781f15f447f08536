"""
Docker Auto-Start - launch Docker Desktop once per process when allowed.

A process-wide latch records that a launch was attempted so repeated UI polls
do not spawn Docker Desktop over and over. The latch clears as soon as Docker
answers again or a launch fails.
"""

import asyncio
import logging
import os
import shutil
import subprocess
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol

from kittynode.commands.config_store import ConfigStore
from kittynode.commands.constants import DOCKER_START_POLL_INTERVAL
from kittynode.commands.errors import DockerUnavailableError
from kittynode.commands.home import Home
from kittynode.commands.managers import DockerDriver
from kittynode.commands.models import DockerStartStatus, OperationalMode
from kittynode.commands.operational_state import determine_mode

logger = logging.getLogger(__name__)

_LATCH_LOCK = threading.Lock()
_auto_started = False


@dataclass(frozen=True)
class DockerInstall:
    """A way to launch Docker Desktop on this host."""

    description: str
    argv: list[str] = field(default_factory=list)


class DockerLauncher(Protocol):
    def detect(self) -> Optional[DockerInstall]: ...

    def launch(self, install: DockerInstall) -> None: ...


def _spawn(argv: list[str]) -> None:
    subprocess.Popen(
        argv,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=sys.platform != "win32",
    )


class MacLauncher:
    def detect(self) -> Optional[DockerInstall]:
        if shutil.which("open") is None:
            return None
        return DockerInstall("Docker.app", ["open", "-g", "-a", "Docker"])

    def launch(self, install: DockerInstall) -> None:
        _spawn(install.argv)


class LinuxLauncher:
    """Tries systemd, then flatpak, then a ``docker-desktop`` binary."""

    def candidates(self) -> list[DockerInstall]:
        found = []
        if shutil.which("systemctl"):
            found.append(
                DockerInstall(
                    "systemd user unit",
                    ["systemctl", "--user", "start", "docker-desktop"],
                )
            )
        if shutil.which("flatpak"):
            found.append(
                DockerInstall("flatpak", ["flatpak", "run", "com.docker.DockerDesktop"])
            )
        binary = shutil.which("docker-desktop")
        if binary:
            found.append(DockerInstall("docker-desktop binary", [binary]))
        return found

    def detect(self) -> Optional[DockerInstall]:
        candidates = self.candidates()
        return candidates[0] if candidates else None

    def launch(self, install: DockerInstall) -> None:
        # systemctl reports failure through its exit status, so try each in turn
        errors = []
        for candidate in [install] + [c for c in self.candidates() if c != install]:
            if candidate.argv[0] == "systemctl":
                result = subprocess.run(
                    candidate.argv,
                    stdin=subprocess.DEVNULL,
                    capture_output=True,
                    text=True,
                )
                if result.returncode == 0:
                    return
                errors.append(f"{candidate.description}: {result.stderr.strip()}")
                continue
            try:
                _spawn(candidate.argv)
                return
            except OSError as e:
                errors.append(f"{candidate.description}: {e}")
        raise DockerUnavailableError(
            "Failed to start Docker Desktop: " + "; ".join(errors)
        )


class WindowsLauncher:
    def candidates(self) -> list[Path]:
        paths = []
        program_files = os.environ.get("ProgramFiles")
        if program_files:
            paths.append(Path(program_files) / "Docker" / "Docker" / "Docker Desktop.exe")
        local_app_data = os.environ.get("LOCALAPPDATA")
        if local_app_data:
            paths.append(Path(local_app_data) / "Docker" / "Docker Desktop.exe")
        return paths

    def detect(self) -> Optional[DockerInstall]:
        for path in self.candidates():
            if path.exists():
                return DockerInstall(str(path), [str(path)])
        binary = shutil.which("Docker Desktop.exe") or shutil.which("Docker Desktop")
        if binary:
            return DockerInstall(binary, [binary])
        return None

    def launch(self, install: DockerInstall) -> None:
        _spawn(install.argv)


def platform_launcher() -> DockerLauncher:
    if sys.platform == "darwin":
        return MacLauncher()
    if sys.platform == "win32":
        return WindowsLauncher()
    return LinuxLauncher()


def reset_latch() -> None:
    global _auto_started
    with _LATCH_LOCK:
        _auto_started = False


def _try_set_latch() -> bool:
    """Set the latch; False when it was already set."""
    global _auto_started
    with _LATCH_LOCK:
        if _auto_started:
            return False
        _auto_started = True
        return True


def launch_docker(launcher: Optional[DockerLauncher] = None) -> None:
    launcher = launcher or platform_launcher()
    install = launcher.detect()
    if install is None:
        raise DockerUnavailableError("Docker Desktop installation not found")
    logger.info("Starting Docker Desktop via %s", install.description)
    launcher.launch(install)


async def start_docker(launcher: Optional[DockerLauncher] = None) -> None:
    """Manual start: clears the latch, then launches."""
    reset_latch()
    await asyncio.to_thread(launch_docker, launcher)


async def start_docker_if_needed(
    home: Home,
    driver: Optional[DockerDriver] = None,
    launcher: Optional[DockerLauncher] = None,
) -> DockerStartStatus:
    config = ConfigStore(home).load()
    if determine_mode(config.server_url) == OperationalMode.REMOTE:
        return DockerStartStatus.RUNNING

    driver = driver or DockerDriver()
    if await driver.is_reachable():
        reset_latch()
        return DockerStartStatus.RUNNING

    if not config.auto_start_docker:
        return DockerStartStatus.DISABLED

    if not _try_set_latch():
        return DockerStartStatus.ALREADY_STARTED

    try:
        await asyncio.to_thread(launch_docker, launcher)
    except Exception:
        reset_latch()
        raise
    return DockerStartStatus.STARTING


async def wait_until_reachable(
    driver: DockerDriver, timeout: float, interval: float = DOCKER_START_POLL_INTERVAL
) -> bool:
    """Poll until Docker answers or ``timeout`` seconds pass."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        if await driver.is_reachable():
            return True
        if loop.time() >= deadline:
            return False
        await asyncio.sleep(interval)
