"""
Web Service Supervisor - runs the HTTP API as a detached child process.

The child is tracked through ``runtime/kittynode-web.json``. A recorded pid is
only trusted while the live process still has the recorded executable and was
started with the recorded ``--service-token``, so a recycled pid is never
mistaken for the service.
"""

import json
import logging
import secrets
import shutil
import socket
import subprocess
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Sequence, Union

import psutil

from kittynode.commands.constants import (
    DEFAULT_WEB_PORT,
    WEB_READY_CONNECT_TIMEOUT,
    WEB_READY_POLL_ATTEMPTS,
    WEB_READY_POLL_INTERVAL,
    WEB_SERVICE_TOKEN_BYTES,
    WEB_STOP_TIMEOUT,
)
from kittynode.commands.errors import (
    ServiceLaunchError,
    ServiceLaunchTimeoutError,
    ServiceNotRunningError,
    ServiceStopError,
    ValidationError,
)
from kittynode.commands.file_utils import remove_path, write_secure_file
from kittynode.commands.home import Home

logger = logging.getLogger(__name__)

SERVICE_TOKEN_FLAG = "--service-token"


class WebServiceState(str, Enum):
    STARTED = "started"
    ALREADY_RUNNING = "already_running"
    STOPPED = "stopped"
    NOT_RUNNING = "not_running"


@dataclass(frozen=True)
class WebServiceStatus:
    """Outcome of a supervisor call."""

    state: WebServiceState
    pid: Optional[int] = None
    port: Optional[int] = None

    def describe(self) -> str:
        if self.state == WebServiceState.STARTED:
            return f"Kittynode web service started on port {self.port} (pid {self.pid})"
        if self.state == WebServiceState.ALREADY_RUNNING:
            return (
                f"Kittynode web service already running on port {self.port} "
                f"(pid {self.pid})"
            )
        if self.state == WebServiceState.STOPPED:
            return f"Kittynode web service stopped on port {self.port} (pid {self.pid})"
        return "Kittynode web service is not running"

    def to_dict(self) -> dict[str, Any]:
        return {"state": self.state.value, "pid": self.pid, "port": self.port}


@dataclass
class WebProcessState:
    """What is persisted about the running child."""

    pid: int
    port: int
    binary: str
    token: Optional[str] = None
    log_path: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "pid": self.pid,
            "port": self.port,
            "binary": self.binary,
            "token": self.token,
            "log_path": self.log_path,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WebProcessState":
        return cls(
            pid=int(data["pid"]),
            port=int(data["port"]),
            binary=str(data["binary"]),
            token=data.get("token"),
            log_path=data.get("log_path"),
        )


def validate_web_port(port: int) -> int:
    if port == 0:
        raise ValidationError("Port must be greater than zero", field="port", value=port)
    return port


def args_contain_token(cmdline: Sequence[str], token: Optional[str]) -> bool:
    """True when ``cmdline`` carries ``--service-token <token>`` in either form."""
    if not token:
        return False
    for flag, value in zip(cmdline, cmdline[1:]):
        if flag == SERVICE_TOKEN_FLAG and value == token:
            return True
    return f"{SERVICE_TOKEN_FLAG}={token}" in cmdline


def paths_match(left: Union[str, Path], right: Union[str, Path]) -> bool:
    left, right = Path(left), Path(right)
    if left == right:
        return True
    try:
        return left.resolve(strict=True) == right.resolve(strict=True)
    except OSError:
        return False


def _port_is_bound(port: int) -> bool:
    for host in ("127.0.0.1", "::1"):
        try:
            with socket.create_connection((host, port), timeout=WEB_READY_CONNECT_TIMEOUT):
                return True
        except OSError:
            continue
    return False


class WebServiceSupervisor:
    """Starts, stops and reports on the ``kittynode web serve`` child."""

    def __init__(self, home: Home):
        self.home = home

    @property
    def state_path(self) -> Path:
        return self.home.web_state_path

    @property
    def log_file(self) -> Path:
        return self.home.web_log_path

    def load_state(self) -> Optional[WebProcessState]:
        if not self.state_path.exists():
            return None
        with open(self.state_path, encoding="utf-8") as f:
            return WebProcessState.from_dict(json.load(f))

    def save_state(self, state: WebProcessState) -> None:
        write_secure_file(self.state_path, json.dumps(state.to_dict(), indent=2))

    def clear_state(self) -> None:
        if remove_path(self.state_path):
            logger.debug("Cleared web service state at %s", self.state_path)

    def process_matches(self, state: WebProcessState) -> bool:
        try:
            process = psutil.Process(state.pid)
            exe = process.exe()
            cmdline = process.cmdline()
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            return False
        if not exe:
            return False
        return paths_match(exe, state.binary) and args_contain_token(cmdline, state.token)

    def _running_state(self) -> Optional[WebProcessState]:
        """The tracked state if its process is alive, else clear it and return None."""
        state = self.load_state()
        if state is None:
            return None
        if self.process_matches(state):
            if state.log_path is None:
                state.log_path = str(self.log_file)
                try:
                    self.save_state(state)
                except OSError as e:
                    logger.warning("Could not record web service log path: %s", e)
            return state
        self.clear_state()
        return None

    def start(
        self,
        port: Optional[int] = None,
        binary_path: Union[str, Path] = "",
        args: Sequence[str] = (),
    ) -> WebServiceStatus:
        port = validate_web_port(DEFAULT_WEB_PORT if port is None else port)

        running = self._running_state()
        if running is not None:
            return WebServiceStatus(
                WebServiceState.ALREADY_RUNNING, pid=running.pid, port=running.port
            )

        binary = Path(binary_path)
        if not binary.exists():
            # Bare command names are looked up on PATH
            found = shutil.which(str(binary_path))
            if found:
                binary = Path(found)
        if binary.exists():
            binary = binary.resolve()
        token = secrets.token_hex(WEB_SERVICE_TOKEN_BYTES)

        self.log_file.parent.mkdir(parents=True, exist_ok=True)
        argv = [str(binary), *args, "--port", str(port), SERVICE_TOKEN_FLAG, token]
        with open(self.log_file, "wb") as log:
            try:
                child = subprocess.Popen(
                    argv,
                    stdin=subprocess.DEVNULL,
                    stdout=log,
                    stderr=log,
                    start_new_session=True,
                )
            except OSError as e:
                raise ServiceLaunchError(
                    f"Failed to spawn kittynode-web process: {e}", port=port
                ) from e

        self._wait_until_ready(child, port)

        state = WebProcessState(
            pid=child.pid,
            port=port,
            binary=str(binary),
            token=token,
            log_path=str(self.log_file),
        )
        try:
            self.save_state(state)
        except Exception:
            child.kill()
            child.wait()
            raise

        logger.info(
            "Started kittynode-web service (pid %s, port %s, binary %s)",
            child.pid,
            port,
            binary,
        )
        return WebServiceStatus(WebServiceState.STARTED, pid=child.pid, port=port)

    def _wait_until_ready(self, child: subprocess.Popen, port: int) -> None:
        for _ in range(WEB_READY_POLL_ATTEMPTS):
            code = child.poll()
            if code is not None:
                detail = f"exit code {code}" if code >= 0 else "terminated by signal"
                raise ServiceLaunchError(
                    f"kittynode-web process exited immediately ({detail}); "
                    "check logs for details",
                    port=port,
                )
            if _port_is_bound(port):
                return
            time.sleep(WEB_READY_POLL_INTERVAL)

        child.kill()
        child.wait()
        raise ServiceLaunchTimeoutError(port)

    def stop(self) -> WebServiceStatus:
        state = self.load_state()
        if state is None or not self.process_matches(state):
            self.clear_state()
            return WebServiceStatus(WebServiceState.NOT_RUNNING)

        try:
            process = psutil.Process(state.pid)
            process.terminate()
            try:
                process.wait(timeout=WEB_STOP_TIMEOUT)
            except psutil.TimeoutExpired:
                logger.warning("kittynode-web (pid %s) ignored SIGTERM; killing", state.pid)
                process.kill()
        except psutil.NoSuchProcess:
            logger.debug("kittynode-web (pid %s) already exited", state.pid)
        except psutil.AccessDenied as e:
            raise ServiceStopError(
                f"Permission denied stopping kittynode-web (pid {state.pid})",
                pid=state.pid,
            ) from e
        self.clear_state()
        logger.info("Stopped kittynode-web service (pid %s, port %s)", state.pid, state.port)
        return WebServiceStatus(WebServiceState.STOPPED, pid=state.pid, port=state.port)

    def status(self) -> WebServiceStatus:
        running = self._running_state()
        if running is None:
            return WebServiceStatus(WebServiceState.NOT_RUNNING)
        return WebServiceStatus(
            WebServiceState.ALREADY_RUNNING, pid=running.pid, port=running.port
        )

    def log_path(self) -> Path:
        if self.log_file.exists():
            return self.log_file

        state = self.load_state()
        if state is not None and self.process_matches(state):
            raise ServiceNotRunningError(
                "Kittynode web service logs are not available yet; "
                "restart the service to enable logging"
            )
        raise ServiceNotRunningError(
            "Kittynode web service is not running; start it with `kittynode web start`"
        )
