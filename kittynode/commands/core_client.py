"""
Core client - one interface over the local engine and a remote kittynode-web.

The variant is chosen from the configured ``server_url``: empty means the
operations run on this machine, anything else sends each call as a single
HTTP request to that peer. Both variants return the same record types.
"""

import json
import logging
import threading
from typing import Any, Optional, Union

import aiohttp

from kittynode.commands import api
from kittynode.commands.config_store import Config, ConfigStore
from kittynode.commands.constants import REMOTE_CONNECTION_TIMEOUT, REMOTE_REQUEST_TIMEOUT
from kittynode.commands.errors import ClientError
from kittynode.commands.home import Home
from kittynode.commands.managers import DockerDriver
from kittynode.commands.models import (
    DockerStartStatus,
    OperationalMode,
    OperationalState,
    Package,
    PackageConfig,
    PackageRuntimeState,
    PackageState,
    SystemInfo,
)

logger = logging.getLogger(__name__)


def normalize_base_url(server_url: str) -> Optional[str]:
    """Trimmed URL without trailing slashes, or None when not an http(s) URL."""
    trimmed = server_url.strip()
    if not trimmed.startswith(("http://", "https://")):
        return None
    return trimmed.rstrip("/")


class LocalCoreClient:
    """Runs every operation in-process against the local Docker daemon."""

    mode = OperationalMode.LOCAL

    def __init__(self, home: Optional[Home] = None, driver: Optional[DockerDriver] = None):
        self.home = home
        self.driver = driver

    async def get_package_catalog(self) -> dict[str, Package]:
        return api.get_package_catalog(self.home)

    async def get_capabilities(self) -> list[str]:
        return api.get_capabilities(self.home)

    async def add_capability(self, name: str) -> None:
        api.add_capability(name, self.home)

    async def remove_capability(self, name: str) -> None:
        api.remove_capability(name, self.home)

    async def get_config(self) -> Config:
        return api.get_config(self.home)

    async def get_installed_packages(self) -> list[Package]:
        return await api.get_installed_packages(self.home, self.driver)

    async def get_system_info(self) -> SystemInfo:
        return api.get_system_info()

    async def get_container_logs(
        self, container: str, tail: Optional[int] = None
    ) -> list[str]:
        return await api.get_container_logs(container, tail, self.driver)

    async def install_package(self, name: str, network: Optional[str] = None) -> None:
        await api.install_package(name, network, self.home, self.driver)

    async def delete_package(self, name: str, include_images: bool = False) -> None:
        await api.delete_package(name, include_images, self.home, self.driver)

    async def stop_package(self, name: str) -> None:
        await api.stop_package(name, self.home, self.driver)

    async def start_package(self, name: str) -> None:
        await api.start_package(name, self.home, self.driver)

    async def get_package(self, name: str) -> PackageState:
        return await api.get_package(name, self.home, self.driver)

    async def get_packages(self, names: list[str]) -> dict[str, PackageState]:
        return await api.get_packages(names, self.home, self.driver)

    async def get_package_runtime_state(self, name: str) -> PackageRuntimeState:
        return await api.get_package_runtime_state(name, self.home, self.driver)

    async def get_packages_runtime_state(
        self, names: list[str]
    ) -> dict[str, PackageRuntimeState]:
        return await api.get_packages_runtime_state(names, self.home, self.driver)

    async def is_validator_installed(self) -> bool:
        return await api.is_validator_installed(self.home, self.driver)

    async def get_package_config(self, name: str) -> PackageConfig:
        return api.get_package_config(name, self.home)

    async def update_package_config(self, name: str, config: PackageConfig) -> None:
        await api.update_package_config(name, config, self.home, self.driver)

    async def init_kittynode(self) -> None:
        api.init_kittynode(self.home)

    async def delete_kittynode(self) -> None:
        api.delete_kittynode(self.home)

    async def is_docker_running(self) -> bool:
        return await api.is_docker_running(self.driver)

    async def start_docker_if_needed(self) -> DockerStartStatus:
        return await api.start_docker_if_needed(self.home, self.driver)

    async def get_operational_state(self) -> OperationalState:
        return await api.get_operational_state(self.home, self.driver)


class RemoteCoreClient:
    """Sends every operation to a kittynode-web peer over HTTP."""

    mode = OperationalMode.REMOTE

    def __init__(
        self,
        server_url: str,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = REMOTE_REQUEST_TIMEOUT,
    ):
        base_url = normalize_base_url(server_url)
        if base_url is None:
            raise ClientError(
                "Server URL must not be empty for HTTP client", url=server_url
            )
        self.base_url = base_url
        self._session = session
        self._timeout = timeout

    def url(self, path: str) -> str:
        if path.startswith("/"):
            return f"{self.base_url}{path}"
        return f"{self.base_url}/{path}"

    async def _send(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, str]] = None,
        payload: Optional[Any] = None,
    ) -> tuple[int, str]:
        url = self.url(path)
        try:
            if self._session is not None:
                return await self._exchange(self._session, method, url, params, payload)
            timeout = aiohttp.ClientTimeout(
                total=self._timeout, connect=REMOTE_CONNECTION_TIMEOUT
            )
            async with aiohttp.ClientSession(timeout=timeout) as session:
                return await self._exchange(session, method, url, params, payload)
        except aiohttp.ClientError as e:
            raise ClientError(f"Failed to {method} {path}: {e}", url=url) from e

    @staticmethod
    async def _exchange(session, method, url, params, payload) -> tuple[int, str]:
        async with session.request(method, url, params=params, json=payload) as response:
            return response.status, await response.text()

    def _ensure_success(self, status: int, body: str, path: str, action: str) -> str:
        if 200 <= status < 300:
            return body
        raise ClientError(
            f"HTTP {status} when {action} {path}: {body}",
            url=self.url(path),
            status_code=status,
        )

    def _decode(self, body: str, path: str) -> Any:
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise ClientError(
                f"Failed to deserialize response from {path}: {e}", url=self.url(path)
            ) from e

    async def _get_json(self, path: str, params: Optional[dict[str, str]] = None) -> Any:
        status, body = await self._send("GET", path, params=params)
        return self._decode(self._ensure_success(status, body, path, "requesting"), path)

    async def _post(
        self,
        path: str,
        params: Optional[dict[str, str]] = None,
        payload: Optional[Any] = None,
    ) -> str:
        status, body = await self._send("POST", path, params=params, payload=payload)
        return self._ensure_success(status, body, path, "posting")

    async def _post_json(self, path: str, payload: Optional[Any] = None) -> Any:
        return self._decode(await self._post(path, payload=payload), path)

    async def get_package_catalog(self) -> dict[str, Package]:
        data = await self._get_json("/get_package_catalog")
        return {name: Package.from_dict(p) for name, p in data.items()}

    async def get_capabilities(self) -> list[str]:
        return list(await self._get_json("/get_capabilities"))

    async def add_capability(self, name: str) -> None:
        await self._post(f"/add_capability/{name}")

    async def remove_capability(self, name: str) -> None:
        await self._post(f"/remove_capability/{name}")

    async def get_config(self) -> Config:
        return Config.from_dict(await self._get_json("/get_config"))

    async def get_installed_packages(self) -> list[Package]:
        return [Package.from_dict(p) for p in await self._get_json("/get_installed_packages")]

    async def get_system_info(self) -> SystemInfo:
        return SystemInfo.from_dict(await self._get_json("/get_system_info"))

    async def get_container_logs(
        self, container: str, tail: Optional[int] = None
    ) -> list[str]:
        params = {"tail": str(tail)} if tail is not None else None
        return list(await self._get_json(f"/logs/{container}", params=params))

    async def install_package(self, name: str, network: Optional[str] = None) -> None:
        params = {"network": network} if network else None
        await self._post(f"/install_package/{name}", params=params)

    async def delete_package(self, name: str, include_images: bool = False) -> None:
        params = {"include_images": "true"} if include_images else None
        await self._post(f"/delete_package/{name}", params=params)

    async def stop_package(self, name: str) -> None:
        await self._post(f"/stop_package/{name}")

    async def start_package(self, name: str) -> None:
        await self._post(f"/start_package/{name}")

    async def get_package(self, name: str) -> PackageState:
        return PackageState.from_dict(await self._get_json(f"/get_package/{name}"))

    async def get_packages(self, names: list[str]) -> dict[str, PackageState]:
        data = await self._post_json("/get_packages", {"names": list(names)})
        return {name: PackageState.from_dict(s) for name, s in data.items()}

    async def get_package_runtime_state(self, name: str) -> PackageRuntimeState:
        return PackageRuntimeState.from_dict(
            await self._get_json(f"/package_runtime/{name}")
        )

    async def get_packages_runtime_state(
        self, names: list[str]
    ) -> dict[str, PackageRuntimeState]:
        data = await self._post_json("/package_runtime", {"names": list(names)})
        return {name: PackageRuntimeState.from_dict(s) for name, s in data.items()}

    async def is_validator_installed(self) -> bool:
        return bool(await self._get_json("/is_validator_installed"))

    async def get_package_config(self, name: str) -> PackageConfig:
        return PackageConfig.from_dict(await self._get_json(f"/get_package_config/{name}"))

    async def update_package_config(self, name: str, config: PackageConfig) -> None:
        await self._post(f"/update_package_config/{name}", payload=config.to_dict())

    async def init_kittynode(self) -> None:
        await self._post("/init_kittynode")

    async def delete_kittynode(self) -> None:
        await self._post("/delete_kittynode")

    async def is_docker_running(self) -> bool:
        status, body = await self._send("GET", "/is_docker_running")
        if status == 200:
            return True
        if status == 503:
            return False
        raise ClientError(
            f"Unexpected status {status} when checking Docker status: {body}",
            url=self.url("/is_docker_running"),
            status_code=status,
        )

    async def start_docker_if_needed(self) -> DockerStartStatus:
        return DockerStartStatus(await self._post_json("/start_docker_if_needed"))

    async def get_operational_state(self) -> OperationalState:
        # The peer reports its own (local) mode; from here it is remote
        state = OperationalState.from_dict(await self._get_json("/get_operational_state"))
        state.mode = OperationalMode.REMOTE
        return state


CoreClient = Union[LocalCoreClient, RemoteCoreClient]


def create_client(
    config: Config, home: Optional[Home] = None, driver: Optional[DockerDriver] = None
) -> CoreClient:
    base_url = normalize_base_url(config.server_url)
    if base_url is None:
        return LocalCoreClient(home, driver)
    logger.debug("Using remote kittynode at %s", base_url)
    return RemoteCoreClient(base_url)


class CoreClientManager:
    """Holds the active client and swaps it when the server URL changes.

    Callers that already took a client keep using it; only later calls to
    ``client()`` see the new variant.
    """

    def __init__(self, home: Optional[Home] = None, driver: Optional[DockerDriver] = None):
        self.home = home
        self.driver = driver
        self._lock = threading.Lock()
        self._client = create_client(self._load_config(), home, driver)

    def _load_config(self) -> Config:
        return ConfigStore(self.home or Home.try_default()).load()

    def client(self) -> CoreClient:
        with self._lock:
            return self._client

    def reload(self) -> CoreClient:
        client = create_client(self._load_config(), self.home, self.driver)
        with self._lock:
            self._client = client
        return client

    # Machine-local settings, never forwarded to a remote peer

    def set_server_url(self, endpoint: str) -> CoreClient:
        api.set_server_url(endpoint, self.home)
        return self.reload()

    def get_server_url(self) -> str:
        return api.get_server_url(self.home)

    def set_auto_start_docker(self, enabled: bool) -> None:
        api.set_auto_start_docker(enabled, self.home)

    def set_show_tray_icon(self, enabled: bool) -> None:
        api.set_show_tray_icon(enabled, self.home)

    def set_onboarding_completed(self, completed: bool) -> None:
        api.set_onboarding_completed(completed, self.home)

    def get_onboarding_completed(self) -> bool:
        return api.get_onboarding_completed(self.home)

    async def start_docker(self) -> None:
        await api.start_docker()
