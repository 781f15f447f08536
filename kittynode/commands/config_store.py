"""
Config Store - global and per-package configuration persisted as TOML.

Both stores read from disk on every call and write through an atomic rename,
so the CLI, the desktop app and the web service never see a partial file.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import toml

from kittynode.commands.errors import ConfigParseError
from kittynode.commands.file_utils import atomic_write
from kittynode.commands.home import Home
from kittynode.commands.models import PackageConfig

logger = logging.getLogger(__name__)

# Persisted key -> accepted spellings on load (camelCase from older writers)
_CONFIG_KEYS = {
    "capabilities": ("capabilities",),
    "server_url": ("server_url", "serverUrl"),
    "last_server_url": ("last_server_url", "lastServerUrl"),
    "has_remote_server": ("has_remote_server", "hasRemoteServer", "remote_connected"),
    "onboarding_completed": ("onboarding_completed", "onboardingCompleted"),
    "auto_start_docker": ("auto_start_docker", "autoStartDocker"),
    "show_tray_icon": ("show_tray_icon", "showTrayIcon"),
}
_BOOL_KEYS = (
    "has_remote_server",
    "onboarding_completed",
    "auto_start_docker",
    "show_tray_icon",
)


@dataclass
class Config:
    """Per-user machine settings."""

    capabilities: list[str] = field(default_factory=list)
    server_url: str = ""
    last_server_url: str = ""
    has_remote_server: bool = False
    onboarding_completed: bool = False
    auto_start_docker: bool = False
    show_tray_icon: bool = True
    # Keys this version does not know about, written back untouched
    extra: dict[str, Any] = field(default_factory=dict)

    def normalize(self) -> "Config":
        self.server_url = self.server_url.strip()
        if not self.last_server_url.strip() and self.server_url:
            self.last_server_url = self.server_url
        else:
            self.last_server_url = self.last_server_url.strip()
        self.has_remote_server = bool(self.server_url)
        return self

    def add_capability(self, name: str) -> bool:
        if name in self.capabilities:
            return False
        self.capabilities.append(name)
        return True

    def remove_capability(self, name: str) -> bool:
        if name not in self.capabilities:
            return False
        self.capabilities.remove(name)
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "capabilities": list(self.capabilities),
            "server_url": self.server_url,
            "last_server_url": self.last_server_url,
            "has_remote_server": self.has_remote_server,
            "onboarding_completed": self.onboarding_completed,
            "auto_start_docker": self.auto_start_docker,
            "show_tray_icon": self.show_tray_icon,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Config":
        """Build a Config from snake_case or camelCase keys.

        Raises:
            TypeError: If a known key holds a value of the wrong type
        """
        data = dict(data)
        values: dict[str, Any] = {}
        for key, aliases in _CONFIG_KEYS.items():
            for alias in aliases:
                if alias in data:
                    values.setdefault(key, data.pop(alias))

        capabilities = values.get("capabilities", [])
        if not isinstance(capabilities, list) or not all(
            isinstance(c, str) for c in capabilities
        ):
            raise TypeError("capabilities must be a list of strings")
        for key in ("server_url", "last_server_url"):
            if not isinstance(values.get(key, ""), str):
                raise TypeError(f"{key} must be a string")
        for key in _BOOL_KEYS:
            if key in values and not isinstance(values[key], bool):
                raise TypeError(f"{key} must be a boolean")

        config = cls(extra=data)
        config.capabilities = list(dict.fromkeys(capabilities))
        config.server_url = values.get("server_url", "")
        config.last_server_url = values.get("last_server_url", "")
        for key in _BOOL_KEYS:
            if key in values:
                setattr(config, key, values[key])
        return config


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            return toml.load(f)
    except toml.TomlDecodeError as e:
        raise ConfigParseError(
            f"Failed to parse {path}: {e}", config_file=str(path)
        ) from e


class ConfigStore:
    """Loads and saves the global ``config.toml``."""

    def __init__(self, home: Home):
        self.home = home

    @property
    def path(self) -> Path:
        return self.home.config_path

    def load(self) -> Config:
        """Load the global config; a missing file yields normalised defaults."""
        if not self.path.exists():
            return Config().normalize()

        data = _read_toml(self.path)
        try:
            config = Config.from_dict(data)
        except TypeError as e:
            raise ConfigParseError(
                f"Failed to parse {self.path}: {e}", config_file=str(self.path)
            ) from e
        return config.normalize()

    def save(self, config: Config) -> None:
        payload = dict(config.extra)
        payload.update(config.to_dict())
        atomic_write(self.path, toml.dumps(payload))
        logger.debug("Saved global config to %s", self.path)

    def save_normalized(self, config: Config) -> None:
        config.normalize()
        self.save(config)


class PackageConfigStore:
    """Loads and saves ``packages/<name>/config.toml``."""

    def __init__(self, home: Home):
        self.home = home

    def path(self, package_name: str) -> Path:
        return self.home.package_config_path(package_name)

    def exists(self, package_name: str) -> bool:
        return self.path(package_name).exists()

    def load(self, package_name: str) -> PackageConfig:
        path = self.path(package_name)
        if not path.exists():
            return PackageConfig()

        data = _read_toml(path)
        values = data.get("values", {})
        if not isinstance(values, dict):
            raise ConfigParseError(
                f"Failed to parse {path}: values must be a table",
                config_file=str(path),
            )
        return PackageConfig(values={str(k): str(v) for k, v in values.items()})

    def save(self, package_name: str, config: PackageConfig) -> None:
        path = self.path(package_name)
        atomic_write(path, toml.dumps({"values": dict(config.values)}))
        logger.debug("Saved %s package config to %s", package_name, path)
