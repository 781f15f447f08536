"""
Data model shared by the planner, the orchestrator, the HTTP adaptor and the
core client.

Every record converts to and from plain dictionaries so the same shapes travel
over the HTTP API and through the in-process engine.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


@dataclass(frozen=True)
class PortBinding:
    """A host address a container port is published on."""

    host_ip: str
    host_port: str

    def to_dict(self) -> dict[str, Any]:
        return {"host_ip": self.host_ip, "host_port": self.host_port}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PortBinding":
        return cls(host_ip=data.get("host_ip", ""), host_port=data.get("host_port", ""))


@dataclass(frozen=True)
class Binding:
    """A named volume or host path mounted into a container."""

    source: str
    destination: str
    options: Optional[str] = None

    @property
    def read_only(self) -> bool:
        return bool(self.options) and "ro" in self.options.split(",")

    def bind_string(self) -> str:
        """Render as ``src:dst`` or ``src:dst:opts`` for the Docker host config."""
        if self.options:
            return f"{self.source}:{self.destination}:{self.options}"
        return f"{self.source}:{self.destination}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "destination": self.destination,
            "options": self.options,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Binding":
        return cls(
            source=data["source"],
            destination=data["destination"],
            options=data.get("options"),
        )


@dataclass
class Container:
    """One Docker container specification inside a package plan."""

    name: str
    image: str
    cmd: list[str] = field(default_factory=list)
    port_bindings: dict[str, list[PortBinding]] = field(default_factory=dict)
    volume_bindings: list[Binding] = field(default_factory=list)
    file_bindings: list[Binding] = field(default_factory=list)

    def binds(self) -> list[str]:
        return [b.bind_string() for b in self.volume_bindings + self.file_bindings]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "image": self.image,
            "cmd": list(self.cmd),
            "port_bindings": {
                port: [b.to_dict() for b in bindings]
                for port, bindings in self.port_bindings.items()
            },
            "volume_bindings": [b.to_dict() for b in self.volume_bindings],
            "file_bindings": [b.to_dict() for b in self.file_bindings],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Container":
        return cls(
            name=data["name"],
            image=data["image"],
            cmd=list(data.get("cmd", [])),
            port_bindings={
                port: [PortBinding.from_dict(b) for b in bindings]
                for port, bindings in (data.get("port_bindings") or {}).items()
            },
            volume_bindings=[
                Binding.from_dict(b) for b in data.get("volume_bindings", [])
            ],
            file_bindings=[Binding.from_dict(b) for b in data.get("file_bindings", [])],
        )


@dataclass
class PackageConfig:
    """Key/value overrides for one package."""

    values: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"values": dict(self.values)}

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "PackageConfig":
        values = (data or {}).get("values") or {}
        return cls(values={str(k): str(v) for k, v in values.items()})


@dataclass
class Package:
    """Declarative snapshot of a package for its current saved config."""

    name: str
    description: str
    network_name: str
    containers: list[Container] = field(default_factory=list)
    default_config: PackageConfig = field(default_factory=PackageConfig)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "network_name": self.network_name,
            "containers": [c.to_dict() for c in self.containers],
            "default_config": self.default_config.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Package":
        return cls(
            name=data["name"],
            description=data.get("description", ""),
            network_name=data.get("network_name", ""),
            containers=[Container.from_dict(c) for c in data.get("containers", [])],
            default_config=PackageConfig.from_dict(data.get("default_config")),
        )


class RuntimeStatus(str, Enum):
    RUNNING = "running"
    PARTIALLY_RUNNING = "partially_running"
    NOT_RUNNING = "not_running"


class InstallStatus(str, Enum):
    INSTALLED = "installed"
    PARTIALLY_INSTALLED = "partially_installed"
    NOT_INSTALLED = "not_installed"


@dataclass
class PackageRuntimeState:
    """Live runtime snapshot of a package's containers."""

    running: RuntimeStatus
    missing_containers: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "running": self.running.value,
            "missing_containers": list(self.missing_containers),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PackageRuntimeState":
        return cls(
            running=RuntimeStatus(data["running"]),
            missing_containers=list(data.get("missing_containers", [])),
        )


@dataclass
class PackageState:
    """Install and runtime status of a package."""

    install: InstallStatus
    runtime: RuntimeStatus
    config_present: bool
    missing_containers: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "install": self.install.value,
            "runtime": self.runtime.value,
            "config_present": self.config_present,
            "missing_containers": list(self.missing_containers),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PackageState":
        return cls(
            install=InstallStatus(data["install"]),
            runtime=RuntimeStatus(data["runtime"]),
            config_present=bool(data.get("config_present", False)),
            missing_containers=list(data.get("missing_containers", [])),
        )


class OperationalMode(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"


@dataclass
class OperationalState:
    """UI-facing readiness snapshot."""

    mode: OperationalMode
    docker_running: bool
    can_install: bool
    can_manage: bool
    diagnostics: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "docker_running": self.docker_running,
            "can_install": self.can_install,
            "can_manage": self.can_manage,
            "diagnostics": list(self.diagnostics),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OperationalState":
        return cls(
            mode=OperationalMode(data["mode"]),
            docker_running=bool(data["docker_running"]),
            can_install=bool(data["can_install"]),
            can_manage=bool(data["can_manage"]),
            diagnostics=list(data.get("diagnostics", [])),
        )


class DockerStartStatus(str, Enum):
    RUNNING = "running"
    DISABLED = "disabled"
    ALREADY_STARTED = "already_started"
    STARTING = "starting"

    def describe(self) -> str:
        return {
            DockerStartStatus.RUNNING: "Docker is running",
            DockerStartStatus.DISABLED: "Docker auto-start is disabled",
            DockerStartStatus.ALREADY_STARTED: "Docker start was already attempted",
            DockerStartStatus.STARTING: "Docker is starting",
        }[self]


@dataclass
class ProcessorInfo:
    name: str
    cores: int
    frequency_ghz: float
    architecture: str


@dataclass
class MemoryInfo:
    total_bytes: int
    total_display: str


@dataclass
class DiskInfo:
    name: str
    mount_point: str
    total_bytes: int
    available_bytes: int
    total_display: str
    used_display: str
    available_display: str
    disk_type: str


@dataclass
class SystemInfo:
    """Host snapshot: processor, memory and storage."""

    processor: ProcessorInfo
    memory: MemoryInfo
    disks: list[DiskInfo] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "processor": vars(self.processor).copy(),
            "memory": vars(self.memory).copy(),
            "storage": {"disks": [vars(d).copy() for d in self.disks]},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SystemInfo":
        return cls(
            processor=ProcessorInfo(**data["processor"]),
            memory=MemoryInfo(**data["memory"]),
            disks=[DiskInfo(**d) for d in data.get("storage", {}).get("disks", [])],
        )
