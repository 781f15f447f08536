"""
Commands module - All available CLI commands.
"""

from kittynode.commands.config import config
from kittynode.commands.daemon import docker
from kittynode.commands.errors import (
    ClientError,
    ConfigParseError,
    DockerResourceMissingError,
    DockerUnavailableError,
    HomeResolutionError,
    KittynodeError,
    NetworkFetchError,
    NetworkSelectionError,
    NotFoundError,
    PermissionTooLooseError,
    ServiceLaunchError,
    ServiceLaunchTimeoutError,
    ServiceNotRunningError,
    ServiceStopError,
    UnconfiguredPackageError,
    UnsupportedNetworkError,
    ValidationError,
)
from kittynode.commands.logs import logs
from kittynode.commands.package import package
from kittynode.commands.system import init, reset, system_info
from kittynode.commands.web import web

__all__ = [
    # Commands
    "config",
    "docker",
    "init",
    "logs",
    "package",
    "reset",
    "system_info",
    "web",
    # Error classes
    "KittynodeError",
    "HomeResolutionError",
    "NotFoundError",
    "UnconfiguredPackageError",
    "UnsupportedNetworkError",
    "NetworkSelectionError",
    "DockerUnavailableError",
    "DockerResourceMissingError",
    "ConfigParseError",
    "NetworkFetchError",
    "PermissionTooLooseError",
    "ServiceNotRunningError",
    "ServiceStopError",
    "ServiceLaunchError",
    "ServiceLaunchTimeoutError",
    "ValidationError",
    "ClientError",
]
