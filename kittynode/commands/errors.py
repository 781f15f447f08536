"""
Typed error classes for kittynode.

This module provides the error hierarchy shared by the engine, the HTTP adaptor
and the CLI:
- KittynodeError: Base exception for all kittynode errors
- NotFoundError: Unknown packages, containers and other resources
- UnconfiguredPackageError / UnsupportedNetworkError: Package planning errors
- DockerUnavailableError / DockerResourceMissingError: Docker daemon errors
- ConfigParseError: Malformed persisted configuration
- NetworkFetchError: Ephemery release lookup or download failures
- PermissionTooLooseError: Validator artifacts with unsafe permissions
- ServiceNotRunningError / ServiceLaunchError / ServiceStopError: Web service supervisor errors
- ValidationError: Input validation errors
- ClientError: Remote HTTP communication errors
"""

from typing import Any, Optional


class KittynodeError(Exception):
    """Base exception class for all kittynode errors.

    Attributes:
        message: Human-readable error message
        code: Optional error code for programmatic handling
        details: Optional dictionary with additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a dictionary for serialization."""
        result: dict[str, Any] = {
            "type": self.__class__.__name__,
            "message": self.message,
        }
        if self.code:
            result["code"] = self.code
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class HomeResolutionError(KittynodeError):
    """Raised when no home directory can be resolved for the data root."""

    def __init__(self, message: str = "Failed to resolve home directory"):
        super().__init__(message)


class NotFoundError(KittynodeError):
    """Raised when a package, container or other resource does not exist."""

    def __init__(
        self,
        message: str,
        resource: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.resource = resource
        details = details or {}
        if resource:
            details["resource"] = resource
        super().__init__(message, details=details)


class UnconfiguredPackageError(KittynodeError):
    """Raised when installing a package before its required config is set."""

    def __init__(
        self,
        message: str,
        package: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.package = package
        details = details or {}
        if package:
            details["package"] = package
        super().__init__(message, details=details)


class UnsupportedNetworkError(KittynodeError):
    """Raised when a package config names a network the planner rejects."""

    def __init__(
        self,
        message: str,
        network: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.network = network
        details = details or {}
        if network is not None:
            details["network"] = network
        super().__init__(message, details=details)


class NetworkSelectionError(KittynodeError):
    """Raised when a network is supplied for a package that has no networks."""

    def __init__(self, package: str):
        self.package = package
        super().__init__(
            f"Package '{package}' does not support selecting a network",
            details={"package": package},
        )


class DockerUnavailableError(KittynodeError):
    """Raised when the Docker daemon cannot be reached."""


class DockerResourceMissingError(KittynodeError):
    """Raised when a volume, network or container is gone from the daemon."""

    def __init__(
        self,
        message: str,
        resource: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.resource = resource
        details = details or {}
        if resource:
            details["resource"] = resource
        super().__init__(message, details=details)


class ConfigParseError(KittynodeError):
    """Raised when a persisted configuration file is malformed."""

    def __init__(
        self,
        message: str,
        config_file: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.config_file = config_file
        details = details or {}
        if config_file:
            details["config_file"] = config_file
        super().__init__(message, code="CONFIG_PARSE_FAILED", details=details)


class NetworkFetchError(KittynodeError):
    """Raised when an Ephemery release lookup or download fails."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.url = url
        details = details or {}
        if url:
            details["url"] = url
        super().__init__(message, details=details)


class PermissionTooLooseError(KittynodeError):
    """Raised when a validator artifact grants more access than allowed."""

    def __init__(self, message: str, path: Optional[str] = None, mode: Optional[int] = None):
        self.path = path
        self.mode = mode
        details: dict[str, Any] = {}
        if path:
            details["path"] = path
        if mode is not None:
            details["mode"] = oct(mode)
        super().__init__(message, details=details)


class ServiceNotRunningError(KittynodeError):
    """Raised when the web service is required but not running."""


class ServiceLaunchError(KittynodeError):
    """Raised when the web service child fails to come up."""

    def __init__(
        self,
        message: str,
        port: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.port = port
        details = details or {}
        if port is not None:
            details["port"] = port
        super().__init__(message, details=details)


class ServiceLaunchTimeoutError(ServiceLaunchError):
    """Raised when the web service does not bind its port in time."""

    def __init__(self, port: int):
        super().__init__(
            f"Timed out waiting for kittynode-web to bind on port {port}", port=port
        )


class ServiceStopError(KittynodeError):
    """Raised when the web service process cannot be signalled."""

    def __init__(self, message: str, pid: int):
        self.pid = pid
        super().__init__(message, details={"pid": pid})


class ValidationError(KittynodeError):
    """Input validation errors.

    Raised when:
    - A web service port is zero
    - A server URL is malformed or uses an unsupported scheme
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.field = field
        self.value = value
        details = details or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = value
        super().__init__(message, code="VALIDATION_FAILED", details=details)


class ClientError(KittynodeError):
    """Remote HTTP communication errors.

    Raised when:
    - The remote peer answers with a non-success status
    - The request cannot be sent or the response cannot be decoded
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.url = url
        self.status_code = status_code
        details = details or {}
        if url:
            details["url"] = url
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details=details)


__all__ = [
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
    "ServiceLaunchError",
    "ServiceLaunchTimeoutError",
    "ServiceStopError",
    "ValidationError",
    "ClientError",
]
