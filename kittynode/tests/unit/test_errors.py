"""
Unit tests for the kittynode typed error classes.
"""

from kittynode.commands.errors import (
    ClientError,
    ConfigParseError,
    DockerResourceMissingError,
    KittynodeError,
    NetworkSelectionError,
    NotFoundError,
    PermissionTooLooseError,
    ServiceLaunchError,
    ServiceLaunchTimeoutError,
    ServiceStopError,
    UnconfiguredPackageError,
    UnsupportedNetworkError,
    ValidationError,
)


class TestKittynodeError:
    """Tests for the base KittynodeError class."""

    def test_basic_error(self):
        error = KittynodeError("Something went wrong")
        assert str(error) == "Something went wrong"
        assert error.message == "Something went wrong"
        assert error.code is None
        assert error.details == {}

    def test_error_with_code(self):
        error = KittynodeError("Something went wrong", code="ERR_001")
        assert str(error) == "[ERR_001] Something went wrong"

    def test_to_dict(self):
        error = KittynodeError("Test error", code="TEST", details={"key": "value"})
        assert error.to_dict() == {
            "type": "KittynodeError",
            "message": "Test error",
            "code": "TEST",
            "details": {"key": "value"},
        }

    def test_to_dict_minimal(self):
        assert KittynodeError("Test error").to_dict() == {
            "type": "KittynodeError",
            "message": "Test error",
        }


class TestPackageErrors:
    """Tests for package planning errors."""

    def test_not_found_records_resource(self):
        error = NotFoundError("Package 'foo' not found", resource="foo")
        assert isinstance(error, KittynodeError)
        assert error.details == {"resource": "foo"}
        assert "not found" in str(error)

    def test_unconfigured_package(self):
        error = UnconfiguredPackageError("Select a network", package="ethereum")
        assert error.package == "ethereum"
        assert error.details["package"] == "ethereum"

    def test_unsupported_network(self):
        error = UnsupportedNetworkError("bad network", network="holesky")
        assert error.network == "holesky"
        assert error.details == {"network": "holesky"}

    def test_network_selection_message(self):
        error = NetworkSelectionError("other")
        assert error.message == "Package 'other' does not support selecting a network"


class TestInfrastructureErrors:
    """Tests for Docker, config and service errors."""

    def test_docker_resource_missing(self):
        error = DockerResourceMissingError("No such volume: rethdata", resource="rethdata")
        assert error.resource == "rethdata"

    def test_config_parse_error_has_code(self):
        error = ConfigParseError("bad toml", config_file="/tmp/config.toml")
        assert error.code == "CONFIG_PARSE_FAILED"
        assert error.details["config_file"] == "/tmp/config.toml"
        assert str(error) == "[CONFIG_PARSE_FAILED] bad toml"

    def test_permission_too_loose_formats_mode(self):
        error = PermissionTooLooseError("too open", path="/x", mode=0o644)
        assert error.details == {"path": "/x", "mode": "0o644"}

    def test_launch_timeout_is_launch_error(self):
        error = ServiceLaunchTimeoutError(3000)
        assert isinstance(error, ServiceLaunchError)
        assert error.port == 3000
        assert "port 3000" in error.message

    def test_stop_error_records_pid(self):
        error = ServiceStopError("Permission denied stopping kittynode-web (pid 7)", pid=7)
        assert error.pid == 7
        assert error.details == {"pid": 7}

    def test_validation_error_fields(self):
        error = ValidationError("Port must be greater than zero", field="port", value=0)
        assert error.details == {"field": "port", "value": 0}
        assert error.code == "VALIDATION_FAILED"
        assert error.message == "Port must be greater than zero"

    def test_client_error_status(self):
        error = ClientError("HTTP 404", url="http://peer/x", status_code=404)
        assert error.status_code == 404
        assert error.details == {"url": "http://peer/x", "status_code": 404}
