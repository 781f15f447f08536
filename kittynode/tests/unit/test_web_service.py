"""
Unit tests for the kittynode-web supervisor.
"""

import json
import os
import socket
import subprocess
import sys
import textwrap

import psutil
import pytest

from kittynode.commands.errors import (
    ServiceLaunchError,
    ServiceNotRunningError,
    ServiceStopError,
    ValidationError,
)
from kittynode.commands.web_service import (
    WebProcessState,
    WebServiceState,
    WebServiceStatus,
    WebServiceSupervisor,
    args_contain_token,
    paths_match,
    validate_web_port,
)

LISTENER = textwrap.dedent(
    """
    import socket
    import sys

    port = int(sys.argv[sys.argv.index("--port") + 1])
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    server.bind(("127.0.0.1", port))
    server.listen()
    while True:
        conn, _ = server.accept()
        conn.close()
    """
)


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class TestHelpers:
    def test_port_zero_is_rejected(self):
        with pytest.raises(ValidationError, match="Port must be greater than zero"):
            validate_web_port(0)
        assert validate_web_port(3000) == 3000

    def test_args_contain_token(self):
        assert args_contain_token(["web", "--service-token", "abc"], "abc")
        assert args_contain_token(["web", "--service-token=abc"], "abc")
        assert not args_contain_token(["web", "--service-token", "abd"], "abc")
        assert not args_contain_token(["web", "abc"], "abc")
        assert not args_contain_token(["web", "--service-token", ""], None)

    def test_paths_match(self, tmp_path):
        target = tmp_path / "bin"
        target.write_text("")
        link = tmp_path / "link"
        link.symlink_to(target)
        assert paths_match(link, target)
        assert not paths_match(tmp_path / "absent", target)

    def test_status_messages(self):
        started = WebServiceStatus(WebServiceState.STARTED, pid=12, port=3000)
        assert started.describe() == "Kittynode web service started on port 3000 (pid 12)"
        assert WebServiceStatus(WebServiceState.NOT_RUNNING).to_dict() == {
            "state": "not_running",
            "pid": None,
            "port": None,
        }


class TestSupervisorState:
    def test_status_without_state(self, home):
        status = WebServiceSupervisor(home).status()
        assert status.state == WebServiceState.NOT_RUNNING

    def test_stale_state_is_cleared(self, home):
        supervisor = WebServiceSupervisor(home)
        supervisor.save_state(
            WebProcessState(pid=os.getpid(), port=3000, binary=sys.executable, token="x")
        )

        assert supervisor.status().state == WebServiceState.NOT_RUNNING
        assert not supervisor.state_path.exists()

    def test_stop_without_service(self, home):
        assert WebServiceSupervisor(home).stop().state == WebServiceState.NOT_RUNNING

    def test_logs_unavailable_when_not_running(self, home):
        with pytest.raises(ServiceNotRunningError, match="kittynode web start"):
            WebServiceSupervisor(home).log_path()

    def test_existing_log_is_returned(self, home):
        supervisor = WebServiceSupervisor(home)
        supervisor.log_file.parent.mkdir(parents=True)
        supervisor.log_file.write_text("hello\n")
        assert supervisor.log_path() == supervisor.log_file

    def test_state_file_round_trip(self, home):
        supervisor = WebServiceSupervisor(home)
        state = WebProcessState(pid=1, port=3000, binary="/bin/kw", token="t")
        supervisor.save_state(state)
        assert json.loads(supervisor.state_path.read_text())["token"] == "t"
        assert supervisor.load_state() == state


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX process supervision")
class TestSupervisorLifecycle:
    def test_start_status_stop(self, home, tmp_path):
        script = tmp_path / "listener.py"
        script.write_text(LISTENER)
        port = _free_port()
        supervisor = WebServiceSupervisor(home)

        try:
            started = supervisor.start(port, sys.executable, [str(script)])
            assert started.state == WebServiceState.STARTED
            assert started.port == port
            assert started.pid
            assert home.web_state_path.exists()

            again = supervisor.status()
            assert again.state == WebServiceState.ALREADY_RUNNING
            assert again.pid == started.pid

            assert supervisor.start(port, sys.executable, [str(script)]).state == (
                WebServiceState.ALREADY_RUNNING
            )
        finally:
            stopped = supervisor.stop()

        assert stopped.state == WebServiceState.STOPPED
        assert not home.web_state_path.exists()
        assert supervisor.status().state == WebServiceState.NOT_RUNNING

    def test_child_exiting_immediately(self, home, tmp_path):
        script = tmp_path / "crash.py"
        script.write_text("import sys\nsys.exit(3)\n")

        with pytest.raises(ServiceLaunchError, match="exit code 3"):
            WebServiceSupervisor(home).start(_free_port(), sys.executable, [str(script)])
        assert not home.web_state_path.exists()

    def test_bare_binary_is_resolved_on_path(self, home, tmp_path, monkeypatch):
        bin_dir = tmp_path / "bin"
        bin_dir.mkdir()
        binary = bin_dir / "kittynode"
        binary.write_text("#!/bin/sh\n")
        binary.chmod(0o755)
        monkeypatch.setenv("PATH", str(bin_dir))
        monkeypatch.chdir(tmp_path)
        launched = []

        def fake_popen(argv, **kwargs):
            launched.append(argv)
            raise OSError("spawn blocked")

        monkeypatch.setattr(subprocess, "Popen", fake_popen)
        with pytest.raises(ServiceLaunchError, match="Failed to spawn"):
            WebServiceSupervisor(home).start(3000, "kittynode")
        assert launched[0][0] == str(binary.resolve())

    def test_access_denied_on_stop(self, home, monkeypatch):
        supervisor = WebServiceSupervisor(home)
        supervisor.save_state(
            WebProcessState(pid=4242, port=3000, binary="/bin/kw", token="t")
        )
        monkeypatch.setattr(WebServiceSupervisor, "process_matches", lambda self, state: True)

        class DeniedProcess:
            def __init__(self, pid):
                self.pid = pid

            def terminate(self):
                raise psutil.AccessDenied(self.pid)

        monkeypatch.setattr(psutil, "Process", DeniedProcess)

        with pytest.raises(ServiceStopError, match="Permission denied") as exc_info:
            supervisor.stop()
        assert exc_info.value.pid == 4242
        assert supervisor.state_path.exists()
