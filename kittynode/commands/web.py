"""
Web commands - run the HTTP API in the background or in the foreground.

``kittynode web start`` spawns ``kittynode web serve`` as a detached child
and tracks it; these commands always act on this machine.
"""

import sys
from collections import deque
from typing import Optional

import click

from kittynode.commands import api
from kittynode.commands.constants import DEFAULT_WEB_PORT
from kittynode.commands.server import run_server
from kittynode.commands.utils import console, format_option, handle_errors, print_json
from kittynode.commands.web_service import validate_web_port

SERVE_ARGS = ["-m", "kittynode.cli", "web", "serve"]


def _report(status, output_format: str) -> None:
    if output_format == "json":
        print_json(status.to_dict())
    else:
        console.print(status.describe())


@click.group(name="web")
def web():
    """Manage the kittynode-web HTTP service."""
    pass


@web.command(name="start")
@click.option("--port", type=int, help=f"Port to listen on (default {DEFAULT_WEB_PORT}).")
@format_option
@handle_errors
def start(port: Optional[int], output_format: str):
    """Start the web service in the background."""
    _report(api.start_web_service(port, sys.executable, SERVE_ARGS), output_format)


@web.command(name="stop")
@format_option
@handle_errors
def stop(output_format: str):
    """Stop the background web service."""
    _report(api.stop_web_service(), output_format)


@web.command(name="status")
@format_option
@handle_errors
def status(output_format: str):
    """Show whether the background web service is running."""
    _report(api.get_web_service_status(), output_format)


@web.command(name="logs")
@click.option("--tail", type=int, help="Only show the last N lines.")
@handle_errors
def logs(tail: Optional[int]):
    """Print the background web service log."""
    path = api.get_web_service_log_path()
    with open(path, encoding="utf-8", errors="replace") as f:
        lines = deque(f, maxlen=tail) if tail else f.readlines()
    for line in lines:
        click.echo(line, nl=False)


@web.command(name="serve")
@click.option("--port", type=int, default=DEFAULT_WEB_PORT, show_default=True)
@click.option("--service-token", help="Token identifying a supervised instance.")
@handle_errors
def serve(port: int, service_token: Optional[str]):
    """Serve the HTTP API in the foreground."""
    run_server(validate_web_port(port), service_token)
