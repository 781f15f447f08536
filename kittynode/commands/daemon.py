"""
Docker commands - check and start the local Docker daemon.
"""

from typing import Optional

import click

from kittynode.commands.docker_autostart import wait_until_reachable
from kittynode.commands.managers import DockerDriver
from kittynode.commands.utils import (
    console,
    fail,
    format_option,
    get_manager,
    handle_errors,
    print_json,
    run_async,
)


@click.group(name="docker")
def docker():
    """Check and start Docker."""
    pass


@docker.command(name="status")
@format_option
@handle_errors
def status(output_format: str):
    """Show whether Docker is reachable and what can be done."""
    state = run_async(get_manager().client().get_operational_state())
    if output_format == "json":
        print_json(state.to_dict())
        return
    if state.docker_running:
        console.print(f"[green]✓ Docker is running ({state.mode.value} mode)[/green]")
    else:
        console.print(f"[red]✗ Docker is not running ({state.mode.value} mode)[/red]")
    for line in state.diagnostics:
        console.print(f"[yellow]{line}[/yellow]")


@docker.command(name="start")
@click.option(
    "--wait",
    type=float,
    default=None,
    help="Wait up to this many seconds for Docker to answer.",
)
@handle_errors
def start(wait: Optional[float]):
    """Launch Docker Desktop."""
    run_async(get_manager().start_docker())
    console.print("[green]✓ Docker Desktop is starting[/green]")
    if wait is None:
        return
    if run_async(wait_until_reachable(DockerDriver(), wait)):
        console.print("[green]✓ Docker is running[/green]")
    else:
        fail(f"Docker did not become reachable within {wait:g} seconds")


@docker.command(name="start-if-needed")
@format_option
@handle_errors
def start_if_needed(output_format: str):
    """Launch Docker Desktop if auto-start is enabled and it is not running."""
    result = run_async(get_manager().client().start_docker_if_needed())
    if output_format == "json":
        print_json(result.value)
        return
    console.print(result.describe())
