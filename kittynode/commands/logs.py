"""
Logs command - print a package container's logs.
"""

from typing import Optional

import click

from kittynode.commands.utils import (
    format_option,
    get_manager,
    handle_errors,
    print_json,
    run_async,
)


@click.command(name="logs")
@click.argument("container")
@click.option("--tail", type=int, help="Only show the last N lines.")
@format_option
@handle_errors
def logs(container: str, tail: Optional[int], output_format: str):
    """Show logs of a container (e.g. reth-node, lighthouse-node)."""
    lines = run_async(get_manager().client().get_container_logs(container, tail))
    if output_format == "json":
        print_json(lines)
        return
    for line in lines:
        click.echo(line, nl=not line.endswith("\n"))
