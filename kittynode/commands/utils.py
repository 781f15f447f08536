"""
Shared CLI helpers: consoles, output formatting and error reporting.
"""

import asyncio
import functools
import json
import sys
from typing import Any, Callable

import click
from rich.console import Console

from kittynode.commands.core_client import CoreClientManager
from kittynode.commands.errors import KittynodeError

console = Console()
err_console = Console(stderr=True)

format_option = click.option(
    "--format",
    "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    show_default=True,
    help="Output format.",
)


def run_async(coro):
    """Run a coroutine to completion from a synchronous click command."""
    return asyncio.run(coro)


def get_manager() -> CoreClientManager:
    return CoreClientManager()


def print_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2))


def fail(message: str) -> None:
    err_console.print(f"[red]✗ {message}[/red]")
    sys.exit(1)


def handle_errors(func: Callable) -> Callable:
    """Report engine and filesystem errors in red and exit non-zero."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except KittynodeError as e:
            fail(e.message)
        except OSError as e:
            fail(str(e))

    return wrapper
