#!/usr/bin/env python3
"""
Kittynode CLI
Install and operate Ethereum node packages in Docker, locally or on a remote
kittynode-web server.
"""

import logging

import click

from kittynode import __version__
from kittynode.commands import (
    config,
    docker,
    init,
    logs,
    package,
    reset,
    system_info,
    web,
)


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def cli(verbose: bool):
    """Kittynode CLI - Run Ethereum node packages in Docker."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


cli.add_command(package)
cli.add_command(config)
cli.add_command(docker)
cli.add_command(logs)
cli.add_command(system_info)
cli.add_command(init)
cli.add_command(reset)
cli.add_command(web)


def main():
    """Main entry point for the kittynode CLI."""
    cli()


if __name__ == "__main__":
    main()
