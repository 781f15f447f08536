"""
Package commands - install, delete, stop, start and inspect packages.

    kittynode package catalog
    kittynode package install ethereum --network hoodi
    kittynode package delete ethereum --include-images
    kittynode package state ethereum
    kittynode package config-set ethereum validator_enabled=true
"""

from typing import Optional

import click
from rich import box
from rich.table import Table

from kittynode.commands.errors import ValidationError
from kittynode.commands.models import Package, PackageConfig
from kittynode.commands.utils import (
    console,
    format_option,
    get_manager,
    handle_errors,
    print_json,
    run_async,
)


def _package_table(title: str, packages: list[Package]) -> Table:
    table = Table(title=title, box=box.ROUNDED)
    table.add_column("Name", style="cyan")
    table.add_column("Description", style="white")
    table.add_column("Containers", style="green")
    for package in packages:
        table.add_row(
            package.name,
            package.description,
            ", ".join(c.name for c in package.containers) or "-",
        )
    return table


def parse_assignments(assignments: tuple[str, ...]) -> dict[str, str]:
    values = {}
    for item in assignments:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValidationError(
                f"Expected KEY=VALUE, got '{item}'", field="config", value=item
            )
        values[key.strip()] = value.strip()
    return values


@click.group(name="package")
def package():
    """Install and manage packages."""
    pass


@package.command(name="catalog")
@format_option
@handle_errors
def catalog(output_format: str):
    """List every package that can be installed."""
    packages = run_async(get_manager().client().get_package_catalog())
    if output_format == "json":
        print_json({name: p.to_dict() for name, p in packages.items()})
        return
    console.print(_package_table("Package Catalog", list(packages.values())))


@package.command(name="installed")
@format_option
@handle_errors
def installed(output_format: str):
    """List installed packages."""
    packages = run_async(get_manager().client().get_installed_packages())
    if output_format == "json":
        print_json([p.to_dict() for p in packages])
        return
    if not packages:
        console.print("[yellow]No packages installed[/yellow]")
        return
    console.print(_package_table("Installed Packages", packages))


@package.command(name="install")
@click.argument("name")
@click.option("--network", help="Network to run the package on (e.g. hoodi, mainnet).")
@handle_errors
def install(name: str, network: Optional[str]):
    """Install a package."""
    console.print(f"[cyan]Installing {name}...[/cyan]")
    run_async(get_manager().client().install_package(name, network))
    console.print(f"[green]✓ Package '{name}' installed[/green]")


@package.command(name="delete")
@click.argument("name")
@click.option("--include-images", is_flag=True, help="Also remove container images.")
@handle_errors
def delete(name: str, include_images: bool):
    """Delete a package and its data."""
    run_async(get_manager().client().delete_package(name, include_images))
    console.print(f"[green]✓ Package '{name}' deleted[/green]")


@package.command(name="stop")
@click.argument("name")
@handle_errors
def stop(name: str):
    """Stop a package's containers."""
    run_async(get_manager().client().stop_package(name))
    console.print(f"[green]✓ Package '{name}' stopped[/green]")


@package.command(name="start")
@click.argument("name")
@handle_errors
def start(name: str):
    """Start a package's stopped containers."""
    run_async(get_manager().client().start_package(name))
    console.print(f"[green]✓ Package '{name}' started[/green]")


@package.command(name="state")
@click.argument("name")
@format_option
@handle_errors
def state(name: str, output_format: str):
    """Show install and runtime state of a package."""
    package_state = run_async(get_manager().client().get_package(name))
    if output_format == "json":
        print_json(package_state.to_dict())
        return
    console.print(f"[bold]{name}[/bold]")
    console.print(f"  Install: {package_state.install.value}")
    console.print(f"  Runtime: {package_state.runtime.value}")
    console.print(f"  Config present: {'yes' if package_state.config_present else 'no'}")
    if package_state.missing_containers:
        console.print(
            f"  [yellow]Missing containers: "
            f"{', '.join(package_state.missing_containers)}[/yellow]"
        )


@package.command(name="config-show")
@click.argument("name")
@format_option
@handle_errors
def config_show(name: str, output_format: str):
    """Show a package's saved configuration."""
    config = run_async(get_manager().client().get_package_config(name))
    if output_format == "json":
        print_json(config.to_dict())
        return
    if not config.values:
        console.print(f"[yellow]No configuration saved for {name}[/yellow]")
        return
    for key, value in sorted(config.values.items()):
        console.print(f"{key} = {value}")


@package.command(name="config-set")
@click.argument("name")
@click.argument("assignments", nargs=-1, required=True)
@handle_errors
def config_set(name: str, assignments: tuple[str, ...]):
    """Merge KEY=VALUE pairs into a package's config and reapply it."""
    values = parse_assignments(assignments)
    run_async(
        get_manager().client().update_package_config(name, PackageConfig(values=values))
    )
    console.print(f"[green]✓ Updated configuration for '{name}'[/green]")
