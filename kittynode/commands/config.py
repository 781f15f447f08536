"""
Config commands - capabilities, remote server and desktop preferences.
"""

import click

from kittynode.commands.utils import (
    console,
    format_option,
    get_manager,
    handle_errors,
    print_json,
    run_async,
)


@click.group(name="config")
def config():
    """View and change kittynode settings."""
    pass


@config.command(name="show")
@format_option
@handle_errors
def show(output_format: str):
    """Show the global configuration."""
    current = run_async(get_manager().client().get_config())
    if output_format == "json":
        print_json(current.to_dict())
        return
    for key, value in current.to_dict().items():
        if isinstance(value, list):
            value = ", ".join(value) or "-"
        console.print(f"[cyan]{key}[/cyan]: {value}")


@config.command(name="capabilities")
@format_option
@handle_errors
def capabilities(output_format: str):
    """List enabled capabilities."""
    names = run_async(get_manager().client().get_capabilities())
    if output_format == "json":
        print_json(names)
        return
    if not names:
        console.print("[yellow]No capabilities enabled[/yellow]")
        return
    for name in names:
        console.print(f"- {name}")


@config.command(name="add-capability")
@click.argument("name")
@handle_errors
def add_capability(name: str):
    """Enable a capability."""
    run_async(get_manager().client().add_capability(name))
    console.print(f"[green]✓ Added capability '{name}'[/green]")


@config.command(name="remove-capability")
@click.argument("name")
@handle_errors
def remove_capability(name: str):
    """Disable a capability."""
    run_async(get_manager().client().remove_capability(name))
    console.print(f"[green]✓ Removed capability '{name}'[/green]")


@config.command(name="set-server")
@click.argument("url", default="")
@handle_errors
def set_server(url: str):
    """Point the CLI at a remote kittynode-web; an empty URL returns to local mode."""
    manager = get_manager()
    manager.set_server_url(url)
    if url.strip():
        console.print(f"[green]✓ Using remote server {url.strip()}[/green]")
    else:
        console.print("[green]✓ Using local mode[/green]")


@config.command(name="get-server")
@format_option
@handle_errors
def get_server(output_format: str):
    """Show the configured remote server."""
    url = get_manager().get_server_url()
    if output_format == "json":
        print_json({"server_url": url})
        return
    console.print(url or "[yellow]No remote server configured (local mode)[/yellow]")


@config.command(name="set-auto-start-docker")
@click.argument("enabled", type=click.BOOL)
@handle_errors
def set_auto_start_docker(enabled: bool):
    """Start Docker Desktop automatically when it is not running."""
    get_manager().set_auto_start_docker(enabled)
    console.print(f"[green]✓ auto_start_docker = {str(enabled).lower()}[/green]")


@config.command(name="set-show-tray-icon")
@click.argument("enabled", type=click.BOOL)
@handle_errors
def set_show_tray_icon(enabled: bool):
    """Show or hide the desktop tray icon."""
    get_manager().set_show_tray_icon(enabled)
    console.print(f"[green]✓ show_tray_icon = {str(enabled).lower()}[/green]")


@config.command(name="set-onboarding-completed")
@click.argument("completed", type=click.BOOL)
@handle_errors
def set_onboarding_completed(completed: bool):
    """Record whether onboarding has been completed."""
    get_manager().set_onboarding_completed(completed)
    console.print(f"[green]✓ onboarding_completed = {str(completed).lower()}[/green]")
