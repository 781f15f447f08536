"""
Host commands - hardware summary, first-run init and full reset.
"""

import click
from rich import box
from rich.table import Table

from kittynode.commands.utils import (
    console,
    format_option,
    get_manager,
    handle_errors,
    print_json,
    run_async,
)


@click.command(name="system-info")
@format_option
@handle_errors
def system_info(output_format: str):
    """Show processor, memory and disk information."""
    info = run_async(get_manager().client().get_system_info())
    if output_format == "json":
        print_json(info.to_dict())
        return

    processor = info.processor
    console.print(
        f"[bold]Processor:[/bold] {processor.name} ({processor.cores} cores, "
        f"{processor.frequency_ghz:.2f} GHz, {processor.architecture})"
    )
    console.print(f"[bold]Memory:[/bold] {info.memory.total_display}")

    table = Table(title="Disks", box=box.ROUNDED)
    table.add_column("Name", style="cyan")
    table.add_column("Mount", style="blue")
    table.add_column("Type", style="white")
    table.add_column("Total", style="green")
    table.add_column("Used", style="yellow")
    table.add_column("Available", style="green")
    for disk in info.disks:
        table.add_row(
            disk.name,
            disk.mount_point,
            disk.disk_type,
            disk.total_display,
            disk.used_display,
            disk.available_display,
        )
    console.print(table)


@click.command(name="init")
@handle_errors
def init():
    """Write a fresh default configuration."""
    run_async(get_manager().client().init_kittynode())
    console.print("[green]✓ Kittynode initialized[/green]")


@click.command(name="reset")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
@handle_errors
def reset(yes: bool):
    """Delete all kittynode data."""
    if not yes and not click.confirm(
        "This deletes all kittynode data. Continue?", default=False
    ):
        console.print("[yellow]Reset cancelled[/yellow]")
        return
    run_async(get_manager().client().delete_kittynode())
    console.print("[green]✓ Kittynode data deleted[/green]")
