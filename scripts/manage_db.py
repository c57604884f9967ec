#!/usr/bin/env python3
"""Database management utility for the cat locator.

Wraps Alembic migrations and provides device provisioning commands for
the devices table, which the service itself only reads.
"""

import asyncio
import sys
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy import text

# Add src to path so the script also runs from a plain checkout
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from catlocator.config.devices import load_device_assignments
from catlocator.config.settings import Settings
from catlocator.domain.exceptions import CatLocatorDomainException
from catlocator.domain.models import RoomAssignment
from catlocator.infrastructure.database.connection import (
    close_database_engine,
    get_async_session,
)
from catlocator.infrastructure.database.repositories import (
    DeviceRepository,
    PositionRepository,
    ReadingRepository,
)

app = typer.Typer(help="Database management utility for the cat locator")
console = Console()


def run_alembic_command(command: str) -> int:
    """Run an Alembic command and return exit code."""
    import subprocess

    try:
        result = subprocess.run(
            f"alembic {command}",
            shell=True,
            check=True,
            capture_output=True,
            text=True,
        )
        console.print(result.stdout)
        return 0
    except subprocess.CalledProcessError as e:
        console.print(f"[red]Error running alembic {command}:[/red]")
        console.print(e.stderr)
        return e.returncode


def run_database_task(coro) -> None:
    """Run an async database task, reporting domain errors and closing the engine."""
    async def _run():
        try:
            await coro
        finally:
            await close_database_engine()

    try:
        asyncio.run(_run())
    except CatLocatorDomainException as e:
        console.print(f"[red]✗ {e.message}[/red]")
        raise typer.Exit(1)


@app.command()
def init(
    drop_existing: bool = typer.Option(
        False, "--drop", help="Drop existing tables first"
    )
):
    """Initialize database schema using Alembic migrations."""
    if drop_existing:
        console.print("[yellow]Dropping existing tables...[/yellow]")
        run_alembic_command("downgrade base")

    console.print("[blue]Running database migrations...[/blue]")
    exit_code = run_alembic_command("upgrade head")

    if exit_code == 0:
        console.print("[green]✓ Database initialized successfully![/green]")
    else:
        console.print("[red]✗ Database initialization failed![/red]")
        raise typer.Exit(exit_code)


@app.command()
def migrate():
    """Run pending database migrations."""
    console.print("[blue]Running pending migrations...[/blue]")
    exit_code = run_alembic_command("upgrade head")

    if exit_code == 0:
        console.print("[green]✓ Migrations completed successfully![/green]")
    else:
        console.print("[red]✗ Migration failed![/red]")
        raise typer.Exit(exit_code)


@app.command()
def rollback(
    revision: str = typer.Option(
        "-1", help="Revision to rollback to (default: previous)"
    )
):
    """Rollback database migrations."""
    console.print(f"[yellow]Rolling back to revision: {revision}[/yellow]")
    exit_code = run_alembic_command(f"downgrade {revision}")

    if exit_code == 0:
        console.print("[green]✓ Rollback completed successfully![/green]")
    else:
        console.print("[red]✗ Rollback failed![/red]")
        raise typer.Exit(exit_code)


@app.command()
def current():
    """Show current database revision."""
    console.print("[blue]Current database revision:[/blue]")
    exit_code = run_alembic_command("current")
    if exit_code != 0:
        raise typer.Exit(exit_code)


@app.command()
def history():
    """Show migration history."""
    console.print("[blue]Migration history:[/blue]")
    exit_code = run_alembic_command("history")
    if exit_code != 0:
        raise typer.Exit(exit_code)


@app.command()
def test_connection():
    """Test database connection."""
    async def _test():
        async with get_async_session() as session:
            await session.execute(text("SELECT 1"))
        console.print("[green]✓ Connection successful![/green]")

    run_database_task(_test())


@app.command()
def add_device(
    device_id: str = typer.Argument(..., help="Device MAC address"),
    room: str = typer.Argument(..., help="Room the device is placed in"),
):
    """Assign a device to a room, replacing any previous assignment."""
    async def _add():
        async with get_async_session() as session:
            await DeviceRepository(session).save(RoomAssignment(device_id=device_id, room=room))
            await session.commit()
        console.print(f"[green]✓ {device_id} -> {room}[/green]")

    run_database_task(_add())


@app.command()
def remove_device(device_id: str = typer.Argument(..., help="Device MAC address")):
    """Remove a device assignment."""
    async def _remove():
        async with get_async_session() as session:
            removed = await DeviceRepository(session).remove(device_id)
            await session.commit()
        if removed:
            console.print(f"[green]✓ Removed {device_id}[/green]")
        else:
            console.print(f"[yellow]{device_id} was not assigned[/yellow]")

    run_database_task(_remove())


@app.command()
def list_devices():
    """List device assignments."""
    async def _list():
        async with get_async_session() as session:
            assignments = await DeviceRepository(session).list_all()

        if not assignments:
            console.print("[yellow]No devices assigned[/yellow]")
            return

        table = Table()
        table.add_column("Device", style="cyan")
        table.add_column("Room", style="magenta")
        for assignment in assignments:
            table.add_row(assignment.device_id, assignment.room)
        console.print(table)

        rooms = {assignment.room for assignment in assignments}
        room_count = Settings().room_count
        if len(rooms) != room_count:
            console.print(
                f"[yellow]{len(rooms)} rooms have devices but ROOM_COUNT is {room_count}[/yellow]"
            )

    run_database_task(_list())


@app.command()
def seed_devices(
    config_path: Path = typer.Argument(..., help="YAML file with rooms and their devices")
):
    """Load device assignments from a YAML provisioning file."""
    async def _seed():
        assignments = load_device_assignments(config_path)
        async with get_async_session() as session:
            repository = DeviceRepository(session)
            for assignment in assignments:
                await repository.save(assignment)
            await session.commit()
        console.print(f"[green]✓ Seeded {len(assignments)} devices[/green]")

    run_database_task(_seed())


@app.command()
def status():
    """Show the last known room and the stored reading batches."""
    async def _status():
        async with get_async_session() as session:
            position = await PositionRepository(session).get_current()
            counts = await ReadingRepository(session).count_by_room()
            averages = await ReadingRepository(session).get_room_averages()

        console.print(f"Last known room: [cyan]{position.room if position else '-'}[/cyan]")

        table = Table()
        table.add_column("Room", style="cyan")
        table.add_column("Readings", style="magenta")
        table.add_column("Average signal", style="green")
        for average in averages:
            shown = "no signal" if average.average_signal is None else f"{average.average_signal:.1f}"
            table.add_row(average.room, str(counts.get(average.room, 0)), shown)
        console.print(table)

    run_database_task(_status())


@app.command()
def reset():
    """Reset database - drop all tables and run migrations."""
    confirm = typer.confirm("This will destroy all data. Are you sure?")
    if not confirm:
        console.print("[yellow]Cancelled[/yellow]")
        return

    console.print("[red]Resetting database...[/red]")

    exit_code = run_alembic_command("downgrade base")
    if exit_code != 0:
        console.print("[red]Failed to downgrade[/red]")
        raise typer.Exit(exit_code)

    exit_code = run_alembic_command("upgrade head")
    if exit_code == 0:
        console.print("[green]✓ Database reset successfully![/green]")
    else:
        console.print("[red]✗ Database reset failed![/red]")
        raise typer.Exit(exit_code)


if __name__ == "__main__":
    app()
