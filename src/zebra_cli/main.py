import typer
import humanize
import pendulum

from typing import List, Optional

from rich.console import Console
from rich.table import Table

import zebra_core
from zebra_core import FileSystem, Workspace
from zebra_core.exceptions import ZebraError
from zebra_core.formatting import format_elapsed
from zebra_core.timesheets import day_bounds

from zebra_cli import activity, project, timesheet
from zebra_cli.utils import (
    configure_logging, edit_file, resolve_activity, resolve_date, resolve_role, resolve_time)

cli = typer.Typer(help="Track work time and keep timesheets in sync with Zebra.")

cli.add_typer(timesheet.app, name="timesheet")
cli.add_typer(activity.app, name="activity")
cli.add_typer(project.app, name="project")

console = Console()

USER_ERRORS = (ZebraError, ValueError, KeyError, FileNotFoundError)


@cli.callback()
def main(ctx: typer.Context,
         verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging.")):
    configure_logging("DEBUG" if verbose else "WARNING")
    # init creates the data directory, so it runs without a workspace
    if ctx.invoked_subcommand == "init":
        ctx.obj = None
        return
    try:
        ctx.obj = Workspace()
    except FileNotFoundError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    if not verbose:
        configure_logging(ctx.obj.config.log_level)


@cli.command()
def init(ctx: typer.Context):
    """
    Initialise the zebra data directory ($ZEBRA_DIR or ~/.zebra).
    """
    fs = FileSystem()
    try:
        fs.initialise()
    except FileExistsError as e:
        typer.echo(f"Failed to initialise: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"Initialised zebra data directory at {fs.ROOT}.")


@cli.command()
def config(ctx: typer.Context):
    """
    Edit the zebra configuration in your preferred editor.
    """
    ws: Workspace = ctx.obj
    if edit_file(ws.fs.CONFIG_PATH):
        typer.echo("Configuration file was updated.")
    else:
        typer.echo("No changes detected.")


@cli.command()
def status(ctx: typer.Context):
    """
    Show what is being tracked right now.
    """
    try:
        ws: Workspace = ctx.obj
        typer.echo(f"Data directory: {ws.fs.ROOT}")
        typer.echo(f"zebra version: {zebra_core.version()}")

        start, end = day_bounds(ws.today(), ws.config.timezone.name)
        total = sum((f.duration() for f in ws.frames.get_by_date_range(start, end)), pendulum.duration())
        typer.echo(f"Total recorded time for today: {humanize.precisedelta(total, minimum_unit='minutes')}")

        current = ws.track.get_current()
        if current:
            elapsed = format_elapsed(current.start_time, ws.now())
            line = f"Working on {current.activity.display_name}"
            if current.description:
                line += f" (\"{current.description}\")"
            typer.echo(f"{line} for {elapsed}, started {current.start_time.in_timezone(ws.config.timezone).format('HH:mm')}")
        else:
            typer.echo("Not currently working on anything.")
    except USER_ERRORS as e:
        typer.echo(f"Error getting status: {e}", err=True)
        raise typer.Exit(1)


@cli.command()
def start(ctx: typer.Context,
          activity: str = typer.Argument(..., help="Activity alias, name or key"),
          description: Optional[List[str]] = typer.Argument(None, help="What you are working on"),
          at: Optional[str] = typer.Option(None, "--at", help="Start time, defaults to now"),
          no_gap: bool = typer.Option(False, "--no-gap", help="Start where the previous frame stopped"),
          role: Optional[str] = typer.Option(None, "--role", "-r", help="Role id or name"),
          individual: bool = typer.Option(False, "--individual", "-i", help="Individual action, no role"),
          force: bool = typer.Option(False, "--force", "-f", help="Stop the running frame first")):
    """
    Start tracking a new frame.
    """
    try:
        ws: Workspace = ctx.obj
        target = resolve_activity(ws, activity)
        start_time = resolve_time(ws, at)

        if force and ws.track.is_started():
            stopped = ws.track.stop(start_time)
            typer.echo(f"Stopped {stopped.activity.display_name} after "
                       f"{format_elapsed(stopped.start_time, stopped.stop_time)}.")

        frame = ws.track.start(
            target,
            description=" ".join(description or []),
            at=start_time,
            with_gap=not no_gap,
            is_individual=individual,
            role=resolve_role(ws, role),
        )
        typer.echo(f"Started {target.display_name} at "
                   f"{frame.start_time.in_timezone(ws.config.timezone).format('HH:mm')}.")
    except USER_ERRORS as e:
        typer.echo(f"Error starting frame: {e}", err=True)
        raise typer.Exit(1)


@cli.command()
def stop(ctx: typer.Context,
         at: Optional[str] = typer.Option(None, "--at", help="Stop time, defaults to now")):
    """
    Stop the running frame.
    """
    try:
        ws: Workspace = ctx.obj
        frame = ws.track.stop(resolve_time(ws, at))
        typer.echo(f"Stopped {frame.activity.display_name} after "
                   f"{format_elapsed(frame.start_time, frame.stop_time)}.")
    except USER_ERRORS as e:
        typer.echo(f"Error stopping frame: {e}", err=True)
        raise typer.Exit(1)


@cli.command()
def cancel(ctx: typer.Context):
    """
    Discard the running frame without recording it.
    """
    try:
        ws: Workspace = ctx.obj
        frame = ws.track.cancel()
        typer.echo(f"Cancelled {frame.activity.display_name}, started "
                   f"{frame.start_time.in_timezone(ws.config.timezone).format('HH:mm')}.")
    except USER_ERRORS as e:
        typer.echo(f"Error cancelling frame: {e}", err=True)
        raise typer.Exit(1)


@cli.command()
def add(ctx: typer.Context,
        activity: str = typer.Argument(..., help="Activity alias, name or key"),
        description: Optional[List[str]] = typer.Argument(None),
        from_: str = typer.Option(..., "--from", help="Start time"),
        to: str = typer.Option(..., "--to", help="Stop time"),
        role: Optional[str] = typer.Option(None, "--role", "-r"),
        individual: bool = typer.Option(False, "--individual", "-i")):
    """
    Record a frame that has already finished.
    """
    try:
        ws: Workspace = ctx.obj
        frame = ws.track.add(
            resolve_activity(ws, activity),
            resolve_time(ws, from_),
            resolve_time(ws, to),
            description=" ".join(description or []),
            is_individual=individual,
            role=resolve_role(ws, role),
        )
        typer.echo(f"Added {frame.activity.display_name} "
                   f"({format_elapsed(frame.start_time, frame.stop_time)}), frame {frame.uuid[:8]}.")
    except USER_ERRORS as e:
        typer.echo(f"Error adding frame: {e}", err=True)
        raise typer.Exit(1)


@cli.command()
def frames(ctx: typer.Context, date: str = typer.Argument(None)):
    """
    List the frames recorded on a day, defaulting to today.
    """
    try:
        ws: Workspace = ctx.obj
        day = resolve_date(ws, date)
        start, end = day_bounds(day, ws.config.timezone.name)
        recorded = ws.frames.get_by_date_range(start, end)

        table = Table(title=f"Frames for {day}")
        table.add_column("ID", style="dim")
        table.add_column("Start")
        table.add_column("Stop")
        table.add_column("Duration", justify="right")
        table.add_column("Activity", style="cyan")
        table.add_column("Role")
        table.add_column("Description")
        for frame in recorded:
            table.add_row(
                frame.uuid[:8],
                frame.start_time.in_timezone(ws.config.timezone).format("HH:mm"),
                frame.stop_time.in_timezone(ws.config.timezone).format("HH:mm"),
                format_elapsed(frame.start_time, frame.stop_time),
                frame.activity.display_name,
                frame.role.name if frame.role else "individual",
                frame.description,
            )
        console.print(table)
        if not recorded:
            typer.echo("No frames recorded.")
    except USER_ERRORS as e:
        typer.echo(f"Error listing frames: {e}", err=True)
        raise typer.Exit(1)


@cli.command()
def roles(ctx: typer.Context,
          refresh: bool = typer.Option(False, "--refresh", help="Reload roles from Zebra")):
    """
    List the roles of the configured Zebra user.
    """
    try:
        ws: Workspace = ctx.obj
        available = ws.roles.refresh() if refresh else ws.roles.all()
        table = Table(title="Roles")
        table.add_column("ID", style="cyan")
        table.add_column("Name")
        table.add_column("Full name", style="dim")
        for role in available:
            marker = " (default)" if role.id == ws.config.default_role_id else ""
            table.add_row(str(role.id), role.name + marker, role.full_name)
        console.print(table)
    except USER_ERRORS as e:
        typer.echo(f"Error listing roles: {e}", err=True)
        raise typer.Exit(1)


@cli.command()
def refresh(ctx: typer.Context):
    """
    Reload projects, activities and roles from Zebra.
    """
    try:
        ws: Workspace = ctx.obj
        projects = ws.projects.zebra.refresh()
        typer.echo(f"Loaded {len(projects)} projects from Zebra.")
        if ws.config.user_id is not None:
            typer.echo(f"Loaded {len(ws.roles.refresh())} roles.")
    except USER_ERRORS as e:
        typer.echo(f"Error refreshing from Zebra: {e}", err=True)
        raise typer.Exit(1)
