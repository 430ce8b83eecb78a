import typer

from typing import List, Optional

from rich.console import Console
from rich.table import Table

from zebra_core import Workspace
from zebra_core.exceptions import ZebraError
from zebra_core.formatting import format_hours
from zebra_core.timesheets import (
    ReconcileAction, apply_merge, create_timesheet, merge_timesheets, timesheets_from_frames)

from zebra_cli.utils import resolve_activity, resolve_date, resolve_role

app = typer.Typer(help="Create, merge and sync timesheets.")

console = Console()

USER_ERRORS = (ZebraError, ValueError, KeyError)


def _get(ws: Workspace, uuid: str):
    timesheet = ws.timesheets.get(uuid)
    if timesheet is None:
        typer.echo(f"No timesheet found matching '{uuid}'.", err=True)
        raise typer.Exit(1)
    return timesheet


@app.command()
def create(ctx: typer.Context,
           activity: str = typer.Argument(..., help="Zebra activity alias, name or key"),
           time: float = typer.Argument(..., help="Hours, in quarter hour steps"),
           description: str = typer.Option("", "--description", "-d"),
           client_description: Optional[str] = typer.Option(None, "--client-description"),
           date: Optional[str] = typer.Option(None, "--date", help="Defaults to today"),
           role: Optional[str] = typer.Option(None, "--role", "-r"),
           individual: bool = typer.Option(False, "--individual", "-i"),
           do_not_sync: bool = typer.Option(False, "--do-not-sync", help="Never push this timesheet")):
    """
    Create a timesheet by hand.
    """
    try:
        ws: Workspace = ctx.obj
        target = resolve_activity(ws, activity)
        chosen_role = None
        if not individual:
            chosen_role = resolve_role(ws, role) or ws.roles.default_role()
            if chosen_role is None:
                typer.echo("No role given and no default role configured. Use --role or --individual.", err=True)
                raise typer.Exit(1)

        created = ws.timesheets.save(create_timesheet(
            target,
            resolve_date(ws, date),
            time,
            description=description,
            role=chosen_role,
            client_description=client_description,
            do_not_sync=do_not_sync,
        ))
        typer.echo(f"Created timesheet {created.uuid[:8]}: {format_hours(created.time)} on {created.date}.")
    except USER_ERRORS as e:
        typer.echo(f"Error creating timesheet: {e}", err=True)
        raise typer.Exit(1)


@app.command(name="list")  # To avoid conflict with list type
def list_timesheets(ctx: typer.Context,
                    date: Optional[str] = typer.Argument(None, help="Start of the range, defaults to today"),
                    to: Optional[str] = typer.Option(None, "--to", help="End of the range, defaults to the start")):
    """
    List local timesheets in a date range.
    """
    try:
        ws: Workspace = ctx.obj
        from_date = resolve_date(ws, date)
        to_date = resolve_date(ws, to) if to else from_date
        timesheets = ws.timesheets.get_by_date_range(from_date, to_date)

        table = Table(title=f"Timesheets {from_date}" + (f" to {to_date}" if to_date != from_date else ""))
        table.add_column("ID", style="dim")
        table.add_column("Date")
        table.add_column("Activity", style="cyan")
        table.add_column("Time", justify="right")
        table.add_column("Role")
        table.add_column("Description")
        table.add_column("Zebra", style="green")
        for t in timesheets:
            zebra = str(t.zebra_id) if t.zebra_id is not None else ("excluded" if t.do_not_sync else "-")
            table.add_row(t.uuid[:8], str(t.date), t.activity.display_name, format_hours(t.time),
                          t.role.name if t.role else "individual", t.description, zebra)
        console.print(table)
        typer.echo(f"Total: {format_hours(sum(t.time for t in timesheets))}")
    except USER_ERRORS as e:
        typer.echo(f"Error listing timesheets: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def merge(ctx: typer.Context, uuids: List[str] = typer.Argument(..., help="Two or more timesheet ids")):
    """
    Merge timesheets for the same activity and role into the first one.
    """
    try:
        ws: Workspace = ctx.obj
        result = merge_timesheets([_get(ws, uuid) for uuid in uuids])
        if result.was_synced:
            typer.echo("Warning: some of the merged timesheets were already pushed to Zebra. "
                       "Delete them there and push the merged timesheet again.", err=True)
        merged = apply_merge(result, ws.timesheets)
        typer.echo(f"Merged {len(uuids)} timesheets into {merged.uuid[:8]} ({format_hours(merged.time)}).")
    except USER_ERRORS as e:
        typer.echo(f"Error merging timesheets: {e}", err=True)
        raise typer.Exit(1)


@app.command(name="from-frames")
def from_frames(ctx: typer.Context,
                date: Optional[str] = typer.Argument(None, help="Defaults to today"),
                dry_run: bool = typer.Option(False, "--dry-run", help="Show what would change")):
    """
    Create timesheets from the frames recorded on a day.
    """
    try:
        ws: Workspace = ctx.obj
        day = resolve_date(ws, date)
        results = timesheets_from_frames(ws.frames, ws.timesheets, day,
                                         ws.config.zebra_timezone, dry_run=dry_run)
        prefix = "Would" if dry_run else "Did"
        for result in results:
            t = result.timesheet
            label = f"{t.activity.display_name} {format_hours(t.time)} \"{t.description}\""
            if result.action == ReconcileAction.SKIP:
                typer.echo(f"Skipped duplicate {label} (already in {t.uuid[:8]}).")
            elif result.action == ReconcileAction.UPDATE:
                typer.echo(f"{prefix} add {len(result.new_frame_uuids)} frame(s) to {t.uuid[:8]}: {label}")
            else:
                typer.echo(f"{prefix} create {t.uuid[:8]}: {label}")
        if not results:
            typer.echo(f"No Zebra frames recorded on {day}.")
    except USER_ERRORS as e:
        typer.echo(f"Error creating timesheets from frames: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def push(ctx: typer.Context,
         uuids: Optional[List[str]] = typer.Argument(None, help="Timesheets to push, default all for the date"),
         date: Optional[str] = typer.Option(None, "--date", help="Defaults to today")):
    """
    Push local timesheets to Zebra.
    """
    try:
        ws: Workspace = ctx.obj
        if uuids:
            timesheets = [_get(ws, uuid) for uuid in uuids]
        else:
            day = resolve_date(ws, date)
            timesheets = ws.timesheets.get_by_date_range(day, day)

        report = ws.sync.push_many(timesheets)
        for pushed in report.pushed:
            typer.echo(f"Pushed {pushed.uuid[:8]} as Zebra timesheet {pushed.zebra_id}.")
        for conflict in report.conflicts:
            typer.echo(f"Skipped {conflict.timesheet_uuid[:8]}: remote timesheet is newer.")
        for excluded in report.excluded:
            typer.echo(f"Skipped {excluded.uuid[:8]}: marked as do not sync.")
        for uuid, message in report.failures.items():
            typer.echo(f"Failed to push {uuid[:8]}: {message}", err=True)
        if not report.ok:
            raise typer.Exit(1)
    except USER_ERRORS as e:
        typer.echo(f"Error pushing timesheets: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def pull(ctx: typer.Context,
         date: Optional[str] = typer.Argument(None, help="Start of the range, defaults to today"),
         to: Optional[str] = typer.Option(None, "--to", help="End of the range, defaults to the start")):
    """
    Pull timesheets from Zebra into local storage.
    """
    try:
        ws: Workspace = ctx.obj
        from_date = resolve_date(ws, date)
        to_date = resolve_date(ws, to) if to else from_date
        report = ws.sync.pull_from_zebra(from_date, to_date)
        typer.echo(f"Pulled {len(report.created)} new and {len(report.updated)} updated timesheet(s).")
    except USER_ERRORS as e:
        typer.echo(f"Error pulling timesheets: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def delete(ctx: typer.Context,
           uuid: str = typer.Argument(...),
           yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask before deleting on Zebra")):
    """
    Delete a timesheet, on Zebra too if it was pushed.
    """
    try:
        ws: Workspace = ctx.obj
        target = _get(ws, uuid)

        def confirm(zebra_id: int) -> bool:
            return yes or typer.confirm(f"Also delete Zebra timesheet {zebra_id}?")

        if target.zebra_id is None:
            ws.timesheets.remove(target.uuid)
            deleted = True
        else:
            deleted = ws.sync.delete(target, confirm)
        if deleted:
            typer.echo(f"Deleted timesheet {target.uuid[:8]}.")
        else:
            typer.echo("Nothing deleted.")
    except USER_ERRORS as e:
        typer.echo(f"Error deleting timesheet: {e}", err=True)
        raise typer.Exit(1)
