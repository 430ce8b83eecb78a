import logging
import os
import subprocess
import dateparser
import pendulum
import typer
from datetime import datetime, date, time

from pathlib import Path
from rich.logging import RichHandler

from zebra_core import Workspace
from zebra_core.models import Activity, Role


def configure_logging(level: str = "WARNING") -> None:
    """
    Send log records to stderr through rich. Safe to call more than once.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)
    root.addHandler(RichHandler(show_path=False, markup=False, rich_tracebacks=False))
    root.setLevel(level.upper())


def edit_file(path: Path) -> bool:
    """
    Open a file in the user's preferred editor and check if it was modified.
    If the file was modified, return True. Otherwise, return False.
    """
    editor = os.getenv("EDITOR", "vim")

    pre_edit = path.read_text()
    subprocess.run([editor, str(path)], check=True)
    post_edit = path.read_text()

    # Editors like vim append a trailing newline on save; only report
    # semantic changes.
    return pre_edit.strip() != post_edit.strip()


def resolve_natural_date(today: date, arg: str | None) -> date:
    """
    Parse a natural-language date string and return a datetime.date.
    Examples: "today", "yesterday", "last monday", "2025-08-03".
    """
    if arg is None or arg.strip().lower() == "today":
        return today

    dt = dateparser.parse(
        arg,
        settings={
            "PREFER_DATES_FROM": "past",
            "RELATIVE_BASE": datetime.combine(today, time.min),
            "RETURN_AS_TIMEZONE_AWARE": False,
        },
    )
    if dt is None:
        raise ValueError(f"Invalid date string: {arg}")

    return dt.date()


def resolve_date(ws: Workspace, arg: str | None) -> pendulum.Date:
    resolved = resolve_natural_date(ws.today(), arg)
    return pendulum.date(resolved.year, resolved.month, resolved.day)


def resolve_time(ws: Workspace, arg: str | None) -> pendulum.DateTime | None:
    """
    Parse a time such as "09:30", "20 minutes ago" or "2025-08-03 14:00" in
    the configured timezone. None stays None, meaning "now".
    """
    if arg is None:
        return None
    dt = dateparser.parse(
        arg,
        settings={
            "PREFER_DATES_FROM": "past",
            "RELATIVE_BASE": ws.now().naive(),
            "RETURN_AS_TIMEZONE_AWARE": False,
        },
    )
    if dt is None:
        raise ValueError(f"Invalid time string: {arg}")
    return pendulum.instance(dt, tz=ws.config.timezone)


def resolve_activity(ws: Workspace, reference: str) -> Activity:
    activity = ws.activities.resolve(reference)
    if activity is None:
        typer.echo(f"No activity found matching '{reference}'.", err=True)
        raise typer.Exit(1)
    return activity


def resolve_role(ws: Workspace, reference: str | None) -> Role | None:
    if reference is None:
        return None
    role = ws.roles.resolve(reference)
    if role is None:
        typer.echo(f"No role found matching '{reference}'.", err=True)
        raise typer.Exit(1)
    return role
