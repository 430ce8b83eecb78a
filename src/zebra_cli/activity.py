import typer

from typing import Optional

from rich.console import Console
from rich.table import Table

from zebra_core import EntityKey, Workspace
from zebra_core.exceptions import ZebraError

from zebra_cli.utils import resolve_activity

app = typer.Typer(help="List and manage activities.")

console = Console()


@app.command(name="list")
def list_activities(ctx: typer.Context,
                    search: Optional[str] = typer.Option(None, "--search", "-s",
                                                         help="Filter by alias or name")):
    """
    List the activities of active local and Zebra projects.
    """
    try:
        ws: Workspace = ctx.obj
        activities = ws.activities.search_by_name_or_alias(search) if search else ws.activities.all()

        table = Table(title="Activities")
        table.add_column("Alias", style="cyan")
        table.add_column("Name")
        table.add_column("Project")
        table.add_column("Key", style="dim")
        for a in activities:
            project = ws.projects.get(a.project_key)
            table.add_row(a.alias or "", a.name, project.name if project else "", str(a.entity_key))
        console.print(table)
    except (ZebraError, ValueError) as e:
        typer.echo(f"Error listing activities: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def create(ctx: typer.Context,
           project: str = typer.Argument(..., help="Local project name or key"),
           name: str = typer.Argument(...),
           alias: Optional[str] = typer.Option(None, "--alias", "-a", help="Defaults to a slug of the name"),
           description: str = typer.Option("", "--description", "-d")):
    """
    Create a local activity in a local project.
    """
    try:
        ws: Workspace = ctx.obj
        if project.startswith(("local:", "zebra:")):
            project_key = EntityKey.parse(project)
        else:
            matches = ws.projects.local.get_by_name_like(project)
            if len(matches) != 1:
                typer.echo(f"Expected one local project matching '{project}', found {len(matches)}.", err=True)
                raise typer.Exit(1)
            project_key = matches[0].entity_key

        created = ws.activities.create(project_key, name, description, alias)
        typer.echo(f"Created activity {created.alias} ({created.entity_key}).")
    except (ZebraError, ValueError, KeyError) as e:
        typer.echo(f"Error creating activity: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def delete(ctx: typer.Context,
           activity: str = typer.Argument(..., help="Local activity alias or key"),
           force: bool = typer.Option(False, "--force", "-f", help="Delete even if frames use it")):
    """
    Delete a local activity.
    """
    try:
        ws: Workspace = ctx.obj
        target = resolve_activity(ws, activity)
        ws.activities.delete(target.entity_key, force=force)
        typer.echo(f"Deleted activity {target.display_name}.")
    except (ZebraError, ValueError, KeyError) as e:
        typer.echo(f"Error deleting activity: {e}", err=True)
        raise typer.Exit(1)
