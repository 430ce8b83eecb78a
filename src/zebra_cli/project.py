import typer

from rich.console import Console
from rich.table import Table

from zebra_core import Workspace
from zebra_core.exceptions import ZebraError
from zebra_core.models import ProjectStatus

app = typer.Typer(help="List and create projects.")

console = Console()


@app.command(name="list")
def list_projects(ctx: typer.Context,
                  all_statuses: bool = typer.Option(False, "--all", help="Include inactive projects")):
    try:
        ws: Workspace = ctx.obj
        statuses = None if all_statuses else [ProjectStatus.ACTIVE]

        table = Table(title="Projects")
        table.add_column("Name", style="cyan")
        table.add_column("Status")
        table.add_column("Activities", justify="right")
        table.add_column("Key", style="dim")
        for p in ws.projects.all(statuses):
            table.add_row(p.name, p.status.name.lower(), str(len(p.activities)), str(p.entity_key))
        console.print(table)
    except (ZebraError, ValueError) as e:
        typer.echo(f"Error listing projects: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def create(ctx: typer.Context,
           name: str = typer.Argument(...),
           description: str = typer.Option("", "--description", "-d")):
    """
    Create a local project for activities that are not tracked in Zebra.
    """
    ws: Workspace = ctx.obj
    created = ws.projects.create(name, description)
    typer.echo(f"Created project {created.name} ({created.entity_key}).")
