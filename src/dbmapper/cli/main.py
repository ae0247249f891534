"""Main CLI entry point for dbmapper."""

from pathlib import Path
from typing import Optional

import typer

from dbmapper.cli.commands import codegen, modify, schema
from dbmapper.cli.utils import configure_logging

app = typer.Typer(
    name="dbmapper",
    help="dbmapper - generate SQLAlchemy mappings from a live schema",
    add_completion=False,
    invoke_without_command=True,
)


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """
    dbmapper - generate SQLAlchemy mappings from a live schema
    """
    configure_logging(verbose)
    if ctx.invoked_subcommand is None:
        # No subcommand was invoked, show help
        print(ctx.get_help())
        raise typer.Exit(0)


app.command(name="generate")(codegen.generate)
app.command(name="tables")(schema.list_tables)
app.command(name="columns")(schema.list_columns)
app.command(name="types")(schema.list_types)
app.command(name="modify")(modify.modify)


@app.command()
def init(
    path: Optional[Path] = typer.Argument(
        None, help="Directory to initialize project in (default: current directory)"
    ),
    database_url: Optional[str] = typer.Option(
        None, "--database-url", "-u", help="SQLAlchemy URL to store in the config"
    ),
):
    """Initialize a new dbmapper project."""
    from dbmapper.config import Config

    project_path = path or Path.cwd()

    try:
        Config(project_path).init_project(database_url=database_url)
        typer.secho(
            f"✅ Initialized dbmapper project in {project_path}", fg=typer.colors.GREEN
        )
        if database_url:
            typer.secho(f"   Database: {database_url}", fg=typer.colors.CYAN)
    except FileExistsError:
        typer.secho(f"❌ Project already exists in {project_path}", fg=typer.colors.RED)
        raise typer.Exit(1)


@app.command()
def version():
    """Show dbmapper version."""
    from dbmapper import __version__

    typer.echo(f"dbmapper version {__version__}")


if __name__ == "__main__":
    app()
