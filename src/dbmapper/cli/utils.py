"""Utility functions for CLI commands."""

import logging
import os
from pathlib import Path
from typing import Optional, Tuple

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import ArgumentError

from dbmapper.config import Config, ProjectConfig, get_project_root

console = Console()


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr, with debug output only when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def get_config_with_data() -> Tuple[Config, ProjectConfig]:
    """Get config and load data for the current project.

    DBMAPPER_PROJECT_DIR takes precedence over searching upward from the
    working directory.

    Returns:
        tuple: (config, config_data)
    """
    env_dir = os.environ.get("DBMAPPER_PROJECT_DIR")
    if env_dir:
        project_root = Path(env_dir)
    else:
        try:
            project_root = get_project_root(Path.cwd())
        except FileNotFoundError:
            console.print("[red]❌ Not in a dbmapper project directory[/red]")
            raise typer.Exit(1)

    config = Config(project_root)
    try:
        config_data = config.load()
    except FileNotFoundError:
        console.print("[red]❌ Config file not found. Run 'dbmapper init' first.[/red]")
        raise typer.Exit(1)
    except ValidationError as e:
        console.print("[red]❌ Invalid config file:[/red]")
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            console.print(f"[red]   {escape(location)}: {escape(error['msg'])}[/red]")
        raise typer.Exit(1)

    return config, config_data


def get_engine(config_data: ProjectConfig, database_url: Optional[str] = None) -> Engine:
    """Create an engine from an explicit URL or the project configuration."""
    url = database_url or config_data.database_url
    if not url:
        console.print(
            "[red]❌ No database URL configured. Pass --database-url or set "
            "DBMAPPER_DATABASE_URL.[/red]"
        )
        raise typer.Exit(1)

    try:
        return create_engine(url)
    except (ArgumentError, ImportError) as e:
        console.print(f"[red]❌ Invalid database URL: {e}[/red]")
        raise typer.Exit(1)
