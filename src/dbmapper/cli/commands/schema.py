"""Schema inspection CLI commands."""

from typing import Optional

import typer
from rich.console import Console
from rich.table import Table as RichTable

from dbmapper.exceptions import DbMapperError
from dbmapper.managers import RelationshipAnalyzer, SchemaInspector
from dbmapper.utils.type_utils import DDL_TYPE_MAPPING

from ..utils import get_config_with_data, get_engine

console = Console()


def list_tables(
    database_url: Optional[str] = typer.Option(
        None, "--database-url", "-u", help="SQLAlchemy URL (defaults to config)"
    ),
):
    """List all tables and how they will be mapped."""
    config, config_data = get_config_with_data()
    engine = get_engine(config_data, database_url)

    try:
        inspector = SchemaInspector(engine)
        snapshots = inspector.get_all_snapshots()
    except DbMapperError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)
    finally:
        engine.dispose()

    if not snapshots:
        console.print("[yellow]No tables found[/yellow]")
        return

    analyzer = RelationshipAnalyzer(
        is_audit_column=config_data.audit_predicate(),
        detect_many_to_many=config_data.detect_many_to_many,
    )
    graph = analyzer.analyze(snapshots)

    table = RichTable(title="Tables")
    table.add_column("Name", style="cyan")
    table.add_column("Columns", style="green")
    table.add_column("Primary Key", style="yellow")
    table.add_column("FKs", style="blue")
    table.add_column("Kind", style="magenta")

    for name, snapshot in snapshots.items():
        table.add_row(
            name,
            str(len(snapshot.columns)),
            ", ".join(snapshot.primary_keys) or "-",
            str(len(snapshot.foreign_keys)),
            "join" if graph.is_many_to_many_table(name) else "entity",
        )

    console.print(table)


def list_columns(
    table_name: str = typer.Argument(..., help="Table name"),
    database_url: Optional[str] = typer.Option(
        None, "--database-url", "-u", help="SQLAlchemy URL (defaults to config)"
    ),
):
    """List the columns of a table."""
    config, config_data = get_config_with_data()
    engine = get_engine(config_data, database_url)

    try:
        inspector = SchemaInspector(engine)
        if table_name not in inspector.get_tables():
            console.print(f"[red]❌ Table '{table_name}' does not exist[/red]")
            raise typer.Exit(1)
        snapshot = inspector.get_snapshot(table_name)
    except DbMapperError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)
    finally:
        engine.dispose()

    print_columns(snapshot)


def list_types():
    """List column types accepted when staging a new column."""
    table = RichTable(title="Column Types")
    table.add_column("Type", style="cyan")
    table.add_column("DDL", style="green")

    for name, ddl in DDL_TYPE_MAPPING.items():
        table.add_row(name, ddl)

    console.print(table)


def print_columns(snapshot) -> None:
    """Render a snapshot's columns as a rich table."""
    foreign_keys = {fk.column: fk for fk in snapshot.foreign_keys}

    table = RichTable(title=f"Columns in '{snapshot.name}'")
    table.add_column("Name", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Nullable", style="yellow")
    table.add_column("Key", style="magenta")
    table.add_column("References", style="blue")

    for column in snapshot.columns:
        keys = []
        if column.name in snapshot.primary_keys:
            keys.append("PK")
        if column.unique:
            keys.append("UNIQUE")
        fk = foreign_keys.get(column.name)
        table.add_row(
            column.name,
            column.column_type,
            "YES" if column.nullable else "NO",
            ", ".join(keys) or "-",
            f"{fk.referenced_table}.{fk.referenced_column}" if fk else "-",
        )

    console.print(table)
