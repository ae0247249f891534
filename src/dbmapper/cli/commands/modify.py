"""Interactive schema editing session."""

from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table as RichTable
from sqlalchemy.engine import Engine

from dbmapper.exceptions import DbMapperError
from dbmapper.managers import (
    ChangeApplier,
    ChangePlanner,
    SchemaInspector,
    SqlAlchemyExecutor,
)
from dbmapper.models import RelationKind
from dbmapper.utils import InvalidNameError, is_supported_type, validate_identifier
from dbmapper.utils.type_utils import SUPPORTED_COLUMN_TYPES

from ..utils import get_config_with_data, get_engine
from .schema import print_columns

console = Console()

MENU = (
    ("1", "List tables"),
    ("2", "Select table"),
    ("3", "View columns"),
    ("4", "Add column"),
    ("5", "Add relation"),
    ("6", "Show plan"),
    ("7", "Preview SQL"),
    ("8", "Apply plan"),
    ("0", "Exit"),
)

RELATION_KINDS = [kind.value for kind in RelationKind]


class ModifySession:
    """Menu loop that stages changes against one database and applies them."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self.inspector = SchemaInspector(engine)
        self.planner = ChangePlanner()
        self.applier = ChangeApplier()
        self.current_table: Optional[str] = None

    def run(self) -> None:
        actions = {
            "1": self.list_tables,
            "2": self.select_table,
            "3": self.view_columns,
            "4": self.add_column,
            "5": self.add_relation,
            "6": self.show_plan,
            "7": self.preview_sql,
            "8": self.apply_plan,
        }

        while True:
            self.print_menu()
            choice = typer.prompt("Choose an action", default="0").strip()
            if choice == "0":
                if self.confirm_exit():
                    return
                continue

            action = actions.get(choice)
            if action is None:
                console.print(f"[red]❌ Unknown choice '{choice}'[/red]")
                continue

            try:
                action()
            except DbMapperError as e:
                console.print(f"[red]❌ {e}[/red]")

    def print_menu(self) -> None:
        console.print()
        selected = self.current_table or "none"
        console.print(
            f"[bold]Table:[/bold] {selected}   [bold]Staged:[/bold] {len(self.planner)}"
        )
        for key, label in MENU:
            console.print(f"  [cyan]{key}[/cyan]  {label}")

    def list_tables(self) -> None:
        tables = self.inspector.get_tables()
        if not tables:
            console.print("[yellow]No tables found[/yellow]")
            return
        for name in tables:
            marker = "*" if name == self.current_table else " "
            console.print(f" {marker} {name}")

    def select_table(self) -> None:
        name = typer.prompt("Table name").strip()
        if name not in self.inspector.get_tables():
            console.print(f"[red]❌ Table '{name}' does not exist[/red]")
            return
        self.current_table = name
        console.print(f"[green]✅ Selected table '{name}'[/green]")

    def require_table(self) -> Optional[str]:
        if self.current_table is None:
            console.print("[yellow]Select a table first[/yellow]")
        return self.current_table

    def view_columns(self) -> None:
        table = self.require_table()
        if table:
            print_columns(self.inspector.get_snapshot(table))

    def add_column(self) -> None:
        table = self.require_table()
        if not table:
            return

        name = typer.prompt("Column name").strip()
        try:
            validate_identifier(name, "column")
        except InvalidNameError as e:
            console.print(f"[red]❌ {e}[/red]")
            return

        existing = {column.name.lower() for column in self.inspector.get_columns(table)}
        if name.lower() in existing:
            console.print(f"[red]❌ Column '{name}' already exists in '{table}'[/red]")
            return

        console.print(f"Types: {', '.join(SUPPORTED_COLUMN_TYPES)}")
        column_type = typer.prompt("Column type", default="string").strip().lower()
        if not is_supported_type(column_type):
            console.print(f"[red]❌ Unsupported column type '{column_type}'[/red]")
            return

        nullable = typer.confirm("Nullable?", default=True)
        change = self.planner.add_column(table, name, column_type, nullable)
        console.print(f"[green]✅ Staged: {change.describe()}[/green]")

    def add_relation(self) -> None:
        source = self.require_table()
        if not source:
            return

        console.print(f"Kinds: {', '.join(RELATION_KINDS)}")
        kind = typer.prompt("Relation kind", default="many-to-one").strip().lower()
        if kind not in RELATION_KINDS:
            console.print(f"[red]❌ Unknown relation kind '{kind}'[/red]")
            return

        target = typer.prompt("Target table").strip()
        if target not in self.inspector.get_tables():
            console.print(f"[red]❌ Table '{target}' does not exist[/red]")
            return

        field_name = typer.prompt("Field name").strip()
        inverse_field = typer.prompt("Inverse field name", default="").strip() or None

        join_table = None
        join_columns = None
        nullable = True
        on_delete = None
        if kind == RelationKind.MANY_TO_MANY.value:
            join_table = typer.prompt("Join table", default=f"{source}_{target}").strip()
            join_columns = (
                typer.prompt("Join column for source", default=f"{source}_id").strip(),
                typer.prompt("Join column for target", default=f"{target}_id").strip(),
            )
        else:
            nullable = typer.confirm("Nullable?", default=True)
            on_delete = typer.prompt(
                "ON DELETE (SET NULL, CASCADE, RESTRICT, NO ACTION)", default=""
            ).strip() or None

        try:
            change = self.planner.add_relation(
                source_table=source,
                kind=kind,
                target_table=target,
                field_name=field_name,
                inverse_field=inverse_field,
                join_table=join_table,
                join_columns=join_columns,
                nullable=nullable,
                on_delete=on_delete,
            )
        except (ValidationError, ValueError) as e:
            console.print(f"[red]❌ {e}[/red]")
            return

        console.print(f"[green]✅ Staged: {change.describe()}[/green]")

    def show_plan(self) -> None:
        if not self.planner.has_changes():
            console.print("[yellow]No staged changes[/yellow]")
            return

        table = RichTable(title="Staged Changes")
        table.add_column("#", style="cyan")
        table.add_column("Change", style="green")
        for index, change in enumerate(self.planner.list_changes(), 1):
            table.add_row(str(index), change.describe())
        console.print(table)

    def preview_sql(self) -> None:
        if not self.planner.has_changes():
            console.print("[yellow]No staged changes[/yellow]")
            return

        for statement in self.applier.compile_sql(self.planner.list_changes()):
            console.print(f"{statement};")

    def apply_plan(self) -> None:
        if not self.planner.has_changes():
            console.print("[yellow]No staged changes[/yellow]")
            return

        self.preview_sql()
        if not typer.confirm("Apply these statements?", default=False):
            console.print("Cancelled")
            return

        report = self.applier.apply(
            self.planner.list_changes(), SqlAlchemyExecutor(self.engine)
        )
        self.inspector.refresh()

        console.print(f"Executed {len(report.executed)} statements")
        for error in report.errors:
            console.print(f"[red]❌ {error}[/red]")

        if report.success:
            self.planner.clear()
            console.print("[green]✅ All changes applied[/green]")
        else:
            console.print("[yellow]Plan kept; fix the errors and apply again[/yellow]")

    def confirm_exit(self) -> bool:
        if not self.planner.has_changes():
            return True
        return typer.confirm(
            f"Discard {len(self.planner)} staged changes and exit?", default=False
        )


def modify(
    database_url: Optional[str] = typer.Option(
        None, "--database-url", "-u", help="SQLAlchemy URL (defaults to config)"
    ),
):
    """Stage and apply schema changes interactively."""
    config, config_data = get_config_with_data()
    engine = get_engine(config_data, database_url)

    try:
        ModifySession(engine).run()
    finally:
        engine.dispose()
