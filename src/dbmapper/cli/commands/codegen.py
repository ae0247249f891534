"""Code generation CLI command."""

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table as RichTable

from dbmapper.exceptions import DbMapperError
from dbmapper.managers import CodegenManager, SchemaInspector

from ..utils import get_config_with_data, get_engine

console = Console()


def generate(
    output_dir: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Directory for mapped types (defaults to entity_dir)"
    ),
    repository_dir: Optional[Path] = typer.Option(
        None,
        "--repository-dir",
        "-r",
        help="Directory for repositories (defaults to repository_dir)",
    ),
    database_url: Optional[str] = typer.Option(
        None, "--database-url", "-u", help="SQLAlchemy URL (defaults to config)"
    ),
    overwrite: bool = typer.Option(
        False, "--overwrite", help="Replace files that already exist"
    ),
):
    """Generate a mapped type and repository for every table."""
    config, config_data = get_config_with_data()
    engine = get_engine(config_data, database_url)

    output_path = output_dir or config.resolve_path(config_data.entity_dir)
    repository_path = repository_dir or config.resolve_path(config_data.repository_dir)

    manager = CodegenManager(
        SchemaInspector(engine),
        entity_package=config_data.entity_package,
        bidirectional=config_data.generate_bidirectional,
        detect_many_to_many=config_data.detect_many_to_many,
        is_audit_column=config_data.audit_predicate(),
        skip_existing=config_data.skip_existing and not overwrite,
    )

    console.print(f"[blue]🔧 Generating mapped types from {engine.url!r}...[/blue]")
    console.print(f"Output: {output_path}")
    console.print(f"Repositories: {repository_path}")
    console.print()

    try:
        results = manager.generate_models(output_path, repository_path)
    except DbMapperError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)
    finally:
        engine.dispose()

    console.print(f"[green]✅ Generated {len(results['files_generated'])} files[/green]")

    if results["tables_processed"]:
        console.print(f"Tables processed: {', '.join(results['tables_processed'])}")
    if results["join_tables"]:
        console.print(f"Join tables: {', '.join(results['join_tables'])}")

    if results["files_generated"]:
        table = RichTable(title="Generated Files")
        table.add_column("File", style="cyan")
        for filename in results["files_generated"]:
            table.add_row(filename)
        console.print(table)

    if results["files_skipped"]:
        console.print(
            f"[yellow]Skipped {len(results['files_skipped'])} existing files[/yellow]"
        )

    for warning in results["warnings"]:
        console.print(f"[yellow]⚠️  {warning}[/yellow]")

    if results["errors"]:
        for error in results["errors"]:
            console.print(f"[red]❌ {error}[/red]")
        raise typer.Exit(1)
