"""Command line interface for docshift."""

import logging
import sys
from json import dumps
from pathlib import Path
from sys import stdout
from typing import Literal, TypeAlias

from conversion import (
    ConversionResult,
    RowCountProvider,
    Settings,
    Table,
    convert,
    load_settings,
    result_to_json,
    static_row_counter,
    with_retry,
)
from conversion.classification import profile_tables
from conversion.relationships import RelationshipGraph, analyze_relationships
from cyclopts import App
from introspection import (
    SNAPSHOT_EXTENSIONS,
    load_snapshot,
    read_only_sqlite,
    reflect_tables,
    snapshot_from_tables,
    table_row_counter,
)
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table as RichTable
from sqlalchemy.exc import SQLAlchemyError

app = App(help="Relational to document schema conversion tool")

Format: TypeAlias = Literal["table", "json"]

console = Console()
err_console = Console(stderr=True)

# Constants
SQLITE_EXTENSIONS = {".sqlite", ".db", ".sqlite3"}
NOISY_LOGGERS = ("sqlalchemy",)


def print_error(message: str) -> None:
    """Print error message to stderr."""
    err_console.print(f"[bold red]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print success message to stderr."""
    err_console.print(f"[bold green]✓[/] {message}")


def print_info(message: str) -> None:
    """Print info message to stderr."""
    err_console.print(f"[bold blue]i[/] {message}")


def print_warning(message: str) -> None:
    """Print warning message to stderr."""
    err_console.print(f"[bold yellow]![/] {message}")


def setup_logging(*, verbose: bool = False) -> None:
    """Route library logging through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=verbose)],
        force=True,
    )
    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def validate_source_location(source: Path) -> None:
    """Validate that the source exists and has a supported extension."""
    if not source.exists():
        print_error(f"Source file does not exist: {source}")
        sys.exit(1)
    supported = SQLITE_EXTENSIONS | SNAPSHOT_EXTENSIONS
    if source.suffix.lower() not in supported:
        print_error(
            f"Source file has invalid extension: {', '.join(sorted(supported))}",
        )
        sys.exit(1)


def validate_output_path(output: Path) -> None:
    """Validate output path is writable."""
    output_dir = output.parent
    if not output_dir.exists():
        print_error(f"Output directory does not exist: {output_dir}")
        sys.exit(1)
    if not output_dir.is_dir():
        print_error(f"Output path parent is not a directory: {output_dir}")
        sys.exit(1)


def resolve_settings(settings_location: Path | None) -> Settings:
    """Load settings from a TOML file, or use the defaults."""
    if settings_location is None:
        return Settings()
    try:
        settings = load_settings(settings_location)
    except (OSError, ValueError) as e:
        print_error(f"Invalid settings file {settings_location}: {e}")
        sys.exit(1)
    print_info(f"Settings: {settings_location}")
    return settings


def load_source(
    source: Path,
    settings: Settings,
    *,
    row_counts: bool = True,
) -> tuple[list[Table], RowCountProvider | None]:
    """Read the table snapshot and row-count provider for a source file."""
    try:
        if source.suffix.lower() in SNAPSHOT_EXTENSIONS:
            tables, counts = load_snapshot(source)
            if counts is None or not row_counts:
                return tables, None
            return tables, static_row_counter(counts)

        engine = read_only_sqlite(source)
        tables = reflect_tables(engine)
    except (OSError, ValueError, SQLAlchemyError) as e:
        print_error(f"Failed to read {source}: {e}")
        sys.exit(1)

    if not row_counts:
        return tables, None
    return tables, with_retry(
        table_row_counter(engine),
        attempts=settings.retry_attempts,
        delay=settings.retry_delay,
    )


def write_output(text: str, output: Path | None) -> None:
    """Write data to a file, or to stdout."""
    if output is None:
        stdout.write(text)
        return
    try:
        output.write_text(text, encoding="utf-8")
    except OSError as e:
        print_error(f"Failed to write output file: {e}")
        sys.exit(1)
    print_success(f"Output written to {output}")


def format_collections_table(result: ConversionResult) -> None:
    """Format collections as a rich table."""
    table = RichTable(title="Collections", box=box.SIMPLE_HEAVY)
    table.add_column("Collection", style="bold cyan")
    table.add_column("Source", style="dim")
    table.add_column("Kind")
    table.add_column("Fields", justify="right")
    table.add_column("Embedded")
    table.add_column("References")
    table.add_column("Indexes", justify="right")

    for collection in result.collections:
        table.add_row(
            collection.name,
            collection.source_table,
            str(collection.kind),
            str(len(collection.fields)),
            ", ".join(doc.name for doc in collection.embedded_documents) or "-",
            ", ".join(ref.field for ref in collection.references) or "-",
            str(len(collection.indexes)),
        )
    console.print(table)


def format_plan_table(result: ConversionResult) -> None:
    """Format the migration plan as a rich table."""
    plan = result.migration_plan
    if plan is None:
        return

    table = RichTable(
        title=f"Migration plan ({plan.total_hours:g} h, risk {plan.risk_level})",
        box=box.SIMPLE_HEAVY,
    )
    table.add_column("#", justify="right")
    table.add_column("Phase", style="bold")
    table.add_column("Complexity")
    table.add_column("Hours", justify="right")
    table.add_column("Depends on", style="dim")

    for step in plan.steps:
        table.add_row(
            str(step.step),
            step.action,
            str(step.complexity),
            f"{step.estimated_hours:g}",
            ", ".join(step.dependencies) or "-",
        )
    console.print(table)


@app.command(name="convert")
def convert_schema(
    source: Path,
    fmt: Format = "table",
    *,
    settings: Path | None = None,
    output: Path | None = None,
    row_counts: bool = True,
    verbose: bool = False,
) -> None:
    """Convert a relational schema into a document schema.

    Parameters
    ----------
    source
        SQLite database or JSON schema snapshot.
    fmt
        Output format.
    settings
        TOML file with a ``[conversion]`` table of thresholds.
    output
        Write JSON output to this file instead of stdout.
    row_counts
        Use row counts to score relationships.
    verbose
        Log every pipeline stage.
    """
    setup_logging(verbose=verbose)
    validate_source_location(source)
    if output:
        validate_output_path(output)
    conversion_settings = resolve_settings(settings)

    print_info(f"Source: {source}")
    print_info(f"Output format: {fmt}")

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=err_console,
        ) as progress:
            task = progress.add_task("Reading schema...", total=None)
            tables, provider = load_source(
                source,
                conversion_settings,
                row_counts=row_counts,
            )
            progress.update(task, description=f"Converting {len(tables)} tables...")
            result = convert(tables, provider, settings=conversion_settings)
    except KeyboardInterrupt:
        print_error("Conversion interrupted by user")
        sys.exit(1)

    if not result.success:
        print_error(f"Conversion failed: {result.error}")
        sys.exit(1)

    if fmt == "json":
        write_output(result_to_json(result), output)
    elif fmt == "table":
        format_collections_table(result)
        format_plan_table(result)
        for warning in result.warnings:
            print_warning(warning)

    print_success(
        f"Converted {len(tables)} tables into {len(result.collections)} collections",
    )


@app.command
def classify(
    source: Path,
    *,
    settings: Path | None = None,
    row_counts: bool = True,
    verbose: bool = False,
) -> None:
    """Show entity classification and relationship edges of a schema."""
    setup_logging(verbose=verbose)
    validate_source_location(source)
    conversion_settings = resolve_settings(settings)
    tables, provider = load_source(source, conversion_settings, row_counts=row_counts)

    edges, issues = analyze_relationships(tables, provider, conversion_settings)
    graph = RelationshipGraph(edges)

    entities = RichTable(title="Entities", box=box.SIMPLE_HEAVY)
    entities.add_column("Table", style="bold cyan")
    entities.add_column("Kind")
    entities.add_column("Incoming", justify="right")
    entities.add_column("Outgoing", justify="right")
    entities.add_column("Columns", justify="right")
    for profile in profile_tables(tables, graph, conversion_settings):
        entities.add_row(
            profile.table,
            str(profile.kind),
            str(profile.incoming),
            str(profile.outgoing),
            str(profile.columns),
        )
    console.print(entities)

    relationships = RichTable(title="Relationships", box=box.SIMPLE_HEAVY)
    relationships.add_column("Source", style="bold")
    relationships.add_column("Target", style="bold")
    relationships.add_column("Strength")
    relationships.add_column("Usage")
    relationships.add_column("Recommendation")
    for edge in edges:
        relationships.add_row(
            f"{edge.source_table}.{edge.source_column}",
            f"{edge.target_table}.{edge.target_column}",
            str(edge.strength),
            str(edge.usage_frequency),
            str(edge.recommendation),
        )
    console.print(relationships)

    for issue in issues:
        print_warning(str(issue))


@app.command
def snapshot(
    sqlite_location: Path,
    *,
    output: Path | None = None,
    row_counts: bool = True,
    verbose: bool = False,
) -> None:
    """Export a SQLite database schema as a JSON snapshot."""
    setup_logging(verbose=verbose)
    if not sqlite_location.exists():
        print_error(f"Database file does not exist: {sqlite_location}")
        sys.exit(1)
    if sqlite_location.suffix.lower() not in SQLITE_EXTENSIONS:
        print_error(
            f"Database file has invalid extension: {', '.join(SQLITE_EXTENSIONS)}",
        )
        sys.exit(1)
    if output:
        validate_output_path(output)

    try:
        engine = read_only_sqlite(sqlite_location)
        tables = reflect_tables(engine)
        counts = None
        if row_counts:
            counter = table_row_counter(engine)
            counts = {table.name: counter(table.name) for table in tables}
    except SQLAlchemyError as e:
        print_error(f"Failed to read {sqlite_location}: {e}")
        sys.exit(1)

    data = snapshot_from_tables(tables, counts)
    write_output(dumps(data, indent=2, default=str), output)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
