"""
edukb CLI

Load school-data CSV files into the knowledge base, bootstrap its schema,
and inspect the active configuration
"""
import sys
from contextlib import nullcontext
from pathlib import Path

import click
from rich.console import Console
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn
from rich.table import Table

from edukb import __version__
from edukb.catalogs import Role, load_catalogs
from edukb.ingestion import ExecutionLog, IngestOptions, ingest, read_rows
from edukb.settings import get_settings
from edukb.utils import RemoteStoreError, RowsExhaustedError, get_logger, setup_logging
from edukb.wikibase.bootstrap import bootstrap_schema
from edukb.wikibase.client import WikibaseClient
from edukb.wikibase.memory import InMemoryStore

console = Console()
logger = get_logger(__name__)


def _summary_table(summary) -> Table:
    table = Table(title="Ingestion Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="magenta")
    for name, value in summary.to_dict().items():
        table.add_row(name.replace("_", " ").capitalize(), str(value))
    return table


def _open_store(dry_run: bool, catalogs, username: str | None = None, password: str | None = None):
    """Store for a command: a bootstrapped in-memory store on dry runs."""
    if dry_run:
        store = InMemoryStore()
        bootstrap_schema(store, catalogs)
        return nullcontext(store)
    return WikibaseClient.from_settings(get_settings(), username=username, password=password)


# ═══════════════════════════════════════════════════════════════════
# MAIN CLI GROUP
# ═══════════════════════════════════════════════════════════════════

@click.group()
@click.version_option(version=__version__)
@click.option('--log-level', default=None, help='Override EDUKB_LOG_LEVEL')
def main(log_level):
    """
    edukb - school data loader

    Idempotent ingestion of establishments, regions, comunas and teachers
    into a Wikibase knowledge base.
    """
    settings = get_settings()
    setup_logging(log_level or settings.log_level, settings.log_file)


# ═══════════════════════════════════════════════════════════════════
# INGESTION COMMANDS
# ═══════════════════════════════════════════════════════════════════

@main.command(name='ingest')
@click.argument('csv_path', type=click.Path(dir_okay=False, path_type=Path))
@click.option('--rows', '-n', type=click.IntRange(min=1), default=None,
              help='Data rows to read (default EDUKB_MAX_ROWS); fewer available exits 1')
@click.option('--dry-run', is_flag=True, help='Write to an in-memory store instead')
@click.option('--catalog', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              default=None, help='YAML catalog overrides')
@click.option('--gate-role', 'gate_roles', multiple=True,
              type=click.Choice([r.value for r in Role]),
              help='Role dropped from rows with an unknown education level (repeatable)')
@click.option('--username', default=None, help='Bot username (default EDUKB_USERNAME)')
@click.option('--password', default=None, help='Bot password (default EDUKB_PASSWORD)')
def ingest_command(csv_path, rows, dry_run, catalog, gate_roles, username, password):
    """Ingest a semicolon-delimited CSV file"""
    settings = get_settings()
    limit = rows or settings.max_rows
    console.print(f"\n[bold blue]Ingesting:[/bold blue] {csv_path} ([cyan]{limit}[/cyan] rows)")
    if dry_run:
        console.print("[yellow]Dry run: writing to an in-memory store[/yellow]")

    options = IngestOptions(level_gated_roles=frozenset(Role(r) for r in gate_roles)) if gate_roles else None
    execution_log = ExecutionLog(settings.execution_log_path) if settings.execution_log_path else None

    try:
        catalogs = load_catalogs(catalog or settings.catalog_path)
        source = read_rows(csv_path, settings.csv_encoding, settings.csv_delimiter)

        with source, _open_store(dry_run, catalogs, username, password) as store, Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            console=console,
            transient=True,
        ) as progress:
            task = progress.add_task("Rows", total=limit)
            summary = ingest(
                source, catalogs, store,
                limit=limit,
                options=options,
                execution_log=execution_log,
                strict=rows is not None,
                on_row=lambda s: progress.update(task, completed=s.rows_read),
            )

    except RowsExhaustedError as e:
        console.print(_summary_table(e.summary))
        console.print(f"\n[yellow]✗ {e}[/yellow]")
        sys.exit(1)
    except OSError as e:
        console.print(f"\n[red]✗ Cannot read {csv_path}: {e}[/red]")
        sys.exit(1)
    except RemoteStoreError as e:
        console.print(f"\n[red]✗ Knowledge base error: {e}[/red]")
        sys.exit(1)

    console.print(_summary_table(summary))
    if summary.exhausted:
        console.print(f"\n[yellow]Row source ended after {summary.rows_read} rows[/yellow]")
    console.print("\n[green]✓ Ingestion complete[/green]")


# ═══════════════════════════════════════════════════════════════════
# SCHEMA COMMANDS
# ═══════════════════════════════════════════════════════════════════

@main.command()
@click.option('--catalog', type=click.Path(exists=True, dir_okay=False, path_type=Path),
              default=None, help='YAML catalog overrides')
@click.option('--dry-run', is_flag=True, help='Bootstrap an in-memory store instead')
def bootstrap(catalog, dry_run):
    """Create the properties and class items the loader relies on"""
    console.print("\n[bold blue]Bootstrapping knowledge base[/bold blue]")

    try:
        catalogs = load_catalogs(catalog or get_settings().catalog_path)
        target = nullcontext(InMemoryStore()) if dry_run else WikibaseClient.from_settings(get_settings())
        with target as store:
            with console.status("[bold green]Creating properties and items..."):
                ids = bootstrap_schema(store, catalogs)

        table = Table(title="Bootstrapped Entities")
        table.add_column("Label", style="cyan")
        table.add_column("Id", style="magenta")
        for label, entity_id in ids.items():
            table.add_row(label, entity_id)
        console.print(table)
        console.print(f"\n[green]✓ {len(ids)} entities in place[/green]")

    except RemoteStoreError as e:
        console.print(f"\n[red]✗ Knowledge base error: {e}[/red]")
        sys.exit(1)


# ═══════════════════════════════════════════════════════════════════
# STATUS COMMANDS
# ═══════════════════════════════════════════════════════════════════

@main.command()
def status():
    """Show configuration and catalog sizes"""
    console.print("\n[bold blue]edukb Status[/bold blue]\n")

    try:
        settings = get_settings()

        table = Table(title="Configuration")
        table.add_column("Setting", style="cyan")
        table.add_column("Value", style="magenta")
        table.add_row("API URL", settings.api_url)
        table.add_row("Username", settings.username or "(anonymous)")
        table.add_row("Language", settings.language)
        table.add_row("Max rows", str(settings.max_rows))
        table.add_row("CSV encoding", settings.csv_encoding)
        table.add_row("Execution log", str(settings.execution_log_path or "(disabled)"))
        table.add_row("Catalog file", str(settings.catalog_path or "(built-in)"))
        table.add_row("Log level", settings.log_level)
        console.print(table)

        catalogs = load_catalogs(settings.catalog_path)
        console.print("\n[bold cyan]Catalogs:[/bold cyan]")
        console.print(f"  • Mapped columns: [green]{len(catalogs.column_properties)}[/green]")
        console.print(f"  • Education levels: [green]{len(catalogs.education_levels)}[/green]")
        console.print(f"  • Roles: [green]{', '.join(s.role.value for s in catalogs.roles)}[/green]")
        console.print(f"  • Links: [green]{len(catalogs.links)}[/green]")
        console.print(f"  • Bootstrap properties: [green]{len(catalogs.property_definitions)}[/green]")

        console.print("\n[green]✓ Configuration loaded[/green]")

    except Exception as e:
        console.print(f"\n[red]✗ Error: {e}[/red]")
        raise


# ═══════════════════════════════════════════════════════════════════
# ENTRY POINT
# ═══════════════════════════════════════════════════════════════════

if __name__ == '__main__':
    main()
