"""
coredata CLI.

Commands:
- serve:   migrate the database and serve the REST API
- migrate: converge the database (or show what would change with --dry-run)
- routes:  list the REST surface generated for a model
- version: print the installed version
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from coredata_rest._version import get_version
from coredata_rest.converters import load_model_file
from coredata_rest.core.errors import CoreDataError
from coredata_rest.runtime.logging import setup_logging
from coredata_rest.runtime.registry import register_entities
from coredata_rest.runtime.server import ServerConfig, create_database_engine
from coredata_rest.specs import DataModelSpec

app = typer.Typer(
    help="Serve a declarative data model as a REST API",
    no_args_is_help=True,
)

console = Console()

MODEL_ARGUMENT = typer.Argument(..., help="JSON model description", exists=True, dir_okay=False)
DATABASE_OPTION = typer.Option(None, "--database-url", "-d", help="Database URL (or DATABASE_URL)")


def _load(model_path: Path) -> DataModelSpec:
    try:
        return load_model_file(model_path)
    except CoreDataError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1) from e


@app.command(name="serve")
def serve_command(
    model_path: Path = MODEL_ARGUMENT,
    host: str = typer.Option("127.0.0.1", "--host", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to bind to"),
    database_url: str | None = DATABASE_OPTION,
    log_dir: Path | None = typer.Option(None, "--log-dir", help="Directory for the JSONL log"),
) -> None:
    """Migrate the database, then serve the REST API."""
    from coredata_rest.runtime.app_factory import run_app

    config = ServerConfig.from_env()
    if database_url:
        config.database_url = database_url
    if log_dir:
        config.log_dir = log_dir
    setup_logging(config.log_dir, config.log_level)

    model = _load(model_path)
    try:
        run_app(model, host=host, port=port, config=config)
    except CoreDataError as e:
        console.print(f"[red]Startup failed: {e.message}[/red]")
        raise typer.Exit(1) from e


@app.command(name="migrate")
def migrate_command(
    model_path: Path = MODEL_ARGUMENT,
    database_url: str | None = DATABASE_OPTION,
    dry_run: bool = typer.Option(False, "--dry-run", help="Show actions without applying them"),
) -> None:
    """Converge the database towards the model (additive only)."""
    from coredata_rest.runtime.migrations import plan_migrations

    model = _load(model_path)
    config = ServerConfig(database_url=database_url)
    engine = create_database_engine(config)

    try:
        if dry_run:
            registry = register_entities(model.entities)
            plans = plan_migrations(
                engine, [(rt.table_name, rt.columns) for rt in registry.values()]
            )
        else:
            plans = list(register_entities(model.entities, engine).migrations)
    except CoreDataError as e:
        console.print(f"[red]Migration failed: {e.message}[/red]")
        raise typer.Exit(1) from e
    finally:
        engine.dispose()

    actions = [a for p in plans for a in p.actions]
    if not actions:
        console.print("[green]Database is up to date[/green]")
        return

    table = Table(title="Planned migrations" if dry_run else "Applied migrations")
    table.add_column("Table")
    table.add_column("Action")
    table.add_column("Columns")
    for action in actions:
        table.add_row(action.table, str(action.kind), ", ".join(c.name for c in action.columns))
    console.print(table)


@app.command(name="routes")
def routes_command(model_path: Path = MODEL_ARGUMENT) -> None:
    """List the REST surface generated for a model."""
    model = _load(model_path)
    try:
        registry = register_entities(model.entities)
    except CoreDataError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1) from e

    table = Table(title=f"Routes for {model.name}")
    table.add_column("Method")
    table.add_column("Path")
    for record_type in registry.values():
        base = f"/{record_type.table_name}"
        table.add_row("GET", base)
        table.add_row("POST", base)
        for method in ("GET", "PUT", "DELETE"):
            table.add_row(method, f"{base}/:id")
        for binding in record_type.to_many_relationships:
            table.add_row("GET", f"{base}/:id/{binding.name}")
    console.print(table)


@app.command(name="version")
def version_command() -> None:
    """Print the installed version."""
    console.print(f"coredata-rest {get_version()}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
