"""
Command line for strata.

Every command takes a Python module path; importing it and registering
each class in it that carries the ``@entity`` marker gives the registry
the command works on.

    strata entities myapp.models
    strata ddl myapp.models --dialect sqlite --no-drop
    strata create myapp.models --database sqlite:///library.db
"""

from __future__ import annotations

import importlib
import inspect

import typer
from rich.console import Console
from rich.table import Table

from strata.core.connection import backend_name, create_connection
from strata.core.dialect import get_dialect
from strata.core.errors import StrataError
from strata.core.logging import configure_logging
from strata.core.settings import get_settings
from strata.metadata.markers import entity_marker
from strata.metadata.model import EntityMetadata
from strata.metadata.registry import default_registry
from strata.schema.generator import SchemaGenerator, SchemaOptions

app = typer.Typer(
    name="strata",
    help="strata: entity metadata, schema generation and SQL for plain dataclasses.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()
err_console = Console(stderr=True)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("strata-orm")
        except PackageNotFoundError:
            v = "0.1.0"
        typer.echo(f"strata {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Override STRATA_LOG_LEVEL."),
) -> None:
    """strata CLI: inspect entities, print and apply DDL."""
    settings = get_settings()
    configure_logging(
        level=log_level or settings.log_level,
        json_format=settings.log_format == "json",
    )


# ── helpers ──────────────────────────────────────────────────────────────


def _load_entities(module_path: str) -> list[EntityMetadata]:
    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        err_console.print(f"[bold red]Error[/bold red]: cannot import {module_path}: {e}")
        raise typer.Exit(code=1) from e

    types = [
        obj
        for obj in vars(module).values()
        if inspect.isclass(obj) and obj.__module__ == module.__name__ and entity_marker(obj) is not None
    ]
    if not types:
        err_console.print(f"[bold red]Error[/bold red]: no entities found in {module_path}")
        raise typer.Exit(code=1)
    try:
        return default_registry().register_all(*types)
    except StrataError as e:
        err_console.print(f"[bold red]Error[/bold red] ({e.category.value}): {e.message}")
        raise typer.Exit(code=1) from e


def _options(drop: bool | None) -> SchemaOptions:
    options = SchemaOptions.from_settings()
    if drop is None:
        return options
    return SchemaOptions(
        drop_if_exists=drop,
        print_ddl=options.print_ddl,
        fk_on_delete=options.fk_on_delete,
        fk_on_update=options.fk_on_update,
    )


# ── commands ─────────────────────────────────────────────────────────────


@app.command()
def entities(module: str = typer.Argument(..., help="Module declaring @entity classes")) -> None:
    """List the entities declared in MODULE."""
    metas = _load_entities(module)
    table = Table(title=f"Entities in {module}")
    table.add_column("Entity", style="bold")
    table.add_column("Table")
    table.add_column("Key")
    table.add_column("Columns")
    table.add_column("Relationships")
    for m in metas:
        rels = ", ".join(
            f"{r.attribute} ({r.kind.value} {r.target.__name__}, {r.fetch.value})" for r in m.relationships
        )
        table.add_row(m.name, m.table_name, m.key_column_name or "-", ", ".join(m.column_names()), rels or "-")
    console.print(table)


@app.command()
def ddl(
    module: str = typer.Argument(..., help="Module declaring @entity classes"),
    drop: bool | None = typer.Option(None, "--drop/--no-drop", help="Include DROP TABLE statements."),
    dialect: str = typer.Option("ansi", "--dialect", help="ansi, sqlite, postgresql or mysql."),
) -> None:
    """Print the DDL for MODULE without touching a database."""
    _load_entities(module)
    try:
        generator = SchemaGenerator(options=_options(drop), dialect=get_dialect(dialect))
        plan = generator.plan()
    except (StrataError, ValueError) as e:
        err_console.print(f"[bold red]Error[/bold red]: {e}")
        raise typer.Exit(code=1) from e
    if plan.has_cycle:
        typer.echo("-- relationship cycle: foreign keys added after table creation")
    typer.echo(plan.script(), nl=False)


@app.command()
def create(
    module: str = typer.Argument(..., help="Module declaring @entity classes"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database URL (default: STRATA_DATABASE_URL)."),
    drop: bool | None = typer.Option(None, "--drop/--no-drop", help="Drop existing tables first."),
) -> None:
    """Create the tables for MODULE in a database."""
    _load_entities(module)
    url = database or get_settings().database_url
    conn, info = create_connection(url)
    try:
        generator = SchemaGenerator(options=_options(drop), dialect=get_dialect(backend_name(url)))
        plan = generator.generate_all(conn)
    except ValueError as e:
        err_console.print(f"[bold red]Error[/bold red]: {e}")
        raise typer.Exit(code=1) from e
    except StrataError as e:
        err_console.print(f"[bold red]Error[/bold red] ({e.category.value}): {e.message}")
        raise typer.Exit(code=1) from e
    finally:
        conn.close()
    console.print(f"[green]Created {len(plan.create_statements)} tables[/green] in {info!r}")
    for name in plan.table_order:
        console.print(f"  • {name}")


if __name__ == "__main__":  # pragma: no cover
    app()
