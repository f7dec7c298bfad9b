"""Command-line interface for sqlc2proto."""

from __future__ import annotations

import functools
import json
import logging
import sys
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import (
    DEFAULT_INCLUDE_FILE,
    Config,
    ConfigError,
    build_type_mappings,
    find_config,
    load_config,
    module_from_go_mod,
    proto_import,
    write_config,
)
from .fields import FieldStyle
from .includes import IncludesError, write_includes
from .mappers import MAPPERS_DIR, MAPPERS_FILE
from .output import EmitError
from .parser import SourceError
from .pipeline import collect, generate as generate_artifacts, write_artifacts
from .proto import MODELS_FILE, SERVICE_FILE
from .services import infer_entity

if TYPE_CHECKING:
    from .descriptors import MessageDescriptor, QueryDescriptor

DEFAULT_CONFIG_FILE = "sqlc2proto.yaml"

console = Console()


def _fail(message: object) -> None:
    console.print(f"Error: {message}", style="red", markup=False, highlight=False, soft_wrap=True)
    sys.exit(1)


def _handle_errors(func: Callable[..., None]) -> Callable[..., None]:
    """Report fatal errors on the console and exit with status 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> None:
        try:
            func(*args, **kwargs)
        except (SourceError, ConfigError, IncludesError, EmitError) as exc:
            _fail(exc)

    return wrapper


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_time=False, show_path=False)],
        force=True,
    )


def _load(ctx: click.Context) -> Config:
    """Config from ``--config`` or a default path, with the module from go.mod."""
    path = ctx.obj.get("config_path")
    if path is None:
        path = find_config()

    cfg = load_config(Path(path)) if path is not None else Config()
    if not cfg.module_name:
        cfg.module_name = module_from_go_mod() or ""
    return cfg


@click.group()
@click.option("--config", "-c", "config_path", default=None, help="Configuration file")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """Generate Protocol Buffers, Go mappers and RPC services from sqlc output."""
    _setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@cli.command()
@click.option("--output", "-o", "output_path", default=DEFAULT_CONFIG_FILE, help="Config file to write")
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing file")
@_handle_errors
def init(output_path: str, force: bool) -> None:
    """Write a commented default configuration file."""
    path = Path(output_path)
    if path.exists() and not force:
        _fail(f"{path} already exists, use --force to overwrite it")

    cfg = Config()
    module = module_from_go_mod()
    if module:
        cfg.module_name = module
        cfg.go_package = f"{module}/proto"

    write_config(path, cfg)
    print(f"Created configuration file {path}")


@cli.command()
@click.option("--sqlc-dir", default=None, help="Directory containing the sqlc-generated package")
@click.option("--proto-dir", default=None, help="Output directory")
@click.option("--package", "proto_package", default=None, help="Protobuf package name")
@click.option("--go-package", default=None, help="go_package option of the generated schema")
@click.option("--module", "module_name", default=None, help="Go module name for import paths")
@click.option("--proto-go-import", default=None, help="Import path of the protoc-generated Go code")
@click.option("--with-mappers/--no-mappers", default=None, help="Generate Go mappers")
@click.option("--with-services/--no-services", default=None, help="Generate RPC services")
@click.option(
    "--field-style",
    type=click.Choice([style.value for style in FieldStyle]),
    default=None,
    help="Field naming style",
)
@click.option("--include-file", default=None, help="Includes file selecting models and queries")
@click.option("--dry-run", is_flag=True, default=False, help="Print the files instead of writing them")
@click.pass_context
@_handle_errors
def generate(ctx: click.Context, dry_run: bool, **overrides: Any) -> None:
    """Generate protobuf files from the sqlc package."""
    cfg = _load(ctx)
    for name, value in overrides.items():
        if value is not None:
            setattr(cfg, name, value)
    cfg.field_style = FieldStyle(cfg.field_style)

    artifacts = generate_artifacts(cfg)
    if dry_run:
        for artifact in artifacts:
            print(f"// {artifact.path}")
            print(artifact.content)
        return

    write_artifacts(artifacts)
    for artifact in artifacts:
        print(f"Generated {artifact.path}")


@cli.command()
@click.option("--output", "-o", "output_path", default=None, help="Includes file to write")
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing file")
@click.option("--active", is_flag=True, default=False, help="Leave every entry uncommented")
@click.pass_context
@_handle_errors
def getincludes(ctx: click.Context, output_path: str | None, force: bool, active: bool) -> None:
    """Write an includes file listing every model and query."""
    cfg = _load(ctx)
    path = Path(output_path or cfg.include_file or DEFAULT_INCLUDE_FILE)
    if path.exists() and not force:
        _fail(f"{path} already exists, use --force to overwrite it")

    messages, queries = collect(cfg, build_type_mappings(cfg), with_queries=True)
    write_includes(
        path,
        [message.name for message in messages],
        [query.name for query in queries],
        active=active,
    )
    print(f"Generated includes file {path} ({len(messages)} models, {len(queries)} queries)")
    if not active:
        print("Uncomment the entries to generate, then run 'sqlc2proto generate'.")


@cli.command()
@click.pass_context
@_handle_errors
def check(ctx: click.Context) -> None:
    """Check that the generated files are in place."""
    cfg = _load(ctx)
    proto_dir = Path(cfg.proto_dir)

    missing = []
    if not Path(cfg.sqlc_dir).is_dir():
        missing.append(f"sqlc directory {cfg.sqlc_dir}")
    if not (proto_dir / MODELS_FILE).is_file():
        missing.append(f"schema {proto_dir / MODELS_FILE}")
    if cfg.with_services and not cfg.service_options.split_services:
        if not (proto_dir / SERVICE_FILE).is_file():
            missing.append(f"services {proto_dir / SERVICE_FILE}")
    if cfg.with_mappers:
        if not (proto_dir / MAPPERS_DIR / MAPPERS_FILE).is_file():
            missing.append(f"mappers {proto_dir / MAPPERS_DIR / MAPPERS_FILE}")
        if not proto_dir.is_dir() or not any(proto_dir.rglob("*.pb.go")):
            missing.append(f"protoc-generated Go code (*.pb.go) in {proto_dir}")

    if missing:
        for item in missing:
            console.print(f"Missing {item}", style="red", markup=False, highlight=False, soft_wrap=True)
        sys.exit(1)

    print("All generated files are present")
    if cfg.with_mappers:
        print(f"Mappers import {proto_import(cfg)}")


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
@_handle_errors
def info(ctx: click.Context, output_json: bool) -> None:
    """Display the models and queries found in the sqlc package."""
    cfg = _load(ctx)

    messages, queries = collect(cfg, build_type_mappings(cfg), with_queries=True)

    if output_json:
        _output_json(messages, queries)
    else:
        _output_plain(messages, queries)


def _output_json(messages: list[MessageDescriptor], queries: list[QueryDescriptor]) -> None:
    data = {
        "messages": [message.to_dict() for message in messages],
        "queries": [dict(query.to_dict(), entity=infer_entity(query.name)) for query in queries],
    }
    print(json.dumps(data, indent=2))


def _output_plain(messages: list[MessageDescriptor], queries: list[QueryDescriptor]) -> None:
    """Output models and queries using rich text formatting."""
    console.print("[bold cyan]Messages[/bold cyan]")
    message_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    message_table.add_column("Name", style="white")
    message_table.add_column("Fields", style="yellow", justify="right")
    message_table.add_column("Source", style="dim")

    for message in messages:
        message_table.add_row(message.name, str(len(message.fields)), message.source_struct)

    console.print(message_table)
    console.print()

    console.print("[bold cyan]Queries[/bold cyan]")
    if not queries:
        console.print("No Querier interface found", style="dim")
        return

    query_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    query_table.add_column("Name", style="white")
    query_table.add_column("Kind", style="green")
    query_table.add_column("Entity", style="yellow")
    query_table.add_column("Returns", style="dim")

    for query in queries:
        query_table.add_row(query.name, query.kind.value, infer_entity(query.name), query.return_type)

    console.print(query_table)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
