"""Command-line interface for the zkproto codec."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from zkproto.codec import CodecError
from zkproto.config import DEFAULT_PROTO_DIR, Settings, SettingsError
from zkproto.mapping import ResolutionStrategy
from zkproto.schema import TypeNotFoundError
from zkproto.schema.loader import DEFAULT_AUXILIARY_DIR
from zkproto.service import CodecService


def _configure_logging(verbose: bool) -> None:
    logger = logging.getLogger("zkproto")
    logger.setLevel(logging.INFO if verbose else logging.WARNING)
    if not any(isinstance(handler, RichHandler) for handler in logger.handlers):
        logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
        logger.propagate = False


def _fail(message: str) -> None:
    print(f"Error: {message}")
    sys.exit(1)


def _service(ctx: click.Context, *, load: bool = True) -> CodecService:
    try:
        service = CodecService(ctx.obj)
    except SettingsError as exc:
        _fail(str(exc))

    if load:
        report = service.reload()
        if not report.ok:
            _fail(f"Cannot load schema files: {report.error}")
    return service


@click.group()
@click.option(
    "--proto-dir",
    envvar="PROTO_DIR",
    default=DEFAULT_PROTO_DIR,
    show_default=True,
    help="Directory holding .proto files",
)
@click.option("--import-prefix", envvar="PROTO_IMPORT_PREFIX", help="Import prefix to strip")
@click.option("--root-path", envvar="ZK_ROOT_PATH", help="Root path for segment mappings")
@click.option(
    "--mapping",
    "path_mapping",
    envvar="PROTO_PATH_MAPPING",
    default="",
    help="Path to type mappings, key:type[,key:type...]",
)
@click.option(
    "--strategy",
    envvar="PROTO_MAPPING_STRATEGY",
    type=click.Choice([strategy.value for strategy in ResolutionStrategy]),
    default=ResolutionStrategy.PREFIX.value,
    show_default=True,
    help="How node paths are matched against mappings",
)
@click.option(
    "--aux-dir",
    "auxiliary_dir",
    envvar="PROTO_AUX_DIR",
    default=str(DEFAULT_AUXILIARY_DIR),
    show_default=True,
    help="Directory holding google/api schema files",
)
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log schema loading")
@click.pass_context
def cli(
    ctx: click.Context,
    proto_dir: str,
    import_prefix: str | None,
    root_path: str | None,
    path_mapping: str,
    strategy: str,
    auxiliary_dir: str,
    verbose: bool,
) -> None:
    """Decode and encode ZooKeeper node payloads with protobuf schemas."""
    _configure_logging(verbose)
    ctx.obj = Settings(
        proto_dir=proto_dir,
        import_prefix=import_prefix or None,
        root_path=root_path or None,
        path_mapping=path_mapping,
        strategy=ResolutionStrategy(strategy),
        auxiliary_dir=auxiliary_dir,
    )


@cli.command()
@click.pass_context
def types(ctx: click.Context) -> None:
    """List the fully qualified message types."""
    for name in _service(ctx).message_types:
        print(name)


@cli.command()
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def catalog(ctx: click.Context, output_json: bool) -> None:
    """Show schema files, message types and path mappings."""
    service = _service(ctx)
    schema_catalog = service.catalog()

    if output_json:
        print(json.dumps({**schema_catalog.to_dict(), "info": service.info()}, indent=2))
        return

    console = Console()

    console.print("[bold cyan]Schema files[/bold cyan]")
    for name in schema_catalog.files:
        console.print(f"  {name}")
    console.print()

    console.print("[bold cyan]Message types[/bold cyan]")
    for name in schema_catalog.message_types:
        console.print(f"  {name}")
    console.print()

    console.print(f"[bold cyan]Path mappings ({service.mapping.strategy.value})[/bold cyan]")
    table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    table.add_column("Key", style="white")
    table.add_column("Type", style="green")
    for entry in service.mapping.entries:
        table.add_row(entry.path, entry.type)
    console.print(table)


@cli.command()
@click.argument("path")
@click.pass_context
def resolve(ctx: click.Context, path: str) -> None:
    """Show the message type mapped to a node path."""
    type_name = _service(ctx, load=False).resolve_type(path)
    if type_name is None:
        _fail(f"No message type mapped to {path}")
    print(type_name)


@cli.command()
@click.option("--type", "-t", "type_name", default=None, help="Message type")
@click.option("--path", "-p", "node_path", default=None, help="Node path for type lookup")
@click.option("--hex", "data_hex", default=None, help="Payload as hex")
@click.option("--input", "-i", "input_file", default=None, help="Binary payload file")
@click.pass_context
def decode(
    ctx: click.Context,
    type_name: str | None,
    node_path: str | None,
    data_hex: str | None,
    input_file: str | None,
) -> None:
    """Decode a binary payload to JSON."""
    if (data_hex is None) == (input_file is None):
        _fail("Provide exactly one of --hex or --input")

    service = _service(ctx)
    try:
        if data_hex is not None:
            result = service.decode_hex(data_hex, type_name, node_path)
        else:
            result = service.decode(Path(input_file).read_bytes(), type_name, node_path)
    except (CodecError, TypeNotFoundError, OSError) as exc:
        _fail(str(exc))

    print(json.dumps(result.to_dict(), indent=2))


@cli.command()
@click.option("--type", "-t", "type_name", required=True, help="Message type")
@click.option("--json", "json_text", default=None, help="Object as JSON text")
@click.option("--input", "-i", "input_file", default=None, help="JSON file")
@click.option("--output", "-o", "output_file", default=None, help="Write binary payload here")
@click.pass_context
def encode(
    ctx: click.Context,
    type_name: str,
    json_text: str | None,
    input_file: str | None,
    output_file: str | None,
) -> None:
    """Encode a JSON object to a binary payload (hex on stdout unless --output)."""
    if (json_text is None) == (input_file is None):
        _fail("Provide exactly one of --json or --input")

    service = _service(ctx)
    try:
        if json_text is None:
            json_text = Path(input_file).read_text(encoding="utf-8")
        result = service.encode(json.loads(json_text), type_name)
    except json.JSONDecodeError as exc:
        _fail(f"Invalid JSON: {exc}")
    except (CodecError, TypeNotFoundError, OSError) as exc:
        _fail(str(exc))

    if output_file:
        Path(output_file).write_bytes(result.data)
        print(f"Wrote {result.length} bytes to {output_file}")
    else:
        print(result.data_hex)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
