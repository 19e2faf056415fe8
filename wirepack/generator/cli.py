"""Command-line interface for wirepack schemas."""

from __future__ import annotations

import json
import sys

import click
from lark.exceptions import LarkError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from wirepack.generator import ValidationError, compile_schema, parse, python
from wirepack.generator.sizes import SchemaSizeInfo, SizeInfo, calculate_sizes
from wirepack.generator.types import Schema


def _load(input_file: str) -> Schema:
    with open(input_file, encoding="utf-8") as f:
        text = f.read()
    try:
        return parse(text)
    except (LarkError, ValidationError) as e:
        Console().print(f"[bold red]Invalid schema {input_file}:[/bold red] {escape(str(e))}")
        sys.exit(1)


class _AnyCodec:
    """Gives each extern both capabilities while checking. Its methods are never called."""

    def decode(self, source):
        raise NotImplementedError

    def encode(self, value, sink):
        raise NotImplementedError


@click.group()
def cli() -> None:
    """wirepack schema compiler."""


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input schema file")
@click.option("--output", "-o", "output_file", required=True, help="Output Python file")
@click.option(
    "--runtime-import",
    "runtime_import",
    default="wirepack",
    show_default=True,
    help="Package the generated module imports the runtime from",
)
def gen(input_file: str, output_file: str, runtime_import: str) -> None:
    """Generate a Python module of packet classes from a schema."""
    schema = _load(input_file)
    generated_file = python.render(schema, runtime_import=runtime_import)

    with open(output_file, "w", encoding="utf-8") as f:
        f.write(generated_file)


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input schema file")
def check(input_file: str) -> None:
    """Validate a schema, including direction capabilities."""
    schema = _load(input_file)

    custom = {extern.name: _AnyCodec() for extern in schema.externs}
    try:
        compiled = compile_schema(schema, custom=custom)
    except ValidationError as e:
        Console().print(f"[bold red]Invalid schema {input_file}:[/bold red] {escape(str(e))}")
        sys.exit(1)

    packets = sum(len(group.packets) for group in compiled.groups.values())
    Console().print(
        f"[green]OK[/green] {len(compiled.groups)} group(s), {packets} packet(s), "
        f"{len(schema.structs)} struct(s), {len(schema.enums)} enum(s)"
    )


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input schema file")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(input_file: str, output_json: bool) -> None:
    """Display schema information and encoded size calculations."""
    schema = _load(input_file)
    size_info = calculate_sizes(schema)

    if output_json:
        _output_json(size_info, schema)
    else:
        _output_plain(size_info, schema)


def _format_size(size: SizeInfo) -> str:
    if size.max_size is None:
        return f"{size.min_size}+ bytes"
    if size.min_size == size.max_size:
        return f"{size.min_size} bytes"
    return f"{size.min_size}-{size.max_size} bytes"


def _output_json(size_info: SchemaSizeInfo, schema: Schema) -> None:
    """Output schema info as JSON."""
    data: dict = {
        "schema": schema.to_dict(encode_json=True),
        "sizes": {},
        "packets": {},
    }

    for name, type_info in size_info.types.items():
        data["sizes"][name] = {
            "min_size": type_info.size.min_size,
            "max_size": type_info.size.max_size,
            "kind": type_info.size.kind.value,
        }

    for group_name, packets in size_info.packets.items():
        data["packets"][group_name] = {
            name: {
                "min_size": packet_info.size.min_size,
                "max_size": packet_info.size.max_size,
                "kind": packet_info.size.kind.value,
            }
            for name, packet_info in packets.items()
        }

    data["min_packet_size"] = size_info.min_packet_size
    data["max_packet_size"] = size_info.max_packet_size

    print(json.dumps(data, indent=2))


def _output_plain(size_info: SchemaSizeInfo, schema: Schema) -> None:
    """Output schema info using rich text formatting."""
    console = Console()
    for group in schema.groups:
        console.print(f"[bold cyan]Group {group.name}[/bold cyan] ({group.direction})")
        table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
        table.add_column("ID", style="green", justify="right")
        table.add_column("Packet", style="white")
        table.add_column("Direction", style="dim")
        table.add_column("Size", style="yellow", justify="right")

        for packet in group.packets:
            size = size_info.packets[group.name][packet.name].size
            table.add_row(
                f"0x{packet.id:02x}",
                packet.name,
                str(group.packet_direction(packet)),
                _format_size(size),
            )

        console.print(table)
        console.print()

    if size_info.types:
        console.print("[bold cyan]Types[/bold cyan]")
        type_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
        type_table.add_column("Name", style="white")
        type_table.add_column("Size", style="yellow", justify="right")
        type_table.add_column("Kind", style="dim")

        for name, type_info in size_info.types.items():
            type_table.add_row(name, _format_size(type_info.size), type_info.size.kind.value)

        console.print(type_table)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
