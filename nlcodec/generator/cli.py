"""Command-line interface for nlcodec code generation."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console
from rich.table import Table

from nlcodec.generator import python
from nlcodec.generator.compiler import compile_types
from nlcodec.generator.errors import SchemaError
from nlcodec.generator.parser import load_schema_file
from nlcodec.generator.types import TypeKind

if TYPE_CHECKING:
    from nlcodec.generator.compiler import CompiledBundle


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log compilation progress")
def cli(verbose: bool) -> None:
    """Netlink schema code generator."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _compile(input_file: str) -> CompiledBundle:
    try:
        return compile_types(load_schema_file(input_file))
    except (SchemaError, json.JSONDecodeError) as e:
        click.echo(f"{input_file}: {e}", err=True)
        sys.exit(1)
    except OSError as e:
        click.echo(f"{input_file}: {e.strerror or e}", err=True)
        sys.exit(1)


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input schema file (JSON)")
@click.option("--output", "-o", "output_file", required=True, help="Output file")
@click.option(
    "--runtime-import",
    "runtime_import",
    is_flag=False,
    flag_value="nlcodec.proto",
    default=None,
    help="Import path for runtime. No value=nlcodec.proto, omit=nlcodec_runtime",
)
def gen(input_file: str, output_file: str, runtime_import: str | None) -> None:
    """Generate a Python module from a schema file."""
    bundle = _compile(input_file)

    # Default to "nlcodec_runtime" (a copy made by the runtime command)
    import_path = runtime_import if runtime_import is not None else "nlcodec_runtime"
    generated_file = bundle.render(runtime_import=import_path, source=Path(input_file).name)

    with open(output_file, "w", encoding="utf-8") as f:
        f.write(generated_file)


@cli.command()
@click.option("--output", "-o", "output_path", default=".", help="Output directory")
@click.option("--name", default="nlcodec_runtime", help="Runtime package name")
def runtime(output_path: str, name: str) -> None:
    """Copy the runtime support package."""
    runtime_dir = Path(output_path) / name
    runtime_dir.mkdir(parents=True, exist_ok=True)
    for filename, content in python.runtime().items():
        (runtime_dir / filename).write_text(content)
    print(f"Generated Python runtime in {runtime_dir}")


@cli.command()
@click.option("--input", "-i", "input_file", required=True, help="Input schema file (JSON)")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def info(input_file: str, output_json: bool) -> None:
    """Display the types of a schema and their wire layout."""
    bundle = _compile(input_file)

    if output_json:
        _output_json(bundle)
    else:
        _output_plain(bundle)


def _variants(bundle: CompiledBundle, name: str) -> list[str]:
    variants = bundle.requirements.get(name)
    result: list[str] = []
    if variants.bitmask:
        result.append("bitmask")
    if variants.tlv_flag_list:
        result.append("attrs")
    return result


def _output_json(bundle: CompiledBundle) -> None:
    """Output schema info as JSON."""
    data: dict = {
        "types": {},
        "structs": {},
        "roots": bundle.roots,
    }

    for name, type_def in bundle.types.items():
        entry: dict = {
            "kind": type_def.kind.value,
            "root": type_def.root,
            "functions": bundle.blocks[name].functions,
        }
        if type_def.kind == TypeKind.ENUM:
            entry["variants"] = _variants(bundle, name)
        data["types"][name] = entry

    for name, layout in bundle.layouts.items():
        data["structs"][name] = {
            "length": layout.length,
            "kind": layout.kind.value,
            "expandable": layout.expandable,
            "fields": [f.name for f in layout.fields],
            "dropped": list(layout.dropped),
        }

    print(json.dumps(data, indent=2))


def _output_plain(bundle: CompiledBundle) -> None:
    """Output schema info using rich text formatting."""
    console = Console()

    # Declared types
    console.print("[bold cyan]Types[/bold cyan]")
    type_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    type_table.add_column("Name", style="white")
    type_table.add_column("Kind", style="dim")
    type_table.add_column("Members", style="yellow", justify="right")
    type_table.add_column("Root", style="green")
    type_table.add_column("Flag sets", style="dim")

    for name, type_def in bundle.types.items():
        if type_def.kind in (TypeKind.ENUM, TypeKind.FLAGS):
            members = len(type_def.values)
        else:
            members = len(type_def.attrs)
        variants = ", ".join(_variants(bundle, name)) if type_def.kind == TypeKind.ENUM else ""
        root = "yes" if type_def.root else ""
        type_table.add_row(name, type_def.kind.value, str(members), root, variants)

    console.print(type_table)
    console.print()

    # Struct layouts
    if not bundle.layouts:
        return
    console.print("[bold cyan]Structs[/bold cyan]")
    struct_table = Table(show_header=True, box=None, padding=(0, 2, 0, 0))
    struct_table.add_column("Name", style="white")
    struct_table.add_column("Size", style="yellow", justify="right")
    struct_table.add_column("Kind", style="dim")
    struct_table.add_column("Not decoded", style="dim")

    for name, layout in bundle.layouts.items():
        size = f"{layout.length} bytes" if layout.is_static else str(layout.length)
        if layout.expandable:
            size = f">= {size}"
        struct_table.add_row(name, size, layout.kind.value, ", ".join(layout.dropped))

    console.print(struct_table)


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
