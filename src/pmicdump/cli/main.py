"""pmicdump CLI - decode and inspect RTQ5132 PMIC register dumps."""

from __future__ import annotations

import json

import click

from pmicdump.utils.logging import setup_logging


def parse_address(value: str) -> int:
    """Parse a hex/decimal register address like '0x21' or '33'.

    Raises click.BadParameter if the value is not an address in 0x00-0xFF.
    """
    try:
        address = int(value, 0)
    except ValueError as exc:
        raise click.BadParameter(f"Invalid address: {value!r} (use hex like 0x21 or decimal)") from exc
    if not 0 <= address <= 0xFF:
        raise click.BadParameter(f"Address {value} is outside 0x00-0xFF")
    return address


def parse_byte(value: str) -> int:
    try:
        byte = int(value, 0)
    except ValueError as exc:
        raise click.BadParameter(f"Invalid byte value: {value!r}") from exc
    if not 0 <= byte <= 0xFF:
        raise click.BadParameter(f"Value {value} is outside 0x00-0xFF")
    return byte


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.option(
    "--definitions",
    "definitions_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Register map JSON (or set PMICDUMP_DEFINITIONS env var)",
)
@click.pass_context
def cli(ctx: click.Context, debug: bool, json_output: bool, definitions_path: str | None) -> None:
    """pmicdump - RTQ5132 PMIC register dump decoder and editor."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["json_output"] = json_output
    ctx.obj["definitions_path"] = definitions_path
    setup_logging(level="DEBUG" if debug else "WARNING", json_output=json_output)


def _get_definitions(ctx: click.Context):
    """Resolve the register map, honouring --definitions."""
    from pmicdump.core.definitions import load_definitions, reload_definitions

    path = ctx.obj.get("definitions_path")
    if path:
        return reload_definitions(path)
    return load_definitions()


def _load_dump(ctx: click.Context, path: str):
    """Parse a dump file, exiting with an error message if it cannot be read."""
    from pmicdump.core.dump_parser import parse_dump_file
    from pmicdump.exceptions import DumpReadError

    try:
        return parse_dump_file(path, definitions=_get_definitions(ctx))
    except DumpReadError as exc:
        click.echo(f"ERROR: {exc}", err=True)
        ctx.exit(1)
        return None


def _echo_json(payload: object) -> None:
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def _flags(view) -> str:
    marks = []
    if view.is_changed:
        marks.append("*")
    if view.is_critical:
        marks.append("!")
    if view.is_protected:
        marks.append("P")
    return "".join(marks)


def _print_table(views) -> None:
    click.echo(f"{'Addr':<5} {'Name':<22} {'Raw':<5} {'Dflt':<5} {'Flags':<5} Decoded")
    click.echo("-" * 78)
    for v in views:
        click.echo(
            f"0x{v.address:02X}  {v.name:<22} 0x{v.raw_value:02X}  0x{v.default_value:02X}  "
            f"{_flags(v):<5} {v.decoded_value}"
        )


@cli.command()
@click.argument("dump_file", type=click.Path(dir_okay=False))
@click.option("--category", default=None, help="Only show registers in this category")
@click.option("--all", "show_all", is_flag=True, help="Include reserved registers")
@click.pass_context
def show(ctx: click.Context, dump_file: str, category: str | None, show_all: bool) -> None:
    """Decode a dump file and list its registers."""
    from pmicdump.core.classifier import classify, summarize

    dump = _load_dump(ctx, dump_file)
    views = [classify(r) for r in dump.ordered()]
    if category:
        views = [v for v in views if v.category.lower() == category.lower()]
    if not show_all:
        views = [v for v in views if not v.is_reserved or v.is_changed]

    summary = summarize(dump)
    if ctx.obj.get("json_output"):
        _echo_json({
            "summary": summary.model_dump(mode="json"),
            "registers": [v.model_dump(mode="json") for v in views],
        })
        return

    click.echo(f"Dump: {summary.source}  Model: {summary.pmic_model}")
    click.echo(
        f"  Registers: {summary.total_registers}  Changed: {summary.changed}  "
        f"Protected: {summary.protected}  Critical: {summary.critical}"
    )
    if summary.size_mismatch:
        expected, actual = summary.size_mismatch
        click.echo(f"  WARNING: expected {expected} bytes, got {actual}")
    click.echo("")
    _print_table(views)


@cli.command()
@click.argument("dump_file", type=click.Path(dir_okay=False))
@click.pass_context
def changed(ctx: click.Context, dump_file: str) -> None:
    """List registers that differ from their factory defaults."""
    from pmicdump.core.classifier import classify

    dump = _load_dump(ctx, dump_file)
    views = [classify(r) for r in dump.changed]

    if ctx.obj.get("json_output"):
        _echo_json([v.model_dump(mode="json") for v in views])
        return

    if not views:
        click.echo("No changed registers.")
        return
    click.echo(f"{len(views)} changed register(s):")
    _print_table(views)
    critical = [v for v in views if v.is_critical]
    if critical:
        click.echo(f"\n{len(critical)} critical change(s): " + ", ".join(v.name for v in critical))


@cli.command()
@click.argument("dump_file", type=click.Path(dir_okay=False))
@click.argument("address")
@click.pass_context
def register(ctx: click.Context, dump_file: str, address: str) -> None:
    """Show one register with its bit fields."""
    from pmicdump.core.bits import extract
    from pmicdump.core.classifier import classify
    from pmicdump.core.field_codec import decode_field

    addr = parse_address(address)
    dump = _load_dump(ctx, dump_file)
    reg = dump[addr]
    view = classify(reg)
    definition = reg.definition

    fields = []
    for field in definition.bit_fields:
        value = extract(reg.raw_value, field.bit_range)
        fields.append({
            "bits": field.bits,
            "name": field.name,
            "kind": field.kind.value,
            "value": value,
            "decoded": decode_field(field, value, definition.name),
        })

    if ctx.obj.get("json_output"):
        _echo_json({**view.model_dump(mode="json"), "fields": fields})
        return

    click.echo(f"{reg.addr_hex} {reg.name} - {reg.full_name}")
    click.echo(f"  Category: {reg.category}  Access: {view.access or '-'}")
    click.echo(f"  Raw: {reg.val_hex}  Default: {reg.default_hex}  Changed: {view.is_changed}")
    click.echo(f"  Decoded: {reg.decoded_value}")
    bits = "".join("1" if b else "0" for b in reversed(reg.bit_states))
    click.echo(f"  Bits [7..0]: {bits}")
    if reg.description:
        click.echo(f"  {reg.description}")
    if view.is_critical:
        click.echo("  CRITICAL: deviates more than 23% from default")
    if fields:
        click.echo("  Fields:")
        for f in fields:
            click.echo(f"    [{f['bits']:>3}] {f['name']:<28} {f['decoded']}")


@cli.command()
@click.option("--export", "export_path", type=click.Path(dir_okay=False), default=None,
              help="Write the active register map to this file")
@click.pass_context
def definitions(ctx: click.Context, export_path: str | None) -> None:
    """Show which register map is in use."""
    from pmicdump.core.classifier import is_reserved_definition
    from pmicdump.core.definitions import export_definition_file
    from pmicdump.exceptions import FileAccessError

    defs = _get_definitions(ctx)
    defined = [r for r in defs.registers if not is_reserved_definition(r)]
    special = [r for r in defs.registers if r.special]

    if export_path:
        try:
            export_definition_file(defs, export_path)
        except FileAccessError as exc:
            click.echo(f"ERROR: {exc}", err=True)
            ctx.exit(1)
            return

    info = {
        "source": defs.source,
        "fallback": defs.is_fallback,
        "model": defs.pmic_model,
        "version": defs.version,
        "registers": len(defs),
        "defined": len(defined),
        "special": len(special),
    }
    if ctx.obj.get("json_output"):
        _echo_json(info)
        return

    click.echo(f"Register map: {defs.source or '(generated default map)'}")
    click.echo(f"  Model: {defs.pmic_model}  Version: {defs.version}")
    click.echo(f"  Registers: {len(defs)}  Defined: {len(defined)}  Special decoders: {len(special)}")
    if export_path:
        click.echo(f"  Exported to {export_path}")


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address (0.0.0.0 for network access)")
@click.option("--port", type=int, default=8000, help="HTTP port")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Start the REST API server."""
    import uvicorn
    from pmicdump.api.app import create_app

    app = create_app(definitions_path=ctx.obj.get("definitions_path"))
    uvicorn.run(app, host=host, port=port)


# Register edit commands
from pmicdump.cli.editing import edit, reset  # noqa: E402

cli.add_command(edit)
cli.add_command(reset)


if __name__ == "__main__":
    cli()
