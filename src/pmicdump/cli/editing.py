"""Edit and reset commands that write a modified dump."""

from __future__ import annotations

from pathlib import Path

import click


def _output_path(dump_file: str, output: str | None) -> str:
    if output:
        return output
    src = Path(dump_file)
    return str(src.with_name(f"{src.stem}_edited{src.suffix or '.bin'}"))


def _save(ctx: click.Context, dump, dump_file: str, output: str | None) -> str | None:
    from pmicdump.core.editor import export_dump
    from pmicdump.exceptions import FileAccessError

    target = _output_path(dump_file, output)
    try:
        export_dump(dump, target)
    except FileAccessError as exc:
        click.echo(f"ERROR: {exc}", err=True)
        ctx.exit(1)
        return None
    return target


@click.command()
@click.argument("dump_file", type=click.Path(dir_okay=False))
@click.argument("address")
@click.argument("value")
@click.option("--field", "field_name", default=None,
              help="Edit one bit field; VALUE is then a physical value, label or number")
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None,
              help="Output file (default: <dump>_edited.bin)")
@click.pass_context
def edit(
    ctx: click.Context,
    dump_file: str,
    address: str,
    value: str,
    field_name: str | None,
    output: str | None,
) -> None:
    """Change a register (or one of its fields) and save the result."""
    from pmicdump.cli.main import _echo_json, _load_dump, parse_address, parse_byte
    from pmicdump.core.editor import apply_field_edit, edit_register
    from pmicdump.exceptions import FieldEncodeError, FieldNotFoundError

    addr = parse_address(address)
    dump = _load_dump(ctx, dump_file)
    old = dump[addr].raw_value

    try:
        if field_name:
            result = apply_field_edit(dump, addr, field_name, value)
        else:
            result = edit_register(dump, addr, parse_byte(value))
    except (FieldNotFoundError, FieldEncodeError) as exc:
        click.echo(f"ERROR: {exc}", err=True)
        ctx.exit(1)
        return

    if not result.valid:
        if ctx.obj.get("json_output"):
            _echo_json({"valid": False, "reason": result.reason})
        else:
            click.echo(f"REJECTED: {result.reason}", err=True)
        ctx.exit(1)
        return

    target = _save(ctx, dump, dump_file, output)
    reg = dump[addr]
    if ctx.obj.get("json_output"):
        _echo_json({
            "valid": True,
            "note": result.reason,
            "address": addr,
            "old": old,
            "new": reg.raw_value,
            "decoded": reg.decoded_value,
            "output": target,
        })
        return

    click.echo(f"{reg.addr_hex} {reg.name}: 0x{old:02X} -> {reg.val_hex} ({reg.decoded_value})")
    if result.reason:
        click.echo(result.reason)
    click.echo(f"Saved to {target}")


@click.command()
@click.argument("dump_file", type=click.Path(dir_okay=False))
@click.option("--address", "addresses", multiple=True,
              help="Register to reset (repeatable; default: every changed register)")
@click.option("--output", "-o", type=click.Path(dir_okay=False), default=None,
              help="Output file (default: <dump>_edited.bin)")
@click.pass_context
def reset(ctx: click.Context, dump_file: str, addresses: tuple[str, ...], output: str | None) -> None:
    """Restore registers to their factory defaults and save the result."""
    from pmicdump.cli.main import _echo_json, _load_dump, parse_address
    from pmicdump.core.editor import reset_all_changes, reset_to_default

    targets = [parse_address(a) for a in addresses]
    dump = _load_dump(ctx, dump_file)

    if targets:
        for addr in targets:
            reset_to_default(dump, addr)
        restored = targets
    else:
        restored = reset_all_changes(dump)

    target = _save(ctx, dump, dump_file, output)
    if ctx.obj.get("json_output"):
        _echo_json({"reset": restored, "output": target})
        return

    click.echo(f"Reset {len(restored)} register(s) to default.")
    click.echo(f"Saved to {target}")
