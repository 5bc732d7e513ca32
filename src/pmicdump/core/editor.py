"""Edit validation and application for parsed dumps.

``validate_value`` never raises; it reports the outcome as a
``ValidationResult``. ``apply_edit`` does no validation of its own and keeps
the parsed register and the raw buffer in step.
"""

from __future__ import annotations

import os
from typing import NamedTuple

from pmicdump.core.bits import bit_states, extract, fits_field, insert_field
from pmicdump.core.classifier import can_edit
from pmicdump.core.field_codec import encode_field
from pmicdump.core.file_io import write_bytes
from pmicdump.core.register_decoder import decode_register
from pmicdump.exceptions import FieldEncodeError, FieldNotFoundError, RegisterNotFoundError
from pmicdump.hardware.rtq5132 import PROTECTED_END, PROTECTED_START, in_protected_region
from pmicdump.models.definitions import AccessKind, FieldKind, RegisterDefinition
from pmicdump.models.dump import Dump, ParsedRegister
from pmicdump.utils.logging import get_logger

logger = get_logger(__name__)

_READ_ONLY_ACCESS = frozenset({AccessKind.RO, AccessKind.ROE, AccessKind.RV})


class ValidationResult(NamedTuple):
    """Outcome of an edit check. ``reason`` may carry a note even when valid."""

    valid: bool
    reason: str = ""


def validate_value(
    definition: RegisterDefinition, new_raw: int, original_raw: int | None = None
) -> ValidationResult:
    """Check whether ``new_raw`` may be written to a register.

    Checks, in order: access kind, the protected vendor region, the
    write-one-to-clear advisory, then every non-reserved field's range and
    enumeration table.

    Args:
        definition: Register definition.
        new_raw: Proposed byte.
        original_raw: Current byte, needed for the write-one-to-clear note.

    Returns:
        ValidationResult with a human readable reason on rejection.
    """
    if not 0 <= new_raw <= 0xFF:
        return ValidationResult(False, f"Value {new_raw} is not a byte (0-255)")

    access = definition.access
    if access is None or access in _READ_ONLY_ACCESS:
        kind = access.value if access is not None else "unset"
        return ValidationResult(False, f"Register is {kind} (Read-Only/Reserved) and cannot be modified")

    if in_protected_region(definition.address) and definition.protected is not True:
        return ValidationResult(
            False,
            f"Register is in protected DIMM vendor region "
            f"(0x{PROTECTED_START:02X}-0x{PROTECTED_END:02X})",
        )

    note = ""
    if access is AccessKind.W1O and original_raw is not None:
        if new_raw != 0 and (new_raw & original_raw) != original_raw:
            note = "Note: Writing 1 to W1O register will clear corresponding bits"

    for field in definition.bit_fields:
        if field.kind is FieldKind.RESERVED:
            continue
        value = extract(new_raw, field.bit_range)
        if field.enum_values and str(value) not in field.enum_values:
            valid_values = ", ".join(field.enum_values)
            return ValidationResult(
                False,
                f"Field '{field.name}' value {value} is not valid. Valid values: {valid_values}",
            )
        if value > field.max_value:
            return ValidationResult(
                False, f"Field '{field.name}' value {value} exceeds maximum {field.max_value}"
            )

    return ValidationResult(True, note)


def _register(dump: Dump, address: int) -> ParsedRegister:
    register = dump.registers.get(address)
    if register is None:
        raise RegisterNotFoundError(
            f"No register at 0x{address:02X} in dump", address=address
        )
    return register


def apply_edit(dump: Dump, address: int, new_raw: int) -> ParsedRegister:
    """Write a byte into the dump.

    The parsed register's raw value, decoded text and bit states are
    re-derived and the raw buffer is updated in the same step.

    Raises:
        RegisterNotFoundError: If the dump has no register at ``address``.
        ValueError: If ``new_raw`` is not a byte.
    """
    register = _register(dump, address)
    if not 0 <= new_raw <= 0xFF:
        raise ValueError(f"Value {new_raw} is not a byte (0-255)")

    old_raw = register.raw_value
    register.raw_value = new_raw
    register.decoded_value = decode_register(register)
    register.bit_states = bit_states(new_raw)
    dump.raw_data[address] = new_raw

    logger.debug(
        "register_edited",
        address=register.addr_hex,
        name=register.name,
        old=f"0x{old_raw:02X}",
        new=register.val_hex,
    )
    return register


def check_edit(register: ParsedRegister, new_raw: int) -> ValidationResult:
    """``validate_value`` against the register's current byte.

    Reserved registers are refused even when ``validate_value`` accepts
    the byte.
    """
    result = validate_value(register.definition, new_raw, register.raw_value)
    if result.valid and not can_edit(register):
        return ValidationResult(False, f"Register {register.name} is reserved and cannot be edited")
    return result


def edit_register(dump: Dump, address: int, new_raw: int) -> ValidationResult:
    """Validate and, if allowed, apply a whole-byte edit."""
    register = _register(dump, address)
    result = check_edit(register, new_raw)
    if result.valid:
        apply_edit(dump, address, new_raw)
    else:
        logger.info("edit_rejected", address=register.addr_hex, reason=result.reason)
    return result


def compose_field_edit(
    definition: RegisterDefinition,
    current_raw: int,
    field_name: str,
    text: str,
    strict: bool = True,
) -> int:
    """Encode ``text`` into one field and return the resulting register byte.

    Raises:
        FieldNotFoundError: If the register has no field named ``field_name``.
        FieldEncodeError: If ``strict`` and the text cannot be encoded, or if
            the encoded value does not fit the field.
    """
    field = definition.field_named(field_name)
    if field is None:
        raise FieldNotFoundError(
            f"Register {definition.name or definition.addr_hex} has no field '{field_name}'",
            address=definition.address,
        )

    value = encode_field(field, text, definition.name, strict=strict)
    bits = field.bit_range
    if not fits_field(value, bits.hi, bits.lo):
        raise FieldEncodeError(
            f"Field '{field.name}' value {value} exceeds maximum {field.max_value}",
            address=definition.address,
        )
    return insert_field(current_raw, bits.hi, bits.lo, value)


def apply_field_edit(
    dump: Dump, address: int, field_name: str, text: str, strict: bool = True
) -> ValidationResult:
    """Encode ``text`` into one field of a register and apply the result.

    Raises:
        RegisterNotFoundError: If the dump has no register at ``address``.
        FieldNotFoundError: If the register has no field named ``field_name``.
        FieldEncodeError: If the text cannot be encoded into the field.
    """
    register = _register(dump, address)
    new_raw = compose_field_edit(register.definition, register.raw_value, field_name, text, strict)
    return edit_register(dump, address, new_raw)


def reset_to_default(dump: Dump, address: int) -> ParsedRegister:
    register = _register(dump, address)
    return apply_edit(dump, address, register.default_value)


def reset_all_changes(dump: Dump) -> list[int]:
    """Restore every changed register to its default.

    Returns:
        Addresses that were reset.
    """
    addresses = [reg.address for reg in dump.changed]
    for address in addresses:
        reset_to_default(dump, address)
    if addresses:
        logger.info("dump_reset", source=dump.source, count=len(addresses))
    return addresses


def export_dump(dump: Dump, path: str | os.PathLike[str]) -> None:
    """Write the dump's current raw buffer to a file."""
    write_bytes(path, dump.raw_data)
    logger.info("dump_exported", path=str(path), size=len(dump.raw_data))
