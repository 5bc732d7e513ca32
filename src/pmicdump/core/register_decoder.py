"""Register-level decoding: special decoders first, then per-field decoding."""

from __future__ import annotations

from pmicdump.core.bits import extract
from pmicdump.core.field_codec import decode_field
from pmicdump.core.special_decoders import get_special_decoder
from pmicdump.models.definitions import FieldKind, RegisterDefinition
from pmicdump.models.dump import ParsedRegister
from pmicdump.utils.logging import get_logger

logger = get_logger(__name__)


def decode_fields(definition: RegisterDefinition, raw: int) -> list[tuple[str, str]]:
    """Decode every non-reserved field of a register.

    Returns:
        ``(field name, decoded text)`` pairs in definition order.
    """
    results: list[tuple[str, str]] = []
    for field in definition.bit_fields:
        if field.kind is FieldKind.RESERVED:
            continue
        value = extract(raw, field.bit_range)
        results.append((field.name, decode_field(field, value, definition.name)))
    return results


def decode_value(definition: RegisterDefinition, raw: int) -> str:
    """Decode a raw register byte according to its definition."""
    if definition.special:
        decoder = get_special_decoder(definition.special)
        if decoder is not None:
            return decoder(raw)
        logger.debug(
            "special_decoder_unknown",
            address=definition.addr_hex,
            special=definition.special,
        )

    if not definition.bit_fields:
        return f"0x{raw:02X}"

    parts = [f"{name}: {text}" for name, text in decode_fields(definition, raw)]
    return "; ".join(parts) if parts else f"0x{raw:02X}"


def decode_register(register: ParsedRegister) -> str:
    """Decode a parsed register's current raw value."""
    return decode_value(register.definition, register.raw_value)
