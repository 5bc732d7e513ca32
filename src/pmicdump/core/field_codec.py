"""Generic bit-field decode/encode.

Decoding turns an extracted field value into display text according to the
field's kind and scale. Encoding is the best-effort inverse: it accepts a
bare number, the text produced by ``decode_field``, an enum key or label, a
``0x`` literal, or a flag keyword.

The physical mapping of a field is carried by its ``FieldScale`` tag. Tags
are normally resolved by the definition loader; fields built without one are
resolved on the fly with ``infer_field_scale``.
"""

from __future__ import annotations

import re
from typing import NamedTuple

from pmicdump.exceptions import FieldEncodeError
from pmicdump.models.definitions import FieldDefinition, FieldKind, FieldScale
from pmicdump.utils.logging import get_logger

logger = get_logger(__name__)

SETPOINT_STEP_MV = 5
CURRENT_STEP_A = 0.125
POWER_STEP_W = 0.125
SOFT_START_BASE_MS = 1

_SETPOINT_BASE_MV: dict[FieldScale, int] = {
    FieldScale.SETPOINT_800MV: 800,
    FieldScale.SETPOINT_1500MV: 1500,
}


class ScaleEntry(NamedTuple):
    """One code of a discrete physical table."""

    label: str
    value: float


def _table(*entries: tuple[str, float]) -> tuple[ScaleEntry, ...]:
    return tuple(ScaleEntry(label, value) for label, value in entries)


_SOFT_STOP_TABLE = _table(("0.5ms", 0.5), ("1ms", 1), ("2ms", 2), ("4ms", 4))

SCALE_TABLES: dict[FieldScale, tuple[ScaleEntry, ...]] = {
    FieldScale.POWER_GOOD_LOW: _table(("-5%", -5.0), ("-7.5%", -7.5)),
    FieldScale.POWER_GOOD_HIGH: _table(
        ("+5% from setting", 5.0), ("+7.5% from setting", 7.5),
        ("+10% from setting", 10.0), ("+2.5% from setting", 2.5),
    ),
    FieldScale.OVER_VOLTAGE: _table(
        ("+7.5% from setting", 7.5), ("+10% from setting", 10.0),
        ("+12.5% from setting", 12.5), ("+5% from setting", 5.0),
    ),
    FieldScale.UNDER_VOLTAGE_LOCKOUT: _table(
        ("-10% from setting", -10.0), ("-12.5% from setting", -12.5),
        ("-5% from setting", -5.0), ("-7.5% from setting", -7.5),
    ),
    FieldScale.OC_SWA_SWB: _table(("3.0A", 3.0), ("3.5A", 3.5), ("4.0A", 4.0), ("4.5A", 4.5)),
    FieldScale.OC_SWC: _table(("0.5A", 0.5), ("1.0A", 1.0), ("1.5A", 1.5), ("2.0A", 2.0)),
    FieldScale.TEMP_MEASUREMENT: _table(
        ("< 80°C (±5°C)", 80), ("85°C (±5°C)", 85), ("95°C (±5°C)", 95),
        ("105°C (±5°C)", 105), ("115°C (±5°C)", 115), ("125°C (±5°C)", 125),
        ("135°C (±5°C)", 135), ("≥ 140°C (±5°C)", 140),
    ),
    FieldScale.OTP_THRESHOLD: _table(
        ("105°C", 105), ("115°C", 115), ("125°C", 125), ("135°C", 135), ("145°C", 145),
    ),
    FieldScale.SOFT_STOP: _SOFT_STOP_TABLE,
    FieldScale.SST_SWA_SWB: _SOFT_STOP_TABLE,
    FieldScale.SST_SWC: _table(("1ms", 1), ("2ms", 2), ("4ms", 4), ("8ms", 8)),
    FieldScale.SWITCHING_FREQUENCY: _table(
        ("750kHz", 750), ("1000kHz", 1000), ("1250kHz", 1250), ("1500kHz", 1500),
    ),
}

# Tables where an off-table number snaps to the closest code
_NEAREST_SCALES = frozenset({
    FieldScale.POWER_GOOD_LOW,
    FieldScale.POWER_GOOD_HIGH,
    FieldScale.OVER_VOLTAGE,
    FieldScale.UNDER_VOLTAGE_LOCKOUT,
    FieldScale.OC_SWA_SWB,
    FieldScale.OC_SWC,
    FieldScale.TEMP_MEASUREMENT,
    FieldScale.OTP_THRESHOLD,
})

_PHYSICAL_KINDS = frozenset({
    FieldKind.VOLTAGE,
    FieldKind.CURRENT,
    FieldKind.POWER,
    FieldKind.TIME,
    FieldKind.FREQUENCY,
    FieldKind.TEMPERATURE,
})

_UNITS: dict[FieldKind, str] = {
    FieldKind.VOLTAGE: "V",
    FieldKind.CURRENT: "A",
    FieldKind.POWER: "W",
    FieldKind.TEMPERATURE: "°C",
    FieldKind.TIME: "ms",
    FieldKind.FREQUENCY: "kHz",
    FieldKind.BINARY: "binary",
}

_SET_WORDS = frozenset({"1", "true", "set", "on", "yes"})
_CLEAR_WORDS = frozenset({"0", "false", "clear", "off", "no"})

_STRICT_NUMBER_RE = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)\s*$")
_LEADING_NUMBER_RE = re.compile(r"^\s*([+-]?(?:\d+(?:\.\d*)?|\.\d+))(?![\d.xX])")
_HEX_RE = re.compile(r"^\s*0[xX]([0-9a-fA-F]+)")
_ECHO_SUFFIX_RE = re.compile(r"\s*\(\s*-?\d+\s*\)\s*$")


# ---------------------------------------------------------------------------
# Scale resolution
# ---------------------------------------------------------------------------


def infer_field_scale(field: FieldDefinition, register_name: str = "") -> FieldScale | None:
    """Derive a field's scale tag from its kind and the naming conventions
    of the RTQ5132 register map.

    Returns None for kinds that carry no physical mapping.
    """
    if field.kind not in _PHYSICAL_KINDS:
        return None

    fname = field.name.upper()
    rname = register_name.upper()

    if field.kind is FieldKind.VOLTAGE:
        if "PGL" in fname:
            return FieldScale.POWER_GOOD_LOW
        if "PGH" in fname:
            return FieldScale.POWER_GOOD_HIGH
        if "UVLO" in fname:
            return FieldScale.UNDER_VOLTAGE_LOCKOUT
        if "OV" in fname:
            return FieldScale.OVER_VOLTAGE
        if "SWA_VOLT" in rname or "SWB_VOLT" in rname:
            return FieldScale.SETPOINT_800MV
        if "SWC_VOLT" in rname:
            return FieldScale.SETPOINT_1500MV
        return FieldScale.GENERIC

    if field.kind is FieldKind.CURRENT:
        if "HIGH_CURRENT" in fname or "CONSUMPTION" in fname:
            return FieldScale.CURRENT_STEP
        if "A_OC" in fname or "B_OC" in fname:
            return FieldScale.OC_SWA_SWB
        if "C_OC" in fname:
            return FieldScale.OC_SWC
        return FieldScale.GENERIC

    if field.kind is FieldKind.TEMPERATURE:
        if "HTW" in fname or "TEMP_MEAS" in fname:
            return FieldScale.TEMP_MEASUREMENT
        if "OTP" in fname:
            return FieldScale.OTP_THRESHOLD
        return FieldScale.GENERIC

    if field.kind is FieldKind.TIME:
        if "SOFT_STOP_TIME" in fname:
            return FieldScale.SOFT_STOP
        if "SST" in fname:
            if "SWA" in rname or "SWB" in rname:
                return FieldScale.SST_SWA_SWB
            if "SWC" in rname:
                return FieldScale.SST_SWC
            return FieldScale.GENERIC
        if "SOFT_START" in fname:
            return FieldScale.SOFT_START
        return FieldScale.GENERIC

    if field.kind is FieldKind.POWER:
        return FieldScale.POWER_STEP

    return FieldScale.SWITCHING_FREQUENCY


def resolve_field_scale(field: FieldDefinition, register_name: str = "") -> FieldDefinition:
    """Return the field with its scale tag filled in (unchanged if already set)."""
    if field.scale is not None:
        return field
    scale = infer_field_scale(field, register_name)
    if scale is None:
        return field
    return field.model_copy(update={"scale": scale})


def _scale_of(field: FieldDefinition, register_name: str) -> FieldScale:
    return field.scale or infer_field_scale(field, register_name) or FieldScale.GENERIC


def field_unit(kind: FieldKind) -> str:
    """Physical unit label for a field kind ("" when unitless)."""
    return _UNITS.get(kind, "")


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------


def _raw_text(value: int) -> str:
    return f"0x{value:X} ({value})"


def _table_label(scale: FieldScale, value: int) -> str:
    table = SCALE_TABLES[scale]
    if scale is FieldScale.POWER_GOOD_LOW:
        return table[0].label if value == 0 else table[1].label
    if 0 <= value < len(table):
        return table[value].label
    return str(value)


def _decode_physical(field: FieldDefinition, value: int, register_name: str) -> str:
    scale = _scale_of(field, register_name)

    if scale in _SETPOINT_BASE_MV:
        mv = _SETPOINT_BASE_MV[scale] + value * SETPOINT_STEP_MV
        return f"{mv / 1000:.3f}V ({mv}mV)"
    if scale in SCALE_TABLES:
        return _table_label(scale, value)
    if scale is FieldScale.CURRENT_STEP:
        return f"{value * CURRENT_STEP_A:.3f}A"
    if scale is FieldScale.POWER_STEP:
        return f"{value * POWER_STEP_W:.3f}W"
    if scale is FieldScale.SOFT_START:
        return f"{SOFT_START_BASE_MS + value}ms"

    kind = field.kind
    if kind is FieldKind.VOLTAGE:
        return f"{value} (Voltage setting)"
    if kind is FieldKind.CURRENT:
        return f"{value} (Current setting)"
    if kind is FieldKind.TEMPERATURE:
        return f"{value}°C"
    if kind is FieldKind.TIME:
        return f"{value}ms"
    if kind is FieldKind.POWER:
        return f"{value * POWER_STEP_W:.3f}W"
    return _table_label(FieldScale.SWITCHING_FREQUENCY, value)


def decode_flag(field: FieldDefinition, value: int) -> str:
    """Active/Inactive text for a flag; only a value of exactly 1 counts as set."""
    is_set = value == 1
    if field.active_high is False:
        active = not is_set
    else:
        active = is_set
    return "Active" if active else "Inactive"


def decode_field(field: FieldDefinition, value: int, register_name: str = "") -> str:
    """Render an extracted field value as display text.

    Args:
        field: Field definition.
        value: Field value already shifted down to bit 0.
        register_name: Owning register's short name, used only when the
            field has no scale tag yet.
    """
    if field.kind is FieldKind.RESERVED:
        return _raw_text(value)

    if field.enum_values:
        label = field.enum_values.get(str(value))
        if label is not None:
            return f"{label} ({value})"

    kind = field.kind
    if kind is FieldKind.FLAG:
        return decode_flag(field, value)
    if kind in _PHYSICAL_KINDS:
        return _decode_physical(field, value, register_name)
    if kind is FieldKind.RAW:
        return _raw_text(value)
    if kind is FieldKind.BINARY:
        return format(value, f"0{field.width}b")
    return str(value)


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------


def _match_table_number(
    field: FieldDefinition, scale: FieldScale, number: float, bare_integer: bool
) -> int:
    table = SCALE_TABLES[scale]
    # A bare integer outside the table is the decoder's echo of an unmapped code
    if bare_integer and number.is_integer() and len(table) <= number <= field.max_value:
        return int(number)

    for index, entry in enumerate(table):
        if abs(entry.value - number) < 1e-9 or abs(abs(entry.value) - abs(number)) < 1e-9:
            return index

    if scale in _NEAREST_SCALES:
        return min(
            range(len(table)),
            key=lambda i: abs(abs(table[i].value) - abs(number)),
        )
    return int(round(number))


def _encode_physical(
    field: FieldDefinition, number: float, register_name: str, bare_integer: bool
) -> int:
    scale = _scale_of(field, register_name)

    if scale in _SETPOINT_BASE_MV:
        # Values that look like millivolts are taken as such
        mv = number if abs(number) >= 100 else number * 1000
        code = int(round((mv - _SETPOINT_BASE_MV[scale]) / SETPOINT_STEP_MV))
        return max(0, min(field.max_value, code))
    if scale in SCALE_TABLES:
        return _match_table_number(field, scale, number, bare_integer)
    if field.kind is FieldKind.FREQUENCY:
        return _match_table_number(
            field, FieldScale.SWITCHING_FREQUENCY, number, bare_integer
        )
    if scale is FieldScale.CURRENT_STEP:
        return int(round(number / CURRENT_STEP_A))
    if scale is FieldScale.POWER_STEP or field.kind is FieldKind.POWER:
        return int(round(number / POWER_STEP_W))
    if scale is FieldScale.SOFT_START:
        return int(round(number - SOFT_START_BASE_MS))
    return int(round(number))


def _encode_number(
    field: FieldDefinition, number: float, text: str, register_name: str, bare: bool
) -> int | None:
    kind = field.kind
    if kind in _PHYSICAL_KINDS:
        return _encode_physical(field, number, register_name, bare)
    if kind is FieldKind.BINARY:
        digits = text.strip()
        try:
            return int(digits, 2)
        except ValueError:
            return None
    if kind is FieldKind.FLAG:
        return 1 if number else 0
    return int(number)


def _encode_flag(field: FieldDefinition, text: str) -> int | None:
    word = text.strip().lower()
    if word == "active":
        return 0 if field.active_high is False else 1
    if word == "inactive":
        return 1 if field.active_high is False else 0
    if word in _SET_WORDS:
        return 1
    if word in _CLEAR_WORDS:
        return 0
    return None


def _enum_key_value(key: str) -> int:
    key = key.strip()
    if key[:2].lower() == "0x":
        return int(key[2:], 16)
    return int(key)


def _match_enum(field: FieldDefinition, text: str) -> int | None:
    if not field.enum_values:
        return None
    candidates = {text.strip().lower(), _ECHO_SUFFIX_RE.sub("", text).strip().lower()}
    for key, label in field.enum_values.items():
        if key.lower() in candidates or label.strip().lower() in candidates:
            try:
                return _enum_key_value(key)
            except ValueError:
                logger.warning("enum_key_not_numeric", field=field.name, key=key)
                return None
    return None


def _match_table_label(field: FieldDefinition, text: str, register_name: str) -> int | None:
    if field.kind not in _PHYSICAL_KINDS:
        return None
    scale = _scale_of(field, register_name)
    if field.kind is FieldKind.FREQUENCY and scale not in SCALE_TABLES:
        scale = FieldScale.SWITCHING_FREQUENCY
    table = SCALE_TABLES.get(scale)
    if table is None:
        return None
    wanted = " ".join(text.split()).lower()
    for index, entry in enumerate(table):
        if " ".join(entry.label.split()).lower() == wanted:
            return index
    return None


def _encode(field: FieldDefinition, text: str, register_name: str) -> int | None:
    if not text or not text.strip():
        return None

    if field.kind is FieldKind.FLAG:
        flag = _encode_flag(field, text)
        if flag is not None:
            return flag

    if _STRICT_NUMBER_RE.match(text):
        value = _encode_number(field, float(text), text, register_name, bare=True)
        if value is not None:
            return value

    enum_value = _match_enum(field, text)
    if enum_value is not None:
        return enum_value

    table_value = _match_table_label(field, text, register_name)
    if table_value is not None:
        return table_value

    hex_match = _HEX_RE.match(text)
    if hex_match is not None:
        return int(hex_match.group(1), 16)

    # Decoder output such as "1.050V (1050mV)" or "0.625A"
    leading = _LEADING_NUMBER_RE.match(text)
    if leading is not None and field.kind is not FieldKind.BINARY:
        return _encode_number(field, float(leading.group(1)), text, register_name, bare=False)

    return None


def encode_field(
    field: FieldDefinition, text: str, register_name: str = "", strict: bool = False
) -> int:
    """Convert display or physical text back into a raw field value.

    Args:
        field: Field definition.
        text: Number (in the field's physical unit), decoder output, enum key
            or label, ``0x`` literal, or flag keyword.
        register_name: Owning register's short name, used only when the
            field has no scale tag yet.
        strict: Raise instead of returning 0 when the text is not understood.

    Returns:
        The field value, not yet shifted into register position.

    Raises:
        FieldEncodeError: If ``strict`` and the text could not be interpreted.
    """
    value = _encode(field, text, register_name)
    if value is None:
        if strict:
            raise FieldEncodeError(f"Cannot encode {text!r} for field '{field.name}'")
        logger.debug("field_encode_fallback", field=field.name, text=text)
        return 0
    return value
