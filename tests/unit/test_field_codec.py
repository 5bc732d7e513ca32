"""Tests for generic bit-field decoding and encoding."""

from __future__ import annotations

import pytest

from pmicdump.core.field_codec import (
    decode_field,
    encode_field,
    field_unit,
    infer_field_scale,
    resolve_field_scale,
)
from pmicdump.exceptions import FieldEncodeError
from pmicdump.models.definitions import FieldDefinition, FieldKind, FieldScale


def _field(definitions, address: int, name: str) -> FieldDefinition:
    field = definitions.lookup(address).field_named(name)
    assert field is not None
    return field


class TestScaleInference:
    """Test infer_field_scale() naming rules."""

    def test_setpoint_from_register_name(self):
        field = FieldDefinition(bits="7:1", name="SETTING", kind=FieldKind.VOLTAGE)
        assert infer_field_scale(field, "SWA_VOLTAGE") is FieldScale.SETPOINT_800MV
        assert infer_field_scale(field, "SWC_VOLTAGE") is FieldScale.SETPOINT_1500MV

    def test_field_name_wins_over_register_name(self):
        field = FieldDefinition(bits="0", name="SWA_PGL", kind=FieldKind.VOLTAGE)
        assert infer_field_scale(field, "SWA_VOLTAGE") is FieldScale.POWER_GOOD_LOW

    def test_threshold_fields(self):
        assert infer_field_scale(
            FieldDefinition(bits="5:4", name="SWA_OV", kind=FieldKind.VOLTAGE)
        ) is FieldScale.OVER_VOLTAGE
        assert infer_field_scale(
            FieldDefinition(bits="3:2", name="SWA_UVLO", kind=FieldKind.VOLTAGE)
        ) is FieldScale.UNDER_VOLTAGE_LOCKOUT

    def test_sst_depends_on_rail(self):
        field = FieldDefinition(bits="1:0", name="SST", kind=FieldKind.TIME)
        assert infer_field_scale(field, "SWB_THRESHOLD") is FieldScale.SST_SWA_SWB
        assert infer_field_scale(field, "SWC_THRESHOLD") is FieldScale.SST_SWC

    def test_non_physical_kind_has_no_scale(self):
        field = FieldDefinition(bits="3:0", name="MASK", kind=FieldKind.BINARY)
        assert infer_field_scale(field, "ANY") is None
        assert resolve_field_scale(field) is field

    def test_explicit_scale_kept(self):
        field = FieldDefinition(
            bits="7:0", name="X", kind=FieldKind.VOLTAGE, scale=FieldScale.GENERIC
        )
        assert resolve_field_scale(field, "SWA_VOLTAGE").scale is FieldScale.GENERIC

    def test_packaged_map_has_resolved_scales(self, definitions):
        assert _field(definitions, 0x21, "SWA_VOLTAGE_SETTING").scale is FieldScale.SETPOINT_800MV
        assert _field(definitions, 0x27, "SWC_VOLTAGE_SETTING").scale is FieldScale.SETPOINT_1500MV
        assert _field(definitions, 0x28, "SWC_SST").scale is FieldScale.SST_SWC
        assert _field(definitions, 0x20, "SWC_OC").scale is FieldScale.OC_SWC


class TestDecodeField:
    """Test decode_field() per field kind."""

    def test_setpoint(self, definitions):
        field = _field(definitions, 0x21, "SWA_VOLTAGE_SETTING")
        assert decode_field(field, 60) == "1.100V (1100mV)"

    def test_swc_setpoint(self, definitions):
        field = _field(definitions, 0x27, "SWC_VOLTAGE_SETTING")
        assert decode_field(field, 60) == "1.800V (1800mV)"

    def test_power_good_low(self, definitions):
        field = _field(definitions, 0x21, "SWA_PGL")
        assert decode_field(field, 0) == "-5%"
        assert decode_field(field, 1) == "-7.5%"

    def test_current_step(self, definitions):
        field = _field(definitions, 0x1C, "SWA_HIGH_CURRENT_WARNING")
        assert decode_field(field, 24) == "3.000A"

    def test_frequency(self, definitions):
        field = _field(definitions, 0x29, "SWA_FSW")
        assert decode_field(field, 0) == "750kHz"
        assert decode_field(field, 3) == "1500kHz"

    def test_soft_start(self, definitions):
        field = _field(definitions, 0x2C, "SWA_SOFT_START")
        assert decode_field(field, 1) == "2ms"

    def test_enum_label(self, definitions):
        field = _field(definitions, 0x29, "SWA_MODE_SELECT")
        assert decode_field(field, 2) == "COT; DCM (2)"

    def test_enum_unlisted_value(self):
        field = FieldDefinition(bits="1:0", name="M", kind=FieldKind.ENUM, enum_values={"0": "Off"})
        assert decode_field(field, 3) == "3"

    def test_flag_polarity(self):
        high = FieldDefinition(bits="0", name="F", kind=FieldKind.FLAG, active_high=True)
        low = FieldDefinition(bits="0", name="F", kind=FieldKind.FLAG, active_high=False)
        unset = FieldDefinition(bits="0", name="F", kind=FieldKind.FLAG)
        assert decode_field(high, 1) == "Active"
        assert decode_field(low, 1) == "Inactive"
        assert decode_field(low, 0) == "Active"
        assert decode_field(unset, 1) == "Active"

    def test_wide_flag_set_only_at_one(self):
        high = FieldDefinition(bits="1:0", name="F", kind=FieldKind.FLAG, active_high=True)
        low = FieldDefinition(bits="1:0", name="F", kind=FieldKind.FLAG, active_high=False)
        assert decode_field(high, 2) == "Inactive"
        assert decode_field(high, 3) == "Inactive"
        assert decode_field(low, 2) == "Active"

    def test_empty_enum_table_uses_kind(self):
        field = FieldDefinition(bits="3:0", name="COUNT", kind=FieldKind.DECIMAL, enum_values={})
        assert decode_field(field, 9) == "9"

    def test_binary_padded_to_width(self):
        field = FieldDefinition(bits="3:1", name="CAP", kind=FieldKind.BINARY)
        assert decode_field(field, 3) == "011"

    def test_raw_and_reserved(self):
        raw = FieldDefinition(bits="7:0", name="R", kind=FieldKind.RAW)
        reserved = FieldDefinition(bits="3:0", name="RSVD")
        assert decode_field(raw, 0x1F) == "0x1F (31)"
        assert decode_field(reserved, 5) == "0x5 (5)"

    def test_generic_voltage(self):
        field = FieldDefinition(bits="3:0", name="LEVEL", kind=FieldKind.VOLTAGE)
        assert decode_field(field, 7, "MISC") == "7 (Voltage setting)"

    def test_units(self):
        assert field_unit(FieldKind.VOLTAGE) == "V"
        assert field_unit(FieldKind.TEMPERATURE) == "°C"
        assert field_unit(FieldKind.FLAG) == ""


class TestEncodeField:
    """Test encode_field() on physical, echoed and keyword input."""

    @pytest.mark.parametrize("text", ["1.1", "1100", "1.100V (1100mV)", "1.1V"])
    def test_setpoint_inputs(self, definitions, text):
        field = _field(definitions, 0x21, "SWA_VOLTAGE_SETTING")
        assert encode_field(field, text) == 60

    def test_setpoint_clamped(self, definitions):
        field = _field(definitions, 0x21, "SWA_VOLTAGE_SETTING")
        assert encode_field(field, "0.5") == 0
        assert encode_field(field, "5.0") == field.max_value

    @pytest.mark.parametrize(
        ("address", "name", "value"),
        [
            (0x1C, "SWA_HIGH_CURRENT_WARNING", 12),
            (0x2C, "SWA_SOFT_START", 2),
            (0x29, "SWA_FSW", 1),
            (0x28, "SWC_SST", 3),
            (0x2E, "OTP_THRESHOLD_SETTING", 2),
            (0x21, "SWA_PGL", 1),
            (0x22, "SWA_OV", 2),
            (0x1B, "SWA_POWER_THRESHOLD", 5),
            (0x29, "SWA_MODE_SELECT", 2),
        ],
    )
    def test_decoded_text_encodes_back(self, definitions, address, name, value):
        field = _field(definitions, address, name)
        register_name = definitions.lookup(address).name
        text = decode_field(field, value, register_name)
        assert encode_field(field, text, register_name) == value

    def test_table_number(self, definitions):
        otp = _field(definitions, 0x2E, "OTP_THRESHOLD_SETTING")
        pgl = _field(definitions, 0x21, "SWA_PGL")
        assert encode_field(otp, "125") == 2
        assert encode_field(pgl, "-5") == 0

    def test_table_snaps_to_nearest(self, definitions):
        oc = _field(definitions, 0x20, "SWA_OC")
        assert encode_field(oc, "3.9") == 2

    def test_enum_label_and_key(self, definitions):
        field = _field(definitions, 0x29, "SWA_MODE_SELECT")
        assert encode_field(field, "COT; CCM") == 3
        assert encode_field(field, "cot; dcm") == 2
        assert encode_field(field, "1") == 1

    def test_binary(self):
        field = FieldDefinition(bits="1:0", name="MASK", kind=FieldKind.BINARY)
        assert encode_field(field, "01") == 1
        assert encode_field(field, "11") == 3

    def test_flag_keywords(self):
        low = FieldDefinition(bits="2", name="EN_N", kind=FieldKind.FLAG, active_high=False)
        assert encode_field(low, "Active") == 0
        assert encode_field(low, "Inactive") == 1
        assert encode_field(low, "on") == 1
        assert encode_field(low, "false") == 0

    def test_hex_literal(self):
        field = FieldDefinition(bits="7:0", name="R", kind=FieldKind.RAW)
        assert encode_field(field, "0x1F") == 0x1F
        assert encode_field(field, "0x1F (31)") == 0x1F

    def test_unparseable_defaults_to_zero(self, definitions):
        field = _field(definitions, 0x21, "SWA_VOLTAGE_SETTING")
        assert encode_field(field, "banana") == 0
        assert encode_field(field, "") == 0

    def test_strict_raises(self, definitions):
        field = _field(definitions, 0x21, "SWA_VOLTAGE_SETTING")
        with pytest.raises(FieldEncodeError, match="banana"):
            encode_field(field, "banana", strict=True)


class TestRoundTrip:
    """encode(decode(v)) == v for every physical field value in the packaged map."""

    ROUND_TRIP_KINDS = (FieldKind.VOLTAGE, FieldKind.CURRENT, FieldKind.TIME, FieldKind.FREQUENCY)

    def test_every_value(self, definitions):
        checked = 0
        for reg in definitions.registers:
            for field in reg.bit_fields:
                if field.kind not in self.ROUND_TRIP_KINDS:
                    continue
                for value in range(field.max_value + 1):
                    text = decode_field(field, value, reg.name)
                    assert encode_field(field, text, reg.name, strict=True) == value, (
                        reg.name, field.name, value, text,
                    )
                    checked += 1
        assert checked > 0

    @pytest.mark.parametrize(("register_name", "field_name"), [
        ("SOFT_STOP_CONFIG", "SOFT_STOP_TIME"),
        ("SWC_THRESHOLD", "SWC_SST"),
    ])
    def test_codes_past_table_end(self, register_name, field_name):
        field = FieldDefinition(bits="2:0", name=field_name, kind=FieldKind.TIME)
        for value in range(field.max_value + 1):
            text = decode_field(field, value, register_name)
            assert encode_field(field, text, register_name, strict=True) == value, (value, text)
