"""Whole-register decoders for RTQ5132 registers whose meaning spans fields.

Each decoder is a pure ``int -> str`` function; ``SPECIAL_DECODERS`` maps the
``special`` tag of a register definition to its decoder.
"""

from __future__ import annotations

from collections.abc import Callable

from pmicdump.core.bits import extract_field
from pmicdump.models.definitions import SpecialDecode

SWA_SWB_BASE_MV = 800
SWC_BASE_MV = 1500
VOLTAGE_STEP_MV = 5
CURRENT_STEP_A = 0.125
ADC_STEP_V = 0.015
ADC_VIN_BULK_STEP_V = 0.070

_PGL_PERCENT = {0: 5.0, 1: 7.5}

_PGH = ("+5%", "+7.5%", "+10%", "+2.5%")
_OV = ("+7.5%", "+10%", "+12.5%", "+5%")
_UVLO = ("-10%", "-12.5%", "-5%", "-7.5%")
_SST_SWA_SWB = ("0.5ms", "1ms", "2ms", "4ms")
_SST_SWC = ("1ms", "2ms", "4ms", "8ms")

_FSW = ("750kHz", "1000kHz", "1250kHz", "1500kHz")
_MODES = {2: "COT; DCM", 3: "COT; CCM"}

_LDO_1V8 = (1.7, 1.8, 1.9, 2.0)
_LDO_1V0 = (0.9, 1.0, 1.1, 1.2)

_OC_SWA_SWB = (3.0, 3.5, 4.0, 4.5)
_OC_SWC = (0.5, 1.0, 1.5, 2.0)

_OTP_CELSIUS = ("105°C", "115°C", "125°C", "135°C", "145°C")
_TEMP_MEASUREMENT = ("<80°C", "85°C", "95°C", "105°C", "115°C", "125°C", "135°C", "≥140°C")


# --- Voltage set-points ---


def _setpoint(value: int, base_mv: int) -> str:
    setting = extract_field(value, 7, 1)
    mv = base_mv + setting * VOLTAGE_STEP_MV
    pgl = _PGL_PERCENT[value & 0x01]
    return f"{mv / 1000:.3f}V, PGL: -{pgl:g}%"


def decode_swa_swb_voltage(value: int) -> str:
    """SWA/SWB output: 800 mV + 5 mV x bits 7:1, bit 0 selects PGL."""
    return _setpoint(value, SWA_SWB_BASE_MV)


def decode_swc_voltage(value: int) -> str:
    """SWC output: 1500 mV + 5 mV x bits 7:1, bit 0 selects PGL."""
    return _setpoint(value, SWC_BASE_MV)


# --- Current and power ---


def decode_swa_current(value: int) -> str:
    return f"Current: {value * CURRENT_STEP_A:.3f}A"


def decode_swb_swc_current(value: int) -> str:
    return f"Current: {extract_field(value, 5, 0) * CURRENT_STEP_A:.3f}A"


def decode_swa_power(value: int) -> str:
    return f"Power: {value * CURRENT_STEP_A:.3f}W"


# --- Thresholds ---


def _threshold(value: int, sst_table: tuple[str, ...]) -> str:
    pgh = _PGH[extract_field(value, 7, 6)]
    ov = _OV[extract_field(value, 5, 4)]
    uvlo = _UVLO[extract_field(value, 3, 2)]
    sst = sst_table[extract_field(value, 1, 0)]
    return f"PGH: {pgh}, OV: {ov}, UVLO: {uvlo}, SST: {sst}"


def decode_swa_swb_threshold(value: int) -> str:
    return _threshold(value, _SST_SWA_SWB)


def decode_swc_threshold(value: int) -> str:
    return _threshold(value, _SST_SWC)


# --- Switching mode / frequency ---


def _mode(code: int) -> str:
    return _MODES.get(code, f"Mode {code}")


def decode_fsw_mode_1(value: int) -> str:
    mode = extract_field(value, 7, 6)
    fsw = extract_field(value, 5, 4)
    return f"SWA: {_mode(mode)}, {_FSW[fsw]}"


def decode_fsw_mode_2(value: int) -> str:
    b_mode = extract_field(value, 7, 6)
    b_fsw = extract_field(value, 5, 4)
    c_mode = extract_field(value, 3, 2)
    c_fsw = extract_field(value, 1, 0)
    return (
        f"SWB: {_mode(b_mode)}, {_FSW[b_fsw]}; "
        f"SWC: {_mode(c_mode)}, {_FSW[c_fsw]}"
    )


# --- LDO ---


def decode_ldo_voltage(value: int) -> str:
    v18 = _LDO_1V8[extract_field(value, 7, 6)]
    v10 = _LDO_1V0[extract_field(value, 1, 0)]
    return f"VLDO1.8V: {v18:.1f}V, VLDO1.0V: {v10:.1f}V"


# --- Over-current ---


def decode_oc_threshold(value: int) -> str:
    a = _OC_SWA_SWB[extract_field(value, 7, 6)]
    b = _OC_SWA_SWB[extract_field(value, 3, 2)]
    c = _OC_SWC[extract_field(value, 1, 0)]
    return f"SWA: {a:.1f}A, SWB: {b:.1f}A, SWC: {c:.1f}A"


# --- Soft start ---


def decode_soft_start_1(value: int) -> str:
    return f"SWA: {1 + extract_field(value, 7, 5)}ms"


def decode_soft_start_2(value: int) -> str:
    b_ms = 1 + extract_field(value, 7, 5)
    c_ms = 1 + extract_field(value, 3, 1)
    return f"SWB: {b_ms}ms, SWC: {c_ms}ms"


# --- Temperature ---


def decode_otp_threshold(value: int) -> str:
    code = extract_field(value, 2, 0)
    if code < len(_OTP_CELSIUS):
        return _OTP_CELSIUS[code]
    return f"Threshold {code}"


def decode_temperature_measurement(value: int) -> str:
    return _TEMP_MEASUREMENT[extract_field(value, 7, 5)]


# --- ADC ---


def decode_adc_read(value: int) -> str:
    return f"{value * ADC_STEP_V:.2f}V"


def decode_adc_read_vin_bulk(value: int) -> str:
    return f"{value * ADC_VIN_BULK_STEP_V:.1f}V"


# --- Status / error bitmasks ---


def decode_global_error_log(value: int) -> str:
    parts = []
    if value & 0x80:
        parts.append("Error Count > 1")
    if value & 0x40:
        parts.append("Buck OV/UV Error")
    if value & 0x20:
        parts.append("VIN Bulk OV")
    if value & 0x10:
        parts.append("Critical Temp Error")
    return ", ".join(parts) if parts else "No Errors"


def decode_pmic_status_0(value: int) -> str:
    # Power-good bits are active low
    parts = []
    if value & 0x40:
        parts.append("Critical Temp Shutdown")
    parts.append("SWA: Not Good" if value & 0x20 else "SWA: ✓")
    parts.append("SWB: Not Good" if value & 0x08 else "SWB: ✓")
    parts.append("SWC: Not Good" if value & 0x04 else "SWC: ✓")
    if value & 0x01:
        parts.append("VIN Bulk OV")
    return ", ".join(parts)


def decode_pmic_status_1(value: int) -> str:
    parts = []
    if value & 0x80:
        parts.append("High Temp Warning")
    parts.append("VLDO1.8V: Not Good" if value & 0x20 else "VLDO1.8V: ✓")
    if value & 0x08:
        parts.append("SWA High Current")
    if value & 0x02:
        parts.append("SWB High Current")
    if value & 0x01:
        parts.append("SWC High Current")
    return ", ".join(parts)


SPECIAL_DECODERS: dict[SpecialDecode, Callable[[int], str]] = {
    SpecialDecode.SWA_VOLTAGE: decode_swa_swb_voltage,
    SpecialDecode.SWB_VOLTAGE: decode_swa_swb_voltage,
    SpecialDecode.SWC_VOLTAGE: decode_swc_voltage,
    SpecialDecode.SWA_CURRENT: decode_swa_current,
    SpecialDecode.SWB_CURRENT: decode_swb_swc_current,
    SpecialDecode.SWC_CURRENT: decode_swb_swc_current,
    SpecialDecode.SWA_POWER: decode_swa_power,
    SpecialDecode.SWA_THRESHOLD: decode_swa_swb_threshold,
    SpecialDecode.SWB_THRESHOLD: decode_swa_swb_threshold,
    SpecialDecode.SWC_THRESHOLD: decode_swc_threshold,
    SpecialDecode.FSW_MODE_1: decode_fsw_mode_1,
    SpecialDecode.FSW_MODE_2: decode_fsw_mode_2,
    SpecialDecode.LDO_VOLTAGE: decode_ldo_voltage,
    SpecialDecode.OC_THRESHOLD: decode_oc_threshold,
    SpecialDecode.SOFT_START_1: decode_soft_start_1,
    SpecialDecode.SOFT_START_2: decode_soft_start_2,
    SpecialDecode.OTP_THRESHOLD: decode_otp_threshold,
    SpecialDecode.TEMP_MEASUREMENT: decode_temperature_measurement,
    SpecialDecode.GLOBAL_ERROR_LOG: decode_global_error_log,
    SpecialDecode.PMIC_STATUS_0: decode_pmic_status_0,
    SpecialDecode.PMIC_STATUS_1: decode_pmic_status_1,
    SpecialDecode.ADC_READ: decode_adc_read,
    SpecialDecode.ADC_READ_VIN_BULK: decode_adc_read_vin_bulk,
}


def get_special_decoder(tag: SpecialDecode | str | None) -> Callable[[int], str] | None:
    """Look up a decoder by tag; unknown or empty tags return None."""
    if not tag:
        return None
    try:
        return SPECIAL_DECODERS.get(SpecialDecode(tag))
    except ValueError:
        return None
