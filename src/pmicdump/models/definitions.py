"""Register map document models.

The keys mirror the on-disk register map format (``addr``, ``full``,
``cat``, ``prot`` ...); Python attribute names are spelled out.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from pmicdump.core.bits import BitRange
from pmicdump.utils.logging import get_logger

logger = get_logger(__name__)


class AccessKind(str, Enum):
    """Register access types from the PMIC datasheet."""
    RO = "RO"      # read only
    ROE = "ROE"    # read only, error log
    RW = "RW"
    RWPE = "RWPE"  # read/write, protected
    W = "W"        # write only
    W1O = "W1O"    # write one to clear
    RV = "RV"      # reserved


class FieldKind(str, Enum):
    """How a bit field's value is rendered."""
    RESERVED = "reserved"
    FLAG = "flag"
    ENUM = "enum"
    RAW = "raw"
    BINARY = "binary"
    DECIMAL = "decimal"
    VOLTAGE = "voltage"
    CURRENT = "current"
    POWER = "power"
    TIME = "time"
    FREQUENCY = "frequency"
    TEMPERATURE = "temperature"


# Short names used by older register map documents
_KIND_ALIASES: dict[str, FieldKind] = {
    "bin": FieldKind.BINARY,
    "dec": FieldKind.DECIMAL,
    "volt": FieldKind.VOLTAGE,
    "curr": FieldKind.CURRENT,
    "pwr": FieldKind.POWER,
    "freq": FieldKind.FREQUENCY,
    "temp": FieldKind.TEMPERATURE,
}


class FieldScale(str, Enum):
    """Physical mapping applied to a voltage/current/power/time/frequency/temperature field."""
    SETPOINT_800MV = "setpoint_800mv"
    SETPOINT_1500MV = "setpoint_1500mv"
    POWER_GOOD_LOW = "power_good_low"
    POWER_GOOD_HIGH = "power_good_high"
    OVER_VOLTAGE = "over_voltage"
    UNDER_VOLTAGE_LOCKOUT = "under_voltage_lockout"
    CURRENT_STEP = "current_step"
    OC_SWA_SWB = "oc_swa_swb"
    OC_SWC = "oc_swc"
    POWER_STEP = "power_step"
    TEMP_MEASUREMENT = "temp_measurement"
    OTP_THRESHOLD = "otp_threshold"
    SOFT_STOP = "soft_stop"
    SST_SWA_SWB = "sst_swa_swb"
    SST_SWC = "sst_swc"
    SOFT_START = "soft_start"
    SWITCHING_FREQUENCY = "switching_frequency"
    GENERIC = "generic"


class SpecialDecode(str, Enum):
    """Whole-register decoders that replace per-field decoding."""
    SWA_VOLTAGE = "SwaVoltage"
    SWB_VOLTAGE = "SwbVoltage"
    SWC_VOLTAGE = "SwcVoltage"
    SWA_CURRENT = "SwaCurrent"
    SWB_CURRENT = "SwbCurrent"
    SWC_CURRENT = "SwcCurrent"
    SWA_POWER = "SwaPower"
    SWA_THRESHOLD = "SwaThreshold"
    SWB_THRESHOLD = "SwbThreshold"
    SWC_THRESHOLD = "SwcThreshold"
    FSW_MODE_1 = "FswMode1"
    FSW_MODE_2 = "FswMode2"
    LDO_VOLTAGE = "LdoVoltage"
    OC_THRESHOLD = "OcThreshold"
    SOFT_START_1 = "SoftStart1"
    SOFT_START_2 = "SoftStart2"
    OTP_THRESHOLD = "OtpThreshold"
    TEMP_MEASUREMENT = "TempMeasurement"
    GLOBAL_ERROR_LOG = "GlobalErrLog"
    PMIC_STATUS_0 = "PmicStat0"
    PMIC_STATUS_1 = "PmicStat1"
    ADC_READ = "AdcRead"
    ADC_READ_VIN_BULK = "AdcReadVinBulk"


def parse_hex_byte(value: object, what: str = "value") -> int:
    """Parse a ``"0x1A"`` style string into a byte.

    Malformed or out-of-range input yields 0 and a warning rather than an
    error, so one bad entry does not discard a whole register map.
    """
    if isinstance(value, bool):
        raise ValueError(f"{what} must be a hex string or integer")
    if isinstance(value, int):
        parsed = value
    else:
        text = str(value or "").strip()
        if text[:2].lower() == "0x":
            text = text[2:]
        if not text:
            return 0
        try:
            parsed = int(text, 16)
        except ValueError:
            logger.warning("definition_bad_hex", field=what, value=value)
            return 0
    if not 0 <= parsed <= 0xFF:
        logger.warning("definition_hex_out_of_range", field=what, value=value)
        return 0
    return parsed


def parse_address_byte(value: object) -> int | None:
    """Parse a register address, or None if it does not name one of the 256 bytes."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if 0 <= value <= 0xFF else None
    text = str(value).strip()
    if text[:2].lower() == "0x":
        text = text[2:]
    try:
        parsed = int(text, 16)
    except ValueError:
        return None
    return parsed if 0 <= parsed <= 0xFF else None


class FieldDefinition(BaseModel):
    """A named bit field within a register."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    bits: str
    name: str = ""
    description: str = Field(default="", alias="desc")
    kind: FieldKind = Field(default=FieldKind.RESERVED, alias="type")
    active_high: bool | None = Field(default=None, alias="active")
    enum_values: dict[str, str] | None = Field(default=None, alias="enum")
    scale: FieldScale | None = None

    @field_validator("bits")
    @classmethod
    def validate_bits(cls, v: str) -> str:
        BitRange.parse(v)
        return v.strip()

    @field_validator("kind", mode="before")
    @classmethod
    def normalize_kind(cls, v: object) -> object:
        if isinstance(v, str):
            key = v.strip().lower()
            return _KIND_ALIASES.get(key, key)
        return v

    @field_validator("enum_values", mode="before")
    @classmethod
    def normalize_enum_keys(cls, v: object) -> object:
        if isinstance(v, dict):
            return {str(k).strip(): str(label) for k, label in v.items()}
        return v

    @property
    def bit_range(self) -> BitRange:
        return BitRange.parse(self.bits)

    @property
    def width(self) -> int:
        return self.bit_range.width

    @property
    def max_value(self) -> int:
        return self.bit_range.max_value


class RegisterDefinition(BaseModel):
    """Definition of one PMIC register."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    address: int = Field(alias="addr", ge=0, le=0xFF)
    name: str = ""
    full_name: str = Field(default="", alias="full")
    category: str = Field(default="Reserved", alias="cat")
    default: int = Field(default=0, ge=0, le=0xFF)
    access: AccessKind | None = Field(default=AccessKind.RV, alias="type")
    description: str = Field(default="", alias="desc")
    bit_fields: tuple[FieldDefinition, ...] = Field(default=(), alias="fields")
    protected: bool | None = Field(default=None, alias="prot")
    special: str | None = None

    @field_validator("address", mode="before")
    @classmethod
    def parse_address(cls, v: object) -> int:
        address = parse_address_byte(v)
        if address is None:
            raise ValueError(f"addr {v!r} is not a register address")
        return address

    @field_validator("default", mode="before")
    @classmethod
    def parse_default(cls, v: object) -> int:
        return parse_hex_byte(v, "default")

    @field_validator("access", mode="before")
    @classmethod
    def normalize_access(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip().upper() or None
        return v

    @field_validator("special", mode="before")
    @classmethod
    def normalize_special(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_serializer("address", "default")
    def serialize_hex(self, v: int) -> str:
        return f"0x{v:02X}"

    @property
    def special_decode(self) -> SpecialDecode | None:
        """The special decoder tag, or None if unset or not recognised."""
        if not self.special:
            return None
        try:
            return SpecialDecode(self.special)
        except ValueError:
            return None

    def field_named(self, name: str) -> FieldDefinition | None:
        for field in self.bit_fields:
            if field.name == name:
                return field
        return None

    @property
    def addr_hex(self) -> str:
        return f"0x{self.address:02X}"

    @property
    def default_hex(self) -> str:
        return f"0x{self.default:02X}"


class DefinitionDocument(BaseModel):
    """Top-level register map document as stored on disk."""
    model_config = ConfigDict(populate_by_name=True)

    version: str = Field(default="1.0", alias="ver")
    pmic_model: str = Field(default="RTQ5132", alias="model")
    registers: list[RegisterDefinition] = Field(default_factory=list, alias="regs")

    @field_validator("registers", mode="before")
    @classmethod
    def drop_unaddressable(cls, v: object) -> object:
        # An entry without a usable address is skipped; it must not land on 0x00
        if not isinstance(v, list):
            return v
        kept = []
        for entry in v:
            if isinstance(entry, dict):
                raw = entry.get("addr", entry.get("address"))
                if parse_address_byte(raw) is None:
                    logger.warning("definition_bad_address", addr=raw, name=entry.get("name"))
                    continue
            kept.append(entry)
        return kept
