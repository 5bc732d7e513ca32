"""RTQ5132 PMIC register space layout.

The RTQ5132 exposes 256 byte-wide registers. Addresses 0x40-0x6F hold the
DIMM vendor region, which is write-protected on shipped modules. The table
below carries the factory defaults and access kinds used when no register
map document is available.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

MODEL_NAME = "RTQ5132"
REGISTER_COUNT = 256
REGISTER_MASK = 0xFF

PROTECTED_START = 0x40
PROTECTED_END = 0x6F

# Critical-change detection for voltage/current registers
CRITICAL_FULL_SCALE = 440.0
CRITICAL_THRESHOLD_PERCENT = 23.0


@dataclass(frozen=True)
class KnownDefault:
    """Factory default and access kind for a non-reserved register."""

    default: int
    access: str


_KNOWN_DEFAULTS: dict[int, KnownDefault] = {
    0x15: KnownDefault(0x2C, "RW"),
    0x16: KnownDefault(0x20, "RW"),
    0x19: KnownDefault(0x04, "RW"),
    0x1B: KnownDefault(0x05, "RW"),
    0x1C: KnownDefault(0x60, "RW"),
    0x1E: KnownDefault(0x60, "RW"),
    0x1F: KnownDefault(0x60, "RW"),
    0x20: KnownDefault(0xCF, "RW"),
    0x21: KnownDefault(0x78, "RW"),
    0x22: KnownDefault(0x63, "RW"),
    0x25: KnownDefault(0x78, "RW"),
    0x26: KnownDefault(0x63, "RW"),
    0x27: KnownDefault(0x78, "RW"),
    0x28: KnownDefault(0x63, "RW"),
    0x29: KnownDefault(0x80, "RW"),
    0x2A: KnownDefault(0x88, "RW"),
    0x2B: KnownDefault(0x42, "RW"),
    0x2C: KnownDefault(0x20, "RW"),
    0x2D: KnownDefault(0x22, "RW"),
    0x2E: KnownDefault(0x04, "RW"),
    0x2F: KnownDefault(0x06, "RW"),
    0x34: KnownDefault(0x0E, "RO"),
    0x3C: KnownDefault(0x8A, "ROE"),
    0x3D: KnownDefault(0x8C, "ROE"),
    0x40: KnownDefault(0x89, "RWPE"),
    0x41: KnownDefault(0xD9, "RWPE"),
    0x45: KnownDefault(0x78, "RWPE"),
    0x46: KnownDefault(0x63, "RWPE"),
    0x49: KnownDefault(0x78, "RWPE"),
    0x4A: KnownDefault(0x63, "RWPE"),
    0x4B: KnownDefault(0x78, "RWPE"),
    0x4C: KnownDefault(0x63, "RWPE"),
    0x4D: KnownDefault(0x80, "RWPE"),
    0x4E: KnownDefault(0x88, "RWPE"),
    0x50: KnownDefault(0xCF, "RWPE"),
    0x51: KnownDefault(0x42, "RWPE"),
    0x58: KnownDefault(0xD1, "RWPE"),
    0x59: KnownDefault(0xD9, "RWPE"),
    0x5D: KnownDefault(0x20, "RWPE"),
    0x5E: KnownDefault(0x22, "RWPE"),
}

KNOWN_DEFAULTS: Mapping[int, KnownDefault] = MappingProxyType(_KNOWN_DEFAULTS)


def in_protected_region(address: int) -> bool:
    """Return True if the address falls inside the DIMM vendor region."""
    return PROTECTED_START <= address <= PROTECTED_END


def known_default(address: int) -> KnownDefault | None:
    return KNOWN_DEFAULTS.get(address)
