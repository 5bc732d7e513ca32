"""Bit-range parsing and field extraction for byte-wide registers.

Every consumer (decoder, encoder, validator, editor) goes through these
helpers so that mask arithmetic lives in exactly one place.
"""

from __future__ import annotations

import re
from typing import NamedTuple

REGISTER_BITS = 8

_BIT_RANGE_RE = re.compile(r"^\s*([0-7])\s*(?::\s*([0-7])\s*)?$")


class BitRange(NamedTuple):
    """Inclusive bit range inside a register byte, normalised so hi >= lo."""

    hi: int
    lo: int

    @classmethod
    def parse(cls, text: str) -> BitRange:
        """Parse ``"b"`` or ``"a:b"`` (order-independent) into a BitRange.

        Raises:
            ValueError: If the text is not a valid bit range within 0-7.
        """
        match = _BIT_RANGE_RE.match(text or "")
        if match is None:
            raise ValueError(f"Invalid bit range: {text!r}")
        first = int(match.group(1))
        second = int(match.group(2)) if match.group(2) is not None else first
        return cls.of(first, second)

    @classmethod
    def of(cls, a: int, b: int) -> BitRange:
        if not (0 <= a < REGISTER_BITS and 0 <= b < REGISTER_BITS):
            raise ValueError(f"Bit positions must be 0-7, got {a}:{b}")
        return cls(max(a, b), min(a, b))

    @property
    def width(self) -> int:
        return self.hi - self.lo + 1

    @property
    def mask(self) -> int:
        return ((1 << self.width) - 1) << self.lo

    @property
    def max_value(self) -> int:
        return (1 << self.width) - 1

    def __str__(self) -> str:
        if self.hi == self.lo:
            return str(self.hi)
        return f"{self.hi}:{self.lo}"


def field_mask(hi: int, lo: int) -> int:
    """Mask covering bits lo..hi (order-independent)."""
    return BitRange.of(hi, lo).mask


def field_max(hi: int, lo: int) -> int:
    """Largest value a field spanning bits lo..hi can hold."""
    return BitRange.of(hi, lo).max_value


def extract_field(value: int, hi: int, lo: int) -> int:
    """Extract the field at bits lo..hi from a register byte.

    ``(value & mask) >> lo`` where mask has ``hi - lo + 1`` bits set starting
    at ``lo``. Bit order of the arguments does not matter.
    """
    rng = BitRange.of(hi, lo)
    return (value & rng.mask) >> rng.lo


def extract(value: int, bits: BitRange | str) -> int:
    """Extract a field given a BitRange or its textual form."""
    rng = bits if isinstance(bits, BitRange) else BitRange.parse(bits)
    return (value & rng.mask) >> rng.lo


def insert_field(value: int, hi: int, lo: int, field_value: int) -> int:
    """Return ``value`` with bits lo..hi replaced by ``field_value``.

    Bits of ``field_value`` beyond the field width are discarded.
    """
    rng = BitRange.of(hi, lo)
    cleared = value & ~rng.mask & 0xFF
    return cleared | ((field_value << rng.lo) & rng.mask)


def fits_field(field_value: int, hi: int, lo: int) -> bool:
    """True if ``field_value`` is representable in bits lo..hi."""
    return 0 <= field_value <= field_max(hi, lo)


def bit_states(value: int) -> list[bool]:
    """Per-bit state of a register byte, bit 0 first."""
    return [bool((value >> bit) & 1) for bit in range(REGISTER_BITS)]
