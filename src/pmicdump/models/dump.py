"""Parsed register and dump models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field, computed_field

from pmicdump.hardware.rtq5132 import in_protected_region
from pmicdump.models.definitions import RegisterDefinition


class ParsedRegister(BaseModel):
    """A register byte from a dump together with its decoded form."""
    model_config = ConfigDict(frozen=False)

    address: int = Field(ge=0, le=0xFF)
    raw_value: int = Field(ge=0, le=0xFF)
    default_value: int = Field(ge=0, le=0xFF)
    decoded_value: str = ""
    bit_states: list[bool] = Field(default_factory=lambda: [False] * 8)
    definition: RegisterDefinition = Field(exclude=True)

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def full_name(self) -> str:
        return self.definition.full_name

    @property
    def category(self) -> str:
        return self.definition.category

    @property
    def description(self) -> str:
        return self.definition.description

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_changed(self) -> bool:
        return self.raw_value != self.default_value

    @property
    def addr_hex(self) -> str:
        return f"0x{self.address:02X}"

    @property
    def val_hex(self) -> str:
        return f"0x{self.raw_value:02X}"

    @property
    def default_hex(self) -> str:
        return f"0x{self.default_value:02X}"


class SizeMismatch(NamedTuple):
    """Reported when an input buffer is not exactly 256 bytes."""

    expected: int
    actual: int

    @property
    def padded(self) -> bool:
        return self.actual < self.expected

    @property
    def truncated(self) -> bool:
        return self.actual > self.expected


@dataclass
class Dump:
    """A captured 256-byte register snapshot and its parsed registers.

    ``raw_data`` and ``registers`` are only modified together, through
    ``pmicdump.core.editor.apply_edit``.
    """

    source: str
    loaded_at: datetime
    raw_data: bytearray
    registers: dict[int, ParsedRegister] = field(default_factory=dict)
    size_mismatch: SizeMismatch | None = None
    pmic_model: str = ""

    def __getitem__(self, address: int) -> ParsedRegister:
        return self.registers[address]

    def __contains__(self, address: object) -> bool:
        return address in self.registers

    def __len__(self) -> int:
        return len(self.registers)

    def ordered(self) -> list[ParsedRegister]:
        return [self.registers[a] for a in sorted(self.registers)]

    @property
    def changed(self) -> list[ParsedRegister]:
        """Registers whose raw value differs from the factory default."""
        return [r for r in self.ordered() if r.is_changed]

    @property
    def protected(self) -> list[ParsedRegister]:
        """Registers in the vendor region or flagged protected."""
        return [
            r for r in self.ordered()
            if in_protected_region(r.address) or r.definition.protected is True
        ]

    @property
    def by_category(self) -> dict[str, list[ParsedRegister]]:
        groups: dict[str, list[ParsedRegister]] = {}
        for reg in self.ordered():
            groups.setdefault(reg.category, []).append(reg)
        return groups


class RegisterView(BaseModel):
    """Serialisable view of a parsed register with its classification."""

    address: int
    name: str
    full_name: str
    category: str
    access: str | None
    raw_value: int
    default_value: int
    decoded_value: str
    bit_states: list[bool]
    is_changed: bool
    is_protected: bool
    is_reserved: bool
    is_critical: bool
    editable: bool


class DumpSummary(BaseModel):
    """Headline statistics for a parsed dump."""

    source: str
    loaded_at: datetime
    pmic_model: str
    total_registers: int
    changed: int
    protected: int
    critical: int
    size_mismatch: tuple[int, int] | None = None
    categories: dict[str, int] = Field(default_factory=dict)
