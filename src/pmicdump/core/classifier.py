"""Register classification: reserved, protected, critical and editable."""

from __future__ import annotations

from pmicdump.hardware.rtq5132 import (
    CRITICAL_FULL_SCALE,
    CRITICAL_THRESHOLD_PERCENT,
    in_protected_region,
)
from pmicdump.models.definitions import AccessKind, RegisterDefinition
from pmicdump.models.dump import Dump, DumpSummary, ParsedRegister, RegisterView

# Registers whose name carries one of these markers get critical-change checks
VOLTAGE_MARKER = "VOLT"
CURRENT_MARKER = "CURR"

_RESERVED_ACCESS = frozenset({AccessKind.RV, AccessKind.ROE})
_WRITABLE_ACCESS = frozenset({AccessKind.RW, AccessKind.RWPE, AccessKind.W, AccessKind.W1O})


def is_reserved_definition(definition: RegisterDefinition) -> bool:
    if not definition.category.strip() or definition.category.lower() == "reserved":
        return True
    if definition.name.upper().startswith("RESERVED"):
        return True
    return definition.access is None or definition.access in _RESERVED_ACCESS


def is_reserved(register: ParsedRegister) -> bool:
    return is_reserved_definition(register.definition)


def is_protected(register: ParsedRegister) -> bool:
    """True for the vendor region 0x40-0x6F or a definition flagged protected."""
    return in_protected_region(register.address) or register.definition.protected is True


def change_percent(register: ParsedRegister) -> float:
    """Raw deviation from the default as a share of the full-scale range."""
    return abs(register.raw_value - register.default_value) / CRITICAL_FULL_SCALE * 100.0


def is_critical_change(register: ParsedRegister) -> bool:
    """True when a voltage or current register strays more than 23% from default."""
    name = register.name.upper()
    if VOLTAGE_MARKER not in name and CURRENT_MARKER not in name:
        return False
    if not register.is_changed or register.default_value <= 0:
        return False
    return change_percent(register) > CRITICAL_THRESHOLD_PERCENT


def can_edit_definition(definition: RegisterDefinition) -> bool:
    if is_reserved_definition(definition):
        return False
    return definition.access in _WRITABLE_ACCESS


def can_edit(register: ParsedRegister) -> bool:
    return can_edit_definition(register.definition)


def classify(register: ParsedRegister) -> RegisterView:
    """Flatten a parsed register and its classification into a view model."""
    access = register.definition.access
    return RegisterView(
        address=register.address,
        name=register.name,
        full_name=register.full_name,
        category=register.category,
        access=access.value if access is not None else None,
        raw_value=register.raw_value,
        default_value=register.default_value,
        decoded_value=register.decoded_value,
        bit_states=list(register.bit_states),
        is_changed=register.is_changed,
        is_protected=is_protected(register),
        is_reserved=is_reserved(register),
        is_critical=is_critical_change(register),
        editable=can_edit(register),
    )


def summarize(dump: Dump) -> DumpSummary:
    registers = dump.ordered()
    categories = {name: len(regs) for name, regs in sorted(dump.by_category.items())}
    mismatch = dump.size_mismatch
    return DumpSummary(
        source=dump.source,
        loaded_at=dump.loaded_at,
        pmic_model=dump.pmic_model,
        total_registers=len(registers),
        changed=sum(1 for r in registers if r.is_changed),
        protected=sum(1 for r in registers if is_protected(r)),
        critical=sum(1 for r in registers if is_critical_change(r)),
        size_mismatch=(mismatch.expected, mismatch.actual) if mismatch else None,
        categories=categories,
    )
