"""Hardware-specific register space definitions."""

from pmicdump.hardware.rtq5132 import (
    CRITICAL_FULL_SCALE,
    CRITICAL_THRESHOLD_PERCENT,
    KNOWN_DEFAULTS,
    MODEL_NAME,
    PROTECTED_END,
    PROTECTED_START,
    REGISTER_COUNT,
    KnownDefault,
    in_protected_region,
    known_default,
)

__all__ = [
    "CRITICAL_FULL_SCALE",
    "CRITICAL_THRESHOLD_PERCENT",
    "KNOWN_DEFAULTS",
    "MODEL_NAME",
    "PROTECTED_END",
    "PROTECTED_START",
    "REGISTER_COUNT",
    "KnownDefault",
    "in_protected_region",
    "known_default",
]
