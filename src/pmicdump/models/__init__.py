"""Pydantic data models for pmicdump."""

from pmicdump.models.definitions import (
    AccessKind,
    DefinitionDocument,
    FieldDefinition,
    FieldKind,
    FieldScale,
    RegisterDefinition,
    SpecialDecode,
)
from pmicdump.models.dump import (
    Dump,
    DumpSummary,
    ParsedRegister,
    RegisterView,
    SizeMismatch,
)

__all__ = [
    "AccessKind",
    "DefinitionDocument",
    "Dump",
    "DumpSummary",
    "FieldDefinition",
    "FieldKind",
    "FieldScale",
    "ParsedRegister",
    "RegisterDefinition",
    "RegisterView",
    "SizeMismatch",
    "SpecialDecode",
]
