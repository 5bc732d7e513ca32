"""Exception hierarchy for pmicdump.

Recoverable conditions (missing definition document, dump size mismatch,
malformed hex in a definition entry) are logged rather than raised.
Edit validation reports failures through ``ValidationResult`` instead of
exceptions.
"""

from __future__ import annotations


class PmicDumpError(Exception):
    """Base exception for all pmicdump errors."""

    def __init__(self, message: str, address: int | None = None) -> None:
        self.address = address
        super().__init__(message)


class FileAccessError(PmicDumpError):
    """A file could not be read or written."""

    def __init__(self, message: str, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class DefinitionError(PmicDumpError):
    """Base class for register definition problems."""


class DefinitionFormatError(DefinitionError):
    """The definition document is not valid JSON or fails schema validation."""


class DumpError(PmicDumpError):
    """Base class for dump handling errors."""


class DumpReadError(DumpError, FileAccessError):
    """The dump file could not be read."""


class RegisterNotFoundError(DumpError):
    """The requested address has no parsed register in the dump."""


class FieldNotFoundError(DumpError):
    """The register has no field with the requested name."""


class FieldEncodeError(PmicDumpError):
    """A text value could not be converted to a field value."""
