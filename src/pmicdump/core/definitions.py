"""Register map loading and lookup.

The map is resolved once per process. A missing, unreadable or malformed
document is logged and replaced by a generated map of 256 reserved
registers, overlaid with the known RTQ5132 factory defaults.
"""

from __future__ import annotations

import json
import os
import threading
from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType

from pydantic import ValidationError

from pmicdump.core.field_codec import resolve_field_scale
from pmicdump.core.file_io import read_text, write_text
from pmicdump.definition_paths import find_definition_file
from pmicdump.exceptions import DefinitionFormatError, FileAccessError
from pmicdump.hardware.rtq5132 import (
    MODEL_NAME,
    REGISTER_COUNT,
    known_default,
)
from pmicdump.models.definitions import DefinitionDocument, RegisterDefinition
from pmicdump.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAP_VERSION = "1.0"


def default_register(address: int) -> RegisterDefinition:
    """Generate the reserved placeholder definition for an address.

    The ``prot`` flag is never set here: in the document format it unlocks
    writes to the vendor region, which a generated register must not do.
    The region itself is still reported protected by address.
    """
    known = known_default(address)
    return RegisterDefinition(
        address=address,
        name=f"RESERVED_{address:02X}",
        full_name=f"Reserved 0x{address:02X}",
        category="Reserved",
        default=known.default if known else 0,
        access=known.access if known else "RV",
        description=f"Reserved register 0x{address:02X}",
    )


class DefinitionMap(Mapping[int, RegisterDefinition]):
    """Immutable catalogue of register definitions indexed by address."""

    def __init__(
        self,
        registers: list[RegisterDefinition],
        version: str = DEFAULT_MAP_VERSION,
        pmic_model: str = MODEL_NAME,
        source: str | None = None,
    ) -> None:
        ordered = tuple(sorted(registers, key=lambda r: r.address))
        self._registers = ordered
        self._index: Mapping[int, RegisterDefinition] = MappingProxyType(
            {r.address: r for r in ordered}
        )
        self.version = version
        self.pmic_model = pmic_model
        self.source = source

    @property
    def registers(self) -> tuple[RegisterDefinition, ...]:
        return self._registers

    @property
    def is_fallback(self) -> bool:
        """True when the map was generated rather than loaded from a document."""
        return self.source is None

    def lookup(self, address: int) -> RegisterDefinition:
        """Definition for an address; unknown addresses get a reserved placeholder."""
        definition = self._index.get(address)
        if definition is None:
            return default_register(address)
        return definition

    def __getitem__(self, address: int) -> RegisterDefinition:
        return self._index[address]

    def __iter__(self) -> Iterator[int]:
        return iter(self._index)

    def __len__(self) -> int:
        return len(self._index)

    def to_document(self) -> DefinitionDocument:
        return DefinitionDocument(
            version=self.version,
            pmic_model=self.pmic_model,
            registers=list(self._registers),
        )


def build_default_map() -> DefinitionMap:
    """Generate the fallback map: every address reserved, known defaults applied."""
    return DefinitionMap([default_register(addr) for addr in range(REGISTER_COUNT)])


def parse_definition_document(text: str, source: str = "<memory>") -> DefinitionDocument:
    """Parse and validate a JSON register map document.

    Raises:
        DefinitionFormatError: On invalid JSON, schema violations, or a
            duplicated register address.
    """
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DefinitionFormatError(f"{source}: invalid JSON: {exc}") from exc

    try:
        document = DefinitionDocument.model_validate(payload)
    except ValidationError as exc:
        raise DefinitionFormatError(f"{source}: invalid register map: {exc}") from exc

    seen: set[int] = set()
    for reg in document.registers:
        if reg.address in seen:
            raise DefinitionFormatError(
                f"{source}: duplicate register address 0x{reg.address:02X}",
                address=reg.address,
            )
        seen.add(reg.address)

    return document


def build_definition_map(document: DefinitionDocument, source: str | None = None) -> DefinitionMap:
    """Turn a validated document into a full 256-entry map.

    Field scales are resolved up front; addresses the document leaves out
    are filled with generated reserved definitions.
    """
    registers: dict[int, RegisterDefinition] = {}
    for reg in document.registers:
        if reg.bit_fields:
            fields = tuple(resolve_field_scale(f, reg.name) for f in reg.bit_fields)
            reg = reg.model_copy(update={"bit_fields": fields})
        registers[reg.address] = reg

    missing = [addr for addr in range(REGISTER_COUNT) if addr not in registers]
    for addr in missing:
        registers[addr] = default_register(addr)
    if missing and source is not None:
        logger.debug("definitions_gaps_filled", source=source, count=len(missing))

    return DefinitionMap(
        list(registers.values()),
        version=document.version,
        pmic_model=document.pmic_model,
        source=source,
    )


def load_definition_file(path: str | os.PathLike[str]) -> DefinitionMap:
    """Read, validate and build a map from a document on disk.

    Raises:
        FileAccessError: If the file cannot be read.
        DefinitionFormatError: If its content is not a valid register map.
    """
    text = read_text(path)
    document = parse_definition_document(text, source=str(path))
    return build_definition_map(document, source=str(path))


def export_definition_file(definitions: DefinitionMap, path: str | os.PathLike[str]) -> None:
    """Write a map back out in the on-disk document format."""
    payload = definitions.to_document().model_dump(
        mode="json", by_alias=True, exclude_none=True
    )
    write_text(path, json.dumps(payload, indent=2, ensure_ascii=False) + "\n")


class DefinitionLoader:
    """Single-flight, cached resolution of the register map.

    Concurrent callers that arrive before the first resolution wait on the
    lock and then share its result. After that ``get_or_load`` is a plain
    attribute read.
    """

    def __init__(self, path: str | os.PathLike[str] | None = None) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._map: DefinitionMap | None = None
        self._load_count = 0

    @property
    def load_count(self) -> int:
        """Number of resolutions performed so far."""
        return self._load_count

    @property
    def loaded(self) -> bool:
        return self._map is not None

    def get_or_load(self) -> DefinitionMap:
        current = self._map
        if current is not None:
            return current
        with self._lock:
            if self._map is None:
                self._map = self._resolve()
            return self._map

    def reload(self, path: str | os.PathLike[str] | None = None) -> DefinitionMap:
        """Force a fresh resolution, optionally from a different document."""
        with self._lock:
            if path is not None:
                self._path = path
            self._map = self._resolve()
            return self._map

    def invalidate(self, forget_path: bool = False) -> None:
        """Drop the cached map; the next ``get_or_load`` resolves again.

        With ``forget_path`` the document location is resolved from the
        environment again as well.
        """
        with self._lock:
            self._map = None
            if forget_path:
                self._path = None

    def _resolve(self) -> DefinitionMap:
        self._load_count += 1
        path = find_definition_file(self._path)

        if path is None or not Path(path).is_file():
            logger.warning("definitions_not_found", path=str(path) if path else None)
            return build_default_map()

        try:
            definitions = load_definition_file(path)
        except (FileAccessError, DefinitionFormatError) as exc:
            logger.error("definitions_load_failed", path=str(path), error=str(exc))
            return build_default_map()

        logger.info(
            "definitions_loaded",
            path=str(path),
            model=definitions.pmic_model,
            version=definitions.version,
        )
        return definitions


_loader = DefinitionLoader()


def get_loader() -> DefinitionLoader:
    return _loader


def load_definitions() -> DefinitionMap:
    """The process-wide register map, resolved on first use."""
    return _loader.get_or_load()


def get_definition(address: int) -> RegisterDefinition:
    return load_definitions().lookup(address)


def reload_definitions(path: str | os.PathLike[str] | None = None) -> DefinitionMap:
    return _loader.reload(path)


def reset_definitions() -> None:
    """Forget the process-wide map so the next lookup re-resolves it."""
    _loader.invalidate(forget_path=True)
