"""Turns a 256-byte register buffer into a parsed ``Dump``."""

from __future__ import annotations

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime

from pmicdump.core.bits import bit_states
from pmicdump.core.definitions import DefinitionMap, load_definitions
from pmicdump.core.file_io import read_bytes
from pmicdump.core.register_decoder import decode_value
from pmicdump.definition_paths import resolve_max_workers
from pmicdump.exceptions import DumpReadError, FileAccessError
from pmicdump.hardware.rtq5132 import REGISTER_COUNT
from pmicdump.models.dump import Dump, ParsedRegister, SizeMismatch
from pmicdump.utils.logging import get_logger

logger = get_logger(__name__)


def normalize_buffer(data: bytes | bytearray) -> tuple[bytearray, SizeMismatch | None]:
    """Zero-pad or truncate a buffer to exactly 256 bytes."""
    actual = len(data)
    if actual == REGISTER_COUNT:
        return bytearray(data), None
    buffer = bytearray(data[:REGISTER_COUNT])
    buffer.extend(b"\x00" * (REGISTER_COUNT - len(buffer)))
    return buffer, SizeMismatch(expected=REGISTER_COUNT, actual=actual)


def parse_register(definitions: DefinitionMap, address: int, raw: int) -> ParsedRegister:
    """Build one parsed register from its definition and raw byte."""
    definition = definitions.lookup(address)
    return ParsedRegister(
        address=address,
        raw_value=raw,
        default_value=definition.default,
        decoded_value=decode_value(definition, raw),
        bit_states=bit_states(raw),
        definition=definition,
    )


def parse_dump(
    data: bytes | bytearray,
    source: str = "<memory>",
    definitions: DefinitionMap | None = None,
    max_workers: int | None = None,
) -> Dump:
    """Parse a register buffer.

    Each address is decoded independently on a thread pool and written to
    its own slot of a fixed 256-entry list, so workers never share a slot.

    Args:
        data: Raw dump bytes. Anything other than 256 bytes is padded or
            truncated and reported through ``Dump.size_mismatch``.
        source: Label recorded on the dump (usually the file path).
        definitions: Register map to decode against. Defaults to the
            process-wide map.
        max_workers: Thread pool size. Defaults to PMICDUMP_MAX_WORKERS or
            the CPU count.

    Returns:
        A dump with exactly 256 parsed registers.
    """
    if definitions is None:
        definitions = load_definitions()

    buffer, mismatch = normalize_buffer(data)
    if mismatch is not None:
        logger.warning(
            "dump_size_mismatch",
            source=source,
            expected=mismatch.expected,
            actual=mismatch.actual,
        )

    slots: list[ParsedRegister | None] = [None] * REGISTER_COUNT

    def fill(address: int) -> None:
        slots[address] = parse_register(definitions, address, buffer[address])

    workers = min(resolve_max_workers(max_workers), REGISTER_COUNT)
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(fill, addr) for addr in range(REGISTER_COUNT)]
        for future in as_completed(futures):
            future.result()

    dump = Dump(
        source=source,
        loaded_at=datetime.now(),
        raw_data=buffer,
        registers={reg.address: reg for reg in slots if reg is not None},
        size_mismatch=mismatch,
        pmic_model=definitions.pmic_model,
    )
    logger.info(
        "dump_parsed",
        source=source,
        registers=len(dump),
        changed=len(dump.changed),
        workers=workers,
    )
    return dump


def parse_dump_file(
    path: str | os.PathLike[str],
    definitions: DefinitionMap | None = None,
    max_workers: int | None = None,
) -> Dump:
    """Read a dump file and parse it.

    Raises:
        DumpReadError: If the file cannot be read.
    """
    try:
        data = read_bytes(path)
    except FileAccessError as exc:
        raise DumpReadError(str(exc), path=str(path)) from exc
    return parse_dump(data, source=str(path), definitions=definitions, max_workers=max_workers)
