"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from pmicdump.core.definitions import (
    DefinitionMap,
    build_default_map,
    load_definition_file,
    reset_definitions,
)
from pmicdump.core.dump_parser import parse_dump
from pmicdump.definition_paths import PACKAGED_DEFINITIONS_SUBPATH, get_package_root
from pmicdump.models.dump import Dump


@pytest.fixture(scope="session")
def definitions() -> DefinitionMap:
    """The RTQ5132 register map shipped with the package."""
    return load_definition_file(get_package_root() / PACKAGED_DEFINITIONS_SUBPATH)


@pytest.fixture(scope="session")
def fallback_definitions() -> DefinitionMap:
    """The generated map used when no document is available."""
    return build_default_map()


@pytest.fixture
def default_buffer(definitions: DefinitionMap) -> bytes:
    """A 256-byte dump with every register at its factory default."""
    return bytes(definitions.lookup(addr).default for addr in range(256))


@pytest.fixture
def dump(definitions: DefinitionMap, default_buffer: bytes) -> Dump:
    """A parsed dump with no changed registers."""
    return parse_dump(default_buffer, source="defaults.bin", definitions=definitions, max_workers=4)


@pytest.fixture
def dump_file(tmp_path, default_buffer: bytes):
    """A dump file on disk at factory defaults."""
    path = tmp_path / "pmic.bin"
    path.write_bytes(default_buffer)
    return path


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    """Keep env overrides and the process-wide map from leaking between tests."""
    monkeypatch.delenv("PMICDUMP_DEFINITIONS", raising=False)
    monkeypatch.delenv("PMICDUMP_MAX_WORKERS", raising=False)
    reset_definitions()
    yield
    reset_definitions()
