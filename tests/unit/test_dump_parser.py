"""Tests for dump buffer normalisation and parsing."""

from __future__ import annotations

import pytest

from pmicdump.core.dump_parser import normalize_buffer, parse_dump, parse_dump_file, parse_register
from pmicdump.definition_paths import resolve_max_workers
from pmicdump.exceptions import DumpReadError, FileAccessError
from pmicdump.hardware.rtq5132 import KNOWN_DEFAULTS


class TestNormalizeBuffer:
    def test_exact_size(self):
        buffer, mismatch = normalize_buffer(bytes(range(256)))
        assert mismatch is None
        assert bytes(buffer) == bytes(range(256))

    def test_short_buffer_padded(self):
        buffer, mismatch = normalize_buffer(b"\x11" * 100)
        assert len(buffer) == 256
        assert buffer[99] == 0x11
        assert buffer[100:] == bytearray(156)
        assert (mismatch.expected, mismatch.actual) == (256, 100)
        assert mismatch.padded and not mismatch.truncated

    def test_long_buffer_truncated(self):
        buffer, mismatch = normalize_buffer(bytes(300))
        assert len(buffer) == 256
        assert (mismatch.expected, mismatch.actual) == (256, 300)
        assert mismatch.truncated

    def test_empty(self):
        buffer, mismatch = normalize_buffer(b"")
        assert buffer == bytearray(256)
        assert mismatch.actual == 0


class TestParseRegister:
    def test_fields_populated(self, definitions):
        reg = parse_register(definitions, 0x21, 0x64)
        assert reg.name == "SWA_VOLTAGE"
        assert reg.raw_value == 0x64
        assert reg.default_value == 0x78
        assert reg.decoded_value == "1.050V, PGL: -5%"
        assert reg.bit_states == [False, False, True, False, False, True, True, False]
        assert reg.is_changed


class TestParseDump:
    """Test parse_dump() over whole buffers."""

    def test_defaults_unchanged(self, dump):
        assert len(dump) == 256
        assert dump.changed == []
        assert dump.size_mismatch is None
        assert dump.pmic_model == "RTQ5132"

    def test_zero_buffer_with_generated_map(self, fallback_definitions):
        dump = parse_dump(bytes(256), definitions=fallback_definitions, max_workers=2)
        assert {r.address for r in dump.changed} == set(KNOWN_DEFAULTS)

    def test_oversized_buffer(self, definitions):
        dump = parse_dump(bytes(300), definitions=definitions)
        assert len(dump) == 256
        assert len(dump.raw_data) == 256
        assert dump.size_mismatch == (256, 300)

    def test_edited_byte_decoded(self, definitions, default_buffer):
        data = bytearray(default_buffer)
        data[0x21] = 0x64
        dump = parse_dump(data, definitions=definitions)
        assert dump[0x21].decoded_value == "1.050V, PGL: -5%"
        assert [r.address for r in dump.changed] == [0x21]

    def test_registers_consistent_with_buffer(self, definitions):
        data = bytes((i * 7) & 0xFF for i in range(256))
        dump = parse_dump(data, definitions=definitions, max_workers=8)
        for address in range(256):
            reg = dump[address]
            assert reg.address == address
            assert reg.raw_value == dump.raw_data[address] == data[address]
            assert reg.is_changed == (reg.raw_value != reg.default_value)

    def test_single_worker(self, definitions, default_buffer):
        dump = parse_dump(default_buffer, definitions=definitions, max_workers=1)
        assert len(dump) == 256

    def test_uses_process_wide_map(self, default_buffer):
        dump = parse_dump(default_buffer)
        assert dump[0x21].name == "SWA_VOLTAGE"

    def test_categories(self, dump):
        groups = dump.by_category
        assert [r.address for r in groups["Voltage"]] == [0x21, 0x25, 0x27, 0x2B]
        assert len(dump.protected) == 48


class TestParseDumpFile:
    def test_reads_file(self, dump_file, definitions):
        dump = parse_dump_file(dump_file, definitions=definitions)
        assert dump.source == str(dump_file)
        assert dump.changed == []

    def test_missing_file(self, tmp_path, definitions):
        with pytest.raises(DumpReadError) as exc_info:
            parse_dump_file(tmp_path / "missing.bin", definitions=definitions)
        assert isinstance(exc_info.value, FileAccessError)
        assert exc_info.value.path.endswith("missing.bin")


class TestMaxWorkers:
    def test_explicit(self):
        assert resolve_max_workers(3) == 3

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("PMICDUMP_MAX_WORKERS", "5")
        assert resolve_max_workers() == 5

    @pytest.mark.parametrize("value", ["abc", "0", "-2"])
    def test_invalid_environment_ignored(self, monkeypatch, value):
        monkeypatch.setenv("PMICDUMP_MAX_WORKERS", value)
        assert resolve_max_workers() >= 1

    def test_parse_with_environment(self, monkeypatch, definitions, default_buffer):
        monkeypatch.setenv("PMICDUMP_MAX_WORKERS", "2")
        assert len(parse_dump(default_buffer, definitions=definitions)) == 256
