"""Tests for the REST API."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from pmicdump.api.app import create_app, get_dump_registry


@pytest.fixture
def client():
    with TestClient(create_app()) as test_client:
        yield test_client
    get_dump_registry().clear()


@pytest.fixture
def dump_id(client, default_buffer) -> str:
    response = client.post("/api/dumps?source=board7.bin", content=default_buffer)
    assert response.status_code == 201
    return response.json()["dump_id"]


class TestDumps:
    """Test dump upload and lifecycle endpoints."""

    def test_upload(self, client, default_buffer):
        response = client.post("/api/dumps", content=default_buffer)
        assert response.status_code == 201
        body = response.json()
        assert body["summary"]["source"] == "upload"
        assert body["summary"]["total_registers"] == 256
        assert body["summary"]["changed"] == 0
        assert body["dump_id"] in get_dump_registry()

    def test_upload_short_buffer(self, client):
        response = client.post("/api/dumps", content=b"\x00" * 10)
        assert response.status_code == 201
        assert response.json()["summary"]["size_mismatch"] == [256, 10]

    def test_upload_empty(self, client):
        assert client.post("/api/dumps", content=b"").status_code == 400

    def test_upload_too_large(self, client):
        assert client.post("/api/dumps", content=bytes(64 * 1024 + 1)).status_code == 413

    def test_list_and_get(self, client, dump_id):
        listed = client.get("/api/dumps").json()
        assert [d["dump_id"] for d in listed] == [dump_id]
        summary = client.get(f"/api/dumps/{dump_id}").json()
        assert summary["source"] == "board7.bin"

    def test_unknown_dump(self, client):
        assert client.get("/api/dumps/missing").status_code == 404

    def test_delete(self, client, dump_id):
        assert client.delete(f"/api/dumps/{dump_id}").status_code == 204
        assert client.get(f"/api/dumps/{dump_id}").status_code == 404

    def test_download_raw(self, client, dump_id, default_buffer):
        response = client.get(f"/api/dumps/{dump_id}/raw")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/octet-stream"
        assert response.content == default_buffer


class TestRegisters:
    def test_list(self, client, dump_id):
        views = client.get(f"/api/dumps/{dump_id}/registers").json()
        assert len(views) == 256
        assert views[0x21]["decoded_value"] == "1.100V, PGL: -5%"

    def test_filters(self, client, dump_id):
        views = client.get(
            f"/api/dumps/{dump_id}/registers",
            params={"category": "Voltage", "include_reserved": "false"},
        ).json()
        assert [v["name"] for v in views] == [
            "SWA_VOLTAGE", "SWB_VOLTAGE", "SWC_VOLTAGE", "LDO_VOLTAGE",
        ]

    def test_changed_only(self, client, dump_id):
        client.put(f"/api/dumps/{dump_id}/registers/33", json={"value": 0x64})
        views = client.get(
            f"/api/dumps/{dump_id}/registers", params={"changed_only": "true"}
        ).json()
        assert [v["address"] for v in views] == [0x21]

    def test_detail(self, client, dump_id):
        body = client.get(f"/api/dumps/{dump_id}/registers/32").json()
        assert body["view"]["name"] == "OC_THRESHOLD"
        fields = {f["name"]: f for f in body["fields"]}
        assert fields["SWC_OC"]["decoded"] == "2.0A"
        assert fields["SWC_OC"]["unit"] == "A"
        assert fields["SWC_OC"]["max_value"] == 3

    def test_detail_out_of_range(self, client, dump_id):
        assert client.get(f"/api/dumps/{dump_id}/registers/300").status_code == 404


class TestEdits:
    """Test validate, edit and reset endpoints."""

    def test_validate_does_not_apply(self, client, dump_id):
        response = client.post(
            f"/api/dumps/{dump_id}/registers/33/validate", json={"value": 0x64}
        )
        body = response.json()
        assert body["valid"] is True
        assert body["decoded"] == "1.050V, PGL: -5%"
        assert get_dump_registry()[dump_id][0x21].raw_value == 0x78

    def test_validate_rejection(self, client, dump_id):
        body = client.post(
            f"/api/dumps/{dump_id}/registers/69/validate", json={"value": 0x64}
        ).json()
        assert body["valid"] is False
        assert "protected" in body["reason"]

    def test_edit_value(self, client, dump_id):
        response = client.put(f"/api/dumps/{dump_id}/registers/33", json={"value": 0x64})
        assert response.status_code == 200
        view = response.json()["view"]
        assert view["raw_value"] == 0x64
        assert view["is_changed"] is True
        raw = client.get(f"/api/dumps/{dump_id}/raw").content
        assert raw[0x21] == 0x64

    def test_edit_field(self, client, dump_id):
        response = client.put(
            f"/api/dumps/{dump_id}/registers/32", json={"field": "SWC_OC", "text": "1.0A"}
        )
        assert response.status_code == 200
        assert response.json()["view"]["decoded_value"] == "SWA: 4.5A, SWB: 4.5A, SWC: 1.0A"

    def test_edit_rejected(self, client, dump_id):
        response = client.put(f"/api/dumps/{dump_id}/registers/52", json={"value": 0})
        assert response.status_code == 409
        assert "Read-Only" in response.json()["detail"]

    def test_edit_not_a_byte(self, client, dump_id):
        response = client.put(f"/api/dumps/{dump_id}/registers/33", json={"value": 256})
        assert response.status_code == 400

    def test_edit_unknown_field(self, client, dump_id):
        response = client.put(
            f"/api/dumps/{dump_id}/registers/33", json={"field": "NOPE", "text": "1"}
        )
        assert response.status_code == 404

    def test_edit_bad_text(self, client, dump_id):
        response = client.put(
            f"/api/dumps/{dump_id}/registers/33",
            json={"field": "SWA_VOLTAGE_SETTING", "text": "banana"},
        )
        assert response.status_code == 400

    def test_edit_request_needs_target(self, client, dump_id):
        response = client.put(f"/api/dumps/{dump_id}/registers/33", json={})
        assert response.status_code == 422

    def test_reset_register(self, client, dump_id):
        client.put(f"/api/dumps/{dump_id}/registers/33", json={"value": 0})
        view = client.post(f"/api/dumps/{dump_id}/registers/33/reset").json()
        assert view["raw_value"] == 0x78
        assert view["is_changed"] is False

    def test_reset_dump(self, client, dump_id):
        client.put(f"/api/dumps/{dump_id}/registers/33", json={"value": 0})
        client.put(f"/api/dumps/{dump_id}/registers/37", json={"value": 0})
        body = client.post(f"/api/dumps/{dump_id}/reset").json()
        assert body["reset"] == [0x21, 0x25]
        assert body["summary"]["changed"] == 0


class TestDefinitionEndpoints:
    def test_info(self, client):
        body = client.get("/api/definitions").json()
        assert body["fallback"] is False
        assert body["registers"] == 256
        assert body["model"] == "RTQ5132"

    def test_register_in_document_format(self, client):
        body = client.get("/api/definitions/33").json()
        assert body["addr"] == "0x21"
        assert body["default"] == "0x78"
        assert body["cat"] == "Voltage"
        assert body["special"] == "SwaVoltage"

    def test_register_out_of_range(self, client):
        assert client.get("/api/definitions/256").status_code == 404

    def test_reload(self, client):
        assert client.post("/api/definitions/reload").json()["fallback"] is False

    def test_custom_document(self, tmp_path):
        path = tmp_path / "map.json"
        path.write_text(
            json.dumps({"ver": "3.0", "regs": [{"addr": "0x21", "name": "CUSTOM"}]}),
            encoding="utf-8",
        )
        with TestClient(create_app(definitions_path=str(path))) as custom:
            assert custom.get("/api/definitions").json()["version"] == "3.0"
            assert custom.get("/api/definitions/33").json()["name"] == "CUSTOM"
