"""Dump upload, register inspection and editing endpoints."""

from __future__ import annotations

import asyncio
import uuid

from fastapi import APIRouter, HTTPException, Query, Request, Response
from pydantic import BaseModel, model_validator

from pmicdump.core.bits import extract
from pmicdump.core.classifier import classify, summarize
from pmicdump.core.dump_parser import parse_dump
from pmicdump.core.editor import (
    check_edit,
    compose_field_edit,
    edit_register,
    reset_all_changes,
    reset_to_default,
)
from pmicdump.core.field_codec import decode_field, field_unit
from pmicdump.core.register_decoder import decode_value
from pmicdump.exceptions import FieldEncodeError, FieldNotFoundError
from pmicdump.models.dump import Dump, DumpSummary, ParsedRegister, RegisterView
from pmicdump.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["dumps"])

MAX_UPLOAD_BYTES = 64 * 1024


class DumpInfo(BaseModel):
    dump_id: str
    summary: DumpSummary


class FieldView(BaseModel):
    bits: str
    name: str
    description: str
    kind: str
    unit: str
    value: int
    max_value: int
    decoded: str


class RegisterDetail(BaseModel):
    view: RegisterView
    description: str
    fields: list[FieldView]


class EditRequest(BaseModel):
    """Either a whole byte (``value``) or one field (``field`` + ``text``)."""

    value: int | None = None
    field: str | None = None
    text: str | None = None

    @model_validator(mode="after")
    def check_target(self) -> EditRequest:
        if self.field is None and self.value is None:
            raise ValueError("Provide 'value', or 'field' and 'text'")
        if self.field is not None and self.text is None:
            raise ValueError("'text' is required when 'field' is given")
        return self


class ValidationResponse(BaseModel):
    valid: bool
    reason: str
    new_value: int | None = None
    decoded: str | None = None


class EditResponse(BaseModel):
    valid: bool
    reason: str
    view: RegisterView


class ResetResponse(BaseModel):
    reset: list[int]
    summary: DumpSummary


def _get_dump(dump_id: str) -> Dump:
    from pmicdump.api.app import get_dump_registry

    dump = get_dump_registry().get(dump_id)
    if dump is None:
        raise HTTPException(status_code=404, detail="Dump not found")
    return dump


def _get_register(dump: Dump, address: int) -> ParsedRegister:
    if address not in dump:
        raise HTTPException(status_code=404, detail=f"Register 0x{address:02X} not found")
    return dump[address]


def _target_value(reg: ParsedRegister, body: EditRequest) -> int:
    """Resolve an edit request to the register byte it would produce."""
    if body.field is None:
        if not 0 <= body.value <= 0xFF:
            raise HTTPException(status_code=400, detail=f"Value {body.value} is not a byte (0-255)")
        return body.value
    try:
        return compose_field_edit(reg.definition, reg.raw_value, body.field, body.text)
    except FieldNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except FieldEncodeError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


# --- Dumps ---


@router.post("/dumps", response_model=DumpInfo, status_code=201)
async def upload_dump(request: Request, source: str = Query("upload")) -> DumpInfo:
    """Parse a raw register dump sent as the request body."""
    from pmicdump.api.app import get_dump_registry

    data = await request.body()
    if not data:
        raise HTTPException(status_code=400, detail="Empty dump")
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Dump too large")

    definitions = await asyncio.to_thread(request.app.state.definition_loader.get_or_load)
    dump = await asyncio.to_thread(parse_dump, data, source, definitions)

    dump_id = uuid.uuid4().hex[:12]
    get_dump_registry()[dump_id] = dump
    logger.info("dump_uploaded", dump_id=dump_id, source=source, size=len(data))
    return DumpInfo(dump_id=dump_id, summary=summarize(dump))


@router.get("/dumps", response_model=list[DumpInfo])
async def list_dumps() -> list[DumpInfo]:
    from pmicdump.api.app import get_dump_registry

    return [
        DumpInfo(dump_id=dump_id, summary=summarize(dump))
        for dump_id, dump in get_dump_registry().items()
    ]


@router.get("/dumps/{dump_id}", response_model=DumpSummary)
async def get_dump(dump_id: str) -> DumpSummary:
    return summarize(_get_dump(dump_id))


@router.delete("/dumps/{dump_id}", status_code=204)
async def delete_dump(dump_id: str) -> Response:
    from pmicdump.api.app import get_dump_registry

    _get_dump(dump_id)
    del get_dump_registry()[dump_id]
    return Response(status_code=204)


@router.get("/dumps/{dump_id}/raw")
async def download_dump(dump_id: str) -> Response:
    """Download the dump's current 256-byte buffer, including edits."""
    dump = _get_dump(dump_id)
    return Response(
        content=bytes(dump.raw_data),
        media_type="application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{dump_id}.bin"'},
    )


@router.post("/dumps/{dump_id}/reset", response_model=ResetResponse)
async def reset_dump(dump_id: str) -> ResetResponse:
    """Restore every changed register to its default."""
    dump = _get_dump(dump_id)
    restored = reset_all_changes(dump)
    return ResetResponse(reset=restored, summary=summarize(dump))


# --- Registers ---


@router.get("/dumps/{dump_id}/registers", response_model=list[RegisterView])
async def list_registers(
    dump_id: str,
    changed_only: bool = Query(False),
    category: str | None = Query(None),
    include_reserved: bool = Query(True),
) -> list[RegisterView]:
    """List parsed registers with their classification."""
    dump = _get_dump(dump_id)
    registers = dump.changed if changed_only else dump.ordered()
    views = [classify(r) for r in registers]
    if category is not None:
        views = [v for v in views if v.category.lower() == category.lower()]
    if not include_reserved:
        views = [v for v in views if not v.is_reserved]
    return views


@router.get("/dumps/{dump_id}/registers/{address}", response_model=RegisterDetail)
async def get_register(dump_id: str, address: int) -> RegisterDetail:
    """One register with its decoded bit fields."""
    reg = _get_register(_get_dump(dump_id), address)
    definition = reg.definition
    fields = []
    for field in definition.bit_fields:
        value = extract(reg.raw_value, field.bit_range)
        fields.append(FieldView(
            bits=field.bits,
            name=field.name,
            description=field.description,
            kind=field.kind.value,
            unit=field_unit(field.kind),
            value=value,
            max_value=field.max_value,
            decoded=decode_field(field, value, definition.name),
        ))
    return RegisterDetail(view=classify(reg), description=reg.description, fields=fields)


@router.post(
    "/dumps/{dump_id}/registers/{address}/validate", response_model=ValidationResponse
)
async def validate_register_edit(dump_id: str, address: int, body: EditRequest) -> ValidationResponse:
    """Check an edit without applying it."""
    reg = _get_register(_get_dump(dump_id), address)
    new_value = _target_value(reg, body)
    result = check_edit(reg, new_value)
    return ValidationResponse(
        valid=result.valid,
        reason=result.reason,
        new_value=new_value,
        decoded=decode_value(reg.definition, new_value),
    )


@router.put("/dumps/{dump_id}/registers/{address}", response_model=EditResponse)
async def edit_register_value(dump_id: str, address: int, body: EditRequest) -> EditResponse:
    """Validate and apply an edit to one register."""
    dump = _get_dump(dump_id)
    reg = _get_register(dump, address)
    new_value = _target_value(reg, body)
    result = edit_register(dump, address, new_value)
    if not result.valid:
        raise HTTPException(status_code=409, detail=result.reason)
    return EditResponse(valid=True, reason=result.reason, view=classify(dump[address]))


@router.post("/dumps/{dump_id}/registers/{address}/reset", response_model=RegisterView)
async def reset_register(dump_id: str, address: int) -> RegisterView:
    dump = _get_dump(dump_id)
    _get_register(dump, address)
    return classify(reset_to_default(dump, address))
