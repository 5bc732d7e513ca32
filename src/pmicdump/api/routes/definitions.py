"""Register map inspection and reload endpoints."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from pmicdump.core.classifier import is_reserved_definition
from pmicdump.core.definitions import DefinitionMap
from pmicdump.models.definitions import RegisterDefinition
from pmicdump.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["definitions"])


class DefinitionInfo(BaseModel):
    source: str | None
    fallback: bool
    model: str
    version: str
    registers: int
    defined: int
    special: int


def _info(defs: DefinitionMap) -> DefinitionInfo:
    return DefinitionInfo(
        source=defs.source,
        fallback=defs.is_fallback,
        model=defs.pmic_model,
        version=defs.version,
        registers=len(defs),
        defined=sum(1 for r in defs.registers if not is_reserved_definition(r)),
        special=sum(1 for r in defs.registers if r.special),
    )


@router.get("/definitions", response_model=DefinitionInfo)
async def get_definitions(request: Request) -> DefinitionInfo:
    """Describe the register map currently in use."""
    defs = await asyncio.to_thread(request.app.state.definition_loader.get_or_load)
    return _info(defs)


@router.get("/definitions/{address}", response_model=RegisterDefinition)
async def get_register_definition(request: Request, address: int) -> RegisterDefinition:
    """One register definition, in the document format."""
    if not 0 <= address <= 0xFF:
        raise HTTPException(status_code=404, detail=f"Address {address} out of range")
    defs = await asyncio.to_thread(request.app.state.definition_loader.get_or_load)
    return defs.lookup(address)


@router.post("/definitions/reload", response_model=DefinitionInfo)
async def reload_definitions(request: Request) -> DefinitionInfo:
    """Re-read the register map document.

    Dumps already uploaded keep the definitions they were parsed with.
    """
    defs = await asyncio.to_thread(request.app.state.definition_loader.reload)
    logger.info("definitions_reloaded", source=defs.source)
    return _info(defs)
