"""FastAPI application factory and configuration."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pmicdump import __version__
from pmicdump.core.definitions import DefinitionLoader, get_loader
from pmicdump.models.dump import Dump
from pmicdump.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

# In-memory dump registry
_dump_registry: dict[str, Dump] = {}


def get_dump_registry() -> dict[str, Dump]:
    """Get the global dump registry."""
    return _dump_registry


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup/shutdown."""
    setup_logging()
    logger.info("pmicdump_api_starting")
    loader: DefinitionLoader = app.state.definition_loader
    await asyncio.to_thread(loader.get_or_load)
    yield
    _dump_registry.clear()
    logger.info("pmicdump_api_stopped")


def create_app(definitions_path: str | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        definitions_path: Register map document to use instead of the
            process-wide default resolution.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="pmicdump API",
        description="RTQ5132 PMIC register dump decoding and editing",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.definition_loader = (
        DefinitionLoader(definitions_path) if definitions_path else get_loader()
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from pmicdump.api.routes import definitions, dumps
    app.include_router(dumps.router, prefix="/api")
    app.include_router(definitions.router, prefix="/api")

    return app
