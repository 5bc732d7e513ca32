"""Register map location and parser tuning resolved from arguments and environment."""

from __future__ import annotations

import os
from pathlib import Path

# Environment overrides
DEFINITIONS_ENV = "PMICDUMP_DEFINITIONS"
MAX_WORKERS_ENV = "PMICDUMP_MAX_WORKERS"

# Register map shipped with the package
PACKAGED_DEFINITIONS_SUBPATH = "data/rtq5132.json"


def get_package_root() -> Path:
    """Get the installed package directory."""
    return Path(__file__).resolve().parent


def find_definition_file(explicit: str | os.PathLike[str] | None = None) -> Path | None:
    """Find the register map document.

    Search order:
        1. Explicit path argument (returned even if missing so the caller
           can report it)
        2. PMICDUMP_DEFINITIONS environment variable
        3. Register map shipped in the package data directory

    Returns:
        Path to the document, or None if nothing was found.
    """
    if explicit:
        return Path(explicit)

    env_path = os.environ.get(DEFINITIONS_ENV)
    if env_path:
        return Path(env_path)

    packaged = get_package_root() / PACKAGED_DEFINITIONS_SUBPATH
    if packaged.exists():
        return packaged

    return None


def resolve_max_workers(explicit: int | None = None) -> int:
    """Worker count for the dump parser.

    Explicit argument, then PMICDUMP_MAX_WORKERS, then the CPU count.
    """
    if explicit is not None and explicit > 0:
        return explicit

    env_value = os.environ.get(MAX_WORKERS_ENV)
    if env_value:
        try:
            workers = int(env_value)
        except ValueError:
            workers = 0
        if workers > 0:
            return workers

    return os.cpu_count() or 1
