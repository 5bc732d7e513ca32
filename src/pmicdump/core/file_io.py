"""Byte and text file access.

I/O failures surface as ``FileAccessError`` so callers can tell them apart
from data-format problems.
"""

from __future__ import annotations

import os
from pathlib import Path

from pmicdump.exceptions import FileAccessError

PathLike = str | os.PathLike[str]


def read_bytes(path: PathLike) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise FileAccessError(f"Cannot read {path}: {exc}", path=str(path)) from exc


def write_bytes(path: PathLike, data: bytes | bytearray) -> None:
    try:
        Path(path).write_bytes(bytes(data))
    except OSError as exc:
        raise FileAccessError(f"Cannot write {path}: {exc}", path=str(path)) from exc


def read_text(path: PathLike) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FileAccessError(f"Cannot read {path}: {exc}", path=str(path)) from exc


def write_text(path: PathLike, text: str) -> None:
    try:
        Path(path).write_text(text, encoding="utf-8")
    except OSError as exc:
        raise FileAccessError(f"Cannot write {path}: {exc}", path=str(path)) from exc
