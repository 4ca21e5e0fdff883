"""I/O utilities for JSON and text artifacts.

orjson-backed JSON I/O. Writers create parent directories as needed.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any

import orjson


def load_json(path: Path) -> Any:
    """Load JSON from a file."""
    return orjson.loads(path.read_bytes())


def save_json(obj: Any, path: Path, *, pretty: bool = True) -> None:
    """Save an object as JSON with sorted keys."""
    path.parent.mkdir(parents=True, exist_ok=True)
    opts = orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS if pretty else orjson.OPT_SORT_KEYS
    path.write_bytes(orjson.dumps(obj, option=opts))


def save_text(text: str, path: Path) -> None:
    """Save text as UTF-8."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


def dumps_json(obj: Any) -> str:
    """Compact JSON string (request bodies, log lines)."""
    return orjson.dumps(obj).decode("utf-8")


def loads_json(raw: str | bytes) -> Any:
    return orjson.loads(raw)
