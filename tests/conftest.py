"""Fixtures that write sample filings to disk."""
from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from _samples import ALL_SECTIONS, build_filing_html, build_filing_text


@pytest.fixture
def filing_html() -> str:
    return build_filing_html()


@pytest.fixture
def write_filing(tmp_path: Path) -> Callable[..., Path]:
    """Write a sample filing to disk and return its path."""

    def _write(include: tuple[str, ...] = ALL_SECTIONS, *, name: str = "filing.htm") -> Path:
        path = tmp_path / "filings" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if name.endswith(".txt"):
            path.write_text(build_filing_text(include), encoding="utf-8")
        else:
            path.write_text(build_filing_html(include), encoding="utf-8")
        return path

    return _write
