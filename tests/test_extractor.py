"""Tests for secaudit.extractor module."""
import io

import pytest
from _samples import RISK_PARAGRAPHS, build_filing_html
from pypdf import PdfWriter

from secaudit.errors import StepError
from secaudit.extractor import (
    extract_from_html,
    extract_from_pdf,
    extract_from_text,
    extract_text,
)


def _blank_pdf(pages: int = 2) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=612, height=792)
    buf = io.BytesIO()
    writer.write(buf)
    return buf.getvalue()


class TestExtractFromHtml:
    def test_one_line_per_block(self) -> None:
        html = "<html><body><p>First paragraph.</p><p>Second paragraph.</p></body></html>"
        assert extract_from_html(html) == "First paragraph.\nSecond paragraph."

    def test_table_cells(self) -> None:
        html = "<table><tr><td>Revenue</td><td>$394 billion</td></tr></table>"
        assert extract_from_html(html) == "Revenue\n$394 billion"

    def test_nested_duplicates_dropped(self) -> None:
        html = "<table><tr><td><p>Net income</p></td></tr></table>"
        assert extract_from_html(html) == "Net income"

    def test_short_fragments_dropped(self) -> None:
        html = "<p>ok</p><p>Kept paragraph</p>"
        assert extract_from_html(html) == "Kept paragraph"

    def test_scripts_ignored(self) -> None:
        html = "<body><script>var secret = 1;</script><p>Visible text</p></body>"
        assert extract_from_html(html) == "Visible text"

    def test_div_only_markup_falls_back_to_body_text(self) -> None:
        text = extract_from_html(build_filing_html())
        assert "Item 1A. Risk Factors" in text
        assert RISK_PARAGRAPHS[0] in text
        assert "\n" in text
        assert "Table of Contents" not in text

    def test_bytes_input(self) -> None:
        html = "<p>Management\x92s Discussion</p>".encode("latin-1")
        assert extract_from_html(html) == "Management\u2019s Discussion"


class TestExtractFromPdf:
    def test_blank_pages(self) -> None:
        assert extract_from_pdf(_blank_pdf(2)).strip() == ""

    def test_invalid_pdf(self) -> None:
        with pytest.raises(StepError, match="PDF extraction failed"):
            extract_from_pdf(b"%PDF-1.7 truncated garbage")


class TestExtractText:
    def test_dispatch_text(self) -> None:
        assert extract_text("plain filing text", "text") == "plain filing text"

    def test_dispatch_html(self) -> None:
        assert extract_text("<p>Hello world</p>", "html") == "Hello world"

    def test_dispatch_pdf(self) -> None:
        assert extract_text(_blank_pdf(1), "pdf").strip() == ""

    def test_text_bytes_decoded(self) -> None:
        assert extract_from_text(b"caf\xc3\xa9") == "café"

    def test_unknown_kind(self) -> None:
        with pytest.raises(StepError, match="Unsupported content kind"):
            extract_text("x", "xml")  # type: ignore[arg-type]
