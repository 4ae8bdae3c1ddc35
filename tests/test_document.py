"""Tests for page text providers and the document handle."""

from pathlib import Path

import fitz  # PyMuPDF
import pytest

from readsync.readalong.document import Document, PDFPageTextProvider, TextPageProvider
from readsync.readalong.models import Rect


class BrokenProvider(TextPageProvider):
    def text(self, page_index):
        raise IOError("damaged page")

    def geometry(self, page_index, text_range):
        raise IOError("damaged page")


def test_text_provider_layout():
    provider = TextPageProvider(["ab\ncd"], char_width=10.0, line_height=20.0, margin=0.0)

    assert provider.geometry(0, (0, 2)) == Rect(0.0, 0.0, 20.0, 20.0)
    assert provider.geometry(0, (3, 5)) == Rect(0.0, 20.0, 20.0, 40.0)
    assert provider.geometry(0, (0, 5)) == Rect(0.0, 0.0, 20.0, 40.0)
    assert provider.geometry(0, (2, 3)) is None


def test_text_provider_wraps_long_lines():
    provider = TextPageProvider(["abcdef"], char_width=10.0, line_height=20.0, margin=0.0, wrap_column=4)
    assert provider.geometry(0, (4, 6)) == Rect(0.0, 20.0, 20.0, 40.0)


def test_text_provider_key_depends_on_content():
    assert TextPageProvider(["a"]).document_key == TextPageProvider(["a"]).document_key
    assert TextPageProvider(["a"]).document_key != TextPageProvider(["b"]).document_key
    assert TextPageProvider(["a"], key="book").document_key == "book"


def test_text_provider_from_file(tmp_path):
    path = tmp_path / "book.txt"
    path.write_text("Page one.\fPage two.", encoding="utf-8")

    provider = TextPageProvider.from_file(path)

    assert provider.page_count() == 2
    assert provider.text(1) == "Page two."
    assert provider.document_key == str(path.resolve())


def test_document_pages():
    document = Document(TextPageProvider(["One.", "Two."]))

    assert document.page_count == 2
    assert document.has_page(1)
    assert not document.has_page(2)
    assert not document.has_page(-1)
    assert document.page_text(5) == ""
    assert document.pages() == [(0, "One."), (1, "Two.")]


def test_failing_provider_yields_empty_page():
    document = Document(BrokenProvider(["One."]))

    assert document.page_text(0) == ""
    assert document.geometry(0, (0, 2)) is None


def test_pdf_provider_reads_text_and_geometry():
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Hello world. Second line here.", fontsize=12)
    page.insert_text((72, 100), "Another line.", fontsize=12)

    provider = PDFPageTextProvider(Path("in-memory.pdf"), doc=doc)
    try:
        text = provider.text(0)
        assert provider.page_count() == 1
        assert "Hello world." in text
        assert "Another line." in text

        start = text.index("Hello")
        bounds = provider.geometry(0, (start, start + 5))
        assert bounds is not None
        assert abs(bounds.left - 72) < 2
        assert bounds.top < 72 < bounds.bottom + 2

        second = text.index("Another")
        lower = provider.geometry(0, (second, second + 7))
        assert lower.top > bounds.top
    finally:
        provider.close()


def test_pdf_provider_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        PDFPageTextProvider(tmp_path / "missing.pdf")
