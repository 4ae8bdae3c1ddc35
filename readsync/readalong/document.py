"""
Document Module

Page text providers and the read-only Document handle used by the
segmenter, locator and playback controller. Providers supply page text
and map character ranges back to page geometry; nothing here renders.
"""

import hashlib
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import fitz  # PyMuPDF

from readsync.readalong.models import Rect, TextRange
from readsync.utils import logger


class PageTextProvider:
    """Source of page text and geometry for one document."""

    @property
    def document_key(self) -> str:
        """Stable identifier used to partition cached search results."""
        raise NotImplementedError

    def page_count(self) -> int:
        raise NotImplementedError

    def text(self, page_index: int) -> str:
        raise NotImplementedError

    def geometry(self, page_index: int, text_range: TextRange) -> Optional[Rect]:
        """Bounding rectangle of ``text_range`` on the page, if it has any."""
        raise NotImplementedError

    def close(self) -> None:
        pass


class _CharLayout:
    """Page text plus one optional bounding box per character."""

    def __init__(self, text: str, boxes: List[Optional[Rect]]):
        self.text = text
        self.boxes = boxes

    def bounds(self, text_range: TextRange) -> Optional[Rect]:
        start, end = text_range
        start = max(0, start)
        end = min(len(self.boxes), end)
        boxes = [box for box in self.boxes[start:end] if box is not None]
        if not boxes:
            return None
        return Rect.bounding(boxes)


class PDFPageTextProvider(PageTextProvider):
    """Page text and character geometry from a PDF via PyMuPDF."""

    # Ligatures and spacing characters PDF text layers commonly carry
    REPLACEMENTS = {
        "ﬁ": "fi",
        "ﬂ": "fl",
        "ﬀ": "ff",
        "ﬃ": "ffi",
        "ﬄ": "ffl",
        "\xa0": " ",  # Non-breaking space
    }

    def __init__(self, pdf_path: Path, doc: Optional[fitz.Document] = None):
        """
        Open a PDF for reading.

        Args:
            pdf_path: Path to the PDF file (also the document key)
            doc: Already opened document, e.g. one built in memory
        """
        self.pdf_path = Path(pdf_path)
        if doc is None:
            if not self.pdf_path.exists():
                raise FileNotFoundError(f"PDF not found: {pdf_path}")
            doc = fitz.open(self.pdf_path)

        self.doc = doc
        self.total_pages = len(self.doc)
        self._layouts: Dict[int, _CharLayout] = {}

    @property
    def document_key(self) -> str:
        return str(self.pdf_path.resolve())

    def page_count(self) -> int:
        return self.total_pages

    def text(self, page_index: int) -> str:
        return self._layout(page_index).text

    def geometry(self, page_index: int, text_range: TextRange) -> Optional[Rect]:
        return self._layout(page_index).bounds(text_range)

    def _layout(self, page_index: int) -> _CharLayout:
        if page_index not in self._layouts:
            self._layouts[page_index] = self._extract_layout(page_index)
        return self._layouts[page_index]

    def _extract_layout(self, page_index: int) -> _CharLayout:
        """Flatten the page's character stream, one line per text line."""
        page = self.doc[page_index]
        chars: List[str] = []
        boxes: List[Optional[Rect]] = []

        for block in page.get_text("rawdict")["blocks"]:
            if block.get("type", 0) != 0:  # Not a text block
                continue
            for line in block["lines"]:
                for span in line["spans"]:
                    for char in span["chars"]:
                        box = Rect(*char["bbox"])
                        for out in self.REPLACEMENTS.get(char["c"], char["c"]):
                            chars.append(out)
                            boxes.append(box)
                chars.append("\n")
                boxes.append(None)

        return _CharLayout("".join(chars), boxes)

    def close(self) -> None:
        """Close the PDF document."""
        self.doc.close()

    def __enter__(self) -> "PDFPageTextProvider":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class TextPageProvider(PageTextProvider):
    """
    Plain-text pages laid out on a synthetic monospaced grid.

    Each character occupies ``char_width`` x ``line_height`` points, lines
    wrap at ``wrap_column`` and explicit newlines start a new line.
    """

    def __init__(
        self,
        pages: Sequence[str],
        key: Optional[str] = None,
        char_width: float = 6.0,
        line_height: float = 14.0,
        margin: float = 36.0,
        wrap_column: int = 80,
    ):
        self.pages = list(pages)
        self.char_width = char_width
        self.line_height = line_height
        self.margin = margin
        self.wrap_column = wrap_column
        self._key = key or hashlib.sha1("\f".join(self.pages).encode("utf-8")).hexdigest()
        self._layouts: Dict[int, _CharLayout] = {}

    @classmethod
    def from_file(cls, path: Path, **kwargs) -> "TextPageProvider":
        """Load a text file; form feeds separate pages."""
        path = Path(path)
        text = path.read_text(encoding="utf-8")
        return cls(text.split("\f"), key=str(path.resolve()), **kwargs)

    @property
    def document_key(self) -> str:
        return self._key

    def page_count(self) -> int:
        return len(self.pages)

    def text(self, page_index: int) -> str:
        return self.pages[page_index]

    def geometry(self, page_index: int, text_range: TextRange) -> Optional[Rect]:
        if page_index not in self._layouts:
            self._layouts[page_index] = self._layout(self.pages[page_index])
        return self._layouts[page_index].bounds(text_range)

    def char_box(self, line: int, column: int) -> Rect:
        x0 = self.margin + column * self.char_width
        y0 = self.margin + line * self.line_height
        return Rect(x0, y0, x0 + self.char_width, y0 + self.line_height)

    def _layout(self, text: str) -> _CharLayout:
        boxes: List[Optional[Rect]] = []
        line, column = 0, 0
        for char in text:
            if char == "\n":
                boxes.append(None)
                line, column = line + 1, 0
                continue
            if column >= self.wrap_column:
                line, column = line + 1, 0
            boxes.append(self.char_box(line, column))
            column += 1
        return _CharLayout(text, boxes)


class Document:
    """
    Read-only handle on a loaded document.

    Owns nothing but memoized page text; the provider stays owned by the
    caller. Replaced wholesale when another document is opened.
    """

    def __init__(self, provider: PageTextProvider, key: Optional[str] = None):
        self.provider = provider
        self.key = key or provider.document_key
        self._texts: Dict[int, str] = {}

    @property
    def page_count(self) -> int:
        return self.provider.page_count()

    def has_page(self, page_index: int) -> bool:
        return 0 <= page_index < self.page_count

    def page_text(self, page_index: int) -> str:
        """Raw page text; a failing provider yields an empty page."""
        if not self.has_page(page_index):
            return ""
        if page_index not in self._texts:
            try:
                self._texts[page_index] = self.provider.text(page_index) or ""
            except Exception as e:
                logger.warning(f"Could not read text of page {page_index}: {e}")
                self._texts[page_index] = ""
        return self._texts[page_index]

    def geometry(self, page_index: int, text_range: TextRange) -> Optional[Rect]:
        try:
            return self.provider.geometry(page_index, text_range)
        except Exception as e:
            logger.warning(f"Could not resolve geometry on page {page_index}: {e}")
            return None

    def pages(self) -> List[Tuple[int, str]]:
        return [(i, self.page_text(i)) for i in range(self.page_count)]
