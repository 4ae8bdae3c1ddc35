"""
Text Locator Module

Finds where a sentence sits on the page. The sentence is cut into short
fixed-length segments, a handful of key segments is searched for with a
case-, diacritic- and line-break-insensitive match, and the matches are
validated geometrically before being combined into one result.
"""

import math
import unicodedata
from dataclasses import replace
from typing import Dict, Iterator, List, Optional, Tuple, Union

from readsync.readalong.document import Document
from readsync.readalong.models import Rect, SearchResult, SegmentPosition, TextSegment
from readsync.readalong.position_validator import PositionValidator
from readsync.readalong.result_cache import CacheKey, ResultCache
from readsync.readalong.sentence_splitter import Sentence
from readsync.utils.config import config
from readsync.utils import logger


def fold_char(char: str) -> str:
    """Case- and diacritic-insensitive form of a single character."""
    decomposed = unicodedata.normalize("NFD", char)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.casefold()


def normalize_for_search(text: str) -> Tuple[str, List[int]]:
    """
    Fold text for searching and keep a map back to the original offsets.

    Whitespace runs (newlines included) collapse to one space.

    Returns:
        Tuple of (folded text, original offset of every folded character)
    """
    folded: List[str] = []
    offsets: List[int] = []
    in_space = False

    for i, char in enumerate(text):
        if char.isspace():
            if not in_space:
                folded.append(" ")
                offsets.append(i)
            in_space = True
            continue

        in_space = False
        for out in fold_char(char):
            folded.append(out)
            offsets.append(i)

    return "".join(folded), offsets


class _SearchablePage:
    """Folded page text with its offset map, built once per page."""

    def __init__(self, text: str):
        self.text = text
        self.folded, self.offsets = normalize_for_search(text)

    def find_all(self, needle: str) -> Iterator[Tuple[int, int]]:
        """Yield (start, end) original-text ranges of every match."""
        if not needle:
            return
        start = self.folded.find(needle)
        while start != -1:
            last = start + len(needle) - 1
            yield self.offsets[start], self.offsets[last] + 1
            start = self.folded.find(needle, start + 1)


class TextLocator:
    """
    Locate sentences on document pages.

    Keeps the page and offset of the previous match so consecutive
    sentences are searched for near each other first.
    """

    def __init__(
        self,
        cache: Optional[ResultCache] = None,
        validator: Optional[PositionValidator] = None,
        segment_length: Optional[int] = None,
        max_segments: Optional[int] = None,
        coverage: Optional[float] = None,
        search_radius: Optional[int] = None,
    ):
        """
        Initialize the locator.

        Args:
            cache: Result cache shared across locate calls
            validator: Geometry validator for multi-segment matches
            segment_length: Characters per segment
            max_segments: Upper bound on selected segments
            coverage: Fraction of the sentence the selected segments should cover
            search_radius: Pages searched forwards and backwards from the hint
        """
        self.cache = cache if cache is not None else ResultCache()
        self.validator = validator if validator is not None else PositionValidator()
        self.segment_length = int(
            segment_length if segment_length is not None
            else config.get("locator", "segment_length", default=3)
        )
        self.max_segments = int(
            max_segments if max_segments is not None
            else config.get("locator", "max_segments", default=5)
        )
        self.coverage = float(
            coverage if coverage is not None
            else config.get("locator", "coverage", default=0.6)
        )
        self.search_radius = int(
            search_radius if search_radius is not None
            else config.get("locator", "search_radius", default=2)
        )
        if self.segment_length < 1:
            raise ValueError("segment_length must be at least 1")

        self._document_key: Optional[str] = None
        self._pages: Dict[int, _SearchablePage] = {}
        self._last_page: Optional[int] = None
        self._last_offset = 0

    # ------------------------------------------------------------------
    # Segment selection
    # ------------------------------------------------------------------

    def segment_text(self, text: str) -> List[TextSegment]:
        """Cut text into consecutive fixed-length segments."""
        clean = text.strip()
        segments = []
        for start in range(0, len(clean), self.segment_length):
            end = min(start + self.segment_length, len(clean))
            if start == 0:
                position = SegmentPosition.START
            elif end == len(clean):
                position = SegmentPosition.END
            else:
                position = SegmentPosition.MIDDLE
            segments.append(TextSegment(clean[start:end], position, start))
        return segments

    def select_segments(self, text: str) -> List[TextSegment]:
        """
        Pick the key segments to search for.

        Always the first, a middle one for sentences longer than two
        segments and the last one, then evenly spaced extras until the
        selection covers ``coverage`` of the sentence or ``max_segments``
        is reached. Sorted by offset.
        """
        segments = self.segment_text(text)
        if not segments:
            return []

        selected = [segments[0]]
        if len(segments) > 2:
            selected.append(segments[len(segments) // 2])
        if len(segments) > 1:
            selected.append(segments[-1])

        total_length = sum(len(s.text) for s in segments)
        covered = sum(len(s.text) for s in selected)
        target = self.coverage * total_length
        remaining = [s for s in segments if s not in selected]
        budget = self.max_segments - len(selected)

        if covered < target and remaining and budget > 0:
            needed = math.ceil((target - covered) / self.segment_length)
            needed = min(needed, budget, len(remaining))
            step = len(remaining) / (needed + 1)
            for i in range(1, needed + 1):
                candidate = remaining[int(i * step)]
                if candidate not in selected:
                    selected.append(candidate)

        return sorted(selected, key=lambda s: s.offset)

    # ------------------------------------------------------------------
    # Locating
    # ------------------------------------------------------------------

    def locate(
        self,
        sentence: Union[Sentence, str],
        document: Document,
        current_page_hint: int = 0,
    ) -> Optional[SearchResult]:
        """
        Resolve a sentence to its bounding geometry.

        Args:
            sentence: Sentence (or plain text) to locate
            document: Document to search
            current_page_hint: Page the sentence is expected on

        Returns:
            SearchResult, or None when no segment is found within the
            search radius
        """
        self.set_document(document)
        text = sentence.searchable_text if isinstance(sentence, Sentence) else sentence
        segments = self.select_segments(text)
        if not segments or document.page_count == 0:
            return None

        hint = min(max(current_page_hint, 0), document.page_count - 1)
        results = []
        for segment in segments:
            result = self.search_segment(segment, document, hint)
            if result is not None:
                results.append(result)

        if not results:
            logger.debug(f"Sentence not found near page {hint}: {text[:40]!r}")
            return None
        if len(results) > 1:
            results = self._reconcile(results, text, document, hint)
        if len(results) == 1:
            return results[0]

        validation = self.validator.validate(results)
        if not validation.valid:
            logger.debug(
                f"Segment positions rejected ({validation.error.value}), "
                f"using first segment only: {text[:40]!r}"
            )
            return results[0]

        return self._combine(validation.results, document)

    def search_segment(
        self,
        segment: TextSegment,
        document: Document,
        page_hint: int,
    ) -> Optional[SearchResult]:
        """Find one segment, consulting the cache first."""
        self.set_document(document)
        key = CacheKey(document.key, page_hint, segment.text)

        entry = self.cache.get(key)
        if entry is not None:
            result = replace(entry.result, segment=segment)
            self._remember(result)
            return result

        result = self._search(segment, document, page_hint)
        if result is not None:
            self.cache.store(key, result)
        return result

    def set_document(self, document: Document) -> None:
        """Switch to ``document``; a new key drops cached state."""
        if document.key == self._document_key:
            return
        self.cache.invalidate_all()
        self._document_key = document.key
        self._pages.clear()
        self.reset()

    def reset(self) -> None:
        """Forget the previous match position."""
        self._last_page = None
        self._last_offset = 0

    def candidate_pages(self, document: Document, page_hint: int) -> List[int]:
        """Pages to search, in order: last match, hint, forward, backward."""
        order = []
        if self._last_page is not None:
            order.append(self._last_page)
        order.append(page_hint)
        order.extend(page_hint + i for i in range(1, self.search_radius + 1))
        order.extend(page_hint - i for i in range(1, self.search_radius + 1))

        pages = []
        for page in order:
            if document.has_page(page) and page not in pages:
                pages.append(page)
        return pages

    def _search(
        self,
        segment: TextSegment,
        document: Document,
        page_hint: int,
    ) -> Optional[SearchResult]:
        needle, _ = normalize_for_search(segment.text)
        for page_index in self.candidate_pages(document, page_hint):
            reference = self._last_offset if page_index == self._last_page else 0
            result = self._search_page(segment, needle, document, page_index, reference)
            if result is not None:
                self._remember(result)
                return result
        return None

    def _search_page(
        self,
        segment: TextSegment,
        needle: str,
        document: Document,
        page_index: int,
        reference: int,
    ) -> Optional[SearchResult]:
        page = self._page(document, page_index)
        matches = sorted(page.find_all(needle), key=lambda rng: abs(rng[0] - reference))

        for text_range in matches:
            bounds = document.geometry(page_index, text_range)
            if bounds is not None:
                return SearchResult(segment, page_index, text_range, bounds)
        return None

    def _page(self, document: Document, page_index: int) -> _SearchablePage:
        if page_index not in self._pages:
            self._pages[page_index] = _SearchablePage(document.page_text(page_index))
        return self._pages[page_index]

    def _remember(self, result: SearchResult) -> None:
        self._last_page = result.page_index
        self._last_offset = result.end

    def _reconcile(
        self,
        results: List[SearchResult],
        text: str,
        document: Document,
        page_hint: int,
    ) -> List[SearchResult]:
        """
        Bring every match in line with the sentence start most matches agree on.

        Each match implies where the sentence starts on its page (match start
        minus segment offset). A match that disagrees, typically a cached hit
        from an earlier sentence sharing the segment, is searched for again
        near the agreed position and dropped when it cannot be found there.
        """
        slack = max(self.segment_length, len(text) // 2)

        def implied_start(result: SearchResult) -> int:
            return result.start - result.segment.offset

        def agrees(result: SearchResult, anchor: SearchResult) -> bool:
            return (
                result.page_index == anchor.page_index
                and abs(implied_start(result) - implied_start(anchor)) <= slack
            )

        # Ties go to the later segment, searched closest to the current position
        anchor = max(reversed(results), key=lambda r: sum(agrees(o, r) for o in results))

        reconciled = []
        for result in results:
            if result.page_index != anchor.page_index or agrees(result, anchor):
                reconciled.append(result)
                continue

            needle, _ = normalize_for_search(result.segment.text)
            expected = implied_start(anchor) + result.segment.offset
            retry = self._search_page(result.segment, needle, document, anchor.page_index, expected)
            if retry is not None and agrees(retry, anchor):
                self.cache.store(CacheKey(document.key, page_hint, result.segment.text), retry)
                reconciled.append(retry)
            else:
                logger.debug(f"Dropping stray match for segment {result.segment.text!r}")
        return reconciled

    def _combine(self, results: List[SearchResult], document: Document) -> SearchResult:
        """Merge validated results into one spanning the first page's matches."""
        first = results[0]
        on_page = [r for r in results if r.page_index == first.page_index]
        text_range = (min(r.start for r in on_page), max(r.end for r in on_page))

        bounds = document.geometry(first.page_index, text_range)
        if bounds is None:
            bounds = Rect.bounding(r.bounds for r in on_page)

        return SearchResult(first.segment, first.page_index, text_range, bounds)
