"""
Position Validator Module

Rejects multi-segment matches whose geometry cannot belong to a single
sentence: segments scattered across pages, lines or out of order.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from readsync.readalong.models import SearchResult
from readsync.utils.config import config


class ValidationError(Enum):
    """Why a set of search results was judged inconsistent."""

    DIFFERENT_PAGES = "different_pages"
    DIFFERENT_LINES = "different_lines"
    WRONG_ORDER = "wrong_order"
    INCONSISTENT_LAYOUT = "inconsistent_layout"


@dataclass
class ValidationResult:
    """Outcome of validating search results, sorted by segment offset."""

    valid: bool
    results: List[SearchResult] = field(default_factory=list)
    error: Optional[ValidationError] = None

    def __bool__(self) -> bool:
        return self.valid


class PositionValidator:
    """
    Geometric consistency checks for segment matches.

    Checks run in order (page continuity, vertical consistency, horizontal
    ordering, layout consistency) and the first failing check decides the
    reported error.
    """

    def __init__(
        self,
        page_gap_tolerance: Optional[float] = None,
        line_tolerance: Optional[float] = None,
        max_line_changes: Optional[int] = None,
        horizontal_tolerance: Optional[float] = None,
        spacing_tolerance: Optional[float] = None,
        overlap_tolerance: Optional[float] = None,
    ):
        """
        Initialize the validator.

        Args:
            page_gap_tolerance: Max gap (pt) between a result's bottom and the
                next result's top when they sit on different pages
            line_tolerance: Max difference (pt) of vertical centers for two
                results to count as the same line
            max_line_changes: Line changes tolerated before rejecting
            horizontal_tolerance: Max gap (pt) between same-line neighbours
            spacing_tolerance: Max deviation (pt) of a same-line gap from the
                mean gap
            overlap_tolerance: Overlap (pt) between same-line neighbours
                still accepted as ordered, absorbing glyph-box rounding
        """
        self.page_gap_tolerance = self._setting(page_gap_tolerance, "page_gap_tolerance", 30.0)
        self.line_tolerance = self._setting(line_tolerance, "line_tolerance", 30.0)
        self.max_line_changes = int(self._setting(max_line_changes, "max_line_changes", 2))
        self.horizontal_tolerance = self._setting(horizontal_tolerance, "horizontal_tolerance", 100.0)
        self.spacing_tolerance = self._setting(spacing_tolerance, "spacing_tolerance", 50.0)
        self.overlap_tolerance = self._setting(overlap_tolerance, "overlap_tolerance", 1.0)

    @staticmethod
    def _setting(value, key: str, default):
        if value is not None:
            return value
        return config.get("validator", key, default=default)

    def validate(self, results: Sequence[SearchResult]) -> ValidationResult:
        """
        Validate the relative positions of search results.

        Args:
            results: Search results of one sentence's segments

        Returns:
            ValidationResult; a single result is always valid
        """
        ordered = sorted(results, key=lambda r: r.segment.offset)
        if len(ordered) < 2:
            return ValidationResult(valid=True, results=ordered)

        checks = (
            (self._pages_continuous, ValidationError.DIFFERENT_PAGES),
            (self._lines_consistent, ValidationError.DIFFERENT_LINES),
            (self._horizontally_ordered, ValidationError.WRONG_ORDER),
            (self._layout_consistent, ValidationError.INCONSISTENT_LAYOUT),
        )
        for check, error in checks:
            if not check(ordered):
                return ValidationResult(valid=False, results=ordered, error=error)

        return ValidationResult(valid=True, results=ordered)

    def same_line(self, first: SearchResult, second: SearchResult) -> bool:
        return (
            first.page_index == second.page_index
            and abs(first.bounds.mid_y - second.bounds.mid_y) <= self.line_tolerance
        )

    def _pairs(self, results: Sequence[SearchResult]):
        return zip(results, results[1:])

    def _pages_continuous(self, results: Sequence[SearchResult]) -> bool:
        for first, second in self._pairs(results):
            if first.page_index == second.page_index:
                continue
            if abs(second.bounds.top - first.bounds.bottom) > self.page_gap_tolerance:
                return False
        return True

    def _lines_consistent(self, results: Sequence[SearchResult]) -> bool:
        line_changes = 0
        for first, second in self._pairs(results):
            if abs(second.bounds.mid_y - first.bounds.mid_y) > self.line_tolerance:
                line_changes += 1
                if line_changes > self.max_line_changes:
                    return False
        return True

    def _horizontally_ordered(self, results: Sequence[SearchResult]) -> bool:
        for first, second in self._pairs(results):
            if not self.same_line(first, second):
                continue
            gap = second.bounds.left - first.bounds.right
            if gap < -self.overlap_tolerance:
                return False
            if gap > self.horizontal_tolerance:
                return False
        return True

    def _layout_consistent(self, results: Sequence[SearchResult]) -> bool:
        gaps = [
            second.bounds.left - first.bounds.right
            for first, second in self._pairs(results)
            if self.same_line(first, second)
        ]
        if len(gaps) < 2:
            return True

        mean_gap = sum(gaps) / len(gaps)
        return all(abs(gap - mean_gap) <= self.spacing_tolerance for gap in gaps)
