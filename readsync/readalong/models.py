"""
Shared geometry and search types for locating sentences on a page.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Tuple


TextRange = Tuple[int, int]  # (start, end) character offsets, end exclusive


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in page points, y growing downwards."""

    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def top(self) -> float:
        return self.y0

    @property
    def bottom(self) -> float:
        return self.y1

    @property
    def left(self) -> float:
        return self.x0

    @property
    def right(self) -> float:
        return self.x1

    @property
    def mid_y(self) -> float:
        return (self.y0 + self.y1) / 2

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def union(self, other: "Rect") -> "Rect":
        return Rect(
            min(self.x0, other.x0),
            min(self.y0, other.y0),
            max(self.x1, other.x1),
            max(self.y1, other.y1),
        )

    @classmethod
    def bounding(cls, rects: Iterable["Rect"]) -> "Rect":
        """Smallest rectangle containing all of ``rects``."""
        result = None
        for rect in rects:
            result = rect if result is None else result.union(rect)
        if result is None:
            raise ValueError("Cannot bound an empty set of rectangles")
        return result

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.x0, self.y0, self.x1, self.y1)


class SegmentPosition(Enum):
    """Where a segment sits within its sentence."""

    START = "start"
    MIDDLE = "middle"
    END = "end"


@dataclass(frozen=True)
class TextSegment:
    """Short substring of a sentence used as a search anchor."""

    text: str
    position: SegmentPosition
    offset: int  # Start offset within the sentence


@dataclass(frozen=True)
class SearchResult:
    """A segment resolved to a page range and its bounding rectangle."""

    segment: TextSegment
    page_index: int
    text_range: TextRange
    bounds: Rect

    @property
    def start(self) -> int:
        return self.text_range[0]

    @property
    def end(self) -> int:
        return self.text_range[1]
