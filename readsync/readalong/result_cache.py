"""
Result Cache Module

Time-bounded, size-bounded memoization of segment search results,
partitioned by document key and page.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from readsync.readalong.models import SearchResult
from readsync.utils.config import config
from readsync.utils import logger


@dataclass(frozen=True)
class CacheKey:
    """Identifies a cached search: document, hinted page and segment text."""

    document_key: str
    page_index: int
    text: str


@dataclass(frozen=True)
class CacheEntry:
    """Cached search result with its creation time."""

    result: SearchResult
    timestamp: float
    page_index: int

    def age(self, now: float) -> float:
        return now - self.timestamp


class ResultCache:
    """
    Bounded cache of SearchResults.

    No entry is returned past ``max_age`` seconds, and the number of
    entries never exceeds ``max_size``. Only the owner thread touches the
    cache, so it carries no lock.
    """

    def __init__(
        self,
        max_size: Optional[int] = None,
        cleanup_threshold: Optional[int] = None,
        max_age: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the cache.

        Args:
            max_size: Entry ceiling that triggers a cleanup on insert
            cleanup_threshold: Size the cleanup shrinks the cache down to
            max_age: Seconds an entry stays valid
            clock: Monotonic time source, injectable for tests
        """
        self.max_size = max_size if max_size is not None else config.get("cache", "max_size", default=100)
        self.cleanup_threshold = (
            cleanup_threshold
            if cleanup_threshold is not None
            else config.get("cache", "cleanup_threshold", default=80)
        )
        self.max_age = max_age if max_age is not None else config.get("cache", "max_age", default=300.0)
        if self.cleanup_threshold >= self.max_size:
            raise ValueError("cleanup_threshold must be smaller than max_size")

        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: CacheKey) -> bool:
        return self.get(key) is not None

    def get(self, key: CacheKey) -> Optional[CacheEntry]:
        """Return the live entry for ``key``; expired entries are evicted."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        if entry.age(self._clock()) > self.max_age:
            del self._entries[key]
            return None

        return entry

    def put(self, key: CacheKey, entry: CacheEntry) -> None:
        """Insert ``entry``, cleaning up first when the cache is full."""
        if key not in self._entries and len(self._entries) >= self.max_size:
            self._cleanup()
        self._entries[key] = entry

    def store(self, key: CacheKey, result: SearchResult) -> CacheEntry:
        """Wrap ``result`` in a fresh entry and insert it."""
        entry = CacheEntry(result=result, timestamp=self._clock(), page_index=key.page_index)
        self.put(key, entry)
        return entry

    def invalidate_all(self) -> None:
        """Drop every entry (the active document changed)."""
        if self._entries:
            logger.debug(f"Invalidating {len(self._entries)} cached search results")
        self._entries.clear()

    def _cleanup(self) -> None:
        """Purge expired entries, then the oldest ones down to the threshold."""
        now = self._clock()
        self._entries = {
            key: entry
            for key, entry in self._entries.items()
            if entry.age(now) <= self.max_age
        }

        if len(self._entries) > self.cleanup_threshold:
            newest_first = sorted(
                self._entries.items(), key=lambda item: item[1].timestamp, reverse=True
            )
            self._entries = dict(newest_first[:self.cleanup_threshold])
