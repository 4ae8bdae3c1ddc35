"""
Read-Along Module

Synchronizes spoken narration of a paginated document with a visual
sentence highlight, using page text and geometry as ground truth.
"""

from readsync.readalong.sentence_splitter import Sentence, SentenceSplitter, split_into_sentences
from readsync.readalong.document import Document, PDFPageTextProvider, PageTextProvider, TextPageProvider
from readsync.readalong.models import Rect, SearchResult, SegmentPosition, TextSegment
from readsync.readalong.result_cache import CacheEntry, CacheKey, ResultCache
from readsync.readalong.position_validator import PositionValidator, ValidationError, ValidationResult
from readsync.readalong.text_locator import TextLocator
from readsync.readalong.executor import OwnerExecutor
from readsync.readalong.speech_engine import SpeechEngine, SpeechEngineError, create_speech_engine
from readsync.readalong.playback import PlaybackController, PlaybackListener, PlaybackState, PlaybackStatus
from readsync.readalong.highlight import ConsoleRenderer, HighlightOverlay, Renderer

__all__ = [
    "Sentence",
    "SentenceSplitter",
    "split_into_sentences",
    "Document",
    "PDFPageTextProvider",
    "PageTextProvider",
    "TextPageProvider",
    "Rect",
    "SearchResult",
    "SegmentPosition",
    "TextSegment",
    "CacheEntry",
    "CacheKey",
    "ResultCache",
    "PositionValidator",
    "ValidationError",
    "ValidationResult",
    "TextLocator",
    "OwnerExecutor",
    "SpeechEngine",
    "SpeechEngineError",
    "create_speech_engine",
    "PlaybackController",
    "PlaybackListener",
    "PlaybackState",
    "PlaybackStatus",
    "ConsoleRenderer",
    "HighlightOverlay",
    "Renderer",
]
