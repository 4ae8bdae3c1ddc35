"""
Highlight Overlay Module

Keeps at most one highlight visible, driven by playback events: a new
sentence is located and highlighted (or the highlight cleared when it
cannot be found), a finished sentence clears it.
"""

from typing import Optional, Tuple

from readsync.readalong.document import Document
from readsync.readalong.models import Rect, SearchResult
from readsync.readalong.playback import PlaybackListener, PlaybackState, PlaybackStatus
from readsync.readalong.sentence_splitter import Sentence
from readsync.readalong.text_locator import TextLocator
from readsync.utils import logger


class Renderer:
    """Visual presentation of the highlight, owned by the host."""

    def highlight(self, bounds: Rect, page_index: int) -> None:
        raise NotImplementedError

    def clear_highlight(self) -> None:
        raise NotImplementedError


class ConsoleRenderer(Renderer):
    """Prints highlight requests to the console."""

    def highlight(self, bounds: Rect, page_index: int) -> None:
        x0, y0, x1, y1 = (round(v, 1) for v in bounds.as_tuple())
        logger.console.print(
            f"[highlight]▌[/highlight] page {page_index + 1} "
            f"[dim]({x0}, {y0}, {x1}, {y1})[/dim]"
        )

    def clear_highlight(self) -> None:
        pass


class HighlightOverlay(PlaybackListener):
    """Single-region highlight synchronized with the spoken sentence."""

    def __init__(
        self,
        renderer: Renderer,
        locator: Optional[TextLocator] = None,
        document: Optional[Document] = None,
    ):
        self.renderer = renderer
        self.locator = locator or TextLocator()
        self.document = document
        self.last_result: Optional[SearchResult] = None
        self._shown: Optional[Tuple[int, Rect]] = None

    @property
    def visible(self) -> bool:
        return self._shown is not None

    @property
    def region(self) -> Optional[Tuple[int, Rect]]:
        """(page_index, bounds) of the visible highlight."""
        return self._shown

    def show(self, bounds: Rect, page_index: int) -> None:
        """Draw one highlight, replacing any previous one."""
        self.clear()
        self.renderer.highlight(bounds, page_index)
        self._shown = (page_index, bounds)

    def clear(self) -> None:
        if self._shown is None:
            return
        self.renderer.clear_highlight()
        self._shown = None

    def highlight_sentence(self, sentence: Optional[Sentence]) -> Optional[SearchResult]:
        """Locate ``sentence`` and highlight it; clears when not found."""
        if sentence is None or sentence.is_empty or self.document is None:
            self.clear()
            return None

        result = self.locator.locate(sentence, self.document, sentence.page_index)
        self.last_result = result
        if result is None:
            logger.debug(f"No highlight for sentence {sentence.index} on page {sentence.page_index}")
            self.clear()
            return None

        self.show(result.bounds, result.page_index)
        return result

    # PlaybackListener

    def on_document_changed(self, document: Document) -> None:
        self.clear()
        self.document = document
        self.locator.set_document(document)

    def on_sentence_changed(self, sentence: Sentence) -> None:
        self.highlight_sentence(sentence)

    def on_sentence_finished(self, sentence: Optional[Sentence]) -> None:
        self.clear()

    def on_state_changed(self, state: PlaybackState) -> None:
        if state.status in (PlaybackStatus.IDLE, PlaybackStatus.STOPPED):
            self.clear()

    def on_playback_finished(self) -> None:
        self.clear()
