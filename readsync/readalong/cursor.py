"""
Sentence cursor over the current page's sentence list.
"""

from typing import List, Optional

from readsync.readalong.sentence_splitter import Sentence


class SentenceCursor:
    """
    Monotonically advancing index into one page's sentences.

    ``reset()`` moves to a pre-start position so the next ``advance()``
    yields sentence 0.
    """

    BEFORE_START = -1

    def __init__(self, page_index: int = 0, sentences: Optional[List[Sentence]] = None):
        self.page_index = page_index
        self.sentences: List[Sentence] = list(sentences or [])
        self.index = self.BEFORE_START

    def load(self, page_index: int, sentences: List[Sentence]) -> None:
        """Replace the sentence list (new page or re-submitted text)."""
        self.page_index = page_index
        self.sentences = list(sentences)
        self.reset()

    def reset(self) -> None:
        self.index = self.BEFORE_START

    @property
    def count(self) -> int:
        return len(self.sentences)

    @property
    def current(self) -> Optional[Sentence]:
        if 0 <= self.index < len(self.sentences):
            return self.sentences[self.index]
        return None

    @property
    def position(self) -> int:
        """1-based number of the current sentence (0 before start)."""
        return self.index + 1

    @property
    def is_last(self) -> bool:
        return bool(self.sentences) and self.index >= len(self.sentences) - 1

    def has_next(self) -> bool:
        return self.index + 1 < len(self.sentences)

    def advance(self) -> Optional[Sentence]:
        """Move to the next sentence; None (cursor unchanged) at the end."""
        if not self.has_next():
            return None
        self.index += 1
        return self.sentences[self.index]

    def retreat(self) -> Optional[Sentence]:
        """Move to the previous sentence; None at the first one."""
        if self.index <= 0:
            return None
        self.index -= 1
        return self.sentences[self.index]

    def jump(self, index: int) -> Optional[Sentence]:
        """Position the cursor on ``index``; None if out of range."""
        if not 0 <= index < len(self.sentences):
            return None
        self.index = index
        return self.sentences[index]
