"""
Sentence Splitter Module

Splits page text into sentences for sentence-by-sentence narration.
Uses punctuation heuristics only: Latin and CJK terminators, optional
soft breaks, and protection for abbreviations and decimal numbers.
"""

import re
from dataclasses import dataclass
from typing import FrozenSet, Generator, List, Optional, Set

from readsync.utils.config import config


# Characters that close a quotation or bracket right after a terminator
CLOSING_MARKS = frozenset("\"'”’」』)）]】")


@dataclass
class Sentence:
    """Represents a single sentence with position information."""

    text: str  # The sentence text, terminator included
    page_index: int  # Page the sentence was split from
    index: int  # 0-based index within the page's sentence list
    is_last: bool = False  # Last sentence of its page
    start_char: int = 0  # Offset in the whitespace-normalized page text
    end_char: int = 0  # End offset in the whitespace-normalized page text
    synthetic_terminator: bool = False  # Terminator was appended, not on the page

    @property
    def searchable_text(self) -> str:
        """Sentence text as it appears on the page."""
        if self.synthetic_terminator:
            return self.text[:-1]
        return self.text

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()


class SentenceSplitter:
    """
    Punctuation-driven sentence splitter.

    Handles:
    - Latin and CJK sentence-final punctuation (. ! ? 。 ！ ？)
    - Optional soft breaks (, ; : ， ； ：)
    - Runs of terminators and closing quotes ("Really?!" stays one sentence)
    - Abbreviations (Mr., Dr., etc.), initials and decimal numbers
    - Trailing text without a terminator (a synthetic one is appended)
    """

    # Common abbreviations that shouldn't end sentences
    ABBREVIATIONS = {
        "mr", "mrs", "ms", "dr", "prof", "sr", "jr", "st", "ltd", "inc",
        "vs", "etc", "al", "eg", "ie", "cf", "vol", "pp", "ed",
        "jan", "feb", "mar", "apr", "jun", "jul", "aug", "sep", "oct", "nov", "dec",
        "fig", "figs", "eq", "eqs", "sec", "ch", "pt", "para",
    }

    def __init__(
        self,
        terminators: Optional[str] = None,
        soft_breaks: Optional[str] = None,
        use_soft_breaks: Optional[bool] = None,
        synthetic_terminator: Optional[str] = None,
    ):
        """
        Initialize the sentence splitter.

        Args:
            terminators: Sentence-final punctuation characters
            soft_breaks: Characters treated as breaks when soft breaks are on
            use_soft_breaks: Whether comma/semicolon/colon also end a sentence
            synthetic_terminator: Mark appended to trailing unterminated text
        """
        if terminators is None:
            terminators = config.get("segmenter", "terminators", default="。！？.!?")
        if soft_breaks is None:
            soft_breaks = config.get("segmenter", "soft_breaks", default="，；：,;:")
        if use_soft_breaks is None:
            use_soft_breaks = config.get("segmenter", "use_soft_breaks", default=False)
        if synthetic_terminator is None:
            synthetic_terminator = config.get("segmenter", "synthetic_terminator", default="。")

        chars = set(terminators)
        if use_soft_breaks:
            chars.update(soft_breaks)
        self.terminators: FrozenSet[str] = frozenset(chars)
        self.synthetic_terminator = synthetic_terminator

    def split(self, text: str, page_index: int = 0) -> List[Sentence]:
        """
        Split text into sentences.

        Args:
            text: Raw page text
            page_index: Page the text belongs to

        Returns:
            List of Sentence objects, in reading order
        """
        normalized = re.sub(r"\s+", " ", text or "").strip()
        if not normalized:
            return []

        protected = self._protected_positions(normalized)
        sentences: List[Sentence] = []
        buffer_start = 0
        i = 0
        length = len(normalized)

        while i < length:
            char = normalized[i]
            if char in self.terminators and i not in protected:
                # Keep runs like "?!", "..." and closing quotes with the sentence
                while i + 1 < length and (
                    normalized[i + 1] in self.terminators
                    or normalized[i + 1] in CLOSING_MARKS
                ):
                    i += 1
                self._append(sentences, normalized, buffer_start, i + 1, page_index)
                buffer_start = i + 1
            i += 1

        if buffer_start < length:
            self._append(
                sentences, normalized, buffer_start, length, page_index, trailing=True
            )

        if sentences:
            sentences[-1].is_last = True
        return sentences

    def split_iter(self, text: str, page_index: int = 0) -> Generator[Sentence, None, None]:
        """Generator version of split; yields sentences one at a time."""
        for sentence in self.split(text, page_index):
            yield sentence

    def _append(
        self,
        sentences: List[Sentence],
        normalized: str,
        start: int,
        end: int,
        page_index: int,
        trailing: bool = False,
    ) -> None:
        raw = normalized[start:end]
        body = raw.strip()
        if not body:
            return

        start += len(raw) - len(raw.lstrip())
        end = start + len(body)

        synthetic = False
        if trailing and body[-1] not in self.terminators:
            body += self.synthetic_terminator
            synthetic = True

        sentences.append(Sentence(
            text=body,
            page_index=page_index,
            index=len(sentences),
            start_char=start,
            end_char=end,
            synthetic_terminator=synthetic,
        ))

    def _protected_positions(self, text: str) -> Set[int]:
        """Positions of punctuation that must not end a sentence."""
        protected: Set[int] = set()

        # Abbreviations
        for match in re.finditer(r"\b([A-Za-z]+)\.", text):
            if match.group(1).lower() in self.ABBREVIATIONS:
                protected.add(match.end() - 1)

        # Initials (J. R. R. Tolkien, U.S.A.), the last one of a run included
        for match in re.finditer(r"\b[A-Z]\.(?=\s?[A-Z]\.)", text):
            protected.add(match.end() - 1)
        for match in re.finditer(r"(?<=[A-Z]\.)\s?[A-Z]\.", text):
            protected.add(match.end() - 1)

        # Decimal numbers and digit grouping (1.5, 3,000)
        for match in re.finditer(r"(?<=\d)[.,](?=\d)", text):
            protected.add(match.start())

        return protected


def split_into_sentences(text: str, page_index: int = 0) -> List[Sentence]:
    """
    Convenience function to split text into sentences.

    Args:
        text: Text to split
        page_index: Page the text belongs to

    Returns:
        List of Sentence objects
    """
    splitter = SentenceSplitter()
    return splitter.split(text, page_index)
