"""
Playback Controller Module

State machine that narrates a document sentence by sentence:

    Idle --speak()--> Speaking --pause()--> Paused --resume()--> Speaking
    Speaking/Paused --stop()--> Stopped

On utterance completion the controller clears the sentence, waits a short
pacing delay and then either advances (auto mode, crossing page
boundaries) or settles to Idle and reports playback finished (after a
user-initiated sentence, or when the document is exhausted).

All methods run on the owner thread. Engine events arrive on arbitrary
threads and are posted onto the owner executor before touching state;
every utterance carries a generation number so late events and delayed
continuations from an interrupted utterance are ignored.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional

from readsync.readalong.cursor import SentenceCursor
from readsync.readalong.document import Document
from readsync.readalong.executor import OwnerExecutor, ScheduledCall
from readsync.readalong.sentence_splitter import Sentence, SentenceSplitter
from readsync.readalong.speech_engine import (
    EngineEvent,
    EngineEventKind,
    SpeechEngine,
    SpeechEngineError,
)
from readsync.utils.config import config
from readsync.utils import logger


class PlaybackStatus(Enum):
    IDLE = "idle"
    SPEAKING = "speaking"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass(frozen=True)
class PlaybackState:
    """Snapshot of the controller's state."""

    status: PlaybackStatus
    page_index: int
    sentence: Optional[Sentence] = None  # Set while speaking or paused
    resume_offset: int = 0  # Offset of the last spoken word in the sentence
    user_initiated: bool = False


class PlaybackListener:
    """
    Receives playback events. Override the ones you need.

    Listeners are handed to the controller at construction and are
    called on the owner thread.
    """

    def on_document_changed(self, document: Document) -> None:
        pass

    def on_state_changed(self, state: PlaybackState) -> None:
        pass

    def on_sentence_changed(self, sentence: Sentence) -> None:
        pass

    def on_sentence_finished(self, sentence: Optional[Sentence]) -> None:
        pass

    def on_page_changed(self, page_index: int) -> None:
        pass

    def on_playback_finished(self) -> None:
        pass

    def on_error(self, message: str) -> None:
        pass


class PlaybackController:
    """Coordinates segmentation, the speech engine and highlight events."""

    def __init__(
        self,
        document: Document,
        engine: SpeechEngine,
        executor: OwnerExecutor,
        listeners: Iterable[PlaybackListener] = (),
        splitter: Optional[SentenceSplitter] = None,
        fallback_engine: Optional[SpeechEngine] = None,
        pacing_delay: Optional[float] = None,
        page_index: int = 0,
    ):
        """
        Initialize the controller.

        Args:
            document: Document to narrate
            engine: Speech engine used for every utterance
            executor: Owner executor that serializes state changes
            listeners: Receivers of playback events
            splitter: Sentence splitter (default: configured splitter)
            fallback_engine: Engine retried once when ``engine`` fails
            pacing_delay: Seconds between a finished sentence and the next
            page_index: Page to start on
        """
        self.document = document
        self.engine = engine
        self.fallback_engine = fallback_engine
        self.executor = executor
        self.listeners: List[PlaybackListener] = list(listeners)
        self.splitter = splitter or SentenceSplitter()
        self.pacing_delay = pacing_delay if pacing_delay is not None else config.pacing_delay

        self.start_page = page_index
        self.cursor = SentenceCursor(page_index)
        self._loaded = False
        self._status = PlaybackStatus.IDLE
        self._generation = 0
        self._pending: Optional[ScheduledCall] = None
        self._paused_between = False
        self._user_initiated = False
        self._resume_offset = 0
        self._fallback_used = False

        self.engine.attach(self._on_engine_event)
        if self.fallback_engine is not None:
            self.fallback_engine.attach(self._on_engine_event)

        self._notify("on_document_changed", document)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def status(self) -> PlaybackStatus:
        return self._status

    @property
    def user_initiated(self) -> bool:
        return self._user_initiated

    @property
    def current_sentence(self) -> Optional[Sentence]:
        if self._status in (PlaybackStatus.SPEAKING, PlaybackStatus.PAUSED):
            return self.cursor.current
        return None

    @property
    def state(self) -> PlaybackState:
        return PlaybackState(
            status=self._status,
            page_index=self.cursor.page_index,
            sentence=self.current_sentence,
            resume_offset=self._resume_offset,
            user_initiated=self._user_initiated,
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def speak(self) -> None:
        """
        Start (or continue) narrating in auto mode.

        After the end of the document, starts over from the page playback
        was started on.
        """
        if self._status == PlaybackStatus.SPEAKING:
            return
        if self._status == PlaybackStatus.PAUSED:
            self.resume()
            return

        self._ensure_loaded()
        sentence = self._next_sentence()
        if sentence is None:
            logger.info("Nothing left to read")
            self._finish(exhausted=True)
            return

        self._user_initiated = False
        self._speak_sentence(sentence)

    def pause(self) -> None:
        if self._status != PlaybackStatus.SPEAKING:
            return

        if self._pending is not None:
            # Between sentences: hold the pending advance until resume()
            self._cancel_pending()
            self._paused_between = True
        else:
            self.engine.pause()
        self._set_status(PlaybackStatus.PAUSED)

    def resume(self) -> None:
        if self._status != PlaybackStatus.PAUSED:
            return

        self._set_status(PlaybackStatus.SPEAKING)
        if self._paused_between:
            self._paused_between = False
            self._continue(self._generation)
        else:
            self.engine.resume()

    def toggle(self) -> None:
        """Play/pause button semantics."""
        if self._status == PlaybackStatus.SPEAKING:
            self.pause()
        else:
            self.speak()

    def stop(self) -> None:
        """Stop narrating and rewind to the start of the current page."""
        if self._status in (PlaybackStatus.IDLE, PlaybackStatus.STOPPED) and self._pending is None:
            return

        self._interrupt()
        self.cursor.reset()
        self._user_initiated = False
        self._resume_offset = 0
        self._set_status(PlaybackStatus.STOPPED)

    def next_sentence(self) -> bool:
        """Speak the next sentence only (user-initiated, no auto-advance)."""
        self._ensure_loaded()
        self._interrupt()
        sentence = self._next_sentence()
        if sentence is None:
            self._finish(exhausted=True)
            return False

        self._user_initiated = True
        self._speak_sentence(sentence)
        return True

    def previous_sentence(self) -> bool:
        """Speak the previous sentence only, crossing back over page starts."""
        self._ensure_loaded()
        if self.cursor.index > 0:
            self._interrupt()
            sentence = self.cursor.retreat()
        else:
            page = self.cursor.page_index - 1
            while page >= 0 and not self.splitter.split(self.document.page_text(page), page):
                page -= 1
            if page < 0:
                logger.warning("Already at the first sentence")
                return False
            self._interrupt()
            sentences = self._load_page(page)
            sentence = self.cursor.jump(len(sentences) - 1)

        self._user_initiated = True
        self._speak_sentence(sentence)
        return True

    def jump_to_sentence(self, index: int) -> bool:
        """Speak sentence ``index`` of the current page directly."""
        self._ensure_loaded()
        if not 0 <= index < self.cursor.count:
            logger.warning(
                f"Sentence {index} out of range (page {self.cursor.page_index} "
                f"has {self.cursor.count})"
            )
            return False

        self._interrupt()
        sentence = self.cursor.jump(index)
        self._user_initiated = True
        self._speak_sentence(sentence)
        return True

    def jump_to_page(self, page_index: int, sentence_index: int = 0) -> bool:
        """Move to ``page_index`` and speak one of its sentences directly."""
        if not self.document.has_page(page_index):
            logger.warning(f"Page {page_index} out of range ({self.document.page_count} pages)")
            return False

        self._interrupt()
        sentences = self._load_page(page_index)
        if not 0 <= sentence_index < len(sentences):
            logger.warning(f"Page {page_index} has no sentence {sentence_index}")
            self._set_status(PlaybackStatus.IDLE)
            return False

        sentence = self.cursor.jump(sentence_index)
        self._user_initiated = True
        self._speak_sentence(sentence)
        return True

    def set_document(self, document: Document, page_index: int = 0) -> None:
        """Replace the document; playback stops and settles to Idle."""
        self._interrupt()
        self.document = document
        self.start_page = page_index
        self.cursor.load(page_index, [])
        self._loaded = False
        self._user_initiated = False
        self._resume_offset = 0
        self._set_status(PlaybackStatus.IDLE)
        self._notify("on_document_changed", document)

    # ------------------------------------------------------------------
    # Engine events
    # ------------------------------------------------------------------

    def _on_engine_event(self, event: EngineEvent) -> None:
        """Engine callback; may run on any thread."""
        self.executor.post(self._handle_engine_event, event)

    def _handle_engine_event(self, event: EngineEvent) -> None:
        if event.utterance_id != self._generation:
            logger.debug(f"Ignoring stale {event.kind.value} event for utterance {event.utterance_id}")
            return

        if event.kind == EngineEventKind.WORD:
            self._resume_offset = event.location
        elif event.kind == EngineEventKind.PAUSED:
            if self._status == PlaybackStatus.SPEAKING and self._pending is None:
                self._set_status(PlaybackStatus.PAUSED)
        elif event.kind == EngineEventKind.RESUMED:
            if self._status == PlaybackStatus.PAUSED and not self._paused_between:
                self._set_status(PlaybackStatus.SPEAKING)
        elif event.kind == EngineEventKind.FINISHED:
            if self._status == PlaybackStatus.SPEAKING and self._pending is None:
                self._sentence_finished()
        elif event.kind == EngineEventKind.FAILED:
            self._handle_engine_failure(event.error or "speech engine failed")

    def _sentence_finished(self) -> None:
        self._notify("on_sentence_finished", self.cursor.current)
        self._pending = self.executor.call_later(
            self.pacing_delay, self._continue, self._generation
        )

    def _continue(self, generation: int) -> None:
        """Delayed continuation after a finished sentence."""
        if generation != self._generation or self._status != PlaybackStatus.SPEAKING:
            return
        self._pending = None

        if self._user_initiated:
            self._user_initiated = False
            self._finish(exhausted=False)
            return

        sentence = self._next_sentence()
        if sentence is None:
            logger.debug("Reached the end of the document")
            self._finish(exhausted=True)
            return

        self._speak_sentence(sentence)

    def _handle_engine_failure(self, message: str) -> None:
        logger.warning(f"Speech engine '{self.engine.name}' failed: {message}")
        self._notify("on_error", message)

        sentence = self.cursor.current
        if self.fallback_engine is not None and not self._fallback_used and sentence is not None:
            self._fallback_used = True
            logger.warning(f"Retrying with fallback engine '{self.fallback_engine.name}'")
            self.engine = self.fallback_engine
            self._speak_sentence(sentence)
            return

        self._interrupt()
        self._finish(exhausted=False)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _speak_sentence(self, sentence: Sentence) -> None:
        """Single entry point for every utterance."""
        self._generation += 1
        self._cancel_pending()
        self._paused_between = False
        self._resume_offset = 0
        self._set_status(PlaybackStatus.SPEAKING)

        logger.debug(
            f"Sentence [{self.cursor.position}/{self.cursor.count}] on page "
            f"{sentence.page_index}: {sentence.text}"
        )
        self._notify("on_sentence_changed", sentence)

        try:
            self.engine.speak(sentence.text, self._generation)
        except SpeechEngineError as e:
            self._handle_engine_failure(str(e))

    def _next_sentence(self) -> Optional[Sentence]:
        """Advance the cursor, moving on to following pages when needed."""
        sentence = self.cursor.advance()
        if sentence is not None:
            return sentence

        page = self.cursor.page_index + 1
        while self.document.has_page(page):
            if self._load_page(page):
                return self.cursor.advance()
            page += 1
        return None

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self._load_page(self.cursor.page_index)

    def _load_page(self, page_index: int) -> List[Sentence]:
        text = self.document.page_text(page_index)
        sentences = self.splitter.split(text, page_index)
        changed = page_index != self.cursor.page_index
        self.cursor.load(page_index, sentences)
        self._loaded = True
        logger.debug(f"Loaded page {page_index} with {len(sentences)} sentences")
        if changed:
            self._notify("on_page_changed", page_index)
        return sentences

    def _interrupt(self) -> None:
        """Silence the current utterance and void pending continuations."""
        self._generation += 1
        self._cancel_pending()
        self._paused_between = False
        if self._status in (PlaybackStatus.SPEAKING, PlaybackStatus.PAUSED):
            self.engine.stop()

    def _finish(self, exhausted: bool) -> None:
        self._generation += 1
        self._cancel_pending()
        self._user_initiated = False
        if exhausted:
            self._rewind()
        self._set_status(PlaybackStatus.IDLE)
        self._notify("on_playback_finished")

    def _rewind(self) -> None:
        """Return to the first sentence of the page playback started on."""
        if self.cursor.page_index != self.start_page and self.document.has_page(self.start_page):
            self._load_page(self.start_page)
        else:
            self.cursor.reset()

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def _set_status(self, status: PlaybackStatus) -> None:
        changed = status != self._status
        self._status = status
        if changed:
            self._notify("on_state_changed", self.state)

    def _notify(self, method: str, *args) -> None:
        for listener in self.listeners:
            getattr(listener, method)(*args)
