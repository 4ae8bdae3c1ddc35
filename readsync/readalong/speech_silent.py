"""
Silent Speech Engine

Narrates without audio: words are "spoken" at a fixed words-per-minute
pace on a background thread, emitting the same word and completion
events a real engine would. Used when no system voice is available.
"""

import re
import threading
from typing import Optional

from readsync.readalong.speech_engine import EngineEvent, EngineEventKind, SpeechEngine
from readsync.utils.config import config


class SilentSpeechEngine(SpeechEngine):
    """Timed speech engine without audio output."""

    name = "silent"

    def __init__(self, words_per_minute: Optional[int] = None):
        super().__init__()
        self.words_per_minute = words_per_minute or config.get(
            "speech", "words_per_minute", default=180
        )
        self._cancel: Optional[threading.Event] = None
        self._running = threading.Event()
        self._running.set()
        self._utterance_id: Optional[int] = None

    @property
    def seconds_per_word(self) -> float:
        return 60.0 / max(1, int(self.words_per_minute))

    def speak(self, text: str, utterance_id: int) -> None:
        self.stop()
        cancel = threading.Event()
        self._cancel = cancel
        self._running.set()
        self._utterance_id = utterance_id

        thread = threading.Thread(
            target=self._narrate,
            args=(text, utterance_id, cancel),
            name="silent-narrator",
            daemon=True,
        )
        thread.start()

    def pause(self) -> None:
        if self._utterance_id is None or not self._running.is_set():
            return
        self._running.clear()
        self.emit(EngineEvent(EngineEventKind.PAUSED, self._utterance_id))

    def resume(self) -> None:
        if self._utterance_id is None or self._running.is_set():
            return
        self._running.set()
        self.emit(EngineEvent(EngineEventKind.RESUMED, self._utterance_id))

    def stop(self) -> None:
        if self._cancel is not None:
            self._cancel.set()
        self._cancel = None
        self._utterance_id = None
        self._running.set()

    def _narrate(self, text: str, utterance_id: int, cancel: threading.Event) -> None:
        for match in re.finditer(r"\S+", text):
            self._running.wait()
            if cancel.is_set():
                return
            self.emit(EngineEvent(
                EngineEventKind.WORD, utterance_id, match.start(), len(match.group())
            ))
            if cancel.wait(self.seconds_per_word):
                return

        self._running.wait()
        if not cancel.is_set():
            self.emit(EngineEvent(EngineEventKind.FINISHED, utterance_id))
