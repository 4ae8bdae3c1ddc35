"""
Speech Engine using pyttsx3

Speaks sentences with the system voice. pyttsx3 is driven from a worker
thread with an external loop (startLoop(False) + iterate()), so speak and
stop requests never block the owner thread.

pyttsx3 has no native pause; pausing stops the utterance and remembers
the last spoken word, resuming speaks the remainder from there.
"""

import queue
import threading
from typing import Optional, Tuple

from readsync.readalong.speech_engine import (
    EngineEvent,
    EngineEventKind,
    SpeechEngine,
    SpeechEngineError,
    SpeechEngineNotAvailableError,
)
from readsync.utils.config import config
from readsync.utils import logger


class Pyttsx3SpeechEngine(SpeechEngine):
    """System-voice speech engine backed by pyttsx3."""

    name = "pyttsx3"
    POLL_INTERVAL = 0.01
    START_TIMEOUT = 10.0

    def __init__(self, voice: Optional[str] = None, rate: Optional[int] = None):
        """
        Initialize the pyttsx3 engine wrapper.

        Args:
            voice: Voice ID or name fragment to use (system voice)
            rate: Speech rate in words per minute
        """
        super().__init__()
        self.voice = voice if voice is not None else config.voice
        self.rate = rate or config.speech_rate

        self._commands: "queue.Queue[Tuple]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()
        self._closed = threading.Event()
        self._init_error: Optional[BaseException] = None

        # Utterance state, shared between caller and worker thread
        self._lock = threading.Lock()
        self._utterance_id: Optional[int] = None
        self._text = ""
        self._base_offset = 0
        self._spoken_offset = 0
        self._pausing = False
        self._paused = False
        self._part = 0

    def start(self) -> None:
        """Start the worker thread and wait for pyttsx3 to initialize."""
        if self._thread is not None:
            if self._init_error is not None:
                raise SpeechEngineNotAvailableError(str(self._init_error))
            return

        self._thread = threading.Thread(target=self._run, name="pyttsx3-worker", daemon=True)
        self._thread.start()
        if not self._ready.wait(self.START_TIMEOUT):
            raise SpeechEngineNotAvailableError("pyttsx3 did not start in time")
        if self._init_error is not None:
            raise SpeechEngineNotAvailableError(str(self._init_error))

    def speak(self, text: str, utterance_id: int) -> None:
        self.start()
        if self._closed.is_set():
            raise SpeechEngineError("pyttsx3 engine has been shut down")

        with self._lock:
            self._utterance_id = utterance_id
            self._text = text
            self._base_offset = 0
            self._spoken_offset = 0
            self._pausing = False
            self._paused = False
            name = self._next_name()
        self._commands.put(("stop",))
        self._commands.put(("say", text, name))

    def pause(self) -> None:
        with self._lock:
            if self._utterance_id is None or self._paused:
                return
            self._pausing = True
        self._commands.put(("stop",))

    def resume(self) -> None:
        with self._lock:
            if not self._paused or self._utterance_id is None:
                return
            utterance_id = self._utterance_id
            self._paused = False
            remainder = self._text[self._spoken_offset:]
            self._base_offset = self._spoken_offset
            name = self._next_name()

        self.emit(EngineEvent(EngineEventKind.RESUMED, utterance_id))
        if remainder.strip():
            self._commands.put(("say", remainder, name))
        else:
            self.emit(EngineEvent(EngineEventKind.FINISHED, utterance_id))

    def stop(self) -> None:
        with self._lock:
            self._utterance_id = None
            self._pausing = False
            self._paused = False
        self._commands.put(("stop",))

    def shutdown(self) -> None:
        self.stop()
        self._closed.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)

    def _next_name(self) -> str:
        self._part += 1
        return f"{self._utterance_id}:{self._part}"

    def _current(self, name: str) -> Optional[int]:
        """Utterance id for a live part name, None for stale parts."""
        utterance_id, _, part = name.partition(":")
        if self._utterance_id is None or str(self._utterance_id) != utterance_id:
            return None
        if part != str(self._part):
            return None
        return self._utterance_id

    # ------------------------------------------------------------------
    # Worker thread
    # ------------------------------------------------------------------

    def _create_engine(self):
        """Create and configure the pyttsx3 engine on the worker thread."""
        try:
            import pyttsx3
        except ImportError as e:
            raise RuntimeError("pyttsx3 not found. Install with: pip install pyttsx3") from e

        logger.debug("Loading pyttsx3 speech engine...")
        engine = pyttsx3.init()

        # Set voice if specified
        if self.voice:
            for v in engine.getProperty("voices"):
                if self.voice.lower() in v.id.lower() or self.voice.lower() in (v.name or "").lower():
                    engine.setProperty("voice", v.id)
                    break

        engine.setProperty("rate", int(self.rate))
        engine.connect("started-word", self._on_word)
        engine.connect("finished-utterance", self._on_finished)
        engine.connect("error", self._on_error)
        return engine

    def _run(self) -> None:
        try:
            engine = self._create_engine()
        except Exception as e:
            self._init_error = e
            self._ready.set()
            return

        self._ready.set()
        engine.startLoop(False)
        try:
            while not self._closed.is_set():
                self._process_commands(engine)
                engine.iterate()
                self._closed.wait(self.POLL_INTERVAL)
        finally:
            engine.endLoop()

    def _process_commands(self, engine) -> None:
        while True:
            try:
                command = self._commands.get_nowait()
            except queue.Empty:
                return
            if command[0] == "say":
                _, text, name = command
                engine.say(text, name)
            elif command[0] == "stop":
                engine.stop()

    def _on_word(self, name: str, location: int, length: int) -> None:
        with self._lock:
            utterance_id = self._current(name)
            if utterance_id is None:
                return
            location += self._base_offset
            self._spoken_offset = location
        self.emit(EngineEvent(EngineEventKind.WORD, utterance_id, location, length))

    def _on_finished(self, name: str, completed: bool) -> None:
        with self._lock:
            utterance_id = self._current(name)
            if utterance_id is None:
                return
            if self._pausing:
                self._pausing = False
                self._paused = True
                kind = EngineEventKind.PAUSED
            else:
                self._utterance_id = None
                kind = EngineEventKind.FINISHED
        self.emit(EngineEvent(kind, utterance_id, completed=completed))

    def _on_error(self, name: str, exception: Exception) -> None:
        with self._lock:
            utterance_id = self._current(name)
            if utterance_id is None:
                return
            self._utterance_id = None
        self.emit(EngineEvent(EngineEventKind.FAILED, utterance_id, error=str(exception)))
