"""
Speech Engine Interface

The playback controller treats speech synthesis as an opaque capability:
speak / pause / resume / stop, plus asynchronous events delivered to a
sink attached at construction of the controller.

Engine Priority:
1. pyttsx3 (system voices: SAPI5, NSSpeechSynthesizer, eSpeak) - DEFAULT
2. silent (timed narration without audio, for machines without a voice)

Set READSYNC_TTS_ENGINE to override:
  READSYNC_TTS_ENGINE=pyttsx3
  READSYNC_TTS_ENGINE=silent
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from readsync.utils.config import config
from readsync.utils import logger


class SpeechEngineError(RuntimeError):
    """The engine rejected or failed a request."""


class SpeechEngineNotAvailableError(SpeechEngineError):
    """No usable engine could be loaded."""


class EngineEventKind(Enum):
    WORD = "word"
    FINISHED = "finished"
    PAUSED = "paused"
    RESUMED = "resumed"
    FAILED = "failed"


@dataclass(frozen=True)
class EngineEvent:
    """Notification from an engine about one utterance."""

    kind: EngineEventKind
    utterance_id: int
    location: int = 0  # Character offset of a spoken word
    length: int = 0
    completed: bool = True  # False when a FINISHED utterance was cut short
    error: Optional[str] = None


EventSink = Callable[[EngineEvent], None]


class SpeechEngine:
    """
    Base class for speech engines.

    Events may be emitted from any thread; the sink is responsible for
    marshaling them onto the owner thread.
    """

    name = "base"

    def __init__(self) -> None:
        self._sink: Optional[EventSink] = None

    def attach(self, sink: EventSink) -> None:
        """Route this engine's events to ``sink``."""
        self._sink = sink

    def emit(self, event: EngineEvent) -> None:
        if self._sink is not None:
            self._sink(event)

    def start(self) -> None:
        """Acquire engine resources; raises SpeechEngineNotAvailableError."""

    def speak(self, text: str, utterance_id: int) -> None:
        raise NotImplementedError

    def pause(self) -> None:
        raise NotImplementedError

    def resume(self) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        raise NotImplementedError

    def shutdown(self) -> None:
        """Release engine resources."""


def _try_pyttsx3(**kwargs) -> Optional[SpeechEngine]:
    """Try to load the pyttsx3 system voice engine."""
    try:
        from readsync.readalong.speech_pyttsx3 import Pyttsx3SpeechEngine

        engine = Pyttsx3SpeechEngine(voice=kwargs.get("voice"), rate=kwargs.get("rate"))
        engine.start()
        return engine
    except SpeechEngineError as e:
        logger.debug(f"pyttsx3 unavailable: {e}")
        return None


def _try_silent(**kwargs) -> Optional[SpeechEngine]:
    """Load the timed silent engine; always available."""
    from readsync.readalong.speech_silent import SilentSpeechEngine

    return SilentSpeechEngine(words_per_minute=kwargs.get("words_per_minute"))


ENGINE_LOADERS = {
    "pyttsx3": _try_pyttsx3,
    "silent": _try_silent,
}


def create_speech_engine(
    preferred: Optional[str] = None,
    fallback: Optional[str] = None,
    **kwargs,
) -> SpeechEngine:
    """
    Load a speech engine by preference.

    Args:
        preferred: Engine name (default: configured / READSYNC_TTS_ENGINE)
        fallback: Engine tried when the preferred one fails to load
        **kwargs: Engine options (voice, rate, words_per_minute)

    Returns:
        A started SpeechEngine
    """
    preferred = (preferred or config.speech_engine).lower()
    if fallback is None:
        fallback = config.fallback_engine

    for name in [preferred, fallback]:
        if not name:
            continue
        loader = ENGINE_LOADERS.get(name.lower())
        if loader is None:
            logger.warning(f"Unknown speech engine '{name}'")
            continue
        engine = loader(**kwargs)
        if engine is not None:
            if name != preferred:
                logger.warning(f"Speech engine '{preferred}' not available, using '{name}'")
            return engine

    raise SpeechEngineNotAvailableError(
        "No speech engine available!\n"
        "Please install one of:\n"
        "  1. pyttsx3 (system voices): pip install pyttsx3\n"
        "  2. or select the silent engine: READSYNC_TTS_ENGINE=silent"
    )
