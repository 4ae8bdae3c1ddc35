"""Shared fixtures and fakes for the read-along tests."""

from typing import List, Optional, Tuple

import pytest

from readsync.readalong.document import Document, TextPageProvider
from readsync.readalong.executor import OwnerExecutor
from readsync.readalong.highlight import Renderer
from readsync.readalong.models import Rect, SearchResult, SegmentPosition, TextSegment
from readsync.readalong.playback import PlaybackListener
from readsync.readalong.speech_engine import (
    EngineEvent,
    EngineEventKind,
    SpeechEngine,
    SpeechEngineError,
)


class ManualClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedSpeechEngine(SpeechEngine):
    """Engine that records requests; tests fire its events explicitly."""

    def __init__(self, name: str = "scripted", fail_on_speak: bool = False):
        super().__init__()
        self.name = name
        self.fail_on_speak = fail_on_speak
        self.spoken: List[Tuple[str, int]] = []
        self.calls: List[str] = []

    @property
    def last_id(self) -> int:
        return self.spoken[-1][1]

    @property
    def texts(self) -> List[str]:
        return [text for text, _ in self.spoken]

    def speak(self, text: str, utterance_id: int) -> None:
        self.calls.append("speak")
        if self.fail_on_speak:
            raise SpeechEngineError("voice unavailable")
        self.spoken.append((text, utterance_id))

    def pause(self) -> None:
        self.calls.append("pause")

    def resume(self) -> None:
        self.calls.append("resume")

    def stop(self) -> None:
        self.calls.append("stop")

    def finish(self, utterance_id: Optional[int] = None) -> None:
        self.emit(EngineEvent(EngineEventKind.FINISHED, utterance_id or self.last_id))

    def fail(self, message: str = "audio device lost") -> None:
        self.emit(EngineEvent(EngineEventKind.FAILED, self.last_id, error=message))


class RecordingListener(PlaybackListener):
    """Keeps every playback event in order."""

    def __init__(self):
        self.events: List[Tuple] = []

    def on_document_changed(self, document):
        self.events.append(("document", document.key))

    def on_state_changed(self, state):
        self.events.append(("state", state.status))

    def on_sentence_changed(self, sentence):
        self.events.append(("sentence", sentence.page_index, sentence.index))

    def on_sentence_finished(self, sentence):
        self.events.append(("finished_sentence", sentence.index if sentence else None))

    def on_page_changed(self, page_index):
        self.events.append(("page", page_index))

    def on_playback_finished(self):
        self.events.append(("playback_finished",))

    def on_error(self, message):
        self.events.append(("error", message))

    def of(self, kind: str) -> List[Tuple]:
        return [event for event in self.events if event[0] == kind]


class RecordingRenderer(Renderer):
    """Renderer that logs highlight and clear calls."""

    def __init__(self):
        self.calls: List[Tuple] = []

    def highlight(self, bounds: Rect, page_index: int) -> None:
        self.calls.append(("highlight", page_index, bounds))

    def clear_highlight(self) -> None:
        self.calls.append(("clear",))

    @property
    def highlights(self) -> List[Tuple]:
        return [call for call in self.calls if call[0] == "highlight"]


def make_result(
    x0: float,
    y0: float,
    x1: float,
    y1: float,
    offset: int = 0,
    page_index: int = 0,
    text: str = "abc",
) -> SearchResult:
    """SearchResult with explicit geometry."""
    segment = TextSegment(text, SegmentPosition.MIDDLE, offset)
    return SearchResult(segment, page_index, (offset, offset + len(text)), Rect(x0, y0, x1, y1))


def make_document(*pages: str, **kwargs) -> Document:
    return Document(TextPageProvider(list(pages), **kwargs))


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def executor(clock):
    return OwnerExecutor(clock=clock)


@pytest.fixture
def engine():
    return ScriptedSpeechEngine()


@pytest.fixture
def listener():
    return RecordingListener()


@pytest.fixture
def renderer():
    return RecordingRenderer()
