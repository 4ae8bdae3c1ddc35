"""Tests for speech engine loading and the silent engine."""

import threading

import pytest

from readsync.readalong import speech_engine
from readsync.readalong.speech_engine import (
    EngineEventKind,
    SpeechEngineNotAvailableError,
    create_speech_engine,
)
from readsync.readalong.speech_silent import SilentSpeechEngine


class EventCollector:
    def __init__(self):
        self.events = []
        self.done = threading.Event()

    def __call__(self, event):
        self.events.append(event)
        if event.kind == EngineEventKind.FINISHED:
            self.done.set()

    def kinds(self):
        return [event.kind for event in self.events]


def test_create_silent_engine():
    engine = create_speech_engine("silent", words_per_minute=600)
    assert isinstance(engine, SilentSpeechEngine)
    assert engine.words_per_minute == 600


def test_unknown_engine_uses_fallback():
    engine = create_speech_engine("nonexistent", fallback="silent")
    assert engine.name == "silent"


def test_unavailable_engine_uses_fallback(monkeypatch):
    monkeypatch.setitem(speech_engine.ENGINE_LOADERS, "pyttsx3", lambda **kwargs: None)
    engine = create_speech_engine("pyttsx3", fallback="silent")
    assert engine.name == "silent"


def test_no_engine_available(monkeypatch):
    monkeypatch.setitem(speech_engine.ENGINE_LOADERS, "pyttsx3", lambda **kwargs: None)
    with pytest.raises(SpeechEngineNotAvailableError):
        create_speech_engine("pyttsx3", fallback="")


def test_silent_engine_emits_words_then_finished():
    engine = SilentSpeechEngine(words_per_minute=60000)
    collector = EventCollector()
    engine.attach(collector)

    engine.speak("one two  three", 7)

    assert collector.done.wait(5.0)
    assert collector.kinds() == [EngineEventKind.WORD] * 3 + [EngineEventKind.FINISHED]
    assert [event.location for event in collector.events[:3]] == [0, 4, 9]
    assert all(event.utterance_id == 7 for event in collector.events)


def test_silent_engine_stop_suppresses_finished():
    engine = SilentSpeechEngine(words_per_minute=1)
    collector = EventCollector()
    engine.attach(collector)

    engine.speak("slow words here", 1)
    engine.stop()

    assert not collector.done.wait(0.2)
    assert EngineEventKind.FINISHED not in collector.kinds()


def test_silent_engine_pause_and_resume():
    engine = SilentSpeechEngine(words_per_minute=60000)
    collector = EventCollector()
    engine.attach(collector)

    engine.pause()
    assert collector.events == []

    engine.speak("a b", 3)
    engine.pause()
    engine.resume()

    assert collector.done.wait(5.0)
    assert EngineEventKind.PAUSED in collector.kinds()
    assert EngineEventKind.RESUMED in collector.kinds()
