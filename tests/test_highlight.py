"""Tests for the single-region highlight overlay."""

from readsync.readalong.highlight import ConsoleRenderer, HighlightOverlay
from readsync.readalong.models import Rect
from readsync.readalong.playback import PlaybackState, PlaybackStatus
from readsync.readalong.sentence_splitter import split_into_sentences
from readsync.readalong.text_locator import TextLocator

from conftest import make_document


def make_overlay(renderer, *pages):
    overlay = HighlightOverlay(renderer, TextLocator())
    overlay.on_document_changed(make_document(*pages))
    return overlay


def test_show_replaces_previous_highlight(renderer):
    overlay = HighlightOverlay(renderer)
    overlay.show(Rect(0, 0, 10, 10), 0)
    overlay.show(Rect(0, 20, 10, 30), 1)

    assert renderer.calls == [
        ("highlight", 0, Rect(0, 0, 10, 10)),
        ("clear",),
        ("highlight", 1, Rect(0, 20, 10, 30)),
    ]
    assert overlay.region == (1, Rect(0, 20, 10, 30))


def test_clear_is_idempotent(renderer):
    overlay = HighlightOverlay(renderer)
    overlay.clear()
    overlay.show(Rect(0, 0, 10, 10), 0)
    overlay.clear()
    overlay.clear()

    assert renderer.calls.count(("clear",)) == 1
    assert not overlay.visible


def test_sentence_changed_highlights_located_sentence(renderer):
    overlay = make_overlay(renderer, "Alpha beta. Gamma delta.")
    sentence = split_into_sentences("Alpha beta. Gamma delta.")[1]

    overlay.on_sentence_changed(sentence)

    assert overlay.visible
    assert overlay.last_result.start == 12
    assert renderer.highlights == [("highlight", 0, overlay.last_result.bounds)]


def test_unlocatable_sentence_clears(renderer):
    overlay = make_overlay(renderer, "Alpha beta.")
    overlay.show(Rect(0, 0, 10, 10), 0)

    overlay.on_sentence_changed(split_into_sentences("Nothing similar here")[0])

    assert not overlay.visible
    assert overlay.last_result is None


def test_finished_sentence_clears(renderer):
    overlay = make_overlay(renderer, "Alpha beta.")
    sentence = split_into_sentences("Alpha beta.")[0]
    overlay.on_sentence_changed(sentence)

    overlay.on_sentence_finished(sentence)

    assert not overlay.visible


def test_idle_state_clears(renderer):
    overlay = make_overlay(renderer, "Alpha beta.")
    overlay.show(Rect(0, 0, 10, 10), 0)

    overlay.on_state_changed(PlaybackState(PlaybackStatus.SPEAKING, 0))
    assert overlay.visible

    overlay.on_state_changed(PlaybackState(PlaybackStatus.IDLE, 0))
    assert not overlay.visible


def test_document_change_clears_and_rebinds(renderer):
    overlay = make_overlay(renderer, "Alpha beta.")
    overlay.on_sentence_changed(split_into_sentences("Alpha beta.")[0])

    other = make_document("Gamma delta.")
    overlay.on_document_changed(other)

    assert not overlay.visible
    assert overlay.document is other
    assert len(overlay.locator.cache) == 0


def test_without_document_nothing_is_shown(renderer):
    overlay = HighlightOverlay(renderer)
    overlay.highlight_sentence(split_into_sentences("Alpha beta.")[0])
    assert renderer.calls == []


def test_console_renderer_prints(capsys):
    ConsoleRenderer().highlight(Rect(10, 20, 30, 40), 2)
    assert "page 3" in capsys.readouterr().out
