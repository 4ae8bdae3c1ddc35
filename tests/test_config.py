"""Tests for the YAML configuration layer."""

import pytest

from readsync.utils.config import config


@pytest.fixture
def restore_config(monkeypatch):
    yield monkeypatch
    monkeypatch.undo()
    config.reload()


def test_defaults_from_settings_file():
    assert config.get("locator", "segment_length") == 3
    assert config.get("locator", "coverage") == 0.6
    assert config.get("cache", "max_size") == 100
    assert config.pacing_delay == 0.1


def test_missing_keys_use_default():
    assert config.get("locator", "nope", default=7) == 7
    assert config.get("nope", "deeper", default="x") == "x"


def test_engine_override_from_environment(monkeypatch):
    monkeypatch.setenv("READSYNC_TTS_ENGINE", "SILENT")
    assert config.speech_engine == "silent"


def test_verbose_from_environment(monkeypatch):
    monkeypatch.setenv("READSYNC_VERBOSE", "1")
    assert config.verbose


def test_config_file_override_merges_over_defaults(tmp_path, restore_config):
    settings = tmp_path / "settings.yaml"
    settings.write_text("locator:\n  search_radius: 4\n", encoding="utf-8")
    restore_config.setenv("READSYNC_CONFIG", str(settings))

    config.reload()

    assert config.get("locator", "search_radius") == 4
    assert config.get("locator", "segment_length") == 3
    assert config.get("cache", "cleanup_threshold") == 80
