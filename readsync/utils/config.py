"""
Configuration loader for the read-along synchronization engine.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


class Config:
    """Configuration manager for read-along playback."""

    _instance: Optional["Config"] = None
    _config: Dict[str, Any] = {}

    def __new__(cls) -> "Config":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self) -> None:
        if not self._config:
            self._load_config()

    def _get_project_root(self) -> Path:
        """Get the project root directory."""
        # Navigate up from readsync/utils to project root
        current = Path(__file__).resolve()
        return current.parent.parent.parent

    def _get_config_path(self) -> Path:
        override = os.environ.get("READSYNC_CONFIG")
        if override:
            return Path(override).expanduser()
        return self._get_project_root() / "config" / "settings.yaml"

    def _load_config(self) -> None:
        """Load configuration from YAML file, layered over the defaults."""
        self._config = self._get_defaults()
        config_path = self._get_config_path()

        if config_path.exists():
            with open(config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
            self._merge(self._config, loaded)

    def _merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> None:
        for key, value in override.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                self._merge(base[key], value)
            else:
                base[key] = value

    def _get_defaults(self) -> Dict[str, Any]:
        """Return default configuration."""
        return {
            "segmenter": {
                "terminators": "。！？.!?",
                "soft_breaks": "，；：,;:",
                "use_soft_breaks": False,
                "synthetic_terminator": "。",
            },
            "locator": {
                "segment_length": 3,
                "max_segments": 5,
                "coverage": 0.6,
                "search_radius": 2,
            },
            "validator": {
                "page_gap_tolerance": 30.0,
                "line_tolerance": 30.0,
                "max_line_changes": 2,
                "horizontal_tolerance": 100.0,
                "spacing_tolerance": 50.0,
                "overlap_tolerance": 1.0,
            },
            "cache": {
                "max_size": 100,
                "cleanup_threshold": 80,
                "max_age": 300.0,
            },
            "playback": {
                "pacing_delay": 0.1,
            },
            "speech": {
                "engine": "pyttsx3",
                "fallback": "silent",
                "rate": 200,
                "voice": None,
                "words_per_minute": 180,
            },
            "logging": {
                "verbose": False,
            },
        }

    def reload(self) -> None:
        """Re-read the configuration file (used after changing READSYNC_CONFIG)."""
        self._load_config()

    def get(self, *keys: str, default: Any = None) -> Any:
        """
        Get a configuration value using dot notation.

        Example:
            config.get("locator", "search_radius") -> 2
        """
        value = self._config
        for key in keys:
            if isinstance(value, dict):
                value = value.get(key)
            else:
                return default
            if value is None:
                return default
        return value

    @property
    def project_root(self) -> Path:
        """Get the project root directory."""
        return self._get_project_root()

    @property
    def speech_engine(self) -> str:
        """Get the preferred speech engine."""
        preferred = os.environ.get("READSYNC_TTS_ENGINE")
        if preferred:
            return preferred.lower()
        return str(self.get("speech", "engine", default="pyttsx3")).lower()

    @property
    def fallback_engine(self) -> Optional[str]:
        """Get the engine used when the preferred one fails."""
        return self.get("speech", "fallback", default="silent")

    @property
    def speech_rate(self) -> int:
        """Get the speech rate in words per minute for system voices."""
        return int(self.get("speech", "rate", default=200))

    @property
    def voice(self) -> Optional[str]:
        """Get the configured voice, if any."""
        return self.get("speech", "voice", default=None)

    @property
    def pacing_delay(self) -> float:
        """Get the pause between a cleared highlight and the next sentence."""
        return float(self.get("playback", "pacing_delay", default=0.1))

    @property
    def verbose(self) -> bool:
        """Check if debug output is enabled."""
        if os.environ.get("READSYNC_VERBOSE", "").lower() in ["1", "true", "yes"]:
            return True
        return bool(self.get("logging", "verbose", default=False))


# Singleton instance
config = Config()
