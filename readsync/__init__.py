"""Read-along narration synchronized with on-page sentence highlights."""

__version__ = "1.0.0"
