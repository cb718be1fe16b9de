"""Session relay for live transcript/translation streams, with sequential listener playback."""

__version__ = "0.1.0"
