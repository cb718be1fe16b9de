"""Listener-side sequential playback."""
from .queue import PlaybackItem, PlaybackQueue, Synthesize

__all__ = ["PlaybackItem", "PlaybackQueue", "Synthesize"]
