"""Normalised queue entries shared by the pipeline and the controller."""

from castdeck.backend.media.models import (
    MediaMetadata,
    PlayableEntry,
    SubtitleTrack,
)

__all__ = ["MediaMetadata", "PlayableEntry", "SubtitleTrack"]
