from __future__ import annotations

"""Dataclasses describing a playable queue entry."""

from dataclasses import dataclass, field, replace
from typing import Any, Optional


@dataclass(frozen=True, slots=True)
class MediaMetadata:
    title: Optional[str] = None
    artist: Optional[str] = None

    def display_title(self) -> Optional[str]:
        if not self.title:
            return None
        if self.artist:
            return f"{self.artist} - {self.title}"
        return self.title

    def as_dict(self) -> dict[str, Optional[str]]:
        return {"title": self.title, "artist": self.artist}


@dataclass(frozen=True, slots=True)
class SubtitleTrack:
    content_source: str
    content_type: str = "text/vtt"
    language: str = "en-US"
    label: str = "English"
    track_id: int = 1

    def as_dict(self) -> dict[str, object]:
        return {
            "track_id": self.track_id,
            "content_source": self.content_source,
            "content_type": self.content_type,
            "language": self.language,
            "label": self.label,
        }


@dataclass(frozen=True, slots=True)
class PlayableEntry:
    source: str
    mime_type: Optional[str] = None
    metadata: Optional[MediaMetadata] = None
    subtitle_track: Optional[SubtitleTrack] = None
    active_track_ids: tuple[int, ...] = ()
    extras: dict[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self) -> None:
        if not self.source or not str(self.source).strip():
            raise ValueError("PlayableEntry.source must be a non-empty URI or path")

    @classmethod
    def from_reference(cls, reference: str) -> "PlayableEntry":
        return cls(source=str(reference))

    def with_changes(self, **changes: Any) -> "PlayableEntry":
        return replace(self, **changes)

    def with_subtitles(self, track: SubtitleTrack) -> "PlayableEntry":
        return replace(self, subtitle_track=track, active_track_ids=(track.track_id,))

    def as_dict(self) -> dict[str, object]:
        return {
            "source": self.source,
            "mime_type": self.mime_type,
            "metadata": self.metadata.as_dict() if self.metadata else None,
            "subtitle_track": self.subtitle_track.as_dict() if self.subtitle_track else None,
            "active_track_ids": list(self.active_track_ids),
            "extras": dict(self.extras),
        }
