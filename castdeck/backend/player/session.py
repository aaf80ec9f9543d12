from __future__ import annotations

"""Contract between the playback controller and a receiver session."""

from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, runtime_checkable
import threading

from pydantic import BaseModel, ConfigDict, Field

from castdeck.backend.common.logging import get_logger
from castdeck.backend.media.models import MediaMetadata, PlayableEntry

log = get_logger(__name__)

EVENT_PLAYING = "playing"
EVENT_STATUS = "status"
EVENT_CLOSED = "closed"


class PlayerState(str, Enum):
    IDLE = "IDLE"
    PLAYING = "PLAYING"
    PAUSED = "PAUSED"
    BUFFERING = "BUFFERING"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["PlayerState"]:
        if value is None:
            return None
        try:
            return cls(str(value).upper())
        except ValueError:
            return None


class IdleReason(str, Enum):
    FINISHED = "FINISHED"
    CANCELLED = "CANCELLED"
    INTERRUPTED = "INTERRUPTED"
    ERROR = "ERROR"


class _ReceiverModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class MetadataStatus(_ReceiverModel):
    title: Optional[str] = None
    artist: Optional[str] = None

    def to_metadata(self) -> MediaMetadata:
        return MediaMetadata(title=self.title, artist=self.artist)


class MediaStatus(_ReceiverModel):
    content_id: Optional[str] = Field(default=None, alias="contentId")
    metadata: Optional[MetadataStatus] = None


class ReceiverStatus(_ReceiverModel):
    player_state: Optional[str] = Field(default=None, alias="playerState")
    idle_reason: Optional[str] = Field(default=None, alias="idleReason")
    media: Optional[MediaStatus] = None

    @property
    def state(self) -> Optional[PlayerState]:
        return PlayerState.parse(self.player_state)

    @property
    def finished(self) -> bool:
        return self.state is PlayerState.IDLE and (self.idle_reason or "").upper() == IdleReason.FINISHED.value

    def display_title(self) -> Optional[str]:
        if self.media is None or self.media.metadata is None:
            return None
        return self.media.metadata.to_metadata().display_title()


class VolumeStatus(_ReceiverModel):
    level: float = Field(ge=0.0, le=1.0)
    muted: bool = False


Handler = Callable[..., Any]


class SessionEvents:
    """Synchronous event hub; a failing handler does not stop the others."""

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Handler]] = {}
        self._lock = threading.Lock()

    def on(self, event: str, handler: Handler) -> None:
        with self._lock:
            self._handlers.setdefault(event, []).append(handler)

    def emit(self, event: str, *args: Any) -> int:
        with self._lock:
            registered = list(self._handlers.get(event, []))
        for handler in registered:
            try:
                handler(*args)
            except Exception as exc:  # noqa: BLE001
                log.exception("session_handler_failed", extra={"event": event, "error": str(exc)})
        return len(registered)



@runtime_checkable
class ReceiverSession(Protocol):
    """What the controller needs from a live receiver connection.

    Commands that fail raise; volume commands return the receiver's volume
    after the change. Events: ``playing``, ``status`` (with a
    :class:`ReceiverStatus`) and ``closed``.
    """

    def load(self, entry: PlayableEntry) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def stop(self) -> None: ...

    def seek(self, seconds: float) -> None: ...

    def mute(self) -> VolumeStatus: ...

    def unmute(self) -> VolumeStatus: ...

    def set_volume(self, level: float) -> VolumeStatus: ...

    def get_volume(self) -> VolumeStatus: ...

    def get_status(self) -> Optional[ReceiverStatus]: ...

    def get_position(self) -> int: ...

    def on(self, event: str, handler: Handler) -> None: ...


__all__ = [
    "EVENT_CLOSED",
    "EVENT_PLAYING",
    "EVENT_STATUS",
    "IdleReason",
    "MediaStatus",
    "MetadataStatus",
    "PlayerState",
    "ReceiverSession",
    "ReceiverStatus",
    "SessionEvents",
    "VolumeStatus",
]
