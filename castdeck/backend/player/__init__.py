"""Playback control, receiver contract and subtitle serving."""

from castdeck.backend.player.controller import (
    ControllerState,
    PlaybackController,
)
from castdeck.backend.player.exceptions import (
    CommandRejected,
    ConversionFailed,
    PlayerError,
    SessionLost,
    SourceUnavailable,
    SubtitleError,
)
from castdeck.backend.player.seeker import DebouncedSeeker
from castdeck.backend.player.session import (
    PlayerState,
    ReceiverSession,
    ReceiverStatus,
    SessionEvents,
    VolumeStatus,
)

__all__ = [
    "CommandRejected",
    "ControllerState",
    "ConversionFailed",
    "DebouncedSeeker",
    "PlaybackController",
    "PlayerError",
    "PlayerState",
    "ReceiverSession",
    "ReceiverStatus",
    "SessionEvents",
    "SessionLost",
    "SourceUnavailable",
    "SubtitleError",
    "VolumeStatus",
]
