from __future__ import annotations

"""Exceptions for the player subsystem."""

from castdeck.backend.common.errors import CastdeckError


class PlayerError(CastdeckError):
    """Top-level error raised by the player subsystem."""


class SubtitleError(PlayerError):
    """Raised when a subtitle track cannot be prepared."""


class SourceUnavailable(SubtitleError):
    """Raised when a subtitle file or URL cannot be read."""


class ConversionFailed(SubtitleError):
    """Raised when subtitle content cannot be converted to WebVTT."""


class SessionLost(PlayerError):
    """Raised when the receiver connection has gone away."""


class CommandRejected(PlayerError):
    """Raised when the receiver refuses a single transport command."""
