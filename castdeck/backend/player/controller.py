from __future__ import annotations

"""Reactive remote control over a live receiver session."""

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Union
import threading

from castdeck.backend.common.constants import SEEK_STEP_SECONDS, VOLUME_STEP
from castdeck.backend.common.logging import get_logger
from castdeck.backend.pipeline.context import PipelineContext
from castdeck.backend.player.seeker import DebouncedSeeker
from castdeck.backend.player.session import (
    EVENT_CLOSED,
    EVENT_PLAYING,
    EVENT_STATUS,
    PlayerState,
    ReceiverSession,
    ReceiverStatus,
    VolumeStatus,
)

log = get_logger(__name__)

FINISH_QUEUE_EXHAUSTED = "queue_exhausted"
FINISH_SESSION_LOST = "session_lost"
FINISH_QUIT = "quit"

StatusLike = Union[ReceiverStatus, Mapping[str, Any]]


@dataclass
class ControllerState:
    """Local shadow of the receiver; the receiver stays the source of truth."""

    player_state: Optional[PlayerState] = None
    idle_reason: Optional[str] = None
    volume: Optional[VolumeStatus] = None
    previous_status: Optional[ReceiverStatus] = None
    closed: bool = False


def _coerce_status(status: Optional[StatusLike]) -> Optional[ReceiverStatus]:
    if status is None or isinstance(status, ReceiverStatus):
        return status
    return ReceiverStatus.model_validate(status)


def _coerce_volume(volume: Any) -> Optional[VolumeStatus]:
    if volume is None or isinstance(volume, VolumeStatus):
        return volume
    return VolumeStatus.model_validate(volume)


class PlaybackController:
    """Tracks receiver status, advances the queue and exposes transport commands.

    Every handler and command runs under one lock, so a status push never
    interleaves with a key press. Transport state is only ever updated from
    what the receiver reports; commands never assume their own effect.
    """

    def __init__(
        self,
        session: ReceiverSession,
        context: PipelineContext,
        *,
        notifier: Optional[Callable[[str], None]] = None,
        seeker: Optional[DebouncedSeeker] = None,
        seek_window: Optional[float] = None,
    ) -> None:
        self._session = session
        self._context = context
        self._notify = notifier or (lambda text: log.info("notice", extra={"text": text}))
        self._lock = threading.RLock()
        self._finished = threading.Event()
        self._initial_seek_pending = False
        self.state = ControllerState()
        self.finish_reason: Optional[str] = None
        if seeker is None:
            kwargs = {"window": seek_window} if seek_window is not None else {}
            seeker = DebouncedSeeker(self._seek_absolute, self._position_ms, **kwargs)
        self._seeker = seeker

    @property
    def context(self) -> PipelineContext:
        return self._context

    @property
    def seeker(self) -> DebouncedSeeker:
        return self._seeker

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    def attach(self) -> None:
        self._session.on(EVENT_PLAYING, self.handle_playing)
        self._session.on(EVENT_STATUS, self.handle_status)
        self._session.on(EVENT_CLOSED, self.handle_closed)

        options = self._context.options
        with self._lock:
            self._refresh_volume()
            self._initial_seek_pending = bool(options.seek) and not options.disable_seek
            status = self._fetch_status()
            if status is not None and self.state.player_state is None:
                self.state.player_state = status.state
            self._show_title(status)
        log.info("controller_attached", extra={"mode": self._context.mode.value, "queue": len(self._context.queue)})

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._finished.wait(timeout)

    def handle_playing(self, *_: Any) -> None:
        with self._lock:
            if self.state.closed:
                return
            self._show_title(self._fetch_status())
            if self._initial_seek_pending:
                self._initial_seek_pending = False
                seconds = self._context.options.seek_seconds()
                if seconds is not None:
                    log.info("initial_seek", extra={"seconds": seconds})
                    self._seek_absolute(seconds)

    def handle_status(self, status: StatusLike) -> None:
        observed = _coerce_status(status)
        if observed is None:
            return
        with self._lock:
            if self.state.closed:
                return
            previous = self.state.previous_status
            self.state.player_state = observed.state
            self.state.idle_reason = observed.idle_reason
            self.state.previous_status = observed

            if not observed.finished:
                return
            if previous is not None and previous.state is PlayerState.IDLE:
                return
            if not self._context.is_launch:
                return
            log.info("media_finished", extra={"queue": len(self._context.queue)})
            self._advance()

    def handle_closed(self, *_: Any) -> None:
        with self._lock:
            if self.state.closed:
                return
            self.state.closed = True
            self._seeker.cancel()
            if self._finished.is_set():
                return
        log.error("session_lost")
        self._notify("lost connection")
        self._finish(FINISH_SESSION_LOST)

    # ------------------------------------------------------------------
    # Transport commands
    # ------------------------------------------------------------------
    def play_pause(self) -> None:
        with self._lock:
            if self.state.player_state is PlayerState.PLAYING:
                self._command("pause", self._session.pause)
            elif self.state.player_state is PlayerState.PAUSED:
                self._command("play", self._session.play)

    def play(self) -> None:
        with self._lock:
            if self.state.player_state is PlayerState.PAUSED:
                self._command("play", self._session.play)

    def pause(self) -> None:
        with self._lock:
            if self.state.player_state is PlayerState.PLAYING:
                self._command("pause", self._session.pause)

    def toggle_mute(self) -> None:
        with self._lock:
            volume = self.state.volume
            if volume is None:
                return
            if volume.muted:
                result = self._command("unmute", self._session.unmute)
            else:
                result = self._command("mute", self._session.mute)
            self._store_volume(result)

    def volume_up(self) -> None:
        with self._lock:
            volume = self.state.volume
            if volume is None or volume.level >= 1:
                return
            level = round(min(volume.level + VOLUME_STEP, 1.0), 4)
            self._store_volume(self._command("set_volume", self._session.set_volume, level))

    def volume_down(self) -> None:
        with self._lock:
            volume = self.state.volume
            if volume is None or volume.level <= 0:
                return
            level = round(max(volume.level - VOLUME_STEP, 0.0), 4)
            self._store_volume(self._command("set_volume", self._session.set_volume, level))

    def seek_left(self) -> None:
        self._request_seek(-SEEK_STEP_SECONDS)

    def seek_right(self) -> None:
        self._request_seek(SEEK_STEP_SECONDS)

    def next(self) -> None:
        with self._lock:
            if self.state.closed:
                return
            self._advance()

    def stop(self) -> None:
        with self._lock:
            self._command("stop", self._session.stop)

    def quit(self) -> None:
        self._seeker.cancel()
        self._finish(FINISH_QUIT)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _request_seek(self, offset: float) -> None:
        with self._lock:
            if self.state.closed:
                return
        self._seeker.request(offset)

    def _advance(self) -> None:
        if not self._context.is_launch:
            return
        entry = self._context.pop_next()
        if entry is None:
            log.info("queue_exhausted")
            self._finish(FINISH_QUEUE_EXHAUSTED)
            return
        log.info("loading_next", extra={"source": entry.source})
        self._command("stop", self._session.stop)
        self._command("load", self._session.load, entry)
        self._context.now_playing = entry

    def _seek_absolute(self, seconds: float) -> None:
        with self._lock:
            self._command("seek", self._session.seek, seconds)

    def _position_ms(self) -> int:
        return int(self._session.get_position() or 0)

    def _refresh_volume(self) -> None:
        self._store_volume(self._command("get_volume", self._session.get_volume))

    def _store_volume(self, result: Any) -> None:
        if result is None:
            return
        try:
            self.state.volume = _coerce_volume(result)
        except ValueError as exc:
            log.warning("volume_status_invalid", extra={"error": str(exc)})

    def _fetch_status(self) -> Optional[ReceiverStatus]:
        raw = self._command("get_status", self._session.get_status)
        try:
            return _coerce_status(raw)
        except ValueError as exc:
            log.warning("receiver_status_invalid", extra={"error": str(exc)})
            return None

    def _show_title(self, status: Optional[ReceiverStatus]) -> None:
        if status is None:
            return
        title = status.display_title()
        if title:
            self._notify(f"Title: {title}")

    def _command(self, name: str, fn: Callable[..., Any], *args: Any) -> Any:
        if self.state.closed:
            log.debug("command_ignored", extra={"command": name, "reason": "session closed"})
            return None
        try:
            return fn(*args)
        except Exception as exc:  # noqa: BLE001
            log.warning("command_rejected", extra={"command": name, "error": str(exc)})
            return None

    def _finish(self, reason: str) -> None:
        if self._finished.is_set():
            return
        self.finish_reason = reason
        log.info("controller_finished", extra={"reason": reason})
        self._finished.set()


__all__ = [
    "ControllerState",
    "FINISH_QUEUE_EXHAUSTED",
    "FINISH_QUIT",
    "FINISH_SESSION_LOST",
    "PlaybackController",
]
