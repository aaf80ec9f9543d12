from __future__ import annotations

"""Local receiver session backed by libVLC."""

from typing import Any, Optional, Sequence
import queue
import threading

from castdeck.backend.common.logging import get_logger
from castdeck.backend.media.models import PlayableEntry
from castdeck.backend.player.exceptions import CommandRejected, PlayerError
from castdeck.backend.player.session import (
    EVENT_CLOSED,
    EVENT_PLAYING,
    EVENT_STATUS,
    Handler,
    IdleReason,
    PlayerState,
    ReceiverStatus,
    SessionEvents,
    VolumeStatus,
)

log = get_logger(__name__)

_STOP = object()


class VlcSession:
    """Implements the receiver contract on top of a local VLC player.

    libVLC forbids calling back into the player from its own event thread, so
    events are queued and re-emitted from a dispatcher thread, one at a time.
    """

    def __init__(self, instance_args: Sequence[str] = ()) -> None:
        try:
            import vlc  # type: ignore
        except Exception as exc:  # noqa: BLE001
            raise PlayerError(f"python-vlc import failed: {exc}") from exc
        self._vlc = vlc
        self._instance = vlc.Instance(*instance_args)
        if self._instance is None:
            raise PlayerError("libVLC could not be initialised")
        self._player = self._instance.media_player_new()
        self._event_manager = self._player.event_manager()
        self._events = SessionEvents()
        self._entry: Optional[PlayableEntry] = None
        self._last_level = 1.0
        self._last_signature: Optional[tuple[Optional[str], Optional[str]]] = None
        self._pending: "queue.Queue[Any]" = queue.Queue()
        self._closed = False
        self._dispatcher = threading.Thread(target=self._dispatch_loop, name="castdeck-vlc-events", daemon=True)
        self._dispatcher.start()
        self._register_events()

    # ------------------------------------------------------------------
    # Receiver contract
    # ------------------------------------------------------------------
    def on(self, event: str, handler: Handler) -> None:
        self._events.on(event, handler)

    def load(self, entry: PlayableEntry) -> None:
        media = self._create_media(entry)
        self._entry = entry
        self._last_signature = None
        self._player.set_media(media)
        if self._player.play() == -1:
            raise CommandRejected(f"VLC refused to play {entry.source}")
        log.info("vlc_loaded", extra={"source": entry.source})

    def play(self) -> None:
        if self._player.play() == -1:
            raise CommandRejected("VLC refused to resume")

    def pause(self) -> None:
        self._player.set_pause(1)

    def stop(self) -> None:
        self._player.stop()

    def seek(self, seconds: float) -> None:
        self._player.set_time(int(max(0.0, seconds) * 1000))

    def mute(self) -> VolumeStatus:
        self._player.audio_set_mute(True)
        return self.get_volume()

    def unmute(self) -> VolumeStatus:
        self._player.audio_set_mute(False)
        return self.get_volume()

    def set_volume(self, level: float) -> VolumeStatus:
        percent = int(round(max(0.0, min(level, 1.0)) * 100))
        if self._player.audio_set_volume(percent) == -1:
            raise CommandRejected(f"VLC refused volume {percent}")
        self._last_level = percent / 100.0
        return self.get_volume()

    def get_volume(self) -> VolumeStatus:
        percent = self._player.audio_get_volume()
        if percent is not None and percent >= 0:
            self._last_level = min(percent, 100) / 100.0
        muted = self._player.audio_get_mute() == 1
        return VolumeStatus(level=self._last_level, muted=muted)

    def get_status(self) -> Optional[ReceiverStatus]:
        player_state, idle_reason = self._map_state(self._player.get_state())
        media: Optional[dict[str, Any]] = None
        if self._entry is not None:
            metadata = self._entry.metadata
            media = {
                "contentId": self._entry.source,
                "metadata": metadata.as_dict() if metadata else None,
            }
        return ReceiverStatus.model_validate(
            {"playerState": player_state.value, "idleReason": idle_reason, "media": media}
        )

    def get_position(self) -> int:
        return max(self._player.get_time(), 0)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._player.stop()
        self._pending.put((EVENT_CLOSED, ()))
        self._pending.put(_STOP)
        self._dispatcher.join(timeout=2)
        self._player.release()
        self._instance.release()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _create_media(self, entry: PlayableEntry):  # noqa: ANN001
        if entry.extras.get("local"):
            media = self._instance.media_new_path(entry.source)
        else:
            media = self._instance.media_new(entry.source)
        if entry.metadata and entry.metadata.title:
            media.set_meta(self._vlc.Meta.Title, entry.metadata.title)
        if entry.metadata and entry.metadata.artist:
            media.set_meta(self._vlc.Meta.Artist, entry.metadata.artist)
        if entry.subtitle_track is not None:
            media.slaves_add(self._vlc.MediaSlaveType.subtitle, 4, entry.subtitle_track.content_source)
        return media

    def _map_state(self, state) -> tuple[PlayerState, Optional[str]]:  # noqa: ANN001
        State = self._vlc.State
        if state == State.Playing:
            return PlayerState.PLAYING, None
        if state == State.Paused:
            return PlayerState.PAUSED, None
        if state in (State.Opening, State.Buffering):
            return PlayerState.BUFFERING, None
        if state == State.Ended:
            return PlayerState.IDLE, IdleReason.FINISHED.value
        if state == State.Error:
            return PlayerState.IDLE, IdleReason.ERROR.value
        if state == State.Stopped:
            return PlayerState.IDLE, IdleReason.CANCELLED.value
        return PlayerState.IDLE, None

    def _register_events(self) -> None:
        events = [
            self._vlc.EventType.MediaPlayerPlaying,
            self._vlc.EventType.MediaPlayerPaused,
            self._vlc.EventType.MediaPlayerStopped,
            self._vlc.EventType.MediaPlayerEndReached,
            self._vlc.EventType.MediaPlayerEncounteredError,
        ]
        for event in events:
            self._event_manager.event_attach(event, self._handle_event)

    def _handle_event(self, event) -> None:  # noqa: ANN001
        # Runs on libVLC's thread: only enqueue here.
        self._pending.put(("vlc", (event.type,)))

    def _dispatch_loop(self) -> None:
        while True:
            item = self._pending.get()
            if item is _STOP:
                return
            kind, args = item
            if kind == EVENT_CLOSED:
                self._events.emit(EVENT_CLOSED)
                continue
            self._emit_for(args[0])

    def _emit_for(self, event_type) -> None:  # noqa: ANN001
        status = self.get_status()
        signature = (status.player_state, status.idle_reason)
        if event_type == self._vlc.EventType.MediaPlayerEndReached:
            status = status.model_copy(
                update={"player_state": PlayerState.IDLE.value, "idle_reason": IdleReason.FINISHED.value}
            )
            signature = (status.player_state, status.idle_reason)
        if signature != self._last_signature:
            self._last_signature = signature
            self._events.emit(EVENT_STATUS, status)
        if event_type == self._vlc.EventType.MediaPlayerPlaying:
            self._events.emit(EVENT_PLAYING)


__all__ = ["VlcSession"]
