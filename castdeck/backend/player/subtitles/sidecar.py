from __future__ import annotations

"""Turns a subtitle reference into a URI the receiver can fetch."""

from pathlib import Path, PurePosixPath
from typing import Callable, Optional
from urllib.parse import urlparse

from castdeck.backend.common.constants import DEFAULT_SUBTITLE_PORT
from castdeck.backend.common.logging import get_logger
from castdeck.backend.media.models import PlayableEntry, SubtitleTrack
from castdeck.backend.network_handlers.addresses import detect_outbound_ip
from castdeck.backend.network_handlers.session import HttpSession, NetError
from castdeck.backend.player.exceptions import SourceUnavailable, SubtitleError
from castdeck.backend.player.subtitles.convert import convert_srt_to_vtt
from castdeck.backend.player.subtitles.server import VTT_CONTENT_TYPE, SubtitleServer

log = get_logger(__name__)

SUBTITLE_TRACK_ID = 1


def is_remote(reference: str) -> bool:
    return urlparse(reference).scheme.lower() in ("http", "https")


def subtitle_extension(reference: str) -> str:
    if is_remote(reference):
        return PurePosixPath(urlparse(reference).path).suffix.lower()
    return Path(reference).suffix.lower()


def attach_subtitles(entry: PlayableEntry, uri: str) -> PlayableEntry:
    track = SubtitleTrack(
        content_source=uri,
        content_type="text/vtt",
        language="en-US",
        label="English",
        track_id=SUBTITLE_TRACK_ID,
    )
    return entry.with_subtitles(track)


class SubtitleSidecar:
    """Reads, converts and, when needed, serves a single subtitle track.

    Local sources (and remote SubRip files, which need conversion) are served
    from a :class:`SubtitleServer` bound to ``port`` for the rest of the
    process. A remote WebVTT URL is already servable and is returned as is.
    """

    def __init__(
        self,
        port: int = DEFAULT_SUBTITLE_PORT,
        *,
        http: Optional[HttpSession] = None,
        host: str = "",
        ip_resolver: Callable[[], str] = detect_outbound_ip,
    ) -> None:
        self._port = port
        self._http = http
        self._host = host
        self._ip_resolver = ip_resolver
        self._server: Optional[SubtitleServer] = None

    @property
    def server(self) -> Optional[SubtitleServer]:
        return self._server

    def resolve(self, reference: str, advertised_ip: Optional[str] = None) -> str:
        remote = is_remote(reference)
        raw = self._read(reference, remote)

        extension = subtitle_extension(reference)
        if extension == ".srt":
            payload = convert_srt_to_vtt(raw)
        else:
            payload = raw
            if remote:
                log.info("subtitle_passthrough", extra={"url": reference})
                return reference

        server = self._serve(payload)
        ip = advertised_ip or self._ip_resolver()
        uri = f"http://{ip}:{server.port}"
        log.info("subtitle_served", extra={"source": reference, "uri": uri})
        return uri

    def close(self) -> None:
        if self._server is not None:
            self._server.stop()
            self._server = None

    def _read(self, reference: str, remote: bool) -> bytes:
        if remote:
            try:
                return self._http_session().fetch_bytes(reference)
            except NetError as exc:
                raise SourceUnavailable(f"Unable to fetch subtitles from {reference}: {exc}") from exc

        path = Path(reference).expanduser()
        if not path.is_file():
            raise SourceUnavailable(f"Subtitle file not found: {reference}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise SourceUnavailable(f"Unable to read subtitle file {reference}: {exc}") from exc

    def _http_session(self) -> HttpSession:
        if self._http is None:
            self._http = HttpSession()
        return self._http

    def _serve(self, payload: bytes) -> SubtitleServer:
        # One track per launch; a later call replaces the earlier payload.
        if self._server is not None:
            self._server.stop()
        try:
            self._server = SubtitleServer(
                payload,
                self._port,
                host=self._host,
                content_type=VTT_CONTENT_TYPE,
            ).start()
        except OSError as exc:
            raise SubtitleError(f"Unable to serve subtitles on port {self._port}: {exc}") from exc
        return self._server


__all__ = ["SubtitleSidecar", "attach_subtitles", "is_remote", "subtitle_extension"]
