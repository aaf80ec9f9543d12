from __future__ import annotations

"""Single-payload HTTP responder the receiver pulls captions from."""

from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Optional, Type
import threading

from castdeck.backend.common.logging import get_logger

log = get_logger(__name__)

VTT_CONTENT_TYPE = "text/vtt;charset=utf-8"


def _handler_for(payload: bytes, content_type: str) -> Type[BaseHTTPRequestHandler]:
    class _CaptionHandler(BaseHTTPRequestHandler):
        def _send_headers(self) -> None:
            self.send_response(200)
            self.send_header("Access-Control-Allow-Origin", "*")
            self.send_header("Content-Length", str(len(payload)))
            self.send_header("Content-type", content_type)
            self.end_headers()

        def do_GET(self) -> None:  # noqa: N802
            log.debug("subtitle_request", extra={"path": self.path, "client": self.client_address[0]})
            self._send_headers()
            self.wfile.write(payload)

        def do_HEAD(self) -> None:  # noqa: N802
            self._send_headers()

        def do_OPTIONS(self) -> None:  # noqa: N802
            self._send_headers()

        def log_message(self, format: str, *args) -> None:  # noqa: A002
            log.debug("subtitle_http", extra={"line": format % args})

    return _CaptionHandler


class SubtitleServer:
    """Serves one immutable byte buffer on every request until the process exits."""

    def __init__(
        self,
        payload: bytes,
        port: int,
        *,
        host: str = "",
        content_type: str = VTT_CONTENT_TYPE,
    ) -> None:
        self._payload = bytes(payload)
        self._host = host
        self._requested_port = port
        self._content_type = content_type
        self._httpd: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        if self._httpd is None:
            return self._requested_port
        return self._httpd.server_address[1]

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "SubtitleServer":
        if self._httpd is not None:
            return self
        handler = _handler_for(self._payload, self._content_type)
        self._httpd = ThreadingHTTPServer((self._host, self._requested_port), handler)
        self._httpd.daemon_threads = True
        self._thread = threading.Thread(
            target=self._httpd.serve_forever,
            name="castdeck-subtitles",
            daemon=True,
        )
        self._thread.start()
        log.info("subtitle_server_started", extra={"port": self.port, "bytes": len(self._payload)})
        return self

    def stop(self) -> None:
        if self._httpd is None:
            return
        self._httpd.shutdown()
        self._httpd.server_close()
        if self._thread is not None:
            self._thread.join(timeout=2)
        self._httpd = None
        self._thread = None


__all__ = ["SubtitleServer", "VTT_CONTENT_TYPE"]
