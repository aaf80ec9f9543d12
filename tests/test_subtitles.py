"""Tests for SubRip conversion and the subtitle sidecar."""

import pytest
import requests

from castdeck.backend.network_handlers.session import NotFound
from castdeck.backend.player.exceptions import ConversionFailed, SourceUnavailable
from castdeck.backend.player.subtitles import SubtitleServer, SubtitleSidecar, convert_srt_to_vtt
from castdeck.backend.player.subtitles.sidecar import attach_subtitles, subtitle_extension
from castdeck.backend.media.models import PlayableEntry

from conftest import SAMPLE_SRT, count_cues


class FakeHttp:
    def __init__(self, payload=b"", error=None):
        self.payload = payload
        self.error = error
        self.urls = []

    def fetch_bytes(self, url):
        self.urls.append(url)
        if self.error:
            raise self.error
        return self.payload


@pytest.fixture
def sidecar_factory():
    created = []

    def _make(**kwargs):
        kwargs.setdefault("port", 0)
        kwargs.setdefault("host", "127.0.0.1")
        kwargs.setdefault("ip_resolver", lambda: "127.0.0.1")
        sidecar = SubtitleSidecar(**kwargs)
        created.append(sidecar)
        return sidecar

    yield _make
    for sidecar in created:
        sidecar.close()


class TestConvert:
    def test_keeps_every_cue(self):
        vtt = convert_srt_to_vtt(SAMPLE_SRT.encode("utf-8"))
        text = vtt.decode("utf-8")

        assert text.startswith("WEBVTT\n")
        assert count_cues(vtt) == 3
        assert "00:00:01.000 --> 00:00:02.500" in text
        assert "Two lines\nof text." in text
        assert "\r" not in text

    def test_strips_bom_and_pads_timestamps(self):
        raw = "\ufeff1\n0:00:01,5 --> 0:00:02,25\nHi\n".encode("utf-8")
        text = convert_srt_to_vtt(raw).decode("utf-8")

        assert "\ufeff" not in text
        assert "00:00:01.500 --> 00:00:02.250" in text

    def test_latin1_fallback(self):
        raw = "1\n00:00:01,000 --> 00:00:02,000\nCaf\xe9\n".encode("latin-1")
        assert "Café" in convert_srt_to_vtt(raw).decode("utf-8")

    def test_cues_without_blank_separator(self):
        raw = b"1\n00:00:01,000 --> 00:00:02,000\nHello\n2\n00:00:03,000 --> 00:00:04,000\nWorld\n"
        vtt = convert_srt_to_vtt(raw)
        text = vtt.decode("utf-8")

        assert count_cues(vtt) == 2
        assert "," not in text
        assert text == (
            "WEBVTT\n\n"
            "1\n00:00:01.000 --> 00:00:02.000\nHello\n\n"
            "2\n00:00:03.000 --> 00:00:04.000\nWorld\n"
        )

    def test_packed_cues_without_identifiers(self):
        raw = b"00:00:01,000 --> 00:00:02,000\nOne\n00:00:03,000 --> 00:00:04,000\nTwo\nlines\n"
        text = convert_srt_to_vtt(raw).decode("utf-8")

        assert count_cues(text.encode("utf-8")) == 2
        assert "00:00:03.000 --> 00:00:04.000\nTwo\nlines" in text

    def test_srt_timing_is_not_a_cue(self):
        assert count_cues(b"WEBVTT\n\n00:00:01,000 --> 00:00:02,000\nHi\n") == 0

    @pytest.mark.parametrize("raw", [b"", b"just some text\nwithout timing\n"])
    def test_no_cues_fails(self, raw):
        with pytest.raises(ConversionFailed):
            convert_srt_to_vtt(raw)


class TestSubtitleServer:
    def test_serves_payload_with_headers(self):
        server = SubtitleServer(b"WEBVTT\n\n", 0, host="127.0.0.1").start()
        try:
            for _ in range(2):
                resp = requests.get(f"http://127.0.0.1:{server.port}/anything", timeout=5)
                assert resp.status_code == 200
                assert resp.content == b"WEBVTT\n\n"
                assert resp.headers["Access-Control-Allow-Origin"] == "*"
                assert resp.headers["Content-Length"] == "8"
                assert resp.headers["Content-type"] == "text/vtt;charset=utf-8"
        finally:
            server.stop()
        assert not server.running


class TestSidecar:
    def test_local_srt_is_converted_and_served(self, srt_file, sidecar_factory):
        sidecar = sidecar_factory()

        uri = sidecar.resolve(str(srt_file), "127.0.0.1")

        assert uri == f"http://127.0.0.1:{sidecar.server.port}"
        body = requests.get(uri, timeout=5).content
        assert body.startswith(b"WEBVTT")
        assert count_cues(body) >= SAMPLE_SRT.count("-->")

    def test_advertised_ip_autodetected(self, srt_file, sidecar_factory):
        sidecar = sidecar_factory(ip_resolver=lambda: "192.168.1.20")
        uri = sidecar.resolve(str(srt_file))
        assert uri.startswith("http://192.168.1.20:")

    def test_local_vtt_served_unchanged(self, tmp_path, sidecar_factory):
        vtt = tmp_path / "movie.vtt"
        vtt.write_bytes(b"WEBVTT\n\n00:00:01.000 --> 00:00:02.000\nHi\n")
        sidecar = sidecar_factory()

        uri = sidecar.resolve(str(vtt), "127.0.0.1")

        assert requests.get(uri, timeout=5).content == vtt.read_bytes()

    def test_remote_vtt_passes_through(self, sidecar_factory):
        http = FakeHttp(payload=b"WEBVTT\n")
        sidecar = sidecar_factory(http=http)
        url = "https://subs.example/track.vtt?lang=en"

        assert sidecar.resolve(url) == url
        assert sidecar.server is None
        assert http.urls == [url]

    def test_remote_srt_is_served(self, sidecar_factory):
        http = FakeHttp(payload=SAMPLE_SRT.encode("utf-8"))
        sidecar = sidecar_factory(http=http)

        uri = sidecar.resolve("https://subs.example/track.SRT", "127.0.0.1")

        assert count_cues(requests.get(uri, timeout=5).content) == 3

    def test_missing_local_file(self, tmp_path, sidecar_factory):
        with pytest.raises(SourceUnavailable):
            sidecar_factory().resolve(str(tmp_path / "nope.srt"))

    def test_remote_fetch_failure(self, sidecar_factory):
        sidecar = sidecar_factory(http=FakeHttp(error=NotFound("404 Not Found")))
        with pytest.raises(SourceUnavailable):
            sidecar.resolve("https://subs.example/missing.vtt")

    def test_conversion_failure(self, tmp_path, sidecar_factory):
        bad = tmp_path / "bad.srt"
        bad.write_text("nothing useful here")
        with pytest.raises(ConversionFailed):
            sidecar_factory().resolve(str(bad))


def test_subtitle_extension_ignores_query():
    assert subtitle_extension("https://host/a/b.vtt?x=1.srt") == ".vtt"
    assert subtitle_extension("/tmp/Movie.SRT") == ".srt"


def test_attach_subtitles():
    entry = attach_subtitles(PlayableEntry.from_reference("a.mp4"), "http://1.2.3.4:4101")
    assert entry.subtitle_track.track_id == 1
    assert entry.subtitle_track.content_type == "text/vtt"
    assert entry.active_track_ids == (1,)
