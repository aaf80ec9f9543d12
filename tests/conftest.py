"""Pytest configuration and fixtures."""

import re
from typing import List, Optional

import pytest

from castdeck.backend.pipeline.context import PipelineContext, PlaybackMode
from castdeck.backend.pipeline.options import CastOptions
from castdeck.backend.player.exceptions import CommandRejected
from castdeck.backend.player.session import ReceiverStatus, SessionEvents, VolumeStatus
from castdeck.backend.media.models import PlayableEntry


SAMPLE_SRT = (
    "1\r\n"
    "00:00:01,000 --> 00:00:02,500\r\n"
    "Hello there.\r\n"
    "\r\n"
    "2\r\n"
    "00:00:03,000 --> 00:00:04,000\r\n"
    "Two lines\r\n"
    "of text.\r\n"
    "\r\n"
    "3\r\n"
    "00:01:05,250 --> 00:01:07,000\r\n"
    "Last cue.\r\n"
)


class FakeSession:
    """In-memory receiver that records every transport command."""

    COMMANDS = {"load", "play", "pause", "stop", "seek", "mute", "unmute", "set_volume"}

    def __init__(
        self,
        volume: Optional[VolumeStatus] = None,
        status: Optional[ReceiverStatus] = None,
        position_ms: int = 0,
    ):
        self.events = SessionEvents()
        self.calls: List[tuple] = []
        self.volume = volume
        self.status = status
        self.position_ms = position_ms
        self.failing: set = set()

    def _record(self, name, *args):
        if name in self.failing:
            raise CommandRejected(f"{name} rejected")
        self.calls.append((name, *args))

    def commands(self, name=None):
        return [c for c in self.calls if name is None or c[0] == name]

    def load(self, entry):
        self._record("load", entry)

    def play(self):
        self._record("play")

    def pause(self):
        self._record("pause")

    def stop(self):
        self._record("stop")

    def seek(self, seconds):
        self._record("seek", seconds)

    def mute(self):
        self._record("mute")
        self.volume = VolumeStatus(level=self.volume.level, muted=True)
        return self.volume

    def unmute(self):
        self._record("unmute")
        self.volume = VolumeStatus(level=self.volume.level, muted=False)
        return self.volume

    def set_volume(self, level):
        self._record("set_volume", level)
        muted = self.volume.muted if self.volume else False
        self.volume = VolumeStatus(level=level, muted=muted)
        return self.volume

    def get_volume(self):
        if "get_volume" in self.failing:
            raise CommandRejected("get_volume rejected")
        return self.volume

    def get_status(self):
        return self.status

    def get_position(self):
        return self.position_ms

    def on(self, event, handler):
        self.events.on(event, handler)

    def emit(self, event, *args):
        return self.events.emit(event, *args)


class FakeClock:
    def __init__(self, now: float = 100.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTimer:
    created: List["FakeTimer"] = []

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False
        FakeTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def fake_timers():
    FakeTimer.created = []
    yield FakeTimer
    FakeTimer.created = []


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def make_context():
    def _make(refs=(), mode=None, **option_kwargs):
        options = CastOptions(playlist=list(refs), **option_kwargs)
        if mode is None:
            return PipelineContext.from_options(options)
        return PipelineContext(mode, options, [PlayableEntry.from_reference(r) for r in refs])

    return _make


@pytest.fixture
def launch_context(make_context):
    return make_context(["a.mp4", "b.mp4", "c.mp4"])


@pytest.fixture
def attach_context(make_context):
    return make_context([], mode=PlaybackMode.ATTACH)


@pytest.fixture
def media_files(tmp_path):
    paths = []
    for name in ("01-intro.mp4", "02-middle.mkv", "03-end.mp3"):
        path = tmp_path / name
        path.write_bytes(b"\x00")
        paths.append(path)
    return paths


@pytest.fixture
def srt_file(tmp_path):
    path = tmp_path / "movie.srt"
    path.write_bytes(SAMPLE_SRT.encode("utf-8"))
    return path


VTT_TIMING = re.compile(r"^\d{2}:\d{2}:\d{2}\.\d{3} --> \d{2}:\d{2}:\d{2}\.\d{3}(?:\s.*)?$")


def count_cues(vtt: bytes) -> int:
    """Count WebVTT timing lines; SubRip-style timings do not qualify."""

    return sum(1 for line in vtt.decode("utf-8").split("\n") if VTT_TIMING.match(line))
