"""Tests for the command-line entry point and key shell."""

import io
import json
from pathlib import Path

import pytest

from castdeck.backend.common.errors import ConfigError
from castdeck.backend.player.controller import FINISH_QUEUE_EXHAUSTED
from castdeck.backend.player.session import ReceiverStatus
from castdeck.cli import remote
from castdeck.config.settings import Settings

from conftest import FakeSession


@pytest.fixture
def settings(tmp_path, monkeypatch):
    value = Settings(
        log_level="WARNING",
        subtitle_port=4101,
        myip=None,
        seek_window_sec=0.5,
        http_timeout_sec=5.0,
        user_settings_path=tmp_path / "settings.json",
    )
    monkeypatch.setattr(remote, "get_settings", lambda: value)
    return value


def _resolve_only(capsys, *argv):
    assert remote.main(["--resolve-only", *argv]) == 0
    return json.loads(capsys.readouterr().out)


class TestMain:
    def test_resolve_directory(self, settings, media_files, capsys):
        result = _resolve_only(capsys, str(media_files[0].parent))

        assert result["mode"] == "launch"
        assert Path(result["now_playing"]["source"]).name == "01-intro.mp4"
        assert result["now_playing"]["mime_type"] == "video/mp4"
        assert result["now_playing"]["metadata"]["title"] == "01-intro"
        assert [Path(e["source"]).name for e in result["queue"]] == ["02-middle.mkv", "03-end.mp3"]
        assert result["pipeline"]["outcomes"][-1] == {"stage": "promote", "outcome": "complete"}

    def test_resolve_attach(self, settings, capsys):
        result = _resolve_only(capsys)

        assert result["mode"] == "attach"
        assert result["now_playing"] is None
        assert result["queue"] == []

    def test_forced_type(self, settings, media_files, capsys):
        result = _resolve_only(capsys, "--type", "video/x-matroska", str(media_files[1]))
        assert result["now_playing"]["mime_type"] == "video/x-matroska"

    def test_nothing_playable(self, settings, tmp_path, capsys):
        empty = tmp_path / "empty"
        empty.mkdir()
        with pytest.raises(SystemExit) as exc:
            remote.main([str(empty)])
        assert exc.value.code == 1
        assert "Nothing playable" in capsys.readouterr().err

    def test_bad_seek_rejected(self, settings, capsys):
        with pytest.raises(SystemExit):
            remote.main(["--seek", "1:2:3:4", "a.mp4"])
        assert "Error:" in capsys.readouterr().err

    def test_settings_error_reported(self, monkeypatch, capsys):
        def broken():
            raise ConfigError("Subtitle port out of range: 70000")

        monkeypatch.setattr(remote, "get_settings", broken)
        with pytest.raises(SystemExit) as exc:
            remote.main(["a.mp4"])
        assert exc.value.code == 1
        assert "Subtitle port out of range" in capsys.readouterr().err

    def test_empty_reference_reported(self, settings, capsys):
        with pytest.raises(SystemExit) as exc:
            remote.main(["--resolve-only", ""])
        assert exc.value.code == 1
        assert "non-empty" in capsys.readouterr().err

    def test_options_from_args_and_settings(self, settings):
        args = remote.build_parser().parse_args(["--seek", "1:30", "--disable-seek", "x.mp4"])
        options = remote.build_options(args, settings)

        assert options.playlist == ("x.mp4",)
        assert options.seek_seconds() == 90
        assert options.disable_seek
        assert options.subtitle_port == settings.subtitle_port


class StubController:
    def __init__(self):
        self.calls = []
        self.finished = False

    def __getattr__(self, name):
        def record(*_):
            self.calls.append(name)
            if name == "quit":
                self.finished = True

        return record


def _shell(lines):
    controller = StubController()
    shell = remote.RemoteShell(controller, stdin=io.StringIO(lines), stdout=io.StringIO())
    shell.use_rawinput = False
    return shell, controller


class TestRemoteShell:
    def test_key_dispatch(self):
        shell, controller = _shell("p\nm\nup\ndown\nleft\nright\nn\ns\nq\nplay\n")
        shell.cmdloop()

        assert controller.calls == [
            "play_pause",
            "toggle_mute",
            "volume_up",
            "volume_down",
            "seek_left",
            "seek_right",
            "next",
            "stop",
            "quit",
        ]

    def test_eof_stops_reading_only(self):
        shell, controller = _shell("pause\n")
        shell.cmdloop()
        assert controller.calls == ["pause"]
        assert not controller.finished

    def test_unknown_command(self):
        shell, controller = _shell("dance\nq\n")
        shell.cmdloop()
        assert "Unknown command: dance" in shell.stdout.getvalue()
        assert controller.calls == ["quit"]

    def test_stops_when_controller_finishes(self):
        shell, controller = _shell("stop\nplay\n")
        controller.finished = True
        shell.cmdloop()
        assert controller.calls == ["stop"]


class EagerSession(FakeSession):
    """Receiver that starts playing and finishes inside ``load``."""

    def load(self, entry):
        super().load(entry)
        self.emit("playing")
        self.emit("status", ReceiverStatus.model_validate({"playerState": "PLAYING"}))
        self.emit("status", ReceiverStatus.model_validate({"playerState": "IDLE", "idleReason": "FINISHED"}))


class TestPlay:
    def test_handlers_registered_before_load(self, settings, make_context, capsys):
        context = make_context(["a.mp4"], seek="00:10")
        context.now_playing = context.pop_next()
        session = EagerSession(
            status=ReceiverStatus.model_validate(
                {"playerState": "IDLE", "media": {"metadata": {"title": "Song", "artist": "Band"}}}
            )
        )

        controller = remote.play(context, session, settings, interactive=False)

        assert [c[0] for c in session.calls] == ["load", "seek"]
        assert session.commands("seek") == [("seek", 10)]
        assert controller.finish_reason == FINISH_QUEUE_EXHAUSTED
        assert capsys.readouterr().out.count("Title: Band - Song") == 2
