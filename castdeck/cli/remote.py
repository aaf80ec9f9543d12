"""Command-line entry point: resolve media, start playback, take key commands."""

from __future__ import annotations

import argparse
import cmd
import threading
from typing import Callable, Optional, Sequence

from pydantic import ValidationError

from castdeck.backend.common.errors import ConfigError
from castdeck.backend.common.logging import get_logger, init_logging
from castdeck.backend.network_handlers.session import HttpSession
from castdeck.backend.pipeline import (
    CastOptions,
    PipelineContext,
    PipelineReport,
    SubtitleStage,
    default_stages,
    run,
)
from castdeck.backend.player.controller import FINISH_SESSION_LOST, PlaybackController
from castdeck.backend.player.exceptions import PlayerError, SessionLost
from castdeck.backend.player.session import ReceiverSession
from castdeck.backend.player.subtitles.sidecar import SubtitleSidecar
from castdeck.config.settings import Settings, get_settings

from ._utils import exit_with_error, print_json, to_serializable

log = get_logger("castdeck.cli")


class RemoteShell(cmd.Cmd):
    """Line-based transport controls."""

    intro = "Commands: p(ause/play) play pause m(ute) up down left right n(ext) s(top) q(uit)"
    prompt = "castdeck> "

    def __init__(self, controller: PlaybackController, **kwargs) -> None:
        super().__init__(**kwargs)
        self.controller = controller

    def emptyline(self) -> bool:
        return False

    def default(self, line: str) -> bool:
        self.stdout.write(f"Unknown command: {line}\n")
        return False

    def postcmd(self, stop: bool, line: str) -> bool:
        return stop or self.controller.finished

    def do_toggle(self, _: str) -> None:
        """Toggle between play and pause."""
        self.controller.play_pause()

    do_p = do_toggle

    def do_play(self, _: str) -> None:
        self.controller.play()

    def do_pause(self, _: str) -> None:
        self.controller.pause()

    def do_mute(self, _: str) -> None:
        """Toggle between mute and unmute."""
        self.controller.toggle_mute()

    do_m = do_mute

    def do_up(self, _: str) -> None:
        self.controller.volume_up()

    def do_down(self, _: str) -> None:
        self.controller.volume_down()

    def do_left(self, _: str) -> None:
        """Seek backward 30 seconds."""
        self.controller.seek_left()

    def do_right(self, _: str) -> None:
        """Seek forward 30 seconds."""
        self.controller.seek_right()

    def do_next(self, _: str) -> None:
        """Next in playlist."""
        self.controller.next()

    do_n = do_next

    def do_stop(self, _: str) -> None:
        self.controller.stop()

    do_s = do_stop

    def do_quit(self, _: str) -> bool:
        self.controller.quit()
        return True

    do_q = do_quit

    def do_EOF(self, _: str) -> bool:  # noqa: N802
        # stdin closed: stop reading keys, keep playing
        return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="castdeck", description="Resolve media references and remote-control playback.")
    parser.add_argument("media", nargs="*", help="Files, directories, URLs or magnet links to queue")
    parser.add_argument("--subtitles", help="Path or URL to an SRT or VTT file")
    parser.add_argument("--seek", help="Seek to hh:mm:ss or mm:ss on start")
    parser.add_argument("--disable-seek", action="store_true", help="Ignore --seek")
    parser.add_argument("--myip", help="Address the receiver should use to reach this host")
    parser.add_argument("--device", help="Name of the receiver to use")
    parser.add_argument("--address", help="IP address of the receiver")
    parser.add_argument("--type", dest="mime_type", help="Explicit MIME type, e.g. video/mp4")
    parser.add_argument("--tomp4", action="store_true", help="Transcode to mp4 during playback")
    parser.add_argument("--subtitle-port", type=int, help="Port for the subtitle responder")
    parser.add_argument("--quiet", action="store_true", help="No title or status output")
    parser.add_argument("--log-level", choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"])
    parser.add_argument("--resolve-only", action="store_true", help="Print the resolved queue as JSON and exit")
    return parser


def build_options(args: argparse.Namespace, settings: Settings) -> CastOptions:
    return CastOptions(
        playlist=args.media,
        subtitles=args.subtitles,
        seek=args.seek,
        disable_seek=args.disable_seek,
        myip=args.myip or settings.myip,
        device=args.device,
        address=args.address,
        mime_type=args.mime_type,
        tomp4=args.tomp4,
        subtitle_port=args.subtitle_port if args.subtitle_port is not None else settings.subtitle_port,
        quiet=args.quiet,
    )


def resolve(options: CastOptions, settings: Settings) -> tuple[PipelineContext, PipelineReport]:
    http = HttpSession(timeout=settings.http_timeout_sec)
    subtitle_stage = SubtitleStage(lambda ctx: SubtitleSidecar(port=ctx.options.subtitle_port, http=http))
    context = PipelineContext.from_options(options)
    report = run(default_stages(subtitle_stage=subtitle_stage), context)
    return context, report


def open_session(options: CastOptions) -> ReceiverSession:
    if options.device or options.address:
        log.warning(
            "remote_receiver_unsupported",
            extra={"device": options.device, "address": options.address, "fallback": "local VLC"},
        )
    from castdeck.backend.player.vlc_session import VlcSession

    return VlcSession()


def _notifier(options: CastOptions) -> Callable[[str], None]:
    if options.quiet:
        return lambda _text: None
    return lambda text: print(text, flush=True)


def play(
    context: PipelineContext,
    session: ReceiverSession,
    settings: Settings,
    *,
    interactive: bool = True,
) -> PlaybackController:
    options = context.options
    controller = PlaybackController(
        session,
        context,
        notifier=_notifier(options),
        seek_window=settings.seek_window_sec,
    )
    controller.attach()
    if context.now_playing is not None:
        session.load(context.now_playing)

    if interactive:
        shell = RemoteShell(controller)
        if options.quiet:
            shell.intro = None
            shell.prompt = ""
        threading.Thread(target=shell.cmdloop, name="castdeck-shell", daemon=True).start()

    controller.wait()
    return controller


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = get_settings()
    except ConfigError as exc:
        exit_with_error(str(exc))
        return 1
    init_logging(args.log_level or settings.log_level)

    try:
        options = build_options(args, settings)
    except ValidationError as exc:
        exit_with_error(str(exc))
        return 2

    try:
        context, report = resolve(options, settings)
    except ValueError as exc:
        exit_with_error(str(exc))
        return 1

    if args.resolve_only:
        print_json(
            {
                "mode": context.mode.value,
                "now_playing": to_serializable(context.now_playing),
                "queue": to_serializable(context.queue),
                "pipeline": report.as_dict(),
            }
        )
        return 0

    if context.is_launch and context.now_playing is None:
        exit_with_error("Nothing playable was found")
        return 1

    try:
        session = open_session(options)
    except PlayerError as exc:
        exit_with_error(str(exc))
        return 1

    try:
        controller = play(context, session, settings)
        if controller.finish_reason == FINISH_SESSION_LOST:
            raise SessionLost("lost connection to the receiver")
    except PlayerError as exc:
        exit_with_error(str(exc))
        return 1
    except KeyboardInterrupt:
        log.info("interrupted")
    finally:
        close = getattr(session, "close", None)
        if close is not None:
            close()

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
