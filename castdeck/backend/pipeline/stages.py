from __future__ import annotations

"""Built-in resolution stages and the adapter for external resolvers."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Iterable, List, Mapping, Optional, Protocol, Sequence, runtime_checkable
import mimetypes

from castdeck.backend.common.logging import get_logger
from castdeck.backend.media.models import MediaMetadata, PlayableEntry
from castdeck.backend.pipeline.context import PipelineContext
from castdeck.backend.pipeline.engine import StageOutcome
from castdeck.backend.player.exceptions import SubtitleError
from castdeck.backend.player.subtitles.sidecar import SubtitleSidecar, attach_subtitles

log = get_logger(__name__)

MEDIA_EXTENSIONS = frozenset({
    ".mp4", ".mkv", ".avi", ".mov", ".m4v", ".webm", ".ts", ".m2ts", ".mpg", ".mpeg",
    ".mp3", ".m4a", ".aac", ".flac", ".ogg", ".opus", ".wav",
})


class Stage(ABC):
    name: str = "stage"

    @abstractmethod
    def __call__(self, context: PipelineContext) -> StageOutcome:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


@runtime_checkable
class MediaResolver(Protocol):
    """Contract for resolvers that do real I/O (torrents, video sites, transcoders)."""

    def matches(self, entry: PlayableEntry, context: PipelineContext) -> bool: ...

    def resolve(self, entry: PlayableEntry, context: PipelineContext) -> List[PlayableEntry]: ...


def _is_local_path(source: str) -> bool:
    return "://" not in source and not source.startswith("magnet:")


def iter_media_files(root: Path) -> Iterable[Path]:
    for entry in sorted(root.rglob("*")):
        if entry.is_file() and entry.suffix.lower() in MEDIA_EXTENSIONS:
            yield entry


class DirectoryStage(Stage):
    """Replaces each directory reference with the media files beneath it."""

    name = "directories"

    def __call__(self, context: PipelineContext) -> StageOutcome:
        expanded: List[PlayableEntry] = []
        changed = False
        for entry in context.queue:
            if not _is_local_path(entry.source):
                expanded.append(entry)
                continue
            path = Path(entry.source).expanduser()
            if not path.is_dir():
                expanded.append(entry)
                continue
            files = [PlayableEntry.from_reference(str(p)) for p in iter_media_files(path)]
            log.info("directory_expanded", extra={"path": str(path), "files": len(files)})
            expanded.extend(files)
            changed = True

        if not changed:
            return StageOutcome.DECLINED
        context.queue[:] = expanded
        return StageOutcome.APPLIED


class LocalFileStage(Stage):
    """Tags entries that point at existing files with a path, MIME type and title."""

    name = "localfile"

    def __call__(self, context: PipelineContext) -> StageOutcome:
        forced_type = context.options.mime_type
        changed = False
        for index, entry in enumerate(context.queue):
            if not _is_local_path(entry.source):
                continue
            path = Path(entry.source).expanduser()
            if not path.is_file():
                continue
            mime_type = forced_type or entry.mime_type or mimetypes.guess_type(path.name)[0]
            metadata = entry.metadata or MediaMetadata(title=path.stem)
            extras = {**entry.extras, "local": True}
            context.queue[index] = entry.with_changes(
                source=str(path.resolve()),
                mime_type=mime_type,
                metadata=metadata,
                extras=extras,
            )
            changed = True
        return StageOutcome.APPLIED if changed else StageOutcome.DECLINED


class ResolverStage(Stage):
    """Adapts a :class:`MediaResolver` into the pipeline.

    Every matching entry is replaced in place by whatever the resolver
    returns. A resolver error on one entry leaves that entry as it was.
    """

    def __init__(self, name: str, resolver: Optional[MediaResolver] = None) -> None:
        self.name = name
        self._resolver = resolver

    @property
    def resolver(self) -> Optional[MediaResolver]:
        return self._resolver

    def applies(self, context: PipelineContext) -> bool:
        return self._resolver is not None and bool(context.queue)

    def __call__(self, context: PipelineContext) -> StageOutcome:
        if not self.applies(context):
            return StageOutcome.DECLINED

        resolver = self._resolver
        result: List[PlayableEntry] = []
        changed = False
        for entry in context.queue:
            if not resolver.matches(entry, context):
                result.append(entry)
                continue
            try:
                resolved = list(resolver.resolve(entry, context))
            except Exception as exc:  # noqa: BLE001
                log.warning("resolver_failed", extra={"stage": self.name, "source": entry.source, "error": str(exc)})
                result.append(entry)
                continue
            result.extend(resolved)
            changed = True

        if not changed:
            return StageOutcome.DECLINED
        context.queue[:] = result
        return StageOutcome.APPLIED


class TranscodeStage(ResolverStage):
    """Resolver stage that only runs when transcoding was asked for."""

    def __init__(self, resolver: Optional[MediaResolver] = None) -> None:
        super().__init__("transcode", resolver)

    def applies(self, context: PipelineContext) -> bool:
        if not context.options.tomp4:
            return False
        if self.resolver is None:
            log.warning("transcode_unavailable", extra={"reason": "no transcoder configured"})
            return False
        return bool(context.queue)


class SubtitleStage(Stage):
    """Attaches a served caption track to a single-item launch."""

    name = "subtitles"

    def __init__(self, sidecar_factory: Optional[Callable[[PipelineContext], SubtitleSidecar]] = None) -> None:
        self._sidecar_factory = sidecar_factory or (lambda ctx: SubtitleSidecar(port=ctx.options.subtitle_port))
        self.sidecar: Optional[SubtitleSidecar] = None

    def __call__(self, context: PipelineContext) -> StageOutcome:
        reference = context.options.subtitles
        if not reference:
            return StageOutcome.DECLINED
        if len(context.queue) != 1:
            log.info("subtitles_skipped", extra={"reason": "single item only", "queue": len(context.queue)})
            return StageOutcome.DECLINED

        self.sidecar = self._sidecar_factory(context)
        try:
            uri = self.sidecar.resolve(reference, context.options.myip)
        except SubtitleError as exc:
            log.warning("subtitles_unavailable", extra={"source": reference, "error": str(exc)})
            return StageOutcome.DECLINED

        context.queue[0] = attach_subtitles(context.queue[0], uri)
        return StageOutcome.APPLIED


class PromoteFirstStage(Stage):
    """Moves the queue head into ``now_playing`` and ends the pipeline."""

    name = "promote"

    def __call__(self, context: PipelineContext) -> StageOutcome:
        if not context.is_launch:
            return StageOutcome.DECLINED
        entry = context.pop_next()
        if entry is None:
            log.warning("nothing_to_play")
            return StageOutcome.DECLINED
        context.now_playing = entry
        return StageOutcome.COMPLETE


def default_stages(
    resolvers: Optional[Mapping[str, MediaResolver]] = None,
    *,
    subtitle_stage: Optional[SubtitleStage] = None,
) -> Sequence[Stage]:
    """Build the chain in dependency order.

    ``resolvers`` may supply ``torrent``, ``videoplaylist``, ``video`` and
    ``transcode`` implementations; missing ones become declining stages.
    """

    resolvers = dict(resolvers or {})
    return [
        DirectoryStage(),
        ResolverStage("torrent", resolvers.get("torrent")),
        LocalFileStage(),
        ResolverStage("videoplaylist", resolvers.get("videoplaylist")),
        ResolverStage("video", resolvers.get("video")),
        TranscodeStage(resolvers.get("transcode")),
        subtitle_stage or SubtitleStage(),
        PromoteFirstStage(),
    ]


__all__ = [
    "DirectoryStage",
    "LocalFileStage",
    "MEDIA_EXTENSIONS",
    "MediaResolver",
    "PromoteFirstStage",
    "ResolverStage",
    "Stage",
    "SubtitleStage",
    "TranscodeStage",
    "default_stages",
    "iter_media_files",
]
