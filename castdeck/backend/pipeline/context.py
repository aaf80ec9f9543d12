from __future__ import annotations

"""Single-owner state threaded through every resolution stage."""

from enum import Enum
from typing import Iterable, List, Optional

from castdeck.backend.media.models import PlayableEntry
from castdeck.backend.pipeline.options import CastOptions


class PlaybackMode(str, Enum):
    ATTACH = "attach"
    LAUNCH = "launch"


class PipelineContext:
    """Mutable queue plus read-only mode and options.

    Stages append to or replace entries in ``queue``; nothing reorders it
    except the FIFO consumption done by the promote stage and the controller.
    """

    def __init__(
        self,
        mode: PlaybackMode,
        options: CastOptions,
        queue: Optional[Iterable[PlayableEntry]] = None,
    ) -> None:
        self._mode = PlaybackMode(mode)
        self._options = options
        self.queue: List[PlayableEntry] = list(queue or ())
        self.now_playing: Optional[PlayableEntry] = None

    @property
    def mode(self) -> PlaybackMode:
        return self._mode

    @property
    def options(self) -> CastOptions:
        return self._options

    @property
    def is_launch(self) -> bool:
        return self._mode is PlaybackMode.LAUNCH

    @classmethod
    def from_options(cls, options: CastOptions) -> "PipelineContext":
        mode = PlaybackMode.LAUNCH if options.playlist else PlaybackMode.ATTACH
        queue = [PlayableEntry.from_reference(ref) for ref in options.playlist]
        return cls(mode, options, queue)

    def pop_next(self) -> Optional[PlayableEntry]:
        if not self.queue:
            return None
        return self.queue.pop(0)

    def snapshot(self) -> List[PlayableEntry]:
        return list(self.queue)

    def restore(self, entries: List[PlayableEntry]) -> None:
        self.queue[:] = entries

    def __repr__(self) -> str:
        return f"PipelineContext(mode={self._mode.value}, queue={len(self.queue)}, now_playing={self.now_playing!r})"
