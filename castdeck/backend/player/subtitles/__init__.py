from castdeck.backend.player.subtitles.convert import convert_srt_to_vtt
from castdeck.backend.player.subtitles.server import SubtitleServer
from castdeck.backend.player.subtitles.sidecar import (
    SubtitleSidecar,
    attach_subtitles,
)

__all__ = [
    "SubtitleServer",
    "SubtitleSidecar",
    "attach_subtitles",
    "convert_srt_to_vtt",
]
