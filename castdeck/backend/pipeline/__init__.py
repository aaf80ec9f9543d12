"""Resolution pipeline: shared context, driver and built-in stages."""

from castdeck.backend.pipeline.context import PipelineContext, PlaybackMode
from castdeck.backend.pipeline.engine import (
    PipelineReport,
    StageDeclined,
    StageOutcome,
    run,
)
from castdeck.backend.pipeline.options import CastOptions
from castdeck.backend.pipeline.stages import (
    DirectoryStage,
    LocalFileStage,
    MediaResolver,
    PromoteFirstStage,
    ResolverStage,
    Stage,
    SubtitleStage,
    TranscodeStage,
    default_stages,
)

__all__ = [
    "CastOptions",
    "DirectoryStage",
    "LocalFileStage",
    "MediaResolver",
    "PipelineContext",
    "PipelineReport",
    "PlaybackMode",
    "PromoteFirstStage",
    "ResolverStage",
    "Stage",
    "StageDeclined",
    "StageOutcome",
    "SubtitleStage",
    "TranscodeStage",
    "default_stages",
    "run",
]
