"""Backend public interfaces with lazy loading to avoid circular imports."""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING, Any

__all__ = [
    "CastOptions",
    "DebouncedSeeker",
    "PipelineContext",
    "PlayableEntry",
    "PlaybackController",
    "PlaybackMode",
    "SubtitleSidecar",
    "default_stages",
    "run_pipeline",
]

_MODULE_EXPORTS = {
    "media": {
        "PlayableEntry",
    },
    "pipeline": {
        "CastOptions",
        "PipelineContext",
        "PlaybackMode",
        "default_stages",
    },
    "player": {
        "DebouncedSeeker",
        "PlaybackController",
    },
    "player.subtitles": {
        "SubtitleSidecar",
    },
}

_ALIASES = {
    "run_pipeline": ("pipeline", "run"),
}

if TYPE_CHECKING:  # pragma: no cover - for static analysis only
    from .media import PlayableEntry
    from .pipeline import CastOptions, PipelineContext, PlaybackMode, default_stages
    from .pipeline import run as run_pipeline
    from .player import DebouncedSeeker, PlaybackController
    from .player.subtitles import SubtitleSidecar


def __getattr__(name: str) -> Any:
    if name in _ALIASES:
        module_name, attr = _ALIASES[name]
        value = getattr(importlib.import_module(f"{__name__}.{module_name}"), attr)
        globals()[name] = value
        return value
    for module_name, symbols in _MODULE_EXPORTS.items():
        if name in symbols:
            module = importlib.import_module(f"{__name__}.{module_name}")
            value = getattr(module, name)
            globals()[name] = value
            return value
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


def __dir__() -> list[str]:
    exported = set(__all__)
    for symbols in _MODULE_EXPORTS.values():
        exported.update(symbols)
    exported.update(globals().keys())
    return sorted(exported)
