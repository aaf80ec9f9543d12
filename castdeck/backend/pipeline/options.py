from __future__ import annotations

"""Immutable user-supplied configuration read by pipeline stages."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from castdeck.backend.common.constants import DEFAULT_SUBTITLE_PORT
from castdeck.backend.common.timefmt import parse_timestamp


class CastOptions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    playlist: tuple[str, ...] = Field(default_factory=tuple)
    subtitles: Optional[str] = None
    seek: Optional[str] = None
    disable_seek: bool = False
    myip: Optional[str] = None
    device: Optional[str] = None
    address: Optional[str] = None
    mime_type: Optional[str] = None
    tomp4: bool = False
    subtitle_port: int = Field(default=DEFAULT_SUBTITLE_PORT, ge=0, le=65535)
    quiet: bool = False

    @field_validator("playlist", mode="before")
    @classmethod
    def _coerce_playlist(cls, value):  # noqa: ANN001
        if value is None:
            return ()
        if isinstance(value, str):
            return (value,)
        return tuple(str(v) for v in value)

    @field_validator("seek")
    @classmethod
    def _validate_seek(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        parse_timestamp(value)
        return value

    def seek_seconds(self) -> Optional[int]:
        if not self.seek:
            return None
        return parse_timestamp(self.seek)
