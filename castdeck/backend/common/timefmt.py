"""Clock-style timestamp parsing for start offsets."""

from __future__ import annotations

import re

_TIMESTAMP = re.compile(r"^\d+(:\d{1,2}){0,2}$")


def parse_timestamp(value: str) -> int:
    """Convert ``hh:mm:ss``, ``mm:ss`` or plain ``ss`` into whole seconds."""

    text = (value or "").strip()
    if not _TIMESTAMP.match(text):
        raise ValueError(f"Invalid timestamp '{value}', expected hh:mm:ss or mm:ss")

    seconds = 0
    for part in text.split(":"):
        seconds = seconds * 60 + int(part)

    return seconds


__all__ = ["parse_timestamp"]
