from __future__ import annotations

"""SubRip to WebVTT conversion."""

import re
from typing import List, Tuple

from castdeck.backend.common.logging import get_logger
from castdeck.backend.player.exceptions import ConversionFailed

log = get_logger(__name__)

_TIMING = re.compile(
    r"^\s*(?P<start>(?:\d{1,2}:)?\d{1,2}:\d{1,2}[,.]\d{1,3})\s*-->\s*"
    r"(?P<end>(?:\d{1,2}:)?\d{1,2}:\d{1,2}[,.]\d{1,3})(?P<settings>.*)$"
)
_STAMP = re.compile(r"^(?:(?P<h>\d{1,2}):)?(?P<m>\d{1,2}):(?P<s>\d{1,2})[,.](?P<ms>\d{1,3})$")


def decode_subtitle_bytes(raw: bytes) -> str:
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        log.debug("subtitle_decode_fallback", extra={"encoding": "latin-1"})
        return raw.decode("latin-1")


def _normalize_stamp(stamp: str) -> str:
    match = _STAMP.match(stamp.strip())
    if not match:
        raise ConversionFailed(f"Malformed timestamp '{stamp}'")
    hours = int(match.group("h") or 0)
    minutes = int(match.group("m"))
    seconds = int(match.group("s"))
    millis = int(match.group("ms").ljust(3, "0"))
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"


def _split_blocks(text: str) -> List[List[str]]:
    blocks: List[List[str]] = []
    current: List[str] = []
    for line in text.split("\n"):
        if line.strip():
            current.append(line.rstrip())
        elif current:
            blocks.append(current)
            current = []
    if current:
        blocks.append(current)
    return blocks


def _split_cues(block: List[str]) -> List[Tuple[str, str, List[str]]]:
    """Split one blank-line block into ``(identifier, timing, text)`` cues.

    Files that omit the blank separator pack several cues into one block; a
    later timing line starts a new cue and a numeric line right above it is
    that cue's identifier.
    """

    timings = [i for i, line in enumerate(block) if _TIMING.match(line)]
    cues: List[Tuple[str, str, List[str]]] = []
    for n, index in enumerate(timings):
        if n == 0:
            identifier = " ".join(block[:index]).strip()
        else:
            previous = block[index - 1].strip() if index - 1 > timings[n - 1] else ""
            identifier = previous if previous.isdigit() else ""
        end = timings[n + 1] if n + 1 < len(timings) else len(block)
        if n + 1 < len(timings) and end - 1 > index and block[end - 1].strip().isdigit():
            end -= 1
        cues.append((identifier, block[index], block[index + 1:end]))
    return cues


def convert_srt_to_vtt(raw: bytes) -> bytes:
    """Convert SubRip bytes into UTF-8 WebVTT bytes, keeping every cue."""

    if not raw:
        raise ConversionFailed("Subtitle source is empty")

    text = decode_subtitle_bytes(raw).replace("\r\n", "\n").replace("\r", "\n")
    out: List[str] = ["WEBVTT", ""]
    cues = 0

    for block in _split_blocks(text):
        block_cues = _split_cues(block)
        if not block_cues:
            log.debug("subtitle_block_skipped", extra={"first_line": block[0][:40]})
            continue

        for identifier, timing, body in block_cues:
            match = _TIMING.match(timing)
            if identifier:
                out.append(identifier)
            settings = match.group("settings").rstrip()
            out.append(f"{_normalize_stamp(match.group('start'))} --> {_normalize_stamp(match.group('end'))}{settings}")
            out.extend(body)
            out.append("")
            cues += 1

    if cues == 0:
        raise ConversionFailed("No subtitle cues found in source")

    log.debug("subtitle_converted", extra={"cues": cues})
    return "\n".join(out).encode("utf-8")


__all__ = ["convert_srt_to_vtt", "decode_subtitle_bytes"]

