"""Caption payload parsing into CaptionSegment lists.

Three payload shapes reach us from the strategies:
- WebVTT text (``WEBVTT`` header, ``start --> end`` cue lines)
- Timed-text XML (``<text start="1.0" dur="2.5">``, or the srv3 dialect
  ``<p t="1000" d="2500">``)
- Plain cue lists already structured by a library (``text``/``offset``/``duration``)

Parsers are pure and may return an empty list. Callers decide that an empty
result is a failed attempt via :func:`require_segments`.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterable, Mapping
from typing import Any

from ytsubs.errors import UpstreamEmptyError
from ytsubs.models import CaptionSegment, CaptionTrack, TrackKind, seconds_to_ms

_TAG_RE = re.compile(r"<[^>]+>")
_ENTITY_RE = re.compile(r"&(#[0-9]+|#[xX][0-9a-fA-F]+|amp|lt|gt|quot|apos);")
_NAMED_ENTITIES = {"amp": "&", "lt": "<", "gt": ">", "quot": '"', "apos": "'"}

# 00:01:02.500 --> 00:01:04.000 (hours optional, cue settings may follow)
_VTT_TIMING_RE = re.compile(
    r"^\s*((?:\d+:)?\d{1,2}:\d{2}[.,]\d{1,3})\s*-->\s*((?:\d+:)?\d{1,2}:\d{2}[.,]\d{1,3})"
)

_XML_TEXT_RE = re.compile(r"<text\b([^>]*)>(.*?)</text>", re.DOTALL)
_XML_SRV3_RE = re.compile(r"<p\b([^>]*)>(.*?)</p>", re.DOTALL)
_ATTR_RE = re.compile(r'([\w:-]+)\s*=\s*"([^"]*)"')


def _decode_entity(match: re.Match[str]) -> str:
    name = match.group(1)
    if name.startswith("#"):
        try:
            code = int(name[2:], 16) if name[1] in "xX" else int(name[1:])
            return chr(code)
        except (ValueError, OverflowError):
            return match.group(0)
    return _NAMED_ENTITIES[name]


def decode_entities(text: str) -> str:
    """Decode the five XML entities and numeric character references."""
    # Twice, since timed-text XML often double-escapes (&amp;#39;)
    for _ in range(2):
        decoded = _ENTITY_RE.sub(_decode_entity, text)
        if decoded == text:
            break
        text = decoded
    return text


def clean_text(raw: str) -> str:
    """Strip inline markup tags, decode entities and collapse whitespace."""
    text = decode_entities(_TAG_RE.sub("", raw))
    return " ".join(text.split())


def parse_attributes(fragment: str) -> dict[str, str]:
    """Parse ``key="value"`` pairs from the inside of a start tag."""
    return {key: decode_entities(value) for key, value in _ATTR_RE.findall(fragment)}


def parse_timestamp(ts: str) -> float:
    """Convert ``HH:MM:SS.mmm`` or ``MM:SS.mmm`` to seconds.

    Raises:
        ValueError: If the timestamp is malformed
    """
    parts = ts.strip().replace(",", ".").split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Malformed timestamp: {ts!r}")
    seconds = 0.0
    for part in parts:
        seconds = seconds * 60 + float(part)
    return seconds


def _ordered(segments: list[CaptionSegment]) -> list[CaptionSegment]:
    return sorted(segments, key=lambda s: s.offset_ms)


def parse_vtt(content: str) -> list[CaptionSegment]:
    """Parse WebVTT content.

    Every non-blank line after a timing line, up to the next blank line, is
    part of the cue text. Malformed timing lines are skipped.

    Args:
        content: WebVTT file content

    Returns:
        Segments in chronological order (possibly empty)
    """
    segments: list[CaptionSegment] = []
    lines = content.replace("\r\n", "\n").replace("\r", "\n").split("\n")

    i = 0
    while i < len(lines):
        match = _VTT_TIMING_RE.match(lines[i])
        i += 1
        if not match:
            continue
        try:
            start = parse_timestamp(match.group(1))
            end = parse_timestamp(match.group(2))
        except ValueError:
            continue

        text_lines: list[str] = []
        while i < len(lines) and lines[i].strip():
            if _VTT_TIMING_RE.match(lines[i]):
                break  # Cue without a blank separator
            text_lines.append(lines[i].strip())
            i += 1

        text = clean_text(" ".join(text_lines))
        if text:
            segments.append(CaptionSegment.from_seconds(text, start, max(0.0, end - start)))

    return _ordered(segments)


def parse_timedtext_xml(content: str) -> list[CaptionSegment]:
    """Parse timed-text XML.

    Handles the classic format (``<text start dur>`` in seconds) and falls back
    to srv3 (``<p t d>`` in milliseconds) when no ``<text>`` elements exist.

    Args:
        content: XML document as text

    Returns:
        Segments in chronological order (possibly empty)
    """
    segments: list[CaptionSegment] = []

    matches = _XML_TEXT_RE.findall(content)
    if matches:
        for attr_str, inner in matches:
            attrs = parse_attributes(attr_str)
            try:
                start = float(attrs["start"])
                dur = float(attrs.get("dur", "0"))
            except (KeyError, ValueError):
                continue
            if not (math.isfinite(start) and math.isfinite(dur)):
                continue
            text = clean_text(inner)
            if text:
                segments.append(CaptionSegment.from_seconds(text, start, dur))
        return _ordered(segments)

    for attr_str, inner in _XML_SRV3_RE.findall(content):
        attrs = parse_attributes(attr_str)
        try:
            start_ms = int(float(attrs["t"]))
            dur_ms = int(float(attrs.get("d", "0")))
        except (KeyError, ValueError, OverflowError):
            continue
        text = clean_text(inner)
        if text and start_ms >= 0:
            segments.append(CaptionSegment(text=text, offset_ms=start_ms, duration_ms=dur_ms))

    return _ordered(segments)


def parse_cue_list(items: Iterable[Mapping[str, Any]]) -> list[CaptionSegment]:
    """Build segments from an already-structured cue list.

    Each item needs ``text`` and ``offset`` (ms); ``duration`` (ms) defaults to 0.
    Whitespace runs (including line breaks) collapse to single spaces so each
    segment stays one line. Items without text are dropped.
    """
    segments = []
    for item in items:
        text = " ".join(str(item.get("text") or "").split())
        if not text:
            continue
        segments.append(
            CaptionSegment(
                text=text,
                offset_ms=max(0, int(item["offset"])),
                duration_ms=int(item.get("duration") or 0),
            )
        )
    return segments


def snippets_to_cues(snippets: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Convert second-based snippets (``start``/``duration``) to ms cue dicts."""
    return [
        {
            "text": s.get("text", ""),
            "offset": seconds_to_ms(float(s.get("start", 0.0))),
            "duration": seconds_to_ms(float(s.get("duration", 0.0))),
        }
        for s in snippets
    ]


def detect_format(body: str) -> str | None:
    """Identify a caption payload: 'vtt', 'xml' or None if unrecognized."""
    if "WEBVTT" in body:
        return "vtt"
    if "<text" in body or "<timedtext" in body:
        return "xml"
    return None


def parse_payload(body: str) -> list[CaptionSegment]:
    """Parse a payload of unknown format.

    Raises:
        UpstreamEmptyError: If the body is unrecognized or yields no cues
    """
    fmt = detect_format(body)
    if fmt is None:
        raise UpstreamEmptyError(f"Unrecognized caption payload ({len(body)} bytes)")
    segments = parse_vtt(body) if fmt == "vtt" else parse_timedtext_xml(body)
    return require_segments(segments, fmt)


def require_segments(segments: list[CaptionSegment], source: str) -> list[CaptionSegment]:
    """Return segments unchanged, or raise if there are none.

    Raises:
        UpstreamEmptyError: If segments is empty
    """
    if not segments:
        raise UpstreamEmptyError(f"No captions in {source} payload")
    return segments


_TRACK_RE = re.compile(r"<track\b([^>]*?)/?>")


def parse_track_list(content: str) -> list[CaptionTrack]:
    """Parse caption tracks from a timed-text ``type=list`` response.

    Each ``<track lang_code="en" name="" kind="asr"/>`` element becomes a
    CaptionTrack; ``kind="asr"`` marks an automatically generated track.
    """
    tracks = []
    for attr_str in _TRACK_RE.findall(content):
        attrs = parse_attributes(attr_str)
        code = attrs.get("lang_code", "").strip()
        if not code:
            continue
        kind = TrackKind.AUTOMATIC if attrs.get("kind") == "asr" else TrackKind.MANUAL
        tracks.append(
            CaptionTrack(language_code=code, kind=kind, display_name=attrs.get("name") or None)
        )
    return tracks
