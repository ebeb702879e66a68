"""Render caption segments as plain text or SRT."""

from ytsubs.models import CaptionSegment


def format_srt_timestamp(ms: int) -> str:
    """Format milliseconds as an SRT timestamp (HH:MM:SS,mmm).

    Args:
        ms: Time in milliseconds

    Returns:
        Formatted string like "00:01:02,500"
    """
    ms = max(0, ms)
    hours, remainder = divmod(ms, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    seconds, millis = divmod(remainder, 1000)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d},{millis:03d}"


def to_plain_text(segments: list[CaptionSegment]) -> str:
    """Join segment texts with newlines, order preserved."""
    return "\n".join(s.text for s in segments)


def to_srt(segments: list[CaptionSegment]) -> str:
    """Render segments as SRT: numbered blocks separated by a blank line."""
    blocks = []
    for i, seg in enumerate(segments, start=1):
        start = format_srt_timestamp(seg.offset_ms)
        end = format_srt_timestamp(seg.end_ms)
        blocks.append(f"{i}\n{start} --> {end}\n{seg.text}\n")
    return "\n".join(blocks)
