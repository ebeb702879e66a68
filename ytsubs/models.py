"""Data models for ytsubs."""

import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from urllib.parse import parse_qs, urlparse

# Video IDs are alphanumeric with - and _, at least 10 chars
_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{10,}$")
_PATH_PREFIXES = ("shorts", "live", "embed")
_SHORT_HOSTS = ("youtu.be",)
_CANONICAL_HOSTS = ("youtube.com", "youtube-nocookie.com")


class InvalidInputError(ValueError):
    """Raised when a video URL/ID cannot be resolved."""

    pass


class TrackKind(Enum):
    """Who authored a caption track."""

    MANUAL = "manual"
    AUTOMATIC = "automatic"  # ASR


@dataclass(frozen=True)
class CaptionSegment:
    """One timed caption cue. Times are integer milliseconds."""

    text: str
    offset_ms: int
    duration_ms: int = 0

    def __post_init__(self) -> None:
        if self.offset_ms < 0:
            raise ValueError("offset_ms must be non-negative")
        if self.duration_ms < 0:
            # Durations clamp at zero
            object.__setattr__(self, "duration_ms", 0)

    @property
    def end_ms(self) -> int:
        return self.offset_ms + self.duration_ms

    @classmethod
    def from_seconds(cls, text: str, start: float, duration: float = 0.0) -> "CaptionSegment":
        """Build a segment from second-based times, rounding to the nearest ms."""
        return cls(text=text, offset_ms=seconds_to_ms(start), duration_ms=seconds_to_ms(duration))

    def to_dict(self) -> dict[str, Any]:
        """Serialize as a plain cue: text, offset (ms), duration (ms)."""
        return {"text": self.text, "offset": self.offset_ms, "duration": self.duration_ms}


@dataclass(frozen=True)
class CaptionTrack:
    """A caption track discovered for one video."""

    language_code: str
    kind: TrackKind = TrackKind.MANUAL
    display_name: str | None = None
    base_url: str | None = None  # Only known for tracks discovered via video info

    @property
    def is_automatic(self) -> bool:
        return self.kind is TrackKind.AUTOMATIC

    def describe(self) -> str:
        """Short label for logs, e.g. 'en (automatic)'."""
        return f"{self.language_code} ({self.kind.value})"


@dataclass
class CaptionResult:
    """Successful caption lookup with renderings and the attempt trace."""

    video_id: str
    segments: list[CaptionSegment]
    trace: list[str] = field(default_factory=list)
    plain_text: str = ""
    srt: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize as the response payload."""
        return {
            "video_id": self.video_id,
            "tried_order": list(self.trace),
            "segments": [s.to_dict() for s in self.segments],
            "plain_text": self.plain_text,
            "srt": self.srt,
        }


def seconds_to_ms(seconds: float) -> int:
    """Convert seconds to integer milliseconds (round half up, clamp at 0)."""
    return max(0, math.floor(seconds * 1000 + 0.5))


def is_video_id(value: str) -> bool:
    """Check if value looks like a bare video ID."""
    return bool(_VIDEO_ID_RE.match(value))


def _host_matches(host: str, domains: tuple[str, ...]) -> bool:
    return any(host == d or host.endswith("." + d) for d in domains)


def resolve_video_id(url_or_id: str) -> str:
    """Extract and validate a video ID from a URL or bare ID.

    Accepted shapes:
        dQw4w9WgXcQ
        https://youtu.be/dQw4w9WgXcQ
        https://www.youtube.com/watch?v=dQw4w9WgXcQ
        https://www.youtube.com/shorts/dQw4w9WgXcQ  (also live/ and embed/)

    Args:
        url_or_id: Video URL or ID

    Returns:
        Valid video ID

    Raises:
        InvalidInputError: If input matches none of the accepted shapes
    """
    value = (url_or_id or "").strip()
    if not value:
        raise InvalidInputError("Empty video URL/ID")

    if is_video_id(value):
        return value

    # Tolerate scheme-less links like "youtu.be/xxx"
    candidate = value if "://" in value else f"https://{value}"
    parsed = urlparse(candidate)
    host = (parsed.hostname or "").lower()
    segments = [p for p in parsed.path.split("/") if p]

    video_id = None
    if _host_matches(host, _SHORT_HOSTS):
        video_id = segments[0] if segments else None
    elif _host_matches(host, _CANONICAL_HOSTS):
        v = parse_qs(parsed.query).get("v")
        if v:
            video_id = v[0]
        elif len(segments) >= 2 and segments[0] in _PATH_PREFIXES:
            video_id = segments[1]

    if video_id and is_video_id(video_id):
        return video_id
    raise InvalidInputError("Could not extract a YouTube video ID from input.")
