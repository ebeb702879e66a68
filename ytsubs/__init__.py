"""ytsubs - YouTube caption retrieval with fallback strategies."""

from ytsubs.errors import AllStrategiesExhaustedError, CaptionError
from ytsubs.fetcher import handle_request, resolve_captions
from ytsubs.models import CaptionResult, CaptionSegment, InvalidInputError, resolve_video_id

try:
    from ytsubs._version import __version__
except ImportError:
    __version__ = "0.0.0.dev0"

__all__ = [
    "AllStrategiesExhaustedError",
    "CaptionError",
    "CaptionResult",
    "CaptionSegment",
    "InvalidInputError",
    "__version__",
    "handle_request",
    "resolve_captions",
    "resolve_video_id",
]
