"""Caption lookup: resolve the video ID, then run strategies until one succeeds."""

from collections.abc import Callable, Mapping, Sequence
from functools import partial
from typing import Any

from ytsubs.config import Config, load_config
from ytsubs.errors import AllStrategiesExhaustedError, CaptionError, UpstreamEmptyError
from ytsubs.logging import logger
from ytsubs.models import CaptionResult, CaptionSegment, InvalidInputError, resolve_video_id
from ytsubs.render import to_plain_text, to_srt
from ytsubs.strategies import (
    LIBRARY,
    TIMEDTEXT,
    VIDEO_INFO,
    fetch_via_library,
    fetch_via_timedtext,
    fetch_via_video_info,
    get_ytdlp_opts,
    make_transcript_api,
)
from ytsubs.transport import HttpClient, HttpGet

Strategy = Callable[[str, str | None, list[str]], list[CaptionSegment]]


def build_strategies(http_get: HttpGet, config: Config) -> list[tuple[str, Strategy]]:
    """Bind collaborators into the three strategies, in priority order."""
    return [
        (
            LIBRARY,
            partial(
                fetch_via_library,
                api=make_transcript_api(config.proxy_url),
                languages=config.languages,
            ),
        ),
        (
            VIDEO_INFO,
            partial(
                fetch_via_video_info,
                http_get=http_get,
                ydl_opts=get_ytdlp_opts(config.proxy_url, config.timeout),
                user_agent=config.user_agent,
            ),
        ),
        (
            TIMEDTEXT,
            partial(fetch_via_timedtext, http_get=http_get, user_agent=config.user_agent),
        ),
    ]


def run_strategies(
    video_id: str,
    lang: str | None,
    strategies: Sequence[tuple[str, Strategy]],
    trace: list[str],
) -> list[CaptionSegment]:
    """Run strategies in order, returning the first non-empty result.

    Every strategy that runs appends to `trace`, whether it succeeds or not.

    Raises:
        AllStrategiesExhaustedError: With the last strategy's message and the trace
    """
    last_error: Exception | None = None
    for name, strategy in strategies:
        try:
            segments = strategy(video_id, lang, trace)
        except Exception as e:  # any strategy failure moves on to the next one
            last_error = e
            logger.warning("Strategy {} failed for {}: {}", name, video_id, e)
            continue
        if segments:
            logger.info("Got {} captions for {} via {}", len(segments), video_id, name)
            return segments
        last_error = UpstreamEmptyError(f"Strategy {name} returned no captions")

    message = str(last_error) if last_error else "No transcript available."
    status = last_error.status_code if isinstance(last_error, CaptionError) else None
    raise AllStrategiesExhaustedError(message, trace, status_code=status) from last_error


def resolve_captions(
    url_or_id: str,
    lang: str | None = None,
    strategies: Sequence[tuple[str, Strategy]] | None = None,
    config: Config | None = None,
) -> CaptionResult:
    """Fetch captions for a video URL or ID.

    Args:
        url_or_id: Video URL or ID
        lang: Preferred language (e.g. "de"); English variants are the fallback
        strategies: Override the default strategy chain (used by tests)
        config: Configuration (default: loaded from ~/.ytsubs/config.toml)

    Returns:
        CaptionResult with segments, plain text, SRT and the attempt trace

    Raises:
        InvalidInputError: If no video ID can be extracted (no strategy runs)
        AllStrategiesExhaustedError: If every strategy failed
    """
    video_id = resolve_video_id(url_or_id)
    lang = (lang or "").strip() or None
    trace: list[str] = []
    with logger.contextualize(video_id=video_id):
        logger.debug("Resolving captions (lang={})", lang or "any")
        if strategies is not None:
            segments = run_strategies(video_id, lang, strategies, trace)
        else:
            config = config or load_config()
            with HttpClient(config) as http:
                segments = run_strategies(video_id, lang, build_strategies(http.get, config), trace)

    return CaptionResult(
        video_id=video_id,
        segments=segments,
        trace=trace,
        plain_text=to_plain_text(segments),
        srt=to_srt(segments),
    )


def handle_request(
    body: Mapping[str, Any] | None,
    strategies: Sequence[tuple[str, Strategy]] | None = None,
    config: Config | None = None,
) -> tuple[int, dict[str, Any]]:
    """Handle a ``{"url": ..., "lang": ...}`` request body.

    Returns:
        (status, payload): 200 with the caption payload, or 400 with {"error": ...}
    """
    body = body or {}
    url = body.get("url")
    if not url or not str(url).strip():
        return 400, {"error": "Missing 'url'."}
    lang = body.get("lang")
    if not isinstance(lang, str):
        lang = None

    try:
        result = resolve_captions(str(url), lang, strategies=strategies, config=config)
    except (InvalidInputError, CaptionError) as e:
        return 400, {"error": str(e) or "Failed to fetch transcript."}
    return 200, result.to_dict()
