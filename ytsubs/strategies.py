"""Caption retrieval strategies.

Each strategy has the shape ``(video_id, lang, trace) -> list[CaptionSegment]``
(collaborators are bound with keyword arguments) and:
- appends one trace entry per sub-attempt *before* running it,
- tries its candidates strictly in order, never retrying one,
- returns a non-empty segment list or raises StrategyExhaustedError.

Strategies, cheapest first:
1. library    - youtube-transcript-api, "any" then preferred then English variants
2. video-info - yt-dlp metadata lists tracks, caption URL tried in several formats
3. timedtext  - direct timed-text endpoint: list tracks, then fetch VTT or XML
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from youtube_transcript_api import YouTubeTranscriptApi
from youtube_transcript_api.proxies import GenericProxyConfig
from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadError

from ytsubs.config import DEFAULT_LANGUAGES
from ytsubs.errors import StrategyExhaustedError, UpstreamEmptyError, UpstreamFailureError
from ytsubs.logging import logger
from ytsubs.models import CaptionSegment, CaptionTrack, TrackKind
from ytsubs.normalize import (
    parse_cue_list,
    parse_payload,
    parse_track_list,
    snippets_to_cues,
)
from ytsubs.transport import HttpGet, HttpResponse, browser_headers

LIBRARY = "library"
VIDEO_INFO = "video-info"
TIMEDTEXT = "timedtext"

TIMEDTEXT_URL = "https://www.youtube.com/api/timedtext"

# Caption URL format variants for video-info tracks (None = server default, XML)
FORMAT_VARIANTS: tuple[str | None, ...] = (None, "vtt", "srv1", "srv3")

# Track-list query variants; asrs=1 surfaces ASR tracks, hl=en helps hidden ones
LIST_VARIANTS: tuple[Mapping[str, str], ...] = (
    {},
    {"asrs": "1"},
    {"hl": "en"},
    {"asrs": "1", "hl": "en"},
)

# Timed-text fetch order: VTT first, then the unformatted XML
TIMEDTEXT_FORMATS: tuple[str | None, ...] = ("vtt", None)


def _first_line(exc: BaseException) -> str:
    text = str(exc).strip()
    return text.splitlines()[0] if text else type(exc).__name__


# --- Track selection and URL helpers ---


def select_track(tracks: Sequence[CaptionTrack], lang: str | None = None) -> CaptionTrack:
    """Pick a track: preferred-language prefix match, then English, then first.

    Matching is case-insensitive on the language-code prefix, so "en" accepts
    "en-US". The first match in discovery order wins, even if a later track is
    a closer match.

    Raises:
        UpstreamEmptyError: If tracks is empty
    """
    if not tracks:
        raise UpstreamEmptyError("No caption tracks")
    if lang:
        pref = lang.lower()
        for track in tracks:
            if track.language_code.lower().startswith(pref):
                return track
    for track in tracks:
        if track.language_code.lower().startswith("en"):
            return track
    return tracks[0]


def with_query(url: str, drop: Iterable[str] = (), **params: str) -> str:
    """Return url with query keys in `drop` removed and `params` set."""
    parsed = urlparse(url)
    removed = set(drop) | set(params)
    query = [(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if k not in removed]
    query.extend(params.items())
    return urlunparse(parsed._replace(query=urlencode(query)))


def with_format(url: str, fmt: str | None) -> str:
    """Set (or remove, when fmt is None) the ``fmt`` query parameter."""
    if fmt is None:
        return with_query(url, drop=("fmt",))
    return with_query(url, fmt=fmt)


def _parse_response(resp: HttpResponse) -> list[CaptionSegment]:
    """Accept a successful response whose body parses to cues.

    Raises:
        UpstreamFailureError: On a non-success status
        UpstreamEmptyError: On an unrecognized body or zero cues
    """
    if not resp.ok:
        raise UpstreamFailureError(f"HTTP {resp.status}", status_code=resp.status)
    return parse_payload(resp.body)


# --- Strategy 1: transcript library ---


def make_transcript_api(proxy_url: str | None = None) -> YouTubeTranscriptApi:
    """Create a transcript library client, routed through proxy_url if given."""
    if proxy_url:
        return YouTubeTranscriptApi(
            proxy_config=GenericProxyConfig(http_url=proxy_url, https_url=proxy_url)
        )
    return YouTubeTranscriptApi()


def language_options(
    lang: str | None, languages: Sequence[str] = DEFAULT_LANGUAGES
) -> list[str | None]:
    """Library options in order: any (None), preferred, then fallbacks, deduplicated."""
    options: list[str | None] = [None]
    for option in [lang, *languages]:
        if option and option not in options:
            options.append(option)
    return options


def _library_fetch(api: YouTubeTranscriptApi, video_id: str, option: str | None) -> list[Any]:
    if option is None:
        transcript = next(iter(api.list(video_id)), None)
        if transcript is None:
            raise UpstreamEmptyError(f"No transcripts listed for {video_id}")
        fetched = transcript.fetch()
    else:
        fetched = api.fetch(video_id, languages=[option])
    return list(fetched.to_raw_data())


def fetch_via_library(
    video_id: str,
    lang: str | None,
    trace: list[str],
    api: YouTubeTranscriptApi | None = None,
    languages: Sequence[str] = DEFAULT_LANGUAGES,
) -> list[CaptionSegment]:
    """Fetch captions through youtube-transcript-api.

    Args:
        video_id: YouTube video ID
        lang: Preferred language, tried after "any"
        trace: Attempt trace, appended to before each option runs
        api: Transcript library client (default: a new direct client)
        languages: Fallback languages tried last

    Returns:
        Non-empty segment list from the first option that yields cues

    Raises:
        StrategyExhaustedError: With the last library error, or a generic
            message if every option merely returned nothing
    """
    api = api or make_transcript_api()
    last_error: Exception | None = None

    for option in language_options(lang, languages):
        trace.append(f"{LIBRARY}:any" if option is None else f"{LIBRARY}:lang={option}")
        logger.debug("Library fetch for {} ({})", video_id, option or "any language")
        try:
            segments = parse_cue_list(snippets_to_cues(_library_fetch(api, video_id, option)))
        except Exception as e:  # library raises many unrelated error types
            last_error = e
            logger.debug("Library option {} failed: {}", option or "any", _first_line(e))
            continue
        if segments:
            return segments
        logger.debug("Library option {} returned no cues", option or "any")

    if last_error is not None:
        raise StrategyExhaustedError(LIBRARY, _first_line(last_error)) from last_error
    raise StrategyExhaustedError(LIBRARY, "No transcript available.")


# --- Strategy 2: video info + caption tracks ---


def get_ytdlp_opts(proxy_url: str | None = None, timeout: float | None = None) -> dict[str, Any]:
    """yt-dlp options for a metadata-only lookup."""
    opts: dict[str, Any] = {
        "quiet": True,
        "no_warnings": True,
        "skip_download": True,
        "writesubtitles": False,
        "writeautomaticsub": False,
    }
    if proxy_url:
        opts["proxy"] = proxy_url
    if timeout:
        opts["socket_timeout"] = timeout
    return opts


def _track_from_formats(
    code: str, formats: list[dict[str, Any]], kind: TrackKind
) -> CaptionTrack | None:
    """Build a track from yt-dlp's per-language format list."""
    for fmt in formats:
        url = fmt.get("url")
        if not url or "tlang" in dict(parse_qsl(urlparse(url).query)):
            continue  # Auto-translations are not real tracks
        return CaptionTrack(
            language_code=code,
            kind=kind,
            display_name=fmt.get("name") or None,
            base_url=with_format(url, None),
        )
    return None


def list_video_info_tracks(video_id: str, ydl_opts: dict[str, Any] | None = None) -> list[CaptionTrack]:
    """List caption tracks from yt-dlp video info, manual tracks first.

    Raises:
        StrategyExhaustedError: If video info cannot be retrieved
    """
    url = f"https://www.youtube.com/watch?v={video_id}"
    opts = ydl_opts if ydl_opts is not None else get_ytdlp_opts()
    try:
        with YoutubeDL(opts) as ydl:  # pyright: ignore[reportArgumentType]
            info = ydl.extract_info(url, download=False)
    except DownloadError as e:
        raise StrategyExhaustedError(VIDEO_INFO, f"Video info unavailable: {_first_line(e)}") from e
    if info is None:
        raise StrategyExhaustedError(VIDEO_INFO, f"yt-dlp returned no info for {video_id}")

    tracks: list[CaptionTrack] = []
    for key, kind in (("subtitles", TrackKind.MANUAL), ("automatic_captions", TrackKind.AUTOMATIC)):
        for code, formats in (info.get(key) or {}).items():
            if code == "live_chat" or not formats:
                continue
            track = _track_from_formats(code, formats, kind)
            if track:
                tracks.append(track)
    return tracks


def fetch_via_video_info(
    video_id: str,
    lang: str | None,
    trace: list[str],
    http_get: HttpGet,
    ydl_opts: dict[str, Any] | None = None,
    user_agent: str | None = None,
) -> list[CaptionSegment]:
    """Fetch captions via yt-dlp's track list and the track's caption URL.

    The selected track's URL is tried unformatted, then as VTT, srv1 and srv3.

    Raises:
        StrategyExhaustedError: If there are no tracks or every format fails;
            the message carries the last HTTP status seen
    """
    trace.append(f"{VIDEO_INFO}:metadata")
    tracks = list_video_info_tracks(video_id, ydl_opts)
    if not tracks:
        raise StrategyExhaustedError(VIDEO_INFO, "Video info lists no caption tracks")

    track = select_track(tracks, lang)
    logger.debug("Video info: {} tracks, selected {}", len(tracks), track.describe())
    if not track.base_url:
        raise StrategyExhaustedError(VIDEO_INFO, f"No caption URL for {track.describe()}")

    headers = browser_headers(user_agent)
    last_status: int | None = None
    for fmt in FORMAT_VARIANTS:
        trace.append(f"{VIDEO_INFO}:lang={track.language_code},fmt={fmt or 'default'}")
        try:
            resp = http_get(with_format(track.base_url, fmt), headers)
            last_status = resp.status
            return _parse_response(resp)
        except Exception as e:  # any failed format moves on to the next one
            logger.debug("Video info format {} failed: {}", fmt or "default", e)

    raise StrategyExhaustedError(
        VIDEO_INFO,
        f"Caption download failed for {track.describe()} (last status: {last_status})",
        status_code=last_status,
    )


# --- Strategy 3: direct timed-text endpoint ---


def list_timedtext_tracks(
    video_id: str, trace: list[str], http_get: HttpGet, headers: Mapping[str, str]
) -> list[CaptionTrack]:
    """Query the track-list endpoint with each variant until one yields tracks."""
    for extra in LIST_VARIANTS:
        label = "&".join(f"{k}={v}" for k, v in extra.items()) or "plain"
        trace.append(f"{TIMEDTEXT}:list[{label}]")
        url = f"{TIMEDTEXT_URL}?{urlencode({'type': 'list', 'v': video_id, **extra})}"
        try:
            resp = http_get(url, headers)
        except Exception as e:  # transport failures of any kind
            logger.debug("Track list [{}] failed: {}", label, e)
            continue
        if not resp.ok:
            logger.debug("Track list [{}] returned HTTP {}", label, resp.status)
            continue
        tracks = parse_track_list(resp.body)
        if tracks:
            return tracks
    return []


def timedtext_url(video_id: str, track: CaptionTrack, fmt: str | None = None) -> str:
    """Direct caption URL for a listed track."""
    params = {"v": video_id, "lang": track.language_code}
    if track.is_automatic:
        params["kind"] = "asr"
    if track.display_name:
        params["name"] = track.display_name
    if fmt:
        params["fmt"] = fmt
    return f"{TIMEDTEXT_URL}?{urlencode(params)}"


def fetch_via_timedtext(
    video_id: str,
    lang: str | None,
    trace: list[str],
    http_get: HttpGet,
    user_agent: str | None = None,
) -> list[CaptionSegment]:
    """Fetch captions directly from the timed-text endpoint.

    Raises:
        StrategyExhaustedError: If no list variant yields tracks or neither
            VTT nor XML parses to cues
    """
    headers = browser_headers(user_agent)
    tracks = list_timedtext_tracks(video_id, trace, http_get, headers)
    if not tracks:
        raise StrategyExhaustedError(TIMEDTEXT, "Timed-text track list is empty")

    track = select_track(tracks, lang)
    logger.debug("Timed-text: {} tracks, selected {}", len(tracks), track.describe())

    last_status: int | None = None
    for fmt in TIMEDTEXT_FORMATS:
        trace.append(f"{TIMEDTEXT}:lang={track.language_code},fmt={fmt or 'xml'}")
        try:
            resp = http_get(timedtext_url(video_id, track, fmt), headers)
            last_status = resp.status
            return _parse_response(resp)
        except Exception as e:  # any failed format moves on to the next one
            logger.debug("Timed-text {} failed: {}", fmt or "xml", e)

    raise StrategyExhaustedError(
        TIMEDTEXT,
        f"Timed-text fetch failed for {track.describe()} (last status: {last_status})",
        status_code=last_status,
    )
