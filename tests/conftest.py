"""Shared pytest fixtures for ytsubs tests."""

from collections.abc import Callable, Mapping
from typing import Any

import pytest

from ytsubs.errors import UpstreamFailureError
from ytsubs.transport import HttpResponse

VIDEO_ID = "dQw4w9WgXcQ"

# --- Payload Fixtures ---


@pytest.fixture
def vtt_payload() -> str:
    """Minimal two-cue WebVTT document."""
    return (
        "WEBVTT\n"
        "Kind: captions\n"
        "Language: en\n"
        "\n"
        "00:00:01.000 --> 00:00:02.500\n"
        "Hello <b>world</b>\n"
        "\n"
        "00:00:03.000 --> 00:00:04.000 align:start position:0%\n"
        "second &amp; last\n"
    )


@pytest.fixture
def xml_payload() -> str:
    """Classic timed-text XML with two cues."""
    return (
        '<?xml version="1.0" encoding="utf-8" ?><transcript>'
        '<text start="1.0" dur="2.5">Hi &amp; bye</text>'
        '<text start="4.25" dur="1.1">it&amp;#39;s fine</text>'
        "</transcript>"
    )


@pytest.fixture
def track_list_payload() -> str:
    """Timed-text track listing with a manual and an ASR track."""
    return (
        '<?xml version="1.0" encoding="utf-8" ?><transcript_list docid="123">'
        '<track id="0" name="" lang_code="fr" lang_original="Français" />'
        '<track id="1" name="CC" lang_code="en" kind="asr" lang_original="English" />'
        "</transcript_list>"
    )


@pytest.fixture
def mock_ytdlp_info() -> dict[str, Any]:
    """yt-dlp extract_info response with manual and automatic captions."""
    return {
        "id": VIDEO_ID,
        "title": "Test Video",
        "subtitles": {
            "de": [{"ext": "vtt", "url": "https://www.youtube.com/api/timedtext?v=x&lang=de&fmt=vtt", "name": "Deutsch"}],
            "live_chat": [{"ext": "json", "url": "https://example.com/chat"}],
        },
        "automatic_captions": {
            "en": [
                {"ext": "json3", "url": "https://www.youtube.com/api/timedtext?v=x&lang=en&kind=asr&fmt=json3"},
            ],
            "fr": [
                {"ext": "vtt", "url": "https://www.youtube.com/api/timedtext?v=x&lang=en&kind=asr&tlang=fr&fmt=vtt"},
            ],
        },
    }


# --- HTTP Fixtures ---


class FakeHttp:
    """Scripted HttpGet: answers by the first matching URL substring, records calls."""

    def __init__(self, routes: list[tuple[str, HttpResponse | Exception]] | None = None) -> None:
        self.routes = routes or []
        self.calls: list[str] = []
        self.headers: list[Mapping[str, str]] = []

    def __call__(self, url: str, headers: Mapping[str, str]) -> HttpResponse:
        self.calls.append(url)
        self.headers.append(headers)
        for needle, answer in self.routes:
            if needle in url:
                if isinstance(answer, Exception):
                    raise answer
                return answer
        return HttpResponse(status=404, body="")


@pytest.fixture
def fake_http() -> Callable[..., FakeHttp]:
    """Factory for FakeHttp instances."""

    def make(*routes: tuple[str, HttpResponse | Exception]) -> FakeHttp:
        return FakeHttp(list(routes))

    return make


@pytest.fixture
def network_error() -> UpstreamFailureError:
    """Transport failure as raised by HttpClient."""
    return UpstreamFailureError("Request failed: connection reset")
