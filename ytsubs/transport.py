"""Upstream HTTP access.

Strategies only depend on the ``HttpGet`` callable shape, so tests can pass a
plain function. ``HttpClient`` is the real implementation on top of httpx.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import TracebackType

import httpx

from ytsubs.config import Config
from ytsubs.errors import UpstreamFailureError
from ytsubs.logging import logger

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


@dataclass(frozen=True)
class HttpResponse:
    """Status and decoded body of an upstream response."""

    status: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


HttpGet = Callable[[str, Mapping[str, str]], HttpResponse]


def browser_headers(user_agent: str | None = None) -> dict[str, str]:
    """Browser-like headers that reduce the chance of anti-automation rejection."""
    return {
        "User-Agent": user_agent or DEFAULT_USER_AGENT,
        "Accept": "*/*",
        "Accept-Language": "en-US,en;q=0.9",
        "Origin": "https://www.youtube.com",
        "Referer": "https://www.youtube.com/",
    }


class HttpClient:
    """Thin httpx wrapper returning HttpResponse for every status.

    Usage:
        with HttpClient(config) as http:
            resp = http.get(url, browser_headers())
    """

    def __init__(self, config: Config | None = None) -> None:
        config = config or Config()
        self._client = httpx.Client(
            timeout=config.timeout,
            proxy=config.proxy_url,
            follow_redirects=True,
        )

    def get(self, url: str, headers: Mapping[str, str]) -> HttpResponse:
        """GET url with headers.

        Raises:
            UpstreamFailureError: On transport errors (connect, timeout, protocol)
        """
        try:
            resp = self._client.get(url, headers=dict(headers))
        except httpx.HTTPError as e:
            logger.debug("GET {} failed: {}", url[:80], e)
            raise UpstreamFailureError(f"Request failed: {e}") from e
        logger.debug("GET {} -> {} ({} bytes)", url[:80], resp.status_code, len(resp.content))
        return HttpResponse(status=resp.status_code, body=resp.text)

    def __call__(self, url: str, headers: Mapping[str, str]) -> HttpResponse:
        return self.get(url, headers)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
