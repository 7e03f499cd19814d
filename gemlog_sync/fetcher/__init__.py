"""
Fetcher package for gemlog-sync.

This package fetches gemlog documents over Gemini (gemini://) or HTTP(S).
Both transports produce a ContentResponse so feed loading and entry body
access do not care where a gemlog is hosted.

The main components are:
- GeminiClient for gemini:// URLs
- AsyncHTTPClient for http:// and https:// URLs
- ContentFetcher, which dispatches on the URL scheme
"""
from typing import Optional
from urllib.parse import urlparse

from gemlog_sync.config import FetchConfig
from gemlog_sync.errors import ContentFetchError
from gemlog_sync.fetcher.base import (
    GEMINI_SCHEME,
    ContentResponse,
    Fetcher,
    is_absolute_url,
    join_url,
)
from gemlog_sync.fetcher.gemini import GeminiClient
from gemlog_sync.fetcher.http_client import AsyncHTTPClient


class ContentFetcher:
    """
    Scheme-dispatching fetcher.

    The HTTP client is created on first use so purely Gemini runs never open
    an httpx connection pool.
    """

    def __init__(
        self,
        config: Optional[FetchConfig] = None,
        gemini: Optional[GeminiClient] = None,
        http: Optional[AsyncHTTPClient] = None,
    ):
        self.config = config or FetchConfig()
        self.gemini = gemini or GeminiClient(
            timeout=self.config.timeout_seconds,
            retry_attempts=self.config.retry_attempts,
            retry_min_wait=self.config.retry_min_wait,
            retry_max_wait=self.config.retry_max_wait,
            max_redirects=self.config.max_redirects,
        )
        self._http = http

    @property
    def http(self) -> AsyncHTTPClient:
        if self._http is None:
            self._http = AsyncHTTPClient(
                user_agent=self.config.user_agent,
                timeout=self.config.timeout_seconds,
                retry_attempts=self.config.retry_attempts,
                retry_min_wait=self.config.retry_min_wait,
                retry_max_wait=self.config.retry_max_wait,
            )
        return self._http

    async def __aenter__(self) -> "ContentFetcher":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        if self._http is not None:
            await self._http.close()

    async def fetch(self, url: str, with_retry: bool = True) -> ContentResponse:
        scheme = urlparse(url).scheme.lower()
        if scheme == GEMINI_SCHEME:
            return await self.gemini.fetch(url, with_retry=with_retry)
        if scheme in ("http", "https"):
            return await self.http.fetch(url, with_retry=with_retry)
        raise ContentFetchError(url, f"Unsupported URL scheme {scheme!r}")


__all__ = [
    "AsyncHTTPClient",
    "ContentFetcher",
    "ContentResponse",
    "Fetcher",
    "GeminiClient",
    "is_absolute_url",
    "join_url",
]
