"""
Gemini protocol client.

A Gemini request is a single absolute URL followed by CRLF, sent over TLS
(default port 1965). The server answers with a ``<status> <meta>`` header
line and, for 2x statuses, the body. Gemini capsules commonly use
self-signed certificates, so certificate verification is disabled; trust on
first use is left to the caller.
"""
import asyncio
import contextlib
import ssl
import time
from typing import Optional, Tuple
from urllib.parse import urlparse

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from gemlog_sync.errors import ContentFetchError
from gemlog_sync.fetcher.base import (
    GEMINI_SCHEME,
    ContentResponse,
    charset_from_meta,
    join_url,
)

logger = structlog.get_logger()

# Constants
DEFAULT_PORT = 1965
DEFAULT_TIMEOUT = 30.0  # seconds
DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_MAX_REDIRECTS = 5
MAX_HEADER_LENGTH = 1029  # two-digit status, space, 1024 byte meta, CRLF


def parse_header(line: bytes, url: str) -> Tuple[int, str]:
    """
    Parse a Gemini response header line.

    Args:
        line: Raw header line including the trailing CRLF
        url: Requested URL, for error reporting

    Returns:
        Tuple[int, str]: Two-digit status and meta string

    Raises:
        ContentFetchError: If the header is malformed
    """
    if len(line) > MAX_HEADER_LENGTH or not line.endswith(b"\n"):
        raise ContentFetchError(url, "Malformed Gemini response header")

    text = line.decode("utf-8", errors="replace").rstrip("\r\n")
    status_text, _, meta = text.partition(" ")
    if len(status_text) != 2 or not status_text.isdigit():
        raise ContentFetchError(url, f"Invalid Gemini status {status_text!r}")

    return int(status_text), meta.strip()


async def read_header(reader: asyncio.StreamReader, url: str, timeout: float) -> bytes:
    """
    Read the response header line.

    Raises:
        ContentFetchError: If no line ending arrives within the stream limit
    """
    try:
        return await asyncio.wait_for(reader.readline(), timeout=timeout)
    except (ValueError, asyncio.LimitOverrunError) as e:
        raise ContentFetchError(url, "Malformed Gemini response header") from e


def _build_ssl_context() -> ssl.SSLContext:
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    return context


class GeminiClient:
    """
    Async Gemini client with redirect handling and retry on transport errors.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        retry_min_wait: float = 1.0,
        retry_max_wait: float = 10.0,
        max_redirects: int = DEFAULT_MAX_REDIRECTS,
        ssl_context: Optional[ssl.SSLContext] = None,
    ):
        self.timeout = timeout
        self.retry_attempts = max(retry_attempts, 1)
        self.retry_min_wait = retry_min_wait
        self.retry_max_wait = retry_max_wait
        self.max_redirects = max_redirects
        self.ssl_context = ssl_context or _build_ssl_context()

    async def fetch(self, url: str, with_retry: bool = True) -> ContentResponse:
        """
        Fetch a gemini:// URL, following redirects.

        Args:
            url: Absolute gemini:// URL
            with_retry: Whether to retry on connection and timeout errors

        Returns:
            ContentResponse: The final 2x response

        Raises:
            ContentFetchError: On non-success status, too many redirects or
                transport failure
        """
        current = url
        for _ in range(self.max_redirects + 1):
            if with_retry:
                status, meta, body = await self._request_with_retry(current)
            else:
                try:
                    status, meta, body = await self._request(current)
                except (OSError, asyncio.TimeoutError) as e:
                    raise ContentFetchError(current, f"Gemini transport error: {e}") from e

            if 20 <= status < 30:
                text = None
                if body:
                    text = body.decode(charset_from_meta(meta), errors="replace")
                return ContentResponse(url=current, status=status, meta=meta, body=text)

            if 30 <= status < 40:
                target = join_url(current, meta)
                logger.debug("Following Gemini redirect", url=current, target=target)
                current = target
                continue

            raise ContentFetchError(current, f"Gemini request failed: {meta or 'no details'}", status)

        raise ContentFetchError(url, "Too many redirects")

    async def _request_with_retry(self, url: str) -> Tuple[int, str, bytes]:
        retry_exceptions = (OSError, asyncio.TimeoutError)

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_exponential(min=self.retry_min_wait, max=self.retry_max_wait),
                retry=retry_if_exception_type(retry_exceptions),
                reraise=True,
            ):
                with attempt:
                    try:
                        return await self._request(url)
                    except retry_exceptions as e:
                        logger.warning(
                            "Gemini request failed, retrying",
                            url=url,
                            error=str(e),
                            attempt=attempt.retry_state.attempt_number,
                            max_attempts=self.retry_attempts,
                        )
                        raise
        except retry_exceptions as e:
            raise ContentFetchError(url, f"Gemini transport error: {e}") from e

        raise ContentFetchError(url, "Gemini request was not attempted")

    async def _request(self, url: str) -> Tuple[int, str, bytes]:
        """Perform a single request/response exchange."""
        parsed = urlparse(url)
        if parsed.scheme != GEMINI_SCHEME or not parsed.hostname:
            raise ContentFetchError(url, "Not a gemini:// URL")

        host = parsed.hostname
        port = parsed.port or DEFAULT_PORT
        start_time = time.time()

        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(
                host, port, ssl=self.ssl_context, server_hostname=host
            ),
            timeout=self.timeout,
        )
        try:
            writer.write(f"{url}\r\n".encode("utf-8"))
            await writer.drain()

            header = await read_header(reader, url, self.timeout)
            status, meta = parse_header(header, url)
            body = b""
            if 20 <= status < 30:
                body = await asyncio.wait_for(reader.read(), timeout=self.timeout)
        finally:
            writer.close()
            # Many servers close without a TLS close_notify.
            with contextlib.suppress(OSError):
                await writer.wait_closed()

        logger.debug(
            "Gemini request complete",
            url=url,
            status=status,
            meta=meta,
            elapsed_seconds=time.time() - start_time,
        )
        return status, meta, body
