"""
HTTP(S) transport for gemlogs mirrored on the web.

The response's content-type header stands in for the Gemini meta line, so an
Atom feed served over HTTPS is detected exactly like one served over Gemini.
Transport failures (timeouts, connection errors) are retried with tenacity;
error statuses are not.
"""
import time
from typing import Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from gemlog_sync.errors import ContentFetchError
from gemlog_sync.fetcher.base import ContentResponse

logger = structlog.get_logger()

DEFAULT_USER_AGENT = "gemlog-sync/0.1.0"
DEFAULT_TIMEOUT = 30.0  # seconds
RETRYABLE_ERRORS = (httpx.TimeoutException, httpx.NetworkError)


class AsyncHTTPClient:
    """
    Fetches http:// and https:// gemlog documents as ContentResponses.
    """

    def __init__(
        self,
        user_agent: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        retry_attempts: int = 3,
        retry_min_wait: float = 1.0,
        retry_max_wait: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            user_agent: Value of the User-Agent header
            timeout: Per-request timeout in seconds
            retry_attempts: Attempts per fetch when retrying is requested
            retry_min_wait: Lower bound of the exponential backoff, in seconds
            retry_max_wait: Upper bound of the exponential backoff, in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.retry_attempts = max(retry_attempts, 1)
        self.retry_min_wait = retry_min_wait
        self.retry_max_wait = retry_max_wait
        self.client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": user_agent or DEFAULT_USER_AGENT},
            transport=transport,
        )

    async def __aenter__(self) -> "AsyncHTTPClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.aclose()

    async def fetch(self, url: str, with_retry: bool = True) -> ContentResponse:
        """
        GET a URL, following redirects.

        Returns:
            ContentResponse: Final URL, status, content-type and decoded body

        Raises:
            ContentFetchError: On an error status or transport failure
        """
        try:
            if with_retry:
                response = await self._get_with_retry(url)
            else:
                response = await self._get(url)
        except httpx.HTTPStatusError as e:
            raise ContentFetchError(url, "HTTP request failed", e.response.status_code) from e
        except httpx.HTTPError as e:
            raise ContentFetchError(url, f"HTTP transport error: {e}") from e

        return ContentResponse(
            url=str(response.url),
            status=response.status_code,
            meta=response.headers.get("content-type", ""),
            body=response.text if response.content else None,
        )

    async def _get(self, url: str, attempt: int = 1) -> httpx.Response:
        start_time = time.time()
        response = await self.client.get(url)
        response.raise_for_status()
        logger.debug(
            "HTTP fetch complete",
            url=url,
            status_code=response.status_code,
            elapsed_seconds=time.time() - start_time,
            attempt=attempt,
        )
        return response

    async def _get_with_retry(self, url: str) -> httpx.Response:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(min=self.retry_min_wait, max=self.retry_max_wait),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            reraise=True,
        ):
            with attempt:
                attempt_number = attempt.retry_state.attempt_number
                try:
                    return await self._get(url, attempt_number)
                except RETRYABLE_ERRORS as e:
                    logger.warning(
                        "HTTP fetch failed",
                        url=url,
                        error=str(e),
                        attempt=attempt_number,
                        max_attempts=self.retry_attempts,
                    )
                    raise

        raise ContentFetchError(url, "HTTP request was not attempted")
