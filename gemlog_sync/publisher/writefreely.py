"""
WriteFreely API client.

Wraps the parts of the WriteFreely REST API that gemlog-sync needs: token
login/logout, the authenticated user, listing a collection's posts and
creating posts. Read-only requests are retried on transport errors; post
creation is never retried so a timeout cannot create a post twice.
"""
import time
from typing import Any, Dict, List, Optional, Set

import httpx
import structlog
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from gemlog_sync.errors import ConfigurationError, WriteFreelyError
from gemlog_sync.models.entry import Entry
from gemlog_sync.models.post import PostCreateRequest, PublishedPost

logger = structlog.get_logger()

# Constants
DEFAULT_TIMEOUT = 30.0  # seconds
DEFAULT_RETRY_ATTEMPTS = 3
# Stop paging after this many pages in case the server ignores ?page=.
MAX_POST_PAGES = 1000


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(payload, dict):
        return payload.get("error_msg") or response.reason_phrase
    return response.reason_phrase


class WriteFreelyClient:
    """
    Async client for a single WriteFreely blog (collection alias).

    Implements the RemotePublisher protocol.
    """

    def __init__(
        self,
        url: str,
        alias: str,
        access_token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            url: Root URL of the WriteFreely instance
            alias: Collection (blog) alias, usually the username
            access_token: API token from a previous login
            timeout: Request timeout in seconds
            retry_attempts: Attempts for read-only requests
            transport: Optional httpx transport (used by tests)
        """
        if not alias:
            raise ConfigurationError("WriteFreely alias required")

        self.url = url.rstrip("/")
        self.alias = alias
        self.access_token = access_token
        self.retry_attempts = max(retry_attempts, 1)
        self.client = httpx.AsyncClient(
            base_url=f"{self.url}/api",
            timeout=timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    @classmethod
    async def login(
        cls,
        url: str,
        username: str,
        password: str,
        alias: Optional[str] = None,
        **kwargs: Any,
    ) -> "WriteFreelyClient":
        """
        Log in with a username and password and return a client holding the
        resulting access token.
        """
        client = cls(url, alias or username, **kwargs)
        try:
            data = await client._request(
                "POST",
                "/auth/login",
                json={"alias": username, "pass": password},
                authenticated=False,
            )
        except Exception:
            await client.close()
            raise

        client.access_token = data.get("access_token")
        logger.info("Logged in to WriteFreely", url=client.url, username=username)
        return client

    async def __aenter__(self) -> "WriteFreelyClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.client.aclose()

    async def logout(self) -> None:
        """Invalidate the access token. The client is unusable afterwards."""
        await self._request("DELETE", "/auth/me")
        logger.info("Logged out of WriteFreely", url=self.url)
        self.access_token = None

    async def user(self) -> str:
        """Username of the authenticated user."""
        data = await self._request("GET", "/me", with_retry=True)
        return data.get("username", "")

    async def list_slugs(self) -> List[str]:
        """
        Slugs of all posts in the collection.

        Pages through the collection until a page adds no new posts.
        """
        slugs: List[str] = []
        seen_ids: Set[str] = set()
        for page in range(1, MAX_POST_PAGES + 1):
            data = await self._request(
                "GET",
                f"/collections/{self.alias}/posts",
                params={"page": page},
                with_retry=True,
            )
            posts = data.get("posts") or []
            new_posts = [post for post in posts if post.get("id") not in seen_ids]
            if not new_posts:
                break

            for post in new_posts:
                seen_ids.add(post.get("id"))
                if post.get("slug"):
                    slugs.append(post["slug"])

        logger.debug("Listed WriteFreely slugs", alias=self.alias, count=len(slugs))
        return slugs

    async def create_post(self, entry: Entry) -> PublishedPost:
        """
        Create a post in the collection from a feed entry.

        Raises:
            BodyFetchFailure: If the entry body cannot be loaded
            WriteFreelyError: If the API rejects the post
        """
        request = await PostCreateRequest.from_entry(entry)
        data = await self._request(
            "POST",
            f"/collections/{self.alias}/posts",
            json=request.to_payload(),
        )
        try:
            return PublishedPost.model_validate(data)
        except ValidationError as e:
            raise WriteFreelyError(f"Unexpected create post response: {e}") from e

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        authenticated: bool = True,
        with_retry: bool = False,
    ) -> Dict[str, Any]:
        """
        Send an API request and unwrap the ``data`` member of the response.

        Raises:
            ConfigurationError: If authentication is needed but no token is set
            WriteFreelyError: On transport failure or an error response
        """
        headers = {}
        if authenticated:
            if not self.access_token:
                raise ConfigurationError("WriteFreely access token required")
            headers["Authorization"] = f"Token {self.access_token}"

        try:
            if with_retry:
                response = await self._send_with_retry(method, path, params, json, headers)
            else:
                response = await self.client.request(
                    method, path, params=params, json=json, headers=headers
                )
        except httpx.HTTPError as e:
            raise WriteFreelyError(f"WriteFreely request failed: {e}") from e

        if response.is_error:
            raise WriteFreelyError(_error_message(response), response.status_code)

        if response.status_code == httpx.codes.NO_CONTENT or not response.content:
            return {}

        try:
            payload = response.json()
        except ValueError as e:
            raise WriteFreelyError("WriteFreely returned invalid JSON", response.status_code) from e

        data = payload.get("data") if isinstance(payload, dict) else None
        return data if isinstance(data, dict) else {}

    async def _send_with_retry(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]],
        json: Optional[Dict[str, Any]],
        headers: Dict[str, str],
    ) -> httpx.Response:
        retry_exceptions = (httpx.TimeoutException, httpx.NetworkError)

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.retry_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(retry_exceptions),
            reraise=True,
        ):
            with attempt:
                try:
                    start_time = time.time()
                    response = await self.client.request(
                        method, path, params=params, json=json, headers=headers
                    )
                    logger.debug(
                        "WriteFreely request complete",
                        method=method,
                        path=path,
                        status_code=response.status_code,
                        elapsed_seconds=time.time() - start_time,
                        attempt=attempt.retry_state.attempt_number,
                    )
                    return response
                except retry_exceptions as e:
                    logger.warning(
                        "WriteFreely request failed, retrying",
                        method=method,
                        path=path,
                        error=str(e),
                        attempt=attempt.retry_state.attempt_number,
                        max_attempts=self.retry_attempts,
                    )
                    raise

        raise WriteFreelyError(f"WriteFreely request was not attempted: {method} {path}")
