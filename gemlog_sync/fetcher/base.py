"""
Common types for content fetching.

Both transports (Gemini and HTTP) return a ContentResponse: the resolved URL,
a status, a meta/content-type string used to detect the feed format, and the
decoded body if the response carried one.
"""
import codecs
from typing import Optional, Protocol
from urllib.parse import urljoin, urlparse

from pydantic import BaseModel

GEMINI_SCHEME = "gemini"
# urljoin only resolves relative references for schemes it knows about, so
# gemini:// bases are joined as if they were http:// and converted back.
_JOIN_SCHEME = "http"


class ContentResponse(BaseModel):
    """A successful response from either transport."""
    url: str
    status: int
    meta: str
    body: Optional[str] = None


class Fetcher(Protocol):
    """Protocol defining the interface for content fetchers."""

    async def fetch(self, url: str, with_retry: bool = True) -> ContentResponse:
        """Fetch a resource, raising ContentFetchError on failure."""
        ...


def join_url(base: str, reference: str) -> str:
    """Resolve a possibly relative reference against a base URL."""
    parsed = urlparse(base)
    if parsed.scheme != GEMINI_SCHEME:
        return urljoin(base, reference)
    if urlparse(reference).scheme:
        return reference

    joined = urljoin(parsed._replace(scheme=_JOIN_SCHEME).geturl(), reference)
    return GEMINI_SCHEME + joined[len(_JOIN_SCHEME):]


def is_absolute_url(url: str) -> bool:
    """Check that a URL carries both a scheme and a network location."""
    parsed = urlparse(url)
    return bool(parsed.scheme and parsed.netloc)


def charset_from_meta(meta: str, default: str = "utf-8") -> str:
    """
    Extract the charset parameter of a MIME type.

    Falls back to ``default`` when the parameter is missing or names a codec
    Python does not know.
    """
    for param in meta.split(";")[1:]:
        key, _, value = param.strip().partition("=")
        charset = value.strip().strip('"')
        if key.strip().lower() != "charset" or not charset:
            continue
        try:
            codecs.lookup(charset)
        except LookupError:
            return default
        return charset
    return default
