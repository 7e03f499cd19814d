"""
Entry and Feed models for gemlog posts.

Entry metadata (title, slug, publish date, URL) is filled in when the feed is
loaded. The post body is fetched lazily from the entry URL the first time it
is needed and cached for the lifetime of the Entry.
"""
from datetime import datetime, timezone
from typing import Callable, List, Optional

import structlog
from pydantic import BaseModel, Field, PrivateAttr, field_validator

from gemlog_sync import gemtext
from gemlog_sync.errors import BodyFetchFailure, GemlogSyncError
from gemlog_sync.fetcher.base import Fetcher

logger = structlog.get_logger()


class Entry(BaseModel):
    """
    A single gemlog post.

    The body cache starts empty. The first call to ``body()`` fetches the
    entry URL; later calls return the cached text. A failed fetch is cached
    too and re-raised on every later call, so the caller has to build a new
    Entry to try again.
    """
    title: str
    slug: str
    url: str
    published: Optional[datetime] = None

    _body: Optional[str] = PrivateAttr(default=None)
    _body_error: Optional[BodyFetchFailure] = PrivateAttr(default=None)
    _fetcher: Optional[Fetcher] = PrivateAttr(default=None)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str) -> str:
        if not v:
            raise ValueError("Entry slug must not be empty")
        return v

    @field_validator("published")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Store publish dates as timezone-aware UTC."""
        if v is None:
            return v
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    def with_fetcher(self, fetcher: Fetcher) -> "Entry":
        """Attach the fetcher used to load the body and return self."""
        self._fetcher = fetcher
        return self

    def with_body(self, body: str) -> "Entry":
        """Pre-populate the body cache and return self."""
        self._body = body
        self._body_error = None
        return self

    @property
    def body_loaded(self) -> bool:
        return self._body is not None

    async def body(self) -> str:
        """
        Return the gemtext body, fetching it on first access.

        Raises:
            BodyFetchFailure: If the fetch fails now or failed previously
        """
        if self._body is not None:
            return self._body
        if self._body_error is not None:
            raise self._body_error
        if self._fetcher is None:
            self._body_error = BodyFetchFailure(f"No fetcher available for {self.url}")
            raise self._body_error

        logger.debug("Fetching entry body", slug=self.slug, url=self.url)
        try:
            # Transport retries would mask failures the caller must see.
            response = await self._fetcher.fetch(self.url, with_retry=False)
        except GemlogSyncError as e:
            self._body_error = BodyFetchFailure(f"Could not fetch body of {self.slug}: {e}")
            raise self._body_error from e

        self._body = response.body or ""
        return self._body

    async def replace_body(self, transform: Callable[[str], str]) -> str:
        """
        Rewrite the body in place.

        Forces the lazy fetch, applies ``transform`` to the current body and
        stores the result.

        Returns:
            str: The new body
        """
        current = await self.body()
        self._body = transform(current)
        return self._body

    async def body_as_ast(self) -> List[gemtext.Node]:
        """The body parsed as gemtext nodes."""
        return gemtext.parse(await self.body())

    async def body_as_markdown(self) -> str:
        """The body converted to Markdown for publishing."""
        return gemtext.to_markdown(await self.body_as_ast())


class Feed(BaseModel):
    """
    A loaded gemlog: its URL, optional title and ordered entries.
    """
    url: str
    title: Optional[str] = None
    entries: List[Entry] = Field(default_factory=list)

    def slugs(self) -> List[str]:
        """Slugs of all entries, in feed order."""
        return [entry.slug for entry in self.entries]

    def find_entry_by_slug(self, slug: str) -> Optional[Entry]:
        """Return the first entry with the given slug."""
        for entry in self.entries:
            if entry.slug == slug:
                return entry
        return None

    def __len__(self) -> int:
        return len(self.entries)
