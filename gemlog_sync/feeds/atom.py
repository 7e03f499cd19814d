"""
Atom feed processor for gemlog-sync.

This module parses Atom gemlog feeds with feedparser. Each <entry> must
carry an alternate link to the post's absolute URL; its publish date is
parsed under the configured date format.
"""
import asyncio
from typing import Any, List, Optional, Tuple

import feedparser
import structlog

from gemlog_sync.errors import InvalidFeed
from gemlog_sync.feeds.base import FeedProcessor
from gemlog_sync.feeds.links import atom_publish_date, link_from_atom
from gemlog_sync.models.entry import Entry
from gemlog_sync.models.feed_type import FeedType

# Set up structured logger
logger = structlog.get_logger()


class AtomFeedProcessor(FeedProcessor):
    """
    Atom feed processor implementation.
    """

    feed_type = FeedType.ATOM

    async def parse_feed(self, content: str) -> Tuple[Optional[str], List[Any]]:
        """
        Parse the Atom document into its title and entries.

        Raises:
            InvalidFeed: If feedparser finds no feed in the document
        """
        logger.debug("Parsing Atom feed content", url=self.url)

        # This is CPU-bound, so we run it in a thread pool
        loop = asyncio.get_running_loop()
        feed = await loop.run_in_executor(None, lambda: feedparser.parse(content))

        if getattr(feed, "bozo", False) and not feed.get("feed") and not feed.entries:
            raise InvalidFeed(
                f"Not a valid Atom Gemfeed: {feed.get('bozo_exception', 'unparseable document')}"
            )
        if feed.get("bozo"):
            # Log the error but continue with what we could parse
            logger.warning(
                "Atom feed parsing error",
                url=self.url,
                error=str(feed.get("bozo_exception")),
            )

        entries = list(feed.entries)
        logger.debug("Atom feed parsed successfully", url=self.url, entry_count=len(entries))
        return feed.feed.get("title"), entries

    def extract_entry(self, candidate: Any, base_url: str) -> Entry:
        link = link_from_atom(candidate)
        return Entry(
            title=link.title,
            slug=link.slug,
            url=link.path,
            published=atom_publish_date(link.published, self.settings.date_format),
        )
