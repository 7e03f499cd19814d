"""
Base feed loading module for gemlog-sync.

This module fetches a gemlog feed, detects its format from the response
meta, and hands it to the matching FeedProcessor. It defines the base class
that the gemfeed and Atom processors implement.

The main entry point is the `load_feed` function. Loading fetches only the
feed document; entry bodies are fetched lazily later.
"""
import abc
from typing import Any, List, Optional, Set, Tuple

import structlog

from gemlog_sync.config import FeedParserSettings
from gemlog_sync.errors import (
    EntryExtractionError,
    InvalidFeed,
    UnrecognizedFeedType,
)
from gemlog_sync.fetcher.base import ContentResponse, Fetcher
from gemlog_sync.models.entry import Entry, Feed
from gemlog_sync.models.feed_type import FeedType

# Set up structured logger
logger = structlog.get_logger()


class FeedProcessor(abc.ABC):
    """
    Abstract base class for feed processors.

    A processor turns the body of a fetched feed into a Feed. Subclasses
    parse the document into a title and a list of candidate entries, and
    convert one candidate at a time into an Entry. Candidates that fail
    extraction are dropped, or abort the load in strict mode.
    """

    feed_type: FeedType = FeedType.UNKNOWN

    def __init__(self, url: str, fetcher: Fetcher, settings: FeedParserSettings):
        """
        Initialize the feed processor.

        Args:
            url: URL of the feed document
            fetcher: Fetcher attached to entries for lazy body loading
            settings: Feed parsing policy
        """
        self.url = url
        self.fetcher = fetcher
        self.settings = settings

    @abc.abstractmethod
    async def parse_feed(self, content: str) -> Tuple[Optional[str], List[Any]]:
        """
        Parse the feed document.

        Args:
            content: Feed document text

        Returns:
            Tuple[Optional[str], List[Any]]: Feed title and candidate entries

        Raises:
            InvalidFeed: If the document cannot be used as a feed
        """

    @abc.abstractmethod
    def extract_entry(self, candidate: Any, base_url: str) -> Entry:
        """
        Convert one candidate into an Entry.

        Args:
            candidate: A candidate returned by parse_feed
            base_url: URL relative post paths are resolved against

        Raises:
            EntryExtractionError: If the candidate is not a usable post
        """

    async def build_feed(self, response: ContentResponse) -> Feed:
        """
        Build a Feed from a fetched feed document.

        Args:
            response: Response for the feed URL

        Returns:
            Feed: Feed with one Entry per usable, uniquely-slugged candidate
        """
        if response.body is None:
            raise InvalidFeed(f"Not a valid {self.feed_type.value} feed: empty response")

        title, candidates = await self.parse_feed(response.body)

        entries: List[Entry] = []
        seen: Set[str] = set()
        for candidate in candidates:
            try:
                entry = self.extract_entry(candidate, response.url)
            except EntryExtractionError as e:
                if self.settings.strict_dates:
                    raise
                logger.warning(
                    "Skipping feed entry",
                    feed_url=self.url,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                continue

            if entry.slug in seen:
                logger.warning(
                    "Skipping feed entry with duplicate slug",
                    feed_url=self.url,
                    slug=entry.slug,
                )
                continue

            seen.add(entry.slug)
            entries.append(entry.with_fetcher(self.fetcher))

        logger.debug(
            "Extracted feed entries",
            feed_url=self.url,
            feed_type=self.feed_type.value,
            candidate_count=len(candidates),
            entry_count=len(entries),
        )
        return Feed(url=self.url, title=title, entries=entries)


def get_feed_processor(
    feed_type: FeedType,
    url: str,
    fetcher: Fetcher,
    settings: FeedParserSettings,
) -> FeedProcessor:
    """
    Get the feed processor for a detected feed type.

    Raises:
        ValueError: If there is no processor for the type
    """
    # Import specific processors here to avoid circular imports
    from gemlog_sync.feeds.atom import AtomFeedProcessor
    from gemlog_sync.feeds.gemfeed import GemfeedProcessor

    if feed_type == FeedType.GEMTEXT:
        return GemfeedProcessor(url, fetcher, settings)
    if feed_type == FeedType.ATOM:
        return AtomFeedProcessor(url, fetcher, settings)
    raise ValueError(f"No feed processor for {feed_type.value}")


async def load_feed(
    url: str,
    fetcher: Fetcher,
    settings: Optional[FeedParserSettings] = None,
) -> Feed:
    """
    Fetch and parse a gemlog feed.

    Args:
        url: gemini:// or http(s):// URL of a gemfeed or Atom feed
        fetcher: Fetcher used for the feed and, later, entry bodies
        settings: Feed parsing policy (defaults apply when omitted)

    Returns:
        Feed: The loaded feed

    Raises:
        ContentFetchError: If the feed cannot be fetched
        UnrecognizedFeedType: If the response meta is neither gemtext nor Atom
        InvalidFeed: If the document is not a usable feed
        EntryExtractionError: In strict mode, for the first bad entry
    """
    settings = settings or FeedParserSettings()
    logger.info("Loading feed", url=url)

    response = await fetcher.fetch(url)
    feed_type = FeedType.from_meta(response.meta)
    if feed_type == FeedType.UNKNOWN:
        raise UnrecognizedFeedType(response.meta)

    processor = get_feed_processor(feed_type, url, fetcher, settings)
    feed = await processor.build_feed(response)

    logger.info(
        "Feed loaded",
        url=url,
        feed_type=feed_type.value,
        title=feed.title,
        entry_count=len(feed),
    )
    return feed
