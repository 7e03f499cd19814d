"""
Gemfeed processor for gemlog-sync.

A gemfeed is a plain gemtext page: a level-1 heading naming the gemlog and
one link line per post, its text starting with the publish date::

    # My Gemlog
    => post2.gmi 2023-03-05 Post 2
    => post1.gmi 2023-02-01 Post 1
"""
from typing import Any, List, Optional, Tuple

import structlog

from gemlog_sync import gemtext
from gemlog_sync.errors import InvalidFeed
from gemlog_sync.feeds.base import FeedProcessor
from gemlog_sync.feeds.links import (
    gemfeed_publish_date,
    is_gemfeed_post_link,
    link_from_gemtext,
)
from gemlog_sync.fetcher.base import join_url
from gemlog_sync.models.entry import Entry
from gemlog_sync.models.feed_type import FeedType

logger = structlog.get_logger()


def find_post_links(nodes: List[gemtext.Node]) -> List[gemtext.LinkNode]:
    """Links whose text starts with a date; every other node is ignored."""
    return [node for node in nodes if is_gemfeed_post_link(node)]


class GemfeedProcessor(FeedProcessor):
    """
    Gemfeed processor implementation.
    """

    feed_type = FeedType.GEMTEXT

    async def parse_feed(self, content: str) -> Tuple[Optional[str], List[Any]]:
        nodes = gemtext.parse(content)
        title = gemtext.find_title(nodes)
        if title is None and self.settings.require_title:
            raise InvalidFeed("Not a valid Gemfeed: missing title")

        links = find_post_links(nodes)
        logger.debug("Gemfeed parsed", url=self.url, node_count=len(nodes), link_count=len(links))
        return title, links

    def extract_entry(self, candidate: Any, base_url: str) -> Entry:
        link = link_from_gemtext(candidate, trim_title=self.settings.trim_titles)
        return Entry(
            title=link.title,
            slug=link.slug,
            url=join_url(base_url, link.path),
            published=gemfeed_publish_date(link.published),
        )
