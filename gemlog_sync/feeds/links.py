"""
Extraction of post identity from feed entries.

A gemfeed lists posts as gemtext link lines whose text starts with a
``YYYY-MM-DD`` date. An Atom feed lists them as <entry> elements with an
``alternate`` link. In both cases the slug is the filename stem of the post
path, which is what ties a gemlog post to its copy on the remote blog.
"""
import re
from datetime import datetime, time, timezone
from pathlib import PurePosixPath
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from dateutil import parser as date_parser

from gemlog_sync import gemtext
from gemlog_sync.errors import (
    DateParseFailure,
    InvalidPostLink,
    NoPostLink,
    NoPublishDate,
    NotAFeedLink,
    SlugNotComputable,
)
from gemlog_sync.fetcher.base import is_absolute_url
from gemlog_sync.models.link import FeedLink

GEMFEED_DATE_PATTERN = re.compile(r"\d\d\d\d-\d\d-\d\d")
GEMFEED_DATE_FORMAT = "%Y-%m-%d"
# Gemfeeds only carry a date; posts are taken to be published at noon UTC.
GEMFEED_PUBLISH_TIME = time(12, 0, 0)
ALTERNATE_REL = "alternate"


def is_gemfeed_post_link(node: gemtext.Node) -> bool:
    """True for link nodes whose text starts with a YYYY-MM-DD date."""
    return (
        isinstance(node, gemtext.LinkNode)
        and node.text is not None
        and GEMFEED_DATE_PATTERN.match(node.text) is not None
    )


def slug_from_path(path: str) -> str:
    """
    Derive a slug from the filename stem of a post path or URL.

    ``post1.gmi``, ``./post1`` and ``gemini://host/posts/post1.gmi`` all give
    ``post1``. Only one extension is removed.

    Raises:
        SlugNotComputable: If the path has no filename component
    """
    filename = urlparse(path).path.rsplit("/", 1)[-1]
    if filename in ("", ".", ".."):
        raise SlugNotComputable(path)

    stem = PurePosixPath(filename).stem
    if not stem:
        raise SlugNotComputable(path)
    return stem


def link_from_gemtext(node: gemtext.Node, trim_title: bool = True) -> FeedLink:
    """
    Extract a FeedLink from a gemfeed link line.

    Args:
        node: Parsed gemtext node
        trim_title: Strip whitespace left over after removing the date

    Returns:
        FeedLink: Path, title, slug and raw date of the post

    Raises:
        NotAFeedLink: If the node is not a link with dated text
        SlugNotComputable: If the link target has no filename
    """
    if not isinstance(node, gemtext.LinkNode) or not node.text:
        raise NotAFeedLink(f"Not a Gemfeed link: {node!r}")

    match = GEMFEED_DATE_PATTERN.search(node.text)
    if match is None:
        raise NotAFeedLink(f"Not a Gemfeed link: {node.text!r}")

    published = match.group(0)
    title = node.text
    if title.startswith(published):
        title = title[len(published):]
        if trim_title:
            title = title.strip()

    return FeedLink(
        path=node.to,
        title=title,
        slug=slug_from_path(node.to),
        published=published,
    )


def _alternate_href(entry: Dict[str, Any]) -> Optional[str]:
    for link in entry.get("links") or []:
        if link.get("rel", ALTERNATE_REL) == ALTERNATE_REL and link.get("href"):
            return link["href"]
    return None


def _structured_date(raw: Optional[str]) -> Optional[str]:
    """
    Normalize an Atom timestamp to ``YYYY-MM-DD HH:MM:SS+HH:MM``.

    Unparseable values are passed through unchanged for the caller to reject
    under its configured format.
    """
    if raw is None:
        return None
    try:
        return str(date_parser.isoparse(raw))
    except (ValueError, OverflowError):
        return raw


def link_from_atom(entry: Dict[str, Any]) -> FeedLink:
    """
    Extract a FeedLink from a feedparser Atom entry.

    Args:
        entry: feedparser entry (a dict subclass)

    Returns:
        FeedLink: Absolute post URL, verbatim title, slug and date string

    Raises:
        NoPostLink: If the entry has no alternate link
        InvalidPostLink: If the alternate link is not an absolute URL
        SlugNotComputable: If the URL has no filename segment
    """
    href = _alternate_href(entry)
    if href is None:
        raise NoPostLink("No post link present")
    if not is_absolute_url(href):
        raise InvalidPostLink(f"Post link is not an absolute URL: {href}")

    return FeedLink(
        path=href,
        title=entry.get("title", ""),
        slug=slug_from_path(href),
        published=_structured_date(entry.get("published")),
    )


def gemfeed_publish_date(raw: Optional[str]) -> datetime:
    """Parse a gemfeed ``YYYY-MM-DD`` date as noon UTC."""
    if raw is None:
        raise NoPublishDate("No publish date found")
    try:
        day = datetime.strptime(raw, GEMFEED_DATE_FORMAT).date()
    except ValueError as e:
        raise DateParseFailure(raw, GEMFEED_DATE_FORMAT) from e
    return datetime.combine(day, GEMFEED_PUBLISH_TIME, tzinfo=timezone.utc)


def atom_publish_date(raw: Optional[str], date_format: str) -> datetime:
    """Parse an Atom date string under ``date_format`` and convert to UTC."""
    if raw is None:
        raise NoPublishDate("No publish date found")
    try:
        parsed = datetime.strptime(raw, date_format)
    except ValueError as e:
        raise DateParseFailure(raw, date_format) from e
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
