"""
Body sanitization rules applied before posts are published.

Gemlog posts often carry navigation or signature boilerplate around the
actual content. A marker string lets the author cut it off: everything up to
and including the first ``strip_before`` marker is dropped, and everything
from the last ``strip_after`` marker on is dropped. Both rules force the
entry body to be fetched.
"""
from typing import Dict

import structlog

from gemlog_sync.config import SanitizeConfig
from gemlog_sync.errors import BodyFetchFailure
from gemlog_sync.models.entry import Entry, Feed

logger = structlog.get_logger()


def text_after(body: str, marker: str) -> str:
    """Everything strictly after the first ``marker``, or ``body`` unchanged."""
    index = body.find(marker)
    if index == -1:
        return body
    return body[index + len(marker):]


def text_before(body: str, marker: str) -> str:
    """Everything strictly before the last ``marker``, or ``body`` unchanged."""
    index = body.rfind(marker)
    if index == -1:
        return body
    return body[:index]


async def strip_before(entry: Entry, marker: str) -> None:
    """Remove all text up to and including the first occurrence of marker."""
    await entry.replace_body(lambda body: text_after(body, marker))


async def strip_after(entry: Entry, marker: str) -> None:
    """Remove all text from the last occurrence of marker onwards."""
    await entry.replace_body(lambda body: text_before(body, marker))


async def sanitize_entry(entry: Entry, config: SanitizeConfig) -> None:
    if config.strip_before_marker:
        await strip_before(entry, config.strip_before_marker)
    if config.strip_after_marker:
        await strip_after(entry, config.strip_after_marker)


async def sanitize_feed(
    feed: Feed,
    config: SanitizeConfig,
    continue_on_error: bool = False,
) -> Dict[str, BodyFetchFailure]:
    """
    Apply the configured rules to every entry in the feed.

    Entries are processed one at a time, in feed order.

    Args:
        feed: Feed whose entry bodies are rewritten in place
        config: Sanitization markers
        continue_on_error: Keep going when a body cannot be fetched

    Returns:
        Dict[str, BodyFetchFailure]: Body fetch failures keyed by slug

    Raises:
        BodyFetchFailure: On the first failure unless continue_on_error is set
    """
    failures: Dict[str, BodyFetchFailure] = {}
    if not config.enabled:
        return failures

    for entry in feed.entries:
        try:
            await sanitize_entry(entry, config)
        except BodyFetchFailure as e:
            if not continue_on_error:
                raise
            logger.warning("Could not sanitize entry", slug=entry.slug, error=str(e))
            failures[entry.slug] = e

    logger.debug(
        "Sanitized feed entries",
        feed_url=feed.url,
        entry_count=len(feed),
        failure_count=len(failures),
        strip_before=config.strip_before_marker,
        strip_after=config.strip_after_marker,
    )
    return failures
