"""
Reconciliation of a gemlog feed with the remote blog.

A sync publishes every feed entry whose slug is not yet on the remote blog.
Nothing else is compared: an entry whose title, date or body changed but
whose slug is already present is left alone. Running a sync twice with no
changes in between publishes nothing the second time.
"""
from datetime import datetime, timezone
from typing import List, Optional

import structlog
from pydantic import BaseModel, Field

from gemlog_sync.config import SanitizeConfig
from gemlog_sync.errors import GemlogSyncError, RemotePublishFailure
from gemlog_sync.models.entry import Entry, Feed
from gemlog_sync.publisher import RemotePublisher
from gemlog_sync.sanitization import sanitize_feed

logger = structlog.get_logger()

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


class PublishOutcome(BaseModel):
    """Result of one attempted publish."""
    slug: str
    title: Optional[str] = None
    post_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class SyncReport(BaseModel):
    """Summary of a sync run."""
    feed_url: str
    outcomes: List[PublishOutcome] = Field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.succeeded)

    @property
    def failures(self) -> List[PublishOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.succeeded]

    @property
    def published_slugs(self) -> List[str]:
        return [outcome.slug for outcome in self.outcomes if outcome.succeeded]


def missing_entries(feed: Feed, remote_slugs: List[str]) -> List[Entry]:
    """
    Entries of the feed whose slug is not among the remote slugs.

    Ordered oldest first by publish date, then by slug, so posts appear on
    the remote blog in the order they were written.
    """
    missing = set(feed.slugs()) - set(remote_slugs)
    entries = [entry for entry in feed.entries if entry.slug in missing]
    return sorted(entries, key=lambda entry: (entry.published or _EARLIEST, entry.slug))


async def sync_feed(
    feed: Feed,
    publisher: RemotePublisher,
    sanitize: Optional[SanitizeConfig] = None,
    continue_on_error: bool = True,
) -> SyncReport:
    """
    Publish the entries of a feed that are missing from the remote blog.

    Args:
        feed: Loaded gemlog feed
        publisher: Remote blog
        sanitize: Body sanitization applied to every entry before publishing
        continue_on_error: Record failed posts and carry on; otherwise the
            first failure aborts the sync

    Returns:
        SyncReport: One outcome per attempted entry

    Raises:
        RemotePublishFailure: On the first failure when continue_on_error is off
        WriteFreelyError: If the remote slugs cannot be listed
    """
    remote_slugs = await publisher.list_slugs()
    to_post = missing_entries(feed, remote_slugs)

    logger.info(
        "Beginning post synchronization",
        feed_url=feed.url,
        feed_entries=len(feed),
        remote_posts=len(remote_slugs),
        missing=len(to_post),
    )

    # Every entry is sanitized, not only the ones about to be posted.
    await sanitize_feed(feed, sanitize or SanitizeConfig(), continue_on_error=continue_on_error)

    report = SyncReport(feed_url=feed.url)
    for entry in to_post:
        try:
            post = await publisher.create_post(entry)
        except GemlogSyncError as e:
            if not continue_on_error:
                raise RemotePublishFailure(entry.slug, str(e)) from e
            logger.error("Error creating post", slug=entry.slug, error=str(e))
            report.outcomes.append(PublishOutcome(slug=entry.slug, title=entry.title, error=str(e)))
            continue

        logger.info("Created post", post_id=post.id, slug=entry.slug, title=post.title)
        report.outcomes.append(
            PublishOutcome(slug=entry.slug, title=post.title or entry.title, post_id=post.id)
        )

    logger.info(
        "Post synchronization complete",
        feed_url=feed.url,
        attempted=report.attempted,
        succeeded=report.succeeded,
        failed=len(report.failures),
    )
    return report
