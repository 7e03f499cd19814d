"""
Central re-exports for the gemlog-sync data models.

This module exposes the canonical models from their dedicated modules to
provide stable import paths as "gemlog_sync.models" without redefining types.
"""
from .entry import Entry, Feed
from .feed_type import FeedType
from .link import FeedLink
from .post import PostCreateRequest, PublishedPost

__all__ = [
    "Entry",
    "Feed",
    "FeedLink",
    "FeedType",
    "PostCreateRequest",
    "PublishedPost",
]
