"""
FeedLink: the identity of one feed entry before it becomes an Entry.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict


class FeedLink(BaseModel):
    """
    Result of extracting a gemfeed link line or an Atom entry.

    ``path`` is the link target as written in the feed (relative for gemfeeds,
    absolute for Atom). ``published`` is the raw date string, parsed later
    under the configured format.
    """
    model_config = ConfigDict(frozen=True)

    path: str
    title: str
    slug: str
    published: Optional[str] = None
