"""
Remote publishing for gemlog-sync.

A RemotePublisher knows which post slugs already exist on the remote blog and
can create new posts from feed entries. WriteFreelyClient is the
implementation used by the command line.
"""
from typing import List, Protocol

from gemlog_sync.models.entry import Entry
from gemlog_sync.models.post import PublishedPost
from gemlog_sync.publisher.writefreely import WriteFreelyClient


class RemotePublisher(Protocol):
    """Protocol defining the interface for remote blogs."""

    async def list_slugs(self) -> List[str]:
        """Slugs of all posts on the remote blog."""
        ...

    async def create_post(self, entry: Entry) -> PublishedPost:
        """Create a post from an entry."""
        ...


__all__ = [
    "RemotePublisher",
    "WriteFreelyClient",
]
