"""
Models for posts on the remote blog.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from gemlog_sync.models.entry import Entry

WRITEFREELY_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class PostCreateRequest(BaseModel):
    """Payload for creating a post in a WriteFreely collection."""
    slug: str
    title: str
    body: str
    created: Optional[datetime] = None

    @field_validator("created")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @classmethod
    async def from_entry(cls, entry: Entry) -> "PostCreateRequest":
        """Build a request from an entry, converting its body to Markdown."""
        return cls(
            slug=entry.slug,
            title=entry.title,
            body=await entry.body_as_markdown(),
            created=entry.published,
        )

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "slug": self.slug,
            "title": self.title,
            "body": self.body,
        }
        if self.created is not None:
            created = self.created.astimezone(timezone.utc)
            payload["created"] = created.strftime(WRITEFREELY_TIMESTAMP_FORMAT)
        return payload


class PublishedPost(BaseModel):
    """A post as returned by the remote blog."""
    model_config = ConfigDict(extra="ignore")

    id: str
    slug: Optional[str] = None
    title: Optional[str] = None
