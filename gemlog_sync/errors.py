"""
Exception types raised by gemlog-sync.

Feed-level errors abort a load. Entry-level errors (subclasses of
EntryExtractionError) drop a single entry unless strict parsing is enabled.
"""
from typing import Optional


class GemlogSyncError(Exception):
    """Base class for all gemlog-sync errors."""


class ConfigurationError(GemlogSyncError):
    """Raised when required settings are missing or inconsistent."""


class ContentFetchError(GemlogSyncError):
    """Raised when a gemini:// or http(s):// resource cannot be fetched."""

    def __init__(self, url: str, message: str, status: Optional[int] = None):
        self.url = url
        self.status = status
        super().__init__(f"{message} [url={url}]")


class UnrecognizedFeedType(GemlogSyncError):
    """Raised when the response meta matches neither gemtext nor Atom."""

    def __init__(self, meta: str):
        self.meta = meta
        super().__init__(f"Unrecognized Gemfeed mime type [meta={meta}]")


class InvalidFeed(GemlogSyncError):
    """Raised when the feed document is structurally unusable."""


class EntryExtractionError(GemlogSyncError):
    """Base class for errors that disqualify a single feed entry."""


class NotAFeedLink(EntryExtractionError):
    """Raised when a gemtext node is not a dated link."""


class NoPublishDate(EntryExtractionError):
    """Raised when an entry carries no publish date."""


class DateParseFailure(EntryExtractionError):
    """Raised when a publish date does not match the expected format."""

    def __init__(self, value: str, date_format: str):
        self.value = value
        self.date_format = date_format
        super().__init__(f"Could not parse date {value!r} with format {date_format!r}")


class NoPostLink(EntryExtractionError):
    """Raised when an Atom entry has no alternate link."""


class InvalidPostLink(NoPostLink):
    """Raised when an Atom entry's alternate link is not an absolute URL."""


class SlugNotComputable(EntryExtractionError):
    """Raised when no filename stem can be derived from a post path."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Slug could not be calculated: [url={path}]")


class BodyFetchFailure(GemlogSyncError):
    """Raised when an entry body cannot be fetched."""


class WriteFreelyError(GemlogSyncError):
    """Raised when the WriteFreely API returns an error response."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message if status is None else f"{message} (HTTP {status})")


class RemotePublishFailure(GemlogSyncError):
    """Raised when a post cannot be created on the remote blog."""

    def __init__(self, slug: str, cause: str):
        self.slug = slug
        self.cause = cause
        super().__init__(f"Error creating post {slug}: {cause}")
