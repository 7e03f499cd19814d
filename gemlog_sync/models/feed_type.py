"""
FeedType enum for classifying gemlog feed documents.

The only signal available is the free-text MIME type that comes back with
the feed (the Gemini meta line or the HTTP content-type header).
"""
from enum import Enum


class FeedType(str, Enum):
    """
    Formats a gemlog feed can be published in.
    """
    GEMTEXT = "gemtext"
    ATOM = "atom"
    UNKNOWN = "unknown"

    @classmethod
    def from_meta(cls, meta: str) -> "FeedType":
        """
        Classify a response by its MIME type.

        Matching is by substring, first match wins: Atom types are checked
        before gemtext.

        Args:
            meta: Gemini meta string or HTTP content-type header

        Returns:
            The matching FeedType, or UNKNOWN if no match
        """
        if any(mime in meta for mime in ATOM_MIME_TYPES):
            return cls.ATOM
        if GEMTEXT_MIME_TYPE in meta:
            return cls.GEMTEXT
        return cls.UNKNOWN


ATOM_MIME_TYPES = ("text/xml", "application/atom+xml")
GEMTEXT_MIME_TYPE = "text/gemini"
