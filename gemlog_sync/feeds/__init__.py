"""
Feed processing package for gemlog-sync.

This package loads a gemlog feed, published either as a gemfeed (gemtext
index page) or as an Atom document, and converts it into a Feed of Entry
objects.

The main entry point is the `load_feed` function.
"""
from gemlog_sync.feeds.atom import AtomFeedProcessor
from gemlog_sync.feeds.base import FeedProcessor, get_feed_processor, load_feed
from gemlog_sync.feeds.gemfeed import GemfeedProcessor
from gemlog_sync.feeds.links import link_from_atom, link_from_gemtext, slug_from_path

__all__ = [
    "load_feed",
    "get_feed_processor",
    "FeedProcessor",
    "GemfeedProcessor",
    "AtomFeedProcessor",
    "link_from_atom",
    "link_from_gemtext",
    "slug_from_path",
]
