"""
gemlog-sync

Synchronizes a Gemini gemlog (gemfeed or Atom feed) to a WriteFreely blog,
publishing every post that is not there yet.
"""

__version__ = "0.1.0"
__description__ = "Synchronize Gemlog posts from Gemini to WriteFreely"
__license__ = "MIT"

# Version info tuple
VERSION_INFO = tuple(map(int, __version__.split('.')))
