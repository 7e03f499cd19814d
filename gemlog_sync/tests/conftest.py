from typing import Dict, List, Union

import pytest

from gemlog_sync.errors import ContentFetchError
from gemlog_sync.fetcher.base import ContentResponse

GEMLOG_URL = "gemini://example.com/gemlog/"

GEMFEED = """# My Gemlog

Welcome to my gemlog.
=> /about.gmi About me
=> post2.gmi 2023-03-05 Post 2
=> post1.gmi 2023-02-01 Post 1
"""

ATOM_FEED = """<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>My Atom Gemlog</title>
  <id>gemini://example.com/gemlog/</id>
  <updated>2023-03-05T12:00:00Z</updated>
  <entry>
    <title>Post 2</title>
    <link rel="alternate" href="gemini://example.com/gemlog/post2.gmi"/>
    <id>gemini://example.com/gemlog/post2.gmi</id>
    <published>2023-03-05T09:00:00+01:00</published>
    <updated>2023-03-05T09:00:00+01:00</updated>
  </entry>
  <entry>
    <title>Post 1</title>
    <link rel="alternate" href="gemini://example.com/gemlog/post1.gmi"/>
    <id>gemini://example.com/gemlog/post1.gmi</id>
    <published>2023-02-01T12:00:00Z</published>
    <updated>2023-02-01T12:00:00Z</updated>
  </entry>
</feed>
"""


class FakeFetcher:
    """In-memory Fetcher that serves canned responses and counts requests."""

    def __init__(self, responses: Dict[str, Union[ContentResponse, Exception]]):
        self.responses = responses
        self.requests: List[str] = []

    async def fetch(self, url: str, with_retry: bool = True) -> ContentResponse:
        self.requests.append(url)
        response = self.responses.get(url)
        if response is None:
            raise ContentFetchError(url, "Gemini request failed: not found", 51)
        if isinstance(response, Exception):
            raise response
        return response


def gemini_response(url: str, body: str, meta: str = "text/gemini") -> ContentResponse:
    return ContentResponse(url=url, status=20, meta=meta, body=body)


@pytest.fixture
def gemlog_fetcher():
    return FakeFetcher({
        GEMLOG_URL: gemini_response(GEMLOG_URL, GEMFEED),
        GEMLOG_URL + "post1.gmi": gemini_response(
            GEMLOG_URL + "post1.gmi", "# Post 1\nHeader\n---\nFirst post body.\n"
        ),
        GEMLOG_URL + "post2.gmi": gemini_response(
            GEMLOG_URL + "post2.gmi", "# Post 2\nHeader\n---\nSecond post body.\n"
        ),
    })
