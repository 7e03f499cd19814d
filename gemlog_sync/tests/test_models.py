from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from conftest import GEMLOG_URL, FakeFetcher, gemini_response
from gemlog_sync.errors import BodyFetchFailure, ContentFetchError
from gemlog_sync.models import Entry, Feed, PostCreateRequest, PublishedPost

POST_URL = GEMLOG_URL + "post1.gmi"


def make_entry(**kwargs):
    values = {"title": "Post 1", "slug": "post1", "url": POST_URL}
    values.update(kwargs)
    return Entry(**values)


def test_entry_requires_slug():
    with pytest.raises(ValidationError):
        make_entry(slug="")


def test_entry_published_is_utc():
    local = datetime(2023, 2, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
    assert make_entry(published=local).published == datetime(2023, 2, 1, 12, tzinfo=timezone.utc)
    naive = datetime(2023, 2, 1, 12, 0)
    assert make_entry(published=naive).published.tzinfo == timezone.utc


@pytest.mark.asyncio
async def test_body_is_fetched_once():
    fetcher = FakeFetcher({POST_URL: gemini_response(POST_URL, "# Post 1\nHello\n")})
    entry = make_entry().with_fetcher(fetcher)

    assert await entry.body() == "# Post 1\nHello\n"
    assert await entry.body() == "# Post 1\nHello\n"
    assert fetcher.requests == [POST_URL]
    assert entry.body_loaded


@pytest.mark.asyncio
async def test_body_fetch_failure_is_cached():
    fetcher = FakeFetcher({POST_URL: ContentFetchError(POST_URL, "Gemini request failed", 40)})
    entry = make_entry().with_fetcher(fetcher)

    with pytest.raises(BodyFetchFailure):
        await entry.body()
    # Fixing the source does not help; the failure sticks to this entry.
    fetcher.responses[POST_URL] = gemini_response(POST_URL, "recovered")
    with pytest.raises(BodyFetchFailure):
        await entry.body()
    assert fetcher.requests == [POST_URL]


@pytest.mark.asyncio
async def test_body_without_fetcher_fails():
    with pytest.raises(BodyFetchFailure):
        await make_entry().body()


@pytest.mark.asyncio
async def test_empty_body():
    fetcher = FakeFetcher({POST_URL: gemini_response(POST_URL, None)})
    assert await make_entry().with_fetcher(fetcher).body() == ""


@pytest.mark.asyncio
async def test_replace_body_and_markdown():
    entry = make_entry().with_body("# Post 1\n=> a.gmi A\n=> b.gmi B\n")

    assert await entry.replace_body(str.upper) == "# POST 1\n=> A.GMI A\n=> B.GMI B\n"
    assert await entry.body_as_markdown() == "# POST 1\n[A](A.GMI)\n\n[B](B.GMI)\n"
    assert len(await entry.body_as_ast()) == 3


def test_feed_helpers():
    feed = Feed(
        url=GEMLOG_URL,
        entries=[make_entry(), make_entry(slug="post2", title="Post 2")],
    )
    assert feed.slugs() == ["post1", "post2"]
    assert feed.find_entry_by_slug("post2").title == "Post 2"
    assert feed.find_entry_by_slug("missing") is None
    assert len(feed) == 2


@pytest.mark.asyncio
async def test_post_create_request_from_entry():
    entry = make_entry(
        published=datetime(2023, 2, 1, 12, tzinfo=timezone.utc)
    ).with_body("# Post 1\nSome <b>text</b>\n")

    request = await PostCreateRequest.from_entry(entry)

    assert request.to_payload() == {
        "slug": "post1",
        "title": "Post 1",
        "body": "# Post 1\nSome &lt;b&gt;text&lt;/b&gt;\n",
        "created": "2023-02-01T12:00:00Z",
    }


def test_post_create_payload_without_date():
    request = PostCreateRequest(slug="post1", title="Post 1", body="Hello\n")
    assert "created" not in request.to_payload()


def test_published_post_ignores_extra_fields():
    post = PublishedPost.model_validate({"id": "abc123", "slug": "post1", "views": 0})
    assert post.id == "abc123"
    assert post.slug == "post1"
