import json
from datetime import datetime, timezone

import httpx
import pytest

from gemlog_sync.errors import ConfigurationError, WriteFreelyError
from gemlog_sync.models import Entry
from gemlog_sync.publisher import WriteFreelyClient

WF_URL = "https://write.example.com/"


def make_client(handler, access_token="t0ken", alias="blog"):
    return WriteFreelyClient(
        WF_URL,
        alias,
        access_token=access_token,
        retry_attempts=1,
        transport=httpx.MockTransport(handler),
    )


def posts_page(*slugs):
    return {"code": 200, "data": {"alias": "blog", "posts": [{"id": f"id-{slug}", "slug": slug} for slug in slugs]}}


@pytest.mark.asyncio
async def test_login_sets_token():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"code": 200, "data": {"access_token": "new-token", "user": {"username": "alice"}}})

    client = await WriteFreelyClient.login(
        WF_URL, "alice", "secret", transport=httpx.MockTransport(handler)
    )
    async with client:
        assert client.access_token == "new-token"
        assert client.alias == "alice"

    assert requests[0].method == "POST"
    assert requests[0].url.path == "/api/auth/login"
    assert json.loads(requests[0].content) == {"alias": "alice", "pass": "secret"}
    assert "Authorization" not in requests[0].headers


@pytest.mark.asyncio
async def test_login_failure():
    def handler(request):
        return httpx.Response(401, json={"code": 401, "error_msg": "Incorrect password."})

    with pytest.raises(WriteFreelyError, match="Incorrect password") as excinfo:
        await WriteFreelyClient.login(WF_URL, "alice", "wrong", transport=httpx.MockTransport(handler))
    assert excinfo.value.status == 401


@pytest.mark.asyncio
async def test_logout_sends_token():
    seen = []

    def handler(request):
        seen.append((request.method, request.url.path, request.headers.get("Authorization")))
        return httpx.Response(204)

    async with make_client(handler) as client:
        await client.logout()
        assert client.access_token is None

    assert seen == [("DELETE", "/api/auth/me", "Token t0ken")]


@pytest.mark.asyncio
async def test_user():
    def handler(request):
        assert request.url.path == "/api/me"
        return httpx.Response(200, json={"code": 200, "data": {"username": "alice"}})

    async with make_client(handler) as client:
        assert await client.user() == "alice"


@pytest.mark.asyncio
async def test_list_slugs_pages_until_no_new_posts():
    pages = {
        "1": posts_page("a", "b"),
        "2": posts_page("c"),
        "3": posts_page(),
    }

    def handler(request):
        assert request.url.path == "/api/collections/blog/posts"
        return httpx.Response(200, json=pages[request.url.params["page"]])

    async with make_client(handler) as client:
        assert await client.list_slugs() == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_list_slugs_stops_when_server_ignores_paging():
    calls = []

    def handler(request):
        calls.append(request.url.params["page"])
        return httpx.Response(200, json=posts_page("a", "b"))

    async with make_client(handler) as client:
        assert await client.list_slugs() == ["a", "b"]
    assert calls == ["1", "2"]


@pytest.mark.asyncio
async def test_create_post():
    bodies = []

    def handler(request):
        bodies.append(json.loads(request.content))
        assert request.url.path == "/api/collections/blog/posts"
        return httpx.Response(201, json={"code": 201, "data": {"id": "xyz", "slug": "post1", "title": "Post 1"}})

    entry = Entry(
        title="Post 1",
        slug="post1",
        url="gemini://example.com/gemlog/post1.gmi",
        published=datetime(2023, 2, 1, 12, tzinfo=timezone.utc),
    ).with_body("# Post 1\nHello\n")

    async with make_client(handler) as client:
        post = await client.create_post(entry)

    assert post.id == "xyz"
    assert bodies == [{
        "slug": "post1",
        "title": "Post 1",
        "body": "# Post 1\nHello\n",
        "created": "2023-02-01T12:00:00Z",
    }]


@pytest.mark.asyncio
async def test_create_post_error():
    def handler(request):
        return httpx.Response(400, json={"code": 400, "error_msg": "Bad slug"})

    entry = Entry(title="Post 1", slug="post1", url="gemini://example.com/post1.gmi").with_body("x")
    async with make_client(handler) as client:
        with pytest.raises(WriteFreelyError, match="Bad slug"):
            await client.create_post(entry)


@pytest.mark.asyncio
async def test_transport_error_is_wrapped():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with make_client(handler) as client:
        with pytest.raises(WriteFreelyError):
            await client.user()


@pytest.mark.asyncio
async def test_authenticated_request_requires_token():
    def handler(request):
        raise AssertionError("request should not be sent")

    async with make_client(handler, access_token=None) as client:
        with pytest.raises(ConfigurationError):
            await client.list_slugs()


def test_alias_is_required():
    with pytest.raises(ConfigurationError):
        make_client(lambda request: httpx.Response(200), alias="")
