from unittest.mock import AsyncMock

import pytest

from gemlog_sync import main as cli
from gemlog_sync.config import Settings
from gemlog_sync.errors import ConfigurationError, WriteFreelyError
from gemlog_sync.models import Entry, Feed, PublishedPost

GEMLOG_URL = "gemini://example.com/gemlog/"
WF_URL = "https://write.example.com"


class FakeWriteFreely:
    def __init__(self, url, alias, access_token=None, **kwargs):
        self.url = url
        self.alias = alias
        self.access_token = access_token

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def user(self):
        return self.alias

    async def list_slugs(self):
        return ["old"]

    async def create_post(self, entry):
        if entry.slug == "broken":
            raise WriteFreelyError("Bad slug", 400)
        return PublishedPost(id=f"id-{entry.slug}", slug=entry.slug, title=entry.title)


def make_feed():
    return Feed(url=GEMLOG_URL, entries=[
        Entry(title="Old", slug="old", url=GEMLOG_URL + "old.gmi").with_body("old"),
        Entry(title="New", slug="new", url=GEMLOG_URL + "new.gmi").with_body("new"),
    ])


def test_parse_args_sync():
    args = cli.parse_args([
        "-t", "t0ken", "-a", "blog", "--strict-dates",
        "sync", "--gemlog-url", GEMLOG_URL, "--wf-url", WF_URL,
        "--strip-before-marker=---", "--abort-on-error",
    ])
    assert args.command == "sync"
    assert args.wf_access_token == "t0ken"
    assert args.gemlog_url == GEMLOG_URL
    assert args.abort_on_error is True
    assert args.strip_before_marker == "---"


def test_parse_args_login_requires_credentials():
    with pytest.raises(SystemExit):
        cli.parse_args(["login", "--wf-url", WF_URL])


def test_apply_overrides():
    args = cli.parse_args([
        "-t", "t0ken", "-a", "blog", "--date-format", "%Y-%m-%d", "--log-level", "DEBUG",
        "sync", "--gemlog-url", GEMLOG_URL, "--wf-url", WF_URL + "/",
        "--strip-after-marker", "~~~", "--abort-on-error",
    ])

    settings = cli.apply_overrides(Settings(), args)

    assert settings.writefreely.url == WF_URL
    assert settings.writefreely.alias == "blog"
    assert settings.writefreely.access_token.get_secret_value() == "t0ken"
    assert settings.parser.date_format == "%Y-%m-%d"
    assert settings.sanitize.strip_after_marker == "~~~"
    assert settings.logging.level.value == "DEBUG"
    assert settings.continue_on_error is False


@pytest.mark.asyncio
async def test_run_sync_requires_token():
    args = cli.parse_args(["-a", "blog", "sync", "--gemlog-url", GEMLOG_URL, "--wf-url", WF_URL])
    settings = cli.apply_overrides(Settings(), args)

    with pytest.raises(ConfigurationError):
        await cli.run_sync(settings, args)


@pytest.mark.asyncio
async def test_run_sync_prints_report(monkeypatch, capsys):
    monkeypatch.setattr(cli, "WriteFreelyClient", FakeWriteFreely)
    load_feed = AsyncMock(return_value=make_feed())
    monkeypatch.setattr(cli, "load_feed", load_feed)
    args = cli.parse_args(["-t", "t0ken", "-a", "blog", "sync", "--gemlog-url", GEMLOG_URL, "--wf-url", WF_URL])

    exit_code = await cli.run_sync(cli.apply_overrides(Settings(), args), args)

    assert exit_code == 0
    assert load_feed.await_args.args[0] == GEMLOG_URL
    output = capsys.readouterr().out.splitlines()
    assert "Post synchronization complete [posts synced=1, created=1, failed=0]" in output
    assert "Created post: id-new [title=New]" in output


@pytest.mark.asyncio
async def test_run_sync_reports_failures(monkeypatch, capsys):
    feed = make_feed()
    feed.entries.append(Entry(title="Broken", slug="broken", url=GEMLOG_URL + "broken.gmi").with_body("x"))
    monkeypatch.setattr(cli, "WriteFreelyClient", FakeWriteFreely)
    monkeypatch.setattr(cli, "load_feed", AsyncMock(return_value=feed))
    args = cli.parse_args(["-t", "t0ken", "-a", "blog", "sync", "--gemlog-url", GEMLOG_URL, "--wf-url", WF_URL])

    exit_code = await cli.run_sync(cli.apply_overrides(Settings(), args), args)

    assert exit_code == 1
    output = capsys.readouterr().out
    assert "failed=1" in output
    assert "Error creating post: broken: Bad slug (HTTP 400)" in output


def test_main_without_command():
    assert cli.main([]) == 0


def test_main_maps_errors_to_exit_codes(monkeypatch):
    monkeypatch.setitem(cli.COMMANDS, "logout", AsyncMock(side_effect=WriteFreelyError("Unauthorized", 401)))
    assert cli.main(["-t", "t0ken", "-a", "blog", "logout", "--wf-url", WF_URL]) == 1

    monkeypatch.setitem(cli.COMMANDS, "logout", AsyncMock(side_effect=KeyboardInterrupt()))
    assert cli.main(["-t", "t0ken", "-a", "blog", "logout", "--wf-url", WF_URL]) == 130

    monkeypatch.setitem(cli.COMMANDS, "logout", AsyncMock(return_value=0))
    assert cli.main(["-t", "t0ken", "-a", "blog", "logout", "--wf-url", WF_URL]) == 0


def test_main_rejects_invalid_configuration():
    assert cli.main(["sync", "--gemlog-url", GEMLOG_URL, "--wf-url", "ftp://write.example.com"]) == 2
