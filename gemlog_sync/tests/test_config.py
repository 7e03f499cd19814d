import pytest
from pydantic import ValidationError

from gemlog_sync.config import (
    FeedParserSettings,
    FetchConfig,
    LogLevel,
    Settings,
    WriteFreelyConfig,
)


def test_defaults():
    settings = Settings()
    assert settings.parser.date_format == "%Y-%m-%d %H:%M:%S%z"
    assert settings.parser.strict_dates is False
    assert settings.parser.require_title is True
    assert settings.continue_on_error is True
    assert settings.sanitize.enabled is False
    assert settings.logging.level == LogLevel.INFO


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("GEMLOG_SYNC_WRITEFREELY__URL", "https://write.example.com/")
    monkeypatch.setenv("GEMLOG_SYNC_WRITEFREELY__ACCESS_TOKEN", "t0ken")
    monkeypatch.setenv("GEMLOG_SYNC_PARSER__STRICT_DATES", "true")
    monkeypatch.setenv("GEMLOG_SYNC_CONTINUE_ON_ERROR", "false")

    settings = Settings()

    assert settings.writefreely.url == "https://write.example.com"
    assert settings.writefreely.access_token.get_secret_value() == "t0ken"
    assert settings.parser.strict_dates is True
    assert settings.continue_on_error is False


def test_date_format_validation():
    with pytest.raises(ValidationError):
        FeedParserSettings(date_format="YYYY-MM-DD")


def test_writefreely_url_validation():
    with pytest.raises(ValidationError):
        WriteFreelyConfig(url="gemini://write.example.com")
    with pytest.raises(ValidationError):
        WriteFreelyConfig(url="write.example.com")


def test_fetch_config_rejects_negative_values():
    with pytest.raises(ValidationError):
        FetchConfig(retry_attempts=-1)
