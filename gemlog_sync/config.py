"""
Configuration management for gemlog-sync.

This module uses pydantic-settings to manage all configuration aspects including:
- Feed parsing policy (date format, strictness, title handling)
- Content fetching (timeouts, retries)
- WriteFreely connection settings
- Logging

Configuration is loaded from environment variables (prefixed with
``GEMLOG_SYNC_``) or a .env file. Command line flags override loaded values.
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogLevel(str, Enum):
    """Log levels supported by the application."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class FeedParserSettings(BaseModel):
    """
    Settings controlling how a gemlog feed is parsed.

    The source format has shifted over time, so each policy that used to be
    implicit is an explicit flag here.
    """
    # YYYY-MM-DD HH:MM:SS+HH:MM, the string form of an Atom timestamp.
    date_format: str = "%Y-%m-%d %H:%M:%S%z"

    strict_dates: bool = False
    """If True, the first entry that fails extraction (bad or missing date,
    no post link, no slug) aborts the whole load. Otherwise it is dropped."""

    require_title: bool = True
    """Gemfeeds must carry a level-1 heading naming the feed."""

    trim_titles: bool = True
    """Strip surrounding whitespace from gemfeed link titles."""

    @field_validator("date_format")
    @classmethod
    def validate_date_format(cls, v: str) -> str:
        """Reject formats that do not contain any directive."""
        if "%" not in v:
            raise ValueError(f"Date format has no directives: {v!r}")
        # strftime surfaces malformed directives on some platforms only.
        datetime(2000, 1, 1).strftime(v)
        return v


class SanitizeConfig(BaseModel):
    """Optional markers used to trim each post body before publishing."""
    strip_before_marker: Optional[str] = None
    strip_after_marker: Optional[str] = None

    @field_validator("strip_before_marker", "strip_after_marker")
    @classmethod
    def reject_empty_marker(cls, v: Optional[str]) -> Optional[str]:
        if v == "":
            raise ValueError("Sanitization markers must not be empty")
        return v

    @property
    def enabled(self) -> bool:
        return bool(self.strip_before_marker or self.strip_after_marker)


class FetchConfig(BaseModel):
    """Configuration for fetching gemlog content."""
    timeout_seconds: float = 30.0
    retry_attempts: int = 3
    retry_min_wait: float = 1.0
    retry_max_wait: float = 10.0
    max_redirects: int = 5
    user_agent: str = "gemlog-sync/0.1.0"

    @field_validator("retry_attempts", "max_redirects")
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Value must not be negative")
        return v


class WriteFreelyConfig(BaseModel):
    """Connection settings for the WriteFreely instance."""
    url: Optional[str] = None
    alias: Optional[str] = None
    access_token: Optional[SecretStr] = None
    timeout_seconds: float = 30.0

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate the instance URL format."""
        if v is None:
            return v
        parsed = urlparse(v)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Invalid WriteFreely URL: {v}")
        return v.rstrip("/")


class LoggingConfig(BaseModel):
    """Configuration for logging."""
    level: LogLevel = LogLevel.INFO
    structured: bool = False


class Settings(BaseSettings):
    """Main settings class for gemlog-sync."""
    app_name: str = "gemlog-sync"
    version: str = "0.1.0"

    parser: FeedParserSettings = Field(default_factory=FeedParserSettings)
    sanitize: SanitizeConfig = Field(default_factory=SanitizeConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    writefreely: WriteFreelyConfig = Field(default_factory=WriteFreelyConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Keep publishing after an individual post fails.
    continue_on_error: bool = True

    model_config = SettingsConfigDict(
        env_prefix="GEMLOG_SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )


def load_settings() -> Settings:
    """Load settings from environment variables and .env file."""
    return Settings()
