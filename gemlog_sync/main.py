#!/usr/bin/env python3
"""
gemlog-sync - Entry Point

This module provides the command line interface. It loads settings, applies
command line overrides, sets up logging and runs one of the subcommands:

- login: exchange a WriteFreely username and password for an access token
- logout: invalidate an access token
- sync: publish gemlog posts that are missing from the WriteFreely blog
"""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import structlog
from pydantic import SecretStr, ValidationError

from gemlog_sync.config import LogLevel, Settings, load_settings
from gemlog_sync.errors import ConfigurationError, GemlogSyncError
from gemlog_sync.feeds import load_feed
from gemlog_sync.fetcher import ContentFetcher
from gemlog_sync.publisher import WriteFreelyClient
from gemlog_sync.sync import SyncReport, sync_feed

# Set up structured logger
logger = structlog.get_logger()


def setup_logging(settings: Settings) -> None:
    """Set up structured logging based on configuration."""
    log_level = settings.logging.level.value

    # Configure structlog
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer() if settings.logging.structured
            else structlog.dev.ConsoleRenderer()
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Log records go to stderr so stdout only carries command output.
    numeric_level = getattr(logging, log_level, logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=numeric_level)
    logging.getLogger().setLevel(numeric_level)
    logging.getLogger("httpx").setLevel(max(numeric_level, logging.WARNING))

    logger.debug("Logging initialized", level=log_level)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="gemlog-sync",
        description="Synchronize Gemlog posts from Gemini to WriteFreely",
    )

    parser.add_argument(
        "-t", "--wf-access-token",
        metavar="TOKEN",
        help="WriteFreely access token. Required for sync and logout.",
    )
    parser.add_argument(
        "-a", "--wf-alias",
        metavar="ALIAS",
        help="WriteFreely blog name/alias. Usually the same as username.",
    )
    parser.add_argument(
        "--date-format",
        metavar="FMT",
        help="Date format override for parsing Gemlog Atom publish dates.",
    )
    parser.add_argument(
        "--strict-dates",
        action="store_true",
        default=None,
        help="Fail the whole sync when a feed entry cannot be parsed",
    )
    parser.add_argument(
        "--log-level",
        choices=[level.value for level in LogLevel],
        default=None,
        help="Set the log level",
    )

    subparsers = parser.add_subparsers(dest="command")

    login = subparsers.add_parser(
        "login", help="Logs in to WriteFreely and prints an access token."
    )
    login.add_argument("--wf-url", metavar="URL", help="Root URL of WriteFreely instance.")
    login.add_argument("-u", "--username", required=True, help="WriteFreely username.")
    login.add_argument("-p", "--password", required=True, help="WriteFreely password.")

    logout = subparsers.add_parser("logout", help="Logs out from WriteFreely.")
    logout.add_argument("--wf-url", metavar="URL", help="Root URL of WriteFreely instance.")

    sync = subparsers.add_parser(
        "sync", help="Synchronize Gemlog posts from Gemini to WriteFreely."
    )
    sync.add_argument(
        "--gemlog-url",
        metavar="URL",
        required=True,
        help="Full gemini:// URL of Gemlog (Atom feed or Gemfeed).",
    )
    sync.add_argument("--wf-url", metavar="URL", help="Root URL of WriteFreely instance.")
    sync.add_argument(
        "--strip-before-marker",
        help="Remove all text BEFORE this marker in the Gemlog post. "
        "Use --strip-before-marker=MARKER for markers starting with a dash.",
    )
    sync.add_argument(
        "--strip-after-marker",
        help="Remove all text AFTER this marker in the Gemlog post. "
        "Use --strip-after-marker=MARKER for markers starting with a dash.",
    )
    sync.add_argument(
        "--abort-on-error",
        action="store_true",
        help="Stop at the first post that cannot be created",
    )

    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Override loaded settings with command line arguments."""
    updates = {}
    if args.wf_access_token:
        updates["access_token"] = SecretStr(args.wf_access_token)
    if args.wf_alias:
        updates["alias"] = args.wf_alias
    if getattr(args, "wf_url", None):
        updates["url"] = args.wf_url

    parser_updates = {}
    if args.date_format:
        parser_updates["date_format"] = args.date_format
    if args.strict_dates:
        parser_updates["strict_dates"] = True

    sanitize_updates = {}
    if getattr(args, "strip_before_marker", None):
        sanitize_updates["strip_before_marker"] = args.strip_before_marker
    if getattr(args, "strip_after_marker", None):
        sanitize_updates["strip_after_marker"] = args.strip_after_marker

    # Re-validate so command line values go through the same checks as env.
    data = settings.model_dump()
    data["writefreely"].update(updates)
    data["parser"].update(parser_updates)
    data["sanitize"].update(sanitize_updates)
    if args.log_level:
        data["logging"]["level"] = args.log_level
    if getattr(args, "abort_on_error", False):
        data["continue_on_error"] = False
    return Settings.model_validate(data)


def _require_wf_url(settings: Settings) -> str:
    if not settings.writefreely.url:
        raise ConfigurationError("WriteFreely URL required (--wf-url)")
    return settings.writefreely.url


def _require_token(settings: Settings) -> str:
    token = settings.writefreely.access_token
    if token is None or not token.get_secret_value():
        raise ConfigurationError("WriteFreely access token required")
    return token.get_secret_value()


def _require_alias(settings: Settings) -> str:
    if not settings.writefreely.alias:
        raise ConfigurationError("WriteFreely alias required")
    return settings.writefreely.alias


async def run_login(settings: Settings, args: argparse.Namespace) -> int:
    client = await WriteFreelyClient.login(
        _require_wf_url(settings),
        args.username,
        args.password,
        timeout=settings.writefreely.timeout_seconds,
    )
    async with client:
        print(client.access_token or "[No Token Returned]")
    return 0


async def run_logout(settings: Settings, args: argparse.Namespace) -> int:
    wf_url = _require_wf_url(settings)
    async with WriteFreelyClient(
        wf_url,
        _require_alias(settings),
        access_token=_require_token(settings),
        timeout=settings.writefreely.timeout_seconds,
    ) as client:
        await client.logout()
    print(f"Successfully logged out from {wf_url}")
    return 0


def print_report(report: SyncReport) -> None:
    print(
        f"Post synchronization complete [posts synced={report.attempted}, "
        f"created={report.succeeded}, failed={len(report.failures)}]"
    )
    for outcome in report.outcomes:
        if outcome.succeeded:
            print(f"Created post: {outcome.post_id} [title={outcome.title or ''}]")
        else:
            print(f"Error creating post: {outcome.slug}: {outcome.error}")


async def run_sync(settings: Settings, args: argparse.Namespace) -> int:
    async with ContentFetcher(settings.fetch) as fetcher, WriteFreelyClient(
        _require_wf_url(settings),
        _require_alias(settings),
        access_token=_require_token(settings),
        timeout=settings.writefreely.timeout_seconds,
        retry_attempts=settings.fetch.retry_attempts,
    ) as client:
        logger.info("Beginning sync of posts", user=await client.user())

        feed = await load_feed(args.gemlog_url, fetcher, settings.parser)
        report = await sync_feed(
            feed,
            client,
            settings.sanitize,
            continue_on_error=settings.continue_on_error,
        )

    print_report(report)
    return 1 if report.failures else 0


COMMANDS = {
    "login": run_login,
    "logout": run_logout,
    "sync": run_sync,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    args = parse_args(argv)
    if args.command is None:
        return 0

    try:
        settings = apply_overrides(load_settings(), args)
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    setup_logging(settings)
    logger.debug("gemlog-sync starting", version=settings.version, command=args.command)

    try:
        return asyncio.run(COMMANDS[args.command](settings, args))

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    except GemlogSyncError as e:
        logger.error("Command failed", command=args.command, error_type=type(e).__name__, error=str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
