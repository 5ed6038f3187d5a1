"""Command-line entry point: count Gmail spam per day."""

import argparse
import logging
import sys
from collections.abc import Sequence
from datetime import tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import ValidationError

from spamcount_common import SpamCountConfig, configure_logging

from .connectors.gmail_connector import GmailConfig, GmailConnector
from .credentials import OAuthCredentialProvider
from .errors import AuthError, NoMatchesError, SpamCountError
from .pipeline import SpamCountPipeline, compute_cutoff
from .report import build_report

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spamcount",
        description="Checks Gmail for spam messages and provides a daily count.",
    )
    parser.add_argument(
        "-t", "--timeout", type=int, help="Timeout in seconds for fetching messages (default 60)."
    )
    parser.add_argument(
        "-d", "--days", type=int, help="Number of days to look back for spam (default 30)."
    )
    parser.add_argument(
        "--debug", action="store_true", default=None, help="Enable debug output."
    )
    parser.add_argument("--log-format", choices=("text", "json"), help="Log output format.")
    parser.add_argument("--credentials", help="OAuth client secrets file (credentials.json).")
    parser.add_argument("--token-file", help="OAuth token cache file (token.json).")
    return parser


def load_timezone(name: str | None) -> tzinfo | None:
    """Resolve an IANA zone name; None keeps the process local timezone."""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {name}") from e


def no_matches_line(days: int) -> str:
    return f"No spam messages found for the past {days} days (based on internalDate)."


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = SpamCountConfig.from_env(
            timeout_seconds=args.timeout,
            lookback_days=args.days,
            debug=args.debug,
            log_format=args.log_format,
            credentials_file=args.credentials,
            token_file=args.token_file,
        )
        tz = load_timezone(config.timezone)
    except (ValidationError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    configure_logging(config.log_level, config.log_format, config.service)

    cutoff_date = compute_cutoff(config.lookback_days, tz)
    logger.info(
        "Attempting to authenticate and fetch spam for the past %d days.", config.lookback_days
    )
    logger.info("Credentials expected at: %s", config.credentials_file)
    logger.info("Token cache will be at: %s", config.token_file)
    logger.debug(
        "Cutoff date: %s, timeout: %ds", cutoff_date, config.timeout_seconds
    )

    try:
        return run(config, cutoff_date, tz)
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return EXIT_INTERRUPTED


def run(config: SpamCountConfig, cutoff_date: str, tz: tzinfo | None) -> int:
    """Authenticate, collect counts and print the report."""
    credentials = OAuthCredentialProvider(config.credentials_file, config.token_file)
    try:
        credentials.get_access_token()
    except AuthError as e:
        logger.error("Error during authentication: %s", e)
        return EXIT_FAILURE
    logger.debug("Successfully obtained access token.")
    # No interactive prompts from worker threads once the run starts
    credentials.interactive = False

    connector = GmailConnector(
        credentials, GmailConfig(request_timeout_seconds=config.request_timeout_seconds)
    )
    pipeline = SpamCountPipeline(connector, config, tz=tz)

    days = config.lookback_days
    try:
        counts = pipeline.collect(cutoff_date)
        if not counts and not config.debug:
            print(no_matches_line(days))
            return EXIT_OK
        lines = build_report(counts, cutoff_date)
    except NoMatchesError:
        print(no_matches_line(days))
        return EXIT_OK
    except SpamCountError as e:
        logger.error("Error getting spam counts: %s", e)
        return EXIT_FAILURE

    print(f"Spam email counts for the past {days} days (based on internalDate, local timezone):")
    for line in lines:
        print(line)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
