"""CLI entry point for the crypto market notifier.

Usage:
    python -m crypto_market_notifier [options]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import logging.config
import sys
from typing import NoReturn

from pydantic import ValidationError

from crypto_market_notifier import __version__
from crypto_market_notifier.config import Settings, clear_settings_cache, get_settings
from crypto_market_notifier.pipelines import PIPELINE_NAMES
from crypto_market_notifier.scheduler import RunOutcome
from crypto_market_notifier.service import NotifierService
from crypto_market_notifier.shutdown import GracefulShutdown

# Application info
APP_NAME = "Crypto Market Notifier"
APP_VERSION = __version__

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="crypto-market-notifier",
        description="Poll crypto market data and post notable changes to chat channels.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m crypto_market_notifier                      Run all pipelines
  python -m crypto_market_notifier --config-check       Validate config and exit
  python -m crypto_market_notifier --dry-run            Log alerts instead of sending
  python -m crypto_market_notifier --run-once crypto-news  Run one pipeline and exit
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {APP_VERSION}",
    )
    parser.add_argument(
        "--config-check",
        action="store_true",
        help="Validate configuration and exit",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level (default: from settings)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log alerts instead of sending them",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Override the HTTP port for webhooks and health (default: from settings)",
    )
    parser.add_argument(
        "--run-once",
        metavar="PIPELINE",
        choices=PIPELINE_NAMES,
        default=None,
        help=f"Run a single pipeline once and exit ({', '.join(PIPELINE_NAMES)})",
    )

    return parser


def configure_logging(level: str) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level string (DEBUG, INFO, etc.)
    """
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": (
                    "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
                ),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "detailed" if level == "DEBUG" else "standard",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
        # Quieter logging for noisy libraries
        "loggers": {
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
            "aiohttp.access": {"level": "WARNING"},
        },
    }
    logging.config.dictConfig(config)


def print_banner() -> None:
    """Print the application startup banner."""
    banner = f"""
╔══════════════════════════════════════════════════════════════╗
║   {APP_NAME:^56}   ║
║   {"v" + APP_VERSION:^56}   ║
╚══════════════════════════════════════════════════════════════╝
"""
    print(banner)


def print_config_summary(settings: Settings, dry_run: bool) -> None:
    """Print a summary of the configuration.

    Args:
        settings: Application settings.
        dry_run: Whether dry-run mode is enabled.
    """
    summary = settings.redacted_summary()
    print("Configuration:")
    print(f"  Tracked: {summary['tracked_symbols']}")
    print(f"  Price tiers: {summary['price_alert_tiers']}")
    print(f"  Daily summary: {summary['daily_summary_time']} UTC")
    print(f"  Redis: {summary['redis_url']}")
    print(f"  Log Level: {summary['log_level']}")
    print(f"  HTTP Port: {summary['http_port']}")
    print(f"  Dry Run: {dry_run}")
    targets = summary["targets"]
    if isinstance(targets, dict):
        for target, channel in targets.items():
            print(f"  Target {target}: {channel}")
    print()


def validate_config() -> Settings | None:
    """Validate and load configuration.

    Returns:
        Settings instance if valid, None if invalid.
    """
    try:
        clear_settings_cache()
        return get_settings()
    except ValidationError as e:
        print("Configuration validation failed:", file=sys.stderr)
        for error in e.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            print(f"  {field}: {error['msg']}", file=sys.stderr)
        return None


def run_config_check(settings: Settings) -> int:
    """Run configuration check and exit.

    Args:
        settings: Validated settings.

    Returns:
        Exit code (0 for success).
    """
    print("Configuration is valid!")
    print()
    print_config_summary(settings, dry_run=settings.dry_run)

    print("Checking component availability...")
    print(f"  Discord: {'configured' if settings.discord.enabled else 'not configured'}")
    print(f"  Telegram: {'configured' if settings.telegram.enabled else 'not configured'}")
    gas = "configured" if settings.sources.etherscan_api_key else "not configured"
    print(f"  Etherscan: {gas}")
    print()
    print("All checks passed. Ready to run.")
    return EXIT_SUCCESS


async def run_service(settings: Settings, dry_run: bool) -> int:
    """Run the notifier until a shutdown signal arrives.

    Args:
        settings: Application settings.
        dry_run: Whether to log alerts instead of sending them.

    Returns:
        Exit code.
    """
    logger = logging.getLogger(__name__)

    try:
        async with GracefulShutdown() as shutdown:
            service = NotifierService(settings, dry_run=dry_run)
            shutdown.register_cleanup(service.stop)

            await service.start()
            logger.info("Notifier running. Press Ctrl+C to stop.")

            await shutdown.wait()
            logger.info("Shutdown signal received, stopping...")

        return EXIT_SUCCESS
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.exception("Notifier failed: %s", e)
        return EXIT_ERROR


async def run_once(settings: Settings, name: str, dry_run: bool) -> int:
    """Run a single pipeline once.

    Returns:
        EXIT_SUCCESS if the run succeeded, EXIT_ERROR otherwise.
    """
    logger = logging.getLogger(__name__)
    service = NotifierService(settings, dry_run=dry_run)
    try:
        outcome = await service.run_pipeline_once(name)
    finally:
        await service.stop()

    logger.info("Pipeline %s finished: %s", name, outcome.value)
    return EXIT_SUCCESS if outcome is RunOutcome.SUCCESS else EXIT_ERROR


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:]).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    settings = validate_config()
    if settings is None:
        sys.exit(EXIT_CONFIG_ERROR)

    log_level = args.log_level or settings.log_level
    configure_logging(log_level)

    print_banner()

    if args.config_check:
        sys.exit(run_config_check(settings))

    if args.port is not None:
        settings = settings.model_copy(update={"http_port": args.port})

    dry_run = args.dry_run or settings.dry_run

    if args.run_once:
        sys.exit(asyncio.run(run_once(settings, args.run_once, dry_run)))

    print_config_summary(settings, dry_run)
    sys.exit(asyncio.run(run_service(settings, dry_run)))


if __name__ == "__main__":
    main()
