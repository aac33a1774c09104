"""Command line entry point: scan once or run on a schedule."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from trailerfin.cache import open_cache
from trailerfin.config import AppConfig, ConfigError, DataSource, load_config
from trailerfin.http_client import ImdbRequestClient, RateLimitedClient
from trailerfin.imdb_trailers import ImdbTrailerScraper
from trailerfin.scheduler import ScrapingScheduler

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


def build_scraper(config: AppConfig) -> ImdbTrailerScraper:
    """Create the trailer scraper for the configured data source."""
    if config.data_source is not DataSource.IMDB:
        raise ConfigError(f"data source {config.data_source.value} is not supported")
    try:
        executor = RateLimitedClient(config.user_agent, config.imdb_rate_limit)
    except ValueError as exc:
        raise ConfigError(f"invalid TRAILERFIN_IMDB_RATE_LIMIT: {exc}") from exc
    logger.debug("Using data source: %s", config.data_source.value)
    return ImdbTrailerScraper(ImdbRequestClient(executor))


async def run(config: AppConfig) -> None:
    """Scan once, or keep scanning on schedule when scheduling is enabled."""
    with open_cache(config.cache_path):
        scraper = build_scraper(config)
        async with scraper.client.executor:
            if config.should_schedule:
                logger.info("Starting in scheduled mode...")
                await ScrapingScheduler(scraper).start_scheduler(config)
            else:
                logger.info("Scheduling disabled: Running Once...")
                await scraper.scan_and_refresh_trailers(config)


def main(argv: Optional[List[str]] = None) -> int:
    """Run trailerfin with settings taken from the environment."""
    parser = argparse.ArgumentParser(
        prog="trailerfin",
        description="Keep trailer .strm files of a media library up to date.",
    )
    parser.add_argument(
        "--log-level", default="info", type=str.lower, choices=_LOG_LEVELS,
        help="logging verbosity (default: info)",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config()
        asyncio.run(run(config))
    except ConfigError as exc:
        print(f"trailerfin: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0
    return 0


if __name__ == "__main__":
    sys.exit(main())