"""Command line entry point: reconcile tracked accounts once and exit."""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Sequence

import httpx

from investment_tracker.config import ConfigurationError, TrackerSettings, load_settings
from investment_tracker.core.logging import setup_logging
from investment_tracker.core.telemetry import setup_telemetry, shutdown_telemetry
from investment_tracker.pipeline import InvestmentTracker, RunSummary
from investment_tracker.providers import AlphaVantageClient, AlphaVantageError, YNABClient, YNABError

logger = logging.getLogger("investment_tracker")

EXIT_OK = 0
EXIT_COLLABORATOR_FAILURE = 1
EXIT_CONFIGURATION_ERROR = 2


async def _run(settings: TrackerSettings, dry_run: bool) -> RunSummary:
    ledger = YNABClient(
        settings.ynab_api_token,
        base_url=settings.ynab_base_url,
        timeout=settings.ynab_timeout_seconds,
    )
    quotes = AlphaVantageClient(
        settings.alphavantage_api_key,
        requests_per_minute=settings.alphavantage_requests_per_minute,
        timeout=settings.alphavantage_timeout_seconds,
    )
    try:
        return await InvestmentTracker(ledger, quotes, settings).run(dry_run=dry_run)
    finally:
        await ledger.aclose()
        await quotes.aclose()


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Post market value adjustments for tracked YNAB accounts")
    parser.add_argument("--dry-run", action="store_true", help="compute adjustments without posting them")
    parser.add_argument("--log-level", default=None, help="override the configured log level")
    args = parser.parse_args(argv)

    setup_logging(args.log_level or "INFO")
    try:
        settings = load_settings()
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return EXIT_CONFIGURATION_ERROR
    setup_logging(args.log_level or settings.log_level)
    logger.debug("Settings: %s", settings.dict_for_logging())

    setup_telemetry(settings)
    try:
        asyncio.run(_run(settings, args.dry_run))
    except (YNABError, AlphaVantageError, httpx.HTTPError):
        logger.exception("Reconciliation run failed")
        return EXIT_COLLABORATOR_FAILURE
    finally:
        shutdown_telemetry()
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
