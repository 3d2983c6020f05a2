"""
Scheduled market data refresh.

Entry point for cron / GitHub Actions jobs:

    python -m market_refresh.run_refresh range A K
    python -m market_refresh.run_refresh tlv
    python -m market_refresh.run_refresh full
    python -m market_refresh.run_refresh status
    python -m market_refresh.run_refresh init-db

Exits with status 0 when every run completed and 1 when a run hit a fatal
error. Failed symbols are reported as a warning but do not fail the job.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from data_layer import DatabaseConnectionManager, MarketDataStore

from .config import RefreshSettings
from .constants import (
    FINNHUB_API_KEY_ENV_VAR,
    FINNHUB_PROVIDER,
    NASDAQ_UNIVERSE,
    TLV_UNIVERSE,
    YAHOO_PROVIDER,
)
from .entities.refresh_result import RefreshResult
from .nasdaq_universe import NasdaqUniverse
from .orchestrator import StockRefreshOrchestrator
from .providers import FinnhubClient, YahooFinanceClient
from .rate_limiter import RateLimiterRegistry
from .status import STATUS_ERROR, build_refresh_status
from .symbol_partitioner import SymbolPartitioner
from .tase_symbols import get_tase_symbols

logger = logging.getLogger(__name__)

ERRORS_SHOWN = 10


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level, logging.INFO),
                        format='%(asctime)s - %(levelname)s - %(message)s')

    # Suppress connection pool logging that exposes connection strings
    logging.getLogger('psycopg2').setLevel(logging.ERROR)
    logging.getLogger('psycopg').setLevel(logging.ERROR)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('yahooquery').setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="market-refresh",
                                     description="Refresh stock market data from rate-limited providers.")
    parser.add_argument("--json", action="store_true", help="print results as JSON")
    commands = parser.add_subparsers(dest="command", required=True)

    range_parser = commands.add_parser("range", help="refresh NASDAQ symbols in a letter range")
    range_parser.add_argument("start_letter")
    range_parser.add_argument("end_letter")

    commands.add_parser("tlv", help="refresh Tel Aviv stocks")
    commands.add_parser("full", help="refresh the full NASDAQ universe range by range")
    commands.add_parser("status", help="show data freshness and recent runs")
    commands.add_parser("init-db", help="create the database tables")
    return parser


def build_orchestrator(settings: RefreshSettings,
                       store: MarketDataStore,
                       registry: Optional[RateLimiterRegistry] = None) -> StockRefreshOrchestrator:
    """Wire providers, universes and rate limiters for one process."""
    registry = registry or RateLimiterRegistry()

    yahoo = YahooFinanceClient(registry.get_or_create(
        YAHOO_PROVIDER, settings.yahoo_requests_per_minute, settings.yahoo_requests_per_day))

    finnhub = None
    universes = {TLV_UNIVERSE: get_tase_symbols}
    if settings.finnhub_api_key:
        finnhub = FinnhubClient(settings.finnhub_api_key, registry.get_or_create(
            FINNHUB_PROVIDER, settings.finnhub_requests_per_minute))
        universes[NASDAQ_UNIVERSE] = NasdaqUniverse(finnhub)
    else:
        logger.warning(f"{FINNHUB_API_KEY_ENV_VAR} is not set, NASDAQ refreshes will fail")

    return StockRefreshOrchestrator(
        store=store,
        partitioner=SymbolPartitioner(universes),
        finnhub=finnhub,
        yahoo=yahoo,
        max_workers=settings.max_workers,
        time_budget_seconds=settings.time_budget_seconds,
    )


def print_run_summary(result: RefreshResult) -> None:
    print(f"\n=== {result.label} refresh {'completed' if result.success else 'FAILED'} ===")
    print(f"  Processed: {result.processed}")
    print(f"  Failed: {result.failed}")
    print(f"  Duration: {result.duration}")
    print(f"  Total symbols: {result.total_symbols}")

    if result.fatal_error:
        print(f"\n✗ FATAL ERROR: {result.fatal_error}")

    if result.failed > 0:
        print(f"\n⚠️  WARNING: {result.failed} symbols failed to refresh!")
        print(f"  Failure rate: {result.failure_rate:.1f}%")
        print(f"  Errors (first {ERRORS_SHOWN}): {', '.join(result.errors[:ERRORS_SHOWN])}")
    elif result.success:
        print(f"\n✓ All {result.label} stocks refreshed")


def run_command(args: argparse.Namespace, settings: RefreshSettings, store: MarketDataStore) -> int:
    """Execute one CLI command and return the process exit code."""
    if args.command == "init-db":
        store.ensure_schema()
        print("✓ Database tables ready")
        return 0

    if args.command == "status":
        status = build_refresh_status(store)
        print(json.dumps(status, indent=2, ensure_ascii=False))
        return 1 if status['status'] == STATUS_ERROR else 0

    orchestrator = build_orchestrator(settings, store)
    if args.command == "range":
        results: List[RefreshResult] = [orchestrator.refresh_stocks_in_range(args.start_letter, args.end_letter)]
    elif args.command == "tlv":
        results = [orchestrator.refresh_tlv_stocks()]
    else:
        results = orchestrator.refresh_full_universe()

    if args.json:
        body = [result.to_dict() for result in results]
        print(json.dumps(body[0] if len(body) == 1 else body, indent=2, ensure_ascii=False))
    else:
        for result in results:
            print_run_summary(result)

    return 0 if all(result.success for result in results) else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main function for scheduled refresh jobs."""
    args = build_parser().parse_args(argv)

    try:
        settings = RefreshSettings.from_env()
    except ValueError as e:
        configure_logging()
        logger.error(f"Invalid configuration: {e}")
        return 1

    configure_logging(settings.log_level)

    try:
        logger.info("Initializing data layer...")
        store = MarketDataStore(DatabaseConnectionManager())
    except Exception as e:
        logger.error(f"Failed to initialize data layer: {e}")
        return 1

    try:
        return run_command(args, settings, store)
    except Exception as e:
        logger.error(f"Error during {args.command}: {e}")
        import traceback
        traceback.print_exc()
        return 1
    finally:
        try:
            store.close()
            logger.info("Database connections closed")
        except Exception as e:
            logger.warning(f"Error closing database connections: {e}")


if __name__ == "__main__":
    sys.exit(main())
