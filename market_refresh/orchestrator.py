"""
Batch orchestrator for market data refresh runs.

A run resolves its symbol set, refreshes every symbol on a bounded worker
pool and aggregates the outcomes on the calling thread. A failing symbol
never fails the run: its error is recorded and the run moves on. Only
run-level conditions (symbol resolution, storage) are fatal.

Time budget of a run, measured from its start:
  - soft deadline (budget - 30s): units that have not started fail with a
    deadline error without calling any provider
  - hard deadline (budget - 15s): the aggregator stops waiting; units still
    in flight are abandoned and counted as failed. Every provider call gets
    the hard deadline, so abandoned units stop waiting for tokens and retrying
    once it passes
"""

import logging
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from data_layer import CompanyProfile, StockRecord

from .constants import (
    FINNHUB_API_KEY_ENV_VAR,
    FULL_REFRESH_RANGES,
    MAX_WORKERS,
    NASDAQ_UNIVERSE,
    PERSIST_RESERVE_SECONDS,
    RUN_TIME_BUDGET_SECONDS,
    SOFT_DEADLINE_MARGIN_SECONDS,
    TLV_UNIVERSE,
)
from .deadline import RunDeadline
from .entities.refresh_result import RefreshResult, RunTally, SymbolOutcome
from .exceptions import FatalRefreshError, ProviderDataError, ProviderError, RunDeadlineError
from .symbol_partitioner import SymbolPartitioner
from .tase_symbols import to_yahoo_symbol
from .transformer import build_nasdaq_record, build_tlv_record

logger = logging.getLogger(__name__)

NASDAQ_EXCHANGE = "nasdaq"
TLV_EXCHANGE = "tlv"
TLV_LABEL = "TLV"

# Upper bound on a single wait of the aggregator, so deadlines are re-checked
AGGREGATION_POLL_SECONDS = 0.5
PROGRESS_LOG_EVERY = 100

# Refreshes one symbol: (symbol, stored record or None, run deadline) -> (record, new profile or None)
SymbolRefresher = Callable[[str, Optional[StockRecord], RunDeadline],
                           Tuple[StockRecord, Optional[CompanyProfile]]]


class StockRefreshOrchestrator:
    """Runs refreshes of symbol sets against the providers and the store."""

    def __init__(self,
                 store: Any,
                 partitioner: SymbolPartitioner,
                 finnhub: Any,
                 yahoo: Any,
                 max_workers: int = MAX_WORKERS,
                 time_budget_seconds: float = RUN_TIME_BUDGET_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        """
        Args:
            store: MarketDataStore, or any object with the same methods
            partitioner: Resolves symbol sets from named universes
            finnhub: FinnhubClient, or None when no API key is configured
            yahoo: YahooFinanceClient
            max_workers: Upper bound on concurrent units of work
            time_budget_seconds: Execution ceiling of one run
            clock: Monotonic clock in seconds
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {max_workers}")
        if time_budget_seconds <= SOFT_DEADLINE_MARGIN_SECONDS:
            raise ValueError(f"time_budget_seconds must be greater than {SOFT_DEADLINE_MARGIN_SECONDS}, "
                             f"got {time_budget_seconds}")
        self.store = store
        self.partitioner = partitioner
        self.finnhub = finnhub
        self.yahoo = yahoo
        self.max_workers = max_workers
        self.time_budget_seconds = time_budget_seconds
        self._clock = clock

    # ========================================================================
    # Public operations
    # ========================================================================

    def refresh_stocks_in_range(self, start_letter: str, end_letter: str) -> RefreshResult:
        """Refresh the NASDAQ symbols whose first letter is in [start_letter, end_letter]."""
        label = f"{str(start_letter).strip().upper()}-{str(end_letter).strip().upper()}"

        def resolve_symbols() -> List[str]:
            if self.finnhub is None:
                raise FatalRefreshError(f"{FINNHUB_API_KEY_ENV_VAR} is not set")
            return self.partitioner.symbols_in_range(NASDAQ_UNIVERSE, start_letter, end_letter)

        return self.run(label, NASDAQ_EXCHANGE, resolve_symbols, self._refresh_nasdaq_symbol)

    def refresh_tlv_stocks(self) -> RefreshResult:
        """Refresh the whole TLV universe."""
        return self.run(
            TLV_LABEL,
            TLV_EXCHANGE,
            lambda: self.partitioner.full_universe(TLV_UNIVERSE),
            self._refresh_tlv_symbol,
        )

    def refresh_full_universe(self) -> List[RefreshResult]:
        """
        Refresh the NASDAQ universe as consecutive range runs.

        Each range starts only after the previous result is final; the runs
        share nothing but the providers' rate limiters.
        """
        results: List[RefreshResult] = []
        for start_letter, end_letter in FULL_REFRESH_RANGES:
            results.append(self.refresh_stocks_in_range(start_letter, end_letter))
        return results

    def run(self,
            label: str,
            exchange: str,
            resolve_symbols: Callable[[], List[str]],
            refresh_symbol: SymbolRefresher) -> RefreshResult:
        """
        Refresh one symbol set and report the outcome.

        Never raises for per-symbol or run-level failures; both are reported
        in the returned RefreshResult.

        Args:
            label: Range label or universe name of the run
            exchange: Exchange whose stored records the run merges with
            resolve_symbols: Returns the symbols of the run
            refresh_symbol: Refreshes one symbol

        Returns:
            RefreshResult of the run
        """
        start = self._clock()
        started_at = datetime.now(timezone.utc)
        soft_deadline = start + self.time_budget_seconds - SOFT_DEADLINE_MARGIN_SECONDS
        hard_deadline = start + self.time_budget_seconds - PERSIST_RESERVE_SECONDS

        logger.info(f"=== Starting {label} refresh ===")
        tally = RunTally()
        symbols: List[str] = []
        fatal_error: Optional[str] = None

        try:
            symbols = list(dict.fromkeys(resolve_symbols()))
            tally.total_symbols = len(symbols)
            logger.info(f"Processing {len(symbols)} symbols in {label}")

            existing = self._load_existing(exchange)
            self._process(symbols, existing, refresh_symbol, tally, soft_deadline,
                          RunDeadline(hard_deadline, self._clock))
            self._persist(tally)
        except Exception as e:
            fatal_error = str(e) or type(e).__name__
            logger.error(f"Refresh failed for {label}: {fatal_error}")
            tally.fail_missing(symbols, FatalRefreshError("run aborted"))

        duration_ms = int(round((self._clock() - start) * 1000))
        result = RefreshResult.from_tally(
            label=label,
            exchange=exchange,
            tally=tally,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            duration_ms=duration_ms,
            fatal_error=fatal_error,
        )

        self._report(result)
        return result

    # ========================================================================
    # Run steps
    # ========================================================================

    def _load_existing(self, exchange: str) -> Dict[str, StockRecord]:
        records = self.store.get_stocks(exchange)
        logger.info(f"Found {len(records)} {exchange} stocks currently in database")
        return {record.symbol: record for record in records}

    def _run_unit(self,
                  symbol: str,
                  existing: Optional[StockRecord],
                  refresh_symbol: SymbolRefresher,
                  soft_deadline: float,
                  deadline: RunDeadline) -> SymbolOutcome:
        """Refresh one symbol, turning every failure into a symbol-qualified error."""
        if self._clock() >= soft_deadline:
            return SymbolOutcome.failed(symbol, RunDeadlineError("not started before the run deadline"))

        try:
            record, profile = refresh_symbol(symbol, existing, deadline)
        except Exception as e:
            outcome = SymbolOutcome.failed(symbol, e)
            logger.debug(f"Failed to refresh {outcome.error}")
            return outcome

        return SymbolOutcome.succeeded(symbol, record, profile)

    def _process(self,
                 symbols: List[str],
                 existing: Dict[str, StockRecord],
                 refresh_symbol: SymbolRefresher,
                 tally: RunTally,
                 soft_deadline: float,
                 hard_deadline: RunDeadline) -> None:
        if not symbols:
            return

        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="refresh")
        pending: Dict[Future, str] = {}
        try:
            for symbol in symbols:
                future = executor.submit(self._run_unit, symbol, existing.get(symbol),
                                         refresh_symbol, soft_deadline, hard_deadline)
                pending[future] = symbol

            while pending:
                remaining = hard_deadline.remaining()
                if remaining <= 0:
                    break

                done, _ = wait(list(pending), timeout=min(remaining, AGGREGATION_POLL_SECONDS),
                               return_when=FIRST_COMPLETED)
                for future in done:
                    del pending[future]
                    tally.add(future.result())
                    completed = tally.processed + tally.failed
                    if completed % PROGRESS_LOG_EVERY == 0:
                        logger.info(f"Progress: {completed}/{tally.total_symbols} symbols "
                                    f"({tally.failed} failed)")

            if pending:
                logger.warning(f"Run deadline reached with {len(pending)} symbols unfinished")
                for future, symbol in pending.items():
                    if future.done() and not future.cancelled():
                        tally.add(future.result())
                        continue
                    if future.cancel():
                        error = RunDeadlineError("not started before the run deadline")
                    else:
                        error = RunDeadlineError("abandoned at the run deadline")
                    tally.add(SymbolOutcome.failed(symbol, error))
        finally:
            # Abandoned units give up at their next provider call; their outcomes are ignored
            executor.shutdown(wait=False, cancel_futures=True)

    def _persist(self, tally: RunTally) -> None:
        if tally.records:
            saved = self.store.save_stocks(tally.records)
            logger.info(f"✓ Saved {saved} stocks")
        if tally.profiles:
            saved = self.store.save_profiles(tally.profiles)
            logger.info(f"✓ Saved {saved} new company profiles")

    def _report(self, result: RefreshResult) -> None:
        if result.success:
            logger.info(f"Refresh complete for {result.label} in {result.duration}: "
                        f"{result.processed} processed, {result.failed} failed")
        if result.failed:
            logger.warning(f"{result.failed} of {result.total_symbols} symbols failed in {result.label} "
                           f"({result.failure_rate:.1f}%)")

        try:
            self.store.record_run(result)
        except Exception as e:
            logger.warning(f"Could not record run history for {result.label}: {e}")

    # ========================================================================
    # Units of work
    # ========================================================================

    def _optional(self, fetch: Callable[..., Any], symbol: str, what: str, deadline: RunDeadline) -> Any:
        """Fetch optional enrichment data; provider and data errors yield None."""
        try:
            return fetch(symbol, deadline=deadline)
        except (ProviderError, ProviderDataError) as e:
            logger.debug(f"No {what} for {symbol}: {e}")
            return None

    def _refresh_nasdaq_symbol(self, symbol: str,
                               existing: Optional[StockRecord],
                               deadline: RunDeadline) -> Tuple[StockRecord, Optional[CompanyProfile]]:
        quote = self.finnhub.get_quote(symbol, deadline=deadline)
        growth = self._optional(self.yahoo.get_growth, symbol, "growth data", deadline)

        profile = None
        if existing is None:
            profile = self._optional(self.finnhub.get_company_profile, symbol, "company profile", deadline)

        return build_nasdaq_record(symbol, quote, growth, profile, existing), profile

    def _refresh_tlv_symbol(self, symbol: str,
                            existing: Optional[StockRecord],
                            deadline: RunDeadline) -> Tuple[StockRecord, Optional[CompanyProfile]]:
        yahoo_symbol = to_yahoo_symbol(symbol)
        quote = self.yahoo.get_price(yahoo_symbol, deadline=deadline)
        growth = self._optional(self.yahoo.get_growth, yahoo_symbol, "growth data", deadline)
        return build_tlv_record(symbol, quote, growth, existing), None
