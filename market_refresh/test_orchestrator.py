"""
Tests for the batch orchestrator.

Providers and the store are in-memory fakes; deadline tests drive a fake
clock from inside the units of work.
"""

import threading
import time
import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock

from data_layer import CompanyProfile, DatabaseQueryError, StockRecord

from market_refresh.entities.market_data import Growth, Quote
from market_refresh.entities.refresh_result import RefreshResult, RunTally, SymbolOutcome
from market_refresh.exceptions import ProviderDataError, ProviderError
from market_refresh.orchestrator import StockRefreshOrchestrator
from market_refresh.providers.finnhub import FinnhubClient
from market_refresh.rate_limiter import create_rate_limiter
from market_refresh.symbol_partitioner import SymbolPartitioner
from market_refresh.tase_symbols import get_tase_symbols

NASDAQ_SYMBOLS = ["AAPL", "AMZN", "AXP", "LRCX", "MSFT", "ZS"]


class FakeStore:
    """In-memory stand-in for MarketDataStore."""

    def __init__(self, stocks=None, fail_on=()):
        self.stocks = list(stocks or [])
        self.fail_on = set(fail_on)
        self.saved = []
        self.saved_profiles = []
        self.runs = []

    def _maybe_fail(self, operation):
        if operation in self.fail_on:
            raise DatabaseQueryError(operation, "connection refused")

    def get_stocks(self, exchange=None):
        self._maybe_fail("get_stocks")
        return [stock for stock in self.stocks if exchange is None or stock.exchange == exchange]

    def save_stocks(self, records):
        self._maybe_fail("save_stocks")
        self.saved.extend(records)
        return len(records)

    def save_profiles(self, profiles):
        self._maybe_fail("save_profiles")
        self.saved_profiles.extend(profiles)
        return len(profiles)

    def record_run(self, result):
        self._maybe_fail("record_run")
        self.runs.append(result)
        return result


class FakeFinnhub:
    """Quotes and profiles keyed by symbol; exceptions are raised."""

    def __init__(self, quotes=None, profiles=None, on_quote=None):
        self.quotes = quotes or {}
        self.profiles = profiles or {}
        self.on_quote = on_quote
        self.quote_calls = []
        self.profile_calls = []

    def get_quote(self, symbol, deadline=None):
        self.quote_calls.append(symbol)
        if self.on_quote:
            self.on_quote(symbol)
        value = self.quotes.get(symbol, 100.0)
        if isinstance(value, Exception):
            raise value
        return Quote(symbol=symbol, price=value)

    def get_company_profile(self, symbol, deadline=None):
        self.profile_calls.append(symbol)
        value = self.profiles.get(symbol)
        if isinstance(value, Exception):
            raise value
        return value


class FakeYahoo:
    """Growth and prices keyed by Yahoo symbol."""

    def __init__(self, prices=None, growth_errors=None):
        self.prices = prices or {}
        self.growth_errors = growth_errors or {}
        self.price_calls = []

    def get_growth(self, yahoo_symbol, deadline=None):
        error = self.growth_errors.get(yahoo_symbol)
        if error:
            raise error
        return Growth(symbol=yahoo_symbol, current_price=100.0, growth_1m=1.0, growth_6m=2.0, growth_12m=3.0)

    def get_price(self, yahoo_symbol, deadline=None):
        self.price_calls.append(yahoo_symbol)
        value = self.prices.get(yahoo_symbol, 1000.0)
        if isinstance(value, Exception):
            raise value
        return Quote(symbol=yahoo_symbol, price=value, currency="ILA")


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            return self.now

    def advance(self, seconds):
        with self._lock:
            self.now += seconds


def make_partitioner(nasdaq=None):
    symbols = NASDAQ_SYMBOLS if nasdaq is None else nasdaq
    return SymbolPartitioner({"nasdaq": lambda: list(symbols), "tlv": get_tase_symbols})


def make_orchestrator(store=None, finnhub=None, yahoo=None, partitioner=None, **kwargs):
    return StockRefreshOrchestrator(
        store=store if store is not None else FakeStore(),
        partitioner=partitioner or make_partitioner(),
        finnhub=finnhub if finnhub is not None else FakeFinnhub(),
        yahoo=yahoo or FakeYahoo(),
        **kwargs
    )


class TestRangeRefresh(unittest.TestCase):
    """Test cases for NASDAQ range runs."""

    def test_partial_failure_in_single_letter_range(self):
        """A-A over AAPL, AMZN, AXP with one failing symbol."""
        store = FakeStore()
        finnhub = FakeFinnhub(quotes={"AMZN": ProviderError("finnhub", "/quote returned HTTP 503", 503)})
        orchestrator = make_orchestrator(store=store, finnhub=finnhub)

        result = orchestrator.refresh_stocks_in_range("A", "A")

        self.assertEqual(result.label, "A-A")
        self.assertEqual(result.total_symbols, 3)
        self.assertEqual(result.processed, 2)
        self.assertEqual(result.failed, 1)
        self.assertEqual(result.errors, ("AMZN: provider error: finnhub: /quote returned HTTP 503",))
        self.assertTrue(result.success)
        self.assertIsNone(result.fatal_error)
        self.assertEqual(sorted(record.symbol for record in store.saved), ["AAPL", "AXP"])
        self.assertEqual(store.runs, [result])

    def test_empty_range(self):
        """A range without symbols completes with zero counters."""
        store = FakeStore()
        result = make_orchestrator(store=store).refresh_stocks_in_range("Q", "R")

        self.assertEqual((result.total_symbols, result.processed, result.failed), (0, 0, 0))
        self.assertEqual(result.errors, ())
        self.assertTrue(result.success)
        self.assertEqual(store.saved, [])
        self.assertEqual(len(store.runs), 1)

    def test_all_symbols_failing_still_completes(self):
        """Run-level success is independent of the failure count."""
        finnhub = FakeFinnhub(quotes={symbol: ProviderDataError(symbol, "no quote available")
                                      for symbol in NASDAQ_SYMBOLS})
        result = make_orchestrator(finnhub=finnhub).refresh_stocks_in_range("A", "Z")

        self.assertTrue(result.success)
        self.assertEqual(result.processed, 0)
        self.assertEqual(result.failed, len(NASDAQ_SYMBOLS))
        self.assertEqual(len(result.errors), result.failed)
        self.assertTrue(all(": data error: no quote available" in error for error in result.errors))
        self.assertEqual(result.failure_rate, 100.0)

    def test_rate_limited_symbols_are_reported(self):
        """Limiter exhaustion fails symbols explicitly instead of dropping them."""
        limiter = create_rate_limiter("finnhub", 1, 1, clock=lambda: 0.0)
        limiter.consume_token()
        session = MagicMock()
        finnhub = FinnhubClient("key", limiter, session=session, token_timeout_seconds=0)

        result = make_orchestrator(finnhub=finnhub).refresh_stocks_in_range("A", "A")

        self.assertTrue(result.success)
        self.assertEqual(result.failed, 3)
        for error in result.errors:
            self.assertRegex(error, r"^(AAPL|AMZN|AXP): rate limited: no finnhub token available")
        session.get.assert_not_called()

    def test_unexpected_errors_are_isolated(self):
        finnhub = FakeFinnhub(quotes={"AXP": KeyError("c")})
        result = make_orchestrator(finnhub=finnhub).refresh_stocks_in_range("A", "A")

        self.assertEqual(result.processed, 2)
        self.assertEqual(result.errors, ("AXP: unexpected error: 'c'",))

    def test_profiles_fetched_only_for_new_symbols(self):
        """Stored symbols reuse their name and market cap."""
        stored = StockRecord(symbol="AAPL", exchange="nasdaq", name="Apple Inc", price=150,
                             market_cap=2_000_000_000_000)
        store = FakeStore(stocks=[stored])
        finnhub = FakeFinnhub(profiles={
            "AMZN": CompanyProfile(symbol="AMZN", name="Amazon.com Inc", market_cap=1_800_000_000_000),
            "AXP": ProviderError("finnhub", "/stock/profile2 returned HTTP 502", 502),
        })

        result = make_orchestrator(store=store, finnhub=finnhub).refresh_stocks_in_range("A", "A")

        self.assertEqual(result.processed, 3)
        self.assertEqual(sorted(finnhub.profile_calls), ["AMZN", "AXP"])
        self.assertEqual([profile.symbol for profile in store.saved_profiles], ["AMZN"])

        saved = {record.symbol: record for record in store.saved}
        self.assertEqual(saved["AAPL"].name, "Apple Inc")
        self.assertEqual(saved["AAPL"].market_cap, 2_000_000_000_000)
        self.assertEqual(saved["AMZN"].name, "Amazon.com Inc")
        self.assertEqual(saved["AXP"].name, "AXP")

    def test_growth_failure_does_not_fail_symbol(self):
        yahoo = FakeYahoo(growth_errors={"AAPL": ProviderDataError("AAPL", "no price history")})
        store = FakeStore()

        result = make_orchestrator(store=store, yahoo=yahoo).refresh_stocks_in_range("A", "A")

        self.assertEqual(result.failed, 0)
        aapl = next(record for record in store.saved if record.symbol == "AAPL")
        self.assertEqual(float(aapl.growth_1m), 0.0)

    def test_worker_pool_is_bounded(self):
        """No more than max_workers units run at once."""
        lock = threading.Lock()
        active = [0]
        peak = [0]

        def track(symbol):
            with lock:
                active[0] += 1
                peak[0] = max(peak[0], active[0])
            time.sleep(0.01)
            with lock:
                active[0] -= 1

        symbols = [f"A{index:03d}" for index in range(24)]
        orchestrator = make_orchestrator(finnhub=FakeFinnhub(on_quote=track),
                                         partitioner=make_partitioner(symbols), max_workers=3)

        result = orchestrator.refresh_stocks_in_range("A", "A")

        self.assertEqual(result.processed, 24)
        self.assertLessEqual(peak[0], 3)

    def test_full_universe_runs_ranges_in_order(self):
        store = FakeStore()
        results = make_orchestrator(store=store).refresh_full_universe()

        self.assertEqual([result.label for result in results], ["A-K", "L-Z"])
        self.assertEqual(sum(result.total_symbols for result in results), len(NASDAQ_SYMBOLS))
        self.assertEqual(store.runs, results)
        self.assertLessEqual(results[0].finished_at, results[1].started_at)


class TestFatalErrors(unittest.TestCase):
    """Test cases for run-level failures."""

    def test_symbol_resolution_failure(self):
        def broken_universe():
            raise ProviderError("finnhub", "/stock/symbol returned HTTP 500", 500)

        partitioner = SymbolPartitioner({"nasdaq": broken_universe})
        result = make_orchestrator(partitioner=partitioner).refresh_stocks_in_range("A", "K")

        self.assertFalse(result.success)
        self.assertIn("HTTP 500", result.fatal_error)
        self.assertEqual((result.total_symbols, result.processed, result.failed), (0, 0, 0))
        self.assertEqual(result.errors, ())

    def test_invalid_range(self):
        result = make_orchestrator().refresh_stocks_in_range("K", "A")

        self.assertFalse(result.success)
        self.assertEqual(result.label, "K-A")
        self.assertIn("start letter must not come after end letter", result.fatal_error)

    def test_missing_finnhub_client(self):
        orchestrator = StockRefreshOrchestrator(FakeStore(), make_partitioner(), None, FakeYahoo())
        result = orchestrator.refresh_stocks_in_range("A", "K")

        self.assertFalse(result.success)
        self.assertIn("FINNHUB_API_KEY", result.fatal_error)

    def test_store_unreachable_on_load(self):
        """Every resolved symbol is accounted for when the run aborts."""
        finnhub = FakeFinnhub()
        result = make_orchestrator(store=FakeStore(fail_on={"get_stocks"}),
                                   finnhub=finnhub).refresh_stocks_in_range("A", "A")

        self.assertFalse(result.success)
        self.assertIn("get_stocks", result.fatal_error)
        self.assertEqual((result.total_symbols, result.processed, result.failed), (3, 0, 3))
        self.assertEqual(len(result.errors), 3)
        self.assertEqual(finnhub.quote_calls, [])

    def test_store_failure_on_save(self):
        result = make_orchestrator(store=FakeStore(fail_on={"save_stocks"})).refresh_stocks_in_range("A", "A")

        self.assertFalse(result.success)
        self.assertIn("save_stocks", result.fatal_error)
        self.assertEqual(result.processed + result.failed, result.total_symbols)

    def test_run_history_failure_is_not_fatal(self):
        result = make_orchestrator(store=FakeStore(fail_on={"record_run"})).refresh_stocks_in_range("A", "A")

        self.assertTrue(result.success)
        self.assertEqual(result.processed, 3)


class TestDeadlines(unittest.TestCase):
    """Test cases for the run time budget."""

    def test_units_after_soft_deadline_fail_without_provider_calls(self):
        clock = FakeClock()
        finnhub = FakeFinnhub(on_quote=lambda symbol: clock.advance(31) if symbol == "AAPL" else None)
        orchestrator = make_orchestrator(finnhub=finnhub, max_workers=1, time_budget_seconds=60, clock=clock)

        result = orchestrator.refresh_stocks_in_range("A", "A")

        self.assertTrue(result.success)
        self.assertEqual(result.processed, 1)
        self.assertEqual(result.failed, 2)
        self.assertEqual(finnhub.quote_calls, ["AAPL"])
        self.assertTrue(all(": deadline: " in error for error in result.errors))

    def test_units_running_at_hard_deadline_are_abandoned(self):
        clock = FakeClock()
        release = threading.Event()
        self.addCleanup(release.set)

        def slow_quote(symbol):
            if symbol == "AMZN":
                clock.advance(90)
                release.wait(5)

        finnhub = FakeFinnhub(on_quote=slow_quote)
        orchestrator = make_orchestrator(finnhub=finnhub, max_workers=1, time_budget_seconds=100, clock=clock)

        result = orchestrator.refresh_stocks_in_range("A", "A")

        self.assertTrue(result.success)
        self.assertEqual(result.processed, 1)
        self.assertEqual(result.failed, 2)
        self.assertIn("AMZN: deadline: abandoned at the run deadline", result.errors)
        self.assertIn("AXP: deadline: not started before the run deadline", result.errors)

    def test_abandoned_unit_stops_taking_tokens_after_deadline(self):
        """A unit waiting on a drained limiter gives up at the hard deadline."""
        clock = FakeClock()
        limiter = create_rate_limiter("finnhub", 1, clock=clock)
        limiter.consume_token()
        session = MagicMock()
        finnhub = FinnhubClient("key", limiter, session=session, token_timeout_seconds=600, sleep=clock.advance)
        # Hard deadline at 55s; the next token refills at 60s
        orchestrator = make_orchestrator(finnhub=finnhub, partitioner=make_partitioner(nasdaq=["AAPL"]),
                                         time_budget_seconds=70, clock=clock)

        result = orchestrator.refresh_stocks_in_range("A", "A")
        for thread in threading.enumerate():
            if thread.name.startswith("refresh"):
                thread.join(5)
                self.assertFalse(thread.is_alive())

        self.assertEqual(result.failed, 1)
        self.assertIn("AAPL: deadline: ", result.errors[0])
        self.assertEqual(clock(), 55.0)
        session.get.assert_not_called()

        clock.advance(6)
        self.assertTrue(limiter.can_make_request())

    def test_budget_must_exceed_soft_deadline_margin(self):
        with self.assertRaises(ValueError):
            make_orchestrator(time_budget_seconds=30)


class TestTlvRefresh(unittest.TestCase):
    """Test cases for the TLV universe run."""

    def test_refresh_tlv_stocks(self):
        store = FakeStore()
        yahoo = FakeYahoo(prices={"TEVA.TA": ProviderDataError("TEVA.TA", "no price available")})

        result = make_orchestrator(store=store, yahoo=yahoo).refresh_tlv_stocks()

        total = len(get_tase_symbols())
        self.assertEqual(result.label, "TLV")
        self.assertEqual(result.exchange, "tlv")
        self.assertEqual(result.total_symbols, total)
        self.assertEqual(result.processed, total - 1)
        self.assertEqual(result.errors, ("TEVA: data error: no price available",))
        self.assertIn("LUMI.TA", yahoo.price_calls)

        lumi = next(record for record in store.saved if record.symbol == "LUMI")
        self.assertEqual(lumi.exchange, "tlv")
        self.assertEqual(lumi.name_hebrew, "בנק לאומי")
        self.assertEqual(lumi.currency, "ILA")
        self.assertEqual(store.saved_profiles, [])


class TestRefreshResult(unittest.TestCase):
    """Test cases for the result entity."""

    def make_result(self, failed=0, processed=0, fatal_error=None):
        tally = RunTally(total_symbols=processed + failed)
        for index in range(processed):
            record = StockRecord(symbol=f"OK{index}", exchange="nasdaq", name="Ok", price=1)
            tally.add(SymbolOutcome.succeeded(record.symbol, record))
        for index in range(failed):
            tally.add(SymbolOutcome.failed(f"BAD{index}", ProviderDataError(f"BAD{index}", "no quote available")))
        now = datetime(2024, 6, 3, tzinfo=timezone.utc)
        return RefreshResult.from_tally("A-K", "nasdaq", tally, now, now, 12345, fatal_error)

    def test_transport_form_caps_errors(self):
        body = self.make_result(failed=60, processed=5).to_dict()

        self.assertEqual(len(body["errors"]), 50)
        self.assertEqual(body["errorCount"], 60)
        self.assertEqual(body["failed"], 60)
        self.assertEqual(body["totalSymbols"], 65)
        self.assertEqual(body["duration"], "12.3s")
        self.assertEqual(body["range"], "A-K")
        self.assertTrue(body["success"])

    def test_fatal_result(self):
        result = self.make_result(fatal_error="database unreachable")

        self.assertFalse(result.success)
        self.assertEqual(result.to_dict()["fatalError"], "database unreachable")
        self.assertEqual(result.failure_rate, 0.0)

    def test_counter_invariants_enforced(self):
        now = datetime(2024, 6, 3, tzinfo=timezone.utc)
        with self.assertRaises(ValueError):
            RefreshResult("A-K", "nasdaq", total_symbols=3, processed=1, failed=1,
                          duration_ms=0, started_at=now, finished_at=now, errors=("X: data error: y",))
        with self.assertRaises(ValueError):
            RefreshResult("A-K", "nasdaq", total_symbols=2, processed=1, failed=1,
                          duration_ms=0, started_at=now, finished_at=now, errors=())

    def test_tally_stats(self):
        tally = RunTally(total_symbols=3)
        tally.add(SymbolOutcome.failed("AAPL", ProviderError("finnhub", "timeout")))
        tally.fail_missing(["AAPL", "AMZN", "AXP"], ProviderError("finnhub", "aborted"))

        self.assertEqual(tally.get_stats()["failed"], 3)
        self.assertEqual(tally.get_stats()["pending"], 0)


if __name__ == "__main__":
    unittest.main()
