"""
Tests for market data transformation.
"""

import unittest
from datetime import datetime, timezone
from decimal import Decimal

from data_layer import CompanyProfile, StockRecord

from market_refresh.entities.market_data import Growth, Quote
from market_refresh.exceptions import ProviderDataError
from market_refresh.transformer import (
    build_growth,
    build_nasdaq_record,
    build_tlv_record,
    calculate_growth,
    sanitize_decimal,
)

NOW = datetime(2024, 6, 3, 12, 0, tzinfo=timezone.utc)


class TestCalculateGrowth(unittest.TestCase):
    """Test cases for percent growth over trading sessions."""

    def test_growth_over_window(self):
        prices = [100.0] + [0.0] * 20 + [110.0]
        # 22 closes: the close 21 sessions back is the first one
        self.assertAlmostEqual(calculate_growth(prices, 21), 10.0)

    def test_uses_close_days_ago(self):
        prices = [50.0, 80.0, 100.0, 120.0]
        self.assertAlmostEqual(calculate_growth(prices, 1), 20.0)
        self.assertAlmostEqual(calculate_growth(prices, 2), 50.0)

    def test_short_history_uses_first_close(self):
        """With fewer closes than the window the first close is the base."""
        prices = [80.0, 90.0, 100.0]
        self.assertAlmostEqual(calculate_growth(prices, 252), 25.0)

    def test_zero_or_missing_past_price(self):
        self.assertEqual(calculate_growth([0.0, 10.0], 1), 0.0)
        self.assertEqual(calculate_growth([], 22), 0.0)

    def test_negative_growth(self):
        self.assertAlmostEqual(calculate_growth([200.0, 150.0], 1), -25.0)

    def test_build_growth_windows(self):
        closes = [float(price) for price in range(1, 301)]
        growth = build_growth("AAPL", closes)

        self.assertEqual(growth.current_price, 300.0)
        self.assertAlmostEqual(growth.growth_1m, (300 - 278) / 278 * 100)
        self.assertAlmostEqual(growth.growth_6m, (300 - 174) / 174 * 100)
        self.assertAlmostEqual(growth.growth_12m, (300 - 48) / 48 * 100)


class TestSanitizeDecimal(unittest.TestCase):
    """Test cases for database-safe decimals."""

    def test_rounds_to_places(self):
        self.assertEqual(sanitize_decimal(12.3456, 7, 2), Decimal("12.35"))

    def test_rejects_out_of_range_and_invalid(self):
        self.assertIsNone(sanitize_decimal(123456.0, 7, 2))
        self.assertIsNone(sanitize_decimal(float("nan")))
        self.assertIsNone(sanitize_decimal(float("inf")))
        self.assertIsNone(sanitize_decimal("abc"))
        self.assertIsNone(sanitize_decimal(None))

    def test_accepts_boundary(self):
        self.assertEqual(sanitize_decimal("99999.99", 7, 2), Decimal("99999.99"))


class TestBuildNasdaqRecord(unittest.TestCase):
    """Test cases for NASDAQ record building and fallbacks."""

    def setUp(self):
        self.quote = Quote(symbol="AAPL", price=189.987654)
        self.growth = Growth(symbol="AAPL", current_price=190.0, growth_1m=1.234, growth_6m=-5.5, growth_12m=20.0)

    def test_new_symbol_with_profile(self):
        """A fresh profile provides name and market cap."""
        profile = CompanyProfile(symbol="AAPL", name="Apple Inc", market_cap=3_000_000_000_000)
        record = build_nasdaq_record("AAPL", self.quote, self.growth, profile, None, now=NOW)

        self.assertEqual(record.name, "Apple Inc")
        self.assertEqual(record.market_cap, 3_000_000_000_000)
        self.assertEqual(record.exchange, "nasdaq")
        self.assertEqual(record.currency, "USD")
        self.assertEqual(record.price, Decimal("189.9877"))
        self.assertEqual(record.growth_1m, Decimal("1.23"))
        self.assertEqual(record.growth_6m, Decimal("-5.50"))
        self.assertEqual(record.updated_at, NOW)

    def test_existing_record_fallbacks(self):
        """Stored name, market cap and growth are kept when nothing new is fetched."""
        existing = StockRecord(symbol="AAPL", exchange="nasdaq", name="Apple Inc", price=180,
                               market_cap=2_900_000_000_000, growth_1m=Decimal("3.10"),
                               growth_6m=Decimal("4.20"), growth_12m=Decimal("5.30"))
        record = build_nasdaq_record("AAPL", self.quote, None, None, existing, now=NOW)

        self.assertEqual(record.name, "Apple Inc")
        self.assertEqual(record.market_cap, 2_900_000_000_000)
        self.assertEqual(record.growth_1m, Decimal("3.10"))
        self.assertEqual(record.growth_12m, Decimal("5.30"))

    def test_defaults_without_profile_or_record(self):
        record = build_nasdaq_record("ZZZZ", Quote(symbol="ZZZZ", price=1.5), None, None, None)

        self.assertEqual(record.name, "ZZZZ")
        self.assertEqual(record.market_cap, 0)
        self.assertEqual(record.growth_1m, Decimal("0"))

    def test_invalid_price_is_data_error(self):
        with self.assertRaises(ProviderDataError):
            build_nasdaq_record("AAPL", Quote(symbol="AAPL", price=0), None, None, None)
        with self.assertRaises(ProviderDataError):
            build_nasdaq_record("AAPL", Quote(symbol="AAPL", price=float("nan")), None, None, None)


class TestBuildTlvRecord(unittest.TestCase):
    """Test cases for TLV record building."""

    def test_names_and_currency(self):
        quote = Quote(symbol="LUMI.TA", price=3150.0, currency="ILA", market_cap=50_000_000_000,
                      name="BANK LEUMI LE-ISRAEL B.M.")
        record = build_tlv_record("LUMI", quote, None, now=NOW)

        self.assertEqual(record.symbol, "LUMI")
        self.assertEqual(record.exchange, "tlv")
        self.assertEqual(record.name, "Bank Leumi Le-Israel")
        self.assertEqual(record.name_hebrew, "בנק לאומי")
        self.assertEqual(record.currency, "ILA")
        self.assertEqual(record.market_cap, 50_000_000_000)

    def test_defaults_for_unlisted_symbol(self):
        """Unknown symbols use Yahoo's name and the default currency."""
        record = build_tlv_record("XYZ", Quote(symbol="XYZ.TA", price=10.0, name="Xyz Ltd"), None)

        self.assertEqual(record.name, "Xyz Ltd")
        self.assertIsNone(record.name_hebrew)
        self.assertEqual(record.currency, "ILS")
        self.assertEqual(record.market_cap, 0)


if __name__ == "__main__":
    unittest.main()
