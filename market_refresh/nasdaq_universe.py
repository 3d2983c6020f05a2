"""
NASDAQ symbol universe.

Loads the NASDAQ listing from Finnhub, keeps common stock only, normalizes
symbols to Yahoo Finance conventions and caches the result for a day.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, List, Optional

from .constants import SYMBOLS_CACHE_TTL_SECONDS
from .exceptions import FatalRefreshError

logger = logging.getLogger(__name__)

US_EXCHANGE = "US"
NASDAQ_MIC = "XNAS"
MAX_SYMBOL_LENGTH = 6


# ============================================================================
# Common Stock Filtering
# ============================================================================

# Keywords that indicate the security is NOT common stock
NON_COMMON_STOCK_KEYWORDS = [
    # Debt instruments
    "Subordinated Notes",
    "Senior Notes",
    "Debentures",
    "Notes due",

    # Preferred stock indicators
    "Preferred",
    "Pref Shs",
    "Perpetual",
    "Cumulative Redeemable",
    "Non-Cumulative",
    "Preference Shares",

    # Rate types
    "Fixed to Floating",
    "Fixed-to-Floating",
    "Floating Rate",

    # Depositary shares representing fractional interests
    "Depositary Shares",
    "Depositary Share",
    "Liquidation Preference",

    # Warrants and Rights
    "Warrant",
    "Right",

    # SPAC units
    "Unit",

    # Convertible securities
    "Convertible",
    "Exchangeable",

    # Expiration and due dates
    "Exp 20",
    "due 20",
]

# Finnhub security type of common stock
COMMON_STOCK_TYPE = "COMMON STOCK"


def is_common_stock(ticker_name: str, security_type: Optional[str] = None) -> bool:
    """
    Determines if a listing represents common stock.

    Args:
        ticker_name: The name of the security
        security_type: Finnhub security type, when known

    Returns:
        True if the ticker is likely common stock, False otherwise
    """
    # A known security type is authoritative; names are only checked without one
    if security_type:
        return security_type.strip().upper() == COMMON_STOCK_TYPE

    ticker_name_upper = ticker_name.upper()

    # An explicit "Common Stock" overrides every keyword
    if "COMMON STOCK" in ticker_name_upper:
        return True

    if any(keyword in ticker_name_upper for keyword in [
        "AMERICAN DEPOSITARY SHARES",
        "AMERICAN DEPOSITARY SHARE",
        "ADS REPRESENTING"
    ]):
        return False

    for keyword in NON_COMMON_STOCK_KEYWORDS:
        if keyword.upper() in ticker_name_upper:
            return False

    return True


def normalize_symbols(entries: Iterable[Dict[str, Any]]) -> List[str]:
    """
    Turn raw Finnhub symbol entries into the ordered, de-duplicated universe.

    Skips symbols containing '^', non-common stock and symbols longer than six
    characters after normalizing class separators ('/', '\\', '.') to '-'.
    """
    symbols: List[str] = []
    seen = set()
    caret_filtered_count = 0
    non_common_filtered_count = 0
    length_filtered_count = 0

    for entry in entries:
        symbol = str(entry.get('symbol') or '').strip()
        name = str(entry.get('description') or '').strip()
        security_type = entry.get('type')

        if not symbol:
            continue

        if '^' in symbol:
            caret_filtered_count += 1
            continue

        if not is_common_stock(name, security_type):
            non_common_filtered_count += 1
            continue

        normalized = symbol.upper().replace('/', '-').replace('\\', '-').replace('.', '-')
        if len(normalized) > MAX_SYMBOL_LENGTH:
            length_filtered_count += 1
            continue

        if normalized not in seen:
            seen.add(normalized)
            symbols.append(normalized)

    if caret_filtered_count:
        logger.info(f"Filtered out {caret_filtered_count} tickers containing '^' character")
    if non_common_filtered_count:
        logger.info(f"Filtered out {non_common_filtered_count} non-common stock securities")
    if length_filtered_count:
        logger.info(f"Filtered out {length_filtered_count} tickers longer than {MAX_SYMBOL_LENGTH} characters")

    return sorted(symbols)


class NasdaqUniverse:
    """
    Cached loader for the NASDAQ common stock universe.

    Instances are callable so they can be registered directly as a
    SymbolPartitioner universe.
    """

    def __init__(self,
                 finnhub: Any,
                 ttl_seconds: float = SYMBOLS_CACHE_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.finnhub = finnhub
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._symbols: Optional[List[str]] = None
        self._loaded_at = 0.0

    def __call__(self) -> List[str]:
        return self.get_symbols()

    def get_symbols(self) -> List[str]:
        """
        Return the cached universe, reloading it once the cache expires.

        Raises:
            FatalRefreshError: If Finnhub returns no usable symbols
        """
        with self._lock:
            now = self._clock()
            if self._symbols is not None and now - self._loaded_at < self.ttl_seconds:
                return list(self._symbols)

            logger.info("Fetching NASDAQ symbols from Finnhub...")
            entries = self.finnhub.get_exchange_symbols(US_EXCHANGE, mic=NASDAQ_MIC)
            symbols = normalize_symbols(entries)
            if not symbols:
                raise FatalRefreshError("No valid NASDAQ symbols returned by Finnhub")

            logger.info(f"Successfully loaded {len(symbols)} NASDAQ common stock symbols")
            self._symbols = symbols
            self._loaded_at = now
            return list(symbols)

    def invalidate(self) -> None:
        with self._lock:
            self._symbols = None
