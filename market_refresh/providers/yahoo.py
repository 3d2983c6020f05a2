"""
Yahoo Finance client built on yahooquery.

One Ticker request is one rate limiter token. Yahoo answers unknown symbols
with an error object or a plain message instead of an HTTP error, so both
shapes are translated into ProviderDataError here.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import pandas as pd
import yahooquery as yq

from ..constants import TOKEN_WAIT_TIMEOUT_SECONDS, YAHOO_PROVIDER
from ..deadline import RunDeadline, bounded_wait
from ..entities.market_data import Growth, Quote
from ..exceptions import ProviderDataError, ProviderError, RateLimitExceededError
from ..rate_limiter import RateLimiter
from ..transformer import build_growth

logger = logging.getLogger(__name__)

HISTORY_PERIOD = "1y"
HISTORY_INTERVAL = "1d"


# ============================================================================
# Yahoo response helpers
# ============================================================================

def has_error(item: Dict[str, Any]) -> bool:
    """Check if the response item contains an error.

    Expected structure: {'AAPL': {'error': {'code': 404, 'type': 'NotFoundError',
                                           'message': '...', 'symbol': 'AAPL'}}}
    """
    return bool(item.get('error'))


def extract_error_message(item: Dict[str, Any]) -> Optional[str]:
    """Return the error message of a response item, or None when there is no error."""
    if error_obj := item.get('error'):
        if isinstance(error_obj, dict):
            return error_obj.get('message') or error_obj.get('type')
        return str(error_obj)

    return None


def _module_item(data: Any, yahoo_symbol: str) -> Dict[str, Any]:
    """Pick one symbol's entry out of a yahooquery module response."""
    if not isinstance(data, dict):
        raise ProviderDataError(yahoo_symbol, f"unexpected response type {type(data).__name__}")

    item = data.get(yahoo_symbol)
    if item is None:
        raise ProviderDataError(yahoo_symbol, "no data returned")
    # yahooquery reports some failures as a plain message string
    if isinstance(item, str):
        raise ProviderDataError(yahoo_symbol, item)
    if has_error(item):
        raise ProviderDataError(yahoo_symbol, extract_error_message(item) or "unknown error")
    return item


def closes_from_history(history: Any, yahoo_symbol: str) -> List[float]:
    """
    Daily closes, oldest first, from a ``Ticker.history`` result.

    Raises:
        ProviderDataError: If the history holds no closes
    """
    if isinstance(history, dict):
        message = history.get(yahoo_symbol) or "no price history"
        raise ProviderDataError(yahoo_symbol, str(message))

    if not isinstance(history, pd.DataFrame) or history.empty or 'close' not in history.columns:
        raise ProviderDataError(yahoo_symbol, "no price history")

    closes = history['close'].dropna()
    closes = closes[closes > 0]
    if closes.empty:
        raise ProviderDataError(yahoo_symbol, "no price history")
    return [float(value) for value in closes.tolist()]


class YahooFinanceClient:
    """Prices and one-year growth from Yahoo Finance."""

    def __init__(self,
                 rate_limiter: RateLimiter,
                 ticker_factory: Callable[[str], Any] = yq.Ticker,
                 token_timeout_seconds: float = TOKEN_WAIT_TIMEOUT_SECONDS,
                 sleep: Callable[[float], None] = time.sleep):
        self.rate_limiter = rate_limiter
        self._ticker_factory = ticker_factory
        self.token_timeout_seconds = token_timeout_seconds
        self._sleep = sleep

    def _acquire(self, deadline: Optional[RunDeadline]) -> None:
        if deadline is not None:
            deadline.check()
        timeout = bounded_wait(self.token_timeout_seconds, deadline)
        if not self.rate_limiter.wait_for_token(timeout, sleep=self._sleep):
            if deadline is not None:
                deadline.check()
            raise RateLimitExceededError(YAHOO_PROVIDER, timeout)

    def get_price(self, yahoo_symbol: str, deadline: Optional[RunDeadline] = None) -> Quote:
        """
        Latest price of ``yahoo_symbol`` from the ``price`` module.

        Raises:
            RunDeadlineError: If the run deadline passed before the request could start
            RateLimitExceededError: If no token became available in time
            ProviderError: If the request itself failed
            ProviderDataError: If Yahoo has no usable price
        """
        self._acquire(deadline)
        try:
            data = self._ticker_factory(yahoo_symbol).price
        except Exception as e:
            raise ProviderError(YAHOO_PROVIDER, f"price request for {yahoo_symbol} failed: {e}")

        item = _module_item(data, yahoo_symbol)
        price = item.get('regularMarketPrice')
        if not isinstance(price, (int, float)) or price <= 0:
            raise ProviderDataError(yahoo_symbol, "no price available")

        market_cap = item.get('marketCap')
        return Quote(
            symbol=yahoo_symbol,
            price=float(price),
            currency=item.get('currency') or None,
            previous_close=item.get('regularMarketPreviousClose'),
            change=item.get('regularMarketChange'),
            change_pct=item.get('regularMarketChangePercent'),
            market_cap=int(market_cap) if isinstance(market_cap, (int, float)) and market_cap > 0 else None,
            name=item.get('longName') or item.get('shortName'),
        )

    def get_growth(self, yahoo_symbol: str, deadline: Optional[RunDeadline] = None) -> Growth:
        """
        One, six and twelve month growth from a year of daily closes.

        Raises:
            RunDeadlineError: If the run deadline passed before the request could start
            RateLimitExceededError: If no token became available in time
            ProviderError: If the request itself failed
            ProviderDataError: If Yahoo has no price history
        """
        self._acquire(deadline)
        try:
            history = self._ticker_factory(yahoo_symbol).history(period=HISTORY_PERIOD, interval=HISTORY_INTERVAL)
        except Exception as e:
            raise ProviderError(YAHOO_PROVIDER, f"history request for {yahoo_symbol} failed: {e}")

        closes = closes_from_history(history, yahoo_symbol)
        logger.debug(f"Loaded {len(closes)} daily closes for {yahoo_symbol}")
        return build_growth(yahoo_symbol, closes)
