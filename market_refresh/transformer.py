"""
Transformation functions for refreshed market data.

Turns provider responses into validated StockRecord rows: growth
calculation, numeric sanitizing for the database columns, and the
fallbacks used when a provider has no value for a field.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Sequence

from data_layer import CompanyProfile, StockRecord, ValidationError

from .constants import TRADING_DAYS_12M, TRADING_DAYS_1M, TRADING_DAYS_6M
from .entities.market_data import Growth, Quote
from .exceptions import ProviderDataError
from .tase_symbols import TLV_CURRENCY, get_hebrew_name, get_tase_stock_info

logger = logging.getLogger(__name__)

NASDAQ_CURRENCY = "USD"

# Column precision of stock_records
PRICE_MAX_DIGITS, PRICE_DECIMAL_PLACES = 14, 4
GROWTH_MAX_DIGITS, GROWTH_DECIMAL_PLACES = 12, 2


# ============================================================================
# Numeric helpers
# ============================================================================

def calculate_growth(prices: Sequence[float], days_ago: int) -> float:
    """
    Percent change between the latest close and the close ``days_ago`` sessions back.

    With fewer than ``days_ago + 1`` closes the first available close is used.
    A missing or zero past price yields 0.

    Args:
        prices: Daily closes, oldest first
        days_ago: Number of trading sessions to look back

    Returns:
        Growth in percent
    """
    if not prices:
        return 0.0

    current_price = prices[-1]
    if len(prices) < days_ago + 1:
        past_price = prices[0]
    else:
        past_price = prices[-1 - days_ago]

    if not past_price:
        return 0.0

    return (current_price - past_price) / past_price * 100


def build_growth(symbol: str, closes: Sequence[float], current_price: Optional[float] = None) -> Growth:
    """Growth over the standard one, six and twelve month windows."""
    if current_price is None:
        current_price = closes[-1] if closes else 0.0
    return Growth(
        symbol=symbol,
        current_price=current_price,
        growth_1m=calculate_growth(closes, TRADING_DAYS_1M),
        growth_6m=calculate_growth(closes, TRADING_DAYS_6M),
        growth_12m=calculate_growth(closes, TRADING_DAYS_12M),
    )


def sanitize_decimal(value: Any, max_digits: int = 7, decimal_places: int = 2) -> Optional[Decimal]:
    """
    Sanitize a numeric value to fit within database constraints.

    Args:
        value: Value to sanitize
        max_digits: Maximum total digits (including decimal places)
        decimal_places: Number of decimal places

    Returns:
        Sanitized Decimal value or None if invalid
    """
    if value is None:
        return None

    try:
        decimal_val = Decimal(str(value))

        if decimal_val.is_nan() or decimal_val.is_infinite():
            return None

        rounded = round(decimal_val, decimal_places)

        max_value = Decimal(10 ** (max_digits - decimal_places)) - Decimal(10) ** -decimal_places
        if rounded < -max_value or rounded > max_value:
            logger.warning(f"Value {rounded} exceeds database constraints, setting to None")
            return None

        return rounded
    except (InvalidOperation, ValueError, TypeError):
        return None


def _growth_value(growth: Optional[Growth], attribute: str, existing: Optional[StockRecord] = None) -> Decimal:
    if growth is None:
        return getattr(existing, attribute) if existing is not None else Decimal("0")
    value = sanitize_decimal(getattr(growth, attribute), GROWTH_MAX_DIGITS, GROWTH_DECIMAL_PLACES)
    return value if value is not None else Decimal("0")


def _price_value(symbol: str, quote: Quote) -> Decimal:
    price = sanitize_decimal(quote.price, PRICE_MAX_DIGITS, PRICE_DECIMAL_PLACES)
    if price is None or price <= 0:
        raise ProviderDataError(symbol, f"invalid price {quote.price!r}")
    return price


# ============================================================================
# Record builders
# ============================================================================

def build_nasdaq_record(symbol: str,
                        quote: Quote,
                        growth: Optional[Growth],
                        profile: Optional[CompanyProfile],
                        existing: Optional[StockRecord],
                        now: Optional[datetime] = None) -> StockRecord:
    """
    Build the NASDAQ row for ``symbol``.

    Name and market cap come from a freshly fetched profile, then from the
    stored record, then default to the symbol and 0. Missing growth keeps
    the stored values, or 0 for a new symbol.

    Raises:
        ProviderDataError: If the quote cannot produce a valid record
    """
    if profile is not None:
        name = profile.name
        market_cap = profile.market_cap
    elif existing is not None:
        name = existing.name
        market_cap = existing.market_cap
    else:
        name = symbol
        market_cap = 0

    try:
        return StockRecord(
            symbol=symbol,
            exchange="nasdaq",
            name=name,
            price=_price_value(symbol, quote),
            currency=quote.currency or NASDAQ_CURRENCY,
            market_cap=market_cap,
            growth_1m=_growth_value(growth, "growth_1m", existing),
            growth_6m=_growth_value(growth, "growth_6m", existing),
            growth_12m=_growth_value(growth, "growth_12m", existing),
            updated_at=now or datetime.now(timezone.utc),
        )
    except ValidationError as e:
        raise ProviderDataError(symbol, str(e))


def build_tlv_record(symbol: str,
                     quote: Quote,
                     growth: Optional[Growth],
                     existing: Optional[StockRecord] = None,
                     now: Optional[datetime] = None) -> StockRecord:
    """
    Build the TLV row for ``symbol`` from its Yahoo ``.TA`` quote.

    The English name comes from the TLV list, falling back to Yahoo's name;
    the Hebrew name from the override table.

    Raises:
        ProviderDataError: If the quote cannot produce a valid record
    """
    stock_info = get_tase_stock_info(symbol)
    name = stock_info.name if stock_info else (quote.name or symbol)

    try:
        return StockRecord(
            symbol=symbol,
            exchange="tlv",
            name=name,
            name_hebrew=get_hebrew_name(symbol),
            price=_price_value(symbol, quote),
            currency=quote.currency or TLV_CURRENCY,
            market_cap=quote.market_cap or 0,
            growth_1m=_growth_value(growth, "growth_1m", existing),
            growth_6m=_growth_value(growth, "growth_6m", existing),
            growth_12m=_growth_value(growth, "growth_12m", existing),
            updated_at=now or datetime.now(timezone.utc),
        )
    except ValidationError as e:
        raise ProviderDataError(symbol, str(e))
