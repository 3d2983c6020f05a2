"""
Stock record model representing one screener row.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional, Dict, Any
import re

from ..exceptions import ValidationError

EXCHANGES = ("nasdaq", "tlv")


def _to_decimal(value: Any, field_name: str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    try:
        dec = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValidationError(field_name, value, f"Invalid numeric value: {e}")
    if not dec.is_finite():
        raise ValidationError(field_name, value, "Value must be finite")
    return dec


@dataclass
class StockRecord:
    """
    Represents a refreshed stock with its latest price and growth figures.

    Attributes:
        symbol: Ticker symbol without exchange suffix (part of the primary key)
        exchange: 'nasdaq' or 'tlv' (part of the primary key)
        name: Display name
        price: Latest price in ``currency``
        currency: ISO currency code
        market_cap: Market capitalization (0 when unknown)
        growth_1m: One month growth in percent
        growth_6m: Six month growth in percent
        growth_12m: Twelve month growth in percent
        updated_at: When the record was refreshed (UTC)
        name_hebrew: Hebrew display name, TLV stocks only
    """
    symbol: str
    exchange: str
    name: str
    price: Decimal
    currency: str = "USD"
    market_cap: int = 0
    growth_1m: Decimal = Decimal("0")
    growth_6m: Decimal = Decimal("0")
    growth_12m: Decimal = Decimal("0")
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    name_hebrew: Optional[str] = None

    def __post_init__(self):
        """Clean and validate the record after initialization."""
        self.symbol = (self.symbol or "").strip().upper()
        self.exchange = (self.exchange or "").strip().lower()
        self.currency = (self.currency or "").strip().upper()
        self.name = (self.name or "").strip() or self.symbol
        self.price = _to_decimal(self.price, "price")
        self.growth_1m = _to_decimal(self.growth_1m, "growth_1m")
        self.growth_6m = _to_decimal(self.growth_6m, "growth_6m")
        self.growth_12m = _to_decimal(self.growth_12m, "growth_12m")
        self.validate()

    def validate(self):
        """
        Validate stock record data.

        Raises:
            ValidationError: If validation fails
        """
        if not self.symbol:
            raise ValidationError("symbol", self.symbol, "Symbol cannot be empty")

        if len(self.symbol) > 20:
            raise ValidationError("symbol", self.symbol, "Symbol cannot be longer than 20 characters")

        if not re.match(r'^[A-Z0-9.-]+$', self.symbol):
            raise ValidationError(
                "symbol",
                self.symbol,
                "Symbol can only contain uppercase letters, numbers, dots, and hyphens"
            )

        if self.exchange not in EXCHANGES:
            raise ValidationError("exchange", self.exchange, f"Exchange must be one of {EXCHANGES}")

        if len(self.currency) != 3:
            raise ValidationError("currency", self.currency, "Currency must be a 3-letter code")

        if len(self.name) > 255:
            raise ValidationError("name", self.name, "Name cannot be longer than 255 characters")

        if self.price <= 0:
            raise ValidationError("price", self.price, "Price must be positive")

        if self.market_cap is None or self.market_cap < 0:
            raise ValidationError("market_cap", self.market_cap, "Market cap cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the record to its JSON-friendly form.

        Returns:
            Dictionary representation of the stock record
        """
        result: Dict[str, Any] = {
            'symbol': self.symbol,
            'name': self.name,
            'exchange': self.exchange,
            'price': float(self.price),
            'currency': self.currency,
            'marketCap': self.market_cap,
            'growth1m': float(self.growth_1m),
            'growth6m': float(self.growth_6m),
            'growth12m': float(self.growth_12m),
            'updatedAt': self.updated_at.isoformat(),
        }
        if self.name_hebrew:
            result['nameHebrew'] = self.name_hebrew
        return result

    @classmethod
    def from_db_row(cls, row: tuple) -> 'StockRecord':
        """
        Create a StockRecord from a stock_records row.

        Column order: symbol, exchange, name, name_hebrew, price, currency,
        market_cap, growth_1m, growth_6m, growth_12m, updated_at.
        """
        return cls(
            symbol=row[0],
            exchange=row[1],
            name=row[2],
            name_hebrew=row[3],
            price=row[4],
            currency=row[5],
            market_cap=int(row[6] or 0),
            growth_1m=row[7],
            growth_6m=row[8],
            growth_12m=row[9],
            updated_at=row[10],
        )

    def __repr__(self) -> str:
        return f"StockRecord(symbol='{self.symbol}', exchange='{self.exchange}', price={self.price})"
