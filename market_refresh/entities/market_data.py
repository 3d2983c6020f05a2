"""
Provider-neutral market data returned by the provider clients.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Quote:
    """Latest price of a symbol."""
    symbol: str
    price: float
    currency: Optional[str] = None
    previous_close: Optional[float] = None
    change: Optional[float] = None
    change_pct: Optional[float] = None
    market_cap: Optional[int] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class Growth:
    """Price growth in percent over one, six and twelve months."""
    symbol: str
    current_price: float
    growth_1m: float
    growth_6m: float
    growth_12m: float
