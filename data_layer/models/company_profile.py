"""
Company profile model.
"""

from dataclasses import dataclass
from typing import Optional, Dict, Any

from ..exceptions import ValidationError


@dataclass
class CompanyProfile:
    """Static company information fetched once per symbol."""
    symbol: str
    name: str
    exchange: Optional[str] = None
    industry: Optional[str] = None
    market_cap: int = 0
    logo: Optional[str] = None
    website: Optional[str] = None

    def __post_init__(self):
        self.symbol = (self.symbol or "").strip().upper()
        self.name = (self.name or "").strip()
        if not self.symbol:
            raise ValidationError("symbol", self.symbol, "Symbol cannot be empty")
        if not self.name:
            raise ValidationError("name", self.name, "Company name cannot be empty")
        if self.market_cap < 0:
            raise ValidationError("market_cap", self.market_cap, "Market cap cannot be negative")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'symbol': self.symbol,
            'name': self.name,
            'exchange': self.exchange,
            'industry': self.industry,
            'marketCap': self.market_cap,
            'logo': self.logo,
            'website': self.website,
        }
