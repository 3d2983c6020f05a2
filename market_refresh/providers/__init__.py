"""
Market data provider clients.
"""

from .finnhub import FinnhubClient
from .yahoo import YahooFinanceClient

__all__ = ["FinnhubClient", "YahooFinanceClient"]
