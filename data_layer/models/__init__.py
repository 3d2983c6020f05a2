"""
Models package initialization.
"""

from .company_profile import CompanyProfile
from .refresh_run import RefreshRun
from .stock_record import StockRecord, EXCHANGES

__all__ = [
	"CompanyProfile",
	"RefreshRun",
	"StockRecord",
	"EXCHANGES",
]
