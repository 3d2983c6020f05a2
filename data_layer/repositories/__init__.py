"""
Repositories package initialization.
"""

from .base_repository import BaseRepository
from .company_profiles_repository import CompanyProfilesRepository
from .refresh_runs_repository import RefreshRunsRepository
from .stock_records_repository import StockRecordsRepository

__all__ = [
    "BaseRepository",
    "CompanyProfilesRepository",
    "RefreshRunsRepository",
    "StockRecordsRepository",
]
