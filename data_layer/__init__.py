"""
Data Layer Package for the Stock Screener

This package provides the storage side of the market-data refresh pipeline:
database connection management, models, repositories, and the MarketDataStore
facade used by refresh runs and the status report.
"""

from .models.company_profile import CompanyProfile
from .models.refresh_run import RefreshRun
from .models.stock_record import StockRecord
from .repositories.stock_records_repository import StockRecordsRepository
from .repositories.company_profiles_repository import CompanyProfilesRepository
from .repositories.refresh_runs_repository import RefreshRunsRepository
from .database.connection_manager import DatabaseConnectionManager
from .market_data_store import MarketDataStore
from .exceptions import (
    DataLayerError,
    DatabaseConnectionError,
    DatabaseQueryError,
    StockNotFoundError,
    ValidationError
)

__version__ = "1.0.0"
__all__ = [
    "CompanyProfile",
    "RefreshRun",
    "StockRecord",
    "StockRecordsRepository",
    "CompanyProfilesRepository",
    "RefreshRunsRepository",
    "DatabaseConnectionManager",
    "MarketDataStore",
    "DataLayerError",
    "DatabaseConnectionError",
    "DatabaseQueryError",
    "StockNotFoundError",
    "ValidationError",
]
