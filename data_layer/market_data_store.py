"""
Market data store: the storage side of a refresh run.

Bundles the repositories behind the operations the refresh pipeline and the
status report need, so callers never deal with individual tables.
"""

import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional

from .database.connection_manager import DatabaseConnectionManager
from .database.schema import create_tables
from .models.company_profile import CompanyProfile
from .models.refresh_run import RefreshRun
from .models.stock_record import StockRecord
from .repositories import (
    CompanyProfilesRepository,
    RefreshRunsRepository,
    StockRecordsRepository,
)

logger = logging.getLogger(__name__)


class MarketDataStore:
    """PostgreSQL-backed storage for stock records, profiles and run history."""

    def __init__(self, db_manager: DatabaseConnectionManager):
        self.db_manager = db_manager
        self.stock_records = StockRecordsRepository(db_manager)
        self.company_profiles = CompanyProfilesRepository(db_manager)
        self.refresh_runs = RefreshRunsRepository(db_manager)

    def ensure_schema(self) -> None:
        create_tables(self.db_manager)

    # Stock data

    def get_stocks(self, exchange: Optional[str] = None) -> List[StockRecord]:
        return self.stock_records.get_all(exchange=exchange)

    def save_stocks(self, records: Iterable[StockRecord]) -> int:
        return self.stock_records.bulk_upsert(list(records))

    def save_profiles(self, profiles: Iterable[CompanyProfile]) -> int:
        return self.company_profiles.bulk_upsert(list(profiles))

    # Run reporting

    def record_run(self, result: Any) -> RefreshRun:
        """
        Persist a finished refresh result as a run history row.

        Args:
            result: The RefreshResult returned by the orchestrator

        Returns:
            The stored RefreshRun
        """
        run = RefreshRun.from_result(result)
        return self.refresh_runs.insert(run)

    def get_last_updated(self) -> Optional[datetime]:
        return self.stock_records.get_last_updated()

    def get_stock_count(self, exchange: Optional[str] = None) -> int:
        if exchange:
            return self.stock_records.count_by_exchange(exchange)
        return self.stock_records.count()

    def get_run_history(self, limit: int = 10) -> List[RefreshRun]:
        return self.refresh_runs.get_all(limit=limit)

    def close(self) -> None:
        self.db_manager.close_all_connections()
