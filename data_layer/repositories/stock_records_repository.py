"""
Stock record repository for database operations.
"""

import logging
from datetime import datetime
from typing import List, Optional

from .base_repository import BaseRepository
from ..models.stock_record import StockRecord
from ..database.connection_manager import DatabaseConnectionManager
from ..exceptions import DatabaseQueryError, StockNotFoundError

_COLUMNS = """
    symbol, exchange, name, name_hebrew, price, currency,
    market_cap, growth_1m, growth_6m, growth_12m, updated_at
"""


class StockRecordsRepository(BaseRepository[StockRecord]):
    """
    Repository for refreshed stock records keyed by (symbol, exchange).
    """

    def __init__(self, db_manager: DatabaseConnectionManager):
        """
        Initialize the stock record repository.

        Args:
            db_manager: Database connection manager instance
        """
        super().__init__(db_manager)
        self.logger = logging.getLogger(__name__)
        self.table_name = "stock_records"

    # ============================================================================
    # WRITE OPERATIONS
    # ============================================================================

    def bulk_upsert(self, entities: List[StockRecord]) -> int:
        """
        Insert new stock records and overwrite existing ones in one transaction.

        Args:
            entities: List of StockRecord entities to write

        Returns:
            Number of rows written

        Raises:
            DatabaseQueryError: If database operation fails
        """
        if not entities:
            return 0

        upsert_query = f"""
        INSERT INTO stock_records ({_COLUMNS})
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        ON CONFLICT (symbol, exchange) DO UPDATE SET
            name = EXCLUDED.name,
            name_hebrew = COALESCE(EXCLUDED.name_hebrew, stock_records.name_hebrew),
            price = EXCLUDED.price,
            currency = EXCLUDED.currency,
            market_cap = EXCLUDED.market_cap,
            growth_1m = EXCLUDED.growth_1m,
            growth_6m = EXCLUDED.growth_6m,
            growth_12m = EXCLUDED.growth_12m,
            updated_at = EXCLUDED.updated_at;
        """

        data = [
            (
                record.symbol,
                record.exchange,
                record.name,
                record.name_hebrew,
                record.price,
                record.currency,
                record.market_cap,
                record.growth_1m,
                record.growth_6m,
                record.growth_12m,
                record.updated_at,
            )
            for record in entities
        ]

        try:
            with self.db_manager.get_cursor_context() as cursor:
                cursor.executemany(upsert_query, data)
        except Exception as e:
            raise DatabaseQueryError("bulk upsert stock records", str(e))

        self.logger.info(f"Bulk upserted {len(data)} stock records")
        return len(data)

    # ============================================================================
    # READ OPERATIONS
    # ============================================================================

    def get_all(self, limit: Optional[int] = None, exchange: Optional[str] = None) -> List[StockRecord]:
        """
        Retrieve stock records, optionally for a single exchange.

        Args:
            limit: Maximum number of records to return
            exchange: Only return records of this exchange

        Returns:
            List of StockRecord ordered by symbol
        """
        query = f"SELECT {_COLUMNS} FROM stock_records"
        params: list = []
        if exchange:
            query += " WHERE exchange = %s"
            params.append(exchange)
        query += " ORDER BY symbol"
        if limit is not None:
            query += " LIMIT %s"
            params.append(limit)

        try:
            with self.db_manager.get_cursor_context(commit=False) as cursor:
                cursor.execute(query, params)
                rows = cursor.fetchall()
        except Exception as e:
            raise DatabaseQueryError("get stock records", str(e))

        return [StockRecord.from_db_row(row) for row in rows]

    def get_by_symbol(self, symbol: str, exchange: str) -> StockRecord:
        """
        Retrieve one stock record.

        Raises:
            StockNotFoundError: If no record exists
        """
        query = f"SELECT {_COLUMNS} FROM stock_records WHERE symbol = %s AND exchange = %s;"

        try:
            with self.db_manager.get_cursor_context(commit=False) as cursor:
                cursor.execute(query, (symbol.strip().upper(), exchange))
                row = cursor.fetchone()
        except Exception as e:
            raise DatabaseQueryError("get stock record by symbol", str(e))

        if row is None:
            raise StockNotFoundError(symbol, exchange)
        return StockRecord.from_db_row(row)

    def count_by_exchange(self, exchange: str) -> int:
        try:
            with self.db_manager.get_cursor_context(commit=False) as cursor:
                cursor.execute("SELECT COUNT(*) FROM stock_records WHERE exchange = %s;", (exchange,))
                result = cursor.fetchone()
                return result[0] if result else 0
        except Exception as e:
            raise DatabaseQueryError("count stock records by exchange", str(e))

    def get_last_updated(self) -> Optional[datetime]:
        """
        Return the most recent refresh timestamp across all records.

        Returns:
            Latest updated_at, or None when the table is empty
        """
        try:
            with self.db_manager.get_cursor_context(commit=False) as cursor:
                cursor.execute("SELECT MAX(updated_at) FROM stock_records;")
                result = cursor.fetchone()
                return result[0] if result else None
        except Exception as e:
            raise DatabaseQueryError("get last updated", str(e))
