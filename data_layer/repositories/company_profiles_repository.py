"""
Company profile repository for database operations.
"""

import logging
from typing import List, Optional

from .base_repository import BaseRepository
from ..models.company_profile import CompanyProfile
from ..database.connection_manager import DatabaseConnectionManager
from ..exceptions import DatabaseQueryError


class CompanyProfilesRepository(BaseRepository[CompanyProfile]):
    """
    Repository for company profiles keyed by symbol.
    """

    def __init__(self, db_manager: DatabaseConnectionManager):
        super().__init__(db_manager)
        self.logger = logging.getLogger(__name__)
        self.table_name = "company_profiles"

    # ============================================================================
    # WRITE OPERATIONS
    # ============================================================================

    def bulk_upsert(self, entities: List[CompanyProfile]) -> int:
        """
        Insert or refresh company profiles in a single transaction.

        Args:
            entities: List of CompanyProfile entities to write

        Returns:
            Number of rows written

        Raises:
            DatabaseQueryError: If database operation fails
        """
        if not entities:
            return 0

        upsert_query = """
        INSERT INTO company_profiles (symbol, name, exchange, industry, market_cap, logo, website, updated_at)
        VALUES (%s, %s, %s, %s, %s, %s, %s, NOW())
        ON CONFLICT (symbol) DO UPDATE SET
            name = EXCLUDED.name,
            exchange = EXCLUDED.exchange,
            industry = EXCLUDED.industry,
            market_cap = EXCLUDED.market_cap,
            logo = EXCLUDED.logo,
            website = EXCLUDED.website,
            updated_at = EXCLUDED.updated_at;
        """

        data = [
            (p.symbol, p.name, p.exchange, p.industry, p.market_cap, p.logo, p.website)
            for p in entities
        ]

        try:
            with self.db_manager.get_cursor_context() as cursor:
                cursor.executemany(upsert_query, data)
        except Exception as e:
            raise DatabaseQueryError("bulk upsert company profiles", str(e))

        self.logger.info(f"Bulk upserted {len(data)} company profiles")
        return len(data)

    # ============================================================================
    # READ OPERATIONS
    # ============================================================================

    def get_all(self, limit: Optional[int] = None) -> List[CompanyProfile]:
        query = """
        SELECT symbol, name, exchange, industry, market_cap, logo, website
        FROM company_profiles
        ORDER BY symbol
        """
        params: list = []
        if limit is not None:
            query += " LIMIT %s"
            params.append(limit)

        try:
            with self.db_manager.get_cursor_context(commit=False) as cursor:
                cursor.execute(query, params)
                rows = cursor.fetchall()
        except Exception as e:
            raise DatabaseQueryError("get company profiles", str(e))

        return [
            CompanyProfile(
                symbol=row[0],
                name=row[1],
                exchange=row[2],
                industry=row[3],
                market_cap=int(row[4] or 0),
                logo=row[5],
                website=row[6],
            )
            for row in rows
        ]
