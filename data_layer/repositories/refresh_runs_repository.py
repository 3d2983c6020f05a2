"""
Refresh run repository: run history for operational visibility.
"""

import logging
from typing import List, Optional

from psycopg2.extras import Json

from .base_repository import BaseRepository
from ..models.refresh_run import RefreshRun
from ..database.connection_manager import DatabaseConnectionManager
from ..exceptions import DatabaseQueryError

_COLUMNS = """
    id, label, exchange, success, total_symbols, processed, failed,
    duration_ms, error_sample, fatal_error, started_at, finished_at
"""


class RefreshRunsRepository(BaseRepository[RefreshRun]):
    """
    Repository for refresh run history rows.
    """

    def __init__(self, db_manager: DatabaseConnectionManager):
        super().__init__(db_manager)
        self.logger = logging.getLogger(__name__)
        self.table_name = "refresh_runs"

    # ============================================================================
    # WRITE OPERATIONS
    # ============================================================================

    def insert(self, entity: RefreshRun) -> RefreshRun:
        """
        Store one run and set its database id.

        Args:
            entity: RefreshRun to store

        Returns:
            The stored run with ``id`` populated

        Raises:
            DatabaseQueryError: If database operation fails
        """
        insert_query = """
        INSERT INTO refresh_runs (
            label, exchange, success, total_symbols, processed, failed,
            duration_ms, error_sample, fatal_error, started_at, finished_at
        )
        VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        RETURNING id;
        """

        try:
            with self.db_manager.get_cursor_context() as cursor:
                cursor.execute(insert_query, (
                    entity.label,
                    entity.exchange,
                    entity.success,
                    entity.total_symbols,
                    entity.processed,
                    entity.failed,
                    entity.duration_ms,
                    Json(entity.error_sample),
                    entity.fatal_error,
                    entity.started_at,
                    entity.finished_at,
                ))
                entity.id = cursor.fetchone()[0]
        except Exception as e:
            raise DatabaseQueryError("insert refresh run", str(e))

        self.logger.info(f"Recorded refresh run {entity.id} ({entity.label})")
        return entity

    def bulk_upsert(self, entities: List[RefreshRun]) -> int:
        """History rows are append-only; each run is inserted."""
        for entity in entities:
            self.insert(entity)
        return len(entities)

    # ============================================================================
    # READ OPERATIONS
    # ============================================================================

    def get_all(self, limit: Optional[int] = None) -> List[RefreshRun]:
        """
        Retrieve runs, most recent first.

        Args:
            limit: Maximum number of runs to return

        Returns:
            List of RefreshRun
        """
        query = f"SELECT {_COLUMNS} FROM refresh_runs ORDER BY finished_at DESC"
        params: list = []
        if limit is not None:
            query += " LIMIT %s"
            params.append(limit)

        try:
            with self.db_manager.get_cursor_context(commit=False) as cursor:
                cursor.execute(query, params)
                rows = cursor.fetchall()
        except Exception as e:
            raise DatabaseQueryError("get refresh runs", str(e))

        return [
            RefreshRun(
                id=row[0],
                label=row[1],
                exchange=row[2],
                success=row[3],
                total_symbols=row[4],
                processed=row[5],
                failed=row[6],
                duration_ms=row[7],
                error_sample=list(row[8] or []),
                fatal_error=row[9],
                started_at=row[10],
                finished_at=row[11],
            )
            for row in rows
        ]
