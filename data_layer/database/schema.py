"""
Table definitions for the market data store.
"""

import logging
from typing import List

from .connection_manager import DatabaseConnectionManager
from ..exceptions import DatabaseQueryError

logger = logging.getLogger(__name__)


SCHEMA_STATEMENTS: List[str] = [
    """
    CREATE TABLE IF NOT EXISTS stock_records (
        symbol VARCHAR(20) NOT NULL,
        exchange VARCHAR(10) NOT NULL,
        name VARCHAR(255) NOT NULL,
        name_hebrew VARCHAR(255),
        price NUMERIC(14, 4) NOT NULL,
        currency VARCHAR(3) NOT NULL,
        market_cap BIGINT NOT NULL DEFAULT 0,
        growth_1m NUMERIC(12, 2) NOT NULL DEFAULT 0,
        growth_6m NUMERIC(12, 2) NOT NULL DEFAULT 0,
        growth_12m NUMERIC(12, 2) NOT NULL DEFAULT 0,
        updated_at TIMESTAMPTZ NOT NULL,
        PRIMARY KEY (symbol, exchange)
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS company_profiles (
        symbol VARCHAR(20) PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        exchange VARCHAR(100),
        industry VARCHAR(255),
        market_cap BIGINT NOT NULL DEFAULT 0,
        logo TEXT,
        website TEXT,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS refresh_runs (
        id SERIAL PRIMARY KEY,
        label VARCHAR(50) NOT NULL,
        exchange VARCHAR(10) NOT NULL,
        success BOOLEAN NOT NULL,
        total_symbols INTEGER NOT NULL,
        processed INTEGER NOT NULL,
        failed INTEGER NOT NULL,
        duration_ms BIGINT NOT NULL,
        error_sample JSONB NOT NULL DEFAULT '[]'::jsonb,
        fatal_error TEXT,
        started_at TIMESTAMPTZ NOT NULL,
        finished_at TIMESTAMPTZ NOT NULL
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_stock_records_updated_at ON stock_records (updated_at);",
    "CREATE INDEX IF NOT EXISTS idx_refresh_runs_finished_at ON refresh_runs (finished_at DESC);",
]


def create_tables(db_manager: DatabaseConnectionManager) -> int:
    """
    Create the market data tables if they do not exist yet.

    Args:
        db_manager: Database connection manager

    Returns:
        Number of statements executed
    """
    try:
        with db_manager.get_cursor_context() as cursor:
            for statement in SCHEMA_STATEMENTS:
                cursor.execute(statement)
    except Exception as e:
        raise DatabaseQueryError("create tables", str(e))

    logger.info(f"Ensured schema ({len(SCHEMA_STATEMENTS)} statements)")
    return len(SCHEMA_STATEMENTS)
