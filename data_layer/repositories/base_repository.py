"""
Abstract base repository class.
"""

import logging
from abc import ABC, abstractmethod
from typing import TypeVar, Generic, List, Optional

from ..database.connection_manager import DatabaseConnectionManager
from ..exceptions import DatabaseQueryError


T = TypeVar('T')


class BaseRepository(ABC, Generic[T]):
    """
    Abstract base class for repositories providing common database operations.
    Organized by: WRITE and READ operations.
    """

    def __init__(self, db_manager: DatabaseConnectionManager):
        """
        Initialize the repository with a database manager.

        Args:
            db_manager: Database connection manager instance
        """
        self.db_manager = db_manager
        self.logger = logging.getLogger(__name__)
        self.table_name = ""  # To be set by subclasses

    # ============================================================================
    # WRITE OPERATIONS
    # ============================================================================

    @abstractmethod
    def bulk_upsert(self, entities: List[T]) -> int:
        """
        Insert or update multiple entities in a single transaction.

        Args:
            entities: List of entities to write

        Returns:
            Number of rows written

        Raises:
            DatabaseQueryError: If database operation fails
        """
        pass

    # ============================================================================
    # READ OPERATIONS
    # ============================================================================

    @abstractmethod
    def get_all(self, limit: Optional[int] = None) -> List[T]:
        """
        Retrieve entities, optionally limited.

        Args:
            limit: Maximum number of entities to return

        Returns:
            List of entities

        Raises:
            DatabaseQueryError: If database operation fails
        """
        pass

    def count(self) -> int:
        """
        Count the total number of entities.

        Returns:
            Total count of entities

        Raises:
            DatabaseQueryError: If database operation fails
        """
        try:
            with self.db_manager.get_cursor_context(commit=False) as cursor:
                cursor.execute(f"SELECT COUNT(*) FROM {self.table_name};")
                result = cursor.fetchone()
                return result[0] if result else 0
        except Exception as e:
            raise DatabaseQueryError(f"count {self.table_name}", str(e))
