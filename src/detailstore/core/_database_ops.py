"""Database operation helpers for the persistence pipeline.

Consolidates the repeated `with self._db.connection() as conn:` pattern.
"""

from typing import TYPE_CHECKING, Any

from sqlalchemy import Delete, Executable, Insert, Update
from sqlalchemy.engine import Row

if TYPE_CHECKING:
    from detailstore.core.database import DetailDB


class DatabaseOps:
    """Helper for common database operations.

    Centralizes connection management so callers only build statements.
    """

    def __init__(self, db: "DetailDB") -> None:
        self._db = db

    def execute_fetchone(self, query: Executable) -> Row[Any] | None:
        """Execute query and return single row or None."""
        with self._db.connection() as conn:
            result = conn.execute(query)
            return result.fetchone()

    def execute_fetchall(self, query: Executable) -> list[Row[Any]]:
        """Execute query and return all rows."""
        with self._db.connection() as conn:
            result = conn.execute(query)
            return list(result.fetchall())

    def execute_scalar(self, query: Executable) -> Any:
        """Execute query and return the first column of the first row."""
        with self._db.connection() as conn:
            return conn.execute(query).scalar()

    def execute_insert(self, stmt: Insert, *, returning: Any = None) -> Any:
        """Execute insert statement and return the generated key.

        Args:
            stmt: INSERT statement
            returning: Column to return when the dialect supports RETURNING;
                otherwise the DBAPI lastrowid is returned

        Returns:
            Generated key value (None when nothing identifies the row)

        Raises:
            ValueError: If zero rows are affected
        """
        with self._db.connection() as conn:
            if returning is not None and conn.dialect.insert_returning:
                result = conn.execute(stmt.returning(returning))
                row = result.fetchone()
                if row is None:
                    raise ValueError("execute_insert: zero rows affected")
                return row[0]
            result = conn.execute(stmt)
            if result.rowcount == 0:
                raise ValueError("execute_insert: zero rows affected")
            return result.lastrowid

    def execute_update(self, stmt: Update) -> None:
        """Execute update statement.

        Raises:
            ValueError: If zero rows are affected (target row does not exist)
        """
        with self._db.connection() as conn:
            result = conn.execute(stmt)
            if result.rowcount == 0:
                raise ValueError("execute_update: zero rows affected - target row does not exist")

    def execute_delete(self, stmt: Delete) -> None:
        """Execute delete statement.

        Raises:
            ValueError: If zero rows are affected (target row does not exist)
        """
        with self._db.connection() as conn:
            result = conn.execute(stmt)
            if result.rowcount == 0:
                raise ValueError("execute_delete: zero rows affected - target row does not exist")
