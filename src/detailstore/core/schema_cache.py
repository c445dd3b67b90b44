# src/detailstore/core/schema_cache.py
"""Declared-column cache for entity tables.

Column listings come from schema introspection and are memoized per
table for a fixed TTL. Within one TTL window every resolution decision
for a table sees the same snapshot. There is no invalidation API: a
schema change becomes visible only once the entry expires.

Concurrency: this module adds no locking of its own. It relies on the
CacheProvider contract that concurrent misses for the same key are
de-duplicated (one introspection call per miss).
"""

from __future__ import annotations

from typing import Protocol

from sqlalchemy import inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import NoSuchTableError

from detailstore.contracts.resolution import DETAIL_COLUMN
from detailstore.core.cache import CacheProvider
from detailstore.core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SCHEMA_TTL_SECONDS = 300
DEFAULT_SCHEMA_KEY_PREFIX = "schema."


class SchemaIntrospector(Protocol):
    """Source of truth for a table's declared columns."""

    def list_columns(self, table: str) -> list[str]:
        """Return the table's column names in declaration order."""
        ...


class SQLAlchemyIntrospector:
    """SchemaIntrospector backed by SQLAlchemy's runtime inspection API.

    A fresh Inspector is created per call; Inspector instances memoize
    reflection results and would otherwise outlive the cache TTL.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def list_columns(self, table: str) -> list[str]:
        """List the columns of ``table``.

        A table that does not exist has no declared columns, so an empty
        list is returned rather than an error.
        """
        try:
            columns = inspect(self._engine).get_columns(table)
        except NoSuchTableError:
            logger.warning("Table not found during column introspection", table=table)
            return []
        return [column["name"] for column in columns]


class SchemaCache:
    """Per-table declared-column snapshots with a fixed TTL."""

    def __init__(
        self,
        introspector: SchemaIntrospector,
        cache: CacheProvider,
        *,
        ttl_seconds: float = DEFAULT_SCHEMA_TTL_SECONDS,
        key_prefix: str = DEFAULT_SCHEMA_KEY_PREFIX,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self._introspector = introspector
        self._cache = cache
        self._ttl_seconds = ttl_seconds
        self._key_prefix = key_prefix

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    def cache_key(self, table: str) -> str:
        return f"{self._key_prefix}{table}"

    def columns_of(self, table: str) -> tuple[str, ...]:
        """Get the declared columns of ``table`` (ordered, cached).

        Args:
            table: Table identifier

        Returns:
            Declared column names in table order
        """
        return self._cache.remember(self.cache_key(table), self._ttl_seconds, lambda: self._introspect(table))

    def has_detail_column(self, table: str) -> bool:
        return DETAIL_COLUMN in self.columns_of(table)

    def _introspect(self, table: str) -> tuple[str, ...]:
        columns = tuple(self._introspector.list_columns(table))
        logger.debug("Schema cache miss", table=table, column_count=len(columns))
        return columns
