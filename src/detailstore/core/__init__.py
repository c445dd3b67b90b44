# src/detailstore/core/__init__.py
"""Core infrastructure: schema cache, resolver, lifecycle hooks, queries, persistence."""

from detailstore.core.cache import CacheProvider, Clock, MemoryCacheProvider, SystemClock
from detailstore.core.config import (
    DatabaseSettings,
    DetailStoreSettings,
    LoggingSettings,
    SchemaCacheSettings,
    load_settings,
)
from detailstore.core.database import DetailDB
from detailstore.core.identity import is_identity_token
from detailstore.core.lifecycle import after_read, after_write, before_write, partition_attributes
from detailstore.core.logging import configure_logging, get_logger
from detailstore.core.query import DetailQueryBuilder, QueryBuilder
from detailstore.core.repository import EntityRepository
from detailstore.core.resolver import resolve_column, resolve_column_strict, resolve_columns
from detailstore.core.schema_cache import SchemaCache, SchemaIntrospector, SQLAlchemyIntrospector
from detailstore.core.store import DetailStore

__all__ = [
    "CacheProvider",
    "Clock",
    "DatabaseSettings",
    "DetailDB",
    "DetailQueryBuilder",
    "DetailStore",
    "DetailStoreSettings",
    "EntityRepository",
    "LoggingSettings",
    "MemoryCacheProvider",
    "QueryBuilder",
    "SQLAlchemyIntrospector",
    "SchemaCache",
    "SchemaCacheSettings",
    "SchemaIntrospector",
    "SystemClock",
    "after_read",
    "after_write",
    "before_write",
    "configure_logging",
    "get_logger",
    "is_identity_token",
    "load_settings",
    "partition_attributes",
    "resolve_column",
    "resolve_column_strict",
    "resolve_columns",
]
