# src/detailstore/core/store.py
"""DetailStore: entry point wiring database, schema cache and queries.

    db = DetailDB("sqlite:///./app.db")
    store = DetailStore(db)
    posts = store.repository(Post)
    post = posts.create(title="Hello")          # title lands in detail
    posts.where("title", "Hello").get()

The cache provider is process-wide by default, so every store in the
process shares declared-column snapshots. Pass a provider to isolate one.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Self

from detailstore.core.cache import CacheProvider, MemoryCacheProvider
from detailstore.core.database import DetailDB
from detailstore.core.query import DetailQueryBuilder, QueryBuilder
from detailstore.core.repository import E, EntityRepository
from detailstore.core.schema_cache import (
    DEFAULT_SCHEMA_KEY_PREFIX,
    DEFAULT_SCHEMA_TTL_SECONDS,
    SchemaCache,
    SchemaIntrospector,
    SQLAlchemyIntrospector,
)

if TYPE_CHECKING:
    from detailstore.core.config import DetailStoreSettings

_SHARED_CACHE = MemoryCacheProvider()


def shared_cache_provider() -> MemoryCacheProvider:
    """The process-wide cache provider used when none is injected."""
    return _SHARED_CACHE


class DetailStore:
    """Facade over one database."""

    def __init__(
        self,
        db: DetailDB,
        cache: CacheProvider | None = None,
        *,
        schema_cache_ttl: float = DEFAULT_SCHEMA_TTL_SECONDS,
        schema_key_prefix: str = DEFAULT_SCHEMA_KEY_PREFIX,
        introspector: SchemaIntrospector | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            db: Database the store reads and writes
            cache: Cache provider for schema snapshots (process-wide default)
            schema_cache_ttl: Seconds a column listing is reused
            schema_key_prefix: Prefix of schema cache keys
            introspector: Column listing source (SQLAlchemy inspection default)
        """
        self._db = db
        self._cache = cache if cache is not None else shared_cache_provider()
        self._schema_cache = SchemaCache(
            introspector if introspector is not None else SQLAlchemyIntrospector(db.engine),
            self._cache,
            ttl_seconds=schema_cache_ttl,
            key_prefix=schema_key_prefix,
        )

    @classmethod
    def from_settings(cls, settings: DetailStoreSettings, cache: CacheProvider | None = None) -> Self:
        """Create a store (and its database) from validated settings."""
        return cls(
            DetailDB.from_settings(settings.database),
            cache,
            schema_cache_ttl=settings.schema_cache.ttl_seconds,
            schema_key_prefix=settings.schema_cache.key_prefix,
        )

    @property
    def db(self) -> DetailDB:
        return self._db

    @property
    def schema_cache(self) -> SchemaCache:
        return self._schema_cache

    def repository(self, entity_cls: type[E]) -> EntityRepository[E]:
        return EntityRepository(entity_cls, self._db, self._schema_cache)

    def table(self, name: str) -> DetailQueryBuilder:
        """Entity-less query over any table (lenient resolution)."""
        return DetailQueryBuilder(QueryBuilder(name, self._db), self._schema_cache)

    def close(self) -> None:
        self._db.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        self.close()
