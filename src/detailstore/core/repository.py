# src/detailstore/core/repository.py
"""Entity repository: the persistence pipeline for one entity type.

A write runs these steps in order, each seeing the previous step's output:

    1. timestamps     updated_at always, created_at on insert (when declared)
    2. before_write   dynamic attributes packed into the detail column
    3. INSERT/UPDATE  by primary key
    4. generated key  merged into the written row
    5. after_write    detail column flattened back into attributes
    6. entity         attributes replaced, exists = True

A MissingDetailColumnError from step 2 aborts before any statement runs.
"""

from __future__ import annotations

import json
from collections.abc import Collection, Iterable, Mapping
from datetime import datetime
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import DateTime, column, delete, insert, table, update
from sqlalchemy.sql.expression import TableClause

from detailstore.core._database_ops import DatabaseOps
from detailstore.core._helpers import generate_identity, now
from detailstore.core.identity import IDENTITY_ATTRIBUTE, is_identity_token
from detailstore.core.lifecycle import after_write, before_write
from detailstore.core.logging import get_logger
from detailstore.core.query import UNSET, DetailQueryBuilder, QueryBuilder

if TYPE_CHECKING:
    from detailstore.contracts.entity import Entity
    from detailstore.core.database import DetailDB
    from detailstore.core.query.builder import Boolean
    from detailstore.core.schema_cache import SchemaCache

logger = get_logger(__name__)

E = TypeVar("E", bound="Entity")


class EntityRepository(Generic[E]):
    """Reads and writes one entity type."""

    def __init__(self, entity_cls: type[E], db: DetailDB, schema_cache: SchemaCache) -> None:
        self._entity_cls = entity_cls
        self._db = db
        self._ops = DatabaseOps(db)
        self._schema_cache = schema_cache
        self._table = entity_cls.get_table()

    @property
    def entity_cls(self) -> type[E]:
        return self._entity_cls

    @property
    def table_name(self) -> str:
        return self._table

    def declared_columns(self) -> tuple[str, ...]:
        """Declared columns of the entity's table (from the schema cache)."""
        return self._schema_cache.columns_of(self._table)

    # === Queries ===

    def query(self) -> DetailQueryBuilder:
        """Strict, entity-bound query over the entity's table."""
        return DetailQueryBuilder(QueryBuilder(self._table, self._db), self._schema_cache, self._entity_cls)

    def where(self, column: Any, operator: Any = None, value: Any = UNSET, boolean: Boolean = "and") -> DetailQueryBuilder:
        return self.query().where(column, operator, value, boolean)

    def detail(self, column: Any, operator: Any = None, value: Any = UNSET, boolean: Boolean = "and") -> DetailQueryBuilder:
        return self.query().detail(column, operator, value, boolean)

    def all(self) -> list[E]:
        return self.query().get()

    def find(self, identifier: Any) -> E | list[E] | None:
        """Look up by identity token, primary key, or a collection of keys.

        A string of identity-token length is matched against the ``uuid``
        attribute; anything else is matched against the primary key.
        """
        if isinstance(identifier, Collection) and not isinstance(identifier, str | bytes):
            return self.find_many(identifier)
        if is_identity_token(identifier):
            return self.detail(IDENTITY_ATTRIBUTE, "=", identifier).first()  # type: ignore[no-any-return]
        return self.query().where(self._entity_cls.primary_key, "=", identifier).first()  # type: ignore[no-any-return]

    def find_many(self, identifiers: Iterable[Any]) -> list[E]:
        keys = list(identifiers)
        if not keys:
            return []
        return self.query().where_in(self._entity_cls.primary_key, keys).get()

    # === Writes ===

    def make(self, attributes: Mapping[str, Any] | None = None, /, **kwargs: Any) -> E:
        """Build an unsaved entity.

        Tables with a detail column give the entity an identity token unless
        one was supplied.
        """
        entity = self._entity_cls(attributes, **kwargs)
        if IDENTITY_ATTRIBUTE not in entity and self._schema_cache.has_detail_column(self._table):
            entity[IDENTITY_ATTRIBUTE] = generate_identity()
        return entity

    def create(self, attributes: Mapping[str, Any] | None = None, /, **kwargs: Any) -> E:
        return self.save(self.make(attributes, **kwargs))

    def save(self, entity: E) -> E:
        """Insert or update the entity.

        Args:
            entity: Entity to persist (``exists`` selects UPDATE over INSERT)

        Returns:
            The same entity, with attributes as persisted

        Raises:
            MissingDetailColumnError: If the entity has dynamic attributes and
                the table has no detail column
            ValueError: If an update matches no row
        """
        self._check_type(entity)
        declared = self.declared_columns()
        attributes = self._touch_timestamps(entity, declared)
        row = before_write(attributes, declared, entity_name=self._entity_cls.entity_name(), table=self._table)

        primary_key = self._entity_cls.primary_key
        target = self._table_clause(row)
        if entity.exists:
            key = row.get(primary_key)
            if key is None:
                raise ValueError(f"Cannot update {self._entity_cls.entity_name()} without a value for {primary_key!r}")
            values = {name: value for name, value in row.items() if name != primary_key}
            self._ops.execute_update(update(target).where(target.c[primary_key] == key).values(values))
        else:
            values = {name: value for name, value in row.items() if not (name == primary_key and value is None)}
            generated = self._ops.execute_insert(insert(target).values(values), returning=target.c[primary_key])
            if row.get(primary_key) is None:
                row[primary_key] = generated

        entity.set_raw_attributes(after_write(row, declared, table=self._table))
        entity.exists = True
        logger.debug(
            "Entity saved",
            entity=self._entity_cls.entity_name(),
            table=self._table,
            key=entity.key,
        )
        return entity

    def delete(self, entity: E) -> None:
        """Delete the entity's row by primary key.

        Raises:
            ValueError: If the entity was never persisted or its row is gone
        """
        self._check_type(entity)
        if not entity.exists or entity.key is None:
            raise ValueError(f"Cannot delete an unsaved {self._entity_cls.entity_name()}")
        primary_key = self._entity_cls.primary_key
        target = table(self._table, column(primary_key))
        self._ops.execute_delete(delete(target).where(target.c[primary_key] == entity.key))
        entity.exists = False

    def merge(self, entity: E, source: Any) -> bool:
        """Copy attributes from ``source`` into ``entity``.

        ``source`` may be a mapping, a JSON object string, or an object whose
        public instance attributes are copied. The primary key, and the
        timestamp columns when timestamps are on, are never copied.

        Returns:
            False if ``source`` is none of the accepted shapes
        """
        if isinstance(source, str):
            try:
                source = json.loads(source)
            except json.JSONDecodeError:
                return False

        if isinstance(source, Mapping):
            items = dict(source)
        elif hasattr(source, "__dict__") and not isinstance(source, type):
            items = {name: value for name, value in vars(source).items() if not name.startswith("_")}
        else:
            return False

        skipped = {self._entity_cls.primary_key}
        if self._entity_cls.timestamps:
            skipped.update(name for name in (self._entity_cls.created_at_column, self._entity_cls.updated_at_column) if name)
        for name, value in items.items():
            if name not in skipped:
                entity[name] = value
        return True

    # === Internals ===

    def _check_type(self, entity: Entity) -> None:
        if not isinstance(entity, self._entity_cls):
            raise TypeError(f"{type(self).__name__} for {self._entity_cls.__qualname__} got {type(entity).__qualname__}")

    def _touch_timestamps(self, entity: Entity, declared: Collection[str]) -> dict[str, Any]:
        attributes = dict(entity)
        if not self._entity_cls.timestamps:
            return attributes
        timestamp = now()
        updated_at = self._entity_cls.updated_at_column
        created_at = self._entity_cls.created_at_column
        if updated_at and updated_at in declared:
            attributes[updated_at] = timestamp
        if created_at and created_at in declared and not entity.exists and attributes.get(created_at) is None:
            attributes[created_at] = timestamp
        return attributes

    def _table_clause(self, row: Mapping[str, Any]) -> TableClause:
        # datetime values bind through DateTime (dialect-specific processing).
        columns = [column(name, DateTime() if isinstance(value, datetime) else None) for name, value in row.items()]
        if self._entity_cls.primary_key not in row:
            columns.append(column(self._entity_cls.primary_key))
        return table(self._table, *columns)
