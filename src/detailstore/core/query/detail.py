# src/detailstore/core/query/detail.py
"""Query builder that routes undeclared attributes into the detail column.

DetailQueryBuilder wraps a QueryBuilder and exposes the same clause
methods with the same signatures. String column arguments are resolved
against the table's declared columns (via the schema cache) before they
reach the wrapped builder:

    posts.where("title", "Hello")          # -> detail->title
    posts.where("id", 3)                   # -> id (declared)
    posts.where("post_tag.tag_id", 7)      # -> untouched (foreign table)

With an entity type bound, a dynamic attribute on a table without a
detail column raises MissingDetailColumnError at the clause call. Without
one, such names pass through and the database judges them at execution.

Joins, projections and paging pass through without resolution.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any, Self

from sqlalchemy import Select
from sqlalchemy.sql.expression import ClauseElement

from detailstore.contracts.resolution import ResolvedTarget
from detailstore.core.lifecycle import after_read
from detailstore.core.query.builder import UNSET, Boolean, QueryBuilder
from detailstore.core.resolver import resolve_column, resolve_column_strict

if TYPE_CHECKING:
    from detailstore.contracts.entity import Entity
    from detailstore.core.schema_cache import SchemaCache


class DetailQueryBuilder:
    """Resolving decorator over a QueryBuilder."""

    def __init__(
        self,
        query: QueryBuilder,
        schema_cache: SchemaCache,
        entity: type[Entity] | None = None,
    ) -> None:
        self._query = query
        self._schema_cache = schema_cache
        self._entity = entity

    @property
    def base_query(self) -> QueryBuilder:
        """The wrapped builder."""
        return self._query

    @property
    def entity(self) -> type[Entity] | None:
        return self._entity

    @property
    def from_(self) -> str:
        return self._query.from_

    def new_query(self) -> DetailQueryBuilder:
        return DetailQueryBuilder(self._query.new_query(), self._schema_cache, self._entity)

    # === Resolution ===

    def resolve(self, column: Any) -> ResolvedTarget:
        """Resolve one column reference against the table's declared columns."""
        declared = self._schema_cache.columns_of(self.from_) if isinstance(column, str) else ()
        if self._entity is not None:
            return resolve_column_strict(self.from_, column, declared, entity_name=self._entity.entity_name())
        return resolve_column(self.from_, column, declared)

    def _column(self, column: Any) -> Any:
        if isinstance(column, str):
            return self.resolve(column).column
        return column

    def _columns(self, columns: Any) -> Any:
        if isinstance(columns, list | tuple):
            return [self._column(column) for column in columns]
        return self._column(columns)

    # === Where ===

    def where(self, column: Any, operator: Any = None, value: Any = UNSET, boolean: Boolean = "and") -> Self:
        """Add a where clause, resolving the column first.

        A callable receives a nested DetailQueryBuilder so columns inside
        the group are resolved too. A mapping becomes a nested group of
        equalities, each key resolved like any other column.
        """
        if isinstance(column, Mapping):
            items = dict(column)
            return self.where_nested(lambda nested: [nested.where(key, "=", item) for key, item in items.items()], boolean)
        if callable(column) and not isinstance(column, ClauseElement | QueryBuilder):
            return self.where_nested(column, boolean)
        self._query.where(self._column(column), operator, value, boolean)
        return self

    def or_where(self, column: Any, operator: Any = None, value: Any = UNSET) -> Self:
        return self.where(column, operator, value, "or")

    def where_nested(self, callback: Callable[[DetailQueryBuilder], Any], boolean: Boolean = "and") -> Self:
        nested = self.new_query()
        callback(nested)
        self._query.add_nested_where_query(nested.base_query, boolean)
        return self

    def detail(self, column: Any, operator: Any = None, value: Any = UNSET, boolean: Boolean = "and") -> Self:
        """Alias of where(), for call sites that filter on dynamic attributes."""
        return self.where(column, operator, value, boolean)

    def where_in(self, column: Any, values: Any, boolean: Boolean = "and", not_: bool = False) -> Self:
        if isinstance(values, DetailQueryBuilder):
            values = values.base_query
        self._query.where_in(self._column(column), values, boolean, not_)
        return self

    def where_not_in(self, column: Any, values: Any, boolean: Boolean = "and") -> Self:
        return self.where_in(column, values, boolean, True)

    def or_where_in(self, column: Any, values: Any) -> Self:
        return self.where_in(column, values, "or")

    def or_where_not_in(self, column: Any, values: Any) -> Self:
        return self.where_not_in(column, values, "or")

    def where_integer_in_raw(self, column: Any, values: Iterable[Any], boolean: Boolean = "and", not_: bool = False) -> Self:
        self._query.where_integer_in_raw(self._column(column), values, boolean, not_)
        return self

    def where_integer_not_in_raw(self, column: Any, values: Iterable[Any], boolean: Boolean = "and") -> Self:
        return self.where_integer_in_raw(column, values, boolean, True)

    def or_where_integer_in_raw(self, column: Any, values: Iterable[Any]) -> Self:
        return self.where_integer_in_raw(column, values, "or")

    def or_where_integer_not_in_raw(self, column: Any, values: Iterable[Any]) -> Self:
        return self.where_integer_not_in_raw(column, values, "or")

    def where_null(self, columns: Any, boolean: Boolean = "and", not_: bool = False) -> Self:
        self._query.where_null(self._columns(columns), boolean, not_)
        return self

    def where_not_null(self, columns: Any, boolean: Boolean = "and") -> Self:
        return self.where_null(columns, boolean, True)

    def or_where_null(self, columns: Any) -> Self:
        return self.where_null(columns, "or")

    def or_where_not_null(self, columns: Any) -> Self:
        return self.where_not_null(columns, "or")

    def where_between(self, column: Any, values: Iterable[Any], boolean: Boolean = "and", not_: bool = False) -> Self:
        self._query.where_between(self._column(column), values, boolean, not_)
        return self

    def where_not_between(self, column: Any, values: Iterable[Any], boolean: Boolean = "and") -> Self:
        return self.where_between(column, values, boolean, True)

    def or_where_between(self, column: Any, values: Iterable[Any]) -> Self:
        return self.where_between(column, values, "or")

    def or_where_not_between(self, column: Any, values: Iterable[Any]) -> Self:
        return self.where_not_between(column, values, "or")

    # === Ordering, grouping, having ===

    def order_by(self, column: Any, direction: str = "asc") -> Self:
        self._query.order_by(self._column(column), direction)
        return self

    def order_by_desc(self, column: Any) -> Self:
        return self.order_by(column, "desc")

    def latest(self, column: Any = None) -> Self:
        """Order newest first, by the entity's created-at column by default."""
        return self.order_by(self._created_at() if column is None else column, "desc")

    def oldest(self, column: Any = None) -> Self:
        return self.order_by(self._created_at() if column is None else column, "asc")

    def _created_at(self) -> str:
        if self._entity is None:
            return "created_at"
        return self._entity.get_created_at_column()

    def group_by(self, *groups: Any) -> Self:
        self._query.group_by(*(self._columns(group) for group in groups))
        return self

    def having(self, column: Any, operator: Any = None, value: Any = UNSET, boolean: Boolean = "and") -> Self:
        self._query.having(self._column(column), operator, value, boolean)
        return self

    def or_having(self, column: Any, operator: Any = None, value: Any = UNSET) -> Self:
        return self.having(column, operator, value, "or")

    # === Pass-through ===

    def select(self, *columns: Any) -> Self:
        self._query.select(*columns)
        return self

    def join(self, table_name: str, first: Any, operator: str = "=", second: Any = None, *, outer: bool = False) -> Self:
        self._query.join(table_name, first, operator, second, outer=outer)
        return self

    def left_join(self, table_name: str, first: Any, operator: str = "=", second: Any = None) -> Self:
        return self.join(table_name, first, operator, second, outer=True)

    def limit(self, count: int) -> Self:
        self._query.limit(count)
        return self

    def offset(self, count: int) -> Self:
        self._query.offset(count)
        return self

    # === Execution ===

    def to_select(self) -> Select[Any]:
        return self._query.to_select()

    def to_sql(self) -> str:
        return self._query.to_sql()

    def get(self) -> list[Any]:
        """Execute and return flattened records.

        Returns entity instances when an entity type is bound, plain
        attribute mappings otherwise.
        """
        return [self._hydrate(row) for row in self._query.get()]

    def first(self) -> Any:
        row = self._query.first()
        return None if row is None else self._hydrate(row)

    def count(self) -> int:
        return self._query.count()

    def exists(self) -> bool:
        return self._query.exists()

    def _hydrate(self, row: dict[str, Any]) -> Any:
        declared = self._schema_cache.columns_of(self.from_)
        attributes = after_read(row, declared, table=self.from_)
        if self._entity is None:
            return attributes
        return self._entity.hydrate(attributes)
