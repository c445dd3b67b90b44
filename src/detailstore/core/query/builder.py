# src/detailstore/core/query/builder.py
"""Generic clause builder over SQLAlchemy Core.

QueryBuilder knows nothing about detail columns: it takes column targets
that are already resolved and turns them into SQLAlchemy expressions.

Column targets:
    "name"                 unqualified column
    "table.name"           qualified column
    "detail->key"          key inside a JSON column of the builder's table
    "table.detail->a->b"   nested key inside a qualified JSON column
    ColumnElement          used verbatim

Clauses compose with SQL precedence: consecutive "and" clauses bind
tighter than "or", so ``where(a).where(b).or_where(c)`` means
``(a AND b) OR c``.

JSON keys are read through SQLAlchemy's JSON type, which renders
JSON_EXTRACT on SQLite and ->> (with casts) on PostgreSQL. The accessor is
picked from the comparison value so numeric comparisons stay numeric.
Orderings and groupings on JSON keys use the string accessor.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any, Literal, Self

from sqlalchemy import JSON, ColumnElement, Select, and_, column, func, literal_column, or_, select, table, type_coerce
from sqlalchemy import not_ as negate
from sqlalchemy.sql import operators
from sqlalchemy.sql.expression import ClauseElement, ColumnClause, FromClause, TableClause

from detailstore.contracts.resolution import JSON_PATH_SEPARATOR
from detailstore.core._database_ops import DatabaseOps
from detailstore.core.resolver import split_qualified

if TYPE_CHECKING:
    from detailstore.core.database import DetailDB

Boolean = Literal["and", "or"]


class _Unset:
    """Marker for an omitted ``value`` argument (two-argument where)."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()

_OPERATORS: dict[str, Callable[[Any, Any], ColumnElement[bool]]] = {
    "=": operators.eq,
    "==": operators.eq,
    "!=": operators.ne,
    "<>": operators.ne,
    "<": operators.lt,
    "<=": operators.le,
    ">": operators.gt,
    ">=": operators.ge,
    "like": operators.like_op,
    "not like": operators.not_like_op,
    "ilike": operators.ilike_op,
    "not ilike": operators.not_ilike_op,
}

_EQUALITY_OPERATORS = frozenset({"=", "=="})
_INEQUALITY_OPERATORS = frozenset({"!=", "<>"})


def _operator(operator: str) -> Callable[[Any, Any], ColumnElement[bool]]:
    try:
        return _OPERATORS[operator.lower()]
    except (KeyError, AttributeError):
        raise ValueError(f"Unsupported comparison operator {operator!r}. Supported: {sorted(_OPERATORS)}") from None


def _check_boolean(boolean: str) -> None:
    if boolean not in ("and", "or"):
        raise ValueError(f"boolean must be 'and' or 'or', got {boolean!r}")


def _first_non_null(values: Iterable[Any]) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _flatten(values: Iterable[Any]) -> list[Any]:
    flat: list[Any] = []
    for value in values:
        if isinstance(value, list | tuple):
            flat.extend(_flatten(value))
        else:
            flat.append(value)
    return flat


def _typed_json(element: Any, sample: Any) -> ColumnElement[Any]:
    # bool is an int subclass, so it must be checked first
    if isinstance(sample, bool):
        return element.as_boolean()  # type: ignore[no-any-return]
    if isinstance(sample, int):
        return element.as_integer()  # type: ignore[no-any-return]
    if isinstance(sample, float):
        return element.as_float()  # type: ignore[no-any-return]
    return element.as_string()  # type: ignore[no-any-return]


def _combine(clauses: list[tuple[str, ColumnElement[bool]]]) -> ColumnElement[bool] | None:
    """Fold (boolean, clause) pairs into one expression with AND-over-OR precedence.

    The boolean of the first clause is ignored.
    """
    if not clauses:
        return None
    groups: list[list[ColumnElement[bool]]] = [[clauses[0][1]]]
    for boolean, clause in clauses[1:]:
        if boolean == "or":
            groups.append([clause])
        else:
            groups[-1].append(clause)
    terms = [group[0] if len(group) == 1 else and_(*group) for group in groups]
    return terms[0] if len(terms) == 1 else or_(*terms)


class QueryBuilder:
    """Clause builder for one table.

    Every clause method returns the builder so calls chain. Execution
    methods need a database; building and compiling do not.
    """

    def __init__(self, table_name: str, db: DetailDB | None = None, *, tables: dict[str, TableClause] | None = None) -> None:
        self._table_name = table_name
        self._db = db
        # One FROM object per table name, shared with nested builders.
        self._tables: dict[str, TableClause] = tables if tables is not None else {}
        self._columns: list[Any] = []
        self._joins: list[tuple[TableClause, ColumnElement[bool], bool]] = []
        self._wheres: list[tuple[str, ColumnElement[bool]]] = []
        self._groups: list[ColumnElement[Any]] = []
        self._havings: list[tuple[str, ColumnElement[bool]]] = []
        self._orders: list[ColumnElement[Any]] = []
        self._limit: int | None = None
        self._offset: int | None = None

    @property
    def from_(self) -> str:
        """Table the builder queries."""
        return self._table_name

    @property
    def db(self) -> DetailDB | None:
        return self._db

    def new_query(self) -> Self:
        """Fresh builder for the same table and database."""
        return type(self)(self._table_name, self._db, tables=self._tables)

    # === Column targets ===

    def column_expression(self, target: Any, sample: Any = None) -> Any:
        """Turn a resolved column target into a SQLAlchemy expression.

        Args:
            target: Column name, qualified name, JSON path, or expression
            sample: Comparison value used to pick the JSON accessor

        Returns:
            SQLAlchemy column expression
        """
        if isinstance(target, ClauseElement):
            return target
        if isinstance(target, QueryBuilder):
            return target.to_select().scalar_subquery()
        if not isinstance(target, str):
            raise TypeError(f"Unsupported column target {target!r}")
        if JSON_PATH_SEPARATOR in target:
            return self._json_expression(target, sample)
        if target == "*" or target.endswith(".*"):
            return literal_column(target)
        table_name, name = split_qualified(target)
        if table_name is None:
            return column(name)
        return self._table_column(table_name, name)

    def _json_expression(self, path: str, sample: Any) -> ColumnElement[Any]:
        base, *keys = path.split(JSON_PATH_SEPARATOR)
        table_name, name = split_qualified(base)
        json_column = type_coerce(self._table_column(table_name or self._table_name, name), JSON)
        element = json_column[keys[0]] if len(keys) == 1 else json_column[tuple(keys)]
        return _typed_json(element, sample)

    def _table_ref(self, name: str) -> TableClause:
        ref = self._tables.get(name)
        if ref is None:
            schema, _, table_name = name.rpartition(".")
            ref = self._tables[name] = table(table_name, schema=schema or None)
        return ref

    def _table_column(self, table_name: str, name: str) -> ColumnClause[Any]:
        ref = self._table_ref(table_name)
        if name not in ref.c:
            ref.append_column(column(name))
        return ref.c[name]

    # === Where ===

    def where(self, column: Any, operator: Any = None, value: Any = UNSET, boolean: Boolean = "and") -> Self:
        """Add a basic where clause.

        ``where(col, value)`` compares with "=". A None value with "=" or
        "!=" becomes a null check. A mapping adds one equality per item
        inside a nested group; a callable receives a nested builder.
        """
        _check_boolean(boolean)
        if isinstance(column, Mapping):
            nested = self.new_query()
            for key, item in column.items():
                nested.where(key, "=", item)
            return self.add_nested_where_query(nested, boolean)
        if callable(column) and not isinstance(column, ClauseElement | QueryBuilder):
            return self.where_nested(column, boolean)

        if value is UNSET:
            operator, value = "=", operator

        if value is None and operator in _EQUALITY_OPERATORS:
            return self.where_null(column, boolean)
        if value is None and operator in _INEQUALITY_OPERATORS:
            return self.where_not_null(column, boolean)

        compare = _operator(operator)
        self._wheres.append((boolean, compare(self.column_expression(column, value), value)))
        return self

    def or_where(self, column: Any, operator: Any = None, value: Any = UNSET) -> Self:
        return self.where(column, operator, value, "or")

    def where_nested(self, callback: Callable[[Any], Any], boolean: Boolean = "and") -> Self:
        """Add a parenthesised group built by ``callback``."""
        nested = self.new_query()
        callback(nested)
        return self.add_nested_where_query(nested, boolean)

    def add_nested_where_query(self, query: QueryBuilder, boolean: Boolean = "and") -> Self:
        """Add another builder's where clauses as one parenthesised group."""
        _check_boolean(boolean)
        condition = query.compile_wheres()
        if condition is not None:
            self._wheres.append((boolean, condition.self_group()))
        return self

    def where_in(self, column: Any, values: Any, boolean: Boolean = "and", not_: bool = False) -> Self:
        """Add a "where in" clause. ``values`` may be an iterable or a sub-query builder."""
        _check_boolean(boolean)
        if isinstance(values, QueryBuilder):
            # No auto-correlation: a sub-query may select from the same table
            candidates: Any = values.to_select().correlate(None)
            sample = None
        elif isinstance(values, Select):
            candidates = values
            sample = None
        else:
            candidates = list(values)
            sample = _first_non_null(candidates)
        target = self.column_expression(column, sample)
        clause = target.not_in(candidates) if not_ else target.in_(candidates)
        self._wheres.append((boolean, clause))
        return self

    def where_not_in(self, column: Any, values: Any, boolean: Boolean = "and") -> Self:
        return self.where_in(column, values, boolean, True)

    def or_where_in(self, column: Any, values: Any) -> Self:
        return self.where_in(column, values, "or")

    def or_where_not_in(self, column: Any, values: Any) -> Self:
        return self.where_not_in(column, values, "or")

    def where_integer_in_raw(self, column: Any, values: Iterable[Any], boolean: Boolean = "and", not_: bool = False) -> Self:
        """Add a "where in" clause with integer values inlined into the SQL.

        Every value goes through int(), so nothing but digits reaches the
        statement text.
        """
        _check_boolean(boolean)
        integers = [int(value) for value in values]
        target = self.column_expression(column, 0)
        inlined = [literal_column(str(value)) for value in integers]
        clause = target.not_in(inlined) if not_ else target.in_(inlined)
        self._wheres.append((boolean, clause))
        return self

    def where_integer_not_in_raw(self, column: Any, values: Iterable[Any], boolean: Boolean = "and") -> Self:
        return self.where_integer_in_raw(column, values, boolean, True)

    def or_where_integer_in_raw(self, column: Any, values: Iterable[Any]) -> Self:
        return self.where_integer_in_raw(column, values, "or")

    def or_where_integer_not_in_raw(self, column: Any, values: Iterable[Any]) -> Self:
        return self.where_integer_not_in_raw(column, values, "or")

    def where_null(self, columns: Any, boolean: Boolean = "and", not_: bool = False) -> Self:
        """Add a null check for one column or each column of a list."""
        _check_boolean(boolean)
        targets = list(columns) if isinstance(columns, list | tuple) else [columns]
        for target in targets:
            expression = self.column_expression(target)
            self._wheres.append((boolean, expression.is_not(None) if not_ else expression.is_(None)))
        return self

    def where_not_null(self, columns: Any, boolean: Boolean = "and") -> Self:
        return self.where_null(columns, boolean, True)

    def or_where_null(self, columns: Any) -> Self:
        return self.where_null(columns, "or")

    def or_where_not_null(self, columns: Any) -> Self:
        return self.where_not_null(columns, "or")

    def where_between(self, column: Any, values: Iterable[Any], boolean: Boolean = "and", not_: bool = False) -> Self:
        """Add a "where between" clause on the first two (flattened) values.

        Raises:
            ValueError: If fewer than two values are given
        """
        _check_boolean(boolean)
        bounds = _flatten(values)[:2]
        if len(bounds) < 2:
            raise ValueError(f"where_between needs two values, got {bounds!r}")
        low, high = bounds
        clause = self.column_expression(column, _first_non_null(bounds)).between(low, high)
        self._wheres.append((boolean, negate(clause) if not_ else clause))
        return self

    def where_not_between(self, column: Any, values: Iterable[Any], boolean: Boolean = "and") -> Self:
        return self.where_between(column, values, boolean, True)

    def or_where_between(self, column: Any, values: Iterable[Any]) -> Self:
        return self.where_between(column, values, "or")

    def or_where_not_between(self, column: Any, values: Iterable[Any]) -> Self:
        return self.where_not_between(column, values, "or")

    def compile_wheres(self) -> ColumnElement[bool] | None:
        """The combined where condition, or None without clauses."""
        return _combine(self._wheres)

    # === Ordering, grouping, having ===

    def order_by(self, column: Any, direction: str = "asc") -> Self:
        """Add an "order by" clause.

        Raises:
            ValueError: If direction is not "asc" or "desc"
        """
        normalized = direction.lower() if isinstance(direction, str) else direction
        if normalized not in ("asc", "desc"):
            raise ValueError(f"Order direction must be 'asc' or 'desc', got {direction!r}")
        if callable(column) and not isinstance(column, ClauseElement | QueryBuilder):
            nested = self.new_query()
            column(nested)
            column = nested
        expression = self.column_expression(column)
        self._orders.append(expression.desc() if normalized == "desc" else expression.asc())
        return self

    def order_by_desc(self, column: Any) -> Self:
        return self.order_by(column, "desc")

    def latest(self, column: Any = "created_at") -> Self:
        return self.order_by(column, "desc")

    def oldest(self, column: Any = "created_at") -> Self:
        return self.order_by(column, "asc")

    def group_by(self, *groups: Any) -> Self:
        """Add "group by" columns. Lists and tuples are flattened."""
        for group in _flatten(groups):
            self._groups.append(self.column_expression(group))
        return self

    def having(self, column: Any, operator: Any = None, value: Any = UNSET, boolean: Boolean = "and") -> Self:
        _check_boolean(boolean)
        if value is UNSET:
            operator, value = "=", operator
        compare = _operator(operator)
        self._havings.append((boolean, compare(self.column_expression(column, value), value)))
        return self

    def or_having(self, column: Any, operator: Any = None, value: Any = UNSET) -> Self:
        return self.having(column, operator, value, "or")

    # === Projection, joins, paging ===

    def select(self, *columns: Any) -> Self:
        """Replace the select list (default ``<table>.*``)."""
        self._columns = [self.column_expression(target) for target in _flatten(columns)]
        return self

    def join(self, table_name: str, first: Any, operator: str = "=", second: Any = None, *, outer: bool = False) -> Self:
        """Join another table on ``first <operator> second``.

        ``join(t, a, b)`` is shorthand for ``join(t, a, "=", b)``.
        """
        if second is None:
            operator, second = "=", operator
        compare = _operator(operator)
        on = compare(self.column_expression(first), self.column_expression(second))
        self._joins.append((self._table_ref(table_name), on, outer))
        return self

    def left_join(self, table_name: str, first: Any, operator: str = "=", second: Any = None) -> Self:
        return self.join(table_name, first, operator, second, outer=True)

    def limit(self, count: int) -> Self:
        self._limit = count
        return self

    def offset(self, count: int) -> Self:
        self._offset = count
        return self

    # === Compilation ===

    def to_select(self) -> Select[Any]:
        """Build the SELECT statement for the current clauses."""
        from_clause: FromClause = self._table_ref(self._table_name)
        for joined, on, outer in self._joins:
            from_clause = from_clause.join(joined, on, isouter=outer)

        columns = self._columns or [literal_column(f"{self._table_name}.*")]
        statement = select(*columns).select_from(from_clause)

        condition = self.compile_wheres()
        if condition is not None:
            statement = statement.where(condition)
        if self._groups:
            statement = statement.group_by(*self._groups)
        having = _combine(self._havings)
        if having is not None:
            statement = statement.having(having)
        if self._orders:
            statement = statement.order_by(*self._orders)
        if self._limit is not None:
            statement = statement.limit(self._limit)
        if self._offset is not None:
            statement = statement.offset(self._offset)
        return statement

    def to_sql(self) -> str:
        """Compiled SQL text (bound parameters left as placeholders)."""
        statement = self.to_select()
        if self._db is not None:
            return str(statement.compile(dialect=self._db.engine.dialect))
        return str(statement)

    # === Execution ===

    def get(self) -> list[dict[str, Any]]:
        """Execute and return every row as a mapping."""
        rows = self._ops().execute_fetchall(self.to_select())
        return [dict(row._mapping) for row in rows]

    def first(self) -> dict[str, Any] | None:
        """Execute with LIMIT 1 and return the row, or None."""
        row = self._ops().execute_fetchone(self.to_select().limit(1))
        return None if row is None else dict(row._mapping)

    def count(self) -> int:
        statement = select(func.count()).select_from(self.to_select().order_by(None).subquery())
        return int(self._ops().execute_scalar(statement))

    def exists(self) -> bool:
        return bool(self._ops().execute_scalar(select(self.to_select().exists())))

    def _ops(self) -> DatabaseOps:
        if self._db is None:
            raise RuntimeError(f"Query on {self._table_name!r} is not bound to a database")
        return DatabaseOps(self._db)
