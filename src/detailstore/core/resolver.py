# src/detailstore/core/resolver.py
"""Column resolution: schema column, detail path, or pass-through.

Pure functions over (owning table, candidate reference, declared columns).
No I/O: callers supply the declared columns from the schema cache.

Rules, applied in order:
    1. Non-string candidates (SQLAlchemy expressions, callables, nested
       builders) pass through without inspection.
    2. A candidate that already targets the detail column is returned
       unchanged, so resolving twice is a no-op.
    3. A qualifier naming any table other than the owning table marks a
       foreign/pivot reference: pass through, even if that table does not
       exist or the column name collides with one of ours.
    4. A declared column resolves to itself, keeping an own-table qualifier.
    5. Anything else is a dynamic attribute: a detail path keyed by the
       bare column name (qualifier dropped). Without a detail column the
       lenient resolver passes it through; the strict resolver raises.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from typing import Any

from detailstore.contracts.errors import MissingDetailColumnError
from detailstore.contracts.resolution import (
    DETAIL_COLUMN,
    DETAIL_PATH_PREFIX,
    JSON_PATH_SEPARATOR,
    QUALIFIER_SEPARATOR,
    DetailPath,
    Passthrough,
    ResolvedTarget,
    SchemaColumn,
    is_detail_path,
)


def split_qualified(candidate: str) -> tuple[str | None, str]:
    """Split ``table.column`` into its parts.

    The qualifier is everything before the last separator, so
    ``schema.table.column`` yields ``("schema.table", "column")``. Only the
    part before the first JSON path separator is searched: the keys of
    ``posts.detail->meta.x`` may contain dots of their own.

    Returns:
        (table, column), with table None for unqualified names
    """
    head, path_separator, path = candidate.partition(JSON_PATH_SEPARATOR)
    table, separator, column = head.rpartition(QUALIFIER_SEPARATOR)
    if not separator:
        return None, candidate
    return table, f"{column}{path_separator}{path}"


def resolve_column(
    own_table: str,
    candidate: Any,
    declared_columns: Collection[str],
    has_detail_column: bool | None = None,
) -> ResolvedTarget:
    """Resolve a column reference leniently.

    Used where no entity type is bound: an undeclared name on a table
    without a detail column is passed through for the storage engine to
    judge at execution time.

    Args:
        own_table: Table the query is built against
        candidate: Column reference as given by the caller
        declared_columns: Declared columns of own_table
        has_detail_column: Whether own_table has the detail column
            (derived from declared_columns when None)

    Returns:
        Resolved target
    """
    return _resolve(own_table, candidate, declared_columns, has_detail_column, entity_name=None)


def resolve_column_strict(
    own_table: str,
    candidate: Any,
    declared_columns: Collection[str],
    has_detail_column: bool | None = None,
    *,
    entity_name: str,
) -> ResolvedTarget:
    """Resolve a column reference for a bound entity type.

    Same rules as resolve_column, but a dynamic attribute on a table
    without a detail column is a configuration defect.

    Raises:
        MissingDetailColumnError: If the reference needs a detail column
            and own_table has none
    """
    return _resolve(own_table, candidate, declared_columns, has_detail_column, entity_name=entity_name)


def resolve_columns(
    own_table: str,
    candidates: Iterable[Any],
    declared_columns: Collection[str],
    has_detail_column: bool | None = None,
    *,
    entity_name: str | None = None,
) -> list[ResolvedTarget]:
    """Resolve a column list element-wise.

    Non-string elements pass through untouched. With ``entity_name`` the
    strict rules apply to every element.
    """
    return [_resolve(own_table, candidate, declared_columns, has_detail_column, entity_name=entity_name) for candidate in candidates]


def _resolve(
    own_table: str,
    candidate: Any,
    declared_columns: Collection[str],
    has_detail_column: bool | None,
    *,
    entity_name: str | None,
) -> ResolvedTarget:
    if not isinstance(candidate, str):
        return Passthrough(candidate)

    if is_detail_path(candidate):
        return DetailPath(candidate.removeprefix(DETAIL_PATH_PREFIX))

    table, column = split_qualified(candidate)
    if table is not None and table != own_table:
        return Passthrough(candidate)

    if is_detail_path(column):
        return DetailPath(column.removeprefix(DETAIL_PATH_PREFIX))

    if column in declared_columns:
        return SchemaColumn(candidate)

    if has_detail_column is None:
        has_detail_column = DETAIL_COLUMN in declared_columns

    if not has_detail_column:
        if entity_name is not None:
            raise MissingDetailColumnError.for_entity(entity_name, own_table)
        return Passthrough(candidate)

    return DetailPath(column)
