# src/detailstore/core/lifecycle.py
"""Record lifecycle hooks: split on write, flatten on read.

The persistence pipeline calls these at fixed points, in this order
for a write:

    before_write -> INSERT/UPDATE -> after_write

and after every fetch:

    after_read

All hooks are pure functions over attribute mappings. They never touch
the database; the declared column list is supplied by the caller from
the schema cache.
"""

from __future__ import annotations

import json
from collections.abc import Collection, Mapping
from typing import Any

from detailstore.contracts.errors import MissingDetailColumnError
from detailstore.contracts.resolution import DETAIL_COLUMN
from detailstore.core.logging import get_logger

logger = get_logger(__name__)


def partition_attributes(
    attributes: Mapping[str, Any],
    declared_columns: Collection[str],
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split attributes into (declared, dynamic) by column membership.

    Args:
        attributes: In-memory attribute mapping
        declared_columns: Declared columns of the entity's table

    Returns:
        Tuple of (declared-column fields, dynamic fields)
    """
    declared: dict[str, Any] = {}
    dynamic: dict[str, Any] = {}
    for key, value in attributes.items():
        if key in declared_columns:
            declared[key] = value
        else:
            dynamic[key] = value
    return declared, dynamic


def encode_detail(dynamic: Mapping[str, Any]) -> str:
    """Serialize dynamic attributes for the detail column."""
    return json.dumps(dict(dynamic))


def decode_detail(raw: Any, *, table: str | None = None) -> dict[str, Any]:
    """Deserialize a detail column value.

    Null and absent values mean "no dynamic attributes". Malformed JSON
    and non-object documents degrade to the same result (with a warning)
    so legacy rows stay readable.

    Args:
        raw: Value read from the detail column (JSON text, bytes, or an
            already-decoded mapping on drivers that decode JSON natively)
        table: Table name, for the log event only

    Returns:
        Mapping of dynamic attribute name to value
    """
    if raw is None:
        return {}
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, bytes | bytearray):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            logger.warning("Malformed detail JSON treated as empty", table=table, error=str(exc))
            return {}
    if not isinstance(raw, str):
        logger.warning("Unexpected detail column value type", table=table, value_type=type(raw).__name__)
        return {}
    if not raw.strip():
        return {}

    try:
        decoded = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("Malformed detail JSON treated as empty", table=table, error=str(exc))
        return {}

    match decoded:
        case dict() as detail:
            return detail
        case None:
            return {}
        case _:
            logger.warning("Non-object detail JSON treated as empty", table=table, value_type=type(decoded).__name__)
            return {}


def before_write(
    attributes: Mapping[str, Any],
    declared_columns: Collection[str],
    *,
    entity_name: str,
    table: str,
) -> dict[str, Any]:
    """Pre-write hook: build the row to persist.

    Declared attributes stay top-level; everything else is packed into the
    detail column. When the table has a detail column it is always
    recomputed, even with no dynamic attributes (``"{}"`` is a valid state).

    Args:
        attributes: In-memory attribute mapping
        declared_columns: Declared columns of ``table``
        entity_name: Entity type name, for the error
        table: Entity table name, for the error

    Returns:
        Row mapping containing declared columns only

    Raises:
        MissingDetailColumnError: If there are dynamic attributes and the
            table has no detail column. Nothing must be written.
    """
    declared, dynamic = partition_attributes(attributes, declared_columns)
    has_detail_column = DETAIL_COLUMN in declared_columns

    if dynamic and not has_detail_column:
        raise MissingDetailColumnError.for_entity(entity_name, table)

    if has_detail_column:
        declared[DETAIL_COLUMN] = encode_detail(dynamic)
    return declared


def after_write(
    row: Mapping[str, Any],
    declared_columns: Collection[str],
    *,
    table: str | None = None,
) -> dict[str, Any]:
    """Post-write hook: flatten the persisted row back into attributes.

    ``row`` is the written row including generated keys and timestamps.
    A null or absent detail value flattens to nothing.
    """
    return _flatten(row, declared_columns, table=table)


def after_read(
    row: Mapping[str, Any],
    declared_columns: Collection[str],
    *,
    table: str | None = None,
) -> dict[str, Any]:
    """Post-read hook: flatten a freshly loaded row.

    Rows without a detail field (tables without the column, or selects that
    did not include it) are returned as-is.
    """
    if DETAIL_COLUMN not in row:
        return dict(row)
    return _flatten(row, declared_columns, table=table)


def _flatten(
    row: Mapping[str, Any],
    declared_columns: Collection[str],
    *,
    table: str | None,
) -> dict[str, Any]:
    attributes = {key: value for key, value in row.items() if key != DETAIL_COLUMN}
    for key, value in decode_detail(row.get(DETAIL_COLUMN), table=table).items():
        # Declared columns are authoritative over keys embedded in the JSON.
        if key in declared_columns or key == DETAIL_COLUMN:
            logger.warning("Detail key shadows a declared column, ignored", table=table, key=key)
            continue
        attributes[key] = value
    return attributes
