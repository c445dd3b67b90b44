# src/detailstore/contracts/resolution.py
"""Resolved column targets.

A column reference handed to the query layer resolves to exactly one of
three targets:

- SchemaColumn: a declared column of the entity's own table, used as-is
- DetailPath: an undeclared attribute routed into the JSON detail column
- Passthrough: a foreign/pivot reference or a non-string expression that
  is handed to the underlying builder untouched

Every target exposes ``column``, the value the underlying query builder
receives.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

# Reserved JSON column holding the serialized dynamic attributes.
DETAIL_COLUMN = "detail"

# Separator between the detail column and a key inside it ("detail->status").
JSON_PATH_SEPARATOR = "->"

DETAIL_PATH_PREFIX = f"{DETAIL_COLUMN}{JSON_PATH_SEPARATOR}"

# Separator between a table qualifier and a column name ("categories.name").
QUALIFIER_SEPARATOR = "."


@dataclass(frozen=True)
class SchemaColumn:
    """A declared column of the owning table.

    ``name`` keeps the caller's qualifier when it named the owning table.
    """

    name: str

    @property
    def column(self) -> str:
        return self.name


@dataclass(frozen=True)
class DetailPath:
    """An attribute stored inside the detail column.

    Invariants:
    - ``key`` is never table-qualified (the detail column is local to the
      owning table)
    - ``key`` may contain nested segments joined by JSON_PATH_SEPARATOR
    """

    key: str

    @property
    def column(self) -> str:
        return f"{DETAIL_PATH_PREFIX}{self.key}"


@dataclass(frozen=True)
class Passthrough:
    """A reference the resolver does not own. Handed on unchanged."""

    original: Any

    @property
    def column(self) -> Any:
        return self.original


ResolvedTarget = SchemaColumn | DetailPath | Passthrough


def is_detail_path(candidate: Any) -> bool:
    """Check whether a column reference already targets the detail column."""
    return isinstance(candidate, str) and candidate.startswith(DETAIL_PATH_PREFIX)
