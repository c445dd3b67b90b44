"""Shared contracts for detail-column storage.

This package is a LEAF MODULE with no outbound dependencies to core.
Settings classes are NOT re-exported here - import them from
detailstore.core.config.

Import patterns:
    from detailstore.contracts import Entity, MissingDetailColumnError, DetailPath
"""

from detailstore.contracts.entity import Entity
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

__all__ = [
    "DETAIL_COLUMN",
    "DETAIL_PATH_PREFIX",
    "JSON_PATH_SEPARATOR",
    "QUALIFIER_SEPARATOR",
    "DetailPath",
    "Entity",
    "MissingDetailColumnError",
    "Passthrough",
    "ResolvedTarget",
    "SchemaColumn",
    "is_detail_path",
]
