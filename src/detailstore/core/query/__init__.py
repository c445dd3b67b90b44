# src/detailstore/core/query/__init__.py
"""Query building: generic clause builder and the detail-resolving decorator."""

from detailstore.core.query.builder import UNSET, QueryBuilder
from detailstore.core.query.detail import DetailQueryBuilder

__all__ = [
    "UNSET",
    "DetailQueryBuilder",
    "QueryBuilder",
]
