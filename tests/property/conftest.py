# tests/property/conftest.py
"""Shared Hypothesis strategies for property-based tests.

Usage:
    from tests.property.conftest import identifiers, dynamic_attributes

    @given(attributes=dynamic_attributes)
    def test_round_trip(attributes: dict) -> None:
        ...
"""

from __future__ import annotations

from hypothesis import strategies as st

# Declared columns of the detail-column test table
DECLARED = ("id", "detail", "created_at", "updated_at")

# JavaScript-safe integers keep values exact through any JSON consumer
MAX_SAFE_INT = 2**53 - 1
MIN_SAFE_INT = -(2**53 - 1)


# =============================================================================
# Names
# =============================================================================

# SQL-style identifiers: no qualifier separator, no JSON path separator
identifiers = st.from_regex(r"[a-z][a-z0-9_]{0,15}", fullmatch=True)

# Identifiers that are not declared on the detail-column test table
undeclared_identifiers = identifiers.filter(lambda name: name not in DECLARED)


# =============================================================================
# JSON values
# =============================================================================

# JSON-safe primitives (NaN/Infinity are not valid JSON)
json_primitives = (
    st.none()
    | st.booleans()
    | st.integers(min_value=MIN_SAFE_INT, max_value=MAX_SAFE_INT)
    | st.floats(allow_nan=False, allow_infinity=False)
    | st.text(max_size=50)
)

# Nested arrays and objects
json_values = st.recursive(
    json_primitives,
    lambda children: st.lists(children, max_size=5) | st.dictionaries(st.text(max_size=10), children, max_size=5),
    max_leaves=20,
)

# Attributes that all belong in the detail column
dynamic_attributes = st.dictionaries(
    keys=st.text(min_size=1, max_size=30).filter(lambda key: key not in DECLARED),
    values=json_values,
    max_size=10,
)
