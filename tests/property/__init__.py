# tests/property/__init__.py
"""Property-based tests for detailstore.

Property-based testing validates invariants that must hold for ALL inputs,
not just the specific examples we think of.

Test categories:
- test_resolver_properties.py: resolution idempotence, foreign pass-through
- test_lifecycle_properties.py: write/read round-trips, partition cover
"""
