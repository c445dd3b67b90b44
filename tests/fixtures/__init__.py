# tests/fixtures/__init__.py
"""Shared table definitions and entity types for detailstore tests."""
