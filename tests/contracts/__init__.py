"""Tests for the contracts package (entity record type, error contracts)."""
