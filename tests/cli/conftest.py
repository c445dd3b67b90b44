# tests/cli/conftest.py
"""Shared fixtures for CLI tests."""

from pathlib import Path

import pytest
from sqlalchemy import MetaData

from detailstore.core.database import DetailDB
from tests.fixtures.tables import define_models_without_detail, define_test_models


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """File-backed SQLite database holding test_models and models_without_detail."""
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    metadata = MetaData()
    define_test_models(metadata)
    define_models_without_detail(metadata, with_name=True)
    with DetailDB(url) as db:
        metadata.create_all(db.engine)
    return url


@pytest.fixture
def settings_file(tmp_path: Path) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text("""
database:
  url: "sqlite:///from-settings.db"
schema_cache:
  ttl_seconds: 60
""")
    return path
