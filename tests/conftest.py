# tests/conftest.py
"""Shared test fixtures.

Database fixtures use in-memory SQLite. Each test gets a fresh database
and a fresh cache provider, so schema snapshots never leak between tests.

Tables are created by the test (or by a fixture below) before the store
first looks at them: once a table's columns are cached they stay cached
for the TTL window.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from collections.abc import Callable, Iterator

import pytest
from hypothesis import Phase, Verbosity, settings
from sqlalchemy import MetaData

from detailstore.core.cache import MemoryCacheProvider
from detailstore.core.database import DetailDB
from detailstore.core.store import DetailStore
from tests.fixtures.clock import MockClock
from tests.fixtures.tables import define_catalog, define_models_without_detail, define_test_models


@pytest.fixture
def db() -> Iterator[DetailDB]:
    """Empty in-memory database."""
    database = DetailDB.in_memory()
    yield database
    database.close()


@pytest.fixture
def clock() -> MockClock:
    return MockClock()


@pytest.fixture
def store(db: DetailDB, clock: MockClock) -> DetailStore:
    """Store over the test database with an isolated cache provider."""
    return DetailStore(db, MemoryCacheProvider(clock))


@pytest.fixture
def create_tables(db: DetailDB) -> Callable[[Callable[[MetaData], object]], None]:
    """Create tables from a definition function (see tests/fixtures/tables.py)."""

    def _create(define: Callable[[MetaData], object]) -> None:
        metadata = MetaData()
        define(metadata)
        metadata.create_all(db.engine)

    return _create


@pytest.fixture
def test_models(create_tables: Callable[[Callable[[MetaData], object]], None]) -> None:
    create_tables(define_test_models)


@pytest.fixture
def catalog(create_tables: Callable[[Callable[[MetaData], object]], None]) -> None:
    create_tables(define_catalog)


@pytest.fixture
def models_without_detail(create_tables: Callable[[Callable[[MetaData], object]], None]) -> None:
    """models_without_detail with id, name and timestamps (no detail)."""
    create_tables(lambda metadata: define_models_without_detail(metadata, with_name=True))


@pytest.fixture
def bare_models_without_detail(create_tables: Callable[[Callable[[MetaData], object]], None]) -> None:
    """models_without_detail with only id and timestamps."""
    create_tables(lambda metadata: define_models_without_detail(metadata, with_name=False))


# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))
