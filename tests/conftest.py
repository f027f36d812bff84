"""
Pytest fixtures for fabrication, resampling and API testing.
"""

import numpy as np
import pandas as pd
import pytest
from fastapi.testclient import TestClient

from fabricator import add_level, fabricate
from fabricator.database import TableStore
from api.config import Settings


@pytest.fixture
def rng():
    """
    Seeded random source.
    """
    return np.random.default_rng(42)


@pytest.fixture
def nested_table(rng):
    """
    Two outer units with three inner units each.
    """
    return fabricate(
        outer=add_level(N=2, outer_value=lambda N, rng: rng.normal(size=N)),
        inner=add_level(N=3, inner_value=lambda N, rng: rng.normal(size=N)),
        rng=rng
    )


@pytest.fixture
def database_url(tmp_path):
    """
    SQLite database file for the test.
    """
    return f"sqlite:///{tmp_path / 'fabricator.db'}"


@pytest.fixture
def store(database_url, nested_table):
    """
    TableStore holding a nested table and a flat table.
    """
    table_store = TableStore(database_url)
    table_store.save_table(nested_table, 'schools')
    table_store.save_table(
        pd.DataFrame({'ID': ['ID_1', 'ID_2', 'ID_3'], 'score': [1.0, 2.0, 3.0]}),
        'scores'
    )
    return table_store


@pytest.fixture
def client(database_url, store):
    """
    FastAPI test client backed by the test database.
    """
    from api.main import app
    from api.config import get_settings

    def get_settings_override():
        return Settings(
            database_url=database_url,
            debug=True,
            max_rows_per_request=50
        )

    app.dependency_overrides[get_settings] = get_settings_override

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
