from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest


def pytest_configure():
    # Ensure project root is on sys.path for absolute imports like 'services.hierarchy_engine'
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))
    # Set test environment knobs
    os.environ.setdefault("RUN_ENV", "test")
    os.environ.setdefault("GEO_INDEX_BACKEND", "sqlite")


@pytest.fixture(autouse=True)
def _fresh_settings():
    from config.settings import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def conn(tmp_path):
    from db import schema
    from db.connection import get_connection

    db = get_connection(str(tmp_path / "t.db"))
    try:
        schema.bootstrap(db)
        yield db
    finally:
        db.close()


@pytest.fixture
def companies(conn):
    from services.company_service import CompanyService
    return CompanyService(conn)


@pytest.fixture
def geo_index(conn):
    from geo_index.sqlite_index import SqliteGeoIndex
    return SqliteGeoIndex(conn)


@pytest.fixture
def stations(conn, geo_index):
    from services.station_service import StationService
    return StationService(conn, index=geo_index)


@pytest.fixture
def search(conn, geo_index):
    from services.proximity_search import ProximitySearchEngine
    return ProximitySearchEngine(conn, geo_index)


@pytest.fixture
def tree(companies):
    """root -> mid -> leaf, plus an unrelated company 'other'."""
    root = companies.create_company("Root Holding")
    mid = companies.create_company("Mid Operator", parent_uuid=root.uuid)
    leaf = companies.create_company("Leaf Franchise", parent_uuid=mid.uuid)
    other = companies.create_company("Other Network")
    return {"root": root, "mid": mid, "leaf": leaf, "other": other}
