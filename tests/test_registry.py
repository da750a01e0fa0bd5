from __future__ import annotations

import pytest


def test_builtin_indexes_registered():
    import geo_index  # noqa: F401
    from geo_index.registry import available_indexes

    names = available_indexes().keys()
    assert "sqlite" in names
    assert "meilisearch" in names


def test_get_index_builds_sqlite_backend(conn):
    from geo_index import get_index
    from geo_index.sqlite_index import SqliteGeoIndex

    index = get_index("sqlite", conn)
    assert isinstance(index, SqliteGeoIndex)
    assert index.count() == 0


def test_unknown_index_raises(conn):
    from geo_index import get_index
    with pytest.raises(KeyError):
        get_index("does_not_exist", conn)
