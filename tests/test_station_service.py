from __future__ import annotations

import pytest

from db.repos.outbox_repo import IndexOutboxRepo
from pipelines.sync_index import sync_search_index
from utils.errors import NotFoundError, SearchIndexError, ValidationError


def _indexed(conn):
    cur = conn.cursor()
    cur.execute("SELECT name, company_name, latitude, longitude FROM station_search_documents ORDER BY station_id")
    return cur.fetchall()


def test_create_queues_upsert_and_sync_pushes_document(conn, tree, stations, geo_index):
    station = stations.create_station("  Main Depot ", "Dock 1", tree["leaf"].uuid, 52.5, 13.4)

    assert station.name == "Main Depot"
    assert station.company_uuid == tree["leaf"].uuid
    assert IndexOutboxRepo(conn).pending(10) == [(1, station.id, "upsert")]
    assert _indexed(conn) == []

    ctx = sync_search_index(conn, geo_index)

    assert ctx.meta["indexed_upserts"] == 1
    assert ctx.meta["batches"] == 1
    assert IndexOutboxRepo(conn).pending_count() == 0
    assert _indexed(conn) == [("Main Depot", "Leaf Franchise", 52.5, 13.4)]


def test_update_and_delete_reach_the_index(conn, tree, stations, geo_index):
    station = stations.create_station("Main Depot", "Dock 1", tree["leaf"].uuid, 52.5, 13.4)
    sync_search_index(conn, geo_index)

    moved = stations.update_station(station.uuid, latitude=48.1, company_uuid=tree["other"].uuid)
    assert moved.latitude == 48.1
    assert moved.longitude == 13.4
    assert moved.company_id == tree["other"].id
    sync_search_index(conn, geo_index)
    assert _indexed(conn) == [("Main Depot", "Other Network", 48.1, 13.4)]

    stations.delete_station(station.uuid)
    ctx = sync_search_index(conn, geo_index)
    assert ctx.meta["indexed_deletes"] == 1
    assert _indexed(conn) == []


def test_changes_collapse_to_latest_operation(conn, tree, stations, geo_index):
    station = stations.create_station("Main Depot", "Dock 1", tree["leaf"].uuid, 52.5, 13.4)
    stations.update_station(station.uuid, address="Dock 2")
    stations.delete_station(station.uuid)

    ctx = sync_search_index(conn, geo_index, batch_size=10)

    assert ctx.meta["indexed_upserts"] == 0
    assert ctx.meta["indexed_deletes"] == 1
    assert IndexOutboxRepo(conn).pending_count() == 0


def test_small_batches_drain_everything(conn, tree, stations, geo_index):
    for i in range(5):
        stations.create_station(f"Depot {i}", "Dock 1", tree["root"].uuid, 10.0 + i, 10.0)

    ctx = sync_search_index(conn, geo_index, batch_size=2)

    assert ctx.meta["batches"] == 3
    assert ctx.meta["indexed_upserts"] == 5
    assert geo_index.count() == 5


def test_company_rename_refreshes_documents(conn, tree, companies, stations, geo_index):
    stations.create_station("Main Depot", "Dock 1", tree["leaf"].uuid, 52.5, 13.4)
    sync_search_index(conn, geo_index)

    companies.update_company(tree["leaf"].uuid, name="Leaf Renamed")
    sync_search_index(conn, geo_index)

    assert _indexed(conn)[0][1] == "Leaf Renamed"


def test_immediate_mode_syncs_after_commit(monkeypatch, conn, tree, geo_index):
    from config.settings import get_settings
    from services.station_service import StationService

    monkeypatch.setenv("INDEX_SYNC_IMMEDIATE", "true")
    get_settings.cache_clear()
    service = StationService(conn, index=geo_index)

    service.create_station("Main Depot", "Dock 1", tree["leaf"].uuid, 52.5, 13.4)

    assert geo_index.count() == 1
    assert IndexOutboxRepo(conn).pending_count() == 0


class _BrokenIndex:
    name = "broken"

    def upsert(self, documents):
        raise SearchIndexError("index down")

    def delete(self, station_ids):
        raise SearchIndexError("index down")


def test_failed_write_through_keeps_row_pending(monkeypatch, conn, tree):
    from config.settings import get_settings
    from services.station_service import StationService

    monkeypatch.setenv("INDEX_SYNC_IMMEDIATE", "true")
    get_settings.cache_clear()
    service = StationService(conn, index=_BrokenIndex())

    station = service.create_station("Main Depot", "Dock 1", tree["leaf"].uuid, 52.5, 13.4)

    assert service.get_station(station.uuid).name == "Main Depot"
    cur = conn.cursor()
    cur.execute("SELECT processed_at, attempts, last_error FROM search_index_outbox")
    assert cur.fetchall() == [(None, 1, "index down")]


def test_sync_failure_propagates(conn, tree, stations):
    stations.create_station("Main Depot", "Dock 1", tree["leaf"].uuid, 52.5, 13.4)
    with pytest.raises(SearchIndexError):
        sync_search_index(conn, _BrokenIndex())
    assert IndexOutboxRepo(conn).pending_count() == 1


def test_validation_and_lookup_errors(tree, stations):
    stations.create_station("Main Depot", "Dock 1", tree["leaf"].uuid, 52.5, 13.4)

    with pytest.raises(ValidationError):
        stations.create_station("Main Depot", "Dock 2", tree["leaf"].uuid, 1.0, 1.0)
    with pytest.raises(ValidationError):
        stations.create_station("Edge", "Dock 3", tree["leaf"].uuid, 95.0, 1.0)
    with pytest.raises(NotFoundError):
        stations.create_station("Lost", "Dock 4", "missing-company", 1.0, 1.0)
    with pytest.raises(NotFoundError):
        stations.update_station("missing-station", name="Whatever")
    with pytest.raises(NotFoundError):
        stations.delete_station("missing-station")
