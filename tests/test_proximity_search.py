from __future__ import annotations

import pytest

from pipelines.sync_index import sync_search_index
from utils.errors import NotFoundError, ValidationError


@pytest.fixture
def placed(conn, tree, stations, geo_index):
    """Stations north of (0, 0) at roughly 500 m, 500 m again, 5 km and 50 km."""
    made = {
        "near": stations.create_station("Near Leaf", "Road 1", tree["leaf"].uuid, 0.0045, 0.0),
        "near_twin": stations.create_station("Near Root", "Road 2", tree["root"].uuid, 0.0045, 0.0),
        "far": stations.create_station("Far Mid", "Road 3", tree["mid"].uuid, 0.045, 0.0),
        "other": stations.create_station("Other Far", "Road 4", tree["other"].uuid, 0.45, 0.0),
    }
    sync_search_index(conn, geo_index)
    return made


def _names(page):
    return [[s.name for s in group.stations] for group in page.items]


def test_radius_filters_and_orders_by_distance(search, placed):
    page = search.search(latitude=0.0, longitude=0.0, max_distance_m=1000)

    assert _names(page) == [["Near Leaf", "Near Root"]]
    assert page.total == 1
    assert page.items[0].latitude == 0.0045


def test_zero_radius_is_unbounded_but_sorted(search, placed):
    page = search.search(latitude=0.0, longitude=0.0, max_distance_m=0)

    assert _names(page) == [["Near Leaf", "Near Root"], ["Far Mid"], ["Other Far"]]


def test_company_filter_includes_descendants(search, tree, placed):
    page = search.search(latitude=0.0, longitude=0.0, company_uuid=tree["mid"].uuid)
    assert _names(page) == [["Near Leaf"], ["Far Mid"]]

    page = search.search(company_uuid=tree["root"].uuid)
    names = {s.name for g in page.items for s in g.stations}
    assert names == {"Near Leaf", "Near Root", "Far Mid"}


def test_unknown_company_is_not_found(search, placed):
    with pytest.raises(NotFoundError):
        search.search(company_uuid="no-such-company")


def test_invalid_parameters_fail_before_reading(search):
    with pytest.raises(ValidationError):
        search.search(latitude=10.0)
    with pytest.raises(ValidationError):
        search.search(latitude=100.0, longitude=0.0)


def test_listing_without_origin_uses_store_order(search, placed):
    page = search.search(page_size=2)

    assert [g.stations[0].name for g in page.items] == ["Near Leaf", "Far Mid"]
    assert page.total == 3
    assert page.last_page == 2


def test_pagination_counts_groups(search, placed):
    second = search.search(latitude=0.0, longitude=0.0, page=2, page_size=2)
    beyond = search.search(latitude=0.0, longitude=0.0, page=5, page_size=2)

    assert _names(second) == [["Other Far"]]
    assert beyond.items == []
    assert beyond.total == 3


def test_default_page_size_comes_from_settings(monkeypatch, conn, geo_index):
    from config.settings import get_settings
    from services.proximity_search import ProximitySearchEngine

    monkeypatch.setenv("STATIONS_PER_PAGE", "3")
    get_settings.cache_clear()
    criteria = ProximitySearchEngine(conn, geo_index).build_criteria(page=None)
    assert criteria.page_size == 3
    assert criteria.page == 1


def test_criteria_and_keywords_are_exclusive(search):
    criteria = search.build_criteria()
    with pytest.raises(TypeError):
        search.search(criteria, page=2)


def test_new_station_is_invisible_until_synced(conn, tree, stations, search, geo_index):
    stations.create_station("Fresh", "Road 9", tree["leaf"].uuid, 1.0, 1.0)

    assert search.search(latitude=1.0, longitude=1.0, max_distance_m=10).items == []
    sync_search_index(conn, geo_index)
    assert _names(search.search(latitude=1.0, longitude=1.0, max_distance_m=10)) == [["Fresh"]]


def test_stale_hit_for_deleted_station_is_dropped(conn, stations, search, geo_index, placed):
    stations.delete_station(placed["near"].uuid)

    assert geo_index.count() == 4
    page = search.search(latitude=0.0, longitude=0.0, max_distance_m=1000)
    assert _names(page) == [["Near Root"]]


def test_company_scope_is_applied_before_the_hit_limit(monkeypatch, conn, tree, stations, geo_index):
    from config.settings import get_settings
    from services.proximity_search import ProximitySearchEngine

    for i in range(1, 4):
        stations.create_station(f"Other Close {i}", "Road 5", tree["other"].uuid, 0.001 * i, 0.0)
    stations.create_station("Leaf Distant", "Road 6", tree["leaf"].uuid, 1.0, 0.0)
    sync_search_index(conn, geo_index)

    monkeypatch.setenv("SEARCH_HIT_LIMIT", "3")
    get_settings.cache_clear()
    engine = ProximitySearchEngine(conn, geo_index)

    page = engine.search(latitude=0.0, longitude=0.0, company_uuid=tree["root"].uuid)

    assert page.total == 1
    assert _names(page) == [["Leaf Distant"]]


def test_sqlite_index_filters_by_owner(conn, tree, stations, geo_index, placed):
    from models.search import GeoPoint

    hits = geo_index.search(GeoPoint(lat=0.0, lng=0.0), None, 10, company_ids=[tree["mid"].id])

    assert [h.station_id for h in hits] == [placed["far"].id]
    assert geo_index.search(GeoPoint(lat=0.0, lng=0.0), None, 10, company_ids=[]) == []
