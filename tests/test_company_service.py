from __future__ import annotations

import uuid

import pytest

from utils.errors import NotFoundError, ValidationError


def test_create_assigns_uuid_and_links_parent(companies):
    parent = companies.create_company("Parent Co")
    child = companies.create_company("  Child Co  ", parent_uuid=parent.uuid)

    assert uuid.UUID(child.uuid)
    assert child.name == "Child Co"
    assert child.parent_id == parent.id


def test_unknown_parent_is_not_found_and_nothing_is_written(conn, companies):
    with pytest.raises(NotFoundError) as info:
        companies.create_company("Orphan Co", parent_uuid=str(uuid.uuid4()))
    assert info.value.entity == "company"
    assert companies.list_companies().total == 0


def test_name_rules(companies):
    companies.create_company("Acme")
    with pytest.raises(ValidationError):
        companies.create_company("Acme")
    with pytest.raises(ValidationError):
        companies.create_company("ab")


def test_update_without_parent_change_keeps_closure(conn, tree, companies):
    from services.hierarchy_engine import HierarchyEngine

    before = HierarchyEngine(conn).edges()
    updated = companies.update_company(tree["leaf"].uuid, name="Leaf Renamed")

    assert updated.name == "Leaf Renamed"
    assert updated.parent_id == tree["mid"].id
    assert HierarchyEngine(conn).edges() == before


def test_update_rejects_parent_and_detach_together(tree, companies):
    with pytest.raises(ValidationError):
        companies.update_company(tree["leaf"].uuid, parent_uuid=tree["root"].uuid, detach_parent=True)


def test_show_company_lists_relatives(tree, companies):
    detail = companies.show_company(tree["mid"].uuid)

    assert detail.parent.uuid == tree["root"].uuid
    assert [r.company.uuid for r in detail.ancestors] == [tree["root"].uuid]
    assert [r.company.uuid for r in detail.descendants] == [tree["leaf"].uuid]


def test_show_unknown_company(companies):
    with pytest.raises(NotFoundError):
        companies.show_company("missing")


def test_list_companies_paginates(tree, companies):
    page = companies.list_companies(page=2, page_size=3)

    assert page.total == 4
    assert page.last_page == 2
    assert [c.name for c in page.items] == ["Other Network"]


def test_delete_company_removes_its_stations(conn, tree, companies, stations):
    st = stations.create_station("Leaf Station", "Main St 1", tree["leaf"].uuid, 10.0, 20.0)

    companies.delete_company(tree["leaf"].uuid)

    with pytest.raises(NotFoundError):
        stations.get_station(st.uuid)
    cur = conn.cursor()
    cur.execute("SELECT op FROM search_index_outbox WHERE station_id = ? ORDER BY id", (st.id,))
    assert [r[0] for r in cur.fetchall()] == ["upsert", "delete"]
