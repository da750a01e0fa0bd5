import argparse
import json
import sys
from pathlib import Path

from config.settings import get_settings
from db.connection import get_connection
from db import schema
from geo_index import get_index
from pipelines.import_fixture import import_fixture
from pipelines.sync_index import sync_search_index
from services.company_service import CompanyService
from services.geo import km_to_m
from services.hierarchy_engine import HierarchyEngine
from services.mapping import (
    render_company_detail,
    render_company_page,
    render_station,
    render_station_page,
)
from services.proximity_search import ProximitySearchEngine
from services.reporting import print_company_tree, print_search_summary
from services.station_service import StationService
from utils.errors import ConfigurationError, StationsError
from utils.logging_setup import init_logging


def _open(args):
    conn = get_connection(args.db)
    schema.bootstrap(conn)
    return conn


def _index(conn):
    settings = get_settings()
    try:
        return get_index(settings.geo_index_backend, conn, settings)
    except (KeyError, ValueError) as exc:
        raise ConfigurationError(exc.args[0] if exc.args else str(exc)) from exc


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def cmd_bootstrap(args):
    conn = _open(args)
    _index(conn).configure()
    print("Schema ready")


def cmd_company_create(args):
    conn = _open(args)
    service = CompanyService(conn)
    company = service.create_company(args.name, parent_uuid=args.parent)
    _print_json(render_company_detail(service.show_company(company.uuid)))


def cmd_company_update(args):
    conn = _open(args)
    service = CompanyService(conn)
    company = service.update_company(args.uuid, name=args.name, parent_uuid=args.parent, detach_parent=args.detach)
    _print_json(render_company_detail(service.show_company(company.uuid)))


def cmd_company_delete(args):
    conn = _open(args)
    CompanyService(conn).delete_company(args.uuid)
    print(f"Deleted company {args.uuid}")


def cmd_company_show(args):
    conn = _open(args)
    detail = CompanyService(conn).show_company(args.uuid)
    if args.tree:
        print_company_tree(detail)
        return
    _print_json(render_company_detail(detail))


def cmd_company_list(args):
    conn = _open(args)
    service = CompanyService(conn)
    page = service.list_companies(page=args.page, page_size=args.per_page)
    parents = {}
    for company in page.items:
        if company.parent_id and company.parent_id not in parents:
            parents[company.parent_id] = service.companies.get_by_id(company.parent_id)
    _print_json(render_company_page(page, parents))


def cmd_station_create(args):
    conn = _open(args)
    station = StationService(conn, index=_index(conn)).create_station(
        args.name, args.address, args.company, args.lat, args.long
    )
    _print_json(render_station(station))


def cmd_station_update(args):
    conn = _open(args)
    station = StationService(conn, index=_index(conn)).update_station(
        args.uuid,
        name=args.name,
        address=args.address,
        company_uuid=args.company,
        latitude=args.lat,
        longitude=args.long,
    )
    _print_json(render_station(station))


def cmd_station_delete(args):
    conn = _open(args)
    StationService(conn, index=_index(conn)).delete_station(args.uuid)
    print(f"Deleted station {args.uuid}")


def cmd_search(args):
    conn = _open(args)
    engine = ProximitySearchEngine(conn, _index(conn))
    # The public API takes the radius in kilometres
    criteria = engine.build_criteria(
        latitude=args.lat,
        longitude=args.long,
        max_distance_m=km_to_m(args.max_distance),
        company_uuid=args.company,
        page=args.page,
        page_size=args.per_page,
    )
    page = engine.search(criteria)
    if args.summary:
        print_search_summary(page, criteria.model_dump())
        return
    _print_json(render_station_page(page))


def cmd_sync_index(args):
    conn = _open(args)
    settings = get_settings()
    ctx = sync_search_index(conn, _index(conn), batch_size=args.limit or settings.index_sync_batch_size)
    print(f"Indexed {ctx.meta['indexed_upserts']} stations, removed {ctx.meta['indexed_deletes']}")


def cmd_import(args):
    conn = _open(args)
    data = json.loads(Path(args.input).read_text(encoding="utf-8"))
    ctx = import_fixture(conn, data, index=_index(conn))
    print(f"Imported {ctx.meta['imported_companies']} companies, {ctx.meta['imported_stations']} stations")
    for item in ctx.meta["skipped"]:
        print(f"  skipped {item['kind']} {item['name']}: {item['reason']}")


def cmd_rebuild_hierarchy(args):
    conn = _open(args)
    rows = HierarchyEngine(conn).rebuild_all()
    print(f"Hierarchy rebuilt: {rows} rows")


def main():
    try:
        settings = get_settings()
    except (RuntimeError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)
    init_logging(settings.log_level)
    parser = argparse.ArgumentParser(description="Company hierarchy and station search CLI")
    parser.add_argument("--db", default=settings.db_path, help="Path to SQLite DB (default from settings)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_boot = sub.add_parser("bootstrap", help="Create tables and configure the geo index")
    p_boot.set_defaults(func=cmd_bootstrap)

    p_cc = sub.add_parser("company-create", help="Create a company")
    p_cc.add_argument("--name", required=True)
    p_cc.add_argument("--parent", default=None, help="UUID of the parent company")
    p_cc.set_defaults(func=cmd_company_create)

    p_cu = sub.add_parser("company-update", help="Rename or move a company")
    p_cu.add_argument("--uuid", required=True)
    p_cu.add_argument("--name", default=None)
    pg = p_cu.add_mutually_exclusive_group(required=False)
    pg.add_argument("--parent", default=None, help="UUID of the new parent company")
    pg.add_argument("--detach", action="store_true", help="Make the company a root")
    p_cu.set_defaults(func=cmd_company_update)

    p_cd = sub.add_parser("company-delete", help="Delete a company; its children become roots")
    p_cd.add_argument("--uuid", required=True)
    p_cd.set_defaults(func=cmd_company_delete)

    p_cs = sub.add_parser("company-show", help="Show a company with ancestors and descendants")
    p_cs.add_argument("--uuid", required=True)
    p_cs.add_argument("--tree", action="store_true", help="Print an indented tree instead of JSON")
    p_cs.set_defaults(func=cmd_company_show)

    p_cl = sub.add_parser("company-list", help="List companies")
    p_cl.add_argument("--page", type=int, default=1)
    p_cl.add_argument("--per-page", type=int, default=None)
    p_cl.set_defaults(func=cmd_company_list)

    p_sc = sub.add_parser("station-create", help="Create a station")
    p_sc.add_argument("--name", required=True)
    p_sc.add_argument("--address", required=True)
    p_sc.add_argument("--company", required=True, help="UUID of the owning company")
    p_sc.add_argument("--lat", type=float, required=True)
    p_sc.add_argument("--long", type=float, required=True)
    p_sc.set_defaults(func=cmd_station_create)

    p_su = sub.add_parser("station-update", help="Update a station")
    p_su.add_argument("--uuid", required=True)
    p_su.add_argument("--name", default=None)
    p_su.add_argument("--address", default=None)
    p_su.add_argument("--company", default=None, help="UUID of the new owning company")
    p_su.add_argument("--lat", type=float, default=None)
    p_su.add_argument("--long", type=float, default=None)
    p_su.set_defaults(func=cmd_station_update)

    p_sd = sub.add_parser("station-delete", help="Delete a station")
    p_sd.add_argument("--uuid", required=True)
    p_sd.set_defaults(func=cmd_station_delete)

    p_s = sub.add_parser("search", help="List stations grouped by coordinates")
    p_s.add_argument("--lat", type=float, default=None, help="Latitude of the origin")
    p_s.add_argument("--long", type=float, default=None, help="Longitude of the origin")
    p_s.add_argument("--max-distance", type=float, default=None, help="Radius in kilometres (0 = unbounded)")
    p_s.add_argument("--company", default=None, help="Company UUID; child companies are included")
    p_s.add_argument("--page", type=int, default=1)
    p_s.add_argument("--per-page", type=int, default=None)
    p_s.add_argument("--summary", action="store_true", help="Print a readable summary instead of JSON")
    p_s.set_defaults(func=cmd_search)

    p_sync = sub.add_parser("sync-index", help="Push pending station changes to the geo index")
    p_sync.add_argument("--limit", type=int, default=None, help="Batch size (default from settings)")
    p_sync.set_defaults(func=cmd_sync_index)

    p_imp = sub.add_parser("import", help="Import companies and stations from a JSON fixture")
    p_imp.add_argument("--input", required=True, help="Path to JSON file")
    p_imp.set_defaults(func=cmd_import)

    p_rh = sub.add_parser("rebuild-hierarchy", help="Recompute the whole ancestor table")
    p_rh.set_defaults(func=cmd_rebuild_hierarchy)

    args = parser.parse_args()
    try:
        args.func(args)
    except StationsError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
