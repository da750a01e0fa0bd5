from __future__ import annotations

import sqlite3
from typing import Dict, List

from db.repos.companies_repo import CompaniesRepo
from pipelines.runner import RunContext
from services.company_service import CompanyService
from services.station_service import StationService
from utils.errors import StationsError


class PersistFixture:
    """Write validated fixture entries through the services, one entry per transaction."""

    def __init__(self, companies: CompanyService, stations: StationService) -> None:
        self.companies = companies
        self.stations = stations

    @property
    def conn(self) -> sqlite3.Connection:
        return self.companies.conn

    def run(self, ctx: RunContext) -> RunContext:
        repo = CompaniesRepo(self.conn)
        skipped: List[Dict] = ctx.meta.setdefault("skipped", [])

        imported_companies = 0
        for entry in ctx.companies or []:
            if repo.get_by_name(entry["name"]) is not None:
                skipped.append({"kind": "company", "name": entry["name"], "reason": "already exists"})
                continue
            parent_uuid = None
            if entry["parent"]:
                parent = repo.get_by_name(entry["parent"])
                if parent is None:
                    skipped.append({"kind": "company", "name": entry["name"], "reason": f"unknown parent {entry['parent']}"})
                    continue
                parent_uuid = parent.uuid
            try:
                self.companies.create_company(entry["name"], parent_uuid=parent_uuid)
                imported_companies += 1
            except StationsError as exc:
                skipped.append({"kind": "company", "name": entry["name"], "reason": str(exc)})

        imported_stations = 0
        for entry in ctx.stations or []:
            owner = repo.get_by_name(entry["company"])
            if owner is None:
                skipped.append({"kind": "station", "name": entry["name"], "reason": f"unknown company {entry['company']}"})
                continue
            try:
                self.stations.create_station(
                    entry["name"],
                    entry["address"],
                    owner.uuid,
                    entry["latitude"],
                    entry["longitude"],
                )
                imported_stations += 1
            except StationsError as exc:
                skipped.append({"kind": "station", "name": entry["name"], "reason": str(exc)})

        ctx.meta["imported_companies"] = imported_companies
        ctx.meta["imported_stations"] = imported_stations
        return ctx
