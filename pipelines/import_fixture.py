from __future__ import annotations

import sqlite3
from typing import Any, Dict, Optional

from pipelines.runner import Pipeline, RunContext
from pipelines.steps.persist_fixture import PersistFixture
from pipelines.steps.validate_fixture import ValidateFixture
from ports.geo_index import GeoIndexPort
from services.company_service import CompanyService
from services.station_service import StationService


def import_fixture(conn: sqlite3.Connection, data: Dict[str, Any], index: Optional[GeoIndexPort] = None) -> RunContext:
    """Load a ``{"companies": [...], "stations": [...]}`` document.

    Companies reference their parent and stations their owner by name.
    """
    ctx = RunContext()
    ctx.companies = list(data.get("companies") or [])
    ctx.stations = list(data.get("stations") or [])
    pipeline = Pipeline([
        ValidateFixture(),
        PersistFixture(CompanyService(conn), StationService(conn, index=index)),
    ])
    ctx = pipeline.run(ctx)
    ctx.meta.setdefault("skipped", [])
    return ctx
