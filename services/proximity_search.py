from __future__ import annotations

import logging
import sqlite3
import time
from typing import Any, List, Optional

from config.settings import Settings, get_settings
from db.repos.companies_repo import CompaniesRepo
from db.repos.stations_repo import StationsRepo
from models.search import Page, SearchCriteria, StationGroup
from models.station import Station
from ports.geo_index import GeoIndexPort
from services.grouping import group_by_coordinates, paginate
from services.hierarchy_engine import HierarchyEngine
from utils.errors import NotFoundError
from utils.validation import validate_model


logger = logging.getLogger(__name__)


class ProximitySearchEngine:
    """Station listing by distance, company subtree and coordinate group.

    Distance and ownership filtering and the ordering come from the geo
    index; the station data comes from the primary store, which is the
    source of truth and re-checks ownership. Hits the primary store no
    longer knows (index lag after a delete) are dropped.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        index: GeoIndexPort,
        engine: Optional[HierarchyEngine] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.conn = conn
        self.index = index
        self.settings = settings or get_settings()
        self.engine = engine or HierarchyEngine(conn, max_depth=self.settings.max_hierarchy_depth)
        self.companies = CompaniesRepo(conn)
        self.stations = StationsRepo(conn)

    def build_criteria(self, **params: Any) -> SearchCriteria:
        """Validate raw parameters; unset (None) values fall back to defaults."""
        data = {k: v for k, v in params.items() if v is not None}
        data.setdefault("page_size", self.settings.stations_per_page)
        return validate_model(SearchCriteria, data)

    def search(self, criteria: Optional[SearchCriteria] = None, **params: Any) -> Page[StationGroup]:
        """Return one page of coordinate groups.

        Accepts a ready ``SearchCriteria`` or the raw keyword parameters
        (``latitude``, ``longitude``, ``max_distance_m``, ``company_uuid``,
        ``page``, ``page_size``). Validation and company resolution happen
        before any station is read.
        """
        if criteria is None:
            criteria = self.build_criteria(**params)
        elif params:
            raise TypeError("pass either criteria or keyword parameters, not both")

        started = time.time()
        company_ids = self._scope(criteria.company_uuid)
        if criteria.origin is not None:
            stations = self._nearby(criteria, company_ids)
        else:
            stations = self.stations.list_filtered(company_ids)

        groups = group_by_coordinates(stations)
        page = paginate(groups, criteria.page, criteria.page_size)
        logger.info(
            "Search returned %d stations in %d groups (page %d/%d)",
            len(stations),
            page.total,
            page.page,
            page.last_page,
            extra={
                "step": "search",
                "status": "ok",
                "company": criteria.company_uuid or "-",
                "duration_ms": int((time.time() - started) * 1000),
            },
        )
        return page

    def _scope(self, company_uuid: Optional[str]) -> Optional[List[int]]:
        if not company_uuid:
            return None
        company = self.companies.get_by_uuid(company_uuid)
        if company is None:
            raise NotFoundError("company", company_uuid)
        return self.engine.subtree_ids(company.id)

    def _nearby(self, criteria: SearchCriteria, company_ids: Optional[List[int]]) -> List[Station]:
        limit = self.settings.search_hit_limit
        hits = self.index.search(criteria.origin, criteria.radius_m, limit, company_ids=company_ids)
        if len(hits) >= limit:
            logger.warning(
                "Geo index hit limit of %d reached; later groups are not counted",
                limit,
                extra={"step": "search", "status": "truncated"},
            )
        found = self.stations.get_many([h.station_id for h in hits], company_ids)
        ordered: List[Station] = []
        for hit in hits:
            station = found.get(hit.station_id)
            if station is not None:
                ordered.append(station)
        logger.debug(
            "Geo index returned %d hits, %d kept",
            len(hits),
            len(ordered),
            extra={"step": "search", "status": "hits"},
        )
        return ordered
