from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from config.settings import Settings, get_settings
from db.connection import transaction
from db.repos.companies_repo import CompaniesRepo
from db.repos.outbox_repo import IndexOutboxRepo
from db.repos.stations_repo import StationsRepo
from models.station import Station, StationInput
from pipelines.sync_index import sync_search_index
from ports.geo_index import GeoIndexPort
from utils.errors import NotFoundError, SearchIndexError, ValidationError
from utils.validation import validate_model


logger = logging.getLogger(__name__)


class StationService:
    """Station writes; each one queues a geo index update in the same transaction.

    The index is brought up to date by ``sync_search_index`` later, or right
    after commit when ``index_sync_immediate`` is on and an index is given.
    """

    def __init__(self, conn: sqlite3.Connection, index: Optional[GeoIndexPort] = None, settings: Optional[Settings] = None) -> None:
        self.conn = conn
        self.index = index
        self.settings = settings or get_settings()
        self.stations = StationsRepo(conn)
        self.companies = CompaniesRepo(conn)
        self.outbox = IndexOutboxRepo(conn)

    def get_station(self, external_id: str) -> Station:
        station = self.stations.get_by_uuid(external_id)
        if station is None:
            raise NotFoundError("station", external_id)
        return station

    def create_station(self, name: str, address: str, company_uuid: str, latitude: float, longitude: float) -> Station:
        data = validate_model(
            StationInput,
            {"name": name, "address": address, "latitude": latitude, "longitude": longitude},
        )
        with transaction(self.conn):
            company = self._resolve_company(company_uuid)
            if self.stations.get_by_name(data.name) is not None:
                raise ValidationError(f"name: station name already taken: {data.name}")
            station_id = self.stations.insert(data.name, data.address, company.id, data.latitude, data.longitude)
            self.outbox.enqueue(station_id, "upsert")
        station = self.stations.get_by_id(station_id)
        logger.info("Created station %s", station.uuid, extra={"step": "create_station", "status": "ok", "company": company.id})
        self._after_write()
        return station

    def update_station(
        self,
        external_id: str,
        name: Optional[str] = None,
        address: Optional[str] = None,
        company_uuid: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> Station:
        with transaction(self.conn):
            current = self.get_station(external_id)
            data = validate_model(
                StationInput,
                {
                    "name": current.name if name is None else name,
                    "address": current.address if address is None else address,
                    "latitude": current.latitude if latitude is None else latitude,
                    "longitude": current.longitude if longitude is None else longitude,
                },
            )
            if data.name != current.name and self.stations.get_by_name(data.name) is not None:
                raise ValidationError(f"name: station name already taken: {data.name}")
            company_id = self._resolve_company(company_uuid).id if company_uuid else current.company_id
            self.stations.update(current.id, data.name, data.address, company_id, data.latitude, data.longitude)
            self.outbox.enqueue(current.id, "upsert")
        self._after_write()
        return self.stations.get_by_id(current.id)

    def delete_station(self, external_id: str) -> None:
        with transaction(self.conn):
            station = self.get_station(external_id)
            self.stations.delete(station.id)
            self.outbox.enqueue(station.id, "delete")
        self._after_write()

    def _resolve_company(self, company_uuid: str):
        company = self.companies.get_by_uuid(company_uuid)
        if company is None:
            raise NotFoundError("company", company_uuid)
        return company

    def _after_write(self) -> None:
        if self.index is None or not self.settings.index_sync_immediate:
            return
        try:
            sync_search_index(self.conn, self.index, batch_size=self.settings.index_sync_batch_size)
        except SearchIndexError as exc:
            # The write is committed; its outbox row stays pending for the next sync
            logger.warning(
                "Write-through to geo index failed",
                extra={"step": "index_write_through", "status": "deferred", "error": str(exc)},
            )
