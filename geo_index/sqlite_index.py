from __future__ import annotations

import json
import logging
import sqlite3
from typing import Iterable, List, Optional, Sequence

from db.connection import transaction
from geo_index.registry import register
from models.search import GeoHit, GeoPoint
from models.station import StationDocument
from services.geo import haversine_m


logger = logging.getLogger(__name__)


class SqliteGeoIndex:
    """Geo index kept in ``station_search_documents``.

    Distance filtering and sorting run in SQL through a ``haversine_m``
    function registered on the connection.
    """

    name = "sqlite"

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        self.conn.create_function("haversine_m", 4, haversine_m, deterministic=True)

    def configure(self) -> None:
        # Table and indexes come from db.schema.bootstrap
        return None

    def upsert(self, documents: Sequence[StationDocument]) -> None:
        rows = [
            (d.station_id, d.uuid, d.name, d.address, d.company_id, d.company_name, d.latitude, d.longitude)
            for d in documents
        ]
        if not rows:
            return
        with transaction(self.conn):
            self.conn.executemany(
                (
                    "INSERT INTO station_search_documents "
                    "(station_id, uuid, name, address, company_id, company_name, latitude, longitude) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?) "
                    "ON CONFLICT(station_id) DO UPDATE SET "
                    " uuid = excluded.uuid, name = excluded.name, address = excluded.address, "
                    " company_id = excluded.company_id, company_name = excluded.company_name, "
                    " latitude = excluded.latitude, longitude = excluded.longitude, "
                    " indexed_at = datetime('now')"
                ),
                rows,
            )
        logger.debug("Indexed %d documents", len(rows), extra={"step": "index_upsert", "status": "ok"})

    def delete(self, station_ids: Iterable[int]) -> None:
        rows = [(int(sid),) for sid in station_ids]
        if not rows:
            return
        with transaction(self.conn):
            self.conn.executemany("DELETE FROM station_search_documents WHERE station_id = ?", rows)

    def search(
        self,
        origin: GeoPoint,
        max_distance_m: Optional[float],
        limit: int,
        company_ids: Optional[Sequence[int]] = None,
    ) -> List[GeoHit]:
        sql = (
            "SELECT station_id, distance_m FROM ("
            "  SELECT station_id, company_id, haversine_m(latitude, longitude, ?, ?) AS distance_m"
            "  FROM station_search_documents"
            ")"
        )
        params: List[object] = [origin.lat, origin.lng]
        where: List[str] = []
        if max_distance_m is not None:
            where.append("distance_m <= ?")
            params.append(float(max_distance_m))
        if company_ids is not None:
            where.append("company_id IN (SELECT value FROM json_each(?))")
            params.append(json.dumps([int(c) for c in company_ids]))
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY distance_m, station_id LIMIT ?"
        params.append(int(limit))
        cur = self.conn.cursor()
        cur.execute(sql, tuple(params))
        return [GeoHit(station_id=int(r[0]), distance_m=float(r[1])) for r in cur.fetchall()]

    def clear(self) -> None:
        with transaction(self.conn):
            self.conn.execute("DELETE FROM station_search_documents")

    def count(self) -> int:
        cur = self.conn.cursor()
        cur.execute("SELECT COUNT(*) FROM station_search_documents")
        return int(cur.fetchone()[0])


def _register():
    register(SqliteGeoIndex.name, lambda conn, settings: SqliteGeoIndex(conn))


_register()
