from __future__ import annotations

import json
import sqlite3
import uuid
from typing import Dict, Iterable, List, Optional, Sequence

from models.station import Station


_SELECT = (
    "SELECT id, uuid, name, address, company_id, latitude, longitude, company_uuid, company_name "
    "FROM v_stations_with_company"
)


def _row_to_station(row: Optional[Sequence]) -> Optional[Station]:
    if not row:
        return None
    return Station(
        id=int(row[0]),
        uuid=row[1],
        name=row[2],
        address=row[3],
        company_id=int(row[4]),
        latitude=float(row[5]),
        longitude=float(row[6]),
        company_uuid=row[7],
        company_name=row[8],
    )


def _json_ids(ids: Iterable[int]) -> str:
    # Bound as one parameter and expanded with json_each(), avoiding variable limits
    return json.dumps([int(i) for i in ids])


class StationsRepo:
    """Plain SQL access to ``stations``; reads go through ``v_stations_with_company``."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def insert(self, name: str, address: str, company_id: int, latitude: float, longitude: float) -> int:
        cur = self.conn.cursor()
        cur.execute(
            "INSERT INTO stations (uuid, name, address, company_id, latitude, longitude) VALUES (?, ?, ?, ?, ?, ?)",
            (str(uuid.uuid4()), name, address, company_id, latitude, longitude),
        )
        return int(cur.lastrowid)

    def update(self, station_id: int, name: str, address: str, company_id: int, latitude: float, longitude: float) -> None:
        self.conn.execute(
            (
                "UPDATE stations SET name = ?, address = ?, company_id = ?, latitude = ?, longitude = ?, "
                "updated_at = datetime('now') WHERE id = ?"
            ),
            (name, address, company_id, latitude, longitude, station_id),
        )

    def delete(self, station_id: int) -> None:
        self.conn.execute("DELETE FROM stations WHERE id = ?", (station_id,))

    def delete_for_company(self, company_id: int) -> None:
        self.conn.execute("DELETE FROM stations WHERE company_id = ?", (company_id,))

    def get_by_id(self, station_id: int) -> Optional[Station]:
        cur = self.conn.cursor()
        cur.execute(f"{_SELECT} WHERE id = ?", (station_id,))
        return _row_to_station(cur.fetchone())

    def get_by_uuid(self, external_id: str) -> Optional[Station]:
        cur = self.conn.cursor()
        cur.execute(f"{_SELECT} WHERE uuid = ?", (external_id,))
        return _row_to_station(cur.fetchone())

    def get_by_name(self, name: str) -> Optional[Station]:
        cur = self.conn.cursor()
        cur.execute(f"{_SELECT} WHERE name = ?", (name,))
        return _row_to_station(cur.fetchone())

    def ids_for_company(self, company_id: int) -> List[int]:
        cur = self.conn.cursor()
        cur.execute("SELECT id FROM stations WHERE company_id = ? ORDER BY id", (company_id,))
        return [int(r[0]) for r in cur.fetchall()]

    def get_many(self, station_ids: Iterable[int], company_ids: Optional[Iterable[int]] = None) -> Dict[int, Station]:
        """Load stations by id, optionally restricted to a set of owners."""
        sql = f"{_SELECT} WHERE id IN (SELECT value FROM json_each(?))"
        params: List[object] = [_json_ids(station_ids)]
        if company_ids is not None:
            sql += " AND company_id IN (SELECT value FROM json_each(?))"
            params.append(_json_ids(company_ids))
        cur = self.conn.cursor()
        cur.execute(sql, tuple(params))
        out: Dict[int, Station] = {}
        for row in cur.fetchall():
            station = _row_to_station(row)
            if station is not None:
                out[station.id] = station
        return out

    def list_filtered(self, company_ids: Optional[Iterable[int]] = None) -> List[Station]:
        """All stations in identity order, optionally restricted to a set of owners."""
        sql = _SELECT
        params: tuple = ()
        if company_ids is not None:
            sql += " WHERE company_id IN (SELECT value FROM json_each(?))"
            params = (_json_ids(company_ids),)
        sql += " ORDER BY id"
        cur = self.conn.cursor()
        cur.execute(sql, params)
        return [s for s in (_row_to_station(r) for r in cur.fetchall()) if s is not None]
