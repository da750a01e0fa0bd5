from __future__ import annotations

import sqlite3
from typing import Dict, List

from db.repos.outbox_repo import IndexOutboxRepo
from db.repos.stations_repo import StationsRepo
from models.station import StationDocument
from pipelines.runner import RunContext


class LoadIndexUpdates:
    """Collect pending outbox rows and turn them into index documents.

    Several rows for one station collapse into the newest one. An upsert for
    a station that has since disappeared becomes a delete.
    """

    def __init__(self, conn: sqlite3.Connection, limit: int = 100) -> None:
        self.conn = conn
        self.limit = limit

    def run(self, ctx: RunContext) -> RunContext:
        outbox = IndexOutboxRepo(self.conn)
        rows = outbox.pending(limit=self.limit)

        latest: Dict[int, str] = {}
        for _outbox_id, station_id, op in rows:
            latest[station_id] = op

        upsert_ids = [sid for sid, op in latest.items() if op == "upsert"]
        stations = StationsRepo(self.conn).get_many(upsert_ids)

        documents: List[StationDocument] = []
        deletes: List[int] = [sid for sid, op in latest.items() if op == "delete"]
        for sid in upsert_ids:
            station = stations.get(sid)
            if station is None:
                deletes.append(sid)
                continue
            documents.append(StationDocument.from_station(station))

        ctx.documents = documents
        ctx.meta["index_deletes"] = sorted(deletes)
        ctx.meta["outbox_ids"] = [r[0] for r in rows]
        return ctx
