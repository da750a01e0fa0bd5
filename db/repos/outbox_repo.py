from __future__ import annotations

import sqlite3
from typing import Iterable, List, Literal, Tuple


IndexOp = Literal["upsert", "delete"]


class IndexOutboxRepo:
    """Queue of station changes waiting to reach the geo index."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def enqueue(self, station_id: int, op: IndexOp) -> None:
        self.conn.execute(
            "INSERT INTO search_index_outbox (station_id, op) VALUES (?, ?)",
            (station_id, op),
        )

    def enqueue_many(self, station_ids: Iterable[int], op: IndexOp) -> int:
        rows = [(int(sid), op) for sid in station_ids]
        if rows:
            self.conn.executemany(
                "INSERT INTO search_index_outbox (station_id, op) VALUES (?, ?)", rows
            )
        return len(rows)

    def pending(self, limit: int = 100) -> List[Tuple[int, int, str]]:
        """Return (outbox_id, station_id, op) for unprocessed rows, oldest first."""
        cur = self.conn.cursor()
        cur.execute(
            "SELECT id, station_id, op FROM search_index_outbox WHERE processed_at IS NULL ORDER BY id LIMIT ?",
            (limit,),
        )
        return [(int(r[0]), int(r[1]), str(r[2])) for r in cur.fetchall()]

    def mark_processed(self, outbox_ids: Iterable[int]) -> None:
        rows = [(int(i),) for i in outbox_ids]
        if rows:
            self.conn.executemany(
                "UPDATE search_index_outbox SET processed_at = datetime('now'), attempts = attempts + 1, last_error = NULL WHERE id = ?",
                rows,
            )

    def mark_failed(self, outbox_ids: Iterable[int], error: str) -> None:
        rows = [(error, int(i)) for i in outbox_ids]
        if rows:
            self.conn.executemany(
                "UPDATE search_index_outbox SET attempts = attempts + 1, last_error = ? WHERE id = ?",
                rows,
            )

    def pending_count(self) -> int:
        cur = self.conn.cursor()
        cur.execute("SELECT COUNT(*) FROM search_index_outbox WHERE processed_at IS NULL")
        return int(cur.fetchone()[0])
