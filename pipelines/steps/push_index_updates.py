from __future__ import annotations

import logging
import sqlite3
import time

from db.connection import transaction
from db.repos.outbox_repo import IndexOutboxRepo
from pipelines.runner import RunContext
from ports.geo_index import GeoIndexPort
from utils.errors import SearchIndexError


logger = logging.getLogger(__name__)


class PushIndexUpdates:
    def __init__(self, conn: sqlite3.Connection, index: GeoIndexPort) -> None:
        self.conn = conn
        self.index = index

    def run(self, ctx: RunContext) -> RunContext:
        outbox = IndexOutboxRepo(self.conn)
        outbox_ids = ctx.meta.get("outbox_ids") or []
        deletes = ctx.meta.get("index_deletes") or []
        started = time.time()
        try:
            self.index.upsert(ctx.documents)
            self.index.delete(deletes)
        except SearchIndexError as exc:
            # Rows stay pending; the next sync picks them up again
            with transaction(self.conn):
                outbox.mark_failed(outbox_ids, str(exc))
            logger.error(
                "Index sync failed",
                extra={"step": "push_index_updates", "status": "failed", "error": str(exc)},
            )
            raise
        with transaction(self.conn):
            outbox.mark_processed(outbox_ids)

        ctx.meta["indexed_upserts"] = int(ctx.meta.get("indexed_upserts") or 0) + len(ctx.documents)
        ctx.meta["indexed_deletes"] = int(ctx.meta.get("indexed_deletes") or 0) + len(deletes)
        logger.info(
            "Pushed %d upserts and %d deletes to %s",
            len(ctx.documents),
            len(deletes),
            getattr(self.index, "name", "index"),
            extra={
                "step": "push_index_updates",
                "status": "ok",
                "duration_ms": int((time.time() - started) * 1000),
            },
        )
        return ctx
