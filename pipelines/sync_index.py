from __future__ import annotations

import sqlite3
from typing import Optional

from db.repos.outbox_repo import IndexOutboxRepo
from pipelines.runner import Pipeline, RunContext
from pipelines.steps.load_index_updates import LoadIndexUpdates
from pipelines.steps.push_index_updates import PushIndexUpdates
from ports.geo_index import GeoIndexPort


def sync_search_index(conn: sqlite3.Connection, index: GeoIndexPort, batch_size: int = 100, max_batches: Optional[int] = None) -> RunContext:
    """Drain the outbox into the geo index batch by batch."""
    ctx = RunContext()
    batches = 0
    while IndexOutboxRepo(conn).pending_count() > 0:
        if max_batches is not None and batches >= max_batches:
            break
        pipeline = Pipeline([
            LoadIndexUpdates(conn, limit=batch_size),
            PushIndexUpdates(conn, index),
        ])
        ctx = pipeline.run(ctx)
        batches += 1
    ctx.meta["batches"] = batches
    ctx.meta.setdefault("indexed_upserts", 0)
    ctx.meta.setdefault("indexed_deletes", 0)
    return ctx
