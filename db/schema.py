from __future__ import annotations

import sqlite3


def bootstrap(conn: sqlite3.Connection) -> None:
    """Create normalized schema, indexes, and views (idempotent)."""
    cur = conn.cursor()

    # Companies table
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS companies (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  uuid TEXT NOT NULL UNIQUE,\n"
            "  name TEXT NOT NULL UNIQUE,\n"
            "  parent_id INTEGER,\n"
            "  created_at TEXT NOT NULL DEFAULT (datetime('now')),\n"
            "  updated_at TEXT NOT NULL DEFAULT (datetime('now')),\n"
            "  FOREIGN KEY(parent_id) REFERENCES companies(id) ON DELETE SET NULL\n"
            ")"
        )
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_companies_parent_id ON companies(parent_id);")

    # Closure table: one row per (ancestor, descendant) pair, never a self row
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS companies_hierarchy_levels (\n"
            "  ancestor_id INTEGER NOT NULL,\n"
            "  descendant_id INTEGER NOT NULL,\n"
            "  distance INTEGER NOT NULL CHECK (distance >= 1),\n"
            "  PRIMARY KEY (ancestor_id, descendant_id),\n"
            "  FOREIGN KEY(ancestor_id) REFERENCES companies(id) ON DELETE CASCADE,\n"
            "  FOREIGN KEY(descendant_id) REFERENCES companies(id) ON DELETE CASCADE\n"
            ")"
        )
    )
    cur.execute(
        "CREATE INDEX IF NOT EXISTS idx_hierarchy_descendant ON companies_hierarchy_levels(descendant_id, distance);"
    )

    # Stations table
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS stations (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  uuid TEXT NOT NULL UNIQUE,\n"
            "  name TEXT NOT NULL UNIQUE,\n"
            "  address TEXT NOT NULL,\n"
            "  company_id INTEGER NOT NULL,\n"
            "  latitude REAL NOT NULL CHECK (latitude BETWEEN -90 AND 90),\n"
            "  longitude REAL NOT NULL CHECK (longitude BETWEEN -180 AND 180),\n"
            "  created_at TEXT NOT NULL DEFAULT (datetime('now')),\n"
            "  updated_at TEXT NOT NULL DEFAULT (datetime('now')),\n"
            "  FOREIGN KEY(company_id) REFERENCES companies(id) ON DELETE CASCADE\n"
            ")"
        )
    )
    cur.execute("CREATE INDEX IF NOT EXISTS idx_stations_company_id ON stations(company_id);")

    # Local geo index documents (sqlite backend of the geo index port)
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS station_search_documents (\n"
            "  station_id INTEGER PRIMARY KEY,\n"
            "  uuid TEXT NOT NULL,\n"
            "  name TEXT NOT NULL,\n"
            "  address TEXT,\n"
            "  company_id INTEGER,\n"
            "  company_name TEXT,\n"
            "  latitude REAL NOT NULL,\n"
            "  longitude REAL NOT NULL,\n"
            "  indexed_at TEXT NOT NULL DEFAULT (datetime('now'))\n"
            ")"
        )
    )

    # Pending propagation of station changes to the geo index
    cur.execute(
        (
            "CREATE TABLE IF NOT EXISTS search_index_outbox (\n"
            "  id INTEGER PRIMARY KEY AUTOINCREMENT,\n"
            "  station_id INTEGER NOT NULL,\n"
            "  op TEXT NOT NULL CHECK (op IN ('upsert', 'delete')),\n"
            "  enqueued_at TEXT NOT NULL DEFAULT (datetime('now')),\n"
            "  processed_at TEXT,\n"
            "  attempts INTEGER NOT NULL DEFAULT 0,\n"
            "  last_error TEXT\n"
            ")"
        )
    )
    cur.execute(
        "CREATE INDEX IF NOT EXISTS idx_outbox_pending ON search_index_outbox(processed_at, id);"
    )

    # View for joined reads
    cur.execute("DROP VIEW IF EXISTS v_stations_with_company;")
    cur.execute(
        (
            "CREATE VIEW v_stations_with_company AS\n"
            "SELECT\n"
            "  s.id,\n"
            "  s.uuid,\n"
            "  s.name,\n"
            "  s.address,\n"
            "  s.company_id,\n"
            "  s.latitude,\n"
            "  s.longitude,\n"
            "  c.uuid AS company_uuid,\n"
            "  c.name AS company_name\n"
            "FROM stations s JOIN companies c ON s.company_id = c.id;"
        )
    )

    if conn.in_transaction:
        conn.commit()
