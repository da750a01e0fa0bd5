from __future__ import annotations

import sqlite3
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional

from utils.errors import ConflictError


_BUSY_MARKERS = ("database is locked", "database is busy", "database table is locked")


def get_connection(db_path: str, timeout: Optional[float] = 30.0) -> sqlite3.Connection:
    """Open a SQLite connection with sane pragmas for concurrent local use.

    - autocommit mode; writes are grouped explicitly with ``transaction()``
    - WAL journal for fewer writer blocks
    - NORMAL synchronous for performance
    - foreign_keys ON to enforce integrity
    """
    conn = sqlite3.connect(db_path, timeout=30.0 if timeout is None else timeout, isolation_level=None)
    # Pragmas
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn


def _is_busy(exc: sqlite3.OperationalError) -> bool:
    text = str(exc).lower()
    return any(marker in text for marker in _BUSY_MARKERS)


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Run the enclosed statements atomically.

    Opens ``BEGIN IMMEDIATE`` so the write lock is taken up front; a second
    writer racing for the same rows gets ``ConflictError`` instead of a
    half-applied change. Nested use becomes a savepoint of the outer
    transaction, so an inner failure rolls back only its own statements
    unless the exception keeps propagating.
    """
    if conn.in_transaction:
        name = f"sp_{uuid.uuid4().hex}"
        conn.execute(f"SAVEPOINT {name}")
        try:
            yield conn
        except BaseException:
            conn.execute(f"ROLLBACK TO SAVEPOINT {name}")
            conn.execute(f"RELEASE SAVEPOINT {name}")
            raise
        conn.execute(f"RELEASE SAVEPOINT {name}")
        return

    try:
        conn.execute("BEGIN IMMEDIATE")
    except sqlite3.OperationalError as exc:
        if _is_busy(exc):
            raise ConflictError(f"Could not start write transaction: {exc}") from exc
        raise
    try:
        yield conn
    except sqlite3.OperationalError as exc:
        conn.rollback()
        if _is_busy(exc):
            raise ConflictError(f"Write transaction aborted: {exc}") from exc
        raise
    except BaseException:
        conn.rollback()
        raise
    try:
        conn.commit()
    except sqlite3.OperationalError as exc:
        conn.rollback()
        if _is_busy(exc):
            raise ConflictError(f"Could not commit write transaction: {exc}") from exc
        raise
