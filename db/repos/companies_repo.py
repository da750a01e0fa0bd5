from __future__ import annotations

import sqlite3
import uuid
from typing import List, Optional, Sequence

from models.company import Company


_COLUMNS = "id, uuid, name, parent_id"


def _row_to_company(row: Optional[Sequence]) -> Optional[Company]:
    if not row:
        return None
    return Company(id=int(row[0]), uuid=row[1], name=row[2], parent_id=row[3])


class CompaniesRepo:
    """Plain SQL access to ``companies``.

    Methods never commit; callers group writes with ``db.connection.transaction``.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def insert(self, name: str, parent_id: Optional[int] = None, external_id: Optional[str] = None) -> Company:
        """Insert a company and return it with its new id and UUID."""
        company_uuid = external_id or str(uuid.uuid4())
        cur = self.conn.cursor()
        cur.execute(
            "INSERT INTO companies (uuid, name, parent_id) VALUES (?, ?, ?)",
            (company_uuid, name, parent_id),
        )
        return Company(id=int(cur.lastrowid), uuid=company_uuid, name=name, parent_id=parent_id)

    def update(self, company_id: int, name: str, parent_id: Optional[int]) -> None:
        self.conn.execute(
            "UPDATE companies SET name = ?, parent_id = ?, updated_at = datetime('now') WHERE id = ?",
            (name, parent_id, company_id),
        )

    def delete(self, company_id: int) -> None:
        self.conn.execute("DELETE FROM companies WHERE id = ?", (company_id,))

    def detach_children(self, company_id: int) -> List[int]:
        """Turn the direct children of a company into roots; returns their ids."""
        cur = self.conn.cursor()
        cur.execute("SELECT id FROM companies WHERE parent_id = ? ORDER BY id", (company_id,))
        child_ids = [int(r[0]) for r in cur.fetchall()]
        if child_ids:
            self.conn.execute(
                "UPDATE companies SET parent_id = NULL, updated_at = datetime('now') WHERE parent_id = ?",
                (company_id,),
            )
        return child_ids

    def get_by_id(self, company_id: int) -> Optional[Company]:
        cur = self.conn.cursor()
        cur.execute(f"SELECT {_COLUMNS} FROM companies WHERE id = ?", (company_id,))
        return _row_to_company(cur.fetchone())

    def get_by_uuid(self, external_id: str) -> Optional[Company]:
        cur = self.conn.cursor()
        cur.execute(f"SELECT {_COLUMNS} FROM companies WHERE uuid = ?", (external_id,))
        return _row_to_company(cur.fetchone())

    def get_by_name(self, name: str) -> Optional[Company]:
        cur = self.conn.cursor()
        cur.execute(f"SELECT {_COLUMNS} FROM companies WHERE name = ?", (name,))
        return _row_to_company(cur.fetchone())

    def get_parent_id(self, company_id: int) -> tuple[bool, Optional[int]]:
        """Return (exists, parent_id) read straight from the store."""
        cur = self.conn.cursor()
        cur.execute("SELECT parent_id FROM companies WHERE id = ?", (company_id,))
        row = cur.fetchone()
        if row is None:
            return False, None
        return True, (int(row[0]) if row[0] is not None else None)

    def list_page(self, limit: int, offset: int) -> List[Company]:
        cur = self.conn.cursor()
        cur.execute(f"SELECT {_COLUMNS} FROM companies ORDER BY id LIMIT ? OFFSET ?", (limit, offset))
        return [c for c in (_row_to_company(r) for r in cur.fetchall()) if c is not None]

    def list_all(self) -> List[Company]:
        cur = self.conn.cursor()
        cur.execute(f"SELECT {_COLUMNS} FROM companies ORDER BY id")
        return [c for c in (_row_to_company(r) for r in cur.fetchall()) if c is not None]

    def count(self) -> int:
        cur = self.conn.cursor()
        cur.execute("SELECT COUNT(*) FROM companies")
        return int(cur.fetchone()[0])
