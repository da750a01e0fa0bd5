from __future__ import annotations

import sqlite3
from typing import Iterable, List, Set, Tuple

from models.company import Company, CompanyRelative


class HierarchyRepo:
    """Rows of ``companies_hierarchy_levels``; only the hierarchy engine writes here."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def delete_ancestors_of(self, descendant_id: int) -> int:
        cur = self.conn.execute(
            "DELETE FROM companies_hierarchy_levels WHERE descendant_id = ?", (descendant_id,)
        )
        return cur.rowcount

    def insert_ancestors(self, descendant_id: int, ancestors: Iterable[Tuple[int, int]]) -> int:
        """Insert (ancestor_id, distance) pairs for one descendant."""
        rows = [(ancestor_id, descendant_id, distance) for ancestor_id, distance in ancestors]
        if rows:
            self.conn.executemany(
                "INSERT INTO companies_hierarchy_levels (ancestor_id, descendant_id, distance) VALUES (?, ?, ?)",
                rows,
            )
        return len(rows)

    def delete_referencing(self, company_id: int) -> int:
        cur = self.conn.execute(
            "DELETE FROM companies_hierarchy_levels WHERE ancestor_id = ? OR descendant_id = ?",
            (company_id, company_id),
        )
        return cur.rowcount

    def detach_subtree(self, company_id: int) -> int:
        """Drop links from the company's ancestors into the company's subtree.

        Used when the company disappears: its descendants keep their links to
        each other but no longer reach anything above the company.
        """
        cur = self.conn.execute(
            (
                "DELETE FROM companies_hierarchy_levels "
                "WHERE descendant_id IN ("
                "  SELECT descendant_id FROM companies_hierarchy_levels WHERE ancestor_id = ?"
                ") AND ancestor_id IN ("
                "  SELECT ancestor_id FROM companies_hierarchy_levels WHERE descendant_id = ?"
                ")"
            ),
            (company_id, company_id),
        )
        return cur.rowcount

    def ancestors(self, company_id: int) -> List[CompanyRelative]:
        cur = self.conn.cursor()
        cur.execute(
            (
                "SELECT c.id, c.uuid, c.name, c.parent_id, h.distance "
                "FROM companies_hierarchy_levels h JOIN companies c ON c.id = h.ancestor_id "
                "WHERE h.descendant_id = ? ORDER BY h.distance"
            ),
            (company_id,),
        )
        return [_relative(r) for r in cur.fetchall()]

    def descendants(self, company_id: int) -> List[CompanyRelative]:
        cur = self.conn.cursor()
        cur.execute(
            (
                "SELECT c.id, c.uuid, c.name, c.parent_id, h.distance "
                "FROM companies_hierarchy_levels h JOIN companies c ON c.id = h.descendant_id "
                "WHERE h.ancestor_id = ? ORDER BY h.distance, c.name"
            ),
            (company_id,),
        )
        return [_relative(r) for r in cur.fetchall()]

    def descendant_ids(self, company_id: int) -> List[int]:
        cur = self.conn.cursor()
        cur.execute(
            "SELECT descendant_id FROM companies_hierarchy_levels WHERE ancestor_id = ? ORDER BY distance, descendant_id",
            (company_id,),
        )
        return [int(r[0]) for r in cur.fetchall()]

    def all_edges(self) -> Set[Tuple[int, int, int]]:
        cur = self.conn.cursor()
        cur.execute("SELECT ancestor_id, descendant_id, distance FROM companies_hierarchy_levels")
        return {(int(a), int(d), int(dist)) for a, d, dist in cur.fetchall()}

    def clear(self) -> None:
        self.conn.execute("DELETE FROM companies_hierarchy_levels")


def _relative(row) -> CompanyRelative:
    company = Company(id=int(row[0]), uuid=row[1], name=row[2], parent_id=row[3])
    return CompanyRelative(company=company, distance=int(row[4]))
