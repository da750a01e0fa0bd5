from __future__ import annotations

import logging
import sqlite3
import time
from typing import List, Optional, Set, Tuple

from config.settings import get_settings
from db.connection import transaction
from db.repos.companies_repo import CompaniesRepo
from db.repos.hierarchy_repo import HierarchyRepo
from db.repos.outbox_repo import IndexOutboxRepo
from db.repos.stations_repo import StationsRepo
from models.company import Company, CompanyRelative
from utils.errors import IntegrityError


logger = logging.getLogger(__name__)


class HierarchyEngine:
    """Keeps ``companies_hierarchy_levels`` equal to the transitive closure of ``parent_id``.

    Every company owns the rows where it is the descendant. A rebuild throws
    those rows away and walks the parent chain again, so the cost is
    O(depth) per company and O(subtree * depth) when a whole branch moves.
    """

    def __init__(self, conn: sqlite3.Connection, max_depth: Optional[int] = None) -> None:
        self.conn = conn
        self.companies = CompaniesRepo(conn)
        self.levels = HierarchyRepo(conn)
        self.stations = StationsRepo(conn)
        self.outbox = IndexOutboxRepo(conn)
        self.max_depth = max_depth if max_depth is not None else get_settings().max_hierarchy_depth

    def rebuild_ancestors(self, company: Company) -> int:
        """Replace the ancestor rows of ``company`` and of everything below it.

        The parent chain is read from the store, so the company row must
        already hold its new ``parent_id``. Runs in its own transaction, or a
        savepoint of the caller's; on ``IntegrityError`` nothing is written.
        Returns the number of rows inserted.
        """
        started = time.time()
        with transaction(self.conn):
            subtree = self.levels.descendant_ids(company.id)
            written = self._rebuild_one(company.id)
            for descendant_id in subtree:
                written += self._rebuild_one(descendant_id)
        logger.info(
            "Rebuilt ancestors",
            extra={
                "step": "rebuild_ancestors",
                "status": "ok",
                "company": company.id,
                "duration_ms": int((time.time() - started) * 1000),
            },
        )
        return written

    def cascade_delete(self, company: Company) -> None:
        """Delete a company, its stations and every closure row that mentions it.

        Direct children become roots. Their subtrees keep the links among
        themselves but lose every link to the deleted company's ancestors.
        Index deletes for the stations are queued in the same transaction.
        """
        with transaction(self.conn):
            station_ids = self.stations.ids_for_company(company.id)
            self.outbox.enqueue_many(station_ids, "delete")
            self.stations.delete_for_company(company.id)
            detached = self.levels.detach_subtree(company.id)
            removed = self.levels.delete_referencing(company.id)
            children = self.companies.detach_children(company.id)
            self.companies.delete(company.id)
        logger.info(
            "Deleted company: %d stations, %d subtree links, %d own links, %d children detached",
            len(station_ids),
            detached,
            removed,
            len(children),
            extra={"step": "cascade_delete", "status": "ok", "company": company.id},
        )

    def rebuild_all(self) -> int:
        """Recompute the whole table from ``parent_id``; returns rows written."""
        written = 0
        with transaction(self.conn):
            self.levels.clear()
            for company in self.companies.list_all():
                written += self._rebuild_one(company.id)
        logger.info("Rebuilt hierarchy: %d rows", written, extra={"step": "rebuild_all", "status": "ok"})
        return written

    def ancestors(self, company_id: int) -> List[CompanyRelative]:
        return self.levels.ancestors(company_id)

    def descendants(self, company_id: int) -> List[CompanyRelative]:
        return self.levels.descendants(company_id)

    def subtree_ids(self, company_id: int) -> List[int]:
        return [company_id, *self.levels.descendant_ids(company_id)]

    def edges(self) -> Set[Tuple[int, int, int]]:
        return self.levels.all_edges()

    def _rebuild_one(self, company_id: int) -> int:
        chain = self._walk_parents(company_id)
        self.levels.delete_ancestors_of(company_id)
        return self.levels.insert_ancestors(company_id, chain)

    def _walk_parents(self, company_id: int) -> List[Tuple[int, int]]:
        """Return [(ancestor_id, distance), ...] nearest first."""
        exists, parent_id = self.companies.get_parent_id(company_id)
        if not exists:
            raise self._fail(f"Company {company_id} does not exist", company_id)

        visited = {company_id}
        chain: List[Tuple[int, int]] = []
        distance = 1
        while parent_id is not None:
            if parent_id in visited:
                raise self._fail(
                    f"Cycle in parent chain of company {company_id}: {parent_id} reached twice",
                    company_id,
                )
            if distance > self.max_depth:
                raise self._fail(
                    f"Parent chain of company {company_id} deeper than {self.max_depth}",
                    company_id,
                )
            exists, next_parent = self.companies.get_parent_id(parent_id)
            if not exists:
                raise self._fail(
                    f"Company {company_id} references missing parent {parent_id}",
                    company_id,
                )
            visited.add(parent_id)
            chain.append((parent_id, distance))
            parent_id = next_parent
            distance += 1
        return chain

    @staticmethod
    def _fail(message: str, company_id: int) -> IntegrityError:
        logger.error(message, extra={"step": "rebuild_ancestors", "status": "failed", "company": company_id})
        return IntegrityError(message, company_id=company_id)
