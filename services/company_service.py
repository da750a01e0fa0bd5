from __future__ import annotations

import logging
import sqlite3
from typing import Optional

from config.settings import Settings, get_settings
from db.connection import transaction
from db.repos.companies_repo import CompaniesRepo
from db.repos.outbox_repo import IndexOutboxRepo
from db.repos.stations_repo import StationsRepo
from models.company import Company, CompanyDetail, CompanyInput
from models.search import Page
from services.hierarchy_engine import HierarchyEngine
from utils.errors import NotFoundError, ValidationError
from utils.validation import validate_model


logger = logging.getLogger(__name__)


class CompanyService:
    """Company writes that keep the closure table in step with ``parent_id``.

    Each mutation and the hierarchy rebuild it triggers share one
    transaction; if the rebuild raises, the mutation is rolled back too.
    """

    def __init__(self, conn: sqlite3.Connection, engine: Optional[HierarchyEngine] = None, settings: Optional[Settings] = None) -> None:
        self.conn = conn
        self.settings = settings or get_settings()
        self.engine = engine or HierarchyEngine(conn, max_depth=self.settings.max_hierarchy_depth)
        self.companies = CompaniesRepo(conn)

    def get_company(self, external_id: str) -> Company:
        company = self.companies.get_by_uuid(external_id)
        if company is None:
            raise NotFoundError("company", external_id)
        return company

    def create_company(self, name: str, parent_uuid: Optional[str] = None) -> Company:
        data = validate_model(CompanyInput, {"name": name})
        with transaction(self.conn):
            self._ensure_name_free(data.name)
            parent_id = self.get_company(parent_uuid).id if parent_uuid else None
            company = self.companies.insert(data.name, parent_id=parent_id)
            self.engine.rebuild_ancestors(company)
        logger.info("Created company %s", company.uuid, extra={"step": "create_company", "status": "ok", "company": company.id})
        return company

    def update_company(
        self,
        external_id: str,
        name: Optional[str] = None,
        parent_uuid: Optional[str] = None,
        detach_parent: bool = False,
    ) -> Company:
        """Rename and/or move a company.

        ``parent_uuid`` moves it under another company, ``detach_parent``
        makes it a root; passing neither leaves the parent alone.
        """
        if parent_uuid and detach_parent:
            raise ValidationError("parent_uuid and detach_parent are mutually exclusive")
        with transaction(self.conn):
            current = self.get_company(external_id)
            new_name = current.name
            if name is not None:
                new_name = validate_model(CompanyInput, {"name": name}).name
                if new_name != current.name:
                    self._ensure_name_free(new_name)

            new_parent_id = current.parent_id
            if detach_parent:
                new_parent_id = None
            elif parent_uuid:
                new_parent_id = self.get_company(parent_uuid).id

            self.companies.update(current.id, new_name, new_parent_id)
            updated = Company(id=current.id, uuid=current.uuid, name=new_name, parent_id=new_parent_id)

            if new_parent_id != current.parent_id:
                self.engine.rebuild_ancestors(updated)
            if new_name != current.name:
                # Station documents carry the owner's name
                IndexOutboxRepo(self.conn).enqueue_many(StationsRepo(self.conn).ids_for_company(current.id), "upsert")
        return updated

    def delete_company(self, external_id: str) -> None:
        with transaction(self.conn):
            company = self.get_company(external_id)
            self.engine.cascade_delete(company)

    def show_company(self, external_id: str) -> CompanyDetail:
        company = self.get_company(external_id)
        parent = self.companies.get_by_id(company.parent_id) if company.parent_id else None
        return CompanyDetail(
            company=company,
            parent=parent,
            ancestors=self.engine.ancestors(company.id),
            descendants=self.engine.descendants(company.id),
        )

    def list_companies(self, page: int = 1, page_size: Optional[int] = None) -> Page[Company]:
        size = page_size or self.settings.companies_per_page
        if page < 1 or size < 1:
            raise ValidationError("page and page_size must be positive")
        items = self.companies.list_page(limit=size, offset=(page - 1) * size)
        return Page(items=items, page=page, page_size=size, total=self.companies.count())

    def _ensure_name_free(self, name: str) -> None:
        if self.companies.get_by_name(name) is not None:
            raise ValidationError(f"name: company name already taken: {name}")
