from __future__ import annotations

from typing import Any, Dict, List, Optional, Set

from pydantic import ValidationError as PydanticValidationError

from models.company import CompanyInput
from models.station import StationInput
from pipelines.runner import RunContext


def _skip(ctx: RunContext, kind: str, name: Optional[str], reason: str) -> None:
    ctx.meta.setdefault("skipped", []).append({"kind": kind, "name": name, "reason": reason})


class ValidateFixture:
    """Validate, dedupe and order fixture entries before anything is written.

    Companies come out parents-first. A parent name that is not part of the
    fixture is left for the persist step to resolve against the store;
    entries whose parent chain loops inside the fixture are dropped.
    """

    def run(self, ctx: RunContext) -> RunContext:
        ctx.companies = self._companies(ctx, ctx.companies or [])
        ctx.stations = self._stations(ctx, ctx.stations or [])
        return ctx

    def _companies(self, ctx: RunContext, raw: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        unique: Dict[str, Dict[str, Any]] = {}
        for entry in raw:
            name = (entry or {}).get("name")
            try:
                data = CompanyInput(name=name)
            except PydanticValidationError as exc:
                _skip(ctx, "company", name, exc.errors()[0].get("msg", "invalid"))
                continue
            if data.name in unique:
                _skip(ctx, "company", data.name, "duplicate name in fixture")
                continue
            parent = (entry.get("parent") or "").strip() or None
            unique[data.name] = {"name": data.name, "parent": parent}

        ordered: List[Dict[str, Any]] = []
        placed: Set[str] = set()
        pending = list(unique.values())
        while pending:
            ready = [c for c in pending if c["parent"] is None or c["parent"] not in unique or c["parent"] in placed]
            if not ready:
                break
            for c in ready:
                ordered.append(c)
                placed.add(c["name"])
            pending = [c for c in pending if c["name"] not in placed]
        for c in pending:
            _skip(ctx, "company", c["name"], "parent chain loops inside fixture")
        return ordered

    def _stations(self, ctx: RunContext, raw: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        out: List[Dict[str, Any]] = []
        seen: Set[str] = set()
        for entry in raw:
            entry = entry or {}
            name = entry.get("name")
            try:
                data = StationInput(
                    name=name,
                    address=entry.get("address"),
                    latitude=entry.get("latitude"),
                    longitude=entry.get("longitude"),
                )
            except PydanticValidationError as exc:
                first = exc.errors()[0]
                loc = ".".join(str(p) for p in first.get("loc", ()))
                _skip(ctx, "station", name, f"{loc}: {first.get('msg', 'invalid')}")
                continue
            company = (entry.get("company") or "").strip()
            if not company:
                _skip(ctx, "station", data.name, "missing company")
                continue
            if data.name in seen:
                _skip(ctx, "station", data.name, "duplicate name in fixture")
                continue
            seen.add(data.name)
            out.append({**data.model_dump(), "company": company})
        return out
