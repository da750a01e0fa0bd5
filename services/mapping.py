from __future__ import annotations

from typing import Any, Dict, List, Optional

from models.company import Company, CompanyDetail, CompanyRelative
from models.search import Page, StationGroup
from models.station import Station


def render_station(station: Station) -> Dict[str, Any]:
    """Public shape of a station: external ids only, never internal ones."""
    return {
        'uuid': station.uuid,
        'name': station.name,
        'address': station.address,
        'company_uuid': station.company_uuid,
        'latitude': station.latitude,
        'longitude': station.longitude,
    }


def render_group(group: StationGroup) -> List[Dict[str, Any]]:
    return [render_station(s) for s in group.stations]


def _page_meta(page: Page) -> Dict[str, Any]:
    return {
        'current_page': page.page,
        'per_page': page.page_size,
        'total': page.total,
        'last_page': page.last_page,
    }


def render_station_page(page: Page[StationGroup]) -> Dict[str, Any]:
    """A page of coordinate groups: ``data`` is a list of station lists."""
    return {
        'data': [render_group(g) for g in page.items],
        'meta': _page_meta(page),
    }


def _parent_ref(parent: Optional[Company]) -> Dict[str, Optional[str]]:
    return {
        'name': parent.name if parent else None,
        'uuid': parent.uuid if parent else None,
    }


def _relatives(relatives: List[CompanyRelative]) -> List[Dict[str, Any]]:
    return [
        {'uuid': r.company.uuid, 'name': r.company.name, 'distance': r.distance}
        for r in relatives
    ]


def render_company(company: Company, parent: Optional[Company] = None) -> Dict[str, Any]:
    return {
        'uuid': company.uuid,
        'name': company.name,
        'parent': _parent_ref(parent),
    }


def render_company_detail(detail: CompanyDetail) -> Dict[str, Any]:
    out = render_company(detail.company, detail.parent)
    out['ancestors'] = _relatives(detail.ancestors)
    out['descendants'] = _relatives(detail.descendants)
    return out


def render_company_page(page: Page[Company], parents: Dict[int, Company]) -> Dict[str, Any]:
    return {
        'data': [render_company(c, parents.get(c.parent_id) if c.parent_id else None) for c in page.items],
        'meta': _page_meta(page),
    }
