from __future__ import annotations

from typing import Dict, List, Optional

from models.company import Company, CompanyDetail
from models.search import Page, StationGroup


def print_search_summary(page: Page[StationGroup], criteria: Optional[Dict] = None) -> None:
    """Print a human-readable overview of one search page."""
    criteria = criteria or {}
    print("\n" + "="*60)
    print("STATION SEARCH - SUMMARY")
    print("="*60)
    origin = (criteria.get('latitude'), criteria.get('longitude'))
    if origin[0] is not None:
        print(f"Origin: {origin[0]}, {origin[1]}")
        radius = criteria.get('max_distance_m')
        print(f"Radius: {f'{radius:.0f} m' if radius else 'unbounded'}")
    print(f"Company: {criteria.get('company_uuid') or 'all'}")
    print(f"Page: {page.page}/{page.last_page} ({page.total} coordinate groups)")
    print()
    for group in page.items:
        names = ", ".join(s.name for s in group.stations)
        print(f"  ({group.latitude}, {group.longitude}) x{len(group.stations)}: {names}")
    print("="*60)


def print_company_tree(detail: CompanyDetail) -> None:
    """Print a company with its ancestor chain and indented subtree."""
    chain = [r.company.name for r in reversed(detail.ancestors)]
    print(" > ".join(chain + [detail.company.name]))

    children: Dict[int, List[Company]] = {}
    for relative in detail.descendants:
        children.setdefault(relative.company.parent_id, []).append(relative.company)

    def _walk(company_id: int, depth: int) -> None:
        for child in children.get(company_id, []):
            print(f"{'  ' * depth}- {child.name}")
            _walk(child.id, depth + 1)

    _walk(detail.company.id, 1)
