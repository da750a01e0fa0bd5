from __future__ import annotations

from typing import Iterable, List, Optional, Protocol, Sequence

from models.search import GeoHit, GeoPoint
from models.station import StationDocument


class GeoIndexPort(Protocol):
    name: str

    def configure(self) -> None:
        ...

    def upsert(self, documents: Sequence[StationDocument]) -> None:
        ...

    def delete(self, station_ids: Iterable[int]) -> None:
        ...

    def search(
        self,
        origin: GeoPoint,
        max_distance_m: Optional[float],
        limit: int,
        company_ids: Optional[Sequence[int]] = None,
    ) -> List[GeoHit]:
        """Hits nearest-first; no radius filter when ``max_distance_m`` is None.

        ``company_ids`` restricts hits to stations owned by those companies
        before ``limit`` is applied.
        """
        ...

    def clear(self) -> None:
        ...
