"""
Meilisearch geo index: station documents carry a ``_geo`` point and are
queried with ``_geoRadius`` filters and ``_geoPoint`` sorting.
"""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterable, List, Optional, Sequence

import requests

from config.settings import Settings, get_settings
from geo_index.registry import register
from models.search import GeoHit, GeoPoint
from models.station import StationDocument
from utils.errors import SearchIndexError


logger = logging.getLogger(__name__)

_OK = (200, 201, 202, 204)


class MeilisearchGeoIndex:
    """Handles the Meilisearch REST API for station documents."""

    name = "meilisearch"

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.base_url = (self.settings.meili_url or "").rstrip("/")
        self.index_uid = self.settings.meili_index
        self.api_calls_made = 0

        if not self.base_url:
            raise ValueError("MEILI_URL must be set to use the meilisearch geo index")

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.meili_api_key:
            headers["Authorization"] = f"Bearer {self.settings.meili_api_key}"
        return headers

    def _request(self, method: str, path: str, payload: Any = None, retry: bool = False) -> Dict[str, Any]:
        """Send one API call; writes retry with exponential backoff, reads never do."""
        url = f"{self.base_url}{path}"
        attempts = max(1, self.settings.max_retries) if retry else 1
        last_error = "no attempt made"

        for attempt in range(attempts):
            try:
                response = requests.request(
                    method,
                    url,
                    json=payload,
                    headers=self._headers(),
                    timeout=self.settings.request_timeout_seconds,
                )
                self.api_calls_made += 1
            except requests.exceptions.RequestException as e:
                last_error = str(e)
                logger.error(f"Meilisearch request error on attempt {attempt + 1}: {e}")
            else:
                if response.status_code in _OK:
                    return response.json() if response.content else {}
                last_error = f"HTTP {response.status_code}: {response.text}"
                logger.error(f"Meilisearch {method} {path} failed with status {response.status_code}")
                # Client errors will not improve on retry
                if response.status_code < 500 and response.status_code != 429:
                    break
            if attempt < attempts - 1:
                time.sleep(2 ** attempt)  # Exponential backoff

        raise SearchIndexError(f"Meilisearch {method} {path} failed: {last_error}")

    def configure(self) -> None:
        """Declare the attributes used for geo filtering and sorting."""
        self._request(
            "PATCH",
            f"/indexes/{self.index_uid}/settings",
            {
                "filterableAttributes": ["_geo", "company_id"],
                "sortableAttributes": ["_geo", "id"],
            },
            retry=True,
        )

    def upsert(self, documents: Sequence[StationDocument]) -> None:
        if not documents:
            return
        payload = [self._to_document(d) for d in documents]
        self._request("POST", f"/indexes/{self.index_uid}/documents?primaryKey=id", payload, retry=True)

    def delete(self, station_ids: Iterable[int]) -> None:
        ids = [int(sid) for sid in station_ids]
        if not ids:
            return
        self._request("POST", f"/indexes/{self.index_uid}/documents/delete-batch", ids, retry=True)

    def search(
        self,
        origin: GeoPoint,
        max_distance_m: Optional[float],
        limit: int,
        company_ids: Optional[Sequence[int]] = None,
    ) -> List[GeoHit]:
        params: Dict[str, Any] = {
            "q": "",
            "limit": int(limit),
            "sort": [f"_geoPoint({origin.lat},{origin.lng}):asc", "id:asc"],
            "attributesToRetrieve": ["id"],
        }
        filters: List[str] = []
        if max_distance_m is not None:
            filters.append(f"_geoRadius({origin.lat}, {origin.lng}, {max_distance_m})")
        if company_ids is not None:
            filters.append("company_id IN [" + ", ".join(str(int(c)) for c in company_ids) + "]")
        if filters:
            params["filter"] = " AND ".join(filters)

        data = self._request("POST", f"/indexes/{self.index_uid}/search", params)
        hits: List[GeoHit] = []
        for item in data.get("hits", []):
            if "id" not in item:
                continue
            distance = item.get("_geoDistance")
            hits.append(
                GeoHit(
                    station_id=int(item["id"]),
                    distance_m=float(distance) if distance is not None else None,
                )
            )
        return hits

    def clear(self) -> None:
        self._request("DELETE", f"/indexes/{self.index_uid}/documents", retry=True)

    @staticmethod
    def _to_document(document: StationDocument) -> Dict[str, Any]:
        return {
            "id": document.station_id,
            "uuid": document.uuid,
            "name": document.name,
            "address": document.address,
            "company_id": document.company_id,
            "company_name": document.company_name,
            "_geo": {"lat": document.latitude, "lng": document.longitude},
        }


def _register():
    register(MeilisearchGeoIndex.name, lambda conn, settings: MeilisearchGeoIndex(settings))


_register()
