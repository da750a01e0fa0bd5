from __future__ import annotations

import math
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from models.station import Station


T = TypeVar("T")


class GeoPoint(BaseModel):
    lat: float = Field(ge=-90, le=90, allow_inf_nan=False)
    lng: float = Field(ge=-180, le=180, allow_inf_nan=False)

    model_config = ConfigDict(frozen=True)


class SearchCriteria(BaseModel):
    """Station list request: optional origin/radius, optional company subtree, page."""

    latitude: float | None = Field(default=None, ge=-90, le=90, allow_inf_nan=False)
    longitude: float | None = Field(default=None, ge=-180, le=180, allow_inf_nan=False)
    max_distance_m: float | None = Field(default=None, ge=0, allow_inf_nan=False)
    company_uuid: str | None = Field(default=None, min_length=1)
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=1000)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def _check_origin(self) -> "SearchCriteria":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be given together")
        if self.max_distance_m is not None and self.latitude is None:
            raise ValueError("max_distance_m requires latitude and longitude")
        return self

    @property
    def origin(self) -> GeoPoint | None:
        if self.latitude is None or self.longitude is None:
            return None
        return GeoPoint(lat=self.latitude, lng=self.longitude)

    @property
    def radius_m(self) -> float | None:
        # 0 means unbounded, results are still sorted by distance
        return self.max_distance_m or None


class GeoHit(BaseModel):
    station_id: int
    distance_m: float | None = None

    model_config = ConfigDict(frozen=True)


class StationGroup(BaseModel):
    """Stations sharing the exact same coordinates, in result order."""

    latitude: float
    longitude: float
    stations: list[Station] = Field(default_factory=list)


class Page(BaseModel, Generic[T]):
    items: list[T] = Field(default_factory=list)
    page: int = 1
    page_size: int = 10
    total: int = 0

    @property
    def last_page(self) -> int:
        return max(1, math.ceil(self.total / self.page_size))

    @property
    def has_more(self) -> bool:
        return self.page < self.last_page
