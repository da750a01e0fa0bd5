from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Station(BaseModel):
    """App/DB record shape: one row of ``stations`` plus its owner's identifiers."""

    id: int
    uuid: str
    name: str
    address: str
    company_id: int
    latitude: float
    longitude: float
    company_uuid: str | None = None
    company_name: str | None = None

    model_config = ConfigDict(extra="ignore", frozen=True)

    @property
    def coordinates(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


class StationInput(BaseModel):
    """Write-side shape for create/update requests."""

    name: str = Field(min_length=3, max_length=255)
    address: str = Field(min_length=3)
    latitude: float = Field(ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(ge=-180, le=180, allow_inf_nan=False)

    model_config = ConfigDict(extra="forbid")

    @field_validator("name", "address", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class StationDocument(BaseModel):
    """Searchable projection of a station pushed to the geo index."""

    station_id: int
    uuid: str
    name: str
    address: str
    company_id: int
    company_name: str
    latitude: float
    longitude: float

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_station(cls, station: Station) -> "StationDocument":
        return cls(
            station_id=station.id,
            uuid=station.uuid,
            name=station.name,
            address=station.address,
            company_id=station.company_id,
            company_name=station.company_name or "",
            latitude=station.latitude,
            longitude=station.longitude,
        )
