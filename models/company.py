from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Company(BaseModel):
    """App/DB record shape: one row of ``companies``."""

    id: int
    uuid: str
    name: str
    parent_id: int | None = None

    model_config = ConfigDict(extra="ignore", frozen=True)


class CompanyRelative(BaseModel):
    """A company seen from another one, ``distance`` parent hops away."""

    company: Company
    distance: int = Field(ge=1)

    model_config = ConfigDict(frozen=True)


class CompanyInput(BaseModel):
    """Write-side shape for create/update requests."""

    name: str = Field(min_length=3, max_length=255)

    model_config = ConfigDict(extra="forbid")

    @field_validator("name", mode="before")
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value


class CompanyDetail(BaseModel):
    company: Company
    parent: Company | None = None
    ancestors: list[CompanyRelative] = Field(default_factory=list)
    descendants: list[CompanyRelative] = Field(default_factory=list)
