from __future__ import annotations

from typing import Optional


class StationsError(Exception):
    """Base class for every error raised by the hierarchy and search core."""


class ValidationError(StationsError, ValueError):
    """Malformed input rejected before the store is touched."""


class NotFoundError(StationsError, LookupError):
    """An external identifier did not resolve to a row."""

    def __init__(self, entity: str, external_id: Optional[str]) -> None:
        self.entity = entity
        self.external_id = external_id
        super().__init__(f"Unknown {entity}: {external_id}")


class IntegrityError(StationsError):
    """The parent chain of a company is broken (cycle, dangling parent, too deep)."""

    def __init__(self, message: str, company_id: Optional[int] = None) -> None:
        self.company_id = company_id
        super().__init__(message)


class ConflictError(StationsError):
    """A write transaction lost against a concurrent writer; safe to retry."""


class SearchIndexError(StationsError):
    """The geo index could not be queried or updated."""


class ConfigurationError(StationsError):
    """Settings name a backend that cannot be built (unknown name, missing URL)."""
