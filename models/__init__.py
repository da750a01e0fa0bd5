from .company import Company, CompanyDetail, CompanyInput, CompanyRelative
from .station import Station, StationDocument, StationInput
from .search import GeoHit, GeoPoint, Page, SearchCriteria, StationGroup

__all__ = [
    "Company",
    "CompanyDetail",
    "CompanyInput",
    "CompanyRelative",
    "Station",
    "StationDocument",
    "StationInput",
    "GeoHit",
    "GeoPoint",
    "Page",
    "SearchCriteria",
    "StationGroup",
]
