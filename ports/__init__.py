from .geo_index import GeoIndexPort

__all__ = [
    "GeoIndexPort",
]
