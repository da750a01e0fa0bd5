from __future__ import annotations

import struct
from typing import Dict, Iterable, List, Sequence, TypeVar

from models.search import Page, StationGroup
from models.station import Station


T = TypeVar("T")

CoordinateKey = bytes


def coordinate_key(station: Station) -> CoordinateKey:
    """Grouping key: the bit patterns of the stored (latitude, longitude) floats.

    No rounding or tolerance is applied; two stations group together only when
    both doubles are bit-identical, so ``-0.0`` and ``0.0`` stay apart.
    """
    return struct.pack("<dd", *station.coordinates)


def group_by_coordinates(stations: Iterable[Station]) -> List[StationGroup]:
    """Fold an ordered station stream into coordinate groups.

    Groups appear in the order their first station appears; stations keep
    their relative order inside a group.
    """
    groups: Dict[CoordinateKey, StationGroup] = {}
    for station in stations:
        key = coordinate_key(station)
        group = groups.get(key)
        if group is None:
            group = StationGroup(latitude=station.latitude, longitude=station.longitude)
            groups[key] = group
        group.stations.append(station)
    # dicts keep insertion order
    return list(groups.values())


def paginate(items: Sequence[T], page: int, page_size: int) -> Page[T]:
    start = (page - 1) * page_size
    return Page(
        items=list(items[start:start + page_size]),
        page=page,
        page_size=page_size,
        total=len(items),
    )
