"""Bounding-box areas and the LIFO work list used to walk a region."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from .errors import AreaTooSmallError
from .models import Region

logger = logging.getLogger(__name__)

MAX_REQUEST_AREA = 0.25 / 32
# roughly 10cm at the equator
MIN_SPLIT_AREA = 0.000001
REGION_CELL_DEGREES = 1.0


@dataclass(frozen=True)
class Area:
    minlat: float
    maxlat: float
    minlon: float
    maxlon: float

    @classmethod
    def for_region(cls, region: Region) -> "Area":
        return cls(
            minlat=region.lat,
            maxlat=region.lat + REGION_CELL_DEGREES,
            minlon=region.lon,
            maxlon=region.lon + REGION_CELL_DEGREES,
        )

    @property
    def size(self) -> float:
        return (self.maxlat - self.minlat) * (self.maxlon - self.minlon)

    def bbox(self) -> str:
        return f"{self.minlon},{self.minlat},{self.maxlon},{self.maxlat}"

    def contains(self, lat: float, lon: float) -> bool:
        return self.minlat <= lat < self.maxlat and self.minlon <= lon < self.maxlon


def split_area(area: Area, min_split_area: float = MIN_SPLIT_AREA) -> tuple[Area, Area]:
    """Bisect ``area`` along its longer edge.

    Latitude is split only when its extent is strictly larger, so a square
    area is split along longitude.
    """
    if area.size < min_split_area:
        logger.error("RB: area too small to split (area=%s)", area)
        raise AreaTooSmallError(f"AREA_TOO_SMALL_TO_SPLIT:{area}")
    lat_range = area.maxlat - area.minlat
    lon_range = area.maxlon - area.minlon
    if lat_range > lon_range:
        middle = area.minlat + lat_range / 2
        return replace(area, maxlat=middle), replace(area, minlat=middle)
    middle = area.minlon + lon_range / 2
    return replace(area, maxlon=middle), replace(area, minlon=middle)


class AreaWorkList:
    def __init__(
        self,
        root: Area,
        *,
        max_request_area: float = MAX_REQUEST_AREA,
        min_split_area: float = MIN_SPLIT_AREA,
    ) -> None:
        self.max_request_area = max_request_area
        self.min_split_area = min_split_area
        self._pending: list[Area] = [root]

    def __len__(self) -> int:
        return len(self._pending)

    def split(self, area: Area) -> None:
        first, second = split_area(area, self.min_split_area)
        self._pending.append(first)
        self._pending.append(second)

    def next_area(self) -> Area | None:
        """Pop areas, splitting oversized ones, until one is small enough to request."""
        while self._pending:
            logger.debug("RB: %d areas remaining", len(self._pending))
            area = self._pending.pop()
            if area.size > self.max_request_area:
                self.split(area)
                continue
            return area
        return None
