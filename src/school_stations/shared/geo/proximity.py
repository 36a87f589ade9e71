"""
School Stations - Proximity Filter

Keeps the stations that lie within a radius of at least one school.

The search over schools is a strategy (ProximityIndex). BruteForceIndex
checks every school; GridIndex buckets schools into cells sized from the
radius and only checks the neighbouring cells. Both return the same
members for the same inputs.

Usage:
    from school_stations.shared.geo import filter_nearby

    nearby = filter_nearby(schools, stations, radius_km=2.0)
    for station in nearby:
        school, km = nearby.nearest(station)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Iterator, Mapping, Sequence, Set
from math import asin, cos, degrees, floor, isnan, pi, radians, sin
from typing import Protocol

import numpy as np
import pandas as pd

from school_stations.shared.errors import InvalidRadius
from school_stations.shared.geo.distance import (
    EARTH_RADIUS_KM,
    haversine_distance,
    haversine_vector,
)
from school_stations.shared.models import GeoPoint

logger = logging.getLogger(__name__)

Match = tuple[GeoPoint, float]


class ProximityIndex(Protocol):
    """Finds the nearest school strictly closer than radius_km to a point."""

    def nearest_within(self, point: GeoPoint, radius_km: float) -> Match | None: ...


class BruteForceIndex:
    """Checks every school; O(|schools|) per query."""

    def __init__(self, schools: Sequence[GeoPoint], radius_km: float | None = None):
        self.schools = [s for s in schools if s.has_coordinates]

    def nearest_within(self, point: GeoPoint, radius_km: float) -> Match | None:
        best: Match | None = None
        for school in self.schools:
            km = haversine_distance(
                point.latitude, point.longitude, school.latitude, school.longitude
            )
            if km < radius_km and (best is None or km < best[1]):
                best = (school, km)
        return best


class GridIndex:
    """
    Buckets schools into latitude/longitude cells.

    Cell height is the angular radius. Cell width comes from the haversine
    bound cos(lat1) * cos(lat2) * sin^2(dlon / 2) <= sin^2(r / 2R), using
    the smallest cos(lat) a matching pair can have, so every school within
    the radius of a point sits in the point's cell or one of its eight
    neighbours. When no finite grid satisfies the bound (infinite radius,
    polar data) the index delegates to brute force.
    """

    def __init__(self, schools: Sequence[GeoPoint], radius_km: float):
        self.schools = [s for s in schools if s.has_coordinates]
        self.radius_km = radius_km
        self._fallback: BruteForceIndex | None = None
        self._cells: dict[tuple[int, int], list[tuple[int, GeoPoint]]] = defaultdict(list)

        angle = radius_km / EARTH_RADIUS_KM
        if not self.schools or not angle < pi / 2:
            self._fallback = BruteForceIndex(self.schools)
            return

        max_abs_lat = max(abs(s.latitude) for s in self.schools) + degrees(angle)
        ratio = sin(angle / 2) / cos(radians(max_abs_lat)) if max_abs_lat < 90 else 1.0
        if ratio >= 1.0:
            self._fallback = BruteForceIndex(self.schools)
            return

        self.lat_step = degrees(angle)
        self.lon_cells = floor(360.0 / degrees(2 * asin(ratio)))
        if self.lon_cells < 3:
            self._fallback = BruteForceIndex(self.schools)
            return
        self.lon_step = 360.0 / self.lon_cells

        for position, school in enumerate(self.schools):
            self._cells[self._cell(school)].append((position, school))

    def _cell(self, point: GeoPoint) -> tuple[int, int]:
        row = floor(point.latitude / self.lat_step)
        col = floor((point.longitude + 180.0) / self.lon_step) % self.lon_cells
        return row, col

    def nearest_within(self, point: GeoPoint, radius_km: float) -> Match | None:
        if self._fallback is not None:
            return self._fallback.nearest_within(point, radius_km)
        if radius_km > self.radius_km:
            raise ValueError("GridIndex cannot answer queries wider than its build radius")

        row, col = self._cell(point)
        candidates = []
        for dr in (-1, 0, 1):
            for dc in (-1, 0, 1):
                candidates.extend(self._cells.get((row + dr, (col + dc) % self.lon_cells), ()))

        best: Match | None = None
        for _, school in sorted(candidates, key=lambda item: item[0]):
            km = haversine_distance(
                point.latitude, point.longitude, school.latitude, school.longitude
            )
            if km < radius_km and (best is None or km < best[1]):
                best = (school, km)
        return best


IndexFactory = Callable[[Sequence[GeoPoint], float], ProximityIndex]

INDEXES: dict[str, IndexFactory] = {
    "brute_force": BruteForceIndex,
    "grid": GridIndex,
}


class FilterResult(Set):
    """
    Ordered set of stations found near a school.

    Iteration follows input station order. Each member remembers its
    nearest school and the distance to it.
    """

    def __init__(self, matches: Mapping[GeoPoint, Match] | None = None, radius_km: float = 0.0):
        self._matches: dict[GeoPoint, Match] = dict(matches or {})
        self.radius_km = radius_km

    @classmethod
    def _from_iterable(cls, it):
        return set(it)

    def __contains__(self, item: object) -> bool:
        return item in self._matches

    def __iter__(self) -> Iterator[GeoPoint]:
        return iter(self._matches)

    def __len__(self) -> int:
        return len(self._matches)

    def __repr__(self) -> str:
        return f"FilterResult({len(self)} stations within {self.radius_km} km)"

    def nearest(self, station: GeoPoint) -> Match:
        """Return (school, km) for a member station."""
        return self._matches[station]


def validate_radius(radius_km: float) -> float:
    """Return radius_km as float, raising InvalidRadius unless it is > 0."""
    try:
        value = float(radius_km)
    except (TypeError, ValueError) as e:
        raise InvalidRadius(radius_km) from e
    if isnan(value) or value <= 0:
        raise InvalidRadius(radius_km)
    return value


def filter_nearby(
    schools: Sequence[GeoPoint],
    stations: Sequence[GeoPoint],
    radius_km: float,
    index: str | IndexFactory = "brute_force",
) -> FilterResult:
    """
    Return the stations within radius_km (great-circle) of any school.

    Points without coordinates are ignored on both sides. Duplicate
    stations appear once.

    Raises:
        InvalidRadius: If radius_km <= 0
    """
    radius_km = validate_radius(radius_km)
    factory = INDEXES[index] if isinstance(index, str) else index
    located_schools = [s for s in schools if s.has_coordinates]
    proximity_index = factory(located_schools, radius_km)

    matches: dict[GeoPoint, Match] = {}
    skipped = 0
    for station in stations:
        if not station.has_coordinates:
            skipped += 1
            continue
        if station in matches:
            continue
        hit = proximity_index.nearest_within(station, radius_km)
        if hit is not None:
            matches[station] = hit

    logger.info(
        f"{len(matches)} of {len(stations)} stations within {radius_km} km "
        f"of {len(located_schools)} schools",
        extra={"skipped_stations": skipped, "skipped_schools": len(schools) - len(located_schools)},
    )
    return FilterResult(matches, radius_km)


def annotate_nearest(
    stations: pd.DataFrame,
    schools: pd.DataFrame,
    label_col: str = "name",
    lat_col: str = "latitude",
    lon_col: str = "longitude",
) -> pd.DataFrame:
    """
    Add nearest_school and nearest_school_km columns to a station frame.

    Rows without coordinates (on either side) get NaN / None.
    """
    df = stations.copy()
    df["nearest_school"] = None
    df["nearest_school_km"] = np.nan

    located = schools.dropna(subset=[lat_col, lon_col])
    if located.empty:
        return df

    school_lats = located[lat_col].to_numpy(dtype=float)
    school_lons = located[lon_col].to_numpy(dtype=float)
    school_names = located[label_col].to_numpy()

    for idx, row in df.iterrows():
        if pd.isna(row[lat_col]) or pd.isna(row[lon_col]):
            continue
        distances = haversine_vector(row[lat_col], row[lon_col], school_lats, school_lons)
        best = int(np.argmin(distances))
        df.at[idx, "nearest_school"] = school_names[best]
        df.at[idx, "nearest_school_km"] = float(distances[best])

    return df
