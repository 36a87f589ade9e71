"""
School Stations - Great-Circle Distance

Haversine distance on a spherical earth (mean radius 6371 km).
"""

from __future__ import annotations

from math import asin, cos, radians, sin, sqrt

import numpy as np

EARTH_RADIUS_KM = 6371.0


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate great-circle distance between two points in kilometers
    """
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return EARTH_RADIUS_KM * 2 * asin(min(1.0, sqrt(a)))


def haversine_vector(
    lat: float, lon: float, lats: np.ndarray, lons: np.ndarray
) -> np.ndarray:
    """Vectorised haversine distance (km) from one point to many."""
    lat1, lon1 = radians(lat), radians(lon)
    lats2 = np.radians(np.asarray(lats, dtype=float))
    lons2 = np.radians(np.asarray(lons, dtype=float))
    a = (
        np.sin((lats2 - lat1) / 2) ** 2
        + cos(lat1) * np.cos(lats2) * np.sin((lons2 - lon1) / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * np.arcsin(np.sqrt(np.clip(a, 0.0, 1.0)))
