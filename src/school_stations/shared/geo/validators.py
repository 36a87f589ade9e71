"""
School Stations - Coordinate Validation
"""

from __future__ import annotations

from math import isfinite

from school_stations.shared.config import GeoBoundsConfig


def validate_coordinates(lat: float | None, lon: float | None) -> bool:
    """True when both values are finite and inside the WGS84 range."""
    if lat is None or lon is None:
        return False
    try:
        lat, lon = float(lat), float(lon)
    except (TypeError, ValueError):
        return False
    if not (isfinite(lat) and isfinite(lon)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


def is_within_bounds(lat: float, lon: float, bounds: GeoBoundsConfig) -> bool:
    """True when the point lies inside the configured bounding box."""
    return bounds.min_lat <= lat <= bounds.max_lat and bounds.min_lon <= lon <= bounds.max_lon
