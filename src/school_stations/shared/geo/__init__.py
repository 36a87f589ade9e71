"""
School Stations - Geographic Utilities

Geographic processing utilities:
- Coordinate validation
- Distance calculations
- Station-to-school proximity filtering
"""

from school_stations.shared.geo.distance import (
    EARTH_RADIUS_KM,
    haversine_distance,
    haversine_vector,
)
from school_stations.shared.geo.proximity import (
    BruteForceIndex,
    FilterResult,
    GridIndex,
    ProximityIndex,
    annotate_nearest,
    filter_nearby,
    validate_radius,
)
from school_stations.shared.geo.validators import is_within_bounds, validate_coordinates

__all__ = [
    "EARTH_RADIUS_KM",
    "haversine_distance",
    "haversine_vector",
    "BruteForceIndex",
    "GridIndex",
    "ProximityIndex",
    "FilterResult",
    "filter_nearby",
    "validate_radius",
    "annotate_nearest",
    "validate_coordinates",
    "is_within_bounds",
]
