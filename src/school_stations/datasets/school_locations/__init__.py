"""
School Stations - School Locations Reference Dataset

Authoritative school coordinates from the Victorian government school
locations CSV, joined onto the ranked schools by normalized name.

Components:
    - SchoolLocationIngester: Reads the reference CSV
    - SchoolLocationPreprocessor: Maps X/Y to longitude/latitude, builds join keys
    - join_reference_coordinates: Attaches coordinates, reporting mismatches
"""

from school_stations.datasets.school_locations.ingest import SchoolLocationIngester
from school_stations.datasets.school_locations.join import (
    JoinMismatch,
    join_reference_coordinates,
)
from school_stations.datasets.school_locations.preprocess import SchoolLocationPreprocessor

__all__ = [
    "SchoolLocationIngester",
    "SchoolLocationPreprocessor",
    "JoinMismatch",
    "join_reference_coordinates",
]
