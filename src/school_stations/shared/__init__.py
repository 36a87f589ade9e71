from school_stations.shared.config import Settings, get_config, get_dataset_config
from school_stations.shared.errors import (
    FetchError,
    GeocodeMiss,
    GeocodeQuotaExceeded,
    GeocodingError,
    InvalidRadius,
    NoTableFound,
    SchoolStationsError,
)
from school_stations.shared.models import Category, GeoPoint

__all__ = [
    "get_config",
    "get_dataset_config",
    "Settings",
    "Category",
    "GeoPoint",
    "SchoolStationsError",
    "FetchError",
    "NoTableFound",
    "GeocodeMiss",
    "GeocodeQuotaExceeded",
    "GeocodingError",
    "InvalidRadius",
]
