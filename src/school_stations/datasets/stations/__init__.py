"""
School Stations - Train Stations Dataset

Metropolitan train stations scraped from the Wikipedia list of Melbourne
railway stations.

Components:
    - StationIngester: Fetches the page and selects the station table
    - StationPreprocessor: Cleans names and builds geocoding queries

Usage:
    from school_stations.datasets.stations import StationIngester, StationPreprocessor

    ingester = StationIngester()
    result = ingester.run()
    raw_df = ingester.get_data()

    preprocessor = StationPreprocessor()
    result = preprocessor.run(raw_df)
    stations_df = preprocessor.get_data()
"""

from school_stations.datasets.stations.ingest import StationIngester, ingest_stations
from school_stations.datasets.stations.preprocess import (
    StationPreprocessor,
    preprocess_stations,
)

__all__ = [
    "StationIngester",
    "StationPreprocessor",
    "ingest_stations",
    "preprocess_stations",
]
