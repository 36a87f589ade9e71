"""
School Stations - Ranked Schools Dataset

Top-ranked Victorian secondary schools scraped from a published ranking
table.

Components:
    - SchoolIngester: Fetches the ranking page and selects the ranking table
    - SchoolPreprocessor: Parses ranks, assigns bands, builds join keys
"""

from school_stations.datasets.schools.ingest import SchoolIngester, ingest_schools
from school_stations.datasets.schools.preprocess import SchoolPreprocessor, preprocess_schools

__all__ = [
    "SchoolIngester",
    "SchoolPreprocessor",
    "ingest_schools",
    "preprocess_schools",
]
