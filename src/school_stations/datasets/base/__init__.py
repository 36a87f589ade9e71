"""
School Stations - Base Classes for Datasets

Abstract base classes that all dataset implementations inherit from.
These provide a consistent interface for:
- Data ingestion (BaseIngester, HtmlTableIngester)
- Data preprocessing (BasePreprocessor)

Usage:
    from school_stations.datasets.base import HtmlTableIngester, BasePreprocessor

    class StationIngester(HtmlTableIngester):
        def get_default_url(self) -> str:
            ...
"""

from school_stations.datasets.base.ingester import (
    BaseIngester,
    HtmlTableIngester,
    IngestionResult,
)
from school_stations.datasets.base.preprocessor import BasePreprocessor, PreprocessingResult

__all__ = [
    "BaseIngester",
    "HtmlTableIngester",
    "IngestionResult",
    "BasePreprocessor",
    "PreprocessingResult",
]
