"""
School Stations - School Locations Ingester

Reads the school locations reference CSV from the data directory.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from school_stations.datasets.base import BaseIngester
from school_stations.shared.config import Settings, get_dataset_config, resolve_path

logger = logging.getLogger(__name__)

# Load config
DATASET_CONFIG = get_dataset_config("school_locations")
SOURCE_CONFIG = DATASET_CONFIG.get("source", {})
DEFAULT_PATH = SOURCE_CONFIG.get("path", "reference/school_locations.csv")
ENCODING = SOURCE_CONFIG.get("encoding", "utf-8")
KEY_CANDIDATES = DATASET_CONFIG.get("columns", {}).get(
    "name", ["School_Name", "School Name", "Name"]
)


class SchoolLocationIngester(BaseIngester):
    """Ingester for the school locations reference file."""

    def __init__(self, config: Settings | None = None, path: str | Path | None = None):
        super().__init__(config)
        self.path = resolve_path(path or DEFAULT_PATH, self.config)

    def get_dataset_name(self) -> str:
        return "school_locations"

    def get_primary_key(self) -> str:
        return KEY_CANDIDATES[0]

    def get_key_candidates(self) -> list[str]:
        return list(KEY_CANDIDATES)

    def get_source(self) -> str:
        return str(self.path)

    def fetch_data(self) -> pd.DataFrame:
        """Read the reference CSV."""
        logger.info(f"Reading school locations from {self.path}")
        return pd.read_csv(self.path, encoding=ENCODING, dtype=str, keep_default_na=False)
