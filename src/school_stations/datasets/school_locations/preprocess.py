"""
School Stations - School Locations Preprocessor

Maps the reference file's X/Y columns to longitude/latitude, blanks
out-of-range coordinates and builds the same join key the ranked schools
use.
"""

from __future__ import annotations

import logging

import pandas as pd

from school_stations.datasets.base import BasePreprocessor
from school_stations.shared.config import Settings, get_dataset_config
from school_stations.shared.normalize import normalize_key

logger = logging.getLogger(__name__)

DATASET_CONFIG = get_dataset_config("school_locations")
COLUMN_CANDIDATES: dict[str, list[str]] = DATASET_CONFIG.get(
    "columns",
    {
        "name": ["School_Name", "School Name", "Name"],
        "longitude": ["X", "Longitude", "Lon", "Lng"],
        "latitude": ["Y", "Latitude", "Lat"],
        "town": ["Address_Town", "Town", "Suburb"],
        "school_type": ["School_Type", "Type"],
    },
)


class SchoolLocationPreprocessor(BasePreprocessor):
    """Preprocessor for the school locations reference file."""

    REQUIRED_COLUMNS = ["name", "join_key", "latitude", "longitude"]

    def __init__(
        self,
        config: Settings | None = None,
        column_candidates: dict[str, list[str]] | None = None,
    ):
        super().__init__(config)
        self.column_candidates = column_candidates or COLUMN_CANDIDATES

    def get_dataset_name(self) -> str:
        return "school_locations"

    def get_required_columns(self) -> list[str]:
        return self.REQUIRED_COLUMNS

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Apply reference-file transformations."""
        df = self.resolve_columns(
            df, self.column_candidates, required=["name", "latitude", "longitude"]
        )
        df["name"] = df["name"].fillna("").astype(str).str.strip()
        df = self.standardize_coordinates(df)

        df["join_key"] = df["name"].map(normalize_key)
        df = self.drop_rows(df, df["join_key"] == "", "missing_name")

        # Campuses of one school share a name; the first listed per town wins
        subset = ["join_key", "town"] if "town" in df.columns else ["join_key"]
        df = self.drop_duplicates(df, subset=subset)

        optional = [c for c in ("town", "school_type") if c in df.columns]
        return df[["name", "join_key", "latitude", "longitude", *optional]].reset_index(
            drop=True
        )
