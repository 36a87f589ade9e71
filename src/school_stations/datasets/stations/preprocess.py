"""
School Stations - Train Stations Preprocessor

Cleans the scraped station table:
- Resolves the station name, line and zone columns from header candidates
- Strips footnote markers and trailing qualifiers from names
- Drops blank and duplicate stations
- Builds the geocoding query for each station
"""

from __future__ import annotations

import logging
from typing import Any

import pandas as pd

from school_stations.datasets.base import BasePreprocessor
from school_stations.shared.config import Settings, get_dataset_config
from school_stations.shared.normalize import clean_name, strip_footnotes

logger = logging.getLogger(__name__)

DATASET_CONFIG = get_dataset_config("stations")
COLUMN_CANDIDATES: dict[str, list[str]] = DATASET_CONFIG.get(
    "columns",
    {
        "name": ["Station", "Name"],
        "lines": ["Line", "Lines", "Line(s)", "Services"],
        "zone": ["Zone", "Myki zone", "Fare zone"],
    },
)
QUERY_TEMPLATE = DATASET_CONFIG.get("geocode", {}).get(
    "query_template", "{name} railway station, Victoria, Australia"
)


class StationPreprocessor(BasePreprocessor):
    """Preprocessor for the Melbourne railway stations table."""

    REQUIRED_COLUMNS = ["name", "geocode_query"]
    OPTIONAL_COLUMNS = ["lines", "zone"]

    def __init__(
        self,
        config: Settings | None = None,
        column_candidates: dict[str, list[str]] | None = None,
        query_template: str | None = None,
    ):
        super().__init__(config)
        self.column_candidates = column_candidates or COLUMN_CANDIDATES
        self.query_template = query_template or QUERY_TEMPLATE

    def get_dataset_name(self) -> str:
        return "stations"

    def get_required_columns(self) -> list[str]:
        return self.REQUIRED_COLUMNS

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Apply station-specific transformations."""
        df = self.resolve_columns(df, self.column_candidates, required=["name"])

        for col in ["name", *self.OPTIONAL_COLUMNS]:
            if col in df.columns:
                df[col] = df[col].fillna("").astype(str).map(strip_footnotes)

        df["name"] = df["name"].map(clean_name)
        # Repeated header rows inside the table body
        header_rows = df["name"].str.casefold().isin(
            [c.casefold() for c in self.column_candidates.get("name", [])]
        )
        df = self.drop_rows(df, header_rows | (df["name"] == ""), "missing_name")

        df = self.drop_duplicates(df, subset=["name"])

        df["geocode_query"] = df["name"].map(lambda name: self.query_template.format(name=name))
        self.log_transformation("built_geocode_query")

        output_cols = ["name", *[c for c in self.OPTIONAL_COLUMNS if c in df.columns]]
        return df[[*output_cols, "geocode_query"]].reset_index(drop=True)


def preprocess_stations(
    df: pd.DataFrame, execution_date: str | None = None, config: Settings | None = None
) -> dict[str, Any]:
    """Convenience function for preprocessing stations."""
    preprocessor = StationPreprocessor(config)
    result = preprocessor.run(df, execution_date)
    return result.to_dict()
