"""
School Stations - Ranked Schools Preprocessor

Turns the scraped ranking into one row per school:
- rank parsed from the rank column ("=12" ties allowed), or the row position
  when the cell (or the whole column) is blank
- duplicate rows dropped and kept for review; one name in two suburbs is
  two schools
- schools beyond max_rank dropped
- band assigned for icon selection
- name cleaned of suburb/postcode qualifiers, with the original kept in
  full_name
- manual name overrides applied before building the reference join key
"""

from __future__ import annotations

import logging
from typing import Any

import pandas as pd

from school_stations.datasets.base import BasePreprocessor
from school_stations.shared.config import Settings, get_dataset_config
from school_stations.shared.normalize import (
    clean_name,
    normalize_key,
    parse_rank,
    rank_band,
    strip_footnotes,
)

logger = logging.getLogger(__name__)

DATASET_CONFIG = get_dataset_config("schools")
COLUMN_CANDIDATES: dict[str, list[str]] = DATASET_CONFIG.get(
    "columns",
    {
        "rank": ["Rank", "Ranking", "#", "Position"],
        "name": ["School", "School Name", "Name"],
        "score": ["Score", "Median VCE score", "Median Study Score"],
        "sector": ["Sector", "Type"],
    },
)
MAX_RANK = DATASET_CONFIG.get("max_rank", 50)
NAME_OVERRIDES: dict[str, str] = DATASET_CONFIG.get("name_overrides", {}) or {}
QUERY_TEMPLATE = DATASET_CONFIG.get("geocode", {}).get(
    "query_template", "{full_name}, Victoria, Australia"
)


class SchoolPreprocessor(BasePreprocessor):
    """Preprocessor for the ranked schools table."""

    REQUIRED_COLUMNS = ["rank", "band", "name", "full_name", "join_key", "geocode_query"]
    OPTIONAL_COLUMNS = ["locality", "score", "sector"]

    def __init__(
        self,
        config: Settings | None = None,
        column_candidates: dict[str, list[str]] | None = None,
        max_rank: int | None = None,
        band_size: int | None = None,
        name_overrides: dict[str, str] | None = None,
        query_template: str | None = None,
    ):
        super().__init__(config)
        self.column_candidates = column_candidates or COLUMN_CANDIDATES
        self.max_rank = max_rank if max_rank is not None else MAX_RANK
        self.band_size = band_size if band_size is not None else self.config.bands.band_size
        self.name_overrides = NAME_OVERRIDES if name_overrides is None else name_overrides
        self.query_template = query_template or QUERY_TEMPLATE

    def get_dataset_name(self) -> str:
        return "schools"

    def get_required_columns(self) -> list[str]:
        return self.REQUIRED_COLUMNS

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Apply school-specific transformations."""
        df = self.resolve_columns(df, self.column_candidates, required=["name"])
        for col in ("score", "sector"):
            if col in df.columns:
                df[col] = df[col].astype("string").str.strip()

        df["full_name"] = df["name"].fillna("").astype(str).map(strip_footnotes)
        df["name"] = df["full_name"].map(clean_name)
        df["locality"] = df["full_name"].map(_locality)

        df = self.drop_rows(df, df["name"] == "", "missing_name")

        df = self._assign_rank(df)

        df["band"] = df["rank"].map(lambda rank: rank_band(int(rank), self.band_size))
        self.log_transformation(f"assigned_bands_of_{self.band_size}")

        df["reference_name"] = df["name"].map(lambda name: self.name_overrides.get(name, name))
        overridden = int((df["reference_name"] != df["name"]).sum())
        if overridden:
            logger.info(f"Applied {overridden} school name overrides")
            self.log_transformation("applied_name_overrides")
        df["join_key"] = df["reference_name"].map(normalize_key)

        # Same name in different suburbs is a different school
        df = self.drop_duplicates(df, subset=["join_key", "locality"])

        df["geocode_query"] = [
            self.query_template.format(name=name, full_name=full_name)
            for name, full_name in zip(df["name"], df["full_name"], strict=True)
        ]
        self.log_transformation("built_geocode_query")

        df = df.sort_values("rank", kind="stable")
        output_cols = [
            "rank",
            "band",
            "name",
            "full_name",
            *[c for c in self.OPTIONAL_COLUMNS if c in df.columns],
            "reference_name",
            "join_key",
            "geocode_query",
        ]
        return df[output_cols].reset_index(drop=True)

    def _assign_rank(self, df: pd.DataFrame) -> pd.DataFrame:
        """Parse ranks, falling back to row position, and keep ranks 1..max_rank."""
        position = pd.Series(range(1, len(df) + 1), index=df.index, dtype="Int64")
        if "rank" in df.columns:
            df["rank"] = df["rank"].map(parse_rank).astype("Int64")
            missing = df["rank"].isna() | (df["rank"] < 1)
        else:
            df["rank"] = position
            missing = pd.Series(True, index=df.index)

        if missing.any():
            logger.warning(f"{int(missing.sum())} school rows have no rank; using table position")
            df.loc[missing, "rank"] = position[missing]
            self.log_transformation("rank_from_position")

        beyond = df["rank"] > self.max_rank
        if beyond.any():
            self.log_dropped_rows("beyond_max_rank", int(beyond.sum()))
        return df[~beyond].copy()


def _locality(full_name: str) -> str:
    """Suburb part of "School, Suburb, 3000" style labels."""
    parts = [p.strip() for p in full_name.split(",")]
    return parts[1] if len(parts) > 1 else ""


def preprocess_schools(
    df: pd.DataFrame, execution_date: str | None = None, config: Settings | None = None
) -> dict[str, Any]:
    """Convenience function for preprocessing schools."""
    preprocessor = SchoolPreprocessor(config)
    result = preprocessor.run(df, execution_date)
    return result.to_dict()
