"""
School Stations - Base Preprocessor

Abstract base class for all dataset preprocessors. Provides a consistent interface
for data cleaning and transformation with:
- Column standardization
- Data type conversion
- Coordinate validation that keeps rows (invalid values become NaN)
- Transformation and drop tracking, with dropped rows kept for review

Usage:
    class StationPreprocessor(BasePreprocessor):
        def transform(self, df: pd.DataFrame) -> pd.DataFrame:
            ...
        def get_column_mappings(self) -> dict[str, str]:
            return {"Station": "name"}
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from typing import Any

import pandas as pd

from school_stations.shared.config import Settings, get_config
from school_stations.shared.normalize import find_column

logger = logging.getLogger(__name__)


@dataclass
class PreprocessingResult:
    """Result of a preprocessing operation."""

    dataset: str
    execution_date: str
    rows_input: int
    rows_output: int
    rows_dropped: int
    columns_input: int
    columns_output: int
    duration_seconds: float = 0.0
    success: bool = True
    error_message: str | None = None
    error: Exception | None = field(default=None, repr=False)
    transformations_applied: list[str] = field(default_factory=list)
    drop_reasons: dict[str, int] = field(default_factory=dict)
    dropped_records: list[dict[str, Any]] = field(default_factory=list, repr=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary for logging."""
        return {
            "dataset": self.dataset,
            "execution_date": self.execution_date,
            "rows_input": self.rows_input,
            "rows_output": self.rows_output,
            "rows_dropped": self.rows_dropped,
            "columns_input": self.columns_input,
            "columns_output": self.columns_output,
            "duration_seconds": self.duration_seconds,
            "success": self.success,
            "error_message": self.error_message,
            "transformations_applied": self.transformations_applied,
            "drop_reasons": self.drop_reasons,
        }


class BasePreprocessor(ABC):
    """
    Abstract base class for dataset preprocessing.

    Subclasses must implement:
    - transform(): Apply dataset-specific transformations
    - get_dataset_name(): Return the dataset name
    - get_required_columns(): Return list of required output columns
    """

    def __init__(self, config: Settings | None = None):
        """
        Initialize the preprocessor.

        Args:
            config: Configuration object (uses default if not provided)
        """
        self.config = config or get_config()
        self._transformations: list[str] = []
        self._drop_reasons: dict[str, int] = {}
        self._dropped_records: list[dict[str, Any]] = []

    @abstractmethod
    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Apply dataset-specific transformations.

        Args:
            df: Raw DataFrame to transform

        Returns:
            Transformed DataFrame
        """
        pass

    @abstractmethod
    def get_dataset_name(self) -> str:
        """
        Get the dataset name.

        Returns:
            Dataset name (e.g., "stations", "schools")
        """
        pass

    @abstractmethod
    def get_required_columns(self) -> list[str]:
        """
        Get list of required columns in the output.

        Returns:
            List of column names that must be present after preprocessing
        """
        pass

    def get_column_mappings(self) -> dict[str, str]:
        """
        Get column name mappings (old -> new).

        Override this method to rename columns during preprocessing.

        Returns:
            Dictionary mapping old column names to new names
        """
        return {}

    def get_dtype_mappings(self) -> dict[str, str]:
        """
        Get data type mappings for columns.

        Override this method to specify target data types.

        Returns:
            Dictionary mapping column names to target dtypes
        """
        return {}

    def run(
        self,
        df: pd.DataFrame,
        execution_date: str | None = None,
    ) -> PreprocessingResult:
        """
        Run the preprocessing pipeline.

        Args:
            df: Raw DataFrame to preprocess
            execution_date: Execution date in YYYY-MM-DD format (defaults to today)

        Returns:
            PreprocessingResult with details about the preprocessing
        """
        start_time = time.time()
        dataset_name = self.get_dataset_name()
        execution_date = execution_date or date.today().isoformat()
        rows_input = len(df)
        columns_input = len(df.columns)

        logger.info(
            f"Starting preprocessing for {dataset_name}",
            extra={
                "dataset": dataset_name,
                "execution_date": execution_date,
                "rows_input": rows_input,
            },
        )

        try:
            # Reset tracking
            self._transformations = []
            self._drop_reasons = {}
            self._dropped_records = []

            df = self._apply_column_mappings(df.copy())
            df = self._apply_dtype_conversions(df)
            df = self.transform(df)
            self._validate_required_columns(df)

            rows_output = len(df)

            result = PreprocessingResult(
                dataset=dataset_name,
                execution_date=execution_date,
                rows_input=rows_input,
                rows_output=rows_output,
                rows_dropped=rows_input - rows_output,
                columns_input=columns_input,
                columns_output=len(df.columns),
                duration_seconds=time.time() - start_time,
                success=True,
                transformations_applied=self._transformations,
                drop_reasons=self._drop_reasons,
                dropped_records=self._dropped_records,
            )

            logger.info(
                f"Preprocessing complete for {dataset_name}: {rows_input} -> {rows_output} rows",
                extra=result.to_dict(),
            )

            # Store processed data
            self._data = df

            return result

        except Exception as e:
            logger.error(
                f"Preprocessing failed for {dataset_name}: {e}",
                extra={"dataset": dataset_name, "error": str(e)},
                exc_info=True,
            )

            return PreprocessingResult(
                dataset=dataset_name,
                execution_date=execution_date,
                rows_input=rows_input,
                rows_output=0,
                rows_dropped=rows_input,
                columns_input=columns_input,
                columns_output=0,
                duration_seconds=time.time() - start_time,
                success=False,
                error_message=str(e),
                error=e,
            )

    def get_data(self) -> pd.DataFrame | None:
        """Get the most recently processed data."""
        return getattr(self, "_data", None)

    def _apply_column_mappings(self, df: pd.DataFrame) -> pd.DataFrame:
        """Apply column name mappings."""
        mappings = self.get_column_mappings()
        if mappings:
            df = df.rename(columns=mappings)
            self._transformations.append(f"renamed_columns: {list(mappings.keys())}")
        return df

    def _apply_dtype_conversions(self, df: pd.DataFrame) -> pd.DataFrame:
        """Apply data type conversions."""
        dtype_mappings = self.get_dtype_mappings()
        for col, dtype in dtype_mappings.items():
            if col in df.columns:
                try:
                    if dtype == "int":
                        df[col] = pd.to_numeric(df[col], errors="coerce").astype("Int64")
                    elif dtype == "float":
                        df[col] = pd.to_numeric(df[col], errors="coerce")
                    elif dtype == "string":
                        df[col] = df[col].astype("string").str.strip()
                    else:
                        df[col] = df[col].astype(dtype)
                    self._transformations.append(f"converted_{col}_to_{dtype}")
                except (TypeError, ValueError) as e:
                    logger.warning(f"Failed to convert {col} to {dtype}: {e}")
        return df

    def _validate_required_columns(self, df: pd.DataFrame) -> None:
        """Validate that all required columns are present."""
        required = set(self.get_required_columns())
        present = set(df.columns)
        missing = required - present

        if missing:
            raise ValueError(f"Missing required columns: {missing}")

    def log_transformation(self, name: str) -> None:
        """Log a transformation that was applied."""
        self._transformations.append(name)

    def log_dropped_rows(self, reason: str, count: int) -> None:
        """Log rows that were dropped."""
        self._drop_reasons[reason] = self._drop_reasons.get(reason, 0) + count

    # ==========================================================================
    # Common Preprocessing Utilities
    # ==========================================================================

    def standardize_coordinates(
        self,
        df: pd.DataFrame,
        lat_col: str = "latitude",
        lon_col: str = "longitude",
    ) -> pd.DataFrame:
        """
        Standardize geographic coordinates.

        - Converts to numeric
        - Blanks coordinates outside the WGS84 range (rows are kept so they
          can be reported as ungeocoded)
        """
        df[lat_col] = pd.to_numeric(df[lat_col], errors="coerce")
        df[lon_col] = pd.to_numeric(df[lon_col], errors="coerce")

        out_of_range = (
            df[lat_col].notna() & ~df[lat_col].between(-90, 90)
        ) | (df[lon_col].notna() & ~df[lon_col].between(-180, 180))

        invalid_count = int(out_of_range.sum())
        if invalid_count > 0:
            logger.warning(f"{invalid_count} rows have out-of-range coordinates")
            self.log_dropped_rows("invalid_coordinates", invalid_count)
            df.loc[out_of_range, [lat_col, lon_col]] = float("nan")

        self.log_transformation("standardize_coordinates")
        return df

    def drop_duplicates(
        self,
        df: pd.DataFrame,
        subset: list[str] | None = None,
        keep: str = "first",
    ) -> pd.DataFrame:
        """Drop duplicate rows."""
        duplicated = df.duplicated(subset=subset, keep=keep)
        if duplicated.any():
            self.log_transformation("drop_duplicates")
        return self.drop_rows(df, duplicated, "duplicates")

    def drop_rows(self, df: pd.DataFrame, mask: pd.Series, reason: str) -> pd.DataFrame:
        """
        Drop the rows selected by mask.

        Dropped rows are kept (with the reason) on the result so they can be
        written out for manual review.
        """
        count = int(mask.sum())
        if count == 0:
            return df

        logger.warning(f"Dropping {count} {self.get_dataset_name()} rows: {reason}")
        self.log_dropped_rows(reason, count)
        for record in df[mask].to_dict("records"):
            self._dropped_records.append({"reason": reason, **record})
        return df[~mask].copy()

    def resolve_columns(
        self,
        df: pd.DataFrame,
        candidates: dict[str, list[str]],
        required: list[str] | None = None,
    ) -> pd.DataFrame:
        """
        Rename source columns to canonical names using header candidates.

        Args:
            df: DataFrame with source headers
            candidates: Canonical name -> accepted source header names
            required: Canonical names that must be resolved

        Raises:
            ValueError: If a required column has no matching header
        """
        renames = {}
        for canonical, names in candidates.items():
            col = find_column(df, [canonical, *names])
            if col is not None and col not in renames:
                renames[col] = canonical

        missing = [c for c in (required or []) if c not in renames.values()]
        if missing:
            raise ValueError(
                f"Required column(s) not found: {missing}. "
                f"Available columns: {list(map(str, df.columns))}"
            )

        df = df.rename(columns=renames)
        self.log_transformation(f"resolved_columns: {renames}")
        return df
