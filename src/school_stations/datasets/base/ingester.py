"""
School Stations - Base Ingester

Abstract base class for all dataset ingesters. Provides a consistent interface
for fetching data from various sources with:
- Error handling that keeps the original exception for the caller
- Structured result reporting

HtmlTableIngester covers the common case of a page whose data lives in
one HTML table picked by a TableSelector.

Usage:
    class StationIngester(HtmlTableIngester):
        def get_dataset_name(self) -> str:
            return "stations"
        def get_default_url(self) -> str:
            return STATIONS_URL
        def get_primary_key(self) -> str:
            return "Station"
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any

import pandas as pd

from school_stations.shared.config import Settings, get_config
from school_stations.shared.errors import NoTableFound
from school_stations.shared.http import fetch_html
from school_stations.shared.normalize import find_column
from school_stations.shared.tables import TableSelector, build_selector

logger = logging.getLogger(__name__)

Fetcher = Callable[[str], str]


@dataclass
class IngestionResult:
    """Result of a data ingestion operation."""

    dataset: str
    execution_date: str
    rows_fetched: int
    source: str | None = None
    duration_seconds: float = 0.0
    success: bool = True
    error_message: str | None = None
    error: Exception | None = field(default=None, repr=False)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary for logging."""
        return {
            "dataset": self.dataset,
            "execution_date": self.execution_date,
            "rows_fetched": self.rows_fetched,
            "source": self.source,
            "duration_seconds": self.duration_seconds,
            "success": self.success,
            "error_message": self.error_message,
            "metadata": self.metadata,
        }


class BaseIngester(ABC):
    """
    Abstract base class for dataset ingestion.

    Subclasses must implement:
    - fetch_data(): Fetch data from the source
    - get_primary_key(): Return the column that names each record
    - get_dataset_name(): Return the dataset name
    """

    def __init__(self, config: Settings | None = None):
        """
        Initialize the ingester.

        Args:
            config: Configuration object (uses default if not provided)
        """
        self.config = config or get_config()

    @abstractmethod
    def fetch_data(self) -> pd.DataFrame:
        """
        Fetch data from the source.

        Returns:
            DataFrame containing the fetched data
        """
        pass

    @abstractmethod
    def get_primary_key(self) -> str:
        """
        Get the primary key field name.

        Returns:
            Column name that identifies each record
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

    def get_key_candidates(self) -> list[str]:
        """
        Get the accepted header names for the primary key column.

        Published tables rename headers over time; any candidate satisfies
        schema validation.
        """
        return [self.get_primary_key()]

    def get_source(self) -> str | None:
        """
        Get the URL or path this dataset is read from (optional).

        Returns:
            Source location or None if not applicable
        """
        return None

    def run(self, execution_date: str | None = None) -> IngestionResult:
        """
        Run the ingestion process.

        Args:
            execution_date: Execution date in YYYY-MM-DD format (defaults to today)

        Returns:
            IngestionResult with details about the ingestion
        """
        start_time = time.time()
        dataset_name = self.get_dataset_name()
        execution_date = execution_date or date.today().isoformat()
        source = self.get_source()

        logger.info(
            f"Starting ingestion for {dataset_name}",
            extra={"dataset": dataset_name, "execution_date": execution_date, "source": source},
        )

        try:
            df = self.fetch_data()

            is_valid, errors = self.validate_schema(df)
            if not is_valid:
                raise ValueError(f"Schema validation failed for {dataset_name}: {errors}")

            result = IngestionResult(
                dataset=dataset_name,
                execution_date=execution_date,
                rows_fetched=len(df),
                source=source,
                duration_seconds=time.time() - start_time,
                success=True,
                metadata={
                    "primary_key": find_column(df, self.get_key_candidates()),
                    "columns": list(map(str, df.columns)),
                },
            )

            logger.info(
                f"Ingestion complete for {dataset_name}: {len(df)} rows",
                extra=result.to_dict(),
            )

            # Store the dataframe for downstream access
            self._data = df

            return result

        except Exception as e:
            logger.error(
                f"Ingestion failed for {dataset_name}: {e}",
                extra={"dataset": dataset_name, "error": str(e)},
                exc_info=True,
            )

            return IngestionResult(
                dataset=dataset_name,
                execution_date=execution_date,
                rows_fetched=0,
                source=source,
                duration_seconds=time.time() - start_time,
                success=False,
                error_message=str(e),
                error=e,
            )

    def get_data(self) -> pd.DataFrame | None:
        """Get the most recently fetched data."""
        return getattr(self, "_data", None)

    def validate_schema(self, df: pd.DataFrame) -> tuple[bool, list[str]]:
        """
        Perform basic schema validation on fetched data.

        Args:
            df: DataFrame to validate

        Returns:
            Tuple of (is_valid, list_of_errors)
        """
        errors = []

        candidates = self.get_key_candidates()
        if find_column(df, candidates) is None:
            errors.append(f"Primary key column not found (tried {candidates})")

        if len(df) == 0:
            errors.append("DataFrame is empty")

        return len(errors) == 0, errors


class HtmlTableIngester(BaseIngester):
    """
    Ingester for a dataset published as an HTML table.

    Subclasses provide the page URL and, optionally, a selector spec
    ("largest", {"css": ...} or {"headers": [...]}).
    """

    def __init__(
        self,
        config: Settings | None = None,
        url: str | None = None,
        fetcher: Fetcher | None = None,
        selector: TableSelector | None = None,
    ):
        super().__init__(config)
        self.url = url or self.get_default_url()
        self.fetcher = fetcher or (lambda page_url: fetch_html(page_url, self.config))
        self.selector = selector or build_selector(self.get_selector_spec())

    @abstractmethod
    def get_default_url(self) -> str:
        """Return the configured page URL."""
        pass

    def get_selector_spec(self) -> dict | str | None:
        return "largest"

    def get_source(self) -> str:
        return self.url

    def fetch_data(self) -> pd.DataFrame:
        """Fetch the page and convert the selected table to a DataFrame."""
        html = self.fetcher(self.url)
        try:
            table = self.selector.select(html)
        except NoTableFound as e:
            raise NoTableFound(self.url, detail=e.detail) from e

        logger.info(
            f"Selected {table.row_count}x{table.column_count} table from {self.url}"
        )
        return table.to_frame(header=True)
