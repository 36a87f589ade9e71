"""
School Stations - Pipeline

End-to-end run:

    fetch pages -> select tables -> clean -> reference join / geocode
      -> proximity filter -> merge points -> render map -> review files

Every input (configuration, fetcher, geocoder, reference file, output
paths) is passed in explicitly; nothing depends on the working directory
beyond the configured relative paths.

Usage:
    from school_stations.pipeline import run_pipeline

    result = run_pipeline(radius_km=1.5)
    print(result.to_dict())
"""

from __future__ import annotations

import dataclasses
import logging
import time
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any

import pandas as pd

from school_stations.datasets.base import BaseIngester, BasePreprocessor
from school_stations.datasets.base.ingester import Fetcher
from school_stations.datasets.school_locations import (
    JoinMismatch,
    SchoolLocationIngester,
    SchoolLocationPreprocessor,
    join_reference_coordinates,
)
from school_stations.datasets.schools import SchoolIngester, SchoolPreprocessor
from school_stations.datasets.stations import StationIngester, StationPreprocessor
from school_stations.rendering import (
    build_icon_map,
    build_legend_html,
    build_map,
    points_to_frame,
    save_map,
)
from school_stations.shared.config import Settings, get_config, get_dataset_config, resolve_path
from school_stations.shared.errors import SchoolStationsError
from school_stations.shared.geo import FilterResult, annotate_nearest, filter_nearby
from school_stations.shared.geo.proximity import INDEXES, validate_radius
from school_stations.shared.geocoding import (
    GeocodeFailure,
    Geocoder,
    build_geocoder,
    geocode_frame,
)
from school_stations.shared.models import Category, GeoPoint, points_from_frame, split_located

logger = logging.getLogger(__name__)

SCHOOL_ATTRIBUTES = ["rank", "band", "locality", "score", "sector"]
STATION_ATTRIBUTES = ["lines", "zone"]


@dataclass
class PipelineResult:
    """Outcome of a pipeline run."""

    execution_date: str
    radius_km: float
    index: str
    stations_fetched: int = 0
    schools_fetched: int = 0
    points: list[GeoPoint] = field(default_factory=list)
    nearby: FilterResult = field(default_factory=FilterResult)
    ungeocoded: list[GeoPoint] = field(default_factory=list)
    join_mismatches: list[JoinMismatch] = field(default_factory=list)
    geocode_failures: list[GeocodeFailure] = field(default_factory=list)
    dropped_rows: list[dict[str, Any]] = field(default_factory=list)
    map_path: Path | None = None
    review_files: list[Path] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def schools_located(self) -> int:
        return sum(1 for p in self.points if p.category is Category.SCHOOL)

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary for logging."""
        return {
            "execution_date": self.execution_date,
            "radius_km": self.radius_km,
            "index": self.index,
            "stations_fetched": self.stations_fetched,
            "schools_fetched": self.schools_fetched,
            "schools_located": self.schools_located,
            "stations_nearby": len(self.nearby),
            "ungeocoded": len(self.ungeocoded),
            "join_mismatches": [m.to_dict() for m in self.join_mismatches],
            "geocode_failures": [f.to_dict() for f in self.geocode_failures],
            "dropped_rows": len(self.dropped_rows),
            "map_path": str(self.map_path) if self.map_path else None,
            "review_files": [str(p) for p in self.review_files],
            "duration_seconds": self.duration_seconds,
        }


def _ingest(ingester: BaseIngester, execution_date: str) -> pd.DataFrame:
    """Run an ingester, re-raising its failure."""
    result = ingester.run(execution_date)
    if not result.success:
        if result.error is not None:
            raise result.error
        raise SchoolStationsError(result.error_message or "ingestion failed")
    return ingester.get_data()


def _preprocess(
    preprocessor: BasePreprocessor,
    df: pd.DataFrame,
    execution_date: str,
    dropped: list[dict[str, Any]],
) -> pd.DataFrame:
    """Run a preprocessor, re-raising its failure and collecting the rows it dropped."""
    result = preprocessor.run(df, execution_date)
    if not result.success:
        if result.error is not None:
            raise result.error
        raise SchoolStationsError(result.error_message or "preprocessing failed")
    dataset = preprocessor.get_dataset_name()
    dropped.extend({"dataset": dataset, **record} for record in result.dropped_records)
    return preprocessor.get_data()


def _with_nearest(nearby: FilterResult) -> list[GeoPoint]:
    """Stations from the filter with their nearest school added as attributes."""
    stations = []
    for station in nearby:
        school, km = nearby.nearest(station)
        attributes = {
            **station.attributes,
            "nearest_school": school.label,
            "distance_km": f"{km:.2f}",
        }
        stations.append(dataclasses.replace(station, attributes=attributes))
    return stations


def _dropped_frame(dropped: list[dict[str, Any]]) -> pd.DataFrame:
    """Dropped rows from every dataset; columns are the union of their fields."""
    if not dropped:
        return pd.DataFrame(columns=["dataset", "reason"])
    return pd.DataFrame(dropped)


def _write_review_files(
    review_dir: Path,
    ungeocoded: list[GeoPoint],
    mismatches: list[JoinMismatch],
    failures: list[GeocodeFailure],
    dropped: list[dict[str, Any]],
) -> list[Path]:
    """Write the manual-review CSVs; each file is written even when empty."""
    review_dir.mkdir(parents=True, exist_ok=True)
    frames = {
        "ungeocoded.csv": points_to_frame(ungeocoded).drop(columns=["popup"]),
        "join_mismatches.csv": pd.DataFrame(
            [m.to_dict() for m in mismatches], columns=["name", "key", "source", "reason"]
        ),
        "geocode_failures.csv": pd.DataFrame(
            [f.to_dict() for f in failures], columns=["label", "query", "reason"]
        ),
        "dropped_rows.csv": _dropped_frame(dropped),
    }
    written = []
    for filename, frame in frames.items():
        path = review_dir / filename
        frame.to_csv(path, index=False)
        written.append(path)
    logger.info(f"Wrote review files to {review_dir}")
    return written


def _write_intermediate(
    config: Settings, stations: pd.DataFrame, schools: pd.DataFrame
) -> list[Path]:
    """Write processed station and school tables, stations with nearest-school columns."""
    out_dir = resolve_path("processed", config)
    out_dir.mkdir(parents=True, exist_ok=True)
    stations_path = out_dir / "stations.csv"
    schools_path = out_dir / "schools.csv"
    annotate_nearest(stations, schools).to_csv(stations_path, index=False)
    schools.to_csv(schools_path, index=False)
    logger.info(f"Wrote processed tables to {out_dir}")
    return [stations_path, schools_path]


def run_pipeline(
    config: Settings | None = None,
    *,
    fetcher: Fetcher | None = None,
    geocoder: Geocoder | None = None,
    locations_path: str | Path | None = None,
    coordinate_source: str | None = None,
    geocode_unmatched: bool | None = None,
    radius_km: float | None = None,
    index: str | None = None,
    band_size: int | None = None,
    output_path: str | Path | None = None,
    review_dir: str | Path | None = None,
    execution_date: str | None = None,
    render: bool = True,
) -> PipelineResult:
    """
    Run the full pipeline.

    Args:
        config: Configuration object (uses default if not provided)
        fetcher: Callable url -> HTML (defaults to fetch_html)
        geocoder: Geocoder (defaults to build_geocoder(config))
        locations_path: School locations reference CSV
        coordinate_source: "reference" (join) or "geocode"; defaults to schools.yaml
        geocode_unmatched: Geocode schools the reference file cannot place;
            defaults to schools.yaml
        radius_km: Override for config.proximity.radius_km
        index: Override for config.proximity.index
        band_size: Override for config.bands.band_size
        output_path: Map HTML path (defaults to config.storage.map_path)
        review_dir: Directory for review CSVs (defaults to config.storage.review_dir)
        execution_date: Execution date in YYYY-MM-DD format (defaults to today)
        render: Build and save the map

    Raises:
        InvalidRadius: Before any fetching, if the radius is not positive
        NoTableFound, FetchError, GeocodingError: Fatal stage failures
    """
    start_time = time.time()
    config = config or get_config()
    radius_km = validate_radius(config.proximity.radius_km if radius_km is None else radius_km)
    index = index or config.proximity.index
    if index not in INDEXES:
        raise ValueError(f"Unknown proximity index '{index}'. Choose from {sorted(INDEXES)}")
    band_size = config.bands.band_size if band_size is None else band_size
    if band_size < 1:
        raise ValueError(f"band_size must be >= 1, got {band_size}")
    schools_config = get_dataset_config("schools")
    coordinates_config = schools_config.get("coordinates", {})
    coordinate_source = coordinate_source or coordinates_config.get("source", "reference")
    if coordinate_source not in ("reference", "geocode"):
        raise ValueError(f"Unknown coordinate source '{coordinate_source}'")
    if geocode_unmatched is None:
        geocode_unmatched = coordinates_config.get("geocode_unmatched", False)
    max_rank = schools_config.get("max_rank", 50)
    execution_date = execution_date or date.today().isoformat()

    logger.info(
        f"Starting pipeline run for {execution_date}",
        extra={"radius_km": radius_km, "index": index, "coordinate_source": coordinate_source},
    )
    result = PipelineResult(execution_date=execution_date, radius_km=radius_km, index=index)

    # Ingest and clean both tables
    stations_raw = _ingest(StationIngester(config, fetcher=fetcher), execution_date)
    schools_raw = _ingest(SchoolIngester(config, fetcher=fetcher), execution_date)
    result.stations_fetched = len(stations_raw)
    result.schools_fetched = len(schools_raw)

    dropped = result.dropped_rows
    stations_df = _preprocess(StationPreprocessor(config), stations_raw, execution_date, dropped)
    schools_df = _preprocess(
        SchoolPreprocessor(config, max_rank=max_rank, band_size=band_size),
        schools_raw,
        execution_date,
        dropped,
    )

    # Locate schools
    if coordinate_source == "reference":
        locations_raw = _ingest(
            SchoolLocationIngester(config, path=locations_path), execution_date
        )
        locations_df = _preprocess(
            SchoolLocationPreprocessor(config), locations_raw, execution_date, dropped
        )
        schools_df, result.join_mismatches = join_reference_coordinates(schools_df, locations_df)

    geocoder = geocoder or build_geocoder(config)
    if coordinate_source == "geocode" or geocode_unmatched:
        schools_df, failures = geocode_frame(schools_df, "geocode_query", geocoder)
        result.geocode_failures.extend(failures)

    # Locate stations
    stations_df, failures = geocode_frame(stations_df, "geocode_query", geocoder)
    result.geocode_failures.extend(failures)

    schools = points_from_frame(schools_df, Category.SCHOOL, attribute_cols=SCHOOL_ATTRIBUTES)
    stations = points_from_frame(
        stations_df, Category.STATION, attribute_cols=STATION_ATTRIBUTES
    )
    located_schools, ungeocoded_schools = split_located(schools)
    _, ungeocoded_stations = split_located(stations)
    result.ungeocoded = ungeocoded_schools + ungeocoded_stations
    for point in result.ungeocoded:
        logger.warning(f"{point.category} '{point.label}' has no coordinates")

    # Filter and merge
    result.nearby = filter_nearby(located_schools, stations, radius_km, index=index)
    result.points = located_schools + _with_nearest(result.nearby)

    if render:
        icons = build_icon_map(config.map, band_size, max_rank)
        legend = build_legend_html(config.map, band_size, max_rank)
        m = build_map(result.points, icons, legend, config.map)
        result.map_path = save_map(m, output_path or config.storage.map_path)

    review_dir = review_dir or config.storage.review_dir
    if review_dir:
        result.review_files = _write_review_files(
            Path(review_dir),
            result.ungeocoded,
            result.join_mismatches,
            result.geocode_failures,
            result.dropped_rows,
        )

    if config.storage.write_intermediate:
        _write_intermediate(config, stations_df, schools_df)

    result.duration_seconds = time.time() - start_time
    logger.info(
        f"Pipeline complete: {result.schools_located} schools, "
        f"{len(result.nearby)} stations within {radius_km} km, "
        f"{len(result.ungeocoded)} ungeocoded, {len(result.join_mismatches)} join mismatches",
        extra=result.to_dict(),
    )
    return result
