"""
School Stations - Geocoding

Resolves free-text place names to coordinates through the Google
Geocoding API, with:
- A per-run call ceiling matching the provider's daily quota
- An optional JSON file cache so reruns do not spend quota
- DataFrame helper that records every miss instead of dropping rows

Usage:
    geocoder = build_geocoder(config)
    df, failures = geocode_frame(df, "geocode_query", geocoder)
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, NamedTuple, Protocol

import numpy as np
import pandas as pd
import requests

from school_stations.shared.config import Settings, get_config
from school_stations.shared.errors import (
    FetchError,
    GeocodeMiss,
    GeocodeQuotaExceeded,
    GeocodingError,
)
from school_stations.shared.geo.validators import is_within_bounds, validate_coordinates

logger = logging.getLogger(__name__)


class Coordinates(NamedTuple):
    latitude: float
    longitude: float


@dataclass
class GeocodeFailure:
    """A row the geocoder could not place."""

    label: str
    query: str
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class Geocoder(Protocol):
    """Anything that turns a query into Coordinates or raises GeocodeMiss."""

    def geocode(self, query: str) -> Coordinates: ...


class GoogleGeocoder:
    """Client for the Google Geocoding JSON API."""

    def __init__(
        self,
        config: Settings | None = None,
        api_key: str | None = None,
        session: requests.Session | None = None,
    ):
        self.config = config or get_config()
        self.settings = self.config.geocoding
        self.api_key = api_key or self.config.google_maps_api_key
        self.session = session or requests.Session()
        self.calls = 0

        if not self.api_key:
            logger.warning("GOOGLE_MAPS_API_KEY is not set; requests will likely be denied")

    @property
    def remaining_quota(self) -> int:
        return max(0, self.settings.daily_quota - self.calls)

    def geocode(self, query: str) -> Coordinates:
        """
        Geocode a single query.

        Raises:
            GeocodeMiss: No result, or the result is outside the configured bounds
            GeocodeQuotaExceeded: Daily ceiling reached (locally or by the provider)
            GeocodingError: The provider refused the request
            FetchError: Network failure or non-2xx response
        """
        if self.calls >= self.settings.daily_quota:
            raise GeocodeQuotaExceeded(self.settings.daily_quota)

        params = {"address": query}
        if self.api_key:
            params["key"] = self.api_key
        if self.settings.region:
            params["region"] = self.settings.region
        if self.settings.components:
            params["components"] = self.settings.components

        self.calls += 1
        try:
            response = self.session.get(
                self.settings.base_url, params=params, timeout=self.settings.timeout_seconds
            )
        except requests.RequestException as e:
            raise FetchError(self.settings.base_url, str(e)) from e
        finally:
            if self.settings.pause_seconds > 0:
                time.sleep(self.settings.pause_seconds)

        if not 200 <= response.status_code < 300:
            raise FetchError(
                self.settings.base_url, response.text[:200], status_code=response.status_code
            )

        data = response.json()
        status = data.get("status", "")

        if status == "ZERO_RESULTS":
            raise GeocodeMiss(query)
        if status in {"OVER_QUERY_LIMIT", "OVER_DAILY_LIMIT"}:
            raise GeocodeQuotaExceeded(self.settings.daily_quota)
        if status != "OK" or not data.get("results"):
            detail = data.get("error_message", "")
            raise GeocodingError(f"Geocoding failed for '{query}': {status} {detail}".strip())

        location = data["results"][0]["geometry"]["location"]
        coords = Coordinates(float(location["lat"]), float(location["lng"]))
        if not validate_coordinates(*coords):
            raise GeocodingError(f"Provider returned invalid coordinates {coords} for '{query}'")

        if self.config.validation.enforce_bounds and not is_within_bounds(
            coords.latitude, coords.longitude, self.config.validation.geo_bounds
        ):
            raise GeocodeMiss(query, reason=f"result {coords} outside configured bounds")

        return coords


class CachingGeocoder:
    """Wraps a geocoder with a JSON file cache keyed by query text."""

    def __init__(self, inner: Geocoder, cache_path: str | Path):
        self.inner = inner
        self.cache_path = Path(cache_path)
        self.hits = 0
        self._cache = self._load()

    def _load(self) -> dict[str, list[float]]:
        if not self.cache_path.exists():
            return {}
        try:
            with open(self.cache_path, encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable geocode cache {self.cache_path}: {e}")
            return {}

    def _save(self) -> None:
        self.cache_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.cache_path, "w", encoding="utf-8") as f:
            json.dump(self._cache, f, indent=2, sort_keys=True)

    def geocode(self, query: str) -> Coordinates:
        cached = self._cache.get(query)
        if cached is not None:
            self.hits += 1
            return Coordinates(*cached)

        coords = self.inner.geocode(query)
        self._cache[query] = [coords.latitude, coords.longitude]
        self._save()
        return coords


def build_geocoder(config: Settings | None = None) -> Geocoder:
    """Build the configured geocoder (Google, cached unless disabled)."""
    config = config or get_config()
    geocoder: Geocoder = GoogleGeocoder(config)
    if config.geocoding.cache_enabled:
        geocoder = CachingGeocoder(geocoder, config.geocoding.cache_path)
    return geocoder


def geocode_frame(
    df: pd.DataFrame,
    query_col: str,
    geocoder: Geocoder,
    label_col: str = "name",
    lat_col: str = "latitude",
    lon_col: str = "longitude",
) -> tuple[pd.DataFrame, list[GeocodeFailure]]:
    """
    Fill latitude/longitude for rows that do not have them yet.

    Misses keep the row with NaN coordinates and are returned as
    GeocodeFailure records. Once the quota is exhausted the remaining rows
    are reported as failures without further calls.

    Returns:
        Tuple of (geocoded DataFrame, list of failures)
    """
    df = df.copy()
    for col in (lat_col, lon_col):
        if col not in df.columns:
            df[col] = np.nan
        df[col] = pd.to_numeric(df[col], errors="coerce")

    failures: list[GeocodeFailure] = []
    quota_hit = False
    resolved = 0

    for idx, row in df.iterrows():
        if pd.notna(row[lat_col]) and pd.notna(row[lon_col]):
            continue

        label = str(row.get(label_col, ""))
        query = row.get(query_col)
        if query is None or pd.isna(query) or not str(query).strip():
            failures.append(GeocodeFailure(label, "", "empty query"))
            continue
        query = str(query)

        if quota_hit:
            failures.append(GeocodeFailure(label, query, "quota exceeded"))
            continue

        try:
            coords = geocoder.geocode(query)
        except GeocodeMiss as e:
            logger.warning(f"Geocode miss for {label}: {e.reason}")
            failures.append(GeocodeFailure(label, query, e.reason))
            continue
        except GeocodeQuotaExceeded as e:
            logger.warning(f"{e}; remaining rows left ungeocoded")
            quota_hit = True
            failures.append(GeocodeFailure(label, query, "quota exceeded"))
            continue

        df.at[idx, lat_col] = coords.latitude
        df.at[idx, lon_col] = coords.longitude
        resolved += 1

    logger.info(
        f"Geocoded {resolved} rows, {len(failures)} failures",
        extra={"query_column": query_col, "failures": len(failures)},
    )
    return df, failures
