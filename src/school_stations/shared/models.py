"""
School Stations - Point Records

GeoPoint is the record shared by the proximity filter and the map renderer.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

import pandas as pd


class Category(StrEnum):
    """Point categories shown on the map."""

    SCHOOL = "School"
    STATION = "Station"


def _as_coordinate(value: Any) -> float | None:
    """Convert a raw coordinate to float, mapping blanks and NaN to None."""
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    elif value is None or pd.isna(value):
        return None
    value = float(value)
    if math.isnan(value):
        return None
    return value


@dataclass(frozen=True)
class GeoPoint:
    """
    A labelled location.

    Equality and hashing use (category, label, latitude, longitude);
    attributes are carried along for popups and icon selection only.
    """

    label: str
    latitude: float | None
    longitude: float | None
    category: Category
    attributes: Mapping[str, str] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        lat = _as_coordinate(self.latitude)
        lon = _as_coordinate(self.longitude)
        if lat is not None and not -90.0 <= lat <= 90.0:
            raise ValueError(f"Latitude {lat} out of range for '{self.label}'")
        if lon is not None and not -180.0 <= lon <= 180.0:
            raise ValueError(f"Longitude {lon} out of range for '{self.label}'")
        object.__setattr__(self, "latitude", lat)
        object.__setattr__(self, "longitude", lon)
        object.__setattr__(self, "category", Category(self.category))
        object.__setattr__(
            self, "attributes", {str(k): str(v) for k, v in dict(self.attributes).items()}
        )

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None


def split_located(points: Iterable[GeoPoint]) -> tuple[list[GeoPoint], list[GeoPoint]]:
    """Split points into (located, ungeocoded), preserving order."""
    located: list[GeoPoint] = []
    ungeocoded: list[GeoPoint] = []
    for point in points:
        (located if point.has_coordinates else ungeocoded).append(point)
    return located, ungeocoded


def points_from_frame(
    df: pd.DataFrame,
    category: Category,
    label_col: str = "name",
    lat_col: str = "latitude",
    lon_col: str = "longitude",
    attribute_cols: Iterable[str] = (),
) -> list[GeoPoint]:
    """
    Build GeoPoints from a processed DataFrame.

    Missing coordinates become None; blank attribute values are omitted.
    """
    attribute_cols = [c for c in attribute_cols if c in df.columns]
    points = []
    for row in df.to_dict(orient="records"):
        attributes = {
            col: str(row[col])
            for col in attribute_cols
            if row.get(col) is not None and not pd.isna(row[col]) and str(row[col]).strip()
        }
        points.append(
            GeoPoint(
                label=str(row[label_col]),
                latitude=row.get(lat_col),
                longitude=row.get(lon_col),
                category=category,
                attributes=attributes,
            )
        )
    return points
