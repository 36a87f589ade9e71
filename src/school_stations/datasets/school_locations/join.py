"""
School Stations - Reference Coordinate Join

Attaches reference coordinates to ranked schools by join key. Schools the
reference file cannot place keep null coordinates and are reported as
JoinMismatch records for manual review; nothing is corrected silently.

When the reference file carries a town column, a school's locality picks
between campuses (or between different schools) that share a name. Ranked
schools that share a join key are only matched through their locality.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

import pandas as pd

from school_stations.shared.normalize import normalize_key

logger = logging.getLogger(__name__)

COORDINATES = ["latitude", "longitude"]


@dataclass(frozen=True)
class JoinMismatch:
    """A school with no counterpart in the reference file."""

    name: str
    key: str
    source: str
    reason: str = "no match"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _place_key(values: pd.Series) -> pd.Series:
    return values.fillna("").astype(str).map(normalize_key)


def join_reference_coordinates(
    schools: pd.DataFrame,
    locations: pd.DataFrame,
    source: str = "school_locations",
    key_col: str = "join_key",
    locality_col: str = "locality",
    town_col: str = "town",
) -> tuple[pd.DataFrame, list[JoinMismatch]]:
    """
    Left-join latitude/longitude from locations onto schools.

    Row order and count of schools are preserved.

    Returns:
        Tuple of (schools with latitude/longitude, list of mismatches)
    """
    reference = locations[[key_col, *COORDINATES]].drop_duplicates(subset=[key_col], keep="first")
    base = schools.drop(columns=COORDINATES, errors="ignore")
    joined = base.merge(reference, on=key_col, how="left", validate="many_to_one")
    joined.index = schools.index

    # Two ranked schools with one name cannot share the first campus listed
    ambiguous = schools[key_col].duplicated(keep=False)
    joined.loc[ambiguous, COORDINATES] = float("nan")

    if town_col in locations.columns and locality_col in schools.columns:
        by_town = (
            locations.assign(_place=_place_key(locations[town_col]))
            .drop_duplicates(subset=[key_col, "_place"], keep="first")
            .set_index([key_col, "_place"])[COORDINATES]
        )
        wanted = pd.MultiIndex.from_arrays(
            [schools[key_col], _place_key(schools[locality_col])]
        )
        located = by_town.reindex(wanted)
        found = located["latitude"].notna().to_numpy() & located["longitude"].notna().to_numpy()
        joined.loc[found, COORDINATES] = located.to_numpy()[found]

    unmatched = joined["latitude"].isna() | joined["longitude"].isna()
    mismatches = [
        JoinMismatch(
            name=str(row["name"]),
            key=str(row[key_col]),
            source=source,
            reason="ambiguous name" if ambiguous[idx] else "no match",
        )
        for idx, row in joined[unmatched].iterrows()
    ]

    for mismatch in mismatches:
        logger.warning(
            f"No reference location for school '{mismatch.name}' ({mismatch.reason})",
            extra={"join_key": mismatch.key, "source": source},
        )
    logger.info(
        f"Joined reference coordinates: {int((~unmatched).sum())} matched, "
        f"{len(mismatches)} unmatched",
    )
    return joined, mismatches
