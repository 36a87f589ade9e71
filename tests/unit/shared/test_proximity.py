"""
Unit tests for the station-to-school proximity filter.
"""

import math
import random

import pandas as pd
import pytest

from school_stations.shared.errors import InvalidRadius
from school_stations.shared.geo import (
    BruteForceIndex,
    FilterResult,
    GridIndex,
    annotate_nearest,
    filter_nearby,
    validate_radius,
)
from school_stations.shared.models import Category, GeoPoint


def _school(label, lat, lon):
    return GeoPoint(label, lat, lon, Category.SCHOOL)


def _station(label, lat, lon):
    return GeoPoint(label, lat, lon, Category.STATION)


class TestFilterNearby:
    """Test cases for filter_nearby."""

    def test_cbd_station_included_at_2km(self):
        school = _school("Melbourne CBD school", -37.8136, 144.9631)
        station = _station("Flinders Street", -37.8183, 144.9671)
        result = filter_nearby([school], [station], 2.0)
        assert station in result
        nearest, km = result.nearest(station)
        assert nearest == school
        assert km == pytest.approx(0.63, abs=0.05)

    def test_cbd_station_excluded_at_half_km(self):
        school = _school("Melbourne CBD school", -37.8136, 144.9631)
        station = _station("Flinders Street", -37.8183, 144.9671)
        assert len(filter_nearby([school], [station], 0.5)) == 0

    def test_empty_stations(self, sample_schools):
        result = filter_nearby(sample_schools, [], 2.0)
        assert isinstance(result, FilterResult)
        assert len(result) == 0

    def test_no_schools(self, sample_stations):
        assert len(filter_nearby([], sample_stations, 2.0)) == 0

    def test_infinite_radius_keeps_all_stations(self, sample_schools, sample_stations):
        result = filter_nearby(sample_schools, sample_stations, math.inf)
        assert list(result) == sample_stations

    @pytest.mark.parametrize("radius", [0, -5, float("nan"), "abc"])
    def test_invalid_radius(self, sample_schools, sample_stations, radius):
        with pytest.raises(InvalidRadius):
            filter_nearby(sample_schools, sample_stations, radius)

    def test_invalid_radius_is_value_error(self):
        with pytest.raises(ValueError):
            validate_radius(0)

    def test_preserves_station_order_and_dedupes(self, sample_schools, sample_stations):
        flinders, southern_cross, frankston = sample_stations
        stations = [southern_cross, flinders, southern_cross, frankston]
        result = filter_nearby(sample_schools, stations, 2.0)
        assert list(result) == [southern_cross, flinders]

    def test_distance_is_strictly_less_than_radius(self):
        school = _school("School", 0.0, 0.0)
        station = _station("Station", 0.0, 1.0)
        exact = 2 * math.pi * 6371.0 / 360
        assert station not in filter_nearby([school], [station], exact * (1 - 1e-12))
        assert station in filter_nearby([school], [station], exact * (1 + 1e-9))

    def test_points_without_coordinates_are_skipped(self, sample_schools):
        lost = _station("Glenferrie", None, None)
        found = _station("Flinders Street", -37.8183, 144.9671)
        lost_school = _school("Nowhere College", None, None)
        result = filter_nearby([lost_school, *sample_schools], [lost, found], 2.0)
        assert list(result) == [found]

    def test_records_nearest_school(self, sample_coordinates):
        near = _school("Near", -37.8180, 144.9670)
        far = _school("Far", -37.8136, 144.9631)
        station = _station("Flinders Street", *sample_coordinates["flinders_street"])
        result = filter_nearby([far, near], [station], 2.0)
        assert result.nearest(station)[0] == near

    def test_result_behaves_as_set(self, sample_schools, sample_stations):
        result = filter_nearby(sample_schools, sample_stations, 2.0)
        assert result == set(sample_stations[:2])
        assert result & {sample_stations[0]} == {sample_stations[0]}

    def test_unknown_index(self, sample_schools, sample_stations):
        with pytest.raises(KeyError):
            filter_nearby(sample_schools, sample_stations, 2.0, index="kd_tree")


class TestGridIndex:
    """The grid index returns exactly what brute force returns."""

    @pytest.mark.parametrize("radius", [0.5, 2.0, 25.0, 5000.0, 30000.0])
    def test_matches_brute_force_melbourne(self, radius):
        rng = random.Random(7)
        schools = [
            _school(f"s{i}", rng.uniform(-38.3, -37.5), rng.uniform(144.5, 145.5))
            for i in range(60)
        ]
        stations = [
            _station(f"t{i}", rng.uniform(-38.3, -37.5), rng.uniform(144.5, 145.5))
            for i in range(200)
        ]
        brute = filter_nearby(schools, stations, radius, index="brute_force")
        grid = filter_nearby(schools, stations, radius, index="grid")
        assert list(grid) == list(brute)
        for station in brute:
            assert grid.nearest(station) == brute.nearest(station)

    @pytest.mark.parametrize("radius", [50.0, 500.0])
    def test_matches_brute_force_global(self, radius):
        rng = random.Random(11)
        schools = [
            _school(f"s{i}", rng.uniform(-89.0, 89.0), rng.uniform(-180.0, 180.0))
            for i in range(300)
        ]
        stations = [
            _station(f"t{i}", rng.uniform(-89.0, 89.0), rng.uniform(-180.0, 180.0))
            for i in range(300)
        ]
        brute = filter_nearby(schools, stations, radius, index="brute_force")
        grid = filter_nearby(schools, stations, radius, index="grid")
        assert list(grid) == list(brute)

    def test_wraps_antimeridian(self):
        school = _school("Fiji school", -18.0, 179.99)
        station = _station("Fiji station", -18.0, -179.99)
        assert station in filter_nearby([school], [station], 5.0, index="grid")

    def test_infinite_radius_falls_back(self, sample_schools, sample_stations):
        index = GridIndex(sample_schools, math.inf)
        assert isinstance(index._fallback, BruteForceIndex)
        assert list(filter_nearby(sample_schools, sample_stations, math.inf, index="grid")) == (
            sample_stations
        )

    def test_rejects_wider_query(self, sample_schools, sample_stations):
        index = GridIndex(sample_schools, 1.0)
        with pytest.raises(ValueError):
            index.nearest_within(sample_stations[0], 2.0)


class TestAnnotateNearest:
    """Test cases for annotate_nearest."""

    def test_adds_nearest_columns(self, sample_coordinates):
        stations = pd.DataFrame(
            {
                "name": ["Flinders Street", "Glenferrie"],
                "latitude": [sample_coordinates["flinders_street"][0], None],
                "longitude": [sample_coordinates["flinders_street"][1], None],
            }
        )
        schools = pd.DataFrame(
            {
                "name": ["Melbourne High School", "Auburn High School"],
                "latitude": [sample_coordinates["melbourne_cbd"][0], -37.83],
                "longitude": [sample_coordinates["melbourne_cbd"][1], 145.046],
            }
        )
        df = annotate_nearest(stations, schools)
        assert df.loc[0, "nearest_school"] == "Melbourne High School"
        assert df.loc[0, "nearest_school_km"] == pytest.approx(0.63, abs=0.05)
        assert df.loc[1, "nearest_school"] is None
        assert pd.isna(df.loc[1, "nearest_school_km"])

    def test_no_located_schools(self):
        stations = pd.DataFrame({"name": ["A"], "latitude": [-37.8], "longitude": [144.9]})
        schools = pd.DataFrame({"name": ["B"], "latitude": [None], "longitude": [None]})
        df = annotate_nearest(stations, schools)
        assert df["nearest_school_km"].isna().all()
