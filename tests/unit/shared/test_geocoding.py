"""
Unit tests for geocoding clients and the DataFrame helper.
"""

import json
from unittest.mock import MagicMock

import numpy as np
import pandas as pd
import pytest
import requests

from school_stations.shared.errors import (
    FetchError,
    GeocodeMiss,
    GeocodeQuotaExceeded,
    GeocodingError,
)
from school_stations.shared.geocoding import (
    CachingGeocoder,
    Coordinates,
    GoogleGeocoder,
    build_geocoder,
    geocode_frame,
)


def _response(payload, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    response.text = json.dumps(payload)
    return response


def _ok(lat, lng):
    location = {"lat": lat, "lng": lng}
    return _response({"status": "OK", "results": [{"geometry": {"location": location}}]})


class FakeGeocoder:
    """Geocoder backed by a dict; unknown queries are misses."""

    def __init__(self, places, quota=None):
        self.places = places
        self.quota = quota
        self.queries = []

    def geocode(self, query):
        if self.quota is not None and len(self.queries) >= self.quota:
            raise GeocodeQuotaExceeded(self.quota)
        self.queries.append(query)
        if query not in self.places:
            raise GeocodeMiss(query)
        return Coordinates(*self.places[query])


class TestGoogleGeocoder:
    """Test cases for GoogleGeocoder."""

    @pytest.fixture
    def session(self):
        return MagicMock(spec=requests.Session)

    @pytest.fixture
    def geocoder(self, tmp_config, session):
        return GoogleGeocoder(tmp_config, api_key="test-key", session=session)

    def test_success(self, geocoder, session):
        session.get.return_value = _ok(-37.8183, 144.9671)

        coords = geocoder.geocode("Flinders Street railway station, Victoria, Australia")

        assert coords == Coordinates(-37.8183, 144.9671)
        params = session.get.call_args.kwargs["params"]
        assert params["key"] == "test-key"
        assert params["region"] == "au"
        assert params["components"] == "country:AU"
        assert geocoder.calls == 1

    def test_zero_results_is_miss(self, geocoder, session):
        session.get.return_value = _response({"status": "ZERO_RESULTS", "results": []})
        with pytest.raises(GeocodeMiss):
            geocoder.geocode("Atlantis")

    def test_out_of_bounds_is_miss(self, geocoder, session):
        # Melbourne, Florida
        session.get.return_value = _ok(28.0836, -80.6081)
        with pytest.raises(GeocodeMiss, match="outside configured bounds"):
            geocoder.geocode("Melbourne")

    def test_bounds_not_enforced(self, tmp_config, session):
        validation = tmp_config.validation.model_copy(update={"enforce_bounds": False})
        config = tmp_config.model_copy(update={"validation": validation})
        session.get.return_value = _ok(28.0836, -80.6081)
        geocoder = GoogleGeocoder(config, api_key="k", session=session)
        assert geocoder.geocode("Melbourne") == Coordinates(28.0836, -80.6081)

    @pytest.mark.parametrize("status", ["OVER_QUERY_LIMIT", "OVER_DAILY_LIMIT"])
    def test_provider_quota(self, geocoder, session, status):
        session.get.return_value = _response({"status": status})
        with pytest.raises(GeocodeQuotaExceeded):
            geocoder.geocode("Frankston")

    @pytest.mark.parametrize("status", ["REQUEST_DENIED", "INVALID_REQUEST", "UNKNOWN_ERROR"])
    def test_refusals(self, geocoder, session, status):
        session.get.return_value = _response({"status": status, "error_message": "nope"})
        with pytest.raises(GeocodingError, match=status):
            geocoder.geocode("Frankston")

    def test_http_error(self, geocoder, session):
        session.get.return_value = _response({}, status_code=503)
        with pytest.raises(FetchError) as exc_info:
            geocoder.geocode("Frankston")
        assert exc_info.value.status_code == 503

    def test_network_error(self, geocoder, session):
        session.get.side_effect = requests.ConnectionError("down")
        with pytest.raises(FetchError):
            geocoder.geocode("Frankston")

    def test_local_quota(self, tmp_config, session):
        geocoding = tmp_config.geocoding.model_copy(update={"daily_quota": 2})
        config = tmp_config.model_copy(update={"geocoding": geocoding})
        geocoder = GoogleGeocoder(config, api_key="k", session=session)
        session.get.return_value = _ok(-37.8, 144.9)

        geocoder.geocode("a")
        geocoder.geocode("b")
        assert geocoder.remaining_quota == 0
        with pytest.raises(GeocodeQuotaExceeded):
            geocoder.geocode("c")
        assert session.get.call_count == 2

    def test_pause_between_calls(self, tmp_config, session, mocker):
        geocoding = tmp_config.geocoding.model_copy(update={"pause_seconds": 0.5})
        config = tmp_config.model_copy(update={"geocoding": geocoding})
        sleep = mocker.patch("school_stations.shared.geocoding.time.sleep")
        session.get.return_value = _ok(-37.8, 144.9)

        GoogleGeocoder(config, api_key="k", session=session).geocode("a")

        sleep.assert_called_once_with(0.5)


class TestCachingGeocoder:
    """Test cases for CachingGeocoder."""

    def test_hit_skips_inner(self, tmp_path):
        inner = FakeGeocoder({"a": (-37.8, 144.9)})
        cache = CachingGeocoder(inner, tmp_path / "cache.json")

        assert cache.geocode("a") == Coordinates(-37.8, 144.9)
        assert cache.geocode("a") == Coordinates(-37.8, 144.9)

        assert inner.queries == ["a"]
        assert cache.hits == 1

    def test_persists_between_runs(self, tmp_path):
        path = tmp_path / "cache.json"
        CachingGeocoder(FakeGeocoder({"a": (-37.8, 144.9)}), path).geocode("a")

        inner = FakeGeocoder({})
        assert CachingGeocoder(inner, path).geocode("a") == Coordinates(-37.8, 144.9)
        assert inner.queries == []

    def test_misses_not_cached(self, tmp_path):
        inner = FakeGeocoder({})
        cache = CachingGeocoder(inner, tmp_path / "cache.json")
        for _ in range(2):
            with pytest.raises(GeocodeMiss):
                cache.geocode("nowhere")
        assert inner.queries == ["nowhere", "nowhere"]

    def test_corrupt_cache_ignored(self, tmp_path):
        path = tmp_path / "cache.json"
        path.write_text("{not json")
        cache = CachingGeocoder(FakeGeocoder({"a": (1.0, 2.0)}), path)
        assert cache.geocode("a") == Coordinates(1.0, 2.0)

    def test_build_geocoder(self, tmp_config):
        assert isinstance(build_geocoder(tmp_config), GoogleGeocoder)
        geocoding = tmp_config.geocoding.model_copy(update={"cache_enabled": True})
        config = tmp_config.model_copy(update={"geocoding": geocoding})
        assert isinstance(build_geocoder(config), CachingGeocoder)


class TestGeocodeFrame:
    """Test cases for geocode_frame."""

    @pytest.fixture
    def frame(self):
        return pd.DataFrame(
            {
                "name": ["Flinders Street", "Glenferrie", "Frankston", "Blank"],
                "geocode_query": ["flinders", "glenferrie", "frankston", ""],
            }
        )

    def test_fills_coordinates_and_reports_misses(self, frame):
        geocoder = FakeGeocoder({"flinders": (-37.8183, 144.9671), "frankston": (-38.14, 145.12)})

        df, failures = geocode_frame(frame, "geocode_query", geocoder)

        assert len(df) == 4
        assert df.loc[0, "latitude"] == -37.8183
        assert np.isnan(df.loc[1, "latitude"])
        assert [(f.label, f.reason) for f in failures] == [
            ("Glenferrie", "no match"),
            ("Blank", "empty query"),
        ]
        assert "latitude" not in frame.columns

    def test_skips_rows_with_coordinates(self, frame):
        frame["latitude"] = [-37.0, np.nan, np.nan, np.nan]
        frame["longitude"] = [145.0, np.nan, np.nan, np.nan]
        geocoder = FakeGeocoder({"frankston": (-38.14, 145.12)})

        df, _ = geocode_frame(frame, "geocode_query", geocoder)

        assert "flinders" not in geocoder.queries
        assert df.loc[0, "latitude"] == -37.0

    def test_quota_exhaustion_reports_remaining_rows(self, frame):
        geocoder = FakeGeocoder({"flinders": (-37.8183, 144.9671)}, quota=1)

        df, failures = geocode_frame(frame, "geocode_query", geocoder)

        assert df["latitude"].notna().sum() == 1
        reasons = {f.label: f.reason for f in failures}
        assert reasons["Glenferrie"] == "quota exceeded"
        assert reasons["Frankston"] == "quota exceeded"
        assert geocoder.queries == ["flinders"]

    def test_fatal_errors_propagate(self, frame):
        geocoder = MagicMock()
        geocoder.geocode.side_effect = GeocodingError("REQUEST_DENIED")
        with pytest.raises(GeocodingError):
            geocode_frame(frame, "geocode_query", geocoder)
