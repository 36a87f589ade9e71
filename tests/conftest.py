"""
School Stations - Pytest Configuration and Fixtures

Shared fixtures for all tests:
- Configuration fixtures
- Sample Melbourne coordinates and points
- HTML page fixtures for the scraped tables
"""

import os
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

# Set test environment
os.environ["SS_ENVIRONMENT"] = "dev"

# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def configs_dir(project_root: Path) -> Path:
    """Get the configs directory."""
    return project_root / "configs"


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def test_config() -> Any:
    """Get test configuration."""
    from school_stations.shared.config import get_config, reload_config

    # Ensure fresh config for tests
    reload_config("dev")
    return get_config("dev")


@pytest.fixture
def tmp_config(test_config: Any, tmp_path: Path) -> Any:
    """Test configuration with every artefact path under tmp_path."""
    from school_stations.shared.config import GeocodingConfig, StorageConfig

    storage = StorageConfig(
        data_dir=str(tmp_path / "data"),
        output_dir=str(tmp_path / "output"),
        review_dir=str(tmp_path / "output" / "review"),
        write_intermediate=True,
    )
    geocoding = GeocodingConfig(
        pause_seconds=0,
        cache_enabled=False,
        cache_path=str(tmp_path / "data" / "cache" / "geocode_cache.json"),
    )
    return test_config.model_copy(update={"storage": storage, "geocoding": geocoding})


# =============================================================================
# Geographic Fixtures
# =============================================================================


@pytest.fixture
def sample_coordinates() -> dict[str, tuple[float, float]]:
    """Sample Melbourne coordinates for testing."""
    return {
        "melbourne_cbd": (-37.8136, 144.9631),
        "flinders_street": (-37.8183, 144.9671),
        "southern_cross": (-37.8184, 144.9525),
        "frankston": (-38.1432, 145.1259),
        "hawthorn_east": (-37.8300, 145.0460),
    }


@pytest.fixture
def sample_schools(sample_coordinates) -> list:
    from school_stations.shared.models import Category, GeoPoint

    lat, lon = sample_coordinates["melbourne_cbd"]
    hlat, hlon = sample_coordinates["hawthorn_east"]
    return [
        GeoPoint("Melbourne High School", lat, lon, Category.SCHOOL, {"rank": "1", "band": "10"}),
        GeoPoint("Auburn High School", hlat, hlon, Category.SCHOOL, {"rank": "12", "band": "20"}),
    ]


@pytest.fixture
def sample_stations(sample_coordinates) -> list:
    from school_stations.shared.models import Category, GeoPoint

    return [
        GeoPoint(name.replace("_", " ").title(), lat, lon, Category.STATION)
        for name, (lat, lon) in sample_coordinates.items()
        if name in ("flinders_street", "southern_cross", "frankston")
    ]


# =============================================================================
# HTML Fixtures
# =============================================================================


@pytest.fixture
def stations_html() -> str:
    """A stations page with a navigation table ahead of the station table."""
    return """
    <html><body>
      <table class="navbox"><tr><td>Lines</td><td>Zones</td></tr></table>
      <table class="wikitable sortable">
        <tr><th>Station</th><th>Line</th><th>Zone</th></tr>
        <tr><td>Flinders Street[1]</td><td>All lines</td><td>1</td></tr>
        <tr><td>Southern Cross</td><td>All lines</td><td>1</td></tr>
        <tr><td>Frankston</td><td>Frankston</td><td>2</td></tr>
        <tr><td>Glenferrie</td><td>Lilydale, Belgrave, Alamein</td><td>1</td></tr>
      </table>
    </body></html>
    """


@pytest.fixture
def schools_html() -> str:
    """A ranking page with a small summary table and the ranking table."""
    return """
    <html><body>
      <table><tr><td>Updated</td><td>2024</td></tr></table>
      <table id="ranking">
        <tr><th>Rank</th><th>School</th><th>Sector</th><th>Score</th></tr>
        <tr>
          <td>1</td><td>Melbourne High School, South Yarra, 3141</td>
          <td>Government</td><td>38</td>
        </tr>
        <tr>
          <td>=2</td><td>Auburn High School, Hawthorn East, 3123</td>
          <td>Government</td><td>35</td>
        </tr>
        <tr>
          <td>=2</td><td>Nowhere College, Atlantis, 9999</td>
          <td>Independent</td><td>35</td>
        </tr>
        <tr>
          <td>11</td><td>Frankston High School, Frankston, 3199</td>
          <td>Government</td><td>33</td>
        </tr>
      </table>
    </body></html>
    """


@pytest.fixture
def locations_csv(tmp_path: Path, sample_coordinates) -> Path:
    """School locations reference file (X = longitude, Y = latitude)."""
    cbd = sample_coordinates["melbourne_cbd"]
    hawthorn = sample_coordinates["hawthorn_east"]
    path = tmp_path / "school_locations.csv"
    path.write_text(
        "School_No,School_Name,Address_Town,X,Y\n"
        f"8001,Melbourne High School,South Yarra,{cbd[1]},{cbd[0]}\n"
        f"8002,Auburn High School,Hawthorn East,{hawthorn[1]},{hawthorn[0]}\n"
        "8003,Frankston High School,Frankston,145.1300,-38.1500\n"
        "8004,Closed School,Nowhere,,\n"
    )
    return path


# =============================================================================
# Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def cleanup_env() -> Generator[None, None, None]:
    """Clean up environment variables after each test."""
    original_env = os.environ.copy()
    yield
    # Restore original environment
    os.environ.clear()
    os.environ.update(original_env)
