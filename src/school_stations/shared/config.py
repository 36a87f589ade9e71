"""
School Stations - Configuration Loader

Pydantic-based configuration management with:
- Environment-based configuration (dev/prod)
- YAML file loading with inheritance
- Environment variable overrides for secrets
- Per-dataset YAML files (source URLs, column names, overrides)

Usage:
    from school_stations.shared.config import get_config

    config = get_config()  # Uses SS_ENVIRONMENT env var
    config = get_config("dev")  # Explicit environment

    radius = config.proximity.radius_km
    quota = config.geocoding.daily_quota
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

logger = logging.getLogger(__name__)

# =============================================================================
# Configuration Models
# =============================================================================


class ProjectConfig(BaseModel):
    """Project metadata configuration."""

    name: str = "school-stations"
    version: str = "0.1.0"
    description: str = "Train stations within walking range of top-ranked Melbourne schools"


class StorageConfig(BaseModel):
    """Local artefact locations."""

    data_dir: str = "data"
    output_dir: str = "output"
    map_file: str = "school_stations_map.html"
    review_dir: str | None = "output/review"
    write_intermediate: bool = False

    @property
    def map_path(self) -> Path:
        return Path(self.output_dir) / self.map_file


class HttpConfig(BaseModel):
    """Page fetch configuration."""

    timeout_seconds: int = 45
    user_agent: str = "Mozilla/5.0 (compatible; school-stations/0.1)"


class GeocodingConfig(BaseModel):
    """Geocoding service configuration."""

    base_url: str = "https://maps.googleapis.com/maps/api/geocode/json"
    region: str | None = "au"
    components: str | None = "country:AU"
    timeout_seconds: int = 30
    daily_quota: int = 2500
    pause_seconds: float = 0.1
    cache_enabled: bool = True
    cache_path: str = "data/cache/geocode_cache.json"


class ProximityConfig(BaseModel):
    """Station-to-school distance filter configuration."""

    radius_km: float = 2.0
    index: Literal["brute_force", "grid"] = "brute_force"


class BandsConfig(BaseModel):
    """Rank banding used for icon selection."""

    band_size: int = 10


class GeoBoundsConfig(BaseModel):
    """Accepted area for geocoder results (Victoria, Australia)."""

    min_lat: float = -39.2
    max_lat: float = -33.9
    min_lon: float = 140.9
    max_lon: float = 150.0


class ValidationConfig(BaseModel):
    """Validation configuration."""

    geo_bounds: GeoBoundsConfig = Field(default_factory=GeoBoundsConfig)
    enforce_bounds: bool = True


class IconConfig(BaseModel):
    """A folium.Icon spec, or an image file used as a folium.CustomIcon."""

    color: str = "blue"
    icon: str = "info-sign"
    prefix: str = "glyphicon"
    image: str | None = None
    size: tuple[int, int] = (32, 32)


class MapConfig(BaseModel):
    """Map rendering configuration."""

    title: str = "Top Melbourne schools and nearby train stations"
    center: tuple[float, float] = (-37.8136, 144.9631)
    zoom_start: int = 11
    tiles: str = "OpenStreetMap"
    icon_dir: str | None = None
    # Colours for successive rank bands, best first; reused in order past the end
    band_palette: list[str] = Field(
        default_factory=lambda: ["darkred", "red", "orange", "green", "blue"]
    )
    default_band_color: str = "gray"
    school_icon: str = "education"
    station_icon: IconConfig = Field(
        default_factory=lambda: IconConfig(color="black", icon="train", prefix="fa")
    )
    popup_max_width: int = 300


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["json", "text"] = "text"
    file: str | None = None


# =============================================================================
# Main Settings Class
# =============================================================================


class Settings(BaseSettings):
    """
    Main configuration class for School Stations.

    Loads configuration from:
    1. YAML files in configs/environments/
    2. Environment variables (for secrets)

    Environment variables take precedence over YAML values.
    """

    model_config = SettingsConfigDict(
        env_prefix="SS_",
        env_nested_delimiter="__",
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    environment: Literal["dev", "prod"] = "dev"

    # Configuration sections
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)
    geocoding: GeocodingConfig = Field(default_factory=GeocodingConfig)
    proximity: ProximityConfig = Field(default_factory=ProximityConfig)
    bands: BandsConfig = Field(default_factory=BandsConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    map: MapConfig = Field(default_factory=MapConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Secrets (from environment variables only)
    google_maps_api_key: str | None = Field(default=None, alias="GOOGLE_MAPS_API_KEY")

    @field_validator("environment", mode="before")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_envs = {"dev", "prod"}
        if v not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of: {valid_envs}")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # YAML values arrive as init kwargs; environment variables win over them
        return env_settings, dotenv_settings, init_settings, file_secret_settings


# =============================================================================
# Configuration Loading Functions
# =============================================================================


def _get_config_dir() -> Path:
    """Get the configuration directory path."""
    # Try relative path from the repository root (src layout)
    config_dir = Path(__file__).resolve().parents[3] / "configs"
    if config_dir.exists():
        return config_dir

    # Try from current working directory
    config_dir = Path.cwd() / "configs"
    if config_dir.exists():
        return config_dir

    env_dir = os.getenv("SS_CONFIG_DIR")
    if env_dir and Path(env_dir).exists():
        return Path(env_dir)

    raise FileNotFoundError(
        "Could not find configs directory. "
        "Run from the project root or set SS_CONFIG_DIR."
    )


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents."""
    if not path.exists():
        return {}
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _load_config_for_environment(environment: str) -> dict[str, Any]:
    """Load and merge configuration for a specific environment."""
    config_dir = _get_config_dir()
    env_dir = config_dir / "environments"

    base_config = _load_yaml_file(env_dir / "base.yaml")
    env_config = _load_yaml_file(env_dir / f"{environment}.yaml")

    # Remove inheritance marker if present
    env_config.pop("_inherit", None)

    merged = _deep_merge(base_config, env_config)
    merged["environment"] = environment

    return merged


@lru_cache(maxsize=4)
def get_config(environment: str | None = None) -> Settings:
    """
    Get configuration for the specified environment.

    Args:
        environment: Environment name (dev, prod).
                    If None, uses SS_ENVIRONMENT env var, defaulting to "dev".

    Returns:
        Settings: Validated configuration object.
    """
    if environment is None:
        environment = os.getenv("SS_ENVIRONMENT", "dev")
    if environment not in ("dev", "prod"):
        raise ValueError(f"Invalid environment: {environment}. Must be one of: dev, prod")

    yaml_config = _load_config_for_environment(environment)

    # Create Settings object (also loads env vars)
    settings = Settings(**yaml_config)
    return settings.model_copy(update={"environment": environment})


def reload_config(environment: str | None = None) -> Settings:
    """
    Reload configuration, clearing the cache.

    Useful for testing or when config files have changed.
    """
    get_config.cache_clear()
    get_dataset_config.cache_clear()
    return get_config(environment)


@lru_cache(maxsize=16)
def get_dataset_config(dataset: str) -> dict[str, Any]:
    """
    Get the per-dataset settings from configs/datasets/<dataset>.yaml.

    Returns an empty dict when the file is absent so callers can fall back
    to their built-in defaults.
    """
    try:
        config_dir = _get_config_dir()
    except FileNotFoundError:
        logger.warning(f"No configs directory found; using defaults for {dataset}")
        return {}
    return _load_yaml_file(config_dir / "datasets" / f"{dataset}.yaml")


# =============================================================================
# Convenience Functions
# =============================================================================


def resolve_path(path: str | Path, config: Settings | None = None) -> Path:
    """
    Resolve a configured path against the data directory.

    Absolute paths are returned unchanged.
    """
    path = Path(path)
    if path.is_absolute():
        return path
    if config is None:
        config = get_config()
    if path.parts and path.parts[0] == config.storage.data_dir:
        return path
    return Path(config.storage.data_dir) / path
