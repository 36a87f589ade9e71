"""
School Stations - Train Stations Ingester

Fetches the list of Melbourne railway stations and keeps the table that
holds them. The page carries several navigation and legend tables, so the
selector is configurable in configs/datasets/stations.yaml.
"""

from __future__ import annotations

import logging
from typing import Any

from school_stations.datasets.base import HtmlTableIngester
from school_stations.datasets.base.ingester import Fetcher
from school_stations.shared.config import Settings, get_dataset_config
from school_stations.shared.tables import TableSelector

logger = logging.getLogger(__name__)

# Load config
DATASET_CONFIG = get_dataset_config("stations")
SOURCE_CONFIG = DATASET_CONFIG.get("source", {})
DEFAULT_URL = SOURCE_CONFIG.get(
    "url", "https://en.wikipedia.org/wiki/List_of_Melbourne_railway_stations"
)
SELECTOR_SPEC = SOURCE_CONFIG.get("selector", "largest")
KEY_CANDIDATES = DATASET_CONFIG.get("columns", {}).get("name", ["Station", "Name"])


class StationIngester(HtmlTableIngester):
    """Ingester for the Melbourne railway stations table."""

    def __init__(
        self,
        config: Settings | None = None,
        url: str | None = None,
        fetcher: Fetcher | None = None,
        selector: TableSelector | None = None,
    ):
        super().__init__(config, url=url, fetcher=fetcher, selector=selector)

    def get_dataset_name(self) -> str:
        return "stations"

    def get_default_url(self) -> str:
        return DEFAULT_URL

    def get_selector_spec(self) -> dict | str | None:
        return SELECTOR_SPEC

    def get_primary_key(self) -> str:
        return KEY_CANDIDATES[0]

    def get_key_candidates(self) -> list[str]:
        return list(KEY_CANDIDATES)


def ingest_stations(
    execution_date: str | None = None,
    config: Settings | None = None,
    fetcher: Fetcher | None = None,
) -> dict[str, Any]:
    """Convenience function for ingesting stations."""
    ingester = StationIngester(config, fetcher=fetcher)
    result = ingester.run(execution_date)
    return result.to_dict()
