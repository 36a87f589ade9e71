"""
School Stations - Page Fetching

Thin wrapper around requests that turns transport failures and non-2xx
responses into FetchError. Retry policy is left to the caller.
"""

from __future__ import annotations

import logging

import requests

from school_stations.shared.config import Settings, get_config
from school_stations.shared.errors import FetchError

logger = logging.getLogger(__name__)


def fetch_html(url: str, config: Settings | None = None, timeout: int | None = None) -> str:
    """
    Download a page and return its text.

    Args:
        url: Page URL
        config: Configuration object (uses default if not provided)
        timeout: Override for config.http.timeout_seconds

    Raises:
        FetchError: On network failure or a non-2xx response
    """
    config = config or get_config()
    headers = {
        "User-Agent": config.http.user_agent,
        "Accept": "text/html,application/xhtml+xml",
    }

    logger.info(f"Downloading from: {url}")
    try:
        response = requests.get(
            url, headers=headers, timeout=timeout or config.http.timeout_seconds
        )
    except requests.RequestException as e:
        raise FetchError(url, str(e)) from e

    if not 200 <= response.status_code < 300:
        raise FetchError(url, response.text[:200], status_code=response.status_code)

    return response.text
