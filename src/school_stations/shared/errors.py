"""
School Stations - Exception Classes

Typed failures raised by the pipeline stages. Non-fatal conditions
(geocode misses, reference join mismatches) are also collected as records
so they can be reported to the user for manual correction.
"""

from __future__ import annotations


class SchoolStationsError(Exception):
    """Base class for all pipeline errors."""


class FetchError(SchoolStationsError):
    """Raised when a page or API request fails (network error or non-2xx status)."""

    def __init__(self, url: str, message: str, status_code: int | None = None):
        self.url = url
        self.status_code = status_code
        prefix = f"HTTP {status_code}" if status_code is not None else "Request failed"
        super().__init__(f"{prefix} for {url}: {message}")


class NoTableFound(SchoolStationsError):
    """Raised when a document contains no parseable table."""

    def __init__(self, source: str | None = None, detail: str | None = None):
        self.source = source
        self.detail = detail
        message = "No parseable table found"
        if source:
            message += f" in {source}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class GeocodeMiss(SchoolStationsError):
    """Raised when the geocoding service has no usable match for a query."""

    def __init__(self, query: str, reason: str = "no match"):
        self.query = query
        self.reason = reason
        super().__init__(f"Geocode miss for '{query}': {reason}")


class GeocodeQuotaExceeded(SchoolStationsError):
    """Raised once the daily geocoding call ceiling has been reached."""

    def __init__(self, quota: int):
        self.quota = quota
        super().__init__(f"Daily geocoding quota of {quota} calls exhausted")


class GeocodingError(SchoolStationsError):
    """Raised when the geocoding provider refuses a request (bad key, bad request)."""


class InvalidRadius(SchoolStationsError, ValueError):
    """Raised when the proximity radius is not a positive number."""

    def __init__(self, radius_km: float):
        self.radius_km = radius_km
        super().__init__(f"Radius must be a positive number of kilometres, got {radius_km!r}")
