"""
Keyword search against the public iTunes catalog.
"""

import requests

from ..shared_utilities import get_logger, trace_operation
from .data_models import AppSearchResult

SEARCH_URL = "https://itunes.apple.com/search"


class AppSearchClient:
    """Client for the iTunes software search endpoint."""

    def __init__(self, timeout_seconds: float = 10.0, search_url: str = SEARCH_URL):
        self.logger = get_logger(__name__)
        self.timeout_seconds = timeout_seconds
        self.search_url = search_url

    def search(
        self, term: str, country: str = "US", limit: int = 20
    ) -> list[AppSearchResult]:
        """
        Search applications by keyword.

        Args:
            term: Search keyword
            country: Two-letter storefront country code
            limit: Maximum number of results

        Returns:
            Matching applications; empty on no match or any failure
        """
        country = country.upper()
        params = {
            "term": term,
            "country": country,
            "entity": "software",
            "limit": limit,
        }

        with trace_operation("app_search", {"term": term, "country": country}):
            try:
                response = requests.get(
                    self.search_url, params=params, timeout=self.timeout_seconds
                )
                response.raise_for_status()
                data = response.json()
            except (requests.RequestException, ValueError) as e:
                self.logger.error(f"Search failed for {term!r}: {e}")
                return []

        if not isinstance(data, dict) or not data.get("resultCount"):
            self.logger.info(f"No apps found for {term!r} (country: {country})")
            return []

        apps = []
        for entry in data.get("results") or []:
            if not isinstance(entry, dict) or entry.get("trackId") is None:
                continue
            apps.append(
                AppSearchResult(
                    app_id=str(entry["trackId"]),
                    name=entry.get("trackName") or "",
                    url=entry.get("trackViewUrl"),
                    bundle_id=entry.get("bundleId"),
                )
            )
        return apps
