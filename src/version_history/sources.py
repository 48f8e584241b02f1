"""
History source adapters.

Each adapter turns one upstream service into a SourceResult. ``fetch`` never
raises: every transport, status or shape problem comes back as a FetchError
value so a single broken mirror cannot abort an aggregation.
"""

import time
from abc import ABC, abstractmethod
from typing import Any

import requests

from ..shared_utilities import get_logging_manager, trace_operation
from .config import HistoryConfig, SourceConfig, SourceConfigManager
from .data_models import (
    ClassifiedPayload,
    FetchError,
    FetchErrorKind,
    FetchOutcome,
    PayloadKind,
    SourceResult,
)
from .normalizer import (
    classify_payload,
    decode_json,
    normalize_record,
    normalize_records,
)


def _text(value: Any) -> str | None:
    """Non-empty string form of a scalar field, else None."""
    if value is None or isinstance(value, (dict, list, bool)):
        return None
    text = str(value).strip()
    return text or None


class BaseSource(ABC):
    """Abstract base class for all history sources."""

    name: str = ""

    def __init__(self, config: HistoryConfig, source_config: SourceConfig):
        self.config = config
        self.source_config = source_config

    def fetch(self, app_id: str) -> FetchOutcome:
        """
        Fetch data for an application from this source.

        Returns:
            SourceResult on success (possibly empty), FetchError otherwise
        """
        attributes = {"source": self.name, "app_id": app_id}
        with trace_operation("history_source_fetch", attributes):
            try:
                return self._fetch(app_id)
            except requests.Timeout as e:
                return self._error(FetchErrorKind.TIMEOUT, str(e))
            except requests.HTTPError as e:
                return self._error(FetchErrorKind.HTTP_STATUS, str(e))
            except requests.RequestException as e:
                return self._error(FetchErrorKind.UNREACHABLE, str(e))
            except (ValueError, KeyError, TypeError, AttributeError, IndexError) as e:
                return self._error(
                    FetchErrorKind.MALFORMED, f"{type(e).__name__}: {e}"
                )

    @abstractmethod
    def _fetch(self, app_id: str) -> FetchOutcome:
        """Source-specific fetch; may raise requests exceptions."""

    def _error(self, kind: FetchErrorKind, message: str) -> FetchError:
        return FetchError(source=self.name, kind=kind, message=message)

    def _payload_error(self, payload: ClassifiedPayload) -> FetchError:
        return self._error(FetchErrorKind.MALFORMED, payload.reason)

    def _get_json(self, url: str) -> ClassifiedPayload:
        """GET a URL and decode its JSON body."""
        start = time.time()
        response = requests.get(
            url,
            headers=self.config.request_headers,
            timeout=self.config.timeout_seconds,
            verify=self.config.verify_tls,
        )
        get_logging_manager().log_api_request(
            "GET", url, response.status_code, time.time() - start
        )
        response.raise_for_status()
        return decode_json(response)


class I4Source(BaseSource):
    """
    i4.cn: two chained requests.

    The public listing maps App Store ids (``itemid``) to i4's internal ids;
    the detail endpoint for that internal id carries the current version and
    the version history. No listing match means no detail request.
    """

    name = "i4"

    def _fetch(self, app_id: str) -> FetchOutcome:
        listing = self._get_json(self.source_config.url("search"))
        if not listing.is_valid:
            return self._payload_error(listing)

        apps = classify_payload(listing.data, key="app")
        if apps.kind is PayloadKind.MALFORMED:
            return self._payload_error(apps)
        if apps.kind is PayloadKind.EMPTY:
            return self._error(FetchErrorKind.NOT_FOUND, "listing is empty")

        match = next(
            (
                entry
                for entry in apps.data
                if isinstance(entry, dict) and _text(entry.get("itemid")) == app_id
            ),
            None,
        )
        if match is None or _text(match.get("id")) is None:
            return self._error(FetchErrorKind.NOT_FOUND, f"{app_id} not in listing")

        detail_payload = self._get_json(
            self.source_config.url("detail", item_id=_text(match.get("id")))
        )
        if not detail_payload.is_valid:
            return self._payload_error(detail_payload)

        detail = classify_payload(detail_payload.data, expect=dict)
        if not detail.is_valid:
            return self._payload_error(detail)

        info = detail.data
        return SourceResult(
            source=self.name,
            current=normalize_record(
                {"version": info.get("Version"), "versionid": info.get("versionid")}
            ),
            history=normalize_records(info.get("historyversion") or []),
            name=_text(info.get("Name")) or _text(match.get("name")),
            bundle_id=_text(info.get("bundleid")) or _text(match.get("bundleid")),
        )


class ListHistorySource(BaseSource):
    """A mirror that answers with a history list, optionally nested under a key."""

    history_key: str | None = None

    def _fetch(self, app_id: str) -> FetchOutcome:
        payload = self._get_json(self.source_config.url("history", app_id=app_id))
        if not payload.is_valid:
            return self._payload_error(payload)

        history = classify_payload(payload.data, key=self.history_key)
        if history.kind is PayloadKind.MALFORMED:
            return self._payload_error(history)
        if history.kind is PayloadKind.EMPTY:
            return SourceResult.empty(self.name)

        return SourceResult(source=self.name, history=normalize_records(history.data))


class BilinSource(ListHistorySource):
    """bilin mirror: ``{"data": [...]}``."""

    name = "bilin"
    history_key = "data"


class TimbrdSource(ListHistorySource):
    """timbrd mirror: a bare list."""

    name = "timbrd"
    history_key = None


class AgzySource(BaseSource):
    """agzy mirror: ``{"data": [...], "name": ..., "bundleId": ...}``."""

    name = "agzy"

    def _fetch(self, app_id: str) -> FetchOutcome:
        payload = self._get_json(self.source_config.url("history", app_id=app_id))
        if not payload.is_valid:
            return self._payload_error(payload)

        body = classify_payload(payload.data, expect=dict)
        if body.kind is PayloadKind.MALFORMED:
            return self._payload_error(body)
        if body.kind is PayloadKind.EMPTY:
            return SourceResult.empty(self.name)

        # No history list means no name or bundle id either
        if body.data.get("data") is None:
            return SourceResult.empty(self.name)

        history = classify_payload(body.data, key="data")
        if history.kind is PayloadKind.MALFORMED:
            return self._payload_error(history)

        return SourceResult(
            source=self.name,
            history=normalize_records(history.data) if history.is_valid else (),
            name=_text(body.data.get("name")),
            bundle_id=_text(body.data.get("bundleId")),
        )


class AppleLookupSource(BaseSource):
    """Official iTunes lookup: display name and bundle id, never history."""

    name = "apple"

    def _fetch(self, app_id: str) -> FetchOutcome:
        payload = self._get_json(self.source_config.url("lookup", app_id=app_id))
        if not payload.is_valid:
            return self._payload_error(payload)

        results = classify_payload(payload.data, key="results")
        if results.kind is PayloadKind.MALFORMED:
            return self._payload_error(results)
        if results.kind is PayloadKind.EMPTY:
            return SourceResult.empty(self.name)

        first = results.data[0]
        if not isinstance(first, dict):
            return self._error(
                FetchErrorKind.MALFORMED, "lookup result is not an object"
            )

        return SourceResult(
            source=self.name,
            name=_text(first.get("trackName")),
            bundle_id=_text(first.get("bundleId")),
        )


# Fixed merge order of history lists; also the tie-break order for duplicates
HISTORY_PRIORITY = ("i4", "bilin", "timbrd", "agzy")
# Fixed fallback order for the display name and bundle id
NAME_PRIORITY = ("i4", "agzy", "apple")


class SourceFactory:
    """Factory creating the configured history sources."""

    _sources: dict[str, type[BaseSource]] = {
        "i4": I4Source,
        "bilin": BilinSource,
        "timbrd": TimbrdSource,
        "agzy": AgzySource,
        "apple": AppleLookupSource,
    }

    def __init__(self, config_manager: SourceConfigManager | None = None):
        self.config_manager = config_manager or SourceConfigManager()

    def create(self, name: str, config: HistoryConfig) -> BaseSource:
        """Create one source by name."""
        source_class = self._sources.get(name)
        if source_class is None:
            raise ValueError(f"Unknown history source: {name}")
        return source_class(config, self.config_manager.get_config(name))

    def create_all(self, config: HistoryConfig) -> list[BaseSource]:
        """Create every known source, history sources first in priority order."""
        ordered = list(HISTORY_PRIORITY) + [
            name for name in self._sources if name not in HISTORY_PRIORITY
        ]
        return [self.create(name, config) for name in ordered]

    def get_available_sources(self) -> list[str]:
        """Get list of registered source names."""
        return list(self._sources.keys())
