"""
Data models for version history aggregation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

UNKNOWN_APP_NAME = "Unknown App"


@dataclass(frozen=True)
class VersionRecord:
    """One installable build of an application as known to a source."""

    version: str  # e.g. "8.0.45"
    version_id: str  # external version identifier, e.g. "857512345"

    @property
    def key(self) -> tuple[str, str]:
        """Deduplication key."""
        return (self.version, self.version_id)

    def to_dict(self) -> dict[str, str]:
        return {"version": self.version, "versionId": self.version_id}


@dataclass(frozen=True)
class SourceResult:
    """
    Data returned by one history source.

    Every field is optional: a source may know the history but not the name,
    or only the name and bundle id (the official catalog). An instance with
    nothing populated is the source's empty result.
    """

    source: str
    history: tuple[VersionRecord, ...] = ()
    current: VersionRecord | None = None
    name: str | None = None
    bundle_id: str | None = None

    @classmethod
    def empty(cls, source: str) -> "SourceResult":
        return cls(source=source)

    @property
    def is_empty(self) -> bool:
        return (
            not self.history
            and self.current is None
            and not self.name
            and not self.bundle_id
        )


class FetchErrorKind(str, Enum):
    """Why a source produced no data."""

    UNREACHABLE = "unreachable"
    TIMEOUT = "timeout"
    HTTP_STATUS = "http_status"
    MALFORMED = "malformed"
    NOT_FOUND = "not_found"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class FetchError:
    """A contained failure of a single source."""

    source: str
    kind: FetchErrorKind
    message: str = ""


# Result of one source call: either data or a contained error, never a raise
FetchOutcome = SourceResult | FetchError


class PayloadKind(str, Enum):
    """Classification of a decoded upstream payload."""

    VALID = "valid"
    EMPTY = "empty"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class ClassifiedPayload:
    """A decoded payload tagged with its classification."""

    kind: PayloadKind
    data: Any = None
    reason: str = ""

    @property
    def is_valid(self) -> bool:
        return self.kind is PayloadKind.VALID


@dataclass
class AggregatedHistory:
    """Reconciled view of an application's history across all sources."""

    app_id: str
    versions: list[VersionRecord] = field(default_factory=list)
    name: str = UNKNOWN_APP_NAME
    bundle_id: str | None = None
    current: VersionRecord | None = None
    failed_sources: list[str] = field(default_factory=list)

    @property
    def latest(self) -> VersionRecord | None:
        return self.versions[0] if self.versions else None

    @property
    def earliest(self) -> VersionRecord | None:
        return self.versions[-1] if self.versions else None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON-friendly output contract."""
        return {
            "appId": self.app_id,
            "name": self.name,
            "bundleId": self.bundle_id,
            "current": self.current.to_dict() if self.current else None,
            "versions": [record.to_dict() for record in self.versions],
        }
