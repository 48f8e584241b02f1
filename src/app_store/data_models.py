"""
Data models for the App Store client layer.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


@dataclass(frozen=True)
class AppSearchResult:
    """One application returned by a catalog search."""

    app_id: str
    name: str
    url: str | None = None
    bundle_id: str | None = None


@dataclass(frozen=True)
class StoreSession:
    """Signed-in account state returned by the authentication backend."""

    state: str  # "success" or a failure state
    apple_id: str = ""
    password_token: str = ""
    ds_person_id: str = ""
    store_front: str = ""
    customer_message: str = ""
    failure_type: str = ""

    @property
    def succeeded(self) -> bool:
        return self.state == "success"

    @property
    def failure_reason(self) -> str:
        return self.customer_message or self.failure_type or self.state


@dataclass(frozen=True)
class PurchaseResult:
    """Classified outcome of one purchase attempt."""

    success: bool
    message: str
    needs_region_change: bool = False
    store_front: str | None = None
    details: dict[str, Any] = field(default_factory=dict, compare=False)


class WorkflowStatus(str, Enum):
    """Terminal states of the acquisition workflow."""

    QUERY_ONLY = "query_only"
    UNRESOLVED = "unresolved"
    DOWNLOADED = "downloaded"
    PURCHASE_FAILED = "purchase_failed"
    DOWNLOAD_FAILED = "download_failed"


@dataclass
class WorkflowOutcome:
    """Result of one acquisition run."""

    status: WorkflowStatus
    app_id: str | None = None
    version_id: str = ""
    message: str = ""
    package_path: str | None = None
