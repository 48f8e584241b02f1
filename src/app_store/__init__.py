"""
App Store client layer: catalog search, version selection, purchase and the
end-to-end acquisition workflow.
"""

from .data_models import (
    AppSearchResult,
    PurchaseResult,
    StoreSession,
    WorkflowOutcome,
    WorkflowStatus,
)
from .errors import (
    AppStoreError,
    AuthenticationError,
    DownloadError,
    PurchaseError,
    RegionMismatchError,
)
from .purchase import PurchaseClient, PurchaseRequestConfig
from .search import AppSearchClient
from .selection import select_version
from .workflow import (
    AccountCredentials,
    AcquisitionWorkflow,
    PackageDownloader,
    StoreBackend,
)

__all__ = [
    "AccountCredentials",
    "AcquisitionWorkflow",
    "AppSearchClient",
    "AppSearchResult",
    "AppStoreError",
    "AuthenticationError",
    "DownloadError",
    "PackageDownloader",
    "PurchaseClient",
    "PurchaseError",
    "PurchaseRequestConfig",
    "PurchaseResult",
    "RegionMismatchError",
    "StoreBackend",
    "StoreSession",
    "WorkflowOutcome",
    "WorkflowStatus",
    "select_version",
]
