"""
Version history toolkit.

Aggregates the historical builds of an App Store application from several
independent mirrors into one de-duplicated, ordered list.
"""

from .aggregator import HistoryAggregator, merge_versions
from .config import HistoryConfig
from .core import VersionHistoryError, VersionHistoryService, query_history
from .data_models import AggregatedHistory, SourceResult, VersionRecord
from .identifier import resolve_app_id

__all__ = [
    "AggregatedHistory",
    "HistoryAggregator",
    "HistoryConfig",
    "SourceResult",
    "VersionHistoryError",
    "VersionHistoryService",
    "VersionRecord",
    "merge_versions",
    "query_history",
    "resolve_app_id",
]
