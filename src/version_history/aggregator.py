"""
Fan-out / fan-in aggregation of version history across all sources.
"""

from collections.abc import Iterable, Mapping
from concurrent.futures import Future, ThreadPoolExecutor

from ..shared_utilities import get_logger, get_logging_manager, trace_operation
from .config import HistoryConfig
from .data_models import (
    UNKNOWN_APP_NAME,
    AggregatedHistory,
    FetchError,
    FetchErrorKind,
    FetchOutcome,
    SourceResult,
    VersionRecord,
)
from .sources import HISTORY_PRIORITY, NAME_PRIORITY, BaseSource, SourceFactory


def _ordered_names(
    results: Mapping[str, SourceResult], order: Iterable[str]
) -> list[str]:
    """Names from ``order`` first, then any other result names in mapping order."""
    names = [name for name in order if name in results]
    names.extend(name for name in results if name not in names)
    return names


def merge_versions(
    results: Mapping[str, SourceResult],
    order: Iterable[str] = HISTORY_PRIORITY,
) -> list[VersionRecord]:
    """
    Concatenate history lists in priority order and drop duplicates.

    A record is identified by its (version, version_id) pair; the first
    occurrence keeps its position. The output depends only on the mapping
    contents and the priority order, never on when each source finished.
    """
    seen: set[tuple[str, str]] = set()
    merged: list[VersionRecord] = []
    for name in _ordered_names(results, order):
        for record in results[name].history:
            if record.key in seen:
                continue
            seen.add(record.key)
            merged.append(record)
    return merged


def resolve_field(
    results: Mapping[str, SourceResult],
    attribute: str,
    order: Iterable[str] = NAME_PRIORITY,
):
    """First non-empty value of ``attribute`` across sources in ``order``."""
    for name in order:
        result = results.get(name)
        if result is None:
            continue
        value = getattr(result, attribute)
        if value:
            return value
    return None


class HistoryAggregator:
    """
    Queries every history source concurrently and reconciles the answers.

    Each source call runs on its own worker thread; the aggregator waits for
    all of them (no early exit) and then merges in a fixed order.
    """

    def __init__(
        self,
        config: HistoryConfig | None = None,
        sources: list[BaseSource] | None = None,
        source_factory: SourceFactory | None = None,
    ):
        """Initialize aggregator.

        Args:
            config: Runtime settings, read from the environment if omitted
            sources: Explicit source list, defaults to every registered source
            source_factory: Factory used when ``sources`` is omitted
        """
        self.logger = get_logger(__name__)
        self.config = config or HistoryConfig.from_env()
        if sources is None:
            sources = (source_factory or SourceFactory()).create_all(self.config)
        self.sources = sources

    def fetch_all(self, app_id: str) -> dict[str, FetchOutcome]:
        """
        Run every source concurrently and wait for all of them.

        Returns:
            Outcomes keyed by source name, in source-list order
        """
        workers = max(1, min(self.config.max_workers, len(self.sources)))
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="history-source"
        ) as executor:
            futures = {
                source.name: executor.submit(source.fetch, app_id)
                for source in self.sources
            }
            return {
                name: self._collect(name, future) for name, future in futures.items()
            }

    def _collect(self, name: str, future: Future) -> FetchOutcome:
        try:
            return future.result()
        except Exception as e:
            # Sources report failures as values; this only catches a broken adapter
            self.logger.error(f"Source {name} raised unexpectedly: {e}")
            return FetchError(
                source=name, kind=FetchErrorKind.UNEXPECTED, message=str(e)
            )

    def settle(
        self, outcomes: Mapping[str, FetchOutcome]
    ) -> tuple[dict[str, SourceResult], list[str]]:
        """
        Map every error outcome to its source's empty result.

        Returns:
            Tuple of (results keyed by source name, names of failed sources)
        """
        results: dict[str, SourceResult] = {}
        failed: list[str] = []
        for name, outcome in outcomes.items():
            if isinstance(outcome, FetchError):
                get_logging_manager().log_source_failure(
                    name, outcome.kind.value, outcome.message
                )
                failed.append(name)
                results[name] = SourceResult.empty(name)
            else:
                results[name] = outcome
        return results, failed

    def reconcile(
        self,
        app_id: str,
        results: Mapping[str, SourceResult],
        failed: list[str] | None = None,
    ) -> AggregatedHistory:
        """Merge settled results into one AggregatedHistory."""
        return AggregatedHistory(
            app_id=app_id,
            versions=merge_versions(results),
            name=resolve_field(results, "name") or UNKNOWN_APP_NAME,
            bundle_id=resolve_field(results, "bundle_id"),
            current=resolve_field(results, "current", HISTORY_PRIORITY),
            failed_sources=list(failed or []),
        )

    def aggregate(self, app_id: str) -> AggregatedHistory:
        """
        Aggregate the version history of one application.

        An all-empty answer is a valid result, not an error.
        """
        with trace_operation("aggregate_history", {"app_id": app_id}):
            outcomes = self.fetch_all(app_id)
            results, failed = self.settle(outcomes)
            history = self.reconcile(app_id, results, failed)

        self.logger.info(
            f"Found {len(history.versions)} versions for {app_id} ({history.name})",
            app_id=app_id,
            sources=len(results),
            failed_sources=failed,
        )
        return history
