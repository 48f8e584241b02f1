"""
Core version history query: resolve, aggregate, persist.
"""

from pathlib import Path

from ..shared_utilities import get_logger, trace_function
from .aggregator import HistoryAggregator
from .config import HistoryConfig
from .data_models import AggregatedHistory
from .identifier import resolve_app_id
from .report_formatter import HistoryReportWriter


class VersionHistoryError(Exception):
    """Base exception for version history operations."""

    pass


class VersionHistoryService:
    """
    Entry point for history queries.

    Resolves the operator's input, aggregates all sources and writes the
    report. The report is written for every resolved query, whatever the
    caller does with the result afterwards.
    """

    def __init__(
        self,
        config: HistoryConfig | None = None,
        aggregator: HistoryAggregator | None = None,
        report_writer: HistoryReportWriter | None = None,
    ):
        """Initialize history service.

        Args:
            config: Runtime settings, read from the environment if omitted
            aggregator: Aggregator to use, built from ``config`` if omitted
            report_writer: Report sink, writes under ``config.history_dir``
        """
        self.logger = get_logger(__name__)
        self.config = config or HistoryConfig.from_env()
        self.aggregator = aggregator or HistoryAggregator(self.config)
        self.report_writer = report_writer or HistoryReportWriter(
            self.config.history_dir
        )
        self.last_report_path: Path | None = None

    @trace_function("query_history")
    def query(self, text: str) -> AggregatedHistory | None:
        """
        Query the version history for a raw App ID or storefront URL.

        Args:
            text: Operator input

        Returns:
            The aggregated history, or None when no App ID could be resolved
            (no request is issued and nothing is written in that case)

        Raises:
            VersionHistoryError: If the report could not be written
        """
        app_id = resolve_app_id(text)
        if app_id is None:
            self.logger.warning(f"Could not resolve an App ID from {text!r}")
            return None

        self.logger.info(f"Resolved App ID {app_id} from input", app_id=app_id)
        history = self.aggregator.aggregate(app_id)

        try:
            self.last_report_path = self.report_writer.save(history, text)
        except OSError as e:
            raise VersionHistoryError(f"Failed to write history report: {e}") from e

        return history


def query_history(
    text: str, config: HistoryConfig | None = None
) -> AggregatedHistory | None:
    """Convenience wrapper around VersionHistoryService.query."""
    return VersionHistoryService(config).query(text)
