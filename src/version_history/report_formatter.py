"""
Report formatting and persistence for aggregated version history.
"""

import json
from pathlib import Path

from ..shared_utilities import OutputManager, generate_history_filename
from .data_models import AggregatedHistory
from .identifier import is_url_input


def format_history_report(
    history: AggregatedHistory, raw_input: str | None = None
) -> str:
    """
    Format the plain-text history report written to disk.

    Args:
        history: Aggregation result
        raw_input: The operator's original input; echoed only when it was a URL

    Returns:
        Report text, one line per entry, newline terminated
    """
    lines = [
        f"App ID: {history.app_id} | {history.name} | bundleId: {history.bundle_id}"
    ]
    if raw_input and is_url_input(raw_input):
        lines.append(f"Original input: {raw_input}")
    if history.current:
        current = history.current
        lines.append(f"Current version: {current.version} -> {current.version_id}")

    if not history.versions:
        lines.append("No historical versions found")
    else:
        lines.append(f"Found {len(history.versions)} historical versions:")
        for index, record in enumerate(history.versions, start=1):
            lines.append(f"[{index}] {record.version} -> {record.version_id}")

    return "\n".join(lines) + "\n"


class HistoryFormatter:
    """Console output for history queries."""

    def format_table_output(self, history: AggregatedHistory) -> str:
        """Format the query-only listing, latest version first."""
        header = f"App ID: {history.app_id} | {history.name}"
        if history.bundle_id:
            header += f" | bundleId: {history.bundle_id}"

        if not history.versions:
            return "\n".join([header, "No historical versions found"])

        lines = [
            header,
            "=" * 42,
            f"Found {len(history.versions)} historical versions:",
        ]
        for index, record in enumerate(history.versions, start=1):
            marker = "* " if index == 1 else "  "
            lines.append(
                f"{marker}[{index}] {record.version} (ID: {record.version_id})"
            )

        latest = history.latest
        earliest = history.earliest
        lines.append("")
        lines.append("Version summary:")
        lines.append(f"   Latest: {latest.version} (ID: {latest.version_id})")
        lines.append(f"   Earliest: {earliest.version}")
        return "\n".join(lines)

    def format_json_output(self, history: AggregatedHistory) -> str:
        """Format the result as JSON."""
        return json.dumps(history.to_dict(), indent=2, ensure_ascii=False)


class HistoryReportWriter:
    """Writes one report file per App ID and display name."""

    def __init__(self, history_dir: str | Path = "history"):
        self.output_manager = OutputManager(history_dir)

    def save(self, history: AggregatedHistory, raw_input: str | None = None) -> Path:
        """
        Write the report, replacing any previous report of the same name.

        Returns:
            Path of the written file
        """
        content = format_history_report(history, raw_input)
        filename = generate_history_filename(history.app_id, history.name)
        return self.output_manager.save_output(content, filename)

    def list_reports(self, app_id: str | None = None) -> list[Path]:
        """Reports already on disk, optionally for a single App ID."""
        return self.output_manager.get_existing_outputs(app_id)
