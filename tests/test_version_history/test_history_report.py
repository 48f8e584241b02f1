"""
Tests for history report formatting and persistence
"""

import json

from src.version_history.data_models import AggregatedHistory, VersionRecord
from src.version_history.report_formatter import (
    HistoryFormatter,
    HistoryReportWriter,
    format_history_report,
)


def make_history(versions, **kwargs):
    return AggregatedHistory(app_id="123", versions=list(versions), **kwargs)


class TestFormatHistoryReport:
    """Tests for the persisted plain-text report"""

    def test_full_report_from_url(self, sample_records):
        history = make_history(
            sample_records,
            name="Widget",
            bundle_id="com.x.widget",
            current=sample_records[0],
        )
        url = "https://apps.apple.com/us/app/widget/id123"
        report = format_history_report(history, url)

        assert report.splitlines() == [
            "App ID: 123 | Widget | bundleId: com.x.widget",
            f"Original input: {url}",
            "Current version: 8.0.45 -> 857512345",
            "Found 3 historical versions:",
            "[1] 8.0.45 -> 857512345",
            "[2] 8.0.44 -> 856000001",
            "[3] 8.0.43 -> 855000002",
        ]
        assert report.endswith("\n")

    def test_plain_id_input_not_echoed(self, sample_records):
        """The original input line only appears for URL input"""
        report = format_history_report(make_history(sample_records), "123")
        assert "Original input" not in report

    def test_empty_history(self):
        report = format_history_report(make_history([]))
        assert report.splitlines() == [
            "App ID: 123 | Unknown App | bundleId: None",
            "No historical versions found",
        ]


class TestHistoryFormatter:
    """Tests for console output"""

    def test_table_output(self, sample_records):
        output = HistoryFormatter().format_table_output(
            make_history(sample_records, name="Widget", bundle_id="com.x")
        )
        lines = output.splitlines()

        assert lines[0] == "App ID: 123 | Widget | bundleId: com.x"
        assert lines[2] == "Found 3 historical versions:"
        assert lines[3] == "* [1] 8.0.45 (ID: 857512345)"
        assert lines[4] == "  [2] 8.0.44 (ID: 856000001)"
        assert "   Latest: 8.0.45 (ID: 857512345)" in lines
        assert "   Earliest: 8.0.43" in lines

    def test_table_without_bundle_id(self, sample_records):
        output = HistoryFormatter().format_table_output(make_history(sample_records))
        assert output.splitlines()[0] == "App ID: 123 | Unknown App"

    def test_table_empty(self):
        output = HistoryFormatter().format_table_output(make_history([]))
        assert output.splitlines() == [
            "App ID: 123 | Unknown App",
            "No historical versions found",
        ]

    def test_json_output(self, sample_records):
        output = HistoryFormatter().format_json_output(
            make_history(sample_records[:1], name="微信")
        )
        data = json.loads(output)
        assert data["name"] == "微信"
        assert data["versions"] == [{"version": "8.0.45", "versionId": "857512345"}]
        assert "微信" in output


class TestHistoryReportWriter:
    """Tests for HistoryReportWriter"""

    def test_save_and_overwrite(self, tmp_path, sample_records):
        """A second save replaces the first report wholesale"""
        writer = HistoryReportWriter(tmp_path)
        path = writer.save(make_history(sample_records, name="Widget"))
        assert path == tmp_path / "123_Widget_history.txt"

        writer.save(make_history([], name="Widget"))
        assert "No historical versions found" in path.read_text(encoding="utf-8")
        assert "8.0.45" not in path.read_text(encoding="utf-8")

    def test_unsafe_name_sanitized(self, tmp_path):
        writer = HistoryReportWriter(tmp_path)
        path = writer.save(make_history([], name="A/B: C?"))
        assert path.name == "123_A_B_ C__history.txt"

    def test_list_reports(self, tmp_path):
        writer = HistoryReportWriter(tmp_path)
        writer.save(make_history([], name="Widget"))
        writer.save(AggregatedHistory(app_id="456", name="Other"))

        assert len(writer.list_reports()) == 2
        assert [p.name for p in writer.list_reports("456")] == [
            "456_Other_history.txt"
        ]

    def test_list_reports_missing_dir(self, tmp_path):
        assert HistoryReportWriter(tmp_path / "missing").list_reports() == []
