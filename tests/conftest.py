"""
Pytest configuration and shared fixtures.
"""

import os
from unittest.mock import Mock

import pytest
import requests

# Spans are not needed under test; must be set before the package is imported
os.environ.setdefault("IPA_HISTORY_TELEMETRY", "false")

from src.version_history.config import HistoryConfig  # noqa: E402
from src.version_history.data_models import SourceResult, VersionRecord  # noqa: E402


def build_response(payload=None, status_code=200, json_error=False):
    """Build a mock requests.Response returning ``payload`` from .json()."""
    response = Mock()
    response.status_code = status_code
    if json_error:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(
            f"{status_code} Error"
        )
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture
def make_response():
    """Factory fixture for mock HTTP responses."""
    return build_response


@pytest.fixture
def history_config(tmp_path):
    """History configuration writing reports into a temporary directory."""
    return HistoryConfig(history_dir=str(tmp_path / "history"), timeout_seconds=1.0)


@pytest.fixture
def sample_records():
    """Three distinct version records, latest first."""
    return [
        VersionRecord("8.0.45", "857512345"),
        VersionRecord("8.0.44", "856000001"),
        VersionRecord("8.0.43", "855000002"),
    ]


class FakeSource:
    """In-memory history source returning a fixed outcome."""

    def __init__(self, name, outcome=None, error=None):
        self.name = name
        self.outcome = outcome if outcome is not None else SourceResult.empty(name)
        self.error = error
        self.calls = []

    def fetch(self, app_id):
        self.calls.append(app_id)
        if self.error is not None:
            raise self.error
        return self.outcome


@pytest.fixture
def fake_source():
    """Factory fixture for FakeSource instances."""
    return FakeSource
