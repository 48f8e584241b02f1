"""
Tests for the acquisition workflow
"""

from pathlib import Path
from unittest.mock import Mock

import pytest

from src.app_store.data_models import PurchaseResult, StoreSession, WorkflowStatus
from src.app_store.errors import AppStoreError, AuthenticationError, DownloadError
from src.app_store.workflow import AccountCredentials, AcquisitionWorkflow
from src.shared_utilities.retry_policy import RetryPolicy
from src.version_history.data_models import AggregatedHistory

OK_SESSION = StoreSession(state="success", password_token="t", ds_person_id="1")
BAD_SESSION = StoreSession(state="failure", customer_message="Bad password")
CREDENTIALS = AccountCredentials("user@example.com", "secret")
NO_WAIT = RetryPolicy(max_attempts=3, delay_seconds=0)


class FakeStore:
    """StoreBackend answering from fixed queues."""

    def __init__(self, sessions, licensed=False):
        self.sessions = list(sessions)
        self.licensed = licensed
        self.logins = 0

    def authenticate(self, apple_id, password, code=""):
        self.logins += 1
        session = self.sessions.pop(0)
        if isinstance(session, Exception):
            raise session
        return session

    def check_license(self, app_id, version_id, session):
        if isinstance(self.licensed, Exception):
            raise self.licensed
        return self.licensed


class FakeDownloader:
    """PackageDownloader recording its calls."""

    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def download(self, session, app_id, version_id, destination):
        self.calls.append((app_id, version_id, destination))
        if self.error is not None:
            raise self.error
        return destination


@pytest.fixture
def history(sample_records):
    return AggregatedHistory(
        app_id="123", versions=sample_records, name="Widget", bundle_id="com.x"
    )


@pytest.fixture
def service(history):
    mock = Mock()
    mock.query.return_value = history
    return mock


@pytest.fixture
def purchase_client():
    mock = Mock()
    mock.purchase_with_region_retry.return_value = PurchaseResult(True, "Purchased")
    return mock


def make_workflow(service, store, downloader, purchase_client, tmp_path, **kwargs):
    return AcquisitionWorkflow(
        service,
        store,
        downloader,
        purchase_client=purchase_client,
        output_dir=tmp_path / "app",
        login_policy=NO_WAIT,
        purchase_policy=RetryPolicy(max_attempts=2, delay_seconds=0),
        **kwargs,
    )


class TestAcquisitionWorkflow:
    """Tests for AcquisitionWorkflow.run"""

    def test_unresolved_input(self, service, purchase_client, tmp_path):
        service.query.return_value = None
        store = FakeStore([OK_SESSION])
        workflow = make_workflow(
            service, store, FakeDownloader(), purchase_client, tmp_path
        )

        outcome = workflow.run("not-an-id", CREDENTIALS)

        assert outcome.status is WorkflowStatus.UNRESOLVED
        assert store.logins == 0

    def test_query_only_stops_after_history(self, service, purchase_client, tmp_path):
        store = FakeStore([OK_SESSION])
        workflow = make_workflow(
            service, store, FakeDownloader(), purchase_client, tmp_path
        )

        outcome = workflow.run("123", CREDENTIALS, query_only=True)

        assert outcome.status is WorkflowStatus.QUERY_ONLY
        assert outcome.app_id == "123"
        assert store.logins == 0

    def test_purchase_then_download(self, service, purchase_client, tmp_path):
        downloader = FakeDownloader()
        chooser = Mock(return_value="2")
        workflow = make_workflow(
            service,
            FakeStore([OK_SESSION]),
            downloader,
            purchase_client,
            tmp_path,
            chooser=chooser,
        )

        outcome = workflow.run("123", CREDENTIALS)

        assert outcome.status is WorkflowStatus.DOWNLOADED
        assert outcome.version_id == "856000001"
        purchase_client.purchase_with_region_retry.assert_called_once()
        app_id, version_id, destination = downloader.calls[0]
        assert destination == tmp_path / "app" / "com.x_123_8.0.44.ipa"
        assert destination.parent.is_dir()
        assert outcome.package_path == str(destination)

    def test_preferred_version_skips_prompt(self, service, purchase_client, tmp_path):
        chooser = Mock(return_value="1")
        workflow = make_workflow(
            service,
            FakeStore([OK_SESSION]),
            FakeDownloader(),
            purchase_client,
            tmp_path,
            chooser=chooser,
        )

        outcome = workflow.run("123", CREDENTIALS, preferred_version_id="855000002")

        assert outcome.version_id == "855000002"
        chooser.assert_not_called()

    def test_already_licensed_skips_purchase(self, service, purchase_client, tmp_path):
        workflow = make_workflow(
            service,
            FakeStore([OK_SESSION], licensed=True),
            FakeDownloader(),
            purchase_client,
            tmp_path,
        )

        outcome = workflow.run("123", CREDENTIALS)

        assert outcome.status is WorkflowStatus.DOWNLOADED
        purchase_client.purchase_with_region_retry.assert_not_called()

    def test_license_check_error_means_purchase(
        self, service, purchase_client, tmp_path
    ):
        workflow = make_workflow(
            service,
            FakeStore([OK_SESSION], licensed=AppStoreError("not owned")),
            FakeDownloader(),
            purchase_client,
            tmp_path,
        )

        outcome = workflow.run("123", CREDENTIALS)

        assert outcome.status is WorkflowStatus.DOWNLOADED
        purchase_client.purchase_with_region_retry.assert_called_once()

    def test_login_retried(self, service, purchase_client, tmp_path):
        store = FakeStore([BAD_SESSION, AppStoreError("flaky"), OK_SESSION])
        workflow = make_workflow(
            service, store, FakeDownloader(), purchase_client, tmp_path
        )

        outcome = workflow.run("123", CREDENTIALS)

        assert outcome.status is WorkflowStatus.DOWNLOADED
        assert store.logins == 3

    def test_login_exhausted(self, service, purchase_client, tmp_path):
        store = FakeStore([BAD_SESSION, BAD_SESSION, BAD_SESSION])
        workflow = make_workflow(
            service, store, FakeDownloader(), purchase_client, tmp_path
        )

        with pytest.raises(AuthenticationError, match="Bad password"):
            workflow.run("123", CREDENTIALS)

        assert store.logins == 3

    def test_login_raising_exhausted(self, service, purchase_client, tmp_path):
        store = FakeStore([AppStoreError("down")] * 3)
        workflow = make_workflow(
            service, store, FakeDownloader(), purchase_client, tmp_path
        )

        with pytest.raises(AuthenticationError, match="down"):
            workflow.run("123", CREDENTIALS)

    def test_session_gets_apple_id(self, service, purchase_client, tmp_path):
        workflow = make_workflow(
            service,
            FakeStore([OK_SESSION]),
            FakeDownloader(),
            purchase_client,
            tmp_path,
        )
        assert workflow.login(CREDENTIALS).apple_id == "user@example.com"

    def test_purchase_failure_retried_then_reported(
        self, service, purchase_client, tmp_path
    ):
        purchase_client.purchase_with_region_retry.return_value = PurchaseResult(
            False, "All storefronts failed", needs_region_change=True
        )
        downloader = FakeDownloader()
        workflow = make_workflow(
            service, FakeStore([OK_SESSION]), downloader, purchase_client, tmp_path
        )

        outcome = workflow.run("123", CREDENTIALS)

        assert outcome.status is WorkflowStatus.PURCHASE_FAILED
        assert outcome.message == "All storefronts failed"
        assert purchase_client.purchase_with_region_retry.call_count == 2
        assert downloader.calls == []

    def test_download_failure(self, service, purchase_client, tmp_path):
        workflow = make_workflow(
            service,
            FakeStore([OK_SESSION]),
            FakeDownloader(error=DownloadError("checksum mismatch")),
            purchase_client,
            tmp_path,
        )

        outcome = workflow.run("123", CREDENTIALS)

        assert outcome.status is WorkflowStatus.DOWNLOAD_FAILED
        assert outcome.message == "checksum mismatch"

    def test_empty_history_downloads_latest(self, service, purchase_client, tmp_path):
        service.query.return_value = AggregatedHistory(app_id="123")
        downloader = FakeDownloader()
        workflow = make_workflow(
            service, FakeStore([OK_SESSION]), downloader, purchase_client, tmp_path
        )

        outcome = workflow.run("123", CREDENTIALS)

        assert outcome.status is WorkflowStatus.DOWNLOADED
        assert outcome.version_id == ""
        assert Path(outcome.package_path).name == "123_123_latest.ipa"


class TestAccountCredentials:
    """Tests for AccountCredentials"""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("APPLE_ID", "a@b.c")
        monkeypatch.setenv("APPLE_PASSWORD", "pw")
        monkeypatch.delenv("APPLE_2FA_CODE", raising=False)

        credentials = AccountCredentials.from_env()

        assert credentials == AccountCredentials("a@b.c", "pw", "")
