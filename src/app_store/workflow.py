"""
Acquisition workflow: history query, version choice, login, purchase, download.

Authentication and package download are provided by external backends that
implement the StoreBackend and PackageDownloader protocols.
"""

import os
from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Protocol

import requests

from ..shared_utilities import (
    RetryExhaustedError,
    RetryPolicy,
    get_logger,
    trace_operation,
)
from ..shared_utilities.filename_generator import (
    ensure_output_directory,
    generate_package_filename,
)
from ..version_history.core import VersionHistoryService
from ..version_history.data_models import AggregatedHistory
from .data_models import StoreSession, WorkflowOutcome, WorkflowStatus
from .errors import AppStoreError, AuthenticationError, DownloadError
from .purchase import PurchaseClient
from .selection import select_version

LOGIN_POLICY = RetryPolicy(max_attempts=3, delay_seconds=2.0)
PURCHASE_POLICY = RetryPolicy(max_attempts=2, delay_seconds=2.0)


class StoreBackend(Protocol):
    """Account authentication and license lookup."""

    def authenticate(
        self, apple_id: str, password: str, code: str = ""
    ) -> StoreSession:
        """Sign in; failures are reported through StoreSession.state."""
        ...

    def check_license(
        self, app_id: str, version_id: str, session: StoreSession
    ) -> bool:
        """True when the account already owns the app; may raise AppStoreError."""
        ...


class PackageDownloader(Protocol):
    """Downloads and stores a signed application package."""

    def download(
        self, session: StoreSession, app_id: str, version_id: str, destination: Path
    ) -> Path:
        """Download to ``destination``; raises DownloadError on failure."""
        ...


@dataclass(frozen=True)
class AccountCredentials:
    """Apple ID credentials for one run."""

    apple_id: str
    password: str
    code: str = ""

    @classmethod
    def from_env(cls) -> "AccountCredentials":
        """Read APPLE_ID, APPLE_PASSWORD and APPLE_2FA_CODE."""
        return cls(
            apple_id=os.getenv("APPLE_ID", ""),
            password=os.getenv("APPLE_PASSWORD", ""),
            code=os.getenv("APPLE_2FA_CODE", ""),
        )


class AcquisitionWorkflow:
    """Runs the full query, purchase and download flow for one application."""

    def __init__(
        self,
        history_service: VersionHistoryService,
        store: StoreBackend,
        downloader: PackageDownloader,
        purchase_client: PurchaseClient | None = None,
        chooser: Callable[[AggregatedHistory], str] | None = None,
        output_dir: str | Path = "app",
        login_policy: RetryPolicy = LOGIN_POLICY,
        purchase_policy: RetryPolicy = PURCHASE_POLICY,
    ):
        """Initialize workflow.

        Args:
            history_service: Version history query service
            store: Authentication and license backend
            downloader: Package download backend
            purchase_client: Purchase client, a default one if omitted
            chooser: Asks the operator for a version; returns their raw answer
            output_dir: Directory receiving downloaded packages
            login_policy: Retry policy for signing in
            purchase_policy: Retry policy for purchasing
        """
        self.logger = get_logger(__name__)
        self.history_service = history_service
        self.store = store
        self.downloader = downloader
        self.purchase_client = purchase_client or PurchaseClient()
        self.chooser = chooser
        self.output_dir = Path(output_dir)
        self.login_policy = login_policy
        self.purchase_policy = purchase_policy

    def run(
        self,
        app_input: str,
        credentials: AccountCredentials,
        query_only: bool = False,
        preferred_version_id: str = "",
    ) -> WorkflowOutcome:
        """
        Acquire one application.

        Raises:
            AuthenticationError: If the account could not be signed in
        """
        history = self.history_service.query(app_input)
        if history is None:
            return WorkflowOutcome(
                WorkflowStatus.UNRESOLVED,
                message=f"Could not resolve an App ID from {app_input!r}",
            )

        if query_only:
            return WorkflowOutcome(WorkflowStatus.QUERY_ONLY, app_id=history.app_id)

        version_id = self._choose_version(history, preferred_version_id)
        app_id = history.app_id

        with trace_operation("acquire_app", {"app_id": app_id}):
            session = self.login(credentials)

            if self._already_licensed(app_id, version_id, session):
                self.logger.info("App already purchased, downloading directly")
                return self._download(history, version_id, session)

            result = self.purchase_policy.call(
                lambda attempt: self.purchase_client.purchase_with_region_retry(
                    app_id, session
                ),
                should_retry=lambda purchase: not purchase.success,
                label="purchase",
            )
            if not result.success:
                return WorkflowOutcome(
                    WorkflowStatus.PURCHASE_FAILED,
                    app_id=app_id,
                    version_id=version_id,
                    message=result.message,
                )

            return self._download(history, version_id, session)

    def login(self, credentials: AccountCredentials) -> StoreSession:
        """
        Sign in with bounded retries.

        Raises:
            AuthenticationError: If no attempt succeeded
        """
        try:
            session = self.login_policy.call(
                lambda attempt: self.store.authenticate(
                    credentials.apple_id, credentials.password, credentials.code
                ),
                should_retry=lambda result: not result.succeeded,
                retry_on=(AppStoreError, requests.RequestException),
                label="login",
            )
        except RetryExhaustedError as e:
            raise AuthenticationError(f"Login failed: {e.last_error}") from e

        if not session.succeeded:
            raise AuthenticationError(f"Login failed: {session.failure_reason}")

        self.logger.info("Signed in", apple_id=credentials.apple_id)
        if not session.apple_id:
            session = replace(session, apple_id=credentials.apple_id)
        return session

    def _choose_version(self, history: AggregatedHistory, preferred_id: str) -> str:
        listed = any(r.version_id == str(preferred_id) for r in history.versions)
        answer = ""
        if history.versions and not listed and self.chooser is not None:
            answer = self.chooser(history)
        return select_version(history.versions, answer, preferred_id)

    def _already_licensed(
        self, app_id: str, version_id: str, session: StoreSession
    ) -> bool:
        try:
            return bool(self.store.check_license(app_id, version_id, session))
        except AppStoreError as e:
            self.logger.info(f"App not purchased yet: {e}", app_id=app_id)
            return False

    def _download(
        self, history: AggregatedHistory, version_id: str, session: StoreSession
    ) -> WorkflowOutcome:
        label = next(
            (r.version for r in history.versions if r.version_id == version_id),
            "latest",
        )
        destination = ensure_output_directory(
            self.output_dir
            / generate_package_filename(history.bundle_id, history.app_id, label)
        )
        try:
            path = self.downloader.download(
                session, history.app_id, version_id, destination
            )
        except DownloadError as e:
            self.logger.error(f"Download failed: {e}", app_id=history.app_id)
            return WorkflowOutcome(
                WorkflowStatus.DOWNLOAD_FAILED,
                app_id=history.app_id,
                version_id=version_id,
                message=str(e),
            )

        self.logger.info(f"Downloaded package to {path}", app_id=history.app_id)
        return WorkflowOutcome(
            WorkflowStatus.DOWNLOADED,
            app_id=history.app_id,
            version_id=version_id,
            package_path=str(path),
        )
