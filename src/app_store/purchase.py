"""
Purchase client for free applications.

Every attempt is described by an immutable PurchaseRequestConfig. Retrying in
another storefront builds a new config value instead of mutating shared
header state, so repeated or concurrent purchases never observe each other's
headers.
"""

import plistlib
import secrets
import uuid
from dataclasses import dataclass, field, replace
from xml.parsers.expat import ExpatError

import requests

from ..shared_utilities import get_logger, trace_operation
from .data_models import PurchaseResult, StoreSession
from .errors import PurchaseError, RegionMismatchError

PURCHASE_URL = "https://buy.itunes.apple.com/WebObjects/MZFinance.woa/wa/buyProduct"
DEFAULT_STORE_FRONT = "143441-1,32"
# Tried in order after a region mismatch in the account's own storefront
FALLBACK_STORE_FRONTS = (
    "143465-1,32",
    "143441-1,32",
    "143463-1,32",
    "143462-1,32",
    "143470-1,32",
)
REGION_MISMATCH_MARKER = "Account Not In This Store"


def _new_guid() -> str:
    return uuid.uuid4().hex.upper()


@dataclass(frozen=True)
class PurchaseRequestConfig:
    """Everything that shapes one purchase request."""

    store_front: str = DEFAULT_STORE_FRONT
    purchase_url: str = PURCHASE_URL
    timeout_seconds: float = 30.0
    guid: str = field(default_factory=_new_guid)
    user_agent: str = (
        "Configurator/2.15 (Macintosh; OS X 11.0.0; 16G29) AppleWebKit/2603.3.8"
    )
    accept_language: str = "en-US,en;q=0.9"

    @classmethod
    def for_session(cls, session: StoreSession, **overrides) -> "PurchaseRequestConfig":
        """Config using the storefront the account signed in with."""
        return cls(store_front=session.store_front or DEFAULT_STORE_FRONT, **overrides)

    def with_store_front(self, store_front: str) -> "PurchaseRequestConfig":
        """A copy of this config targeting another storefront."""
        return replace(self, store_front=store_front)

    def headers(self, session: StoreSession) -> dict[str, str]:
        """Request headers for ``session``; built fresh on every call."""
        return {
            "authority": "buy.itunes.apple.com",
            "content-type": "application/x-apple-plist",
            "accept": "*/*",
            "accept-encoding": "gzip, deflate, br",
            "accept-language": self.accept_language,
            "user-agent": self.user_agent,
            "x-apple-store-front": self.store_front,
            "x-token": session.password_token,
            "x-dsid": session.ds_person_id,
            "icloud-dsid": session.ds_person_id,
            "cookie": build_cookies(session),
        }


def build_cookies(session: StoreSession) -> str:
    """Cookie header carrying the session tokens."""
    dsid = session.ds_person_id
    token = session.password_token
    cookies = [
        "hsaccnt=1",
        f"mzf_in={secrets.randbelow(100000)}",
        f"session-store-id={secrets.token_hex(13)}",
        f"X-Dsid={dsid}",
        "itspod=2",
        f"mz_at0_fr={token}",
        f"mz_at0_fr-{dsid}={token}",
        f"mz_at_ssl-{dsid}=AwUAAAIBAABOIAAAAAB{secrets.token_hex(14)}",
        f"pldfltcid={uuid.uuid4().hex}",
        f"wosid-lite={secrets.token_hex(10)}",
        f"dsid={dsid}",
    ]
    return "; ".join(cookies)


def build_purchase_plist(app_id: str, guid: str) -> bytes:
    """XML plist body of a free purchase request."""
    payload = {
        "appExtVrsId": "0",
        "buyWithoutAuthorization": "true",
        "guid": guid,
        "hasAskedToFulfillPreorder": "true",
        "hasDoneAgeCheck": "true",
        "needDiv": "0",
        "origPage": f"Software-{app_id}",
        "origPageLocation": "Buy",
        "price": "0",
        "pricingParameters": "STDQ",
        "productType": "C",
        "salableAdamId": str(app_id),
    }
    return plistlib.dumps(payload, fmt=plistlib.FMT_XML)


def parse_purchase_response(content: bytes) -> dict:
    """Decode a plist response body, raising PurchaseError if unreadable."""
    try:
        data = plistlib.loads(content)
    except (plistlib.InvalidFileException, ExpatError, ValueError) as e:
        raise PurchaseError("Could not parse purchase response") from e
    if not isinstance(data, dict):
        raise PurchaseError("Unexpected purchase response")
    return data


def classify_purchase_response(data: dict) -> str:
    """
    Classify a decoded purchase response.

    Returns:
        Human-readable success message

    Raises:
        RegionMismatchError: If the account is not in the app's storefront
        PurchaseError: For any other store-reported failure
    """
    failure_type = str(data.get("failureType") or "")
    if failure_type:
        message = str(data.get("customerMessage") or failure_type)
        if REGION_MISMATCH_MARKER in message or REGION_MISMATCH_MARKER in failure_type:
            raise RegionMismatchError(
                "Account region does not match the App Store region"
            )
        raise PurchaseError(f"Purchase failed: {message}")

    if data.get("songList"):
        return "Purchased"
    if data.get("downloadKey"):
        return "Already purchased"
    return "Purchase complete"


class PurchaseClient:
    """Buys free applications for a signed-in account."""

    def __init__(self):
        self.logger = get_logger(__name__)

    def purchase(
        self,
        app_id: str,
        session: StoreSession,
        config: PurchaseRequestConfig | None = None,
    ) -> PurchaseResult:
        """
        Attempt one purchase. Never raises; failures come back classified.

        Args:
            app_id: Numeric App Store identifier
            session: Signed-in account
            config: Request configuration, defaults to the session storefront
        """
        config = config or PurchaseRequestConfig.for_session(session)
        self.logger.info(
            f"Purchasing {app_id} in storefront {config.store_front}",
            app_id=app_id,
        )

        with trace_operation(
            "purchase_app", {"app_id": app_id, "store_front": config.store_front}
        ):
            try:
                response = requests.post(
                    config.purchase_url,
                    headers=config.headers(session),
                    data=build_purchase_plist(app_id, config.guid),
                    timeout=config.timeout_seconds,
                )
                data = parse_purchase_response(response.content)
                message = classify_purchase_response(data)
            except RegionMismatchError as e:
                self.logger.warning(str(e), store_front=config.store_front)
                return PurchaseResult(
                    success=False,
                    message=str(e),
                    needs_region_change=True,
                    store_front=config.store_front,
                )
            except PurchaseError as e:
                self.logger.error(str(e), app_id=app_id)
                return PurchaseResult(
                    success=False, message=str(e), store_front=config.store_front
                )
            except requests.RequestException as e:
                self.logger.error(f"Purchase request failed: {e}", app_id=app_id)
                return PurchaseResult(
                    success=False,
                    message=f"Purchase request failed: {e}",
                    store_front=config.store_front,
                )

        self.logger.info(message, app_id=app_id)
        return PurchaseResult(
            success=True,
            message=message,
            store_front=config.store_front,
            details=data,
        )

    def purchase_with_region_retry(
        self,
        app_id: str,
        session: StoreSession,
        store_fronts: tuple[str, ...] = FALLBACK_STORE_FRONTS,
        config: PurchaseRequestConfig | None = None,
    ) -> PurchaseResult:
        """
        Purchase, retrying in other storefronts after a region mismatch.

        Stops at the first success or at the first failure that is not a
        region mismatch.
        """
        base = config or PurchaseRequestConfig.for_session(session)
        result = self.purchase(app_id, session, base)
        if result.success or not result.needs_region_change:
            return result

        for store_front in store_fronts:
            if store_front == base.store_front:
                continue
            self.logger.info(f"Retrying purchase in storefront {store_front}")
            result = self.purchase(app_id, session, base.with_store_front(store_front))
            if result.success or not result.needs_region_change:
                return result

        return PurchaseResult(
            success=False,
            message="All storefronts failed, check the account region",
            needs_region_change=True,
        )
