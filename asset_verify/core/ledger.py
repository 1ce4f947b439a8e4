import structlog
from typing import Optional
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from asset_verify import config
from asset_verify.core.errors import LedgerUnavailable
from asset_verify.models.asset import LedgerRecord

logger = structlog.get_logger()


class LedgerClient:
    """
    Read-only client for the ledger gateway.

    The gateway fronts the registry contract and exposes two lookups:
    ``GET /refs/{storage_ref}`` -> ``{"exists": bool}`` and
    ``GET /records/{asset_id}`` -> the asset record, or 404 when the token
    was never minted.
    """

    def __init__(self, endpoint: Optional[str] = None, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        self.endpoint = (endpoint or config.LEDGER_ENDPOINT).rstrip("/")
        self.timeout = timeout or config.LEDGER_TIMEOUT_SECONDS
        self.session = session or self._create_session()

        logger.info("Ledger client initialized", endpoint=self.endpoint)

    def _create_session(self) -> requests.Session:
        """HTTP session with retry logic for transient gateway errors."""
        session = requests.Session()

        retry_strategy = Retry(
            total=3,
            backoff_factor=0.5,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session

    def _get(self, path: str) -> requests.Response:
        url = f"{self.endpoint}/{path}"
        try:
            return self.session.get(url, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.warning("Ledger request failed", url=url, error=str(e))
            raise LedgerUnavailable(f"Ledger gateway unreachable: {e}") from e

    def exists_ref(self, storage_ref: str) -> bool:
        """Check whether a storage reference has been anchored on the ledger."""
        response = self._get(f"refs/{quote(storage_ref, safe='')}")
        if response.status_code == 404:
            return False
        if response.status_code != 200:
            raise LedgerUnavailable(
                f"Ledger ref lookup returned HTTP {response.status_code}"
            )
        try:
            return bool(response.json().get("exists", False))
        except ValueError as e:
            raise LedgerUnavailable(f"Ledger returned invalid JSON: {e}") from e

    def get_record(self, asset_id: str) -> Optional[LedgerRecord]:
        """Fetch the on-ledger record for an asset, or None if it was never minted."""
        response = self._get(f"records/{quote(asset_id, safe='')}")
        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise LedgerUnavailable(
                f"Ledger record lookup returned HTTP {response.status_code}"
            )
        try:
            payload = response.json()
        except ValueError as e:
            raise LedgerUnavailable(f"Ledger returned invalid JSON: {e}") from e

        payload.setdefault("asset_id", asset_id)
        return LedgerRecord(**payload)

    def health_check(self) -> bool:
        try:
            response = self.session.get(f"{self.endpoint}/health", timeout=5)
            return response.status_code == 200
        except requests.exceptions.RequestException as e:
            logger.warning("Ledger health check failed", error=str(e))
            return False
