import structlog
import time
from pathlib import Path
from typing import Optional

from google.cloud import storage
from google.cloud.exceptions import GoogleCloudError, NotFound
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from asset_verify import config
from asset_verify.core.errors import StoreNotFound, StoreUnavailable
from asset_verify.core.utils import format_file_size, parse_storage_uri

logger = structlog.get_logger()


class StorageClient:
    """Read access to registered content on GCS, Walrus or local disk."""

    def __init__(self, use_gcs: Optional[bool] = None, use_walrus: Optional[bool] = None,
                 gcs_client=None, session: Optional[requests.Session] = None,
                 local_root: Optional[str] = None):
        self.use_gcs = config.USE_GCS if use_gcs is None else use_gcs
        self.use_walrus = config.USE_WALRUS if use_walrus is None else use_walrus
        self.gcs_client = gcs_client
        self.session = session
        self.local_root = Path(local_root) if local_root else None

        if self.use_gcs and self.gcs_client is None:
            try:
                self.gcs_client = storage.Client()
            except Exception as e:
                logger.error("Failed to initialize GCS client", error=str(e))
                logger.warning("GCS initialization failed, gs:// references will be unavailable")

        if self.use_walrus and self.session is None:
            self.session = self._create_walrus_session()

        logger.info("Storage client initialized",
                   gcs_enabled=self.gcs_client is not None,
                   walrus_enabled=self.session is not None)

    def _create_walrus_session(self) -> requests.Session:
        """Initialize HTTP session for Walrus with retry logic."""
        session = requests.Session()

        retry_strategy = Retry(
            total=3,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        logger.info("Walrus HTTP session initialized", endpoint=config.WALRUS_ENDPOINT)
        return session

    def fetch_bytes(self, storage_ref: str) -> bytes:
        """
        Fetch the canonical bytes stored under a storage reference.

        Raises:
            StoreNotFound: nothing is stored under the reference
            StoreUnavailable: the backend could not be reached or is not configured
        """
        scheme, location = parse_storage_uri(storage_ref)
        start_time = time.time()

        if scheme == "gs":
            data = self._fetch_from_gcs(storage_ref, location)
        elif scheme == "walrus":
            data = self._fetch_from_walrus(storage_ref, location)
        elif scheme == "local":
            data = self._fetch_from_local(storage_ref, location)
        else:
            raise StoreUnavailable(f"Unsupported storage URI format: {storage_ref}")

        logger.debug("Content fetched",
                    storage_ref=storage_ref,
                    size=format_file_size(len(data)),
                    fetch_time_seconds=round(time.time() - start_time, 3))
        return data

    def _fetch_from_gcs(self, storage_ref: str, location: str) -> bytes:
        if self.gcs_client is None:
            raise StoreUnavailable("GCS storage is not configured")

        path_parts = location.split("/", 1)
        bucket_name = path_parts[0]
        blob_path = path_parts[1] if len(path_parts) > 1 else ""

        try:
            blob = self.gcs_client.bucket(bucket_name).blob(blob_path)
            return blob.download_as_bytes()
        except NotFound as e:
            raise StoreNotFound(f"File not found in GCS: {storage_ref}") from e
        except GoogleCloudError as e:
            logger.error("GCS API error during fetch",
                        storage_ref=storage_ref, error=str(e), error_code=getattr(e, "code", None))
            raise StoreUnavailable(f"GCS fetch failed: {e}") from e

    def _fetch_from_walrus(self, storage_ref: str, cid: str) -> bytes:
        if self.session is None:
            raise StoreUnavailable("Walrus storage is not configured")

        download_endpoint = f"{config.WALRUS_ENDPOINT}/download/{cid}"
        try:
            response = self.session.get(download_endpoint, timeout=300)
        except requests.exceptions.RequestException as e:
            logger.error("Walrus HTTP error during fetch", storage_ref=storage_ref, error=str(e))
            raise StoreUnavailable(f"Walrus fetch failed: {e}") from e

        if response.status_code == 404:
            raise StoreNotFound(f"File not found in Walrus: {storage_ref}")
        if response.status_code != 200:
            raise StoreUnavailable(f"Walrus fetch returned HTTP {response.status_code}")
        return response.content

    def _fetch_from_local(self, storage_ref: str, location: str) -> bytes:
        path = Path(location)
        if self.local_root is not None and not path.is_absolute():
            path = self.local_root / path

        if not path.is_file():
            raise StoreNotFound(f"File not found on local storage: {storage_ref}")
        try:
            return path.read_bytes()
        except OSError as e:
            raise StoreUnavailable(f"Local read failed: {e}") from e
