"""
End-to-end verification of uploaded content against registered assets.

One request runs hash -> retrieve -> classify sequentially, then fans the
per-candidate ledger and integrity checks out over a bounded thread pool and
fans them back in by candidate index. Only InputError and
LengthMismatchError escape; registry, ledger and store failures degrade the
affected fields of an otherwise complete VerificationResult.
"""

import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import List, Optional, Set, Tuple

import structlog

from asset_verify import config
from asset_verify.core.errors import InputError, StoreNotFound
from asset_verify.core.interfaces import AssetRegistry, ContentStore, Ledger
from asset_verify.core.utils import is_bit_string, is_hex_digest, normalize_mime_type
from asset_verify.models.asset import ContentFingerprint, LedgerRecord, RegisteredAsset
from asset_verify.models.verification import (
    AssetVerificationStatus, CandidateCheck, MatchCandidate, MatchType, VerificationHints,
    VerificationOptions, VerificationResult, VerificationStatus, VerificationSummary,
)
from asset_verify.services import content_hasher
from asset_verify.services.matcher import match_candidates

logger = structlog.get_logger()

HASH_ONLY_MIME_TYPE = "application/octet-stream"

STATUS_MESSAGES = {
    VerificationStatus.VERIFIED: "Content verified against the ledger and durable storage",
    VerificationStatus.SIMILAR: "Similar registered content found",
    VerificationStatus.PARTIAL: "Partial match found",
    VerificationStatus.NOT_FOUND: "No matching registered content found",
}


def summarize(candidates: List[MatchCandidate], checks: List[CandidateCheck]) -> VerificationSummary:
    """Aggregate match counts and cross-check flags. Unknown flags count as not verified."""
    total = len(candidates)
    return VerificationSummary(
        total_matches=total,
        exact_matches=sum(1 for c in candidates if c.match_type == MatchType.EXACT),
        similar_matches=sum(1 for c in candidates if c.match_type == MatchType.SIMILAR),
        partial_matches=sum(1 for c in candidates if c.match_type == MatchType.PARTIAL),
        ledger_verified_count=sum(1 for check in checks if check.ledger_verified is True),
        integrity_valid_count=sum(1 for check in checks if check.integrity_valid is True),
        average_confidence=sum(c.confidence for c in candidates) / total if total else 0.0,
    )


def derive_status(summary: VerificationSummary) -> VerificationStatus:
    """Strict precedence: VERIFIED, SIMILAR, PARTIAL, NOT_FOUND."""
    if (summary.exact_matches > 0
            and summary.ledger_verified_count > 0
            and summary.integrity_valid_count > 0):
        return VerificationStatus.VERIFIED
    if summary.similar_matches > 0:
        return VerificationStatus.SIMILAR
    if summary.partial_matches > 0:
        return VerificationStatus.PARTIAL
    return VerificationStatus.NOT_FOUND


def compare_metadata(
    uploaded: ContentFingerprint,
    asset: RegisteredAsset
) -> Tuple[Optional[bool], Optional[bool]]:
    """Compare upload size and mime type with the registered values; None when not recorded."""
    size_match = None if asset.file_size is None else asset.file_size == uploaded.file_size
    mime_match = None
    if asset.mime_type is not None:
        mime_match = normalize_mime_type(asset.mime_type) == uploaded.mime_type
    return size_match, mime_match


class VerificationService:
    """
    Stateless verification engine over injected collaborators.

    Args:
        registry: asset lookups by id, storage reference, content hash and perceptual hash
        ledger: existence checks for storage references and asset records
        store: canonical bytes by storage reference
        max_workers: cap on concurrent cross-checks per request
        similarity_threshold: default max Hamming distance for a similar match
        deadline_seconds: default deadline for the cross-check stage
    """

    def __init__(
        self,
        registry: AssetRegistry,
        ledger: Ledger,
        store: ContentStore,
        max_workers: int = config.CHECK_MAX_WORKERS,
        similarity_threshold: int = config.SIMILARITY_THRESHOLD,
        deadline_seconds: float = config.CHECK_DEADLINE_SECONDS
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.registry = registry
        self.ledger = ledger
        self.store = store
        self.max_workers = max_workers
        self.similarity_threshold = similarity_threshold
        self.deadline_seconds = deadline_seconds

    def compute_fingerprint(self, data: bytes, mime_type: str) -> ContentFingerprint:
        return content_hasher.fingerprint(data, mime_type)

    def verify_upload(
        self,
        data: bytes,
        mime_type: str,
        hints: Optional[VerificationHints] = None,
        options: Optional[VerificationOptions] = None
    ) -> VerificationResult:
        """
        Verify uploaded bytes against the registry.

        Raises:
            InputError: empty/unreadable bytes or an unsupported mime type
            LengthMismatchError: a registered perceptual hash has a different bit length
        """
        normalized = normalize_mime_type(mime_type)
        if normalized not in config.SUPPORTED_TYPES:
            raise InputError(f"Unsupported media type: {mime_type}")

        uploaded = self.compute_fingerprint(data, normalized)
        return self._verify(uploaded, hints or VerificationHints(), options or VerificationOptions(), data)

    def verify_by_hash(
        self,
        content_hash: str,
        perceptual_hash: Optional[str] = None,
        options: Optional[VerificationOptions] = None
    ) -> VerificationResult:
        """
        Verify a previously computed hash pair. The integrity check is always
        skipped because no raw bytes are available to compare.
        """
        content_hash = (content_hash or "").strip().lower()
        if not is_hex_digest(content_hash):
            raise InputError("content_hash must be a 64 character hex SHA-256 digest")
        if perceptual_hash is not None and not is_bit_string(perceptual_hash):
            raise InputError("perceptual_hash must be a string of '0' and '1' characters")

        uploaded = ContentFingerprint(
            content_hash=content_hash,
            perceptual_hash=perceptual_hash,
            file_size=0,
            mime_type=HASH_ONLY_MIME_TYPE,
        )
        return self._verify(uploaded, VerificationHints(), options or VerificationOptions(), None)

    def _verify(
        self,
        uploaded: ContentFingerprint,
        hints: VerificationHints,
        options: VerificationOptions,
        data: Optional[bytes]
    ) -> VerificationResult:
        start_time = time.time()
        diagnostics: List[str] = []
        threshold = (
            options.similarity_threshold
            if options.similarity_threshold is not None
            else self.similarity_threshold
        )

        assets, hinted_ids = self._retrieve_candidates(uploaded, hints, diagnostics)
        candidates = match_candidates(uploaded, assets, threshold=threshold, hinted_ids=hinted_ids)

        if options.cross_check and candidates:
            deadline = options.deadline_seconds or self.deadline_seconds
            checks = self._cross_check(candidates, uploaded, data, deadline)
        else:
            checks = [
                CandidateCheck(asset_id=c.asset.asset_id, notes=["cross-check not requested"])
                for c in candidates
            ]

        summary = summarize(candidates, checks)
        status = derive_status(summary)

        logger.info("Verification completed",
                   content_hash=uploaded.content_hash,
                   status=status.value,
                   candidates=len(candidates),
                   exact_matches=summary.exact_matches,
                   similar_matches=summary.similar_matches,
                   ledger_verified=summary.ledger_verified_count,
                   integrity_valid=summary.integrity_valid_count,
                   diagnostics=len(diagnostics),
                   processing_time_ms=round((time.time() - start_time) * 1000, 2))

        return VerificationResult(
            fingerprint=uploaded,
            candidates=candidates,
            checks=checks,
            summary=summary,
            status=status,
            message=STATUS_MESSAGES[status],
            diagnostics=diagnostics,
        )

    def _registry_call(self, method: str, argument: str, diagnostics: List[str], default):
        try:
            return getattr(self.registry, method)(argument)
        except Exception as e:
            logger.warning("Registry lookup failed", method=method, error=str(e))
            diagnostics.append(f"registry {method} failed: {e}")
            return default

    def _retrieve_candidates(
        self,
        uploaded: ContentFingerprint,
        hints: VerificationHints,
        diagnostics: List[str]
    ) -> Tuple[List[RegisteredAsset], Set[str]]:
        """Fetch the hinted asset, or union the hash lookups de-duplicated by asset id."""
        if hints.asset_id or hints.storage_ref:
            asset = None
            if hints.asset_id:
                asset = self._registry_call("find_by_id", hints.asset_id, diagnostics, None)
            if asset is None and hints.storage_ref:
                asset = self._registry_call("find_by_storage_ref", hints.storage_ref, diagnostics, None)
            if asset is None:
                diagnostics.append("hinted asset not found in registry")
                return [], set()
            return [asset], {asset.asset_id}

        found = list(self._registry_call("find_by_content_hash", uploaded.content_hash, diagnostics, []))
        if uploaded.perceptual_hash:
            found.extend(self._registry_call(
                "find_by_perceptual_hash", uploaded.perceptual_hash, diagnostics, []
            ))

        assets = []
        seen = set()
        for asset in found:
            if asset.asset_id in seen:
                continue
            seen.add(asset.asset_id)
            assets.append(asset)
        return assets, set()

    def _cross_check(
        self,
        candidates: List[MatchCandidate],
        uploaded: ContentFingerprint,
        data: Optional[bytes],
        deadline: float
    ) -> List[CandidateCheck]:
        checks = [CandidateCheck(asset_id=c.asset.asset_id) for c in candidates]
        workers = min(len(candidates), self.max_workers)
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="verify-check")

        futures = {}
        try:
            for index, candidate in enumerate(candidates):
                futures[executor.submit(self._check_ledger, candidate.asset)] = (index, "ledger")
                if data is not None:
                    future = executor.submit(self._check_integrity, candidate.asset, uploaded.content_hash)
                    futures[future] = (index, "integrity")
                    checks[index].file_size_match, checks[index].mime_type_match = compare_metadata(
                        uploaded, candidate.asset
                    )
                else:
                    checks[index].notes.append("integrity check skipped: no raw bytes supplied")

            done, _ = wait(futures, timeout=deadline)
        finally:
            # Abandon checks still queued or running past the deadline
            executor.shutdown(wait=False, cancel_futures=True)

        for future, (index, kind) in futures.items():
            if future in done:
                value, note = future.result()
            else:
                value, note = None, f"timeout: {kind} check did not finish within {deadline}s"
                logger.warning("Cross-check timed out",
                              asset_id=checks[index].asset_id, check=kind, deadline_seconds=deadline)

            if kind == "ledger":
                checks[index].ledger_verified = value
            else:
                checks[index].integrity_valid = value
            if note:
                checks[index].notes.append(note)

        return checks

    def verification_status(self, asset_id: str) -> AssetVerificationStatus:
        """
        Report the ledger standing of one registered asset.

        A missing asset or a registry outage yields a status with no asset and
        an explanatory note.

        Raises:
            InputError: empty asset id
        """
        asset_id = (asset_id or "").strip()
        if not asset_id:
            raise InputError("asset_id must not be empty")

        status = AssetVerificationStatus(asset_id=asset_id)
        asset = self._registry_call("find_by_id", asset_id, status.notes, None)
        if asset is None:
            if not status.notes:
                status.notes.append("asset not found in registry")
            return status

        status.asset = asset
        status.ledger_verified, note, status.ledger_record = self._ledger_status(asset)
        if note:
            status.notes.append(note)

        logger.info("Asset status checked",
                   asset_id=asset_id,
                   ledger_verified=status.ledger_verified,
                   is_verified=asset.is_verified)
        return status

    def _check_ledger(self, asset: RegisteredAsset) -> Tuple[Optional[bool], Optional[str]]:
        value, note, _ = self._ledger_status(asset)
        return value, note

    def _ledger_status(
        self,
        asset: RegisteredAsset
    ) -> Tuple[Optional[bool], Optional[str], Optional[LedgerRecord]]:
        """Ledger-verified when both the storage reference and the asset record exist."""
        try:
            ref_exists = self.ledger.exists_ref(asset.storage_ref)
            record = self.ledger.get_record(asset.asset_id)
        except Exception as e:
            logger.warning("Ledger check failed", asset_id=asset.asset_id, error=str(e))
            return None, f"ledger unavailable: {e}", None

        if not ref_exists:
            return False, "storage reference not anchored on ledger", record
        if record is None:
            return False, "no ledger record for asset", None
        return True, None, record

    def _check_integrity(self, asset: RegisteredAsset, expected_hash: str) -> Tuple[Optional[bool], Optional[str]]:
        """Re-hash the stored bytes and compare them with the uploaded content hash."""
        try:
            stored = self.store.fetch_bytes(asset.storage_ref)
        except StoreNotFound as e:
            logger.warning("Stored content missing", asset_id=asset.asset_id, error=str(e))
            return False, f"stored content not found: {e}"
        except Exception as e:
            logger.warning("Store check failed", asset_id=asset.asset_id, error=str(e))
            return None, f"store unavailable: {e}"

        if content_hasher.verify_integrity(stored, expected_hash):
            return True, None
        return False, "stored content hash differs from uploaded content"
