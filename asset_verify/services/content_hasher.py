"""
Deterministic content hashing: identity digests, provenance binding, Merkle
aggregation and hash chains.

Every function here is pure. Structured data is serialised with
canonical_json before hashing, so two metadata maps holding the same
key/value pairs hash identically whatever their insertion order, at every
nesting level.
"""

import hashlib
import json
from datetime import date, datetime
from typing import Any, Iterable, List, Mapping, Optional

import structlog

from asset_verify.core.errors import InputError
from asset_verify.core.utils import format_file_size, is_image_type, normalize_mime_type
from asset_verify.models.asset import ContentFingerprint, ProvenanceRecord
from asset_verify.services.image_hash import average_hash

logger = structlog.get_logger()


def _digest(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _digest_text(text: str) -> str:
    return _digest(text.encode("utf-8"))


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    raise TypeError(f"Object of type {type(value).__name__} is not serializable")


def canonical_json(value: Any) -> str:
    """Serialise to compact JSON with keys sorted at every nesting level."""
    try:
        return json.dumps(
            value,
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
            allow_nan=False,
            default=_json_default,
        )
    except (TypeError, ValueError) as e:
        raise InputError(f"Metadata cannot be canonicalized: {e}") from e


def _require_bytes(data: bytes) -> bytes:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise InputError(f"Expected bytes, got {type(data).__name__}")
    return bytes(data)


def content_hash(data: bytes) -> str:
    """SHA-256 of the raw bytes alone."""
    return _digest(_require_bytes(data))


def metadata_hash(data: bytes, metadata: Mapping[str, Any]) -> str:
    """SHA-256 of the raw bytes followed by the canonical metadata serialisation."""
    return _digest(_require_bytes(data) + canonical_json(dict(metadata)).encode("utf-8"))


def metadata_only_hash(metadata: Mapping[str, Any]) -> str:
    return _digest_text(canonical_json(dict(metadata)))


def provenance_hash(data: bytes, metadata: Mapping[str, Any], uploader: str, timestamp_ms: int) -> str:
    """Bind content identity, authorship and time into one digest."""
    provenance_data = {
        "content_hash": metadata_hash(data, metadata),
        "uploader": uploader,
        "timestamp": timestamp_ms,
        "metadata": dict(metadata),
    }
    return _digest_text(canonical_json(provenance_data))


def build_provenance_record(
    data: bytes,
    metadata: Mapping[str, Any],
    uploader: str,
    timestamp_ms: int
) -> ProvenanceRecord:
    """Create the immutable provenance record stored at registration time."""
    return ProvenanceRecord(
        content_hash=content_hash(data),
        uploader=uploader,
        timestamp=timestamp_ms,
        metadata=dict(metadata),
        provenance_hash=provenance_hash(data, metadata, uploader, timestamp_ms),
    )


def perceptual_hash(image_bytes: bytes) -> str:
    """64-bit average hash of an image; see image_hash for its robustness limits."""
    return average_hash(_require_bytes(image_bytes))


def merkle_root(hashes: List[str]) -> str:
    """
    Fold an ordered list of hex digests into a single root.

    An odd level duplicates its last element. An empty list yields "" and a
    single hash is returned unchanged.
    """
    if not hashes:
        return ""
    if len(hashes) == 1:
        return hashes[0]

    current_level = list(hashes)
    while len(current_level) > 1:
        next_level = []
        for i in range(0, len(current_level), 2):
            left = current_level[i]
            right = current_level[i + 1] if i + 1 < len(current_level) else left
            next_level.append(_digest_text(left + right))
        current_level = next_level

    return current_level[0]


def hash_chain(hashes: List[str]) -> str:
    """Chain version hashes: chain = H(chain + h) starting from the first hash."""
    if not hashes:
        return ""

    chain = hashes[0]
    for current in hashes[1:]:
        chain = _digest_text(chain + current)
    return chain


def timestamped_hash(hash_value: str, timestamp_ms: int) -> str:
    return _digest_text(canonical_json({"hash": hash_value, "timestamp": timestamp_ms}))


def verification_hash(storage_ref: str, content_hash_value: str, uploader: str, timestamp_ms: int) -> str:
    return _digest_text(canonical_json({
        "storage_ref": storage_ref,
        "content_hash": content_hash_value,
        "uploader": uploader,
        "timestamp": timestamp_ms,
    }))


def proof_of_existence(storage_ref: str, content_hash_value: str, block_number: int, timestamp_ms: int) -> str:
    return _digest_text(canonical_json({
        "storage_ref": storage_ref,
        "content_hash": content_hash_value,
        "block_number": block_number,
        "timestamp": timestamp_ms,
    }))


def batch_hash(entries: Iterable[Mapping[str, Any]]) -> str:
    """
    Digest of a batch of registrations, order-sensitive.

    Each entry contributes only its storage_ref, content_hash and timestamp.
    """
    batch_data = [
        {
            "storage_ref": entry.get("storage_ref"),
            "content_hash": entry.get("content_hash"),
            "timestamp": entry.get("timestamp"),
        }
        for entry in entries
    ]
    return _digest_text(canonical_json(batch_data))


def fingerprint(data: bytes, mime_type: Optional[str]) -> ContentFingerprint:
    """
    Compute the fingerprint of uploaded content.

    The perceptual hash is only computed for image/* content.

    Raises:
        InputError: empty or undecodable bytes, or a missing/malformed mime type
    """
    data = _require_bytes(data)
    if not data:
        raise InputError("Cannot fingerprint empty content")

    normalized = normalize_mime_type(mime_type)
    if normalized is None:
        raise InputError(f"Invalid mime type: {mime_type!r}")

    phash = perceptual_hash(data) if is_image_type(normalized) else None

    result = ContentFingerprint(
        content_hash=content_hash(data),
        perceptual_hash=phash,
        file_size=len(data),
        mime_type=normalized,
    )

    logger.info("Computed content fingerprint",
               content_hash=result.content_hash,
               mime_type=normalized,
               file_size=format_file_size(len(data)),
               has_perceptual_hash=phash is not None)
    return result


def verify_integrity(data: bytes, expected_hash: str) -> bool:
    return content_hash(data) == expected_hash
