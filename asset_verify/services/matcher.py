"""
Classification of registered assets against an uploaded fingerprint.
"""

from typing import Collection, Iterable, List, Optional

import structlog

from asset_verify import config
from asset_verify.models.asset import ContentFingerprint, RegisteredAsset
from asset_verify.models.verification import MatchCandidate, MatchType
from asset_verify.services.image_hash import hamming_distance, hash_similarity

logger = structlog.get_logger()

# Perceptual hash present on both sides but beyond the similarity threshold
DISSIMILAR_HASH_CONFIDENCE = 0.5
# Asset was named by an explicit hint, no comparable perceptual hash
HINT_ONLY_CONFIDENCE = 0.3


def classify_candidate(
    uploaded: ContentFingerprint,
    asset: RegisteredAsset,
    threshold: int = config.SIMILARITY_THRESHOLD,
    via_hint: bool = False
) -> Optional[MatchCandidate]:
    """
    Classify one registered asset against the uploaded fingerprint.

    Returns None when there is no evidence at all linking the two.

    Raises:
        LengthMismatchError: the perceptual hashes have different bit lengths
    """
    if asset.content_hash == uploaded.content_hash:
        return MatchCandidate(asset=asset, match_type=MatchType.EXACT, confidence=1.0)

    if uploaded.perceptual_hash and asset.perceptual_hash:
        distance = hamming_distance(uploaded.perceptual_hash, asset.perceptual_hash)
        if distance <= threshold:
            return MatchCandidate(
                asset=asset,
                match_type=MatchType.SIMILAR,
                confidence=hash_similarity(uploaded.perceptual_hash, asset.perceptual_hash),
                hamming_distance=distance,
            )
        return MatchCandidate(
            asset=asset,
            match_type=MatchType.PARTIAL,
            confidence=DISSIMILAR_HASH_CONFIDENCE,
            hamming_distance=distance,
        )

    if via_hint:
        return MatchCandidate(asset=asset, match_type=MatchType.PARTIAL, confidence=HINT_ONLY_CONFIDENCE)

    return None


def match_candidates(
    uploaded: ContentFingerprint,
    assets: Iterable[RegisteredAsset],
    threshold: int = config.SIMILARITY_THRESHOLD,
    hinted_ids: Collection[str] = ()
) -> List[MatchCandidate]:
    """Classify assets in input order, dropping those without evidence."""
    matches = []
    excluded = 0
    for asset in assets:
        candidate = classify_candidate(
            uploaded, asset, threshold=threshold, via_hint=asset.asset_id in hinted_ids
        )
        if candidate is None:
            excluded += 1
            continue
        matches.append(candidate)

    logger.debug("Candidates classified",
                matches=len(matches),
                excluded=excluded,
                threshold=threshold)
    return matches
