import pytest

from asset_verify.core.errors import LengthMismatchError
from asset_verify.models.asset import ContentFingerprint
from asset_verify.models.verification import MatchType
from asset_verify.services.content_hasher import content_hash
from asset_verify.services.matcher import classify_candidate, match_candidates
from fakes import make_asset

BASE_HASH = "0" * 64
FIVE_BITS_OFF = "1" * 5 + "0" * 59
FAR_HASH = "1" * 20 + "0" * 44


def uploaded(data=b"upload", perceptual_hash=None):
    return ContentFingerprint(
        content_hash=content_hash(data),
        perceptual_hash=perceptual_hash,
        file_size=len(data),
        mime_type="image/png",
    )


def test_identical_content_hash_is_exact():
    candidate = classify_candidate(uploaded(), make_asset("1", data=b"upload"))

    assert candidate.match_type == MatchType.EXACT
    assert candidate.confidence == 1.0


def test_exact_wins_over_perceptual_distance():
    asset = make_asset("1", data=b"upload", perceptual_hash=FAR_HASH)
    candidate = classify_candidate(uploaded(perceptual_hash=BASE_HASH), asset)
    assert candidate.match_type == MatchType.EXACT


def test_five_bit_difference_is_similar():
    asset = make_asset("1", data=b"other", perceptual_hash=FIVE_BITS_OFF)
    candidate = classify_candidate(uploaded(perceptual_hash=BASE_HASH), asset, threshold=10)

    assert candidate.match_type == MatchType.SIMILAR
    assert candidate.confidence == 0.921875
    assert candidate.hamming_distance == 5


def test_distance_beyond_threshold_is_partial():
    asset = make_asset("1", data=b"other", perceptual_hash=FAR_HASH)
    candidate = classify_candidate(uploaded(perceptual_hash=BASE_HASH), asset, threshold=10)

    assert candidate.match_type == MatchType.PARTIAL
    assert candidate.confidence == 0.5
    assert candidate.hamming_distance == 20


def test_threshold_is_inclusive():
    asset = make_asset("1", data=b"other", perceptual_hash=FIVE_BITS_OFF)
    assert classify_candidate(uploaded(perceptual_hash=BASE_HASH), asset, threshold=5).match_type == MatchType.SIMILAR
    assert classify_candidate(uploaded(perceptual_hash=BASE_HASH), asset, threshold=4).match_type == MatchType.PARTIAL


def test_hint_without_comparable_hash_is_weak_partial():
    asset = make_asset("1", data=b"other")
    candidate = classify_candidate(uploaded(perceptual_hash=BASE_HASH), asset, via_hint=True)

    assert candidate.match_type == MatchType.PARTIAL
    assert candidate.confidence == 0.3


def test_no_evidence_is_excluded():
    asset = make_asset("1", data=b"other")
    assert classify_candidate(uploaded(perceptual_hash=BASE_HASH), asset) is None
    assert classify_candidate(uploaded(), asset) is None


def test_mismatched_perceptual_lengths_fail_loudly():
    asset = make_asset("1", data=b"other", perceptual_hash="0" * 256)
    with pytest.raises(LengthMismatchError):
        classify_candidate(uploaded(perceptual_hash=BASE_HASH), asset)


def test_match_candidates_keeps_input_order_and_drops_unrelated():
    assets = [
        make_asset("similar", data=b"a", perceptual_hash=FIVE_BITS_OFF),
        make_asset("unrelated", data=b"b"),
        make_asset("exact", data=b"upload"),
        make_asset("hinted", data=b"c"),
    ]
    matches = match_candidates(uploaded(perceptual_hash=BASE_HASH), assets, hinted_ids={"hinted"})

    assert [m.asset.asset_id for m in matches] == ["similar", "exact", "hinted"]
    assert [m.match_type for m in matches] == ["similar", "exact", "partial"]
