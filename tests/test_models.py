import pytest
from pydantic import ValidationError

from asset_verify.models.asset import ContentFingerprint
from asset_verify.models.verification import MatchCandidate, VerificationOptions
from fakes import make_asset


def test_fingerprint_rejects_malformed_hashes():
    with pytest.raises(ValidationError):
        ContentFingerprint(content_hash="xyz", file_size=1, mime_type="image/png")
    with pytest.raises(ValidationError):
        ContentFingerprint(content_hash="a" * 64, perceptual_hash="0123", file_size=1, mime_type="image/png")


def test_confidence_is_bounded():
    with pytest.raises(ValidationError):
        MatchCandidate(asset=make_asset("1"), match_type="exact", confidence=1.5)


def test_options_bounds():
    assert VerificationOptions().cross_check is True
    with pytest.raises(ValidationError):
        VerificationOptions(similarity_threshold=65)
    with pytest.raises(ValidationError):
        VerificationOptions(deadline_seconds=0)
