"""
Pydantic models for match classification and verification results.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .asset import ContentFingerprint, LedgerRecord, RegisteredAsset


class MatchType(str, Enum):
    """Enumeration of match strengths, strongest first."""
    EXACT = "exact"
    SIMILAR = "similar"
    PARTIAL = "partial"


class VerificationStatus(str, Enum):
    """Overall verdict of a verification request."""
    VERIFIED = "VERIFIED"
    SIMILAR = "SIMILAR"
    PARTIAL = "PARTIAL"
    NOT_FOUND = "NOT_FOUND"


class MatchCandidate(BaseModel):
    """A registered asset together with the evidence that it matches the upload."""
    asset: RegisteredAsset
    match_type: MatchType
    confidence: float = Field(..., ge=0.0, le=1.0, description="Heuristic match certainty")
    hamming_distance: Optional[int] = Field(None, ge=0, description="Perceptual hash distance")

    class Config:
        use_enum_values = True


class CandidateCheck(BaseModel):
    """
    Cross-check outcome for one candidate.

    ``None`` means unknown: the check was skipped, its collaborator was
    unavailable, or it did not finish before the deadline.
    """
    asset_id: str
    ledger_verified: Optional[bool] = None
    integrity_valid: Optional[bool] = None
    file_size_match: Optional[bool] = None
    mime_type_match: Optional[bool] = None
    notes: List[str] = Field(default_factory=list)


class VerificationSummary(BaseModel):
    total_matches: int = 0
    exact_matches: int = 0
    similar_matches: int = 0
    partial_matches: int = 0
    ledger_verified_count: int = 0
    integrity_valid_count: int = 0
    average_confidence: float = 0.0


class VerificationHints(BaseModel):
    """Explicit pointers to a registered asset supplied by the caller."""
    asset_id: Optional[str] = Field(None, description="Registered asset identifier")
    storage_ref: Optional[str] = Field(None, description="Storage reference of the asset")


class VerificationOptions(BaseModel):
    cross_check: bool = Field(default=True, description="Run ledger and integrity checks")
    similarity_threshold: Optional[int] = Field(
        None, ge=0, le=64, description="Max Hamming distance for a similar match"
    )
    deadline_seconds: Optional[float] = Field(
        None, gt=0, description="Deadline for the cross-check stage"
    )


class VerificationResult(BaseModel):
    fingerprint: ContentFingerprint
    candidates: List[MatchCandidate] = Field(default_factory=list)
    checks: List[CandidateCheck] = Field(default_factory=list)
    summary: VerificationSummary = Field(default_factory=VerificationSummary)
    status: VerificationStatus = VerificationStatus.NOT_FOUND
    message: str = ""
    diagnostics: List[str] = Field(default_factory=list)

    class Config:
        use_enum_values = True


class AssetVerificationStatus(BaseModel):
    """Ledger standing of a single registered asset, looked up by id."""
    asset_id: str
    asset: Optional[RegisteredAsset] = None
    ledger_verified: Optional[bool] = None
    ledger_record: Optional[LedgerRecord] = None
    notes: List[str] = Field(default_factory=list)
