"""
Pydantic models for content identity and registered assets.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, validator

from asset_verify.core.utils import is_bit_string, is_hex_digest


class ContentFingerprint(BaseModel):
    """Identity and similarity fingerprint of one piece of content."""
    content_hash: str = Field(..., description="SHA-256 hex digest of the raw bytes")
    perceptual_hash: Optional[str] = Field(
        None, description="Average-hash bit string, images only"
    )
    file_size: int = Field(..., ge=0, description="Content size in bytes")
    mime_type: str = Field(..., description="MIME type of the content")

    class Config:
        frozen = True

    @validator("content_hash")
    def validate_content_hash(cls, v):
        if not is_hex_digest(v):
            raise ValueError("content_hash must be a 64 character lowercase hex digest")
        return v

    @validator("perceptual_hash")
    def validate_perceptual_hash(cls, v):
        if v is not None and not is_bit_string(v):
            raise ValueError("perceptual_hash must be a string of '0' and '1' characters")
        return v


class ProvenanceRecord(BaseModel):
    """Binds content identity, authorship and time; created once at registration."""
    content_hash: str = Field(..., description="SHA-256 hex digest of the raw bytes")
    uploader: str = Field(..., description="Identity of the uploader")
    timestamp: int = Field(..., ge=0, description="Registration time, epoch milliseconds")
    metadata: Dict[str, Any] = Field(default_factory=dict)
    provenance_hash: str = Field(..., description="Digest binding the fields above")

    class Config:
        frozen = True


class RegisteredAsset(BaseModel):
    """Asset record owned by the registry; read-only to the verification engine."""
    asset_id: str = Field(..., description="Unique asset identifier (token id)")
    storage_ref: str = Field(..., description="Storage reference (gs://, walrus://, local://)")
    content_hash: str = Field(..., description="SHA-256 hex digest of the registered bytes")
    perceptual_hash: Optional[str] = Field(None, description="Average-hash bit string")
    provenance_hash: Optional[str] = Field(None, description="Provenance digest")
    creator: Optional[str] = Field(None, description="Original creator")
    uploader: Optional[str] = Field(None, description="Registering identity")
    created_at: Optional[datetime] = Field(None, description="Registration time")
    is_verified: bool = Field(default=False, description="Existing verification flag")
    original_name: Optional[str] = Field(None, description="Original filename")
    mime_type: Optional[str] = Field(None, description="MIME type at registration")
    file_size: Optional[int] = Field(None, ge=0, description="File size in bytes")


class LedgerRecord(BaseModel):
    """On-ledger record for a registered asset."""
    asset_id: str
    storage_ref: Optional[str] = None
    provenance_hash: Optional[str] = None
    creator: Optional[str] = None
    created_at: Optional[int] = Field(None, description="Ledger timestamp, epoch seconds")
