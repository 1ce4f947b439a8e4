"""
Collaborator contracts consumed by the verification engine.

Implementations are injected into VerificationService; the engine never
imports a concrete registry, ledger or store.
"""

from typing import List, Optional, Protocol

from asset_verify.models.asset import LedgerRecord, RegisteredAsset


class AssetRegistry(Protocol):
    def find_by_id(self, asset_id: str) -> Optional[RegisteredAsset]: ...

    def find_by_content_hash(self, content_hash: str) -> List[RegisteredAsset]: ...

    def find_by_perceptual_hash(self, perceptual_hash: str) -> List[RegisteredAsset]: ...

    def find_by_storage_ref(self, storage_ref: str) -> Optional[RegisteredAsset]: ...


class Ledger(Protocol):
    def exists_ref(self, storage_ref: str) -> bool: ...

    def get_record(self, asset_id: str) -> Optional[LedgerRecord]: ...


class ContentStore(Protocol):
    def fetch_bytes(self, storage_ref: str) -> bytes: ...
