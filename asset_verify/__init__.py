"""
Asset Verify - Content Fingerprinting and Verification Engine

Derives deterministic identity and perceptual fingerprints from raw media
bytes and judges uploaded content against a registry of registered assets,
cross-checked against an immutable ledger and durable storage.
"""

__version__ = "1.0.0"
__author__ = "Proof of Creativity Team"
__description__ = "Content Fingerprinting and Verification Engine"
