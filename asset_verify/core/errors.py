"""
Exception hierarchy for fingerprinting and verification.

Only InputError and LengthMismatchError surface to callers of the public
verification API. Collaborator errors are absorbed into the affected
candidate's flags or the result diagnostics.
"""


class VerificationError(Exception):
    """Base exception for all verification engine errors."""
    pass


class InputError(VerificationError, ValueError):
    """Empty or unreadable bytes, or a mime type the operation cannot handle."""
    pass


class LengthMismatchError(VerificationError, ValueError):
    """Perceptual hashes of different bit lengths were compared."""

    def __init__(self, left_length: int, right_length: int):
        self.left_length = left_length
        self.right_length = right_length
        super().__init__(
            f"Cannot compare perceptual hashes of different lengths: "
            f"{left_length} != {right_length}"
        )


class CollaboratorError(VerificationError):
    """A downstream registry, ledger or store call failed."""
    pass


class RegistryUnavailable(CollaboratorError):
    pass


class LedgerUnavailable(CollaboratorError):
    pass


class StoreUnavailable(CollaboratorError):
    pass


class StoreNotFound(CollaboratorError):
    """The store has no content under the requested storage reference."""
    pass
