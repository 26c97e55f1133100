"""
Error taxonomy for credential issuance, presentation and verification.

Issuance-side errors propagate to the caller. Verification converts
signature, reference and canonicalization failures into diagnostics.
"""


class VCEngineError(Exception):
    """Base class for all vc-engine errors."""


class PreconditionError(VCEngineError):
    """Raised when an operation cannot start (unresolved DID, missing file, unset setting)."""


class MalformedInputError(VCEngineError):
    """Raised when claims, reveal maps or documents are not valid structured data."""


class CanonicalizationError(MalformedInputError):
    """Raised when a value has no canonical serialization."""


class SignatureRecoveryError(VCEngineError):
    """Raised when a signer address cannot be recovered from a signature."""


class MissingReferenceError(VCEngineError):
    """Raised when a presented credential has no full credential to check against."""

    def __init__(self, credential_id: str) -> None:
        super().__init__(f"Missing full credential for {credential_id}")
        self.credential_id = credential_id


class RegistryError(VCEngineError):
    """Raised when a DID registry operation fails."""
