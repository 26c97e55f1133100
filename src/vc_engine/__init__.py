"""
vc-engine - issue, present and verify DID-attributed credentials.

Supports:
- Canonical JSON serialization of claim documents
- Recoverable secp256k1 (EIP-191) signatures bound to did:<method>:<address>
- Selective disclosure when bundling credentials into a presentation
- Two-stage presentation verification (holder, then each issuer)
- DID registry contracts over Ethereum JSON-RPC
"""

from vc_engine.canonical import canonicalize
from vc_engine.config import Settings
from vc_engine.did import did_address, make_did, parse_did
from vc_engine.errors import (
    CanonicalizationError,
    MalformedInputError,
    MissingReferenceError,
    PreconditionError,
    RegistryError,
    SignatureRecoveryError,
    VCEngineError,
)
from vc_engine.issuer import CredentialIssuer
from vc_engine.presentation import PresentationBuilder, redact_credential
from vc_engine.registry import DIDRegistry, InMemoryRegistry, RpcDIDRegistry
from vc_engine.signing import Signer, addresses_match, recover_address
from vc_engine.store import CredentialStore
from vc_engine.verifier import (
    CredentialCheck,
    PresentationVerificationResult,
    PresentationVerifier,
    verify_credential,
    verify_presentation,
)

__version__ = "0.1.0"

__all__ = [
    "canonicalize",
    "Settings",
    "make_did",
    "parse_did",
    "did_address",
    "VCEngineError",
    "PreconditionError",
    "MalformedInputError",
    "CanonicalizationError",
    "SignatureRecoveryError",
    "MissingReferenceError",
    "RegistryError",
    "CredentialIssuer",
    "PresentationBuilder",
    "redact_credential",
    "DIDRegistry",
    "InMemoryRegistry",
    "RpcDIDRegistry",
    "Signer",
    "recover_address",
    "addresses_match",
    "CredentialStore",
    "PresentationVerifier",
    "PresentationVerificationResult",
    "CredentialCheck",
    "verify_presentation",
    "verify_credential",
]
