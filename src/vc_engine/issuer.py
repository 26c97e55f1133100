"""
Credential issuance.

A credential is signed over the canonical form of every field except
``proof``, then the proof is attached.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from typing import Any, Callable

from vc_engine.canonical import canonicalize
from vc_engine.did import DEFAULT_DID_METHOD, parse_did
from vc_engine.errors import MalformedInputError
from vc_engine.registry import DIDRegistry, require_controller
from vc_engine.signing import Signer, addresses_match, build_proof, utc_now
from vc_engine.store import CredentialStore

logger = logging.getLogger(__name__)

CREDENTIALS_CONTEXT = "https://www.w3.org/2018/credentials/v1"
CREDENTIAL_TYPE = "VerifiableCredential"
ASSERTION_PURPOSE = "assertionMethod"

_CLAIM_SCALARS = (str, int, bool, type(None))


def validate_claims(claims: Any) -> dict[str, Any]:
    """Check a claim set and return it as a plain dict.

    Claim values may be strings, integers, booleans, null, lists or nested
    objects of those. The reserved ``id`` key is not allowed.

    Raises:
        MalformedInputError: If the claims are not an object or hold unsupported values.
    """
    if not isinstance(claims, Mapping):
        raise MalformedInputError("Claims must be a JSON object")
    if "id" in claims:
        raise MalformedInputError("Claim key 'id' is reserved for the subject DID")

    for key, value in claims.items():
        if not isinstance(key, str):
            raise MalformedInputError(f"Claim keys must be strings, got {key!r}")
        _check_claim_value(key, value)

    return dict(claims)


def _check_claim_value(path: str, value: Any) -> None:
    if isinstance(value, float):
        raise MalformedInputError(f"Claim {path} is not an integer: {value!r}")
    if isinstance(value, _CLAIM_SCALARS):
        return
    if isinstance(value, list):
        for i, item in enumerate(value):
            _check_claim_value(f"{path}[{i}]", item)
        return
    if isinstance(value, Mapping):
        for key, item in value.items():
            if not isinstance(key, str):
                raise MalformedInputError(f"Claim {path} has a non-string key {key!r}")
            _check_claim_value(f"{path}.{key}", item)
        return
    raise MalformedInputError(f"Claim {path} has unsupported type {type(value).__name__}")


def unsigned_document(document: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of ``document`` without its ``proof`` field."""
    return {k: v for k, v in document.items() if k != "proof"}


class CredentialIssuer:
    """Issues signed credentials on behalf of the signer's DID."""

    def __init__(
        self,
        signer: Signer,
        registry: DIDRegistry,
        store: CredentialStore | None = None,
        did_method: str = DEFAULT_DID_METHOD,
        clock: Callable[[], str] = utc_now,
    ) -> None:
        """Initialize the issuer.

        Args:
            signer: Issuer's signing key. The issuer DID is derived from its address.
            registry: Registry the issuer DID must be registered in.
            store: Store that receives every issued credential. Nothing is stored if omitted.
            did_method: DID method used for the issuer DID.
            clock: Source of ISO-8601 timestamps.
        """
        self.signer = signer
        self.registry = registry
        self.store = store
        self.did_method = did_method
        self.clock = clock

    @property
    def did(self) -> str:
        return self.signer.did(self.did_method)

    def issue(
        self,
        subject_did: str,
        claims: Mapping[str, Any],
        credential_type: str | None = None,
    ) -> dict[str, Any]:
        """Issue a credential about ``subject_did``.

        Args:
            subject_did: DID of the credential subject.
            claims: Claim key/value pairs.
            credential_type: Extra type appended after ``VerifiableCredential``.

        Returns:
            The signed credential.

        Raises:
            PreconditionError: If the issuer DID is not registered.
            MalformedInputError: If the subject DID or claims are invalid.
        """
        parse_did(subject_did)
        claims = validate_claims(claims)

        issuer_did = self.did
        controller = require_controller(self.registry, issuer_did)
        if not addresses_match(controller, self.signer.address):
            logger.warning(
                "Issuer %s is controlled by %s, not the signing key %s",
                issuer_did,
                controller,
                self.signer.address,
            )

        types = [CREDENTIAL_TYPE]
        if credential_type and credential_type != CREDENTIAL_TYPE:
            types.append(credential_type)

        credential: dict[str, Any] = {
            "@context": [CREDENTIALS_CONTEXT],
            "id": f"urn:uuid:{uuid.uuid4()}",
            "type": types,
            "issuer": issuer_did,
            "issuanceDate": self.clock(),
            "credentialSubject": {"id": subject_did, **claims},
        }

        credential["proof"] = build_proof(
            self.signer,
            canonicalize(unsigned_document(credential)),
            issuer_did,
            ASSERTION_PURPOSE,
            clock=self.clock,
        )

        if self.store is not None:
            self.store.append(credential)

        logger.info("Issued credential %s from %s", credential["id"], issuer_did)
        return credential
