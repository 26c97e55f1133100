"""
Presentation verification.

Verification runs in two stages:

1. The holder's signature over the presentation, recomputed over the
   redacted credential list exactly as presented. A failure here ends
   verification.
2. For every presented credential, the issuer's signature over the
   matching full credential, supplied separately by the caller. Each
   credential is checked independently and every failure is reported.

Expected failures never raise; they become diagnostics on the result.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from vc_engine.canonical import canonicalize
from vc_engine.did import did_address
from vc_engine.errors import (
    MalformedInputError,
    MissingReferenceError,
    SignatureRecoveryError,
)
from vc_engine.issuer import CREDENTIAL_TYPE, unsigned_document
from vc_engine.presentation import PRESENTATION_TYPE, presentation_payload
from vc_engine.signing import addresses_match, recover_address

FullCredentials = Union[Mapping[str, Mapping[str, Any]], Iterable[Mapping[str, Any]]]


class VerificationStatus(Enum):
    """Overall verification status."""

    VALID = "valid"
    INVALID = "invalid"


@dataclass
class CredentialCheck:
    """Outcome of the issuer-signature check for one credential."""

    credential_id: str | None
    valid: bool
    error: str | None = None


@dataclass
class PresentationVerificationResult:
    """Complete presentation verification result."""

    status: VerificationStatus
    holder: str | None
    holder_signature_valid: bool = False
    credentials: list[CredentialCheck] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """Check if the holder and every credential verified."""
        if self.status != VerificationStatus.VALID:
            return False
        if not self.holder_signature_valid:
            return False
        return all(check.valid for check in self.credentials)

    def __bool__(self) -> bool:
        return self.is_valid


class PresentationVerifier:
    """Verifies presentations against the full credentials they were redacted from."""

    def verify(
        self,
        presentation: Mapping[str, Any],
        full_credentials: FullCredentials,
    ) -> PresentationVerificationResult:
        """Verify a presentation.

        Args:
            presentation: The holder-signed presentation.
            full_credentials: The unredacted credentials, either as a mapping
                from credential id or as a list.

        Returns:
            PresentationVerificationResult with details of all checks.
        """
        holder = presentation.get("holder") if isinstance(presentation, Mapping) else None

        structure_errors = self._validate_structure(presentation)
        if structure_errors:
            return PresentationVerificationResult(
                status=VerificationStatus.INVALID,
                holder=holder if isinstance(holder, str) else None,
                errors=structure_errors,
            )

        # Stage 1: holder signature
        holder_error = self._verify_holder(presentation)
        if holder_error:
            return PresentationVerificationResult(
                status=VerificationStatus.INVALID,
                holder=holder,
                errors=[f"Holder signature verification failed: {holder_error}"],
            )

        # Stage 2: issuer signatures
        full_index = self._index(full_credentials)
        checks = [
            self._check_credential(position, presented, full_index)
            for position, presented in enumerate(presentation["verifiableCredential"])
        ]
        errors = [check.error for check in checks if check.error]

        return PresentationVerificationResult(
            status=VerificationStatus.INVALID if errors else VerificationStatus.VALID,
            holder=holder,
            holder_signature_valid=True,
            credentials=checks,
            errors=errors,
        )

    def verify_credential(self, credential: Mapping[str, Any]) -> CredentialCheck:
        """Verify the issuer's signature on a single full credential."""
        credential_id = credential.get("id") if isinstance(credential, Mapping) else None
        try:
            self._verify_issuer_signature(credential)
        except (MalformedInputError, SignatureRecoveryError) as e:
            return CredentialCheck(credential_id=credential_id, valid=False, error=str(e))
        return CredentialCheck(credential_id=credential_id, valid=True)

    def _validate_structure(self, presentation: Any) -> list[str]:
        """Validate basic VP structure.

        Returns:
            List of validation errors (empty if valid).
        """
        if not isinstance(presentation, Mapping):
            return ["Presentation must be a JSON object"]

        errors: list[str] = []

        if "@context" not in presentation:
            errors.append("Missing @context")
        types = presentation.get("type")
        if types is None:
            errors.append("Missing type")
        elif PRESENTATION_TYPE not in (types if isinstance(types, list) else [types]):
            errors.append(f"type must include '{PRESENTATION_TYPE}'")
        if not isinstance(presentation.get("verifiableCredential"), list):
            errors.append("verifiableCredential must be a list")
        if not isinstance(presentation.get("holder"), str):
            errors.append("Missing holder")
        proof = presentation.get("proof")
        if not isinstance(proof, Mapping):
            errors.append("Missing proof")
        elif not isinstance(proof.get("jws"), str):
            errors.append("Missing proof.jws")

        return errors

    def _verify_holder(self, presentation: Mapping[str, Any]) -> str | None:
        """Check the holder's signature. Returns an error message, or None if valid."""
        holder = presentation["holder"]
        try:
            expected = did_address(holder)
            message = canonicalize(presentation_payload(presentation))
            signer = recover_address(message, presentation["proof"]["jws"])
        except (MalformedInputError, SignatureRecoveryError) as e:
            return str(e)

        if not addresses_match(signer, expected):
            return f"signed by {signer}, expected holder {holder}"
        return None

    def _index(self, full_credentials: FullCredentials) -> dict[str, Mapping[str, Any]]:
        """Index full credentials by id."""
        if isinstance(full_credentials, Mapping):
            return dict(full_credentials)
        return {
            c["id"]: c
            for c in full_credentials
            if isinstance(c, Mapping) and isinstance(c.get("id"), str)
        }

    def _check_credential(
        self,
        position: int,
        presented: Any,
        full_index: Mapping[str, Mapping[str, Any]],
    ) -> CredentialCheck:
        """Check one presented credential against its full counterpart."""
        if not isinstance(presented, Mapping) or not isinstance(presented.get("id"), str):
            return CredentialCheck(
                credential_id=None,
                valid=False,
                error=f"Credential at position {position} has no id",
            )

        credential_id = presented["id"]
        try:
            full = full_index.get(credential_id)
            if full is None:
                raise MissingReferenceError(credential_id)
            if not isinstance(full, Mapping):
                raise MalformedInputError("full credential must be a JSON object")

            self._check_disclosure(presented, full)
            self._verify_issuer_signature(full)

        except (MissingReferenceError, MalformedInputError, SignatureRecoveryError) as e:
            return CredentialCheck(
                credential_id=credential_id,
                valid=False,
                error=f"Credential {credential_id}: {e}",
            )

        return CredentialCheck(credential_id=credential_id, valid=True)

    def _check_disclosure(
        self,
        presented: Mapping[str, Any],
        full: Mapping[str, Any],
    ) -> None:
        """Ensure the presented copy only drops claims from the full credential.

        Raises:
            MalformedInputError: If any presented value differs from the full credential.
        """
        for key in set(presented) | set(full):
            if key == "credentialSubject":
                continue
            if (
                key not in presented
                or key not in full
                or canonicalize(presented[key]) != canonicalize(full[key])
            ):
                raise MalformedInputError(f"field '{key}' differs from the full credential")

        subject = presented.get("credentialSubject")
        full_subject = full.get("credentialSubject")
        if not isinstance(subject, Mapping) or not isinstance(full_subject, Mapping):
            raise MalformedInputError("credentialSubject must be an object")
        if canonicalize(subject.get("id")) != canonicalize(full_subject.get("id")):
            raise MalformedInputError("credentialSubject.id differs from the full credential")

        for key, value in subject.items():
            if key not in full_subject or canonicalize(full_subject[key]) != canonicalize(value):
                raise MalformedInputError(f"disclosed claim '{key}' differs from the full credential")

    def _verify_issuer_signature(self, credential: Mapping[str, Any]) -> None:
        """Recompute the issuer's signature over the credential without its proof.

        Raises:
            MalformedInputError: If the credential is structurally unusable.
            SignatureRecoveryError: If the signature cannot be recovered or the
                signer is not the issuer.
        """
        if not isinstance(credential, Mapping):
            raise MalformedInputError("Credential must be a JSON object")

        types = credential.get("type")
        if CREDENTIAL_TYPE not in (types if isinstance(types, list) else [types]):
            raise MalformedInputError(f"type must include '{CREDENTIAL_TYPE}'")

        issuer = credential.get("issuer")
        if not isinstance(issuer, str):
            raise MalformedInputError("Missing issuer")

        proof = credential.get("proof")
        if not isinstance(proof, Mapping) or not isinstance(proof.get("jws"), str):
            raise MalformedInputError("Missing proof.jws")

        expected = did_address(issuer)
        message = canonicalize(unsigned_document(credential))
        signer = recover_address(message, proof["jws"])

        if not addresses_match(signer, expected):
            raise SignatureRecoveryError(
                f"issuer signature mismatch: signed by {signer}, expected issuer {issuer}"
            )


def verify_presentation(
    presentation: Mapping[str, Any],
    full_credentials: FullCredentials,
) -> PresentationVerificationResult:
    """Convenience function to verify a presentation.

    Args:
        presentation: The holder-signed presentation.
        full_credentials: The unredacted credentials.

    Returns:
        PresentationVerificationResult with details of all checks.
    """
    return PresentationVerifier().verify(presentation, full_credentials)


def verify_credential(credential: Mapping[str, Any]) -> CredentialCheck:
    """Convenience function to verify a single full credential."""
    return PresentationVerifier().verify_credential(credential)
