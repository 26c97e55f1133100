"""
Presentation building with selective disclosure.

Each credential is redacted down to the claims the holder chooses to
reveal. The issuer's proof is copied unchanged: it still covers the full
credential, which the verifier obtains separately. The holder signs the
presentation over the redacted list.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Callable

from vc_engine.canonical import canonicalize
from vc_engine.did import DEFAULT_DID_METHOD, parse_did
from vc_engine.errors import MalformedInputError
from vc_engine.issuer import CREDENTIALS_CONTEXT
from vc_engine.signing import Signer, build_proof, utc_now

logger = logging.getLogger(__name__)

PRESENTATION_TYPE = "VerifiablePresentation"
AUTHENTICATION_PURPOSE = "authentication"

RevealMap = Mapping[str, Sequence[str]]


def validate_reveal_map(reveal_map: Any) -> dict[str, list[str]]:
    """Check a reveal map and return it as a dict of lists.

    Raises:
        MalformedInputError: Unless it maps credential ids to lists of claim keys.
    """
    if not isinstance(reveal_map, Mapping):
        raise MalformedInputError("Reveal map must be a JSON object")

    result: dict[str, list[str]] = {}
    for credential_id, keys in reveal_map.items():
        if not isinstance(keys, (list, tuple)) or not all(isinstance(k, str) for k in keys):
            raise MalformedInputError(
                f"Reveal map entry for {credential_id} must be a list of claim keys"
            )
        result[credential_id] = list(keys)
    return result


def redact_credential(credential: Mapping[str, Any], reveal: Iterable[str]) -> dict[str, Any]:
    """Copy ``credential`` keeping only the subject id and the revealed claims.

    Keys not present in the subject are skipped. Every field outside
    ``credentialSubject`` is copied as is, including ``proof``.
    """
    subject = credential.get("credentialSubject") or {}
    if not isinstance(subject, Mapping):
        raise MalformedInputError(f"Credential {credential.get('id')} has no credentialSubject object")

    redacted_subject: dict[str, Any] = {"id": subject.get("id")}
    for key in reveal:
        if key == "id" or key in redacted_subject:
            continue
        if key not in subject:
            logger.debug("Claim %s not present in %s, skipped", key, credential.get("id"))
            continue
        redacted_subject[key] = copy.deepcopy(subject[key])

    redacted = copy.deepcopy(dict(credential))
    redacted["credentialSubject"] = redacted_subject
    return redacted


def presentation_payload(presentation: Mapping[str, Any]) -> dict[str, Any]:
    """The fields covered by the holder's signature."""
    return {
        "@context": presentation.get("@context"),
        "type": presentation.get("type"),
        "verifiableCredential": presentation.get("verifiableCredential"),
        "holder": presentation.get("holder"),
    }


class PresentationBuilder:
    """Builds holder-signed presentations from stored credentials."""

    def __init__(
        self,
        signer: Signer,
        did_method: str = DEFAULT_DID_METHOD,
        clock: Callable[[], str] = utc_now,
    ) -> None:
        self.signer = signer
        self.did_method = did_method
        self.clock = clock

    def build(
        self,
        credentials: Sequence[Mapping[str, Any]],
        reveal_map: RevealMap | None = None,
        holder_did: str | None = None,
        include: Iterable[str] | None = None,
    ) -> dict[str, Any]:
        """Build and sign a presentation.

        Args:
            credentials: Stored credentials, in presentation order.
            reveal_map: Credential id to the claim keys to disclose. Missing
                entries disclose only the subject id.
            holder_did: Holder DID. Defaults to the signer's DID.
            include: Restrict the presentation to these credential ids.

        Returns:
            The signed presentation.
        """
        reveal = validate_reveal_map(reveal_map or {})
        holder = holder_did or self.signer.did(self.did_method)
        parse_did(holder)

        selected = list(credentials)
        if include is not None:
            wanted = set(include)
            selected = [c for c in selected if c.get("id") in wanted]
            missing = wanted - {c.get("id") for c in selected}
            if missing:
                raise MalformedInputError(
                    f"Credentials not found: {', '.join(sorted(missing))}"
                )

        known_ids = {c.get("id") for c in selected}
        for credential_id in reveal:
            if credential_id not in known_ids:
                logger.warning("Reveal map names unknown credential %s", credential_id)

        redacted = [redact_credential(c, reveal.get(c.get("id"), [])) for c in selected]

        presentation: dict[str, Any] = {
            "@context": [CREDENTIALS_CONTEXT],
            "type": [PRESENTATION_TYPE],
            "verifiableCredential": redacted,
            "holder": holder,
        }
        presentation["proof"] = build_proof(
            self.signer,
            canonicalize(presentation_payload(presentation)),
            holder,
            AUTHENTICATION_PURPOSE,
            clock=self.clock,
        )

        logger.info("Built presentation of %d credential(s) for %s", len(redacted), holder)
        return presentation
