"""Tests for presentation building and redaction."""

import pytest

from vc_engine import (
    MalformedInputError,
    canonicalize,
    recover_address,
    redact_credential,
)
from vc_engine.presentation import presentation_payload, validate_reveal_map


class TestRedactCredential:
    """Tests for redact_credential()."""

    def test_keeps_only_revealed_claims(self, credential):
        redacted = redact_credential(credential, ["age"])
        assert redacted["credentialSubject"] == {
            "id": credential["credentialSubject"]["id"],
            "age": 30,
        }

    def test_empty_reveal_keeps_subject_id(self, credential):
        redacted = redact_credential(credential, [])
        assert redacted["credentialSubject"] == {"id": credential["credentialSubject"]["id"]}

    def test_other_fields_unchanged(self, credential):
        """Test that id, issuer, issuanceDate and proof are copied verbatim."""
        redacted = redact_credential(credential, [])
        for key in ("@context", "id", "type", "issuer", "issuanceDate", "proof"):
            assert redacted[key] == credential[key]

    def test_unknown_keys_skipped(self, credential):
        redacted = redact_credential(credential, ["age", "email"])
        assert "email" not in redacted["credentialSubject"]
        assert redacted["credentialSubject"]["age"] == 30

    def test_original_not_mutated(self, credential):
        before = canonicalize(credential)
        redacted = redact_credential(credential, ["age"])
        redacted["proof"]["jws"] = "0x00"
        assert canonicalize(credential) == before

    def test_reveal_id_is_noop(self, credential):
        redacted = redact_credential(credential, ["id"])
        assert list(redacted["credentialSubject"]) == ["id"]

    def test_reveal_order(self, credential):
        redacted = redact_credential(credential, ["name", "age"])
        assert list(redacted["credentialSubject"]) == ["id", "name", "age"]


class TestPresentationBuilder:
    """Tests for PresentationBuilder.build()."""

    def test_document_shape(self, builder, credential, holder_signer):
        presentation = builder.build([credential], {credential["id"]: ["age"]})

        assert set(presentation) == {"@context", "type", "verifiableCredential", "holder", "proof"}
        assert presentation["type"] == ["VerifiablePresentation"]
        assert presentation["holder"] == holder_signer.did()
        assert presentation["verifiableCredential"][0]["credentialSubject"] == {
            "id": holder_signer.did(),
            "age": 30,
        }

        proof = presentation["proof"]
        assert proof["proofPurpose"] == "authentication"
        assert proof["verificationMethod"] == f"{holder_signer.did()}#keys-1"

    def test_issuer_proof_not_recomputed(self, builder, credential):
        presentation = builder.build([credential], {})
        assert presentation["verifiableCredential"][0]["proof"] == credential["proof"]

    def test_holder_signs_redacted_list(self, builder, credential, holder_signer):
        """Test that the holder's signature covers the envelope with the redacted list."""
        presentation = builder.build([credential], {credential["id"]: ["name"]})
        message = canonicalize(presentation_payload(presentation))
        assert recover_address(message, presentation["proof"]["jws"]) == holder_signer.address

    def test_missing_reveal_entry_discloses_nothing(self, builder, issuer, holder_signer):
        first = issuer.issue(holder_signer.did(), {"age": 30})
        second = issuer.issue(holder_signer.did(), {"name": "Alice"})

        presentation = builder.build([first, second], {first["id"]: ["age"]})

        subjects = [vc["credentialSubject"] for vc in presentation["verifiableCredential"]]
        assert subjects == [
            {"id": holder_signer.did(), "age": 30},
            {"id": holder_signer.did()},
        ]

    def test_include_filter(self, builder, issuer, holder_signer):
        first = issuer.issue(holder_signer.did(), {"age": 30})
        second = issuer.issue(holder_signer.did(), {"name": "Alice"})

        presentation = builder.build([first, second], {}, include=[second["id"]])

        assert [vc["id"] for vc in presentation["verifiableCredential"]] == [second["id"]]

    def test_include_unknown_id(self, builder, credential):
        with pytest.raises(MalformedInputError, match="urn:uuid:unknown"):
            builder.build([credential], {}, include=["urn:uuid:unknown"])

    def test_unknown_reveal_id_warns(self, builder, credential, caplog):
        builder.build([credential], {"urn:uuid:unknown": ["age"]})
        assert "unknown credential urn:uuid:unknown" in caplog.text

    def test_explicit_holder(self, builder, credential):
        presentation = builder.build([credential], {}, holder_did="did:ethr:0xabc")
        assert presentation["holder"] == "did:ethr:0xabc"
        assert presentation["proof"]["verificationMethod"] == "did:ethr:0xabc#keys-1"

    def test_invalid_holder(self, builder, credential):
        with pytest.raises(MalformedInputError):
            builder.build([credential], {}, holder_did="holder")

    def test_empty_store(self, builder):
        presentation = builder.build([], {})
        assert presentation["verifiableCredential"] == []


class TestValidateRevealMap:
    """Tests for reveal map validation."""

    def test_valid(self):
        assert validate_reveal_map({"urn:uuid:1": ("age", "name")}) == {"urn:uuid:1": ["age", "name"]}

    def test_not_an_object(self):
        with pytest.raises(MalformedInputError):
            validate_reveal_map(["age"])

    def test_entry_not_a_list(self):
        with pytest.raises(MalformedInputError):
            validate_reveal_map({"urn:uuid:1": "age"})

    def test_non_string_key(self):
        with pytest.raises(MalformedInputError):
            validate_reveal_map({"urn:uuid:1": ["age", 3]})
