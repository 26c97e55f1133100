"""
Recoverable message signatures.

Messages are signed with secp256k1 ECDSA using EIP-191 personal message
prefixing (``eth-account``). The signer's address is recovered from the
message and signature alone, so proofs never need to carry a public key.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys.exceptions import BadSignature, ValidationError

from vc_engine.did import DEFAULT_DID_METHOD, make_did, verification_method
from vc_engine.errors import SignatureRecoveryError

PROOF_TYPE = "EcdsaSecp256k1RecoverySignature2020"


def utc_now() -> str:
    """Current UTC time as an ISO-8601 string with second precision."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


class Signer:
    """Signs messages with a single private key."""

    def __init__(self, private_key: str | bytes) -> None:
        """Initialize the signer.

        Args:
            private_key: 32-byte secp256k1 key, raw or hex encoded.
        """
        try:
            self._account = Account.from_key(private_key)
        except (ValueError, TypeError, ValidationError) as e:
            raise ValueError(f"Invalid private key: {e}") from e

    @property
    def address(self) -> str:
        """Checksummed account address."""
        return self._account.address

    def did(self, method: str = DEFAULT_DID_METHOD) -> str:
        """DID derived from this signer's address."""
        return make_did(self.address, method)

    def sign(self, message: bytes) -> str:
        """Sign ``message`` and return the 65-byte signature as ``0x`` hex."""
        signed = self._account.sign_message(encode_defunct(primitive=message))
        return "0x" + bytes(signed.signature).hex()

    def sign_transaction(self, transaction: dict[str, Any]) -> bytes:
        """Sign a transaction dict and return the raw encoded transaction."""
        return bytes(self._account.sign_transaction(transaction).raw_transaction)


def recover_address(message: bytes, signature: str) -> str:
    """Recover the address that signed ``message``.

    Raises:
        SignatureRecoveryError: If the signature cannot be parsed or recovered.
    """
    try:
        return Account.recover_message(encode_defunct(primitive=message), signature=signature)
    except (ValueError, TypeError, BadSignature, ValidationError) as e:
        raise SignatureRecoveryError(f"Cannot recover signer: {e}") from e


def addresses_match(first: str | None, second: str | None) -> bool:
    """Compare two hex addresses ignoring case. Empty values never match."""
    if not first or not second:
        return False
    return first.lower() == second.lower()


def build_proof(
    signer: Signer,
    message: bytes,
    did: str,
    purpose: str,
    clock: Callable[[], str] = utc_now,
) -> dict[str, Any]:
    """Sign ``message`` and wrap the signature in a proof object."""
    return {
        "type": PROOF_TYPE,
        "created": clock(),
        "proofPurpose": purpose,
        "verificationMethod": verification_method(did),
        "jws": signer.sign(message),
    }
