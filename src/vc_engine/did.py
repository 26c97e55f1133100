"""
Helpers for ``did:<method>:<address>`` identifiers.
"""

from __future__ import annotations

from vc_engine.errors import MalformedInputError

DEFAULT_DID_METHOD = "ethr"
KEY_FRAGMENT = "keys-1"


def make_did(address: str, method: str = DEFAULT_DID_METHOD) -> str:
    """Build a DID from an account address."""
    if not address:
        raise MalformedInputError("Cannot build a DID from an empty address")
    return f"did:{method}:{address.lower()}"


def parse_did(did: str) -> tuple[str, str]:
    """Split a DID into ``(method, address)``.

    The address is the last ``:`` separated segment. A trailing fragment
    such as ``#keys-1`` is ignored.

    Raises:
        MalformedInputError: If ``did`` is not of the form ``did:<method>:<address>``.
    """
    if not isinstance(did, str):
        raise MalformedInputError(f"DID must be a string, got {type(did).__name__}")

    base = did.split("#", 1)[0]
    parts = base.split(":")
    if len(parts) < 3 or parts[0] != "did" or not all(parts[1:]):
        raise MalformedInputError(f"Invalid DID: {did}")

    return parts[1], parts[-1]


def did_address(did: str) -> str:
    """Return the address segment of a DID."""
    return parse_did(did)[1]


def verification_method(did: str) -> str:
    """Return the key reference used in proofs, e.g. ``did:ethr:0xabc#keys-1``."""
    return f"{did}#{KEY_FRAGMENT}"
