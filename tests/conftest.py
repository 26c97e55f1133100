"""Shared fixtures."""

import pytest

from vc_engine import CredentialIssuer, CredentialStore, InMemoryRegistry, Signer
from vc_engine.presentation import PresentationBuilder

ISSUER_KEY = "0x" + "11" * 32
HOLDER_KEY = "0x" + "22" * 32
OTHER_KEY = "0x" + "33" * 32

FIXED_TIME = "2025-01-15T10:00:00Z"


def fixed_clock() -> str:
    return FIXED_TIME


@pytest.fixture
def issuer_signer():
    return Signer(ISSUER_KEY)


@pytest.fixture
def holder_signer():
    return Signer(HOLDER_KEY)


@pytest.fixture
def other_signer():
    return Signer(OTHER_KEY)


@pytest.fixture
def registry(issuer_signer):
    """Registry with the issuer DID registered to its own key."""
    registry = InMemoryRegistry()
    registry.create_did(issuer_signer.did(), issuer_signer.address)
    return registry


@pytest.fixture
def store(tmp_path):
    return CredentialStore(tmp_path / "credentials.json")


@pytest.fixture
def issuer(issuer_signer, registry, store):
    return CredentialIssuer(issuer_signer, registry, store=store, clock=fixed_clock)


@pytest.fixture
def builder(holder_signer):
    return PresentationBuilder(holder_signer, clock=fixed_clock)


@pytest.fixture
def credential(issuer, holder_signer):
    """A credential about the holder with three claims."""
    return issuer.issue(
        holder_signer.did(),
        {"name": "Alice", "age": 30, "country": "NL"},
    )
