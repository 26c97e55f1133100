"""Tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner

from vc_engine import CredentialStore, InMemoryRegistry
from vc_engine import cli
from vc_engine.cli import main

from conftest import HOLDER_KEY, ISSUER_KEY


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "credentials.json"


@pytest.fixture
def cli_registry(monkeypatch, issuer_signer):
    """Replace the JSON-RPC registry with an in-memory one."""
    registry = InMemoryRegistry({issuer_signer.did(): issuer_signer.address})
    monkeypatch.setattr(cli, "_registry", lambda settings, signer=None: registry)
    return registry


@pytest.fixture
def claims_file(tmp_path):
    path = tmp_path / "claims.json"
    path.write_text(json.dumps({"name": "Alice", "age": 30}))
    return path


def invoke(runner, store_path, *args, key=None):
    options = ["--store", str(store_path)]
    if key:
        options += ["--private-key", key]
    return runner.invoke(main, options + [str(a) for a in args])


def issue_one(runner, store_path, holder_signer, claims_file):
    result = invoke(runner, store_path, "issue", holder_signer.did(), claims_file, key=ISSUER_KEY)
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


def present(runner, store_path, tmp_path, reveal):
    reveal_file = tmp_path / "reveal.json"
    reveal_file.write_text(json.dumps(reveal))
    output = tmp_path / "presentation.json"
    result = invoke(runner, store_path, "present", reveal_file, "--output", output, key=HOLDER_KEY)
    assert result.exit_code == 0, result.output
    return output


class TestIssueCommand:
    """Tests for `vc-engine issue`."""

    def test_issue(self, runner, store_path, cli_registry, holder_signer, claims_file):
        credential = issue_one(runner, store_path, holder_signer, claims_file)

        assert credential["credentialSubject"]["age"] == 30
        assert CredentialStore(store_path).load_all() == [credential]

    def test_issue_with_type(self, runner, store_path, cli_registry, holder_signer, claims_file):
        result = invoke(
            runner, store_path, "issue", holder_signer.did(), claims_file, "--type", "AgeCredential", key=ISSUER_KEY
        )
        assert json.loads(result.stdout)["type"] == ["VerifiableCredential", "AgeCredential"]

    def test_issue_missing_claims_file(self, runner, store_path, cli_registry, holder_signer, tmp_path):
        result = invoke(runner, store_path, "issue", holder_signer.did(), tmp_path / "absent.json", key=ISSUER_KEY)
        assert result.exit_code == 2
        assert "File not found" in result.output

    def test_issue_invalid_json(self, runner, store_path, cli_registry, holder_signer, tmp_path):
        claims = tmp_path / "claims.json"
        claims.write_text("{oops")
        result = invoke(runner, store_path, "issue", holder_signer.did(), claims, key=ISSUER_KEY)
        assert result.exit_code == 2
        assert "Invalid JSON" in result.output

    def test_issue_without_key(self, runner, store_path, cli_registry, holder_signer, claims_file, monkeypatch):
        monkeypatch.delenv("VC_PRIVATE_KEY", raising=False)
        result = invoke(runner, store_path, "issue", holder_signer.did(), claims_file)
        assert result.exit_code == 2
        assert "private_key" in result.output

    def test_issue_unregistered_issuer(self, runner, store_path, holder_signer, claims_file, monkeypatch):
        monkeypatch.setattr(cli, "_registry", lambda settings, signer=None: InMemoryRegistry())
        result = invoke(runner, store_path, "issue", holder_signer.did(), claims_file, key=ISSUER_KEY)
        assert result.exit_code == 2
        assert "is not registered" in result.output
        assert not store_path.exists()


class TestPresentAndVerifyCommands:
    """Tests for `vc-engine present` and `vc-engine verify`."""

    def test_round_trip(self, runner, store_path, tmp_path, cli_registry, holder_signer, claims_file):
        credential = issue_one(runner, store_path, holder_signer, claims_file)
        output = present(runner, store_path, tmp_path, {credential["id"]: ["age"]})

        presentation = json.loads(output.read_text())
        assert presentation["verifiableCredential"][0]["credentialSubject"] == {
            "id": holder_signer.did(),
            "age": 30,
        }

        result = invoke(runner, store_path, "verify", output, "--json-output")
        assert result.exit_code == 0, result.output
        report = json.loads(result.stdout)
        assert report["valid"] is True
        assert report["holder"] == holder_signer.did()

    def test_verify_rich_output(self, runner, store_path, tmp_path, cli_registry, holder_signer, claims_file):
        credential = issue_one(runner, store_path, holder_signer, claims_file)
        output = present(runner, store_path, tmp_path, {credential["id"]: []})

        result = invoke(runner, store_path, "verify", output)

        assert result.exit_code == 0
        assert "VALID" in result.output

    def test_verify_tampered(self, runner, store_path, tmp_path, cli_registry, holder_signer, claims_file):
        credential = issue_one(runner, store_path, holder_signer, claims_file)
        output = present(runner, store_path, tmp_path, {credential["id"]: ["age"]})

        presentation = json.loads(output.read_text())
        presentation["verifiableCredential"][0]["credentialSubject"]["age"] = 18
        output.write_text(json.dumps(presentation))

        result = invoke(runner, store_path, "verify", output, "--json-output")
        assert result.exit_code == 1
        report = json.loads(result.stdout)
        assert report["valid"] is False
        assert report["holder_signature_valid"] is False

    def test_verify_with_full_file(self, runner, store_path, tmp_path, cli_registry, holder_signer, claims_file):
        credential = issue_one(runner, store_path, holder_signer, claims_file)
        output = present(runner, store_path, tmp_path, {})

        empty = tmp_path / "full.json"
        empty.write_text("[]")
        result = invoke(runner, store_path, "verify", output, "--full", empty, "--json-output")

        assert result.exit_code == 1
        assert f"Missing full credential for {credential['id']}" in result.stdout

    def test_verify_missing_file(self, runner, store_path, tmp_path):
        result = invoke(runner, store_path, "verify", tmp_path / "absent.json")
        assert result.exit_code == 2

    def test_present_invalid_reveal_map(self, runner, store_path, tmp_path):
        reveal_file = tmp_path / "reveal.json"
        reveal_file.write_text('["age"]')
        result = invoke(runner, store_path, "present", reveal_file, key=HOLDER_KEY)
        assert result.exit_code == 2
        assert "Reveal map must be a JSON object" in result.output


class TestListCommand:
    """Tests for `vc-engine list`."""

    def test_empty(self, runner, store_path):
        result = invoke(runner, store_path, "list")
        assert result.exit_code == 0
        assert "No credentials stored" in result.output

    def test_lists_credentials(self, runner, store_path, cli_registry, holder_signer, claims_file):
        issue_one(runner, store_path, holder_signer, claims_file)
        result = invoke(runner, store_path, "list")
        assert result.exit_code == 0
        assert "No credentials stored" not in result.output
        assert len(CredentialStore(store_path).load_all()) == 1


class TestRegistryCommands:
    """Tests for DID registry commands."""

    def test_create_did(self, runner, store_path, monkeypatch, issuer_signer):
        registry = InMemoryRegistry()
        monkeypatch.setattr(cli, "_registry", lambda settings, signer=None: registry)

        result = invoke(runner, store_path, "create-did", key=ISSUER_KEY)

        assert result.exit_code == 0, result.output
        assert registry.get_controller(issuer_signer.did()) == issuer_signer.address

    def test_update_and_resolve(self, runner, store_path, cli_registry, issuer_signer, other_signer):
        result = invoke(runner, store_path, "update-did", issuer_signer.did(), other_signer.address, key=ISSUER_KEY)
        assert result.exit_code == 0, result.output

        result = invoke(runner, store_path, "resolve", issuer_signer.did())
        assert result.exit_code == 0
        assert other_signer.address in result.output

    def test_resolve_unknown(self, runner, store_path, cli_registry):
        result = invoke(runner, store_path, "resolve", "did:ethr:0xabc")
        assert result.exit_code == 2
        assert "is not registered" in result.output

    def test_missing_rpc_settings(self, runner, store_path, monkeypatch):
        monkeypatch.delenv("VC_RPC_URL", raising=False)
        monkeypatch.delenv("VC_REGISTRY_ADDRESS", raising=False)
        result = invoke(runner, store_path, "resolve", "did:ethr:0xabc")
        assert result.exit_code == 2
        assert "rpc_url" in result.output
