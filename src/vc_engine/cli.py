"""
Command-line interface for vc-engine.

Usage:
    vc-engine create-did
    vc-engine issue did:ethr:0xabc... claims.json
    vc-engine present reveal.json --output presentation.json
    vc-engine verify presentation.json
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any, NoReturn

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from vc_engine import __version__
from vc_engine.config import Settings
from vc_engine.errors import MalformedInputError, PreconditionError, VCEngineError
from vc_engine.issuer import CredentialIssuer
from vc_engine.presentation import PresentationBuilder
from vc_engine.registry import RpcDIDRegistry, require_controller
from vc_engine.signing import Signer
from vc_engine.store import CredentialStore
from vc_engine.verifier import PresentationVerificationResult, PresentationVerifier


console = Console()
err_console = Console(stderr=True)


def setup_logging(verbose: bool) -> None:
    """Route library logging through rich on stderr."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def load_json(source: str) -> Any:
    """Load JSON from a file path or "-" for stdin.

    Raises:
        PreconditionError: If the file is missing or unreadable.
        MalformedInputError: If the content is not valid JSON.
    """
    try:
        if source == "-":
            content = sys.stdin.read()
        else:
            path = Path(source)
            if not path.exists():
                raise PreconditionError(f"File not found: {source}")
            content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PreconditionError(f"Cannot read {source}: {e}") from e

    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise MalformedInputError(f"Invalid JSON in {source}: {e}") from e


def fail(message: str, json_output: bool = False) -> NoReturn:
    """Report an error and exit with status 2."""
    if json_output:
        console.print_json(data={"error": message})
    else:
        err_console.print(f"[red]Error:[/] {escape(message)}", soft_wrap=True)
    sys.exit(2)


def format_result(result: PresentationVerificationResult) -> None:
    """Format and print a presentation verification result."""
    if result.is_valid:
        status_icon = "[bold green]VALID[/]"
        panel_style = "green"
    else:
        status_icon = "[bold red]INVALID[/]"
        panel_style = "red"

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Field", style="dim")
    table.add_column("Value")

    table.add_row("Status", status_icon)
    if result.holder:
        table.add_row("Holder", result.holder)

    holder_status = "[green]Valid[/]" if result.holder_signature_valid else "[red]Invalid[/]"
    table.add_row("Holder Signature", holder_status)

    for check in result.credentials:
        check_status = "[green]Valid[/]" if check.valid else "[red]Invalid[/]"
        table.add_row("Credential", f"{check.credential_id or '?'}  {check_status}")

    console.print(Panel(table, title="Presentation Verification", border_style=panel_style))

    if result.errors:
        console.print("\n[bold red]Errors:[/]")
        for error in result.errors:
            console.print(f"  [red]x[/] {escape(error)}")


def result_to_dict(result: PresentationVerificationResult) -> dict[str, Any]:
    return {
        "status": result.status.value,
        "valid": result.is_valid,
        "holder": result.holder,
        "holder_signature_valid": result.holder_signature_valid,
        "credentials": [
            {"id": check.credential_id, "valid": check.valid, "error": check.error}
            for check in result.credentials
        ],
        "errors": result.errors,
    }


def _registry(settings: Settings, signer: Signer | None = None) -> RpcDIDRegistry:
    settings.require("rpc_url", "registry_address")
    return RpcDIDRegistry(
        settings.rpc_url,
        settings.registry_address,
        signer=signer,
        timeout=settings.timeout,
    )


def _signer(settings: Settings) -> Signer:
    settings.require("private_key")
    try:
        return Signer(settings.private_key)
    except ValueError as e:
        raise PreconditionError(str(e)) from e


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option(
    "--store",
    "store_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default="credentials.json",
    show_default=True,
    envvar="VC_STORE",
    help="Credential store file",
)
@click.option("--rpc-url", envvar="VC_RPC_URL", help="JSON-RPC endpoint of the node")
@click.option("--registry", "registry_address", envvar="VC_REGISTRY_ADDRESS", help="DID registry contract address")
@click.option("--private-key", envvar="VC_PRIVATE_KEY", help="Hex-encoded signing key")
@click.option("--did-method", default="ethr", show_default=True, envvar="VC_DID_METHOD", help="DID method name")
@click.option("--timeout", type=float, default=30.0, show_default=True, help="HTTP request timeout in seconds")
@click.version_option(version=__version__)
@click.pass_context
def main(
    ctx: click.Context,
    verbose: bool,
    store_path: Path,
    rpc_url: str | None,
    registry_address: str | None,
    private_key: str | None,
    did_method: str,
    timeout: float,
) -> None:
    """Issue, present and verify DID-attributed credentials."""
    setup_logging(verbose)
    ctx.obj = Settings(
        rpc_url=rpc_url,
        registry_address=registry_address,
        private_key=private_key,
        store_path=store_path,
        did_method=did_method,
        timeout=timeout,
    )


@main.command("create-did")
@click.option("--controller", help="Controller address (defaults to the signing key's address)")
@click.pass_obj
def create_did(settings: Settings, controller: str | None) -> None:
    """Register the signing key's DID in the registry."""
    try:
        signer = _signer(settings)
        did = signer.did(settings.did_method)
        tx_hash = _registry(settings, signer).create_did(did, controller or signer.address)
    except VCEngineError as e:
        fail(str(e))

    console.print(f"[green]Created[/] {did}")
    console.print(f"Transaction: {tx_hash}")


@main.command("update-did")
@click.argument("did")
@click.argument("new_controller")
@click.pass_obj
def update_did(settings: Settings, did: str, new_controller: str) -> None:
    """Point DID at NEW_CONTROLLER."""
    try:
        tx_hash = _registry(settings, _signer(settings)).update_controller(did, new_controller)
    except VCEngineError as e:
        fail(str(e))

    console.print(f"[green]Updated[/] {did} -> {new_controller}")
    console.print(f"Transaction: {tx_hash}")


@main.command()
@click.argument("did")
@click.pass_obj
def resolve(settings: Settings, did: str) -> None:
    """Print the controller address of DID."""
    try:
        controller = require_controller(_registry(settings), did)
    except VCEngineError as e:
        fail(str(e))

    console.print(controller)


@main.command()
@click.argument("subject_did")
@click.argument("claims_file")
@click.option("--type", "credential_type", help="Extra credential type, e.g. AgeCredential")
@click.pass_obj
def issue(settings: Settings, subject_did: str, claims_file: str, credential_type: str | None) -> None:
    """Issue a credential about SUBJECT_DID with the claims in CLAIMS_FILE.

    The credential is appended to the store and printed.
    """
    try:
        claims = load_json(claims_file)
        signer = _signer(settings)
        issuer = CredentialIssuer(
            signer,
            _registry(settings),
            store=CredentialStore(settings.store_path),
            did_method=settings.did_method,
        )
        credential = issuer.issue(subject_did, claims, credential_type=credential_type)
    except VCEngineError as e:
        fail(str(e))

    console.print_json(data=credential)


@main.command()
@click.argument("reveal_file")
@click.option("--holder", "holder_did", help="Holder DID (defaults to the signing key's DID)")
@click.option("--credential", "credential_ids", multiple=True, help="Only include this credential id (repeatable)")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write the presentation to a file")
@click.pass_obj
def present(
    settings: Settings,
    reveal_file: str,
    holder_did: str | None,
    credential_ids: tuple[str, ...],
    output: Path | None,
) -> None:
    """Build a presentation from stored credentials.

    REVEAL_FILE maps credential ids to the claim keys to disclose.
    """
    try:
        reveal_map = load_json(reveal_file)
        builder = PresentationBuilder(_signer(settings), did_method=settings.did_method)
        presentation = builder.build(
            CredentialStore(settings.store_path).load_all(),
            reveal_map,
            holder_did=holder_did,
            include=credential_ids or None,
        )
    except VCEngineError as e:
        fail(str(e))

    if output:
        output.write_text(json.dumps(presentation, indent=2, ensure_ascii=False), encoding="utf-8")
        console.print(f"[green]Presentation written to[/] {output}")
    else:
        console.print_json(data=presentation)


@main.command()
@click.argument("presentation_file")
@click.option("--full", "full_file", help="JSON list of full credentials (defaults to the store)")
@click.option("--json-output", is_flag=True, help="Output result as JSON")
@click.pass_obj
def verify(settings: Settings, presentation_file: str, full_file: str | None, json_output: bool) -> None:
    """Verify a presentation against the full credentials.

    Exits with 0 when valid, 1 when invalid and 2 on errors.
    """
    try:
        presentation = load_json(presentation_file)
        if full_file:
            full_credentials = load_json(full_file)
            if not isinstance(full_credentials, list):
                raise MalformedInputError(f"{full_file} must hold a JSON list of credentials")
        else:
            full_credentials = CredentialStore(settings.store_path).load_all()
    except VCEngineError as e:
        fail(str(e), json_output)

    result = PresentationVerifier().verify(presentation, full_credentials)

    if json_output:
        console.print_json(data=result_to_dict(result))
    else:
        format_result(result)

    sys.exit(0 if result.is_valid else 1)


@main.command("list")
@click.pass_obj
def list_credentials(settings: Settings) -> None:
    """List stored credentials."""
    credentials = CredentialStore(settings.store_path).load_all()
    if not credentials:
        console.print("[dim]No credentials stored[/]")
        return

    table = Table(title=f"Credentials in {settings.store_path}")
    table.add_column("ID")
    table.add_column("Issuer")
    table.add_column("Subject")
    table.add_column("Issued")

    for credential in credentials:
        subject = credential.get("credentialSubject") or {}
        table.add_row(
            str(credential.get("id", "")),
            str(credential.get("issuer", "")),
            str(subject.get("id", "")) if isinstance(subject, dict) else "",
            str(credential.get("issuanceDate", "")),
        )

    console.print(table)


if __name__ == "__main__":
    main()
