"""
DID registry collaborators.

The registry maps a DID string to the address of its controller. Two
implementations are provided: an in-memory registry for tests and offline
use, and a client for a registry contract on an Ethereum-compatible node
reached over JSON-RPC.

Contract interface::

    create(string did, address controller)
    update(string did, address controller)
    get(string did) returns (address)
"""

from __future__ import annotations

import itertools
import logging
from typing import Any, Protocol

import httpx
from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import is_address, keccak, to_checksum_address

from vc_engine.errors import MalformedInputError, PreconditionError, RegistryError
from vc_engine.signing import Signer

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class DIDRegistry(Protocol):
    """Key-value store from DID to controller address."""

    def create_did(self, did: str, controller: str) -> str | None: ...

    def update_controller(self, did: str, controller: str) -> str | None: ...

    def get_controller(self, did: str) -> str | None: ...


def require_controller(registry: DIDRegistry, did: str) -> str:
    """Resolve the controller of ``did``.

    Raises:
        PreconditionError: If the DID is not registered.
    """
    controller = registry.get_controller(did)
    if not controller:
        raise PreconditionError(f"DID {did} is not registered")
    return controller


def _checked_address(address: str) -> str:
    if not isinstance(address, str) or not is_address(address):
        raise MalformedInputError(f"Invalid controller address: {address!r}")
    return to_checksum_address(address)


class InMemoryRegistry:
    """Dict-backed registry."""

    def __init__(self, entries: dict[str, str] | None = None) -> None:
        self._entries: dict[str, str] = dict(entries or {})

    def create_did(self, did: str, controller: str) -> None:
        if did in self._entries:
            raise RegistryError(f"DID {did} already exists")
        self._entries[did] = _checked_address(controller)

    def update_controller(self, did: str, controller: str) -> None:
        if did not in self._entries:
            raise RegistryError(f"DID {did} is not registered")
        self._entries[did] = _checked_address(controller)

    def get_controller(self, did: str) -> str | None:
        return self._entries.get(did)


def _selector(signature: str) -> bytes:
    return keccak(text=signature)[:4]


class RpcDIDRegistry:
    """Registry contract client over Ethereum JSON-RPC."""

    CREATE = "create(string,address)"
    UPDATE = "update(string,address)"
    GET = "get(string)"

    def __init__(
        self,
        rpc_url: str,
        registry_address: str,
        signer: Signer | None = None,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the registry client.

        Args:
            rpc_url: HTTP(S) endpoint of the node.
            registry_address: Address of the registry contract.
            signer: Key used to sign create/update transactions. Reads work without it.
            timeout: HTTP request timeout in seconds.
        """
        if not is_address(registry_address):
            raise PreconditionError(f"Invalid registry address: {registry_address!r}")
        self.rpc_url = rpc_url
        self.registry_address = to_checksum_address(registry_address)
        self.signer = signer
        self.timeout = timeout
        self._ids = itertools.count(1)

    def get_controller(self, did: str) -> str | None:
        """Return the controller of ``did``, or None if it is not registered."""
        data = _selector(self.GET) + encode(["string"], [did])
        result = self._rpc(
            "eth_call",
            [{"to": self.registry_address, "data": "0x" + data.hex()}, "latest"],
        )
        if not isinstance(result, str):
            raise RegistryError(f"Malformed eth_call result for {did}: {result!r}")
        try:
            (controller,) = decode(["address"], bytes.fromhex(_strip_0x(result)))
        except (DecodingError, ValueError) as e:
            raise RegistryError(f"Malformed eth_call result for {did}: {result!r}") from e

        if int(controller, 16) == 0:
            return None
        return to_checksum_address(controller)

    def create_did(self, did: str, controller: str) -> str:
        """Register ``did`` with ``controller``. Returns the transaction hash."""
        data = _selector(self.CREATE) + encode(
            ["string", "address"], [did, _checked_address(controller)]
        )
        tx_hash = self._transact(data)
        logger.info("Submitted create for %s (tx %s)", did, tx_hash)
        return tx_hash

    def update_controller(self, did: str, controller: str) -> str:
        """Point ``did`` at a new controller. Returns the transaction hash."""
        data = _selector(self.UPDATE) + encode(
            ["string", "address"], [did, _checked_address(controller)]
        )
        tx_hash = self._transact(data)
        logger.info("Submitted update for %s (tx %s)", did, tx_hash)
        return tx_hash

    def _transact(self, data: bytes) -> str:
        """Build, sign and submit a transaction calling the registry."""
        if self.signer is None:
            raise PreconditionError("A private key is required to send registry transactions")

        sender = self.signer.address
        call = {
            "from": sender,
            "to": self.registry_address,
            "data": "0x" + data.hex(),
            "value": "0x0",
        }

        transaction = {
            "to": self.registry_address,
            "data": "0x" + data.hex(),
            "value": 0,
            "chainId": _quantity(self._rpc("eth_chainId", [])),
            "nonce": _quantity(self._rpc("eth_getTransactionCount", [sender, "pending"])),
            "gasPrice": _quantity(self._rpc("eth_gasPrice", [])),
            "gas": _quantity(self._rpc("eth_estimateGas", [call])),
        }

        raw = self.signer.sign_transaction(transaction)
        tx_hash = self._rpc("eth_sendRawTransaction", ["0x" + raw.hex()])
        if not isinstance(tx_hash, str):
            raise RegistryError(f"Unexpected transaction hash: {tx_hash!r}")
        return tx_hash

    def _rpc(self, method: str, params: list[Any]) -> Any:
        """Perform one JSON-RPC call and return its result.

        Raises:
            RegistryError: On transport errors, error responses or malformed replies.
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        logger.debug("RPC %s", method)

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.rpc_url, json=payload)
                response.raise_for_status()
                data = response.json()

        except httpx.HTTPStatusError as e:
            raise RegistryError(
                f"HTTP error calling {method}: {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise RegistryError(f"Network error calling {method}: {e}") from e
        except ValueError as e:
            raise RegistryError(f"Invalid JSON in response to {method}") from e

        if not isinstance(data, dict):
            raise RegistryError(f"Malformed JSON-RPC response to {method}")
        if "error" in data:
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else error
            raise RegistryError(f"{method} failed: {message}")
        if "result" not in data:
            raise RegistryError(f"Missing result in response to {method}")

        return data["result"]


def _strip_0x(value: str) -> str:
    return value[2:] if value.startswith(("0x", "0X")) else value


def _quantity(value: Any) -> int:
    """Decode a JSON-RPC hex quantity."""
    try:
        return int(value, 16)
    except (TypeError, ValueError) as e:
        raise RegistryError(f"Invalid quantity in RPC response: {value!r}") from e
