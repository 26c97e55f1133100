"""
Runtime settings shared by the command-line interface and library callers.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path

from vc_engine.did import DEFAULT_DID_METHOD
from vc_engine.errors import PreconditionError
from vc_engine.store import DEFAULT_STORE_PATH


@dataclass
class Settings:
    """Explicit configuration passed to components instead of globals."""

    rpc_url: str | None = None
    registry_address: str | None = None
    private_key: str | None = None
    store_path: Path = DEFAULT_STORE_PATH
    did_method: str = DEFAULT_DID_METHOD
    timeout: float = 30.0

    def require(self, *names: str) -> None:
        """Ensure the named settings are set.

        Raises:
            PreconditionError: Listing every missing setting.
        """
        known = {f.name for f in fields(self)}
        missing = [name for name in names if name in known and not getattr(self, name)]
        if missing:
            raise PreconditionError(f"Missing required settings: {', '.join(missing)}")
