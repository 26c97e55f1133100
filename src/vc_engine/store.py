"""
Append-only credential store backed by a JSON list on disk.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_STORE_PATH = Path("credentials.json")


class CredentialStore:
    """Ordered list of issued credentials persisted as a single JSON file.

    The store assumes a single writer. Every append rewrites the whole file.
    """

    def __init__(self, path: str | Path = DEFAULT_STORE_PATH) -> None:
        self.path = Path(path)

    def load_all(self) -> list[dict[str, Any]]:
        """Load every stored credential.

        A missing file is an empty store. An unreadable or unparsable file
        is logged and also treated as empty.
        """
        if not self.path.exists():
            return []

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Could not read credential store %s: %s", self.path, e)
            return []

        if not isinstance(data, list):
            logger.warning("Credential store %s does not hold a JSON list", self.path)
            return []

        return [item for item in data if isinstance(item, dict)]

    def append(self, credential: dict[str, Any]) -> None:
        """Append ``credential`` and rewrite the store."""
        credentials = self.load_all()
        credentials.append(credential)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(credentials, indent=2, ensure_ascii=False), encoding="utf-8"
        )

    def index(self) -> dict[str, dict[str, Any]]:
        """Map credential id to credential. Later duplicates win."""
        return {c["id"]: c for c in self.load_all() if isinstance(c.get("id"), str)}

    def get(self, credential_id: str) -> dict[str, Any] | None:
        return self.index().get(credential_id)
