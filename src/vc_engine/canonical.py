"""
Canonical JSON serialization.

Objects are rebuilt with keys in code point order, arrays keep their order
and scalars pass through. The result is compact UTF-8 JSON, which is the
exact byte input to signing and verification.
"""

from __future__ import annotations

import json
from typing import Any

from vc_engine.errors import CanonicalizationError


def canonical_form(value: Any) -> Any:
    """Return a copy of ``value`` with every object's keys sorted.

    Floats are refused: numbers must be integers so that issuer and verifier
    always produce the same digits.

    Raises:
        CanonicalizationError: On floats, non-string keys or unsupported types.
    """
    if isinstance(value, dict):
        for key in value:
            if not isinstance(key, str):
                raise CanonicalizationError(f"Object keys must be strings, got {key!r}")
        return {key: canonical_form(value[key]) for key in sorted(value)}
    if isinstance(value, (list, tuple)):
        return [canonical_form(item) for item in value]
    if isinstance(value, float):
        raise CanonicalizationError(f"Non-integer number {value!r} has no canonical form")
    if value is None or isinstance(value, (str, bool, int)):
        return value
    raise CanonicalizationError(f"Unsupported value type: {type(value).__name__}")


def canonicalize(value: Any) -> bytes:
    """Serialize ``value`` to canonical UTF-8 JSON bytes."""
    return json.dumps(
        canonical_form(value),
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")
