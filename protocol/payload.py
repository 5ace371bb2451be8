"""Payload codec for the alternate (serialized) message channel."""

from __future__ import annotations

import json
from typing import Any

from shared.errors import PayloadEncodingError


def encode_payload(parameters: dict[str, Any]) -> str:
    """Serialize a parameter map to compact JSON.

    Raises PayloadEncodingError for values JSON cannot represent exactly
    (NaN, infinities, arbitrary objects).
    """
    try:
        return json.dumps(parameters, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise PayloadEncodingError(f"Failed to encode payload: {exc}") from exc


def decode_payload(raw: str) -> dict[str, Any]:
    """Parse a payload produced by encode_payload."""
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise PayloadEncodingError(f"Payload is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise PayloadEncodingError("Payload must decode to an object")
    return parsed
