"""
Per-value coercion and type checks.

Shared by the extraction strategies (to accept or reject a candidate value)
and by the ParameterValidator (to build the typed parameter record).
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, NamedTuple

from shared.models import ParameterDescriptor

ADDRESS_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
ADDRESS_MIN_LENGTH = 1
ADDRESS_MAX_LENGTH = 43
NUMBER_LIMIT = 1e15
STRING_MAX_LENGTH = 10_000

_INTEGER_LITERAL = re.compile(r"^[+-]?\d+$")
_DECIMAL_LITERAL = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")

_TRUE_WORDS = ("1", "on", "true", "yes")
_FALSE_WORDS = ("0", "off", "false", "no")


class Coercion(NamedTuple):
    success: bool
    value: Any
    error: str | None = None


def parse_number(text: str) -> int | float | None:
    """
    Parse a plain decimal literal; integers stay int. Returns None otherwise.

    Digit separators (``1_000``) and the words nan/inf/infinity are not numbers.
    """
    stripped = text.strip()
    if not _DECIMAL_LITERAL.match(stripped):
        return None
    if _INTEGER_LITERAL.match(stripped):
        return int(stripped)
    return float(stripped)


def coerce_value(value: Any, target_type: str) -> Coercion:
    """Coerce a raw value to a declared parameter type."""
    if target_type == "address":
        if isinstance(value, str) and value.strip():
            return Coercion(True, value)
        return Coercion(False, value, f"Cannot coerce '{value}' to address")

    if target_type == "boolean":
        if isinstance(value, bool):
            return Coercion(True, value)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_WORDS:
                return Coercion(True, True)
            if lowered in _FALSE_WORDS:
                return Coercion(True, False)
        return Coercion(False, value, f"Cannot coerce '{value}' to boolean")

    if target_type == "number":
        if isinstance(value, bool):
            return Coercion(False, value, f"Cannot coerce '{value}' to number")
        if isinstance(value, (int, float)):
            return Coercion(True, value)
        if isinstance(value, str):
            number = parse_number(value)
            if number is not None:
                return Coercion(True, number)
        return Coercion(False, value, f"Cannot coerce '{value}' to number")

    if target_type == "string":
        if value is None:
            return Coercion(False, value, "Cannot coerce null to string")
        if isinstance(value, bool):
            return Coercion(True, "true" if value else "false")
        if isinstance(value, (dict, list)):
            return Coercion(True, json.dumps(value, separators=(",", ":")))
        return Coercion(True, str(value))

    if target_type == "json":
        if isinstance(value, (dict, list)):
            return Coercion(True, value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError:
                return Coercion(False, value, f"Cannot parse '{value}' as JSON")
            if isinstance(parsed, (dict, list)):
                return Coercion(True, parsed)
        return Coercion(False, value, f"Cannot coerce '{value}' to JSON")

    return Coercion(True, value)


def check_value(value: Any, param: ParameterDescriptor) -> str | None:
    """Type/shape check of a single value. Returns an error message or None."""
    if value is None:
        if param.required:
            return f"Required parameter '{param.name}' is missing or could not be extracted"
        return None

    coerced = coerce_value(value, param.type)
    candidate = coerced.value if coerced.success else value

    if param.type == "address":
        if not isinstance(candidate, str):
            return (
                f"Parameter '{param.name}' expected address string but got "
                f"'{candidate}' ({type(candidate).__name__})"
            )
        if not ADDRESS_MIN_LENGTH <= len(candidate) <= ADDRESS_MAX_LENGTH:
            return f"Parameter '{param.name}' address length must be 1-43 characters, got {len(candidate)}"
        if not ADDRESS_PATTERN.match(candidate):
            return (
                f"Parameter '{param.name}' contains invalid characters. "
                "Use only letters, numbers, underscores, and dashes"
            )
        return None

    if param.type == "boolean":
        if isinstance(candidate, bool):
            return None
        return f"Parameter '{param.name}' expected boolean but got '{candidate}' ({type(candidate).__name__})"

    if param.type == "number":
        if isinstance(candidate, bool) or not isinstance(candidate, (int, float)):
            return f"Parameter '{param.name}' expected number but got '{candidate}' ({type(candidate).__name__})"
        if not math.isfinite(candidate):
            return f"Parameter '{param.name}' must be a finite number, got {candidate}"
        if abs(candidate) > NUMBER_LIMIT:
            return f"Parameter '{param.name}' value {candidate} exceeds safe number range"
        return None

    if param.type == "string":
        if not isinstance(candidate, str):
            return f"Parameter '{param.name}' expected non-empty string but got '{candidate}'"
        if not candidate.strip():
            return f"Parameter '{param.name}' cannot be empty or whitespace-only"
        if len(candidate) > STRING_MAX_LENGTH:
            return f"Parameter '{param.name}' exceeds maximum length of 10,000 characters"
        return None

    if param.type == "json":
        if isinstance(candidate, (dict, list)):
            return None
        return f"Parameter '{param.name}' expected a JSON object or array but got '{candidate}'"

    return None


def check_rule(value: Any, param: ParameterDescriptor) -> str | None:
    """Apply the parameter's optional rule (min/max, pattern, enum)."""
    rule = param.validation
    if rule is None or value is None:
        return None

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if rule.min is not None and value < rule.min:
            return f"Parameter '{param.name}' must be at least {rule.min:g}, got {value}"
        if rule.max is not None and value > rule.max:
            return f"Parameter '{param.name}' must be at most {rule.max:g}, got {value}"

    if rule.pattern and isinstance(value, str):
        try:
            if not re.search(rule.pattern, value):
                return f"Parameter '{param.name}' does not match required pattern {rule.pattern}"
        except re.error:
            return None

    if rule.enum:
        text = value if isinstance(value, str) else json.dumps(value)
        if text not in rule.enum:
            return f"Parameter '{param.name}' must be one of: {', '.join(rule.enum)}"

    return None
