"""
Structured-input parsing — JSON bodies, k=v / k:v pairs, nested fragments.

Responsibility:
- Classify a request as json, direct (bare k=v / k:v pairs) or natural
- Recover parameter maps from JSON-shaped text, including malformed or
  partially embedded objects (balanced-brace scan)
- Split nested fragments without breaking on commas/colons inside
  brackets, braces or quoted strings

Prohibitions:
- No handler knowledge: values are returned as parsed, never type-coerced
"""

import json
import logging
import math
import re
from typing import Any

from shared.models import ParameterFormat
from validation.values import parse_number

logger = logging.getLogger(__name__)

_WHOLE_OBJECT = re.compile(r"^\s*\{.*\}\s*$", re.DOTALL)
_QUOTED_KEY_MARKERS = ("{", '"', '"', ":", "}")
_NESTED_OBJECT = re.compile(r"\{[^{}]*\{[^}]*\}[^{}]*\}")
_ARRAY = re.compile(r"\[[^\]]*\]")
_OBJECT_ASSIGNMENT = re.compile(r"\w+\s*=\s*\{")
_ARRAY_ASSIGNMENT = re.compile(r"\w+\s*=\s*\[")
_ASSIGNMENT_OPENER = re.compile(r"([a-zA-Z_]\w*)\s*=\s*(?=[\[{])")

_EQUALS_PAIR = re.compile(
    r"""([a-zA-Z_]\w*)\s*=\s*("(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*'|[^\s]+)"""
)
_COLON_PAIR = re.compile(r"([a-zA-Z_]\w*)\s*:\s*([^,\s]+)")
_EMBEDDED_OBJECT = re.compile(r"\{[^}]+\}")

_OPENERS = {"{": "}", "[": "]"}
_CLOSERS = {"}", "]"}
_QUOTES = ("'", '"')


# ─── Detection ─────────────────────────────────────────────────


def has_complex_json_structures(text: str) -> bool:
    """Nested objects, arrays, or name={...} / name=[...] assignments."""
    return bool(
        _NESTED_OBJECT.search(text)
        or _ARRAY.search(text)
        or _OBJECT_ASSIGNMENT.search(text)
        or _ARRAY_ASSIGNMENT.search(text)
    )


def _in_order(text: str, markers: tuple[str, ...]) -> bool:
    """True when every marker occurs in ``text``, each after the previous one."""
    position = 0
    for marker in markers:
        found = text.find(marker, position)
        if found < 0:
            return False
        position = found + len(marker)
    return True


def looks_like_json(text: str) -> bool:
    """A whole {...} body, or an object with a quoted key and a colon somewhere inside."""
    return bool(_WHOLE_OBJECT.match(text)) or _in_order(text, _QUOTED_KEY_MARKERS)


def detect_parameter_format(text: str) -> ParameterFormat:
    """Classify how the caller wrote parameters."""
    if looks_like_json(text) or has_complex_json_structures(text):
        return "json"
    if parse_direct_parameter_format(text):
        return "direct"
    return "natural"


# ─── Scanning helpers ──────────────────────────────────────────


def balanced_span(text: str, start: int) -> str | None:
    """
    Return the bracketed span opening at ``text[start]``.

    Tracks quote and escape state so brackets inside strings do not count.
    Returns None when the span never closes.
    """
    if start >= len(text) or text[start] not in _OPENERS:
        return None

    stack: list[str] = []
    quote: str | None = None
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if escaped:
            escaped = False
            continue
        if char == "\\":
            escaped = True
            continue
        if quote:
            if char == quote:
                quote = None
            continue
        if char in _QUOTES:
            quote = char
        elif char in _OPENERS:
            stack.append(_OPENERS[char])
        elif char in _CLOSERS:
            if not stack or stack.pop() != char:
                return None
            if not stack:
                return text[start:index + 1]
    return None


def split_respecting_nesting(text: str, separator: str = ",") -> list[str]:
    """Split on ``separator`` only at depth zero and outside quotes."""
    parts: list[str] = []
    current: list[str] = []
    depth = 0
    quote: str | None = None
    escaped = False

    for char in text:
        if escaped:
            escaped = False
            current.append(char)
            continue
        if char == "\\":
            escaped = True
            current.append(char)
            continue
        if quote:
            if char == quote:
                quote = None
            current.append(char)
            continue
        if char in _QUOTES:
            quote = char
        elif char in _OPENERS:
            depth += 1
        elif char in _CLOSERS:
            depth -= 1
        elif char == separator and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(char)

    tail = "".join(current).strip()
    if tail:
        parts.append(tail)
    return [part for part in parts if part]


def _split_key_value(pair: str) -> tuple[str, str] | None:
    pieces = split_respecting_nesting(pair, ":")
    if len(pieces) < 2:
        return None
    # Re-join anything after the first top-level colon ("url: http://x")
    key, value = pieces[0], ":".join(pieces[1:])
    return _strip_quotes(key.strip()), value.strip()


def _strip_quotes(text: str) -> str:
    if len(text) >= 2 and text[0] == text[-1] and text[0] in _QUOTES:
        return text[1:-1]
    return text


# ─── Values ────────────────────────────────────────────────────


def parse_direct_value(raw: str) -> Any:
    """Quoted → string, true/false → bool, numeric → number, else the text."""
    value = raw.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
        return value[1:-1]
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    number = parse_number(value)
    if number is not None and math.isfinite(number):
        return number
    if value[:1] in _OPENERS:
        return parse_nested_value(value)
    return value


def parse_nested_value(span: str) -> Any:
    """Parse a bracketed span as JSON, falling back to the manual splitter."""
    try:
        return json.loads(span)
    except json.JSONDecodeError:
        pass
    inner = span[1:-1]
    if span.startswith("["):
        return [parse_direct_value(item) for item in split_respecting_nesting(inner)]
    return parse_simple_object(inner)


def parse_simple_object(content: str) -> dict[str, Any]:
    """Parse ``key: value, key2: value2`` (no outer braces) leniently."""
    result: dict[str, Any] = {}
    for pair in split_respecting_nesting(content):
        parsed = _split_key_value(pair)
        if parsed is None:
            continue
        key, value = parsed
        if key:
            result[key] = parse_direct_value(value)
    return result


# ─── Structures ────────────────────────────────────────────────


def extract_balanced_object(text: str) -> dict[str, Any] | None:
    """Longest well-formed object starting at the first ``{``."""
    start = text.find("{")
    while start != -1:
        span = balanced_span(text, start)
        if span is not None:
            try:
                parsed = json.loads(span)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, dict):
                return parsed
        start = text.find("{", start + 1)
    return None


def parse_complex_structures(text: str) -> dict[str, Any] | None:
    """
    Recover a parameter map from JSON-shaped input.

    Order: the whole text as a JSON object, then ``name=[...]`` /
    ``name={...}`` fragments, then a balanced-brace scan.
    """
    stripped = text.strip()
    if stripped.startswith("{"):
        try:
            whole = json.loads(stripped)
        except json.JSONDecodeError:
            whole = None
        if isinstance(whole, dict):
            return whole

    fragments: dict[str, Any] = {}
    for m in _ASSIGNMENT_OPENER.finditer(text):
        span = balanced_span(text, m.end())
        if span is None:
            continue
        fragments[m.group(1)] = parse_nested_value(span)
    if fragments:
        return fragments

    return extract_balanced_object(text)


def parse_simple_direct_format(text: str) -> dict[str, Any] | None:
    """Equals pairs, then colon pairs, then an embedded object; first hit wins."""
    pairs = {name: parse_direct_value(value) for name, value in _EQUALS_PAIR.findall(text)}
    if pairs:
        return pairs

    pairs = {name: parse_direct_value(value) for name, value in _COLON_PAIR.findall(text)}
    if pairs:
        return pairs

    m = _EMBEDDED_OBJECT.search(text)
    if m:
        try:
            parsed = json.loads(m.group(0))
        except json.JSONDecodeError:
            logger.debug("Embedded object is not valid JSON: %s", m.group(0))
            return None
        if isinstance(parsed, dict) and parsed:
            return parsed
    return None


def parse_direct_parameter_format(text: str) -> dict[str, Any] | None:
    """Parse explicitly-written parameters; None when nothing is found."""
    if has_complex_json_structures(text):
        complex_result = parse_complex_structures(text)
        if complex_result:
            return complex_result
    return parse_simple_direct_format(text)
