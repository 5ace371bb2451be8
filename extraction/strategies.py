"""
Extraction strategies — free text → raw parameter map for one handler.

Four strategies, iterated in a fixed order by the engine:
  primary     operand table → name[:=]value → role keywords → last resort
  aggressive  positional assignment of numeric and word tokens
  coercion    primary, then first coercible token for each missing required
  fuzzy       abbreviated-name anchors, token right after the anchor

Every candidate value is coerced to the declared type and type-checked
before it is accepted; rejected values are reported and left missing.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable

from extraction.operand_patterns import NUM, match_operands, operand_role
from extraction.structures import has_complex_json_structures, looks_like_json, parse_complex_structures
from shared.models import ExtractionAttempt, HandlerDescriptor, ParameterDescriptor
from validation.values import check_value, coerce_value

logger = logging.getLogger(__name__)

_NUMBER_TOKEN = re.compile(NUM)
_WORD_TOKEN = re.compile(r"[A-Za-z0-9_-]+")
_QUOTED = re.compile(r"""["']([^"']+)["']""")
_LONG_WORD = re.compile(r"\b[A-Za-z0-9_-]{3,}\b")

_RECIPIENT_NAMES = ("recipient", "target", "to", "destination", "receiver")
_AMOUNT_NAMES = ("amount", "quantity", "qty", "value")

ROLE_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    "recipient": (
        re.compile(r"(?:send|transfer|give|pay)\s+\S+\s+(?:\w+\s+)?to\s+([A-Za-z0-9_-]+)", re.IGNORECASE),
        re.compile(r"\bto\s+([A-Za-z0-9_-]+)", re.IGNORECASE),
        re.compile(r"recipient\s*[:=]?\s*([A-Za-z0-9_-]+)", re.IGNORECASE),
    ),
    "amount": (
        re.compile(rf"(?:send|transfer|give|pay|mint|burn)\s+({NUM})", re.IGNORECASE),
        re.compile(rf"amount\s*[:=]\s*({NUM})", re.IGNORECASE),
        re.compile(rf"({NUM})\s+tokens?\b", re.IGNORECASE),
        re.compile(rf"quantity\s*[:=]?\s*({NUM})", re.IGNORECASE),
    ),
}


@dataclass(frozen=True)
class ExtractionStrategy:
    name: str
    extract: Callable[[str, HandlerDescriptor], ExtractionAttempt]


# ─── Shared helpers ────────────────────────────────────────────


def _accept(
    params: dict[str, Any],
    errors: list[str],
    param: ParameterDescriptor,
    raw: Any,
    missing_message: str,
) -> None:
    """Coerce + type-check one candidate; record it or the reason it failed."""
    if raw is None:
        if param.required:
            errors.append(missing_message.format(name=param.name))
        return
    coerced = coerce_value(raw, param.type)
    value = coerced.value if coerced.success else raw
    problem = check_value(value, param)
    if problem:
        errors.append(problem)
        return
    params[param.name] = value


def _attempt(name: str, handler: HandlerDescriptor, params: dict[str, Any], errors: list[str]) -> ExtractionAttempt:
    return ExtractionAttempt(
        strategy=name,
        parameters=params,
        errors=errors,
        success=is_complete(params, handler),
    )


def is_complete(params: dict[str, Any], handler: HandlerDescriptor) -> bool:
    """Every required parameter has a non-null value."""
    return all(params.get(p.name) is not None for p in handler.required_parameters)


def _lookup(structured: dict[str, Any] | None, name: str) -> Any:
    if not structured:
        return None
    if name in structured:
        return structured[name]
    lowered = name.lower()
    for key, value in structured.items():
        if key.lower() == lowered:
            return value
    return None


def _role(param: ParameterDescriptor) -> str | None:
    lowered = param.name.lower()
    if lowered in _RECIPIENT_NAMES and param.type in ("address", "string"):
        return "recipient"
    if lowered in _AMOUNT_NAMES and param.type in ("number", "string"):
        return "amount"
    return None


# ─── Primary ───────────────────────────────────────────────────


def extract_parameter_value(request: str, param: ParameterDescriptor, handler: HandlerDescriptor) -> Any:
    """Primary pipeline for one parameter; None when nothing matched."""
    name = re.escape(param.name)
    position = operand_role(param.name) if param.type == "number" else None

    if position is not None:
        operands = match_operands(request, handler.action)
        if operands is not None:
            return operands[position]

    for pattern in (rf"{name}\s*[=:]\s*[\"']?([^\"'\s]+)[\"']?", rf"{name}\s+([^\s]+)"):
        m = re.search(pattern, request, re.IGNORECASE)
        if m:
            return m.group(1)

    role = _role(param)
    if role:
        for regex in ROLE_PATTERNS[role]:
            m = regex.search(request)
            if m:
                return m.group(1)

    return _last_resort(request, param, position)


def _last_resort(request: str, param: ParameterDescriptor, position: int | None) -> Any:
    if param.type == "number":
        numbers = _NUMBER_TOKEN.findall(request)
        index = position or 0
        return numbers[index] if len(numbers) > index else None

    if param.type in ("string", "address"):
        m = _QUOTED.search(request)
        if m:
            return m.group(1)
        m = _LONG_WORD.search(request)
        if m:
            return m.group(0)

    return None


def extract_primary(request: str, handler: HandlerDescriptor) -> ExtractionAttempt:
    structured = None
    if looks_like_json(request) or has_complex_json_structures(request):
        structured = parse_complex_structures(request)

    params: dict[str, Any] = {}
    errors: list[str] = []
    for param in handler.parameters:
        raw = _lookup(structured, param.name)
        if raw is None:
            raw = extract_parameter_value(request, param, handler)
        _accept(params, errors, param, raw, "Required parameter '{name}' could not be extracted from request")
    return _attempt("primary", handler, params, errors)


# ─── Aggressive ────────────────────────────────────────────────


def extract_aggressive(request: str, handler: HandlerDescriptor) -> ExtractionAttempt:
    numbers = _NUMBER_TOKEN.findall(request)
    # numeric tokens stay in the word stream: positions count every token
    words = _WORD_TOKEN.findall(request)
    number_index = 0
    word_index = 0

    params: dict[str, Any] = {}
    errors: list[str] = []
    for param in handler.parameters:
        raw = None
        if param.type == "number" and number_index < len(numbers):
            raw = numbers[number_index]
            number_index += 1
        elif param.type in ("string", "address") and word_index < len(words):
            raw = words[word_index]
            word_index += 1
        _accept(
            params, errors, param, raw,
            "Required parameter '{name}' could not be extracted using fallback strategy",
        )
    return _attempt("aggressive", handler, params, errors)


# ─── Coercion ──────────────────────────────────────────────────


def extract_with_coercion(request: str, handler: HandlerDescriptor) -> ExtractionAttempt:
    base = extract_primary(request, handler)
    params = dict(base.parameters)
    errors = list(base.errors)
    tokens = request.split()

    for param in handler.required_parameters:
        if params.get(param.name) is not None:
            continue
        for token in tokens:
            coerced = coerce_value(token, param.type)
            if coerced.success and check_value(coerced.value, param) is None:
                params[param.name] = coerced.value
                errors = [e for e in errors if f"'{param.name}'" not in e]
                logger.debug("Coerced token '%s' into parameter %s", token, param.name)
                break
    return _attempt("coercion", handler, params, errors)


# ─── Fuzzy ─────────────────────────────────────────────────────


def name_anchors(name: str) -> list[str]:
    """Lowercased name, first letter, and name with capitals stripped."""
    anchors: list[str] = []
    for candidate in (name.lower(), name[:1].lower(), re.sub(r"[A-Z]", "", name).lower()):
        if candidate and candidate not in anchors:
            anchors.append(candidate)
    return anchors


def extract_fuzzy(request: str, handler: HandlerDescriptor) -> ExtractionAttempt:
    lowered = request.lower()
    params: dict[str, Any] = {}
    errors: list[str] = []

    for param in handler.parameters:
        for anchor in name_anchors(param.name):
            if anchor not in lowered:
                continue
            if param.type == "number":
                pattern = rf"{re.escape(anchor)}\D*?({NUM})"
            else:
                pattern = rf"{re.escape(anchor)}[\s=:]*([A-Za-z0-9_.-]+)"
            m = re.search(pattern, request, re.IGNORECASE)
            if not m:
                continue
            coerced = coerce_value(m.group(1), param.type)
            if coerced.success and check_value(coerced.value, param) is None:
                params[param.name] = coerced.value
                break

        if param.name not in params and param.required:
            errors.append(f"Required parameter '{param.name}' could not be extracted using fuzzy matching")
    return _attempt("fuzzy", handler, params, errors)


STRATEGIES: tuple[ExtractionStrategy, ...] = (
    ExtractionStrategy("primary", extract_primary),
    ExtractionStrategy("aggressive", extract_aggressive),
    ExtractionStrategy("coercion", extract_with_coercion),
    ExtractionStrategy("fuzzy", extract_fuzzy),
)
