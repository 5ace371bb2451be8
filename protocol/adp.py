"""
ADP Protocol — Actor self-description documents and message tags.

Responsibility:
- Parse an actor's Info response into ActorMetadata
- Turn a handler + parameter map into outbound message tags
- Legacy-compatible parameter check (run after the main validator)

Prohibitions:
- No transport calls
- No natural-language handling
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import ValidationError

from shared.models import ActorMetadata, HandlerDescriptor, Tag

logger = logging.getLogger(__name__)

ADP_PROTOCOL_VERSION = "1.0"


def parse_info_response(raw: Any) -> ActorMetadata | None:
    """Parse an Info response body. Returns None for non-ADP or malformed data."""
    payload: Any = raw
    if isinstance(raw, (bytes, bytearray)):
        payload = raw.decode("utf-8", errors="replace")
    if isinstance(payload, str):
        try:
            payload = json.loads(payload)
        except json.JSONDecodeError as exc:
            logger.warning("Info response is not valid JSON: %s", exc)
            return None

    if not isinstance(payload, dict):
        return None

    # Legacy actors answer Info without the ADP fields
    if payload.get("protocolVersion") != ADP_PROTOCOL_VERSION or "handlers" not in payload:
        return None

    try:
        return ActorMetadata.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Info response failed ADP schema validation: %s", exc)
        return None


def find_handler(metadata: ActorMetadata, action: str) -> HandlerDescriptor | None:
    """Find a handler by exact action name."""
    for handler in metadata.handlers:
        if handler.action == action:
            return handler
    return None


def format_tag_value(value: Any) -> str:
    """Stringify a parameter value for a message tag."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def generate_message_tags(handler: HandlerDescriptor, parameters: dict[str, Any]) -> list[Tag]:
    """Build the tag list for a handler invocation.

    Pattern tags come first (``Action`` resolves to the handler's action),
    followed by one tag per declared parameter that carries a value.
    """
    tags: list[Tag] = []
    if handler.pattern:
        for tag_name in handler.pattern:
            if tag_name == "Action":
                tags.append(Tag(name="Action", value=handler.action))
            elif parameters.get(tag_name) is not None:
                tags.append(Tag(name=tag_name, value=format_tag_value(parameters[tag_name])))
    else:
        tags.append(Tag(name="Action", value=handler.action))

    emitted = {tag.name for tag in tags}
    for param in handler.parameters:
        value = parameters.get(param.name)
        if value is None or param.name in emitted:
            continue
        tags.append(Tag(name=param.name, value=format_tag_value(value)))
    return tags


def action_tags(handler: HandlerDescriptor) -> list[Tag]:
    """Tag list carrying only the action, used when parameters travel in the payload."""
    return [Tag(name="Action", value=handler.action)]


def validate_parameters(handler: HandlerDescriptor, parameters: dict[str, Any]) -> tuple[bool, list[str]]:
    """Legacy parameter check: presence, loose types, pattern and enum rules."""
    errors: list[str] = []
    for param in handler.parameters:
        value = parameters.get(param.name)
        if value is None:
            if param.required:
                errors.append(f"Required parameter '{param.name}' is missing")
            continue

        if param.type == "number" and not _is_numeric(value):
            errors.append(f"Parameter '{param.name}' must be a number")
        if param.type == "boolean" and not isinstance(value, bool):
            errors.append(f"Parameter '{param.name}' must be a boolean")

        rule = param.validation
        if rule is None:
            continue
        if rule.pattern and isinstance(value, str):
            try:
                if not re.search(rule.pattern, value):
                    errors.append(f"Parameter '{param.name}' does not match required pattern")
            except re.error:
                logger.warning("Ignoring invalid pattern for '%s': %s", param.name, rule.pattern)
        if rule.enum and format_tag_value(value) not in rule.enum:
            errors.append(f"Parameter '{param.name}' must be one of: {', '.join(rule.enum)}")

    return len(errors) == 0, errors


def _is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return True
    try:
        float(str(value))
        return True
    except ValueError:
        return False
