"""ADP protocol helpers: metadata parsing, message tags and payload codec."""

from protocol.adp import (
    action_tags,
    find_handler,
    generate_message_tags,
    parse_info_response,
    validate_parameters,
)
from protocol.payload import decode_payload, encode_payload

__all__ = [
    "action_tags",
    "decode_payload",
    "encode_payload",
    "find_handler",
    "generate_message_tags",
    "parse_info_response",
    "validate_parameters",
]
