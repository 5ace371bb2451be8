from __future__ import annotations

import json

import pytest

from protocol.adp import (
    action_tags,
    find_handler,
    format_tag_value,
    generate_message_tags,
    parse_info_response,
    validate_parameters,
)
from protocol.payload import decode_payload, encode_payload
from shared.errors import PayloadEncodingError
from shared.models import HandlerDescriptor, ParameterDescriptor, ParameterRule

TOKEN_INFO = {
    "protocolVersion": "1.0",
    "Name": "Test Token",
    "Ticker": "TST",
    "capabilities": {"supportsHandlerRegistry": True, "supportsExamples": True},
    "handlers": [
        {
            "action": "Transfer",
            "description": "Send tokens",
            "category": "core",
            "pattern": ["Action", "Recipient"],
            "parameters": [
                {"name": "Recipient", "type": "address", "required": True},
                {"name": "Quantity", "type": "number", "required": True},
                {"name": "Memo", "type": "string"},
            ],
        },
        {"action": "Balance", "category": "legacy-read"},
    ],
}

TRANSFER = HandlerDescriptor.model_validate(TOKEN_INFO["handlers"][0])


def _pairs(tags) -> list[tuple[str, str]]:
    return [(t.name, t.value) for t in tags]


def test_parse_info_response_from_json_text() -> None:
    metadata = parse_info_response(json.dumps(TOKEN_INFO))

    assert metadata is not None
    assert metadata.name == "Test Token"
    assert metadata.ticker == "TST"
    assert metadata.capabilities.supports_handler_registry is True
    assert metadata.handler_names == ["Transfer", "Balance"]
    # Unknown categories fold into "custom"
    assert metadata.handlers[1].category == "custom"
    assert find_handler(metadata, "Balance") is not None
    assert find_handler(metadata, "balance") is None


@pytest.mark.parametrize(
    "raw",
    [
        json.dumps({"Name": "Legacy", "Ticker": "OLD"}),
        json.dumps({"protocolVersion": "2.0", "handlers": []}),
        json.dumps({"protocolVersion": "1.0"}),
        "not json at all",
        json.dumps(["protocolVersion", "1.0"]),
        None,
    ],
)
def test_non_adp_info_yields_none(raw) -> None:
    assert parse_info_response(raw) is None


def test_tags_follow_pattern_then_declared_parameters() -> None:
    tags = generate_message_tags(TRANSFER, {"Recipient": "bob", "Quantity": 100.0, "Extra": "x"})

    assert _pairs(tags) == [("Action", "Transfer"), ("Recipient", "bob"), ("Quantity", "100")]


def test_tags_without_pattern_start_with_action() -> None:
    handler = HandlerDescriptor(
        action="Add",
        parameters=[
            ParameterDescriptor(name="A", type="number"),
            ParameterDescriptor(name="B", type="number"),
        ],
    )

    assert _pairs(generate_message_tags(handler, {"A": 5, "B": 2.5})) == [
        ("Action", "Add"),
        ("A", "5"),
        ("B", "2.5"),
    ]
    assert _pairs(action_tags(handler)) == [("Action", "Add")]


def test_format_tag_value() -> None:
    assert format_tag_value(True) == "true"
    assert format_tag_value(3.0) == "3"
    assert format_tag_value({"k": [1, 2]}) == '{"k":[1,2]}'
    assert format_tag_value("plain") == "plain"


def test_payload_preserves_nested_values() -> None:
    parameters = {"a": 1, "b": [1, 2, {"c": "d"}], "e": None, "f": True, "g": "ü"}

    encoded = encode_payload(parameters)

    assert " " not in encoded
    assert decode_payload(encoded) == parameters


def test_payload_rejects_unrepresentable_values() -> None:
    with pytest.raises(PayloadEncodingError):
        encode_payload({"x": float("nan")})
    with pytest.raises(PayloadEncodingError):
        encode_payload({"x": object()})
    with pytest.raises(PayloadEncodingError):
        decode_payload("[1, 2]")
    with pytest.raises(PayloadEncodingError):
        decode_payload("{broken")


def test_legacy_validate_parameters() -> None:
    handler = HandlerDescriptor(
        action="Vote",
        parameters=[
            ParameterDescriptor(name="Choice", type="string", required=True, validation=ParameterRule(enum=["yes", "no"])),
            ParameterDescriptor(name="Weight", type="number"),
        ],
    )

    assert validate_parameters(handler, {"Choice": "yes", "Weight": "2"}) == (True, [])

    ok, errors = validate_parameters(handler, {"Choice": "maybe", "Weight": "heavy"})
    assert not ok
    assert errors == [
        "Parameter 'Choice' must be one of: yes, no",
        "Parameter 'Weight' must be a number",
    ]

    ok, errors = validate_parameters(handler, {})
    assert errors == ["Required parameter 'Choice' is missing"]
