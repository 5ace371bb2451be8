from __future__ import annotations

from intent.handler_matcher import HandlerMatcher
from shared.models import HandlerDescriptor, ParameterDescriptor

OPERANDS = [
    ParameterDescriptor(name="A", type="number", required=True),
    ParameterDescriptor(name="B", type="number", required=True),
]

HANDLERS = [
    HandlerDescriptor(action="Add", description="Add two numbers", parameters=OPERANDS),
    HandlerDescriptor(action="Subtract", description="Subtract two numbers", parameters=OPERANDS),
    HandlerDescriptor(action="Divide", description="Divide two numbers", parameters=OPERANDS),
    HandlerDescriptor(
        action="Balance",
        description="Check balance",
        parameters=[ParameterDescriptor(name="Target", type="address")],
    ),
]


def test_action_name_in_request_wins() -> None:
    match = HandlerMatcher().match("add 5 and 3", HANDLERS)

    assert match is not None
    assert match.handler.action == "Add"
    assert 0.3 < match.confidence <= 1.0


def test_synonym_bonus_selects_handler_without_action_name() -> None:
    match = HandlerMatcher().match("what is 7 plus 2", HANDLERS)

    assert match is not None
    assert match.handler.action == "Add"


def test_subtract_phrase_matches_subtract() -> None:
    match = HandlerMatcher().match("subtract 15 from 20", HANDLERS)

    assert match is not None
    assert match.handler.action == "Subtract"


def test_no_handler_above_threshold() -> None:
    assert HandlerMatcher().match("hello there", HANDLERS) is None
    assert HandlerMatcher().match("anything", []) is None


def test_confidence_is_clamped() -> None:
    handler = HandlerDescriptor(
        action="Transfer",
        description="transfer tokens",
        parameters=[
            ParameterDescriptor(name="Recipient", type="address"),
            ParameterDescriptor(name="Quantity", type="number"),
        ],
    )
    match = HandlerMatcher().match("transfer tokens send recipient quantity", [handler])

    assert match is not None
    assert match.confidence == 1.0


def test_first_handler_wins_ties() -> None:
    first = HandlerDescriptor(action="Ping", description="primary")
    second = HandlerDescriptor(action="Ping", description="secondary")

    match = HandlerMatcher().match("ping", [first, second])

    assert match is not None
    assert match.handler.description == "primary"
