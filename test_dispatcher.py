from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from execution.dispatcher import Dispatcher, is_write_handler, parse_response_data
from shared.errors import ActorUnreachableError
from shared.models import HandlerDescriptor, ParameterDescriptor

TRANSFER = HandlerDescriptor(
    action="Transfer",
    parameters=[
        ParameterDescriptor(name="Recipient", type="address", required=True),
        ParameterDescriptor(name="Quantity", type="number", required=True),
    ],
)
BALANCE = HandlerDescriptor(
    action="Balance",
    parameters=[ParameterDescriptor(name="Target", type="address")],
)


def _transport(reply) -> AsyncMock:
    transport = AsyncMock()
    transport.read = AsyncMock(return_value=reply)
    transport.send = AsyncMock(return_value=reply)
    return transport


def _pairs(tags) -> list[tuple[str, str]]:
    return [(t.name, t.value) for t in tags]


@pytest.mark.parametrize(
    ("action", "is_write"),
    [
        ("Balance", False),
        ("GetInfo", False),
        ("Transfer", True),
        ("Mint", True),
        ("Add", True),
        ("Foo", False),
        # read words are consulted first
        ("CheckAndTransfer", False),
    ],
)
def test_read_write_classification(action: str, is_write: bool) -> None:
    assert is_write_handler(HandlerDescriptor(action=action)) is is_write


def test_parse_response_data() -> None:
    assert parse_response_data({"Data": '{"balance": 10}'}) == {"balance": 10}
    assert parse_response_data({"Data": "plain text"}) == "plain text"
    assert parse_response_data({"Messages": []}) == {"Messages": []}
    assert parse_response_data("42") == 42


def test_write_with_tags() -> None:
    async def _run() -> None:
        transport = _transport({"Data": "ok"})
        outcome = await Dispatcher(transport).dispatch(
            "token-1", TRANSFER, {"Recipient": "bob", "Quantity": 5}, credential="secret"
        )

        assert outcome.success
        assert outcome.method == "write"
        assert outcome.transmission_strategy == "tags"
        assert outcome.data == "ok"
        credential, actor_id, tags, payload = transport.send.await_args.args
        assert (credential, actor_id, payload) == ("secret", "token-1", None)
        assert _pairs(tags) == [("Action", "Transfer"), ("Recipient", "bob"), ("Quantity", "5")]
        transport.read.assert_not_awaited()

    asyncio.run(_run())


@pytest.mark.parametrize("strategy", ["payload", "hybrid"])
def test_write_with_payload(strategy: str) -> None:
    async def _run() -> None:
        transport = _transport({"Data": "ok"})
        outcome = await Dispatcher(transport).dispatch(
            "token-1", TRANSFER, {"Recipient": "bob", "Quantity": 5}, strategy=strategy
        )

        assert outcome.transmission_strategy == strategy
        _, _, tags, payload = transport.send.await_args.args
        assert _pairs(tags) == [("Action", "Transfer")]
        assert json.loads(payload) == {"Recipient": "bob", "Quantity": 5}

    asyncio.run(_run())


def test_read_carries_only_tags() -> None:
    async def _run() -> None:
        transport = _transport({"Data": '{"balance": 100}'})
        dispatcher = Dispatcher(transport)

        outcome = await dispatcher.dispatch("token-1", BALANCE, {"Target": "alice123"})
        assert outcome.method == "read"
        assert outcome.data == {"balance": 100}
        actor_id, tags = transport.read.await_args.args
        assert actor_id == "token-1"
        assert _pairs(tags) == [("Action", "Balance"), ("Target", "alice123")]

        await dispatcher.dispatch("token-1", BALANCE, {"Target": "alice123"}, strategy="payload")
        _, tags = transport.read.await_args.args
        assert _pairs(tags) == [("Action", "Balance")]
        transport.send.assert_not_awaited()

    asyncio.run(_run())


def test_empty_reply_is_not_success() -> None:
    async def _run() -> None:
        outcome = await Dispatcher(_transport(None)).dispatch("token-1", BALANCE, {})

        assert not outcome.success
        assert outcome.data is None

    asyncio.run(_run())


def test_transport_faults_propagate() -> None:
    async def _run() -> None:
        transport = _transport(None)
        transport.send = AsyncMock(side_effect=ActorUnreachableError("down"))
        with pytest.raises(ActorUnreachableError):
            await Dispatcher(transport).dispatch("token-1", TRANSFER, {"Recipient": "bob", "Quantity": 1})

    asyncio.run(_run())
