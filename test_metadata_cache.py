from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock

from registry.metadata_cache import MetadataCache
from shared.errors import ActorUnreachableError

INFO_DOCUMENT = {
    "protocolVersion": "1.0",
    "Name": "Calculator",
    "handlers": [
        {
            "action": "Add",
            "description": "Add two numbers",
            "category": "core",
            "parameters": [
                {"name": "A", "type": "number", "required": True},
                {"name": "B", "type": "number", "required": True},
            ],
        },
    ],
}


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _transport(reply) -> AsyncMock:
    transport = AsyncMock()
    transport.read = AsyncMock(return_value=reply)
    return transport


def test_discover_is_idempotent_within_ttl() -> None:
    async def _run() -> None:
        transport = _transport({"Data": json.dumps(INFO_DOCUMENT)})
        cache = MetadataCache(transport, ttl_seconds=3600, clock=FakeClock())

        first = await cache.discover("calc-1")
        second = await cache.discover("calc-1")

        assert first is not None
        assert first is second
        assert first.name == "Calculator"
        assert first.handler_names == ["Add"]
        transport.read.assert_awaited_once()
        _, tags = transport.read.await_args.args
        assert [(t.name, t.value) for t in tags] == [("Action", "Info")]

    asyncio.run(_run())


def test_discover_refetches_after_expiry() -> None:
    async def _run() -> None:
        clock = FakeClock()
        transport = _transport({"Data": json.dumps(INFO_DOCUMENT)})
        cache = MetadataCache(transport, ttl_seconds=3600, clock=clock)

        await cache.discover("calc-1")
        clock.now = 3600.0
        await cache.discover("calc-1")

        assert transport.read.await_count == 2

    asyncio.run(_run())


def test_failed_discovery_is_not_cached() -> None:
    async def _run() -> None:
        transport = AsyncMock()
        transport.read = AsyncMock(side_effect=ActorUnreachableError("down", actor_id="calc-1"))
        cache = MetadataCache(transport, clock=FakeClock())

        assert await cache.discover("calc-1") is None
        assert await cache.discover("calc-1") is None
        assert transport.read.await_count == 2
        assert cache.stats() == {"entries": [], "size": 0}

    asyncio.run(_run())


def test_legacy_info_response_yields_none() -> None:
    async def _run() -> None:
        transport = _transport({"Data": json.dumps({"Name": "Old Token", "Ticker": "OLD"})})
        cache = MetadataCache(transport, clock=FakeClock())

        assert await cache.discover("token-1") is None
        assert await cache.discover("token-1") is None
        assert transport.read.await_count == 2

    asyncio.run(_run())


def test_decoded_document_and_empty_reply() -> None:
    async def _run() -> None:
        cache = MetadataCache(_transport(INFO_DOCUMENT), clock=FakeClock())
        metadata = await cache.discover("calc-1")
        assert metadata is not None and metadata.handlers[0].action == "Add"

        empty = MetadataCache(_transport(None), clock=FakeClock())
        assert await empty.discover("calc-1") is None

    asyncio.run(_run())


def test_clear_cache_forces_rediscovery() -> None:
    async def _run() -> None:
        transport = _transport({"Data": json.dumps(INFO_DOCUMENT)})
        cache = MetadataCache(transport, clock=FakeClock())

        await cache.discover("calc-1")
        await cache.discover("calc-2")
        assert cache.stats()["size"] == 2

        cache.clear_cache("calc-1")
        assert cache.stats()["entries"] == ["calc-2"]

        await cache.discover("calc-1")
        assert transport.read.await_count == 3

        cache.clear_cache()
        assert cache.stats()["size"] == 0

    asyncio.run(_run())
