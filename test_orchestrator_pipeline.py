from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from orchestrator.orchestrator import Orchestrator, compare_parameters
from protocol.adp import find_handler
from shared.config import EngineConfig
from shared.errors import ActorUnreachableError, SchemaDiscoveryError
from shared.models import ActorMetadata, SchemaTestCase
from validation.validator import DIVISION_BY_ZERO

OPERANDS = [
    {"name": "A", "type": "number", "required": True},
    {"name": "B", "type": "number", "required": True},
]

CALCULATOR_INFO = {
    "protocolVersion": "1.0",
    "Name": "Calculator",
    "handlers": [
        {"action": "Add", "description": "Add two numbers", "category": "core", "parameters": OPERANDS},
        {"action": "Subtract", "description": "Subtract two numbers", "category": "core", "parameters": OPERANDS},
        {"action": "Divide", "description": "Divide two numbers", "category": "core", "parameters": OPERANDS},
        {
            "action": "Balance",
            "description": "Check balance",
            "category": "utility",
            "parameters": [{"name": "Target", "type": "address"}],
        },
        {
            "action": "Register",
            "description": "Register an account",
            "parameters": [
                {"name": "Account", "type": "address", "required": True},
                {"name": "Count", "type": "number", "required": True},
            ],
        },
        {
            "action": "Stake",
            "description": "Lock tokens",
            "parameters": [{"name": "Quantity", "type": "number", "required": True}],
        },
    ],
}

FAST = EngineConfig(discovery_delay_ms=0, dispatch_delay_ms=0, retry_delay_ms=0)


class FakeActor:
    """Answers Info with a fixed document and every other message with ``reply``."""

    def __init__(self, info: dict[str, Any] | None = CALCULATOR_INFO, reply: Any = None) -> None:
        self.info = info
        self.reply = reply if reply is not None else {"Data": "ok"}
        self.fail_with: Exception | None = None
        self.reads: list[tuple[str, list]] = []
        self.sends: list[tuple[Any, str, list, str | None]] = []

    @property
    def info_reads(self) -> int:
        return sum(1 for _, tags in self.reads if tags[0].value == "Info")

    async def read(self, actor_id, tags):
        self.reads.append((actor_id, tags))
        if tags[0].value == "Info":
            if self.info is None:
                raise ActorUnreachableError("gateway timeout", actor_id=actor_id)
            return {"Data": json.dumps(self.info)}
        if self.fail_with:
            raise self.fail_with
        return self.reply

    async def send(self, credential, actor_id, tags, payload):
        self.sends.append((credential, actor_id, tags, payload))
        if self.fail_with:
            raise self.fail_with
        return self.reply


def _pairs(tags) -> list[tuple[str, str]]:
    return [(t.name, t.value) for t in tags]


# ─── execute_request ───────────────────────────────────────────


def test_natural_language_request_is_dispatched_with_tags() -> None:
    async def _run() -> None:
        actor = FakeActor(reply={"Data": "8"})
        orchestrator = Orchestrator(actor, config=FAST)

        result = await orchestrator.execute_request("calc-1", "add 5 and 3", credential="wallet")

        assert result.success
        assert result.data == 8
        assert result.handler_used == "Add"
        assert result.method_used == "write"
        assert result.parameters_used == {"A": 5, "B": 3}
        assert result.transmission_strategy == "tags"
        assert not result.fallback_used
        assert result.confidence is not None and result.confidence > 0.3

        credential, actor_id, tags, payload = actor.sends[0]
        assert (credential, actor_id, payload) == ("wallet", "calc-1", None)
        assert _pairs(tags) == [("Action", "Add"), ("A", "5"), ("B", "3")]

    asyncio.run(_run())


def test_read_handler_goes_through_dry_run() -> None:
    async def _run() -> None:
        actor = FakeActor(reply={"Data": '{"balance": 250}'})
        orchestrator = Orchestrator(actor, config=FAST)

        result = await orchestrator.execute_request("calc-1", "balance Target=alice123456")

        assert result.success
        assert result.method_used == "read"
        assert result.data == {"balance": 250}
        assert actor.sends == []

    asyncio.run(_run())


def test_metadata_is_discovered_once() -> None:
    async def _run() -> None:
        actor = FakeActor()
        orchestrator = Orchestrator(actor, config=FAST)

        await orchestrator.execute_request("calc-1", "add 1 and 2")
        await orchestrator.execute_request("calc-1", "subtract 15 from 20")

        assert actor.info_reads == 1
        assert _pairs(actor.sends[1][2]) == [("Action", "Subtract"), ("A", "15"), ("B", "20")]

    asyncio.run(_run())


def test_preloaded_metadata_skips_discovery() -> None:
    async def _run() -> None:
        actor = FakeActor()
        orchestrator = Orchestrator(actor, config=FAST)
        metadata = ActorMetadata.model_validate(CALCULATOR_INFO)

        result = await orchestrator.execute_request("calc-1", "add 1 and 2", metadata=metadata)

        assert result.success
        assert actor.info_reads == 0

    asyncio.run(_run())


def test_discovery_failure_is_reported_and_not_cached() -> None:
    async def _run() -> None:
        actor = FakeActor(info=None)
        orchestrator = Orchestrator(actor, config=FAST)

        result = await orchestrator.execute_request("ghost", "add 1 and 2")
        await orchestrator.execute_request("ghost", "add 1 and 2")

        assert not result.success
        assert result.error == "Process does not support ADP or discovery failed"
        assert result.error_category == "discovery"
        assert result.error_context is None
        assert result.suggested_fixes
        assert actor.info_reads == 2

    asyncio.run(_run())


def test_matching_failure_lists_available_handlers() -> None:
    async def _run() -> None:
        orchestrator = Orchestrator(FakeActor(), config=FAST)

        result = await orchestrator.execute_request("calc-1", "hello there")

        assert not result.success
        assert result.error == "Could not match request to any available ADP handler"
        assert result.error_category == "matching"
        assert result.available_handlers == ["Add", "Subtract", "Divide", "Balance", "Register", "Stake"]

    asyncio.run(_run())


def test_direct_format_fallback_after_primary_misreads() -> None:
    async def _run() -> None:
        actor = FakeActor(reply={"Data": "registered"})
        orchestrator = Orchestrator(actor, config=FAST)

        request = "register Account=alice_01 Count=3"
        metadata = await orchestrator.discover("calc-1")
        register = find_handler(metadata, "Register")

        # "Account=" also matches the Count name, so primary extraction fails
        primary = orchestrator.extraction.extract(request, register)
        assert not primary.success
        assert primary.parameters == {"Account": "alice_01"}

        result = await orchestrator.execute_request("calc-1", request)

        assert result.success
        assert result.handler_used == "Register"
        assert result.fallback_used
        assert result.fallback_method == "direct_format"
        assert result.parameter_format == "direct"
        assert result.parameters_used == {"Account": "alice_01", "Count": 3}
        assert result.data == "registered"

    asyncio.run(_run())


def test_transport_fault_during_fallback_is_terminal() -> None:
    async def _run() -> None:
        actor = FakeActor()
        orchestrator = Orchestrator(actor, config=FAST)
        await orchestrator.discover("calc-1")
        actor.fail_with = ActorUnreachableError("gateway timeout", actor_id="calc-1")

        result = await orchestrator.execute_request("calc-1", "register Account=alice_01 Count=3")

        dispatches = [tags for _, tags in actor.reads if tags[0].value != "Info"]
        dispatches += [tags for _, _, tags, _ in actor.sends]
        assert [_pairs(tags) for tags in dispatches] == [
            [("Action", "Register"), ("Account", "alice_01"), ("Count", "3")]
        ]
        assert not result.success
        assert result.error_category == "network"
        assert result.error == "ADP execution failed: gateway timeout"

    asyncio.run(_run())


def test_process_specific_fallback() -> None:
    async def _run() -> None:
        actor = FakeActor()
        orchestrator = Orchestrator(actor, config=FAST)

        result = await orchestrator.execute_request("calc-1", "stake quantity lots 42")

        assert result.success
        assert result.fallback_method == "process_specific"
        assert result.parameter_format == "natural"
        assert result.transmission_strategy == "tags"
        assert result.parameters_used == {"Quantity": 42}
        assert _pairs(actor.sends[0][2]) == [("Action", "Stake"), ("Quantity", "42")]

    asyncio.run(_run())


def test_division_by_zero_is_never_dispatched() -> None:
    async def _run() -> None:
        actor = FakeActor()
        orchestrator = Orchestrator(actor, config=FAST)

        result = await orchestrator.execute_request("calc-1", "divide 10 by 0")

        assert not result.success
        assert result.error_category == "validation"
        assert result.error == f"Parameter validation failed: {DIVISION_BY_ZERO}"
        assert result.validation_errors == [DIVISION_BY_ZERO]
        assert result.parameter_format == "natural"
        assert result.suggested_alternatives
        assert actor.sends == []

    asyncio.run(_run())


@pytest.mark.parametrize(
    ("fault", "category"),
    [
        (ActorUnreachableError("connection refused"), "network"),
        (TypeError("bad argument"), "configuration"),
        (RuntimeError("actor crashed"), "execution"),
    ],
)
def test_dispatch_faults_are_classified(fault: Exception, category: str) -> None:
    async def _run() -> None:
        actor = FakeActor()
        actor.fail_with = fault
        orchestrator = Orchestrator(actor, config=FAST)

        result = await orchestrator.execute_request("calc-1", "add 5 and 3")

        assert not result.success
        assert result.error_category == category
        assert result.error == f"ADP execution failed: {fault}"
        assert "Check that the process ID is correct" in result.suggested_fixes

    asyncio.run(_run())


def test_verbose_mode_attaches_error_context() -> None:
    async def _run() -> None:
        orchestrator = Orchestrator(FakeActor(), config=FAST)
        orchestrator.set_verbose(True)

        result = await orchestrator.execute_request("calc-1", "hello there")

        context = result.error_context
        assert context is not None
        assert context.category == "matching"
        assert context.actor_id == "calc-1"
        assert context.user_request == "hello there"
        assert context.session_id.startswith("req_")
        assert "Add" in context.available_handlers

    asyncio.run(_run())


# ─── Tooling entry points ──────────────────────────────────────


def test_inspect_translation_reports_every_strategy() -> None:
    async def _run() -> None:
        orchestrator = Orchestrator(FakeActor(), config=FAST)
        metadata = await orchestrator.discover("calc-1")
        add = metadata.handlers[0]

        inspection = await orchestrator.inspect_translation("add 5 and 3", add)
        assert [a.strategy for a in inspection.attempts] == ["primary", "aggressive", "coercion", "fuzzy"]
        assert inspection.best_strategy == "primary"
        assert inspection.final_parameters == {"A": 5, "B": 3}
        assert inspection.validation.valid

        failed = await orchestrator.inspect_translation("add some numbers", add)
        assert failed.best_strategy == "primary"
        assert not failed.validation.valid
        assert "No extraction strategy was completely successful" in failed.troubleshooting

    asyncio.run(_run())


def test_validate_against_schema() -> None:
    async def _run() -> None:
        orchestrator = Orchestrator(FakeActor(), config=FAST)
        cases = [
            SchemaTestCase(input="add 5 and 3", expected_parameters={"A": 5, "B": 3}),
            SchemaTestCase.model_validate({"input": "subtract 15 from 20", "expectedParameters": {"A": 15, "B": 20}}),
            SchemaTestCase(input="hello there", description="unrelated"),
        ]

        report = await orchestrator.validate_against_schema("calc-1", cases)

        assert not report.overall_success
        assert [r.passed for r in report.results] == [True, True, False]
        assert report.results[0].handler_used == "Add"
        assert report.results[0].strategies_used == ["primary"]
        assert report.results[2].errors == ["No matching handler found"]
        assert report.metadata.name == "Calculator"

    asyncio.run(_run())


def test_validate_against_schema_requires_adp() -> None:
    async def _run() -> None:
        orchestrator = Orchestrator(FakeActor(info=None), config=FAST)
        with pytest.raises(SchemaDiscoveryError):
            await orchestrator.validate_against_schema("ghost", [])

    asyncio.run(_run())


def test_guidance_and_diagnosis() -> None:
    async def _run() -> None:
        orchestrator = Orchestrator(FakeActor(), config=FAST)
        add = (await orchestrator.discover("calc-1")).handlers[0]

        guidance = orchestrator.guidance("add some numbers", add)
        assert guidance.primary_suggestion == 'Direct format: "A=5 B=3"'
        assert guidance.examples[0] == "Working examples:"

        report = orchestrator.diagnose("add some numbers", add)
        assert report.severity == "error"
        categories = [d.category for d in report.diagnostics]
        assert "Parameter Content" in categories
        assert "Required Parameters" in categories

    asyncio.run(_run())


def test_cache_stats_and_clear() -> None:
    async def _run() -> None:
        actor = FakeActor()
        orchestrator = Orchestrator(actor, config=FAST)

        await orchestrator.discover("calc-1")
        assert orchestrator.get_cache_stats() == {"entries": ["calc-1"], "size": 1}

        orchestrator.clear_cache("calc-1")
        assert orchestrator.get_cache_stats()["size"] == 0

        await orchestrator.discover("calc-1")
        assert actor.info_reads == 2

    asyncio.run(_run())


def test_compare_parameters() -> None:
    assert compare_parameters({"A": 5}, {"A": 5.0005, "B": 1})
    assert not compare_parameters({"A": 5}, {"A": 5.01})
    assert not compare_parameters({"A": 5}, {})
    assert compare_parameters({"R": "bob"}, {"R": "bob"})
    assert not compare_parameters({"R": "bob"}, {"R": "alice"})
