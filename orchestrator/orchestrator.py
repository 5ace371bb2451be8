"""
Orchestrator — free-text request → actor message pipeline.

Responsibility:
- Discover actor metadata (cached), match a handler, extract and validate
  parameters, dispatch, and fall back to alternate encodings on failure
- Fold every failure into a CommunicationResult with a category and hints
- Introspection entry points for tooling (inspect, schema validation)

Prohibitions:
- execute_request never raises
- No transport details (delegated to the Transport collaborator)
"""

import asyncio
import logging
from typing import Any

from execution.dispatcher import Dispatcher
from execution.fallback import FallbackOrchestrator
from execution.suggestions import (
    GENERIC_FIXES,
    alternative_formats,
    diagnostic_report,
    interactive_guidance,
    troubleshooting_tips,
)
from extraction.engine import ParameterExtractionEngine
from intent.handler_matcher import HandlerMatcher
from memory.ttl_cache import Clock
from observability.logger import Diagnostics
from protocol.adp import validate_parameters
from registry.metadata_cache import MetadataCache
from shared.config import EngineConfig
from shared.errors import SchemaDiscoveryError, classify_fault
from shared.models import (
    ActorMetadata,
    CommunicationResult,
    DiagnosticReport,
    HandlerDescriptor,
    InteractiveGuidance,
    SchemaTestCase,
    SchemaTestResult,
    SchemaValidationReport,
    TranslationInspection,
)
from transport.base import Transport
from validation.validator import ParameterValidator

logger = logging.getLogger(__name__)

NUMBER_TOLERANCE = 0.001


def compare_parameters(expected: dict[str, Any], actual: dict[str, Any]) -> bool:
    """Every expected key present in ``actual``; numbers equal within tolerance."""
    for key, want in expected.items():
        if key not in actual:
            return False
        got = actual[key]
        numeric = (int, float)
        if (
            isinstance(want, numeric) and isinstance(got, numeric)
            and not isinstance(want, bool) and not isinstance(got, bool)
        ):
            if abs(want - got) > NUMBER_TOLERANCE:
                return False
        elif want != got:
            return False
    return True


class Orchestrator:
    """Translates free-text requests into ADP handler invocations."""

    def __init__(
        self,
        transport: Transport,
        config: EngineConfig | None = None,
        clock: Clock | None = None,
    ):
        self.config = config or EngineConfig()
        self.verbose = self.config.verbose_diagnostics
        self.metadata_cache = MetadataCache(
            transport, ttl_seconds=self.config.metadata_cache_ttl_seconds, clock=clock
        )
        self.matcher = HandlerMatcher()
        self.extraction = ParameterExtractionEngine(
            max_retry_attempts=self.config.max_retry_attempts,
            retry_delay_ms=self.config.retry_delay_ms,
        )
        self.validator = ParameterValidator()
        self.dispatcher = Dispatcher(transport)
        self.fallback = FallbackOrchestrator(
            self.extraction,
            self.validator,
            self.dispatcher,
            ttl_seconds=self.config.transmission_cache_ttl_seconds,
            clock=clock,
        )

    # ─── Public API ────────────────────────────────────────────

    async def discover(self, actor_id: str, credential: Any = None) -> ActorMetadata | None:
        """ADP metadata for an actor, or None. Reads need no credential."""
        return await self.metadata_cache.discover(actor_id)

    async def execute_request(
        self,
        actor_id: str,
        request: str,
        credential: Any = None,
        metadata: ActorMetadata | None = None,
    ) -> CommunicationResult:
        """
        Run the whole pipeline for one request.
        Always returns a CommunicationResult; never raises.
        """
        diagnostics = Diagnostics(actor_id=actor_id, user_request=request, verbose=self.verbose)
        diagnostics.log_event("pipeline_started", {"has_preloaded_metadata": metadata is not None})
        try:
            return await self._execute(actor_id, request, credential, metadata, diagnostics)
        except Exception as e:
            logger.exception("Request pipeline failed for actor %s", actor_id)
            return self._fault_result(e, diagnostics)

    async def inspect_translation(self, request: str, handler: HandlerDescriptor) -> TranslationInspection:
        """Run every extraction strategy side by side without dispatching."""
        handler = self.extraction.with_inferred_parameters(handler)
        attempts = self.extraction.run_all(request, handler)
        best = next((a for a in attempts if a.success), attempts[0])
        validation = self.validator.validate(best.parameters, handler)
        return TranslationInspection(
            handler=handler.action,
            attempts=attempts,
            best_strategy=best.strategy,
            final_parameters=best.parameters,
            validation=validation,
            troubleshooting=troubleshooting_tips(request, handler, attempts, validation),
        )

    async def validate_against_schema(
        self,
        actor_id: str,
        test_cases: list[SchemaTestCase],
        credential: Any = None,
    ) -> SchemaValidationReport:
        """Check that each test request translates to its expected parameters."""
        metadata = await self.discover(actor_id, credential)
        if metadata is None:
            raise SchemaDiscoveryError(f"Actor {actor_id} does not support ADP")

        results: list[SchemaTestResult] = []
        for case in test_cases:
            match = self.matcher.match(case.input, metadata.handlers)
            if match is None:
                results.append(SchemaTestResult(
                    input=case.input,
                    description=case.description,
                    passed=False,
                    expected=case.expected_parameters,
                    errors=["No matching handler found"],
                ))
                continue

            handler = self.extraction.with_inferred_parameters(match.handler)
            extracted = await self.extraction.extract_with_retry(case.input, handler)
            results.append(SchemaTestResult(
                input=case.input,
                description=case.description,
                passed=compare_parameters(case.expected_parameters, extracted.parameters),
                handler_used=handler.action,
                expected=case.expected_parameters,
                actual=extracted.parameters,
                errors=extracted.errors,
                strategies_used=extracted.strategies_used,
            ))

        return SchemaValidationReport(
            actor_id=actor_id,
            overall_success=all(r.passed for r in results),
            metadata=metadata,
            results=results,
        )

    def guidance(self, request: str, handler: HandlerDescriptor) -> InteractiveGuidance:
        handler = self.extraction.with_inferred_parameters(handler)
        attempt = self.extraction.extract(request, handler)
        validation = self.validator.validate(attempt.parameters, handler)
        return interactive_guidance(handler, attempt.errors, validation.errors)

    def diagnose(self, request: str, handler: HandlerDescriptor) -> DiagnosticReport:
        handler = self.extraction.with_inferred_parameters(handler)
        attempt = self.extraction.extract(request, handler)
        validation = self.validator.validate(attempt.parameters, handler)
        return diagnostic_report(request, handler, attempt.parameters, attempt.errors, validation)

    def clear_cache(self, actor_id: str | None = None) -> None:
        self.metadata_cache.clear_cache(actor_id)

    def get_cache_stats(self) -> dict[str, Any]:
        return self.metadata_cache.stats()

    def set_verbose(self, enabled: bool) -> None:
        self.verbose = enabled
        logger.info("Verbose diagnostics %s", "enabled" if enabled else "disabled")

    # ─── Pipeline ──────────────────────────────────────────────

    async def _execute(
        self,
        actor_id: str,
        request: str,
        credential: Any,
        metadata: ActorMetadata | None,
        diagnostics: Diagnostics,
    ) -> CommunicationResult:
        if metadata is None:
            with diagnostics.measure("discovery"):
                metadata = await self.discover(actor_id, credential)
            await self._pause(self.config.discovery_delay_ms)

        if metadata is None:
            fixes = [
                "Check that the process ID is correct",
                "Ensure the actor answers the Info action with an ADP document",
                "Verify network connectivity to the gateway",
            ]
            context = diagnostics.error_context("discovery", "ADP discovery failed", suggested_fixes=fixes)
            diagnostics.log_event("discovery_failed", {}, level="WARNING")
            return CommunicationResult(
                success=False,
                error="Process does not support ADP or discovery failed",
                error_category="discovery",
                error_context=diagnostics.attach(context),
                suggested_fixes=fixes,
            )

        available = metadata.handler_names
        diagnostics.log_event("discovery_succeeded", {"handlers": available})

        match = self.matcher.match(request, metadata.handlers)
        if match is None:
            fixes = [
                f"Available handlers: {', '.join(available) or 'none'}",
                "Try rephrasing your request to match one of the available handlers",
                "Use action-specific keywords like 'add', 'transfer', 'balance', etc.",
            ]
            context = diagnostics.error_context(
                "matching", "Handler matching failed", available_handlers=available, suggested_fixes=fixes
            )
            diagnostics.log_event("matching_failed", {"available_handlers": available}, level="WARNING")
            return CommunicationResult(
                success=False,
                error="Could not match request to any available ADP handler",
                error_category="matching",
                error_context=diagnostics.attach(context),
                available_handlers=available,
                suggested_fixes=fixes,
            )

        handler = self.extraction.with_inferred_parameters(match.handler)
        if handler is not match.handler:
            match = match.model_copy(update={"handler": handler})
        diagnostics.log_event("handler_matched", {"handler": handler.action, "confidence": match.confidence})

        with diagnostics.measure("extraction", {"handler": handler.action}):
            attempt = self.extraction.extract(request, handler)
        diagnostics.log_event(
            "parameters_extracted",
            {"parameters": attempt.parameters, "errors": attempt.errors, "success": attempt.success},
        )

        validation = self.validator.validate(attempt.parameters, handler)
        if not validation.valid:
            diagnostics.log_event("validation_failed", {"errors": validation.errors})
            recovered = await self.fallback.recover(
                actor_id, request, match, credential, metadata, diagnostics
            )
            if recovered.success:
                return recovered

            alternatives = alternative_formats(handler)
            context = diagnostics.error_context(
                "validation",
                "Parameter validation failed",
                extracted_parameters=attempt.parameters,
                validation_errors=validation.errors,
                suggested_fixes=validation.suggested_fixes,
                suggested_alternatives=alternatives,
                fallback_attempted=True,
            )
            return CommunicationResult(
                success=False,
                handler_used=handler.action,
                confidence=match.confidence,
                error=f"Parameter validation failed: {', '.join(validation.errors)}",
                error_category="validation",
                error_context=diagnostics.attach(context),
                original_extraction_failed=True,
                parameter_format=recovered.parameter_format,
                validation_errors=validation.errors,
                warnings=validation.warnings,
                suggested_fixes=validation.suggested_fixes,
                suggested_alternatives=alternatives,
            )

        legacy_ok, legacy_errors = validate_parameters(handler, validation.values)
        if not legacy_ok:
            context = diagnostics.error_context(
                "validation",
                "Parameter validation failed (legacy)",
                extracted_parameters=validation.values,
                validation_errors=legacy_errors,
            )
            return CommunicationResult(
                success=False,
                handler_used=handler.action,
                confidence=match.confidence,
                error=f"Parameter validation failed: {', '.join(legacy_errors)}",
                error_category="validation",
                error_context=diagnostics.attach(context),
                validation_errors=legacy_errors,
            )

        await self._pause(self.config.dispatch_delay_ms)
        with diagnostics.measure("dispatch", {"handler": handler.action}):
            dispatched = await self.dispatcher.dispatch(
                actor_id, handler, validation.values, credential, strategy="tags"
            )

        diagnostics.log_event(
            "pipeline_completed",
            {"success": dispatched.success, "method": dispatched.method, "elapsed_ms": diagnostics.elapsed_ms},
        )
        return CommunicationResult(
            success=dispatched.success,
            data=dispatched.data,
            handler_used=handler.action,
            method_used=dispatched.method,
            parameters_used=validation.values,
            confidence=match.confidence,
            transmission_strategy="tags",
            warnings=validation.warnings,
        )

    def _fault_result(self, exc: Exception, diagnostics: Diagnostics) -> CommunicationResult:
        category = classify_fault(exc)
        fixes = list(GENERIC_FIXES)
        context = diagnostics.error_context(category, "Unexpected error during execution", suggested_fixes=fixes)
        diagnostics.log_event(
            "pipeline_failed",
            {"error": str(exc), "error_type": type(exc).__name__, "category": category},
            level="ERROR",
        )
        return CommunicationResult(
            success=False,
            error=f"ADP execution failed: {exc}",
            error_category=category,
            error_context=diagnostics.attach(context),
            suggested_fixes=fixes,
        )

    async def _pause(self, delay_ms: float) -> None:
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)
