"""
Fallback Orchestrator — recovery path after primary validation fails.

Responsibility:
- Re-read explicitly-written parameters (k=v, k:v, embedded JSON) and
  dispatch them when they validate
- Otherwise re-extract aggressively and dispatch with a per-actor
  transmission strategy (tags / payload / hybrid)
- Remember the transmission strategy per actor for a fixed TTL

Prohibitions:
- Never dispatches parameters the validator rejected
- Never dispatches twice after a transport fault: TransportError propagates
  to the caller, any other failing branch is logged and the next one tried
"""

import logging
from typing import Any

from execution.dispatcher import Dispatcher
from execution.suggestions import alternative_formats
from extraction.engine import ParameterExtractionEngine
from extraction.structures import detect_parameter_format, parse_direct_parameter_format
from memory.ttl_cache import Clock, TTLCache
from observability.logger import Diagnostics
from shared.errors import TransportError
from shared.models import (
    PRIMITIVE_PARAMETER_TYPES,
    ActorMetadata,
    CommunicationResult,
    HandlerDescriptor,
    HandlerMatch,
    ParameterFormat,
    TransmissionStrategy,
)
from validation.validator import ParameterValidator

logger = logging.getLogger(__name__)

DEFAULT_TRANSMISSION_TTL_SECONDS = 30 * 60

MATH_ACTIONS = ("add", "subtract", "multiply", "divide", "calculate")
VALUE_TRANSFER_ACTIONS = ("transfer", "mint", "burn", "approve")

# Substring of actor id → preferred strategy, checked in order
ACTOR_NAME_HINTS: tuple[tuple[str, TransmissionStrategy], ...] = (
    ("calculator", "tags"),
    ("coin", "payload"),
    ("generic", "hybrid"),
    ("math", "tags"),
    ("token", "payload"),
)


def analyze_metadata(metadata: ActorMetadata) -> TransmissionStrategy | None:
    """Strategy implied by the actor's whole handler table, if any."""
    handlers = metadata.handlers
    if not handlers:
        return None

    average = sum(len(h.parameters) for h in handlers) / len(handlers)
    if average <= 2:
        return "tags"

    for handler in handlers:
        if any(p.type not in PRIMITIVE_PARAMETER_TYPES for p in handler.parameters):
            return "payload"

    if len(handlers) > 5:
        return "hybrid"
    return None


def handler_heuristic(handler: HandlerDescriptor) -> TransmissionStrategy | None:
    action = handler.action.lower()
    count = len(handler.parameters)
    if count > 3:
        return "payload"
    if action in MATH_ACTIONS:
        return "tags"
    if action in VALUE_TRANSFER_ACTIONS and count > 2:
        return "payload"
    if any(p.type not in PRIMITIVE_PARAMETER_TYPES for p in handler.parameters):
        return "payload"
    return None


class FallbackOrchestrator:
    """Tries the recovery branches in order; first successful dispatch wins."""

    def __init__(
        self,
        extraction: ParameterExtractionEngine,
        validator: ParameterValidator,
        dispatcher: Dispatcher,
        ttl_seconds: float = DEFAULT_TRANSMISSION_TTL_SECONDS,
        clock: Clock | None = None,
    ):
        self.extraction = extraction
        self.validator = validator
        self.dispatcher = dispatcher
        self._preferences: TTLCache[TransmissionStrategy] = TTLCache(ttl_seconds, clock=clock)

    # ─── Transmission strategy ─────────────────────────────────

    def get_fallback_strategy(
        self,
        actor_id: str,
        handler: HandlerDescriptor,
        metadata: ActorMetadata | None = None,
    ) -> TransmissionStrategy:
        cached = self._preferences.get(actor_id)
        if cached is not None:
            return cached

        strategy = self._derive_strategy(actor_id, handler, metadata)
        self._preferences.set(actor_id, strategy)
        logger.debug("Transmission strategy for %s: %s", actor_id, strategy)
        return strategy

    def _derive_strategy(
        self,
        actor_id: str,
        handler: HandlerDescriptor,
        metadata: ActorMetadata | None,
    ) -> TransmissionStrategy:
        if metadata is not None:
            derived = analyze_metadata(metadata)
            if derived:
                return derived

        lowered = actor_id.lower()
        for fragment, strategy in ACTOR_NAME_HINTS:
            if fragment in lowered:
                return strategy

        return handler_heuristic(handler) or "hybrid"

    def clear_cache(self, actor_id: str | None = None) -> None:
        self._preferences.evict(actor_id)

    def cached_actors(self) -> list[str]:
        return self._preferences.keys()

    # ─── Recovery ──────────────────────────────────────────────

    async def recover(
        self,
        actor_id: str,
        request: str,
        match: HandlerMatch,
        credential: Any = None,
        metadata: ActorMetadata | None = None,
        diagnostics: Diagnostics | None = None,
    ) -> CommunicationResult:
        diagnostics = diagnostics or Diagnostics(actor_id=actor_id, user_request=request)
        parameter_format = detect_parameter_format(request)
        diagnostics.log_event("fallback_started", {"parameter_format": parameter_format})

        if parameter_format == "direct":
            result = await self._try_direct(actor_id, request, match, credential, diagnostics)
            if result is not None:
                return result

        result = await self._try_process_specific(
            actor_id, request, match, credential, metadata, parameter_format, diagnostics
        )
        if result is not None:
            return result

        diagnostics.log_event("fallback_exhausted", {}, level="WARNING")
        return CommunicationResult(
            success=False,
            handler_used=match.handler.action,
            error="All fallback extraction attempts failed",
            error_category="validation",
            original_extraction_failed=True,
            parameter_format=parameter_format,
            suggested_alternatives=alternative_formats(match.handler),
        )

    async def _try_direct(
        self,
        actor_id: str,
        request: str,
        match: HandlerMatch,
        credential: Any,
        diagnostics: Diagnostics,
    ) -> CommunicationResult | None:
        parameters = parse_direct_parameter_format(request)
        if not parameters:
            return None

        outcome = self.validator.validate(parameters, match.handler)
        if not outcome.valid:
            diagnostics.log_event("direct_fallback_invalid", {"errors": outcome.errors})
            return None

        try:
            dispatched = await self.dispatcher.dispatch(
                actor_id, match.handler, outcome.values, credential, strategy="tags"
            )
        except TransportError:
            diagnostics.log_event("direct_fallback_transport_fault", {}, level="WARNING")
            raise
        except Exception as e:
            logger.warning("Direct-format dispatch to %s failed: %s", actor_id, e, exc_info=True)
            diagnostics.log_event("direct_fallback_failed", {"error": str(e)}, level="WARNING")
            return None

        diagnostics.log_event("direct_fallback_succeeded", {"parameters": outcome.values})
        return CommunicationResult(
            success=dispatched.success,
            data=dispatched.data,
            handler_used=match.handler.action,
            method_used=dispatched.method,
            parameters_used=outcome.values,
            confidence=match.confidence,
            fallback_used=True,
            fallback_method="direct_format",
            parameter_format="direct",
            transmission_strategy="tags",
            original_extraction_failed=True,
            warnings=outcome.warnings,
        )

    async def _try_process_specific(
        self,
        actor_id: str,
        request: str,
        match: HandlerMatch,
        credential: Any,
        metadata: ActorMetadata | None,
        parameter_format: ParameterFormat,
        diagnostics: Diagnostics,
    ) -> CommunicationResult | None:
        strategy = self.get_fallback_strategy(actor_id, match.handler, metadata)
        attempt = self.extraction.extract(request, match.handler, "aggressive")
        if attempt.errors:
            diagnostics.log_event("aggressive_extraction_errors", {"errors": attempt.errors})

        outcome = self.validator.validate(attempt.parameters, match.handler)
        if not outcome.valid:
            diagnostics.log_event("process_specific_invalid", {"errors": outcome.errors, "strategy": strategy})
            return None

        try:
            dispatched = await self.dispatcher.dispatch(
                actor_id, match.handler, outcome.values, credential, strategy=strategy
            )
        except TransportError:
            diagnostics.log_event("process_specific_transport_fault", {"strategy": strategy}, level="WARNING")
            raise
        except Exception as e:
            logger.warning("%s dispatch to %s failed: %s", strategy, actor_id, e, exc_info=True)
            diagnostics.log_event("process_specific_failed", {"error": str(e), "strategy": strategy}, level="WARNING")
            return None

        diagnostics.log_event("process_specific_succeeded", {"strategy": strategy})
        return CommunicationResult(
            success=dispatched.success,
            data=dispatched.data,
            handler_used=match.handler.action,
            method_used=dispatched.method,
            parameters_used=outcome.values,
            confidence=match.confidence,
            fallback_used=True,
            fallback_method="process_specific",
            parameter_format=parameter_format,
            transmission_strategy=strategy,
            original_extraction_failed=True,
            warnings=outcome.warnings,
        )
