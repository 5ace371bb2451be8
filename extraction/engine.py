"""
Parameter Extraction Engine — runs the strategy table for a handler.

Responsibility:
- Run a single named strategy (primary for the normal pipeline)
- Sequential retry rotation with a fixed backoff, never in parallel
- Run every strategy side by side for introspection
- Infer parameter descriptors from handler examples when none are declared

Prohibitions:
- No validation verdicts (ParameterValidator owns those)
- No transport access
"""

import asyncio
import logging
import re
from typing import Any

from extraction.strategies import STRATEGIES, ExtractionStrategy, is_complete
from shared.models import (
    ExtractionAttempt,
    HandlerDescriptor,
    ParameterDescriptor,
    ParameterType,
    RetryExtraction,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_DELAY_MS = 100

_EXAMPLE_PAIR = re.compile(r"(\w+)=([^=\s]+)")
_NUMERIC_LITERAL = re.compile(r"^-?\d+(?:\.\d+)?$")
_ADDRESS_LIKE = re.compile(r"^[A-Za-z0-9_-]{20,}$")


class ParameterExtractionEngine:
    """Turn free text into a raw parameter map for one handler."""

    def __init__(
        self,
        strategies: tuple[ExtractionStrategy, ...] = STRATEGIES,
        max_retry_attempts: int = DEFAULT_MAX_RETRY_ATTEMPTS,
        retry_delay_ms: float = DEFAULT_RETRY_DELAY_MS,
    ):
        self.strategies = strategies
        self.max_retry_attempts = max_retry_attempts
        self.retry_delay_ms = retry_delay_ms

    @property
    def strategy_names(self) -> list[str]:
        return [s.name for s in self.strategies]

    def strategy(self, name: str) -> ExtractionStrategy:
        for strategy in self.strategies:
            if strategy.name == name:
                return strategy
        raise KeyError(f"Unknown extraction strategy: {name}")

    def extract(self, request: str, handler: HandlerDescriptor, strategy: str = "primary") -> ExtractionAttempt:
        """Run one strategy. A crashing strategy yields a failed attempt."""
        runner = self.strategy(strategy)
        try:
            return runner.extract(request, handler)
        except Exception as e:
            logger.warning("Extraction strategy %s failed: %s", runner.name, e, exc_info=True)
            return ExtractionAttempt(
                strategy=runner.name,
                errors=[f"Strategy {runner.name} failed: {e}"],
                success=False,
            )

    async def extract_with_retry(self, request: str, handler: HandlerDescriptor) -> RetryExtraction:
        """
        Try strategies in table order until one yields every required parameter.

        At most ``max_retry_attempts`` strategies run; attempts are separated by
        ``retry_delay_ms``. On exhaustion the last attempt's output is returned.
        """
        rotation = self.strategies[: max(self.max_retry_attempts, 1)]
        used: list[str] = []
        last: ExtractionAttempt | None = None

        for index, runner in enumerate(rotation):
            last = self.extract(request, handler, runner.name)
            used.append(runner.name)
            if last.success:
                logger.debug("Extraction succeeded with %s after %d attempt(s)", runner.name, len(used))
                return RetryExtraction(parameters=last.parameters, errors=[], strategies_used=used)
            if index < len(rotation) - 1 and self.retry_delay_ms > 0:
                await asyncio.sleep(self.retry_delay_ms / 1000)

        logger.info("Extraction exhausted %d strategies for %s", len(used), handler.action)
        return RetryExtraction(
            parameters=last.parameters if last else {},
            errors=last.errors if last else [],
            strategies_used=used,
        )

    def run_all(self, request: str, handler: HandlerDescriptor) -> list[ExtractionAttempt]:
        """Every strategy on the same input, in table order."""
        return [self.extract(request, handler, s.name) for s in self.strategies]

    @staticmethod
    def is_successful(parameters: dict[str, Any], handler: HandlerDescriptor) -> bool:
        return is_complete(parameters, handler)

    # ─── Example inference ─────────────────────────────────────

    def with_inferred_parameters(self, handler: HandlerDescriptor) -> HandlerDescriptor:
        """Handler with descriptors inferred from its examples, if it declares none."""
        if handler.parameters or not handler.examples:
            return handler
        inferred = infer_parameters_from_examples(handler.examples)
        if not inferred:
            return handler
        logger.debug("Inferred %d parameters for %s from examples", len(inferred), handler.action)
        return handler.model_copy(update={"parameters": inferred})


def infer_type(value: str) -> ParameterType:
    if _NUMERIC_LITERAL.match(value):
        return "number"
    if value.lower() in ("true", "false"):
        return "boolean"
    if _ADDRESS_LIKE.match(value):
        return "address"
    return "string"


def infer_parameters_from_examples(examples: list[str]) -> list[ParameterDescriptor]:
    """Parse ``Name=value`` pairs out of example strings; first sighting wins."""
    seen: dict[str, ParameterDescriptor] = {}
    for example in examples:
        for name, value in _EXAMPLE_PAIR.findall(example):
            if name in seen:
                continue
            seen[name] = ParameterDescriptor(
                name=name,
                type=infer_type(value),
                required=True,
                description=f"Parameter inferred from example: {example}",
                examples=[value],
            )
    return list(seen.values())
