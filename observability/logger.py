"""
Observability Layer — Per-request diagnostics.

Responsibility:
- Structured JSON events keyed by a request session id
- Timing of pipeline stages
- ErrorContext records for failures (attached to results only in verbose mode)

Never alters control flow: every method is fire-and-forget.
"""

import json
import logging
import random
import string
import time
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any

from shared.models import ErrorCategory, ErrorContext

logger = logging.getLogger("observability")

_SESSION_ALPHABET = string.digits + string.ascii_lowercase


def new_session_id(prefix: str = "req") -> str:
    """Session ids look like ``req_<epoch-ms>_<9 base36 chars>``."""
    suffix = "".join(random.choices(_SESSION_ALPHABET, k=9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


class Diagnostics:
    """Structured logger for one request flowing through the engine."""

    def __init__(
        self,
        actor_id: str = "",
        user_request: str = "",
        verbose: bool = False,
        session_id: str | None = None,
    ):
        self.session_id = session_id or new_session_id()
        self.actor_id = actor_id
        self.user_request = user_request
        self.verbose = verbose
        self._start = time.perf_counter()

    @property
    def elapsed_ms(self) -> float:
        return round((time.perf_counter() - self._start) * 1000, 2)

    def log_event(self, event_type: str, payload: dict[str, Any] | None = None, level: str = "INFO") -> None:
        """Log a structured event. Non-verbose sessions log below WARNING at DEBUG."""
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "session_id": self.session_id,
            "event": event_type,
            **(payload or {}),
        }
        level = level.upper()
        if not self.verbose and level in ("INFO", "DEBUG"):
            level = "DEBUG"
        log_method = getattr(logger, level.lower(), logger.debug)
        log_method(json.dumps(entry, default=str))

    @contextmanager
    def measure(self, operation: str, metadata: dict[str, Any] | None = None):
        """Context manager to measure execution time of a pipeline stage."""
        start_time = time.perf_counter()
        meta = metadata or {}
        success = False
        error = None
        try:
            yield
            success = True
        except Exception as e:
            error = str(e)
            raise
        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            self.log_event(
                "stage_metric",
                {
                    "operation": operation,
                    "duration_ms": round(duration_ms, 2),
                    "success": success,
                    "error": error,
                    **meta,
                },
            )

    def error_context(self, category: ErrorCategory, step: str, **extra: Any) -> ErrorContext:
        """Build an ErrorContext stamped with this session's identity and timing."""
        return ErrorContext(
            category=category,
            step=step,
            session_id=self.session_id,
            actor_id=self.actor_id,
            user_request=self.user_request,
            timestamp=datetime.now(timezone.utc).isoformat(),
            execution_time_ms=self.elapsed_ms,
            **extra,
        )

    def attach(self, context: ErrorContext) -> ErrorContext | None:
        """Return the context only when verbose diagnostics are on."""
        return context if self.verbose else None
