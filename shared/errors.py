"""Exceptions raised across layers.

The engine's public entry point never lets these escape; they are caught and
folded into a CommunicationResult. Collaborators and helpers raise them.
"""

from __future__ import annotations

from shared.models import ErrorCategory


class TransportError(Exception):
    """Base class for faults raised while talking to an actor."""

    def __init__(self, message: str, actor_id: str | None = None):
        super().__init__(message)
        self.actor_id = actor_id


class ActorUnreachableError(TransportError):
    """The gateway could not be reached (connection, DNS, timeout)."""


class ActorResponseError(TransportError):
    """The gateway answered with an error status or an unusable body."""

    def __init__(self, message: str, actor_id: str | None = None, status_code: int | None = None):
        super().__init__(message, actor_id=actor_id)
        self.status_code = status_code


class PayloadEncodingError(ValueError):
    """Raised when a parameter map cannot be encoded as a JSON payload."""


class SchemaDiscoveryError(RuntimeError):
    """Raised by tooling entry points when an actor does not speak ADP."""


def classify_fault(exc: BaseException) -> ErrorCategory:
    """Map a dispatch-time fault to an error category."""
    if isinstance(exc, TransportError):
        return "network"
    if isinstance(exc, (TypeError, KeyError, ValueError, AttributeError)):
        return "configuration"
    return "execution"
