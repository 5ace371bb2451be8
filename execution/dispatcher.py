"""
Dispatcher — sends a validated handler invocation to an actor.

Responsibility:
- Classify a handler as read (dry-run) or write (authenticated send)
- Encode parameters as tags or as a JSON payload per transmission strategy
- Normalise the actor response (Data field, opportunistic JSON parse)

Prohibitions:
- Does not catch transport faults; the engine classifies them
"""

import json
import logging
from typing import Any

from protocol.adp import action_tags, generate_message_tags
from protocol.payload import encode_payload
from shared.models import DispatchOutcome, HandlerDescriptor, Tag, TransmissionStrategy
from transport.base import Transport

logger = logging.getLogger(__name__)

READ_ACTIONS = (
    "info", "balance", "get", "view", "check", "query", "list",
    "show", "ping", "pong", "status", "version", "details",
)
WRITE_ACTIONS = (
    "transfer", "send", "mint", "burn", "create", "update", "delete", "set",
    "add", "subtract", "multiply", "divide", "calculate", "remove", "approve",
    "vote", "stake", "unstake", "deposit", "withdraw", "swap", "execute",
)


def is_write_handler(handler: HandlerDescriptor) -> bool:
    """Read list is consulted first; unknown actions default to read."""
    action = handler.action.lower()
    if any(word in action for word in READ_ACTIONS):
        return False
    if any(word in action for word in WRITE_ACTIONS):
        return True
    return False


def parse_response_data(response: Any) -> Any:
    """The response ``Data`` field (or the whole response), JSON-decoded when possible."""
    data = response.get("Data", response) if isinstance(response, dict) else response
    if isinstance(data, str):
        try:
            return json.loads(data)
        except json.JSONDecodeError:
            return data
    return data


class Dispatcher:
    """Turns (handler, parameters, strategy) into one transport call."""

    def __init__(self, transport: Transport):
        self.transport = transport

    def build_message(
        self,
        handler: HandlerDescriptor,
        parameters: dict[str, Any],
        strategy: TransmissionStrategy = "tags",
    ) -> tuple[list[Tag], str | None]:
        """Tags and optional payload for a strategy. ``hybrid`` encodes like ``payload``."""
        if strategy == "tags":
            return generate_message_tags(handler, parameters), None
        return action_tags(handler), encode_payload(parameters)

    async def dispatch(
        self,
        actor_id: str,
        handler: HandlerDescriptor,
        parameters: dict[str, Any],
        credential: Any = None,
        strategy: TransmissionStrategy = "tags",
    ) -> DispatchOutcome:
        tags, payload = self.build_message(handler, parameters, strategy)

        if is_write_handler(handler):
            logger.info("Sending %s to actor %s (%s)", handler.action, actor_id, strategy)
            response = await self.transport.send(credential, actor_id, tags, payload)
            method = "write"
        else:
            # Dry-runs carry no payload; only the tags reach the actor
            logger.info("Reading %s from actor %s (%s)", handler.action, actor_id, strategy)
            response = await self.transport.read(actor_id, tags)
            method = "read"

        return DispatchOutcome(
            success=response is not None,
            method=method,
            transmission_strategy=strategy,
            data=parse_response_data(response) if response is not None else None,
            tags=tags,
        )
