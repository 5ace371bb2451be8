"""
Transport contract — how the engine reaches an actor.

Pure interface, no logic. Implementations may raise TransportError.
"""

from __future__ import annotations

from typing import Any, Protocol

from shared.models import Tag


class Transport(Protocol):
    """Protocol every actor transport must follow."""

    async def read(self, actor_id: str, tags: list[Tag]) -> Any:
        """Non-mutating evaluation of a message. Returns the actor's reply (or None)."""
        ...

    async def send(self, credential: Any, actor_id: str, tags: list[Tag], payload: str | None) -> Any:
        """Authenticated, state-changing message. Returns the actor's reply (or None)."""
        ...
