"""
Metadata Cache — Time-boxed store of actor capability documents.

Responsibility:
- Serve ActorMetadata from cache while fresh
- On miss/stale, issue one Info query through the transport and parse it
- Never cache a failed discovery (unreachable actors are retried every call)
"""

import logging
from typing import Any

from memory.ttl_cache import Clock, TTLCache
from protocol.adp import parse_info_response
from shared.models import ActorMetadata, Tag
from transport.base import Transport

logger = logging.getLogger(__name__)

DEFAULT_METADATA_TTL_SECONDS = 60 * 60
INFO_TAGS = [Tag(name="Action", value="Info")]


class MetadataCache:
    """Discovery-backed cache of ActorMetadata keyed by actor id."""

    def __init__(
        self,
        transport: Transport,
        ttl_seconds: float = DEFAULT_METADATA_TTL_SECONDS,
        clock: Clock | None = None,
    ):
        self.transport = transport
        self._cache: TTLCache[ActorMetadata] = TTLCache(ttl_seconds, clock=clock)

    async def discover(self, actor_id: str) -> ActorMetadata | None:
        """Return ADP metadata for an actor, or None when unreachable / not ADP."""
        cached = self._cache.get(actor_id)
        if cached is not None:
            logger.debug("Metadata cache hit for actor %s", actor_id)
            return cached

        try:
            response = await self.transport.read(actor_id, list(INFO_TAGS))
        except Exception as e:
            logger.warning("ADP discovery failed for actor %s: %s", actor_id, e)
            return None

        raw = self._response_data(response)
        if raw is None:
            logger.info("Actor %s returned no Info data", actor_id)
            return None

        metadata = parse_info_response(raw)
        if metadata is None:
            logger.info("Actor %s did not answer with an ADP document", actor_id)
            return None

        self._cache.set(actor_id, metadata)
        logger.info("Discovered %d handlers on actor %s", len(metadata.handlers), actor_id)
        return metadata

    def clear_cache(self, actor_id: str | None = None) -> None:
        """Evict one actor's metadata, or all of it."""
        self._cache.evict(actor_id)

    def stats(self) -> dict[str, Any]:
        entries = self._cache.keys()
        return {"entries": entries, "size": len(entries)}

    def _response_data(self, response: Any) -> Any:
        if response is None:
            return None
        if isinstance(response, dict):
            if "Data" in response:
                return response["Data"] or None
            # Some gateways hand back the decoded document directly
            if "protocolVersion" in response:
                return response
            return None
        return response
