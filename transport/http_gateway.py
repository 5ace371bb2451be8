"""
HttpGatewayTransport — JSON-over-HTTP client for actor gateways.

Responsibility:
- read: POST a dry-run envelope to <gateway>/dry-run?process-id=<actor>
- send: POST the same envelope to the message endpoint with a bearer credential
- Unwrap the gateway reply to the actor's last output message
- Map network errors and non-2xx statuses to TransportError subclasses
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from shared.errors import ActorResponseError, ActorUnreachableError
from shared.models import Tag

logger = logging.getLogger(__name__)

ANONYMOUS_OWNER = "1234"


class HttpGatewayTransport:
    """Reads and sends actor messages through an HTTP gateway."""

    def __init__(
        self,
        gateway_url: str,
        message_url: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.gateway_url = gateway_url.rstrip("/")
        self.message_url = (message_url or f"{self.gateway_url}/message").rstrip("/")
        self.timeout = timeout
        self.headers = {"Content-Type": "application/json"}
        self._client = client

    async def read(self, actor_id: str, tags: list[Tag]) -> Any:
        url = f"{self.gateway_url}/dry-run"
        envelope = self._envelope(actor_id, tags, payload=None)
        logger.info("Dry-run → actor=%s tags=%s", actor_id, [t.name for t in tags])
        body = await self._post(url, envelope, actor_id, params={"process-id": actor_id})
        return self._last_message(body, actor_id)

    async def send(self, credential: Any, actor_id: str, tags: list[Tag], payload: str | None) -> Any:
        envelope = self._envelope(actor_id, tags, payload=payload)
        headers = dict(self.headers)
        if credential:
            headers["Authorization"] = f"Bearer {credential}"
        logger.info("Message → actor=%s tags=%s payload=%s", actor_id, [t.name for t in tags], payload is not None)
        body = await self._post(self.message_url, envelope, actor_id, headers=headers)
        return self._output(body, actor_id)

    def _envelope(self, actor_id: str, tags: list[Tag], payload: str | None) -> dict[str, Any]:
        return {
            "Target": actor_id,
            "Owner": ANONYMOUS_OWNER,
            "Tags": [tag.as_wire() for tag in tags],
            "Data": payload or "",
        }

    async def _post(
        self,
        url: str,
        envelope: dict[str, Any],
        actor_id: str,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        try:
            if self._client is not None:
                response = await self._client.post(url, json=envelope, params=params, headers=headers or self.headers)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(url, json=envelope, params=params, headers=headers or self.headers)
        except httpx.RequestError as e:
            logger.error("Network error calling gateway '%s': %r", url, e)
            raise ActorUnreachableError(f"Network error reaching actor gateway: {e}", actor_id=actor_id) from e

        if response.status_code >= 400:
            logger.error("Gateway error %s: %s", response.status_code, response.text)
            raise ActorResponseError(
                f"Gateway returned status {response.status_code}",
                actor_id=actor_id,
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ActorResponseError(f"Gateway returned a non-JSON body: {e}", actor_id=actor_id) from e

    def _last_message(self, body: Any, actor_id: str) -> Any:
        if not isinstance(body, dict):
            return body
        if body.get("Error"):
            raise ActorResponseError(f"Actor evaluation failed: {body['Error']}", actor_id=actor_id)
        messages = body.get("Messages")
        if isinstance(messages, list) and messages:
            return messages[-1]
        return None

    def _output(self, body: Any, actor_id: str) -> Any:
        if not isinstance(body, dict):
            return body
        if body.get("Error"):
            raise ActorResponseError(f"Actor evaluation failed: {body['Error']}", actor_id=actor_id)
        output = body.get("Output")
        if isinstance(output, dict) and output.get("data"):
            return {"Data": output["data"]}
        return self._last_message(body, actor_id)
