"""
HTTP API for the ADP Actor Bridge.

Endpoints:
- GET    /health
- POST   /discover           actor metadata
- POST   /execute            translate + dispatch a free-text request
- POST   /inspect            per-strategy extraction breakdown
- POST   /validate-schema    expected-parameter test cases against an actor
- GET    /cache              metadata cache stats
- DELETE /cache              evict one actor (?actor_id=) or everything
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from main import ADP_CREDENTIAL, build_orchestrator
from orchestrator.orchestrator import Orchestrator
from protocol.adp import find_handler
from shared.errors import SchemaDiscoveryError
from shared.models import SchemaTestCase


class DiscoverRequest(BaseModel):
    actor_id: str


class ExecuteRequest(BaseModel):
    actor_id: str
    request: str = Field(..., min_length=1)
    credential: str | None = None


class InspectRequest(BaseModel):
    actor_id: str
    request: str = Field(..., min_length=1)
    handler: str | None = Field(default=None, description="Handler action; best match when omitted")


class SchemaValidationRequest(BaseModel):
    actor_id: str
    test_cases: list[SchemaTestCase] = Field(default_factory=list)
    credential: str | None = None


def create_app(orchestrator: Orchestrator | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        _app.state.orchestrator = orchestrator or build_orchestrator()
        yield

    app = FastAPI(
        title="ADP Actor Bridge API",
        version="0.1.0",
        lifespan=lifespan,
    )

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/discover")
    async def discover(body: DiscoverRequest) -> dict[str, Any]:
        metadata = await app.state.orchestrator.discover(body.actor_id)
        if metadata is None:
            raise HTTPException(status_code=404, detail=f"Actor {body.actor_id} does not support ADP")
        return metadata.model_dump(by_alias=True)

    @app.post("/execute")
    async def execute(body: ExecuteRequest) -> dict[str, Any]:
        result = await app.state.orchestrator.execute_request(
            body.actor_id, body.request, body.credential or ADP_CREDENTIAL
        )
        return result.model_dump()

    @app.post("/inspect")
    async def inspect(body: InspectRequest) -> dict[str, Any]:
        bridge: Orchestrator = app.state.orchestrator
        metadata = await bridge.discover(body.actor_id)
        if metadata is None:
            raise HTTPException(status_code=404, detail=f"Actor {body.actor_id} does not support ADP")

        if body.handler:
            handler = find_handler(metadata, body.handler)
        else:
            match = bridge.matcher.match(body.request, metadata.handlers)
            handler = match.handler if match else None
        if handler is None:
            raise HTTPException(
                status_code=422,
                detail={"error": "No matching handler", "available_handlers": metadata.handler_names},
            )

        inspection = await bridge.inspect_translation(body.request, handler)
        return {
            **inspection.model_dump(),
            "guidance": bridge.guidance(body.request, handler).model_dump(),
            "report": bridge.diagnose(body.request, handler).model_dump(),
        }

    @app.post("/validate-schema")
    async def validate_schema(body: SchemaValidationRequest) -> dict[str, Any]:
        try:
            report = await app.state.orchestrator.validate_against_schema(
                body.actor_id, body.test_cases, body.credential
            )
        except SchemaDiscoveryError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        return report.model_dump()

    @app.get("/cache")
    def cache_stats() -> dict[str, Any]:
        return app.state.orchestrator.get_cache_stats()

    @app.delete("/cache")
    def clear_cache(actor_id: str | None = None) -> dict[str, Any]:
        app.state.orchestrator.clear_cache(actor_id)
        return {"cleared": actor_id or "all"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8010)
