"""
Engine Configuration — TTLs, retry pacing and diagnostics toggles.

Values come from the environment (a local .env is loaded by the entry points)
and are frozen into an EngineConfig handed to the engine at construction.
"""

from __future__ import annotations

import os

from pydantic import BaseModel, Field

_TRUTHY = ("1", "true", "yes", "on")


class EngineConfig(BaseModel):
    """Runtime knobs for the request-translation engine."""
    model_config = {"frozen": True}

    metadata_cache_ttl_seconds: float = Field(default=60 * 60, gt=0.0)
    transmission_cache_ttl_seconds: float = Field(default=30 * 60, gt=0.0)
    max_retry_attempts: int = Field(default=3, ge=1)
    retry_delay_ms: float = Field(default=100, ge=0.0)
    discovery_delay_ms: float = Field(default=200, ge=0.0, description="Pause after a fresh discovery call")
    dispatch_delay_ms: float = Field(default=200, ge=0.0, description="Pause before dispatching to the actor")
    verbose_diagnostics: bool = False


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def load_engine_config() -> EngineConfig:
    """Build an EngineConfig from ADP_* environment variables."""
    return EngineConfig(
        metadata_cache_ttl_seconds=_env_float("ADP_METADATA_CACHE_TTL_SECONDS", 60 * 60),
        transmission_cache_ttl_seconds=_env_float("ADP_TRANSMISSION_CACHE_TTL_SECONDS", 30 * 60),
        max_retry_attempts=max(1, int(_env_float("ADP_MAX_RETRY_ATTEMPTS", 3))),
        retry_delay_ms=max(0.0, _env_float("ADP_RETRY_DELAY_MS", 100)),
        discovery_delay_ms=max(0.0, _env_float("ADP_DISCOVERY_DELAY_MS", 200)),
        dispatch_delay_ms=max(0.0, _env_float("ADP_DISPATCH_DELAY_MS", 200)),
        verbose_diagnostics=_env_bool("ADP_VERBOSE_LOGGING", False),
    )
