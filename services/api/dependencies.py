"""
Service wiring for the HTTP API.

VideoServices bundles every collaborator a request needs. The app lifespan
builds it from Config; tests construct it directly with fakes.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import asyncpg
from fastapi import Header, HTTPException, Request

from core.config import Config
from services.storage import ArtifactStore, JobStore, KVStore, ScheduleStore
from services.streaming import JobStreamOrchestrator
from services.video_generation import GenerationRequestHandler, ProviderRegistry
from services.video_generation.pricing_cache import WaveSpeedPricingCache
from services.video_generation.registry import default_adapters

logger = logging.getLogger(__name__)

ADMIN_ROLES = ("admin", "owner")


@dataclass
class VideoServices:
    registry: ProviderRegistry
    job_store: Any
    schedule_store: Any
    artifact_store: Optional[Any] = None
    pricing_cache: Optional[WaveSpeedPricingCache] = None
    poll_interval: float = 5.0
    max_poll_attempts: int = 120
    # Resources closed on shutdown
    _closers: list = field(default_factory=list)

    @property
    def handler(self) -> GenerationRequestHandler:
        return GenerationRequestHandler(self.registry, self.job_store)

    def orchestrator(self) -> JobStreamOrchestrator:
        return JobStreamOrchestrator(
            self.registry,
            self.job_store,
            self.artifact_store,
            poll_interval=self.poll_interval,
            max_attempts=self.max_poll_attempts,
        )

    async def close(self):
        for close in self._closers:
            try:
                await close()
            except Exception as e:
                logger.error(f"Error during shutdown: {e}")


async def build_services(config: Config) -> VideoServices:
    """Connect to PostgreSQL, Redis and R2 and assemble the services."""
    db_pool = await asyncpg.create_pool(
        config.database.url,
        min_size=config.database.pool_min_size,
        max_size=config.database.pool_max_size,
    )
    kv = KVStore.from_url(config.kv.redis_url)
    registry = ProviderRegistry(kv, default_adapters(config.providers))

    artifact_store = None
    if config.storage.enabled:
        artifact_store = ArtifactStore.from_config(config.storage)
    else:
        logger.warning("R2 storage not configured; finished videos stay provider-hosted")

    services = VideoServices(
        registry=registry,
        job_store=JobStore(db_pool),
        schedule_store=ScheduleStore(db_pool),
        artifact_store=artifact_store,
        pricing_cache=WaveSpeedPricingCache(kv, registry, api_base=config.providers.wavespeed_api_base),
        poll_interval=config.polling.interval_seconds,
        max_poll_attempts=config.polling.max_attempts,
    )
    services._closers = [registry.close, kv.close, db_pool.close]
    return services


def get_services(request: Request) -> VideoServices:
    services = request.app.state.services
    if services is None:
        raise HTTPException(status_code=500, detail="Services not available")
    return services


def get_current_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Caller identity, established upstream by the auth layer."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id


def require_admin(
    x_user_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default=None),
) -> str:
    user_id = get_current_user(x_user_id)
    if (x_user_role or "").lower() not in ADMIN_ROLES:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user_id
