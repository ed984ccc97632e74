"""
WaveSpeed live pricing, cached in the KV store for 24 hours.

The static catalog in the WaveSpeed adapter carries fallback estimates;
this fetches the vendor's current model list with base prices.
"""

import json
import logging
import time
from typing import Callable, Optional

import httpx

from .registry import ProviderRegistry

logger = logging.getLogger(__name__)

CACHE_KEY = "wavespeed_pricing_cache"
CACHE_TTL_SECONDS = 24 * 60 * 60

MODEL_FIELDS = ("model_id", "name", "base_price", "description", "type")


class WaveSpeedPricingCache:
    """
    Usage:
        cache = WaveSpeedPricingCache(kv_store, registry)
        payload = await cache.get_pricing(refresh=False)
        # {"models": [...], "cached": True, "fetchedAt": 1718000000000}
    """

    def __init__(
        self,
        kv_store,
        registry: ProviderRegistry,
        api_base: str = "https://api.wavespeed.ai/api/v3",
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.kv = kv_store
        self.registry = registry
        self.api_base = api_base.rstrip("/")
        self._http_client = http_client
        self.clock = clock

    def _now_ms(self) -> int:
        return int(self.clock() * 1000)

    async def _read_cache(self) -> Optional[dict]:
        try:
            raw = await self.kv.get(CACHE_KEY)
            if not raw:
                return None
            cached = json.loads(raw)
            age_ms = self._now_ms() - cached["fetchedAt"]
            if age_ms < CACHE_TTL_SECONDS * 1000:
                return cached
        except Exception as e:
            logger.warning(f"Ignoring unreadable pricing cache: {e}")
        return None

    async def get_pricing(self, refresh: bool = False) -> dict:
        if not refresh:
            cached = await self._read_cache()
            if cached:
                return {"models": cached["models"], "cached": True, "fetchedAt": cached["fetchedAt"]}

        key = await self.registry.find_provider_key("wavespeed")
        if key is None:
            return {
                "models": [],
                "error": "No WaveSpeed API key configured. Add a WaveSpeed key first.",
                "cached": False,
            }

        client = self._http_client or httpx.AsyncClient(timeout=30.0)
        try:
            response = await client.get(
                f"{self.api_base}/models",
                headers={"Authorization": f"Bearer {key.api_key}"},
            )
        except httpx.HTTPError as e:
            logger.error(f"WaveSpeed pricing fetch failed: {e}")
            return {"models": [], "error": str(e) or "Failed to fetch pricing", "cached": False}
        finally:
            if self._http_client is None:
                await client.aclose()

        if response.status_code >= 400:
            return {
                "models": [],
                "error": f"WaveSpeed API error ({response.status_code}): {response.text or 'Unknown error'}",
                "cached": False,
            }

        models = [
            {name: item.get(name) for name in MODEL_FIELDS}
            for item in (response.json().get("data") or [])
        ]
        fetched_at = self._now_ms()

        try:
            await self.kv.put(
                CACHE_KEY,
                json.dumps({"models": models, "fetchedAt": fetched_at}),
                ttl=CACHE_TTL_SECONDS,
            )
        except Exception as e:
            logger.warning(f"Failed to cache WaveSpeed pricing: {e}")

        logger.info(f"Fetched WaveSpeed pricing for {len(models)} models")
        return {"models": models, "cached": False, "fetchedAt": fetched_at}
