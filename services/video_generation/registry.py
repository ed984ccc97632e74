"""
Provider Registry

Resolves which stored API key to use for a generation and maps provider
names to adapter instances.

Key records live in the KV store:
- `ai_keys_list`: JSON list of key ids, in priority order
- `ai_key:{id}`: JSON record {id, name, provider, apiKey, enabled,
  videoEnabled, videoModels}

A key is usable for video when `enabled` is not explicitly false and
`videoEnabled` is true. The first usable key in stored order wins.
"""

import json
import logging
from typing import Optional

from core.config import ProviderConfig

from .models import ProviderKey, VideoModel
from .pricing import calculate_cost_from_pricing
from .providers import OpenAIVideoAdapter, VideoProviderAdapter, WaveSpeedVideoAdapter

logger = logging.getLogger(__name__)

KEYS_LIST_KEY = "ai_keys_list"
KEY_PREFIX = "ai_key:"


def default_adapters(config: Optional[ProviderConfig] = None) -> dict[str, VideoProviderAdapter]:
    """The explicit provider table: name -> adapter instance."""
    config = config or ProviderConfig()
    return {
        "openai": OpenAIVideoAdapter(config.openai_api_base, timeout=config.http_timeout),
        "wavespeed": WaveSpeedVideoAdapter(config.wavespeed_api_base, timeout=config.http_timeout),
    }


class ProviderRegistry:
    """
    Key resolution and adapter lookup.

    Usage:
        registry = ProviderRegistry(kv_store)
        key = await registry.resolve_enabled_key("openai")
        adapter = registry.get_adapter(key.provider)
    """

    def __init__(self, kv_store, adapters: Optional[dict[str, VideoProviderAdapter]] = None):
        self.kv = kv_store
        self.adapters = adapters if adapters is not None else default_adapters()

    async def _load_keys(self) -> list[ProviderKey]:
        raw_list = await self.kv.get(KEYS_LIST_KEY)
        if not raw_list:
            return []

        keys = []
        for key_id in json.loads(raw_list):
            raw_key = await self.kv.get(f"{KEY_PREFIX}{key_id}")
            if raw_key:
                keys.append(ProviderKey.from_dict(json.loads(raw_key)))
        return keys

    @staticmethod
    def _is_video_key(key: ProviderKey) -> bool:
        return key.enabled and key.video_enabled

    async def resolve_enabled_key(self, preferred_provider: Optional[str] = None) -> Optional[ProviderKey]:
        """
        First enabled, video-capable key, optionally restricted to a provider.

        Returns None when nothing matches or the store cannot be read.
        """
        try:
            for key in await self._load_keys():
                if not self._is_video_key(key):
                    continue
                if preferred_provider and key.provider != preferred_provider:
                    continue
                return key
        except Exception as e:
            logger.error(f"Failed to read video API keys: {e}")
        return None

    async def all_enabled_keys(self) -> list[ProviderKey]:
        try:
            return [key for key in await self._load_keys() if self._is_video_key(key)]
        except Exception as e:
            logger.error(f"Failed to read video API keys: {e}")
            return []

    async def find_provider_key(self, provider: str) -> Optional[ProviderKey]:
        """First enabled key for a provider, video-capable or not."""
        try:
            for key in await self._load_keys():
                if key.provider == provider and key.enabled and key.api_key:
                    return key
        except Exception as e:
            logger.error(f"Failed to read {provider} API key: {e}")
        return None

    def get_adapter(self, provider_name: Optional[str]) -> Optional[VideoProviderAdapter]:
        if not provider_name:
            return None
        return self.adapters.get(provider_name)

    def models_for_key(self, key: ProviderKey) -> list[VideoModel]:
        """The adapter's catalog, narrowed to the key's allowlist if it has one."""
        adapter = self.get_adapter(key.provider)
        if adapter is None:
            return []

        models = adapter.get_available_models()
        if key.video_models:
            return [m for m in models if m.id in key.video_models]
        return models

    async def all_enabled_keys_and_models(self) -> list[tuple[ProviderKey, list[VideoModel]]]:
        """Every enabled key with its models, for client-side pickers."""
        return [(key, self.models_for_key(key)) for key in await self.all_enabled_keys()]

    def all_models(self) -> list[VideoModel]:
        models = []
        for adapter in self.adapters.values():
            models.extend(adapter.get_available_models())
        return models

    def lookup_model_cost(
        self,
        provider_name: str,
        model_id: Optional[str],
        duration_seconds: Optional[float],
        resolution: Optional[str] = None,
    ) -> float:
        """Cost from the catalog pricing; 0 for unknown provider or model."""
        adapter = self.get_adapter(provider_name)
        if adapter is None or not model_id:
            return 0.0

        model = adapter.get_model(model_id)
        if model is None or model.pricing is None:
            return 0.0

        return calculate_cost_from_pricing(model.pricing, duration_seconds, resolution)

    async def close(self):
        for adapter in self.adapters.values():
            await adapter.close()
