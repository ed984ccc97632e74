"""
Shared fixtures: in-memory KV store, recording job store, scripted adapter.
"""

import json
import os
import sys
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.video_generation.models import (  # noqa: E402
    GenerationJob,
    GenerationRequest,
    GenerationResult,
    JobStatus,
    ModelPricing,
    ProviderKey,
    VideoModel,
    VideoStatus,
)
from services.video_generation.providers.base import VideoProviderAdapter  # noqa: E402
from services.video_generation.registry import KEY_PREFIX, KEYS_LIST_KEY  # noqa: E402


class FakeKV:
    """Dict-backed stand-in for KVStore."""

    def __init__(self, data: Optional[dict] = None):
        self.data = dict(data or {})
        self.ttls: dict[str, Optional[int]] = {}

    async def get(self, key):
        return self.data.get(key)

    async def put(self, key, value, ttl=None):
        self.data[key] = value
        self.ttls[key] = ttl

    async def delete(self, key):
        self.data.pop(key, None)

    def add_keys(self, *keys: ProviderKey):
        ids = json.loads(self.data.get(KEYS_LIST_KEY, "[]"))
        for key in keys:
            ids.append(key.id)
            self.data[f"{KEY_PREFIX}{key.id}"] = key.to_json()
        self.data[KEYS_LIST_KEY] = json.dumps(ids)


class ScriptedAdapter(VideoProviderAdapter):
    """Adapter whose submit/poll results are scripted by the test."""

    def __init__(self, name="openai", models=None, submit_result=None, poll_results=None, video_bytes=b"mp4"):
        super().__init__("https://fake.example/v1")
        self.name = name
        self.models = models if models is not None else [
            VideoModel(
                id="sora-2",
                display_name="Sora 2",
                provider=name,
                supported_durations=[4, 8, 12],
                pricing=ModelPricing(cost_per_second=0.10),
            ),
        ]
        self.submit_result = submit_result
        self.poll_results = list(poll_results or [])
        self.video_bytes = video_bytes
        self.submitted: list[GenerationRequest] = []
        self.polls = 0
        self.downloads: list[str] = []

    def get_available_models(self):
        return list(self.models)

    async def generate_video(self, api_key, request):
        self.submitted.append(request)
        if isinstance(self.submit_result, Exception):
            raise self.submit_result
        return self.submit_result

    async def get_status(self, api_key, provider_job_id):
        self.polls += 1
        result = self.poll_results.pop(0) if len(self.poll_results) > 1 else self.poll_results[0]
        if isinstance(result, Exception):
            raise result
        return result

    async def download_video(self, api_key, video_url):
        self.downloads.append(video_url)
        if isinstance(self.video_bytes, Exception):
            raise self.video_bytes
        return self.video_bytes


def make_key(key_id="k1", provider="openai", **overrides) -> ProviderKey:
    fields = dict(id=key_id, provider=provider, api_key=f"sk-{key_id}", enabled=True, video_enabled=True)
    fields.update(overrides)
    return ProviderKey(**fields)


def make_job(**overrides) -> GenerationJob:
    fields = dict(
        id="job-1",
        user_id="user-1",
        prompt="A sunset over the ocean",
        provider="openai",
        model="sora-2",
        provider_job_id="video_123",
        status=JobStatus.PENDING,
    )
    fields.update(overrides)
    return GenerationJob(**fields)


@pytest.fixture
def fake_kv():
    return FakeKV()


@pytest.fixture
def job_store():
    """Job store double with every method an AsyncMock."""
    store = MagicMock()
    store.insert = AsyncMock()
    store.update_status = AsyncMock(return_value=True)
    store.update_message_media = AsyncMock()
    store.get_by_id = AsyncMock(return_value=None)
    store.list_for_user = AsyncMock(return_value=([], 0))
    store.update_prompt = AsyncMock()
    store.delete = AsyncMock()
    return store


@pytest.fixture
def mock_db_pool():
    """asyncpg pool double; `pool.conn` is the acquired connection."""
    pool = MagicMock()
    conn = AsyncMock()

    conn.fetch = AsyncMock(return_value=[])
    conn.fetchrow = AsyncMock(return_value=None)
    conn.fetchval = AsyncMock(return_value=0)
    conn.execute = AsyncMock(return_value="UPDATE 1")

    pool.acquire = MagicMock(return_value=AsyncMock(
        __aenter__=AsyncMock(return_value=conn),
        __aexit__=AsyncMock(return_value=None),
    ))
    pool.conn = conn
    return pool


def processing(progress=0, job_id="video_123") -> GenerationResult:
    return GenerationResult(status=VideoStatus.PROCESSING, provider_job_id=job_id, progress=progress)
