"""
KV and artifact store client tests (redis and boto3 clients mocked).

Run with:
    python -m pytest tests/test_storage.py -v
"""

import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest
from botocore.exceptions import ClientError

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import StorageConfig
from services.storage import ArtifactStore, KVStore, artifact_key


class TestKVStore:

    @pytest.fixture
    def redis_client(self):
        client = MagicMock()
        client.get = AsyncMock(return_value=None)
        client.set = AsyncMock()
        client.delete = AsyncMock()
        client.ping = AsyncMock(return_value=True)
        client.aclose = AsyncMock()
        return client

    @pytest.mark.asyncio
    async def test_missing_key_is_none(self, redis_client):
        assert await KVStore(redis_client).get("ai_keys_list") is None

    @pytest.mark.asyncio
    async def test_bytes_are_decoded(self, redis_client):
        redis_client.get.return_value = b'["k1"]'
        assert await KVStore(redis_client).get("ai_keys_list") == '["k1"]'

    @pytest.mark.asyncio
    async def test_put_with_ttl(self, redis_client):
        await KVStore(redis_client).put("wavespeed_pricing_cache", "{}", ttl=86400)
        redis_client.set.assert_awaited_once_with("wavespeed_pricing_cache", "{}", ex=86400)

    @pytest.mark.asyncio
    async def test_put_without_ttl(self, redis_client):
        await KVStore(redis_client).put("k", "v")
        redis_client.set.assert_awaited_once_with("k", "v", ex=None)

    @pytest.mark.asyncio
    async def test_health_check(self, redis_client):
        kv = KVStore(redis_client)
        assert (await kv.health_check())["status"] == "healthy"

        redis_client.ping.side_effect = ConnectionError("refused")
        health = await kv.health_check()
        assert health["status"] == "unhealthy"
        assert "refused" in health["error"]

    @pytest.mark.asyncio
    async def test_close(self, redis_client):
        await KVStore(redis_client).close()
        redis_client.aclose.assert_awaited_once()


class TestArtifactStore:

    @pytest.fixture
    def s3(self):
        return MagicMock()

    def test_artifact_key(self):
        assert artifact_key("user-1", "job-1") == "videos/user-1/job-1.mp4"

    def test_serving_url(self):
        assert ArtifactStore.serving_url("videos/u/j.mp4") == "/api/video/file/videos/u/j.mp4"

    @pytest.mark.asyncio
    async def test_put(self, s3):
        store = ArtifactStore(s3, "bucket")

        await store.put("videos/u/j.mp4", b"data", "video/mp4")

        s3.put_object.assert_called_once_with(
            Bucket="bucket",
            Key="videos/u/j.mp4",
            Body=b"data",
            ContentType="video/mp4",
        )

    @pytest.mark.asyncio
    async def test_get(self, s3):
        body = MagicMock()
        body.read.return_value = b"data"
        s3.get_object.return_value = {"Body": body, "ContentType": "video/mp4"}
        store = ArtifactStore(s3, "bucket")

        assert await store.get("videos/u/j.mp4") == (b"data", "video/mp4")

    @pytest.mark.asyncio
    async def test_get_missing(self, s3):
        s3.get_object.side_effect = ClientError({"Error": {"Code": "NoSuchKey"}}, "GetObject")
        store = ArtifactStore(s3, "bucket")

        assert await store.get("videos/u/missing.mp4") is None

    @pytest.mark.asyncio
    async def test_get_other_errors_propagate(self, s3):
        s3.get_object.side_effect = ClientError({"Error": {"Code": "AccessDenied"}}, "GetObject")
        store = ArtifactStore(s3, "bucket")

        with pytest.raises(ClientError):
            await store.get("videos/u/j.mp4")

    @pytest.mark.asyncio
    async def test_delete(self, s3):
        await ArtifactStore(s3, "bucket").delete("videos/u/j.mp4")
        s3.delete_object.assert_called_once_with(Bucket="bucket", Key="videos/u/j.mp4")


class TestStorageConfig:

    def test_endpoint_from_account_id(self):
        storage = StorageConfig(r2_account_id="acct", r2_access_key="a", r2_secret_key="s", r2_bucket="b", r2_endpoint_url="")
        assert storage.endpoint_url == "https://acct.r2.cloudflarestorage.com"
        assert storage.enabled

    def test_explicit_endpoint(self):
        storage = StorageConfig(r2_account_id="", r2_access_key="a", r2_secret_key="s", r2_bucket="b", r2_endpoint_url="http://minio:9000")
        assert storage.endpoint_url == "http://minio:9000"
        assert storage.enabled

    def test_disabled_without_credentials(self):
        storage = StorageConfig(r2_account_id="acct", r2_access_key="", r2_secret_key="", r2_bucket="b", r2_endpoint_url="")
        assert not storage.enabled
