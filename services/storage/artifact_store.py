"""
Artifact Store - finished videos in Cloudflare R2 (S3 API).

boto3 is synchronous, so every call runs in the default executor to keep
the event loop free while large objects move.
"""

import asyncio
import logging
from typing import Optional

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import ClientError

from core.config import StorageConfig

logger = logging.getLogger(__name__)

FILE_ROUTE_PREFIX = "/api/video/file/"


def artifact_key(user_id: str, job_id: str) -> str:
    """Deterministic object key for a job's video."""
    return f"videos/{user_id}/{job_id}.mp4"


class ArtifactStore:
    """
    Object storage for generated videos.

    Usage:
        store = ArtifactStore.from_config(config.storage)
        await store.put("videos/u1/job1.mp4", data, "video/mp4")
        url = store.serving_url("videos/u1/job1.mp4")
    """

    def __init__(self, s3_client, bucket: str):
        self.s3 = s3_client
        self.bucket = bucket

    @classmethod
    def from_config(cls, storage: StorageConfig) -> "ArtifactStore":
        client = boto3.client(
            "s3",
            endpoint_url=storage.endpoint_url,
            aws_access_key_id=storage.r2_access_key,
            aws_secret_access_key=storage.r2_secret_key,
            region_name="auto",
            config=BotoConfig(signature_version="s3v4"),
        )
        logger.info(f"Using R2 bucket {storage.r2_bucket} at {storage.endpoint_url}")
        return cls(client, storage.r2_bucket)

    async def _run(self, func, **kwargs):
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, lambda: func(**kwargs))

    async def put(self, key: str, data: bytes, content_type: str):
        await self._run(
            self.s3.put_object,
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=content_type,
        )
        logger.info(f"Stored {len(data)} bytes at {key}")

    async def get(self, key: str) -> Optional[tuple[bytes, str]]:
        """Return (bytes, content type), or None when the object is missing."""
        try:
            obj = await self._run(self.s3.get_object, Bucket=self.bucket, Key=key)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("NoSuchKey", "404"):
                return None
            raise
        body = await self._run(obj["Body"].read)
        return body, obj.get("ContentType") or "application/octet-stream"

    async def delete(self, key: str):
        await self._run(self.s3.delete_object, Bucket=self.bucket, Key=key)
        logger.info(f"Deleted {key}")

    @staticmethod
    def serving_url(key: str) -> str:
        return f"{FILE_ROUTE_PREFIX}{key}"
