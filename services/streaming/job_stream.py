"""
Job Stream - polling orchestrator behind the SSE endpoint.

Carries a queued generation to a terminal state while the client listens:

    pending --(poll: queued/processing)--> generating --> complete | error

Per stream:
1. A job that is already complete/error yields one event and stops; the
   provider is never polled.
2. The provider key is resolved again (it may have been disabled since
   submission). No key ends the stream with an error event.
3. Poll immediately, then every `poll_interval` seconds. A poll that raises
   is reported as a non-fatal "Temporary polling error" event.
4. On complete the artifact is downloaded and stored (best-effort), cost is
   computed and the job row updated (best-effort), then the terminal event
   is emitted.
5. After `max_attempts` polls the stream ends with a timeout error.

Exactly one terminal event is emitted and nothing follows it. Closing the
client connection cancels the generator, which stops polling.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, Awaitable, Callable, Optional

from services.storage.artifact_store import artifact_key
from services.video_generation.best_effort import best_effort
from services.video_generation.models import (
    GenerationJob,
    GenerationResult,
    JobStatus,
    VideoStatus,
)
from services.video_generation.providers import VideoProviderAdapter
from services.video_generation.registry import ProviderRegistry

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Video generation timed out"
TRANSIENT_ERROR_MESSAGE = "Temporary polling error"
PROVIDER_GONE_MESSAGE = "Video provider no longer available"
VIDEO_CONTENT_TYPE = "video/mp4"


@dataclass
class StreamEvent:
    """One SSE payload."""
    status: str
    progress: float = 0
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration: Optional[float] = None
    error: Optional[str] = None
    cost: Optional[float] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (VideoStatus.COMPLETE.value, VideoStatus.ERROR.value)

    def to_dict(self) -> dict:
        data = {
            "status": self.status,
            "progress": self.progress,
            "videoUrl": self.video_url,
            "thumbnailUrl": self.thumbnail_url,
            "duration": self.duration,
            "error": self.error,
        }
        if self.cost is not None:
            data["cost"] = self.cost
        return data

    def to_sse(self) -> str:
        return format_sse(self.to_dict())


def format_sse(data: dict) -> str:
    """Format data as SSE event."""
    return f"data: {json.dumps(data)}\n\n"


def _error_event(message: str) -> StreamEvent:
    return StreamEvent(status=VideoStatus.ERROR.value, progress=0, error=message)


class JobStreamOrchestrator:
    """
    Drives one job's status polling and emits StreamEvents.

    Usage:
        orchestrator = JobStreamOrchestrator(registry, job_store, artifact_store)
        async for event in orchestrator.stream(job):
            yield event.to_sse()

    `sleep` is injectable so tests can run the poll loop without delays.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        job_store,
        artifact_store=None,
        poll_interval: float = 5.0,
        max_attempts: int = 120,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.registry = registry
        self.job_store = job_store
        self.artifact_store = artifact_store
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.sleep = sleep

    async def stream(self, job: GenerationJob) -> AsyncIterator[StreamEvent]:
        if job.status.is_terminal:
            yield StreamEvent(
                status=job.status.value,
                progress=100 if job.status == JobStatus.COMPLETE else 0,
                video_url=job.video_url,
                thumbnail_url=job.thumbnail_url,
                duration=job.duration_seconds,
                error=job.error,
            )
            return

        key = await self.registry.resolve_enabled_key(job.provider)
        adapter = self.registry.get_adapter(key.provider) if key else None
        if key is None or adapter is None:
            logger.warning(f"Job {job.id}: provider {job.provider} has no enabled key")
            yield _error_event(PROVIDER_GONE_MESSAGE)
            return

        if not job.provider_job_id:
            yield await self._fail(job, "Job has no provider job id")
            return

        marked_generating = job.status == JobStatus.GENERATING
        attempts = 0

        while True:
            attempts += 1
            if attempts > self.max_attempts:
                logger.warning(f"Job {job.id}: no terminal status after {self.max_attempts} polls")
                yield await self._fail(job, TIMEOUT_MESSAGE)
                return

            try:
                result = await adapter.get_status(key.api_key, job.provider_job_id)
            except Exception as e:
                logger.warning(f"Job {job.id}: poll {attempts} failed: {e}")
                yield StreamEvent(
                    status=VideoStatus.PROCESSING.value,
                    progress=0,
                    error=TRANSIENT_ERROR_MESSAGE,
                )
                await self.sleep(self.poll_interval)
                continue

            if result.status == VideoStatus.COMPLETE:
                yield await self._complete(job, adapter, key.api_key, result)
                return

            if result.status == VideoStatus.ERROR:
                yield await self._fail(job, result.error or "Unknown error")
                return

            if result.status == VideoStatus.PROCESSING and not marked_generating:
                marked_generating = True
                await best_effort(
                    f"mark job {job.id} generating",
                    self.job_store.update_status(job.id, status=JobStatus.GENERATING),
                )

            yield StreamEvent(
                status=result.status.value,
                progress=result.progress or 0,
                video_url=result.video_url,
                thumbnail_url=result.thumbnail_url,
                duration=result.duration,
            )
            await self.sleep(self.poll_interval)

    async def _persist_artifact(
        self,
        job: GenerationJob,
        adapter: VideoProviderAdapter,
        api_key: str,
        video_url: str,
    ) -> Optional[str]:
        """Download and store the video. Returns the object key, or None."""
        if self.artifact_store is None:
            return None

        download = await best_effort(
            f"download video for job {job.id}",
            adapter.download_video(api_key, video_url),
        )
        if not download.ok:
            return None

        key = artifact_key(job.user_id, job.id)
        upload = await best_effort(
            f"store video for job {job.id} at {key}",
            self.artifact_store.put(key, download.value, VIDEO_CONTENT_TYPE),
        )
        return key if upload.ok else None

    async def _complete(
        self,
        job: GenerationJob,
        adapter: VideoProviderAdapter,
        api_key: str,
        result: GenerationResult,
    ) -> StreamEvent:
        r2_key = None
        video_url = result.video_url
        if result.video_url:
            r2_key = await self._persist_artifact(job, adapter, api_key, result.video_url)
            if r2_key:
                video_url = self.artifact_store.serving_url(r2_key)

        duration = result.duration or job.duration_seconds
        cost = self.registry.lookup_model_cost(job.provider, job.model, duration, job.resolution)

        await best_effort(
            f"update job {job.id} to complete",
            self.job_store.update_status(
                job.id,
                status=JobStatus.COMPLETE,
                video_url=video_url,
                thumbnail_url=result.thumbnail_url,
                duration_seconds=duration,
                r2_key=r2_key,
                cost=cost,
                completed_at=datetime.utcnow(),
            ),
        )

        if job.message_id:
            media = {
                "media_status": "complete",
                "media_url": video_url,
                "media_thumbnail_url": result.thumbnail_url,
                "media_duration": duration,
            }
            if r2_key:
                media["media_r2_key"] = r2_key
            await best_effort(
                f"update chat message {job.message_id}",
                self.job_store.update_message_media(job.message_id, job.conversation_id, **media),
            )

        logger.info(f"Job {job.id} complete ({'stored at ' + r2_key if r2_key else 'provider-hosted'})")
        return StreamEvent(
            status=VideoStatus.COMPLETE.value,
            progress=100,
            video_url=video_url,
            thumbnail_url=result.thumbnail_url,
            duration=duration,
            cost=cost,
        )

    async def _fail(self, job: GenerationJob, message: str) -> StreamEvent:
        await best_effort(
            f"update job {job.id} to error",
            self.job_store.update_status(job.id, status=JobStatus.ERROR, error=message),
        )
        if job.message_id:
            await best_effort(
                f"update chat message {job.message_id}",
                self.job_store.update_message_media(
                    job.message_id,
                    media_status="error",
                    media_error=message,
                ),
            )
        logger.info(f"Job {job.id} failed: {message}")
        return _error_event(message)
