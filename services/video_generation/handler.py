"""
Generation Request Handler

Validates an inbound generation request, picks a provider key through the
registry, submits to the adapter and records the job.

Outcomes:
- adapter returns queued/processing: job stored as pending/generating, the
  SSE stream carries it to completion
- adapter returns complete: job stored as complete with its cost
- adapter returns error: error row stored, ProviderRequestError raised

Job-row writes here are best-effort; a bookkeeping failure never hides a
successful submission from the caller.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

import httpx

from core.errors import ProviderRequestError, ProviderUnavailableError

from .best_effort import best_effort
from .models import (
    DEFAULT_ASPECT_RATIO,
    GenerationJob,
    GenerationRequest,
    GenerationResult,
    JobStatus,
    VideoModel,
    VideoStatus,
    validate_prompt,
)
from .pricing import calculate_cost_from_pricing
from .registry import ProviderRegistry

logger = logging.getLogger(__name__)


@dataclass
class SubmitVideoRequest:
    """Inbound request as received from a client."""
    prompt: Any
    provider: Optional[str] = None
    model: Optional[str] = None
    aspect_ratio: Optional[str] = None
    duration: Any = None
    resolution: Optional[str] = None
    conversation_id: Optional[str] = None
    message_id: Optional[str] = None


@dataclass
class SubmissionResult:
    job: GenerationJob
    result: GenerationResult

    def to_dict(self) -> dict:
        return {
            "id": self.job.id,
            "status": self.result.status.value,
            "providerJobId": self.result.provider_job_id,
            "videoUrl": self.result.video_url,
            "thumbnailUrl": self.result.thumbnail_url,
            "cost": self.job.cost,
        }


def sanitize_duration(model: Optional[VideoModel], duration: Any) -> Optional[int]:
    """
    Drop a duration the model does not support.

    Unsupported values (including anything that is not a whole number of
    seconds) are treated as unset rather than rejected, so the adapter falls
    back to the vendor default.
    """
    if isinstance(duration, bool) or not isinstance(duration, int) or not duration:
        return None
    if model is not None and model.supported_durations and duration not in model.supported_durations:
        logger.info(f"Dropping unsupported duration {duration}s for {model.id}")
        return None
    return duration


class GenerationRequestHandler:
    """
    Entry point for new video generations.

    Usage:
        handler = GenerationRequestHandler(registry, job_store)
        submission = await handler.submit(user_id, SubmitVideoRequest(prompt="A sunset over the ocean"))
        submission.to_dict()  # {"id": ..., "status": "queued", "providerJobId": ...}
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        job_store,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.registry = registry
        self.job_store = job_store
        self.id_factory = id_factory

    async def submit(self, user_id: str, request: SubmitVideoRequest) -> SubmissionResult:
        prompt = validate_prompt(request.prompt)

        key = await self.registry.resolve_enabled_key(request.provider)
        if key is None:
            raise ProviderUnavailableError(
                "No video generation provider is currently available",
                error_code="no_provider",
                provider=request.provider,
            )

        adapter = self.registry.get_adapter(key.provider)
        if adapter is None:
            raise ProviderUnavailableError(
                f'Video provider "{key.provider}" is not supported',
                error_code="unsupported_provider",
                provider=key.provider,
            )

        model_id = request.model or adapter.default_model_id()
        model = adapter.get_model(model_id) if model_id else None
        duration = sanitize_duration(model, request.duration)
        aspect_ratio = request.aspect_ratio or DEFAULT_ASPECT_RATIO
        job_id = self.id_factory()

        generation = GenerationRequest(
            prompt=prompt,
            model=model_id,
            aspect_ratio=aspect_ratio,
            duration=duration,
            resolution=request.resolution or None,
        )

        try:
            result = await adapter.generate_video(key.api_key, generation)
        except httpx.HTTPError as e:
            logger.error(f"[{key.provider}] Submit failed for job {job_id}: {e}")
            result = GenerationResult.failed(str(e) or "Failed to start video generation")

        job = GenerationJob(
            id=job_id,
            user_id=user_id,
            prompt=prompt,
            provider=key.provider,
            model=model_id,
            aspect_ratio=aspect_ratio,
            resolution=request.resolution or None,
            conversation_id=request.conversation_id,
            message_id=request.message_id,
        )

        if result.status == VideoStatus.ERROR:
            job.status = JobStatus.ERROR
            job.error = result.error or "Unknown error"
            await best_effort(f"store failed generation {job_id}", self.job_store.insert(job))
            raise ProviderRequestError(
                result.error or "Video generation failed",
                error_code="provider_error",
                provider=key.provider,
            )

        job.status = JobStatus.from_video_status(result.status)
        job.provider_job_id = result.provider_job_id
        job.video_url = result.video_url
        job.thumbnail_url = result.thumbnail_url
        job.duration_seconds = result.duration or duration

        if job.status == JobStatus.COMPLETE:
            job.completed_at = datetime.utcnow()
            job.cost = calculate_cost_from_pricing(
                model.pricing if model else None,
                result.duration or 0,
                job.resolution,
            )

        await best_effort(f"store video generation {job_id}", self.job_store.insert(job))

        if job.status == JobStatus.COMPLETE and job.video_url and job.message_id and job.conversation_id:
            await best_effort(
                f"update chat message {job.message_id}",
                self.job_store.update_message_media(
                    job.message_id,
                    job.conversation_id,
                    media_status="complete",
                    media_url=job.video_url,
                    media_type="video",
                ),
            )

        logger.info(f"Job {job_id} submitted to {key.provider}/{model_id}: {result.status.value}")
        return SubmissionResult(job=job, result=result)
