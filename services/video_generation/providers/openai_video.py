"""
OpenAI Video Adapter (Sora 2)

Endpoints (relative to the API base):
- POST /videos               submit {model, prompt, size, seconds}
- GET  /videos/{id}          poll job state
- GET  /videos/{id}/content  download the finished MP4 (Bearer auth)

OpenAI reports integer progress while a job runs and the clip length as a
string in `seconds`.
"""

import logging
from typing import Optional

from ..models import (
    GenerationRequest,
    GenerationResult,
    ModelPricing,
    ModelType,
    ResolutionPricing,
    VideoModel,
    VideoStatus,
)
from .base import VideoProviderAdapter

logger = logging.getLogger(__name__)

DEFAULT_RESOLUTION = "720p"

STATUS_MAP = {
    "queued": VideoStatus.QUEUED,
    "in_progress": VideoStatus.PROCESSING,
    "completed": VideoStatus.COMPLETE,
    "failed": VideoStatus.ERROR,
}

# Used when the requested model is not in the catalog
FALLBACK_SIZES = {
    "720p": {"16:9": "1280x720", "9:16": "720x1280"},
    "1080p": {"16:9": "1792x1024", "9:16": "1024x1792"},
}

OPENAI_VIDEO_MODELS = [
    VideoModel(
        id="sora-2",
        display_name="Sora 2",
        provider="openai",
        type=ModelType.TEXT_TO_VIDEO,
        max_duration=12,
        supported_durations=[4, 8, 12],
        supported_aspect_ratios=["16:9", "9:16"],
        supported_resolutions=["720p"],
        valid_sizes={
            "16:9": {"720p": "1280x720"},
            "9:16": {"720p": "720x1280"},
        },
        pricing=ModelPricing(
            cost_per_second=0.10,
            pricing_by_resolution={"720p": ResolutionPricing(cost_per_second=0.10)},
        ),
    ),
    VideoModel(
        id="sora-2-pro",
        display_name="Sora 2 Pro",
        provider="openai",
        type=ModelType.TEXT_TO_VIDEO,
        max_duration=12,
        supported_durations=[4, 8, 12],
        supported_aspect_ratios=["16:9", "9:16"],
        supported_resolutions=["720p", "1080p"],
        valid_sizes={
            "16:9": {"720p": "1280x720", "1080p": "1792x1024"},
            "9:16": {"720p": "720x1280", "1080p": "1024x1792"},
        },
        pricing=ModelPricing(
            cost_per_second=0.30,
            pricing_by_resolution={
                "720p": ResolutionPricing(cost_per_second=0.30),
                "1080p": ResolutionPricing(cost_per_second=0.50),
            },
        ),
    ),
]


def _parse_seconds(value) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _error_message(response, fallback: str) -> str:
    try:
        payload = response.json()
    except ValueError:
        return fallback
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
    return fallback


class OpenAIVideoAdapter(VideoProviderAdapter):
    """
    Adapter for OpenAI's video generation API.

    Usage:
        adapter = OpenAIVideoAdapter()
        result = await adapter.generate_video(
            api_key,
            GenerationRequest(prompt="A sunset over the ocean", model="sora-2", duration=8),
        )
        status = await adapter.get_status(api_key, result.provider_job_id)
    """

    name = "openai"

    def __init__(self, api_base: str = "https://api.openai.com/v1", **kwargs):
        super().__init__(api_base, **kwargs)

    def get_available_models(self) -> list[VideoModel]:
        return list(OPENAI_VIDEO_MODELS)

    def resolve_size(
        self,
        model_id: str,
        aspect_ratio: Optional[str],
        resolution: Optional[str],
    ) -> str:
        """Pick the vendor `size` string for an aspect ratio/resolution pair."""
        aspect = aspect_ratio or "16:9"
        res = resolution or DEFAULT_RESOLUTION

        model = self.get_model(model_id)
        if model and model.valid_sizes:
            sizes = model.valid_sizes.get(aspect) or model.valid_sizes.get("16:9") or {}
            if res in sizes:
                return sizes[res]
            if sizes:
                # Unsupported resolution: first valid size for this ratio
                return next(iter(sizes.values()))

        table = FALLBACK_SIZES.get(res, FALLBACK_SIZES[DEFAULT_RESOLUTION])
        return table.get(aspect, table["16:9"])

    def _content_url(self, video_id: str) -> str:
        return f"{self.api_base}/videos/{video_id}/content"

    def _download_headers(self, api_key: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {api_key}"}

    def _parse_job(self, data: dict) -> GenerationResult:
        video_id = data.get("id") or ""
        status = STATUS_MAP.get(data.get("status"), VideoStatus.PROCESSING)

        result = GenerationResult(
            status=status,
            provider_job_id=video_id,
            duration=_parse_seconds(data.get("seconds")),
            progress=data.get("progress") or 0,
        )

        if status == VideoStatus.COMPLETE:
            result.video_url = self._content_url(video_id)
            result.progress = 100
        elif status == VideoStatus.ERROR:
            error = data.get("error") or {}
            result.error = error.get("message") if isinstance(error, dict) else None
            result.error = result.error or "Video generation failed"

        return result

    async def generate_video(self, api_key: str, request: GenerationRequest) -> GenerationResult:
        client = await self._get_client()
        model_id = request.model or self.default_model_id()

        body = {
            "model": model_id,
            "prompt": request.prompt,
            "size": self.resolve_size(model_id, request.aspect_ratio, request.resolution),
        }
        if request.duration:
            body["seconds"] = str(request.duration)

        response = await client.post(
            f"{self.api_base}/videos",
            json=body,
            headers={"Authorization": f"Bearer {api_key}"},
        )

        if response.status_code >= 400:
            message = _error_message(response, f"OpenAI API error: {response.status_code}")
            logger.warning(f"[openai] Submit rejected ({response.status_code}): {message}")
            return GenerationResult.failed(message)

        result = self._parse_job(response.json())
        logger.info(f"[openai] Submitted {result.provider_job_id} ({model_id}, {body['size']}) -> {result.status.value}")
        return result

    async def get_status(self, api_key: str, provider_job_id: str) -> GenerationResult:
        client = await self._get_client()
        response = await client.get(
            f"{self.api_base}/videos/{provider_job_id}",
            headers={"Authorization": f"Bearer {api_key}"},
        )

        if response.status_code >= 400:
            message = _error_message(response, f"Status check failed: {response.status_code}")
            return GenerationResult.failed(message, provider_job_id)

        return self._parse_job(response.json())
