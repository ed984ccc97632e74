"""
WaveSpeed AI Video Adapter

API base: https://api.wavespeed.ai/api/v3
Flow: POST /wavespeed-ai/{model} -> poll /predictions/{id}/result

Model ids map directly to URL path segments and may contain slashes
(e.g. "wan-2.1/t2v-720p"). Catalog prices are flat per-generation estimates;
live pricing is served by the pricing cache.
"""

import logging

from ..models import (
    GenerationRequest,
    GenerationResult,
    ModelPricing,
    ModelType,
    VideoModel,
    VideoStatus,
)
from .base import VideoProviderAdapter

logger = logging.getLogger(__name__)

MODEL_PREFIX = "wavespeed-ai/"

_DURATIONS = [5, 8]
_RATIOS = ["16:9", "9:16", "1:1"]


def map_status(ws_status: str) -> VideoStatus:
    """Map a WaveSpeed task status onto the normalized vocabulary."""
    if ws_status in ("created", "pending"):
        return VideoStatus.QUEUED
    if ws_status == "completed":
        return VideoStatus.COMPLETE
    if ws_status == "failed":
        return VideoStatus.ERROR
    return VideoStatus.PROCESSING


def _model(model_id: str, display_name: str, model_type: ModelType, price: float) -> VideoModel:
    return VideoModel(
        id=model_id,
        display_name=display_name,
        provider="wavespeed",
        type=model_type,
        supported_durations=[] if model_type == ModelType.IMAGE else list(_DURATIONS),
        supported_aspect_ratios=list(_RATIOS),
        pricing=ModelPricing(cost_per_generation=price),
    )


WAVESPEED_VIDEO_MODELS = [
    # Wan 2.1
    _model("wan-2.1/t2v-720p", "Wan 2.1 Text-to-Video 720p", ModelType.TEXT_TO_VIDEO, 0.03),
    _model("wan-2.1/i2v-720p", "Wan 2.1 Image-to-Video 720p", ModelType.IMAGE_TO_VIDEO, 0.04),
    _model("wan-2.1/t2v-480p", "Wan 2.1 Text-to-Video 480p", ModelType.TEXT_TO_VIDEO, 0.02),
    # Wan 2.2
    _model("wan-2.2/t2v-720p", "Wan 2.2 Text-to-Video 720p", ModelType.TEXT_TO_VIDEO, 0.04),
    _model("wan-2.2/i2v-480p", "Wan 2.2 Image-to-Video 480p", ModelType.IMAGE_TO_VIDEO, 0.03),
    # FLUX image models
    _model("flux-dev", "FLUX Dev", ModelType.IMAGE, 0.025),
    _model("flux-schnell", "FLUX Schnell", ModelType.IMAGE, 0.015),
    # Hunyuan
    _model("hunyuan-video/t2v", "Hunyuan Video Text-to-Video", ModelType.TEXT_TO_VIDEO, 0.05),
    # LTX 2
    _model("ltx-video/ltx-2-19b-text-to-video", "LTX 2 Text-to-Video", ModelType.TEXT_TO_VIDEO, 0.03),
    _model("ltx-video/ltx-2-19b-image-to-video", "LTX 2 Image-to-Video", ModelType.IMAGE_TO_VIDEO, 0.035),
    # Framepack
    _model("framepack/framepack-f1", "Framepack", ModelType.IMAGE_TO_VIDEO, 0.04),
]


class WaveSpeedVideoAdapter(VideoProviderAdapter):
    """
    Adapter for WaveSpeed AI's media generation API.

    Usage:
        adapter = WaveSpeedVideoAdapter()
        result = await adapter.generate_video(
            api_key,
            GenerationRequest(prompt="City at night", model="wan-2.1/t2v-720p", duration=5),
        )
    """

    name = "wavespeed"

    def __init__(self, api_base: str = "https://api.wavespeed.ai/api/v3", **kwargs):
        super().__init__(api_base, **kwargs)

    def get_available_models(self) -> list[VideoModel]:
        return list(WAVESPEED_VIDEO_MODELS)

    @staticmethod
    def model_path(model_id: str) -> str:
        if model_id.startswith(MODEL_PREFIX):
            return model_id
        return f"{MODEL_PREFIX}{model_id}"

    @staticmethod
    def _api_error(response) -> str:
        text = response.text or "Unknown error"
        return f"WaveSpeed API error {response.status_code}: {text}"

    async def generate_video(self, api_key: str, request: GenerationRequest) -> GenerationResult:
        client = await self._get_client()
        model_id = request.model or self.default_model_id()

        body = {"prompt": request.prompt}
        if request.aspect_ratio:
            body["aspect_ratio"] = request.aspect_ratio
        if request.duration:
            body["duration"] = request.duration
        if request.resolution:
            body["resolution"] = request.resolution

        response = await client.post(
            f"{self.api_base}/{self.model_path(model_id)}",
            json=body,
            headers={"Authorization": f"Bearer {api_key}"},
        )

        if response.status_code >= 400:
            message = self._api_error(response)
            logger.warning(f"[wavespeed] Submit rejected: {message}")
            return GenerationResult.failed(message)

        task = response.json().get("data") or {}
        result = GenerationResult(
            status=map_status(task.get("status", "")),
            provider_job_id=task.get("id") or "",
        )
        logger.info(f"[wavespeed] Submitted {result.provider_job_id} ({model_id}) -> {result.status.value}")
        return result

    async def get_status(self, api_key: str, provider_job_id: str) -> GenerationResult:
        client = await self._get_client()
        response = await client.get(
            f"{self.api_base}/predictions/{provider_job_id}/result",
            headers={"Authorization": f"Bearer {api_key}"},
        )

        if response.status_code >= 400:
            return GenerationResult.failed(self._api_error(response), provider_job_id)

        task = response.json().get("data") or {}
        status = map_status(task.get("status", ""))
        result = GenerationResult(status=status, provider_job_id=provider_job_id)

        outputs = task.get("outputs") or []
        if status == VideoStatus.COMPLETE and outputs:
            result.video_url = outputs[0]
            result.progress = 100
        if status == VideoStatus.ERROR:
            result.error = task.get("error") or "Unknown error"

        return result
