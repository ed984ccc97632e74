"""
Video Generation Service

Provider-agnostic video generation:
- Provider adapters: OpenAI (Sora 2) and WaveSpeed AI
- Registry: stored API keys -> adapter selection
- Request handler: validation, submission, job bookkeeping
- Pricing: per-second and per-generation cost estimates
"""

from .handler import GenerationRequestHandler, SubmissionResult, SubmitVideoRequest
from .models import (
    GenerationJob,
    GenerationRequest,
    GenerationResult,
    JobStatus,
    ModelPricing,
    ProviderKey,
    VideoModel,
    VideoStatus,
)
from .pricing import calculate_cost_from_pricing, format_cost
from .registry import ProviderRegistry

__all__ = [
    "GenerationRequestHandler",
    "SubmissionResult",
    "SubmitVideoRequest",
    "GenerationJob",
    "GenerationRequest",
    "GenerationResult",
    "JobStatus",
    "ModelPricing",
    "ProviderKey",
    "VideoModel",
    "VideoStatus",
    "calculate_cost_from_pricing",
    "format_cost",
    "ProviderRegistry",
]
