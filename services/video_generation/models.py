"""
Shared types for video generation.

Two status vocabularies exist:
- VideoStatus: what provider adapters report (queued/processing/complete/error)
- JobStatus: what the job table stores (pending/generating/complete/error)
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from core.errors import InvalidRequestError

MAX_PROMPT_LENGTH = 4000
DEFAULT_ASPECT_RATIO = "16:9"


def validate_prompt(prompt: Any, field_name: str = "Prompt") -> str:
    """Return the trimmed prompt or raise InvalidRequestError."""
    if not isinstance(prompt, str) or not prompt.strip():
        raise InvalidRequestError(f"{field_name} is required", error_code="prompt_required")
    if len(prompt) > MAX_PROMPT_LENGTH:
        raise InvalidRequestError(
            f"{field_name} too long (max {MAX_PROMPT_LENGTH} characters)",
            error_code="prompt_too_long",
        )
    return prompt.strip()


class VideoStatus(str, Enum):
    """Normalized status reported by provider adapters."""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (VideoStatus.COMPLETE, VideoStatus.ERROR)


class JobStatus(str, Enum):
    """Status of a persisted generation job."""
    PENDING = "pending"
    GENERATING = "generating"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETE, JobStatus.ERROR)

    @classmethod
    def from_video_status(cls, status: VideoStatus) -> "JobStatus":
        return {
            VideoStatus.QUEUED: cls.PENDING,
            VideoStatus.PROCESSING: cls.GENERATING,
            VideoStatus.COMPLETE: cls.COMPLETE,
            VideoStatus.ERROR: cls.ERROR,
        }[status]


class ModelType(str, Enum):
    TEXT_TO_VIDEO = "text-to-video"
    IMAGE_TO_VIDEO = "image-to-video"
    IMAGE = "image"


@dataclass
class ResolutionPricing:
    """Rate override for a single resolution tier."""
    cost_per_second: Optional[float] = None
    cost_per_generation: Optional[float] = None

    def to_dict(self) -> dict:
        data = {}
        if self.cost_per_second is not None:
            data["estimatedCostPerSecond"] = self.cost_per_second
        if self.cost_per_generation is not None:
            data["estimatedCostPerGeneration"] = self.cost_per_generation
        return data


@dataclass
class ModelPricing:
    """Estimated pricing for a model, per second or flat per generation."""
    cost_per_second: Optional[float] = None
    cost_per_generation: Optional[float] = None
    pricing_by_resolution: dict[str, ResolutionPricing] = field(default_factory=dict)
    currency: str = "USD"

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"currency": self.currency}
        if self.cost_per_second is not None:
            data["estimatedCostPerSecond"] = self.cost_per_second
        if self.cost_per_generation is not None:
            data["estimatedCostPerGeneration"] = self.cost_per_generation
        if self.pricing_by_resolution:
            data["pricingByResolution"] = {
                res: tier.to_dict() for res, tier in self.pricing_by_resolution.items()
            }
        return data


@dataclass
class VideoModel:
    """Catalog entry for a model an adapter can run."""
    id: str
    display_name: str
    provider: str
    type: ModelType = ModelType.TEXT_TO_VIDEO
    max_duration: Optional[int] = None
    supported_durations: list[int] = field(default_factory=list)
    supported_aspect_ratios: list[str] = field(default_factory=list)
    supported_resolutions: list[str] = field(default_factory=list)
    # aspect ratio -> resolution -> vendor size string
    valid_sizes: dict[str, dict[str, str]] = field(default_factory=dict)
    pricing: Optional[ModelPricing] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "displayName": self.display_name,
            "provider": self.provider,
            "type": self.type.value,
            "maxDuration": self.max_duration,
            "supportedDurations": list(self.supported_durations),
            "supportedAspectRatios": list(self.supported_aspect_ratios),
            "supportedResolutions": list(self.supported_resolutions),
            "pricing": self.pricing.to_dict() if self.pricing else None,
        }


@dataclass
class GenerationRequest:
    """Request handed to a provider adapter."""
    prompt: str
    model: str
    aspect_ratio: Optional[str] = DEFAULT_ASPECT_RATIO
    duration: Optional[int] = None
    resolution: Optional[str] = None


@dataclass
class GenerationResult:
    """Outcome of submitting a generation (and of each status poll)."""
    status: VideoStatus
    provider_job_id: str = ""
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    duration: Optional[float] = None
    progress: Optional[float] = None
    error: Optional[str] = None
    cost: Optional[float] = None

    @classmethod
    def failed(cls, message: str, provider_job_id: str = "") -> "GenerationResult":
        return cls(status=VideoStatus.ERROR, provider_job_id=provider_job_id, error=message)


@dataclass
class ProviderKey:
    """Stored provider credential record (read-only to the core)."""
    id: str
    provider: str
    api_key: str
    name: str = ""
    enabled: bool = True
    video_enabled: bool = False
    video_models: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "ProviderKey":
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name") or "",
            provider=data.get("provider") or "",
            api_key=data.get("apiKey") or "",
            # Only an explicit false disables a key
            enabled=data.get("enabled") is not False,
            video_enabled=data.get("videoEnabled") is True,
            video_models=list(data.get("videoModels") or []),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "provider": self.provider,
            "apiKey": self.api_key,
            "enabled": self.enabled,
            "videoEnabled": self.video_enabled,
            "videoModels": list(self.video_models),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


@dataclass
class GenerationJob:
    """One persisted video generation and its evolving result."""
    id: str
    user_id: str
    prompt: str
    provider: str
    status: JobStatus = JobStatus.PENDING
    model: Optional[str] = None
    provider_job_id: Optional[str] = None
    aspect_ratio: Optional[str] = DEFAULT_ASPECT_RATIO
    resolution: Optional[str] = None
    duration_seconds: Optional[float] = None
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    r2_key: Optional[str] = None
    cost: float = 0.0
    error: Optional[str] = None
    conversation_id: Optional[str] = None
    message_id: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: dict) -> "GenerationJob":
        return cls(
            id=row["id"],
            user_id=row["user_id"],
            prompt=row["prompt"],
            provider=row["provider"],
            status=JobStatus(row["status"]),
            model=row.get("model"),
            provider_job_id=row.get("provider_job_id"),
            aspect_ratio=row.get("aspect_ratio"),
            resolution=row.get("resolution"),
            duration_seconds=row.get("duration_seconds"),
            video_url=row.get("video_url"),
            thumbnail_url=row.get("thumbnail_url"),
            r2_key=row.get("r2_key"),
            cost=row.get("cost") or 0.0,
            error=row.get("error"),
            conversation_id=row.get("conversation_id"),
            message_id=row.get("message_id"),
            created_at=row.get("created_at") or datetime.utcnow(),
            completed_at=row.get("completed_at"),
        )

    def to_dict(self) -> dict:
        """Client-visible representation (camelCase keys)."""
        return {
            "id": self.id,
            "prompt": self.prompt,
            "provider": self.provider,
            "providerJobId": self.provider_job_id,
            "model": self.model,
            "status": self.status.value,
            "videoUrl": self.video_url,
            "thumbnailUrl": self.thumbnail_url,
            "r2Key": self.r2_key,
            "duration": self.duration_seconds,
            "aspectRatio": self.aspect_ratio,
            "resolution": self.resolution,
            "cost": self.cost,
            "error": self.error,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "conversationId": self.conversation_id,
            "messageId": self.message_id,
        }
