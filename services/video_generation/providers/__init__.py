"""Provider adapters for the supported video vendors."""

from .base import VideoProviderAdapter
from .openai_video import OpenAIVideoAdapter
from .wavespeed_video import WaveSpeedVideoAdapter

__all__ = [
    "VideoProviderAdapter",
    "OpenAIVideoAdapter",
    "WaveSpeedVideoAdapter",
]
