"""Base interface for video generation provider adapters."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..models import GenerationRequest, GenerationResult, VideoModel

logger = logging.getLogger(__name__)


class VideoProviderAdapter(ABC):
    """
    Abstract base class for video generation providers.

    Adapters translate a GenerationRequest into a vendor HTTP call and
    normalize the vendor response into a GenerationResult. Vendor-reported
    failures come back as ERROR results; transport failures (httpx.HTTPError)
    propagate to the caller.

    Implementations:
    - OpenAIVideoAdapter: OpenAI video API (Sora 2)
    - WaveSpeedVideoAdapter: WaveSpeed AI hosted models
    """

    name: str = ""

    def __init__(
        self,
        api_base: str,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = 120.0,
    ):
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._http_client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def close(self):
        """Close the HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    @abstractmethod
    def get_available_models(self) -> list[VideoModel]:
        """Static model catalog for this provider. No I/O."""
        ...

    @abstractmethod
    async def generate_video(self, api_key: str, request: GenerationRequest) -> GenerationResult:
        """Submit a generation job to the vendor."""
        ...

    @abstractmethod
    async def get_status(self, api_key: str, provider_job_id: str) -> GenerationResult:
        """Poll the vendor for the current state of a job."""
        ...

    def _download_headers(self, api_key: str) -> dict[str, str]:
        return {}

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def download_video(self, api_key: str, video_url: str) -> bytes:
        """
        Fetch the finished video bytes from the vendor's hosting URL.

        Raises httpx.HTTPStatusError on a non-2xx response. Transport errors
        are retried with exponential backoff before propagating.
        """
        client = await self._get_client()
        response = await client.get(video_url, headers=self._download_headers(api_key))
        response.raise_for_status()
        logger.info(f"[{self.name}] Downloaded {len(response.content)} bytes from {video_url}")
        return response.content

    def get_model(self, model_id: str) -> Optional[VideoModel]:
        for model in self.get_available_models():
            if model.id == model_id:
                return model
        return None

    def default_model_id(self) -> Optional[str]:
        models = self.get_available_models()
        return models[0].id if models else None
