"""
Error taxonomy for the video generation lifecycle.

Each error carries the HTTP status the API surfaces it with:
- InvalidRequestError: bad input, rejected before any provider call
- ProviderUnavailableError: no enabled key / unsupported provider
- ProviderRequestError: the remote provider failed the request
- JobNotFoundError: unknown job (or not owned by the caller)
"""

from typing import Optional


class VideoGenerationError(Exception):
    """Raised when video generation fails."""

    status_code = 500

    def __init__(self, message: str, error_code: Optional[str] = None, provider: Optional[str] = None):
        self.message = message
        self.error_code = error_code
        self.provider = provider
        super().__init__(message)


class InvalidRequestError(VideoGenerationError):
    status_code = 400


class ProviderUnavailableError(VideoGenerationError):
    status_code = 503


class ProviderRequestError(VideoGenerationError):
    status_code = 502


class JobNotFoundError(VideoGenerationError):
    status_code = 404
