"""
VideoForge Core Components

Foundational infrastructure shared by every service:
- Environment-driven configuration
- Error taxonomy for the generation lifecycle
"""

from .config import Config, get_config, reload_config
from .errors import (
    VideoGenerationError,
    InvalidRequestError,
    ProviderUnavailableError,
    ProviderRequestError,
    JobNotFoundError,
)

__all__ = [
    "Config",
    "get_config",
    "reload_config",
    "VideoGenerationError",
    "InvalidRequestError",
    "ProviderUnavailableError",
    "ProviderRequestError",
    "JobNotFoundError",
]
