"""
Configuration management for VideoForge.

Centralizes all configuration including:
- Provider API endpoints and HTTP timeouts
- Polling cadence for the generation stream
- Database, key-value and object storage endpoints
"""

import os
from dataclasses import dataclass, field
from typing import Optional


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


@dataclass
class ProviderConfig:
    """Vendor API endpoints for video generation."""

    openai_api_base: str = field(
        default_factory=lambda: os.getenv("OPENAI_API_BASE", "https://api.openai.com/v1")
    )
    wavespeed_api_base: str = field(
        default_factory=lambda: os.getenv("WAVESPEED_API_BASE", "https://api.wavespeed.ai/api/v3")
    )

    # Seconds; generation submits return quickly but downloads can be large
    http_timeout: float = field(default_factory=lambda: _env_float("PROVIDER_HTTP_TIMEOUT", 120.0))


@dataclass
class PollingConfig:
    """Status polling for the SSE stream."""
    interval_seconds: float = field(default_factory=lambda: _env_float("VIDEO_POLL_INTERVAL", 5.0))
    max_attempts: int = field(default_factory=lambda: _env_int("VIDEO_POLL_MAX_ATTEMPTS", 120))


@dataclass
class DatabaseConfig:
    """Database configuration."""
    url: str = field(default_factory=lambda: os.getenv("DATABASE_URL", ""))
    pool_min_size: int = 2
    pool_max_size: int = 10


@dataclass
class StorageConfig:
    """Object storage (Cloudflare R2, S3 API) for finished videos."""
    r2_account_id: str = field(default_factory=lambda: os.getenv("R2_ACCOUNT_ID", ""))
    r2_access_key: str = field(default_factory=lambda: os.getenv("R2_ACCESS_KEY", ""))
    r2_secret_key: str = field(default_factory=lambda: os.getenv("R2_SECRET_KEY", ""))
    r2_bucket: str = field(default_factory=lambda: os.getenv("R2_BUCKET", "videoforge"))
    r2_endpoint_url: str = field(default_factory=lambda: os.getenv("R2_ENDPOINT_URL", ""))

    @property
    def endpoint_url(self) -> str:
        if self.r2_endpoint_url:
            return self.r2_endpoint_url
        return f"https://{self.r2_account_id}.r2.cloudflarestorage.com"

    @property
    def enabled(self) -> bool:
        has_endpoint = bool(self.r2_endpoint_url or self.r2_account_id)
        return bool(has_endpoint and self.r2_access_key and self.r2_secret_key and self.r2_bucket)


@dataclass
class KVConfig:
    """Key-value store holding provider key configuration."""
    redis_url: str = field(default_factory=lambda: os.getenv("REDIS_URL", "redis://localhost:6379/0"))


@dataclass
class ServerConfig:
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _env_int("PORT", 8765))


@dataclass
class Config:
    """Main configuration class."""

    providers: ProviderConfig = field(default_factory=ProviderConfig)
    polling: PollingConfig = field(default_factory=PollingConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    kv: KVConfig = field(default_factory=KVConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        return cls()

    def validate(self) -> list[str]:
        """Validate configuration and return list of issues."""
        issues = []

        if not self.database.url:
            issues.append("DATABASE_URL not configured")

        if not self.kv.redis_url:
            issues.append("REDIS_URL not configured (provider keys are read from it)")

        if not self.storage.enabled:
            issues.append("R2 storage not configured (videos will not be cached)")

        if self.polling.interval_seconds <= 0:
            issues.append("VIDEO_POLL_INTERVAL must be positive")

        if self.polling.max_attempts < 1:
            issues.append("VIDEO_POLL_MAX_ATTEMPTS must be at least 1")

        return issues


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reload_config():
    """Reload configuration from environment."""
    global _config
    _config = Config.from_env()
