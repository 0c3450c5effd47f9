"""
Configuration management for the Lightrate client.
"""

from typing import Any, Dict, Optional

from pydantic import Field, PositiveInt, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BASE_URL = "https://api.lightrate.lightbournetechnologies.ca"
LOG_LEVELS = ("debug", "info", "warning", "error", "critical")


class LightrateConfig(BaseSettings):
    """Client settings, read from ``LIGHTRATE_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="LIGHTRATE_",
        env_file=".env",
        case_sensitive=False,
        validate_assignment=True,
        extra="ignore"
    )

    # Credentials
    api_key: Optional[str] = None
    application_id: Optional[str] = None

    # Transport
    base_url: str = DEFAULT_BASE_URL
    timeout: float = Field(default=30.0, gt=0)
    retry_attempts: int = Field(default=3, ge=0)

    # Local token buckets
    default_local_bucket_size: int = Field(default=5, gt=0)
    operation_bucket_sizes: Dict[str, PositiveInt] = Field(default_factory=dict)
    path_bucket_sizes: Dict[str, PositiveInt] = Field(default_factory=dict)
    bucket_staleness_seconds: float = Field(default=60.0, gt=0)

    log_level: str = "info"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.lower()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    def bucket_size_for(self, operation: Optional[str] = None, path: Optional[str] = None) -> int:
        """Resolve the local bucket size: path override, then operation override, then default."""
        if path is not None and path in self.path_bucket_sizes:
            return self.path_bucket_sizes[path]
        if operation is not None and operation in self.operation_bucket_sizes:
            return self.operation_bucket_sizes[operation]
        return self.default_local_bucket_size

    def to_dict(self) -> Dict[str, Any]:
        """Settings with the API key masked, safe to log."""
        data = self.model_dump()
        data["api_key"] = "******"
        return data


_config: Optional[LightrateConfig] = None


def get_config() -> LightrateConfig:
    """Get the process-wide default configuration."""
    global _config
    if _config is None:
        _config = LightrateConfig()
    return _config


def reset_config() -> None:
    """Forget the process-wide default configuration."""
    global _config
    _config = None
