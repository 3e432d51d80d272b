# imagepipe/config.py
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_AVATAR_SIZE,
    DEFAULT_CACHE_MAX_SIZE,
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_OVERLAY_PADDING,
    DEFAULT_QUALITY,
)
from .enums import LogLevel


class Settings(BaseSettings):
    environment: str = "development"

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO, description="Minimum level written to the console"
    )
    log_file_path: Optional[str] = Field(
        default=None,
        description="Optional path for a rotating log file; disabled when unset",
    )

    # Result cache
    cache_max_size: int = Field(
        default=DEFAULT_CACHE_MAX_SIZE,
        ge=1,
        description="Maximum number of processed results held in memory",
    )
    cache_ttl_seconds: float = Field(
        default=DEFAULT_CACHE_TTL_SECONDS,
        gt=0,
        description="Seconds a cached result stays valid after insertion",
    )

    # Fingerprinting
    # None hashes the whole input. A positive value hashes only that many
    # leading bytes plus the total length, which can collide on inputs that
    # share a long prefix and have equal size.
    fingerprint_sample_bytes: Optional[int] = Field(
        default=None,
        ge=1,
        description="Leading bytes of the input to hash (None = full input)",
    )

    # Pipeline defaults
    default_quality: int = Field(
        default=DEFAULT_QUALITY,
        ge=1,
        le=100,
        description="Encoder quality used when a format is set without quality",
    )
    avatar_default_size: int = Field(
        default=DEFAULT_AVATAR_SIZE,
        ge=1,
        description="Edge length of avatars when no size is given",
    )
    overlay_padding: int = Field(
        default=DEFAULT_OVERLAY_PADDING,
        ge=0,
        description="Distance in pixels between text overlays and the image edge",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v) -> LogLevel:
        """Validate log level is one of the allowed values"""
        if isinstance(v, LogLevel):
            return v
        allowed_levels = LogLevel.__members__.keys()
        v_upper = str(v).upper()
        if v_upper not in allowed_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: {', '.join(allowed_levels)}"
            )
        return LogLevel[v_upper]

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment is one of the allowed values"""
        allowed_envs = ["development", "testing", "production"]
        v_lower = v.lower()
        if v_lower not in allowed_envs:
            raise ValueError(
                f"Invalid environment '{v}'. Must be one of: {', '.join(allowed_envs)}"
            )
        return v_lower

    model_config = SettingsConfigDict(
        env_prefix="IMAGEPIPE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
