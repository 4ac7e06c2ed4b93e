"""
Application configuration for Vision Tool Flow.

Settings are read from environment variables (prefix ``VTF_``, nested
sections separated by ``__``) and an optional ``.env`` file, e.g.
``VTF_SYSTEM__LOG_LEVEL=DEBUG`` or ``VTF_API__PORT=9000``.
"""

from functools import lru_cache
from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SystemSettings(BaseModel):
    """Process-wide behaviour"""

    log_level: str = Field(default="INFO", description="Root logging level")
    debug: bool = Field(default=False, description="Enable debug mode (auto reload)")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log level: {v}")
        return level


class APISettings(BaseModel):
    """HTTP server settings"""

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1, le=65535)
    cors_enabled: bool = Field(default=True)
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])


class PipelineSettings(BaseModel):
    """Pipeline execution and result encoding"""

    max_image_size_mb: float = Field(default=50.0, gt=0)
    thumbnail_width: int = Field(default=640, ge=50, le=4096)
    overlay_jpeg_quality: int = Field(default=85, ge=1, le=100)


class Settings(BaseSettings):
    """Root settings object"""

    model_config = SettingsConfigDict(
        env_prefix="VTF_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    environment: str = Field(default="development")
    system: SystemSettings = Field(default_factory=SystemSettings)
    api: APISettings = Field(default_factory=APISettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
