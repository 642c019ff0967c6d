"""Environment-driven settings plus the per-service rate limits in ``rate_limits.yaml``."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, PositiveInt, SecretStr, model_validator
from pydantic.networks import PostgresDsn
from pydantic_settings import BaseSettings, SettingsConfigDict

from stwipe.config import CONFIG_ROOT

DEFAULT_RATE_LIMITS_FILE = CONFIG_ROOT / "rate_limits.yaml"


class ServiceRateLimit(BaseModel):
    model_config = ConfigDict(extra="forbid")

    requests_per_minute: Optional[PositiveInt] = None
    burst: Optional[PositiveInt] = None


class RateLimitConfig(BaseModel):
    """Limits keyed by service name (``youtube``, ``openai_api``)."""

    model_config = ConfigDict(extra="forbid")

    services: Dict[str, ServiceRateLimit] = Field(default_factory=dict)

    @classmethod
    def from_yaml(cls, path: Path) -> "RateLimitConfig":
        """Load limits from ``path``; a missing or empty file means no limits."""

        if not path.is_file():
            return cls()
        return cls.model_validate(yaml.safe_load(path.read_text(encoding="utf-8")) or {})


class Settings(BaseSettings):
    """Runtime configuration read from the environment and an optional ``.env`` file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    storage_backend: Literal["memory", "postgres"] = Field(default="memory", alias="STORAGE_BACKEND")
    database_url: Optional[PostgresDsn] = Field(default=None, alias="DATABASE_URL")
    openai_api_key: Optional[SecretStr] = Field(default=None, alias="OPENAI_API_KEY")

    filter_model: str = Field(default="gpt-4o-mini", alias="FILTER_MODEL")
    transcription_model: str = Field(default="whisper-1", alias="TRANSCRIPTION_MODEL")
    default_language: str = Field(default="hinglish", alias="DEFAULT_LANGUAGE")

    # Segmenting and filtering
    segment_count: PositiveInt = Field(default=3, alias="SEGMENT_COUNT")
    segment_seconds: PositiveInt = Field(default=180, alias="SEGMENT_SECONDS")
    min_retention_ratio: float = Field(default=0.3, ge=0.0, le=1.0, alias="MIN_RETENTION_RATIO")
    ai_filter_enabled: bool = Field(default=True, alias="AI_FILTER_ENABLED")
    ai_topic_labels: bool = Field(default=False, alias="AI_TOPIC_LABELS")

    # Pipeline execution
    max_concurrent_videos: PositiveInt = Field(default=1, alias="MAX_CONCURRENT_VIDEOS")
    stage_timeout_seconds: Optional[PositiveFloat] = Field(default=None, alias="STAGE_TIMEOUT_SECONDS")
    work_dir: Optional[Path] = Field(default=None, alias="WORK_DIR")
    audio_bitrate_kbps: PositiveInt = Field(default=128, alias="AUDIO_BITRATE_KBPS")

    rate_limits_file: Path = Field(default=DEFAULT_RATE_LIMITS_FILE, alias="RATE_LIMITS_FILE")
    rate_limits: Optional[RateLimitConfig] = None

    @model_validator(mode="after")
    def _load_rate_limits(self) -> "Settings":
        if self.rate_limits is None:
            self.rate_limits = RateLimitConfig.from_yaml(self.rate_limits_file)
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


__all__ = ["DEFAULT_RATE_LIMITS_FILE", "RateLimitConfig", "ServiceRateLimit", "Settings", "get_settings"]
