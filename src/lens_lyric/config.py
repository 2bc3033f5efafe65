"""Configuration for the Lens & Lyric captioning client."""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GeminiSettings(BaseModel):
    # Bare GEMINI_API_KEY / API_KEY envs are read by the client at call time, not here.
    api_key: Optional[str] = Field(None, description="Google Gemini API key")
    api_base: str = "https://generativelanguage.googleapis.com/v1beta"
    model: str = "gemini-2.5-flash"
    # Upstream tuning knob, not a domain invariant.
    thinking_budget: int = Field(2048, ge=0)
    request_timeout_sec: float = 120.0


class MediaLimitSettings(BaseModel):
    max_size_mb: int = Field(20, ge=1)
    accepted_prefixes: tuple[str, ...] = ("image/", "video/")

    @property
    def max_size_bytes(self) -> int:
        return self.max_size_mb * 1024 * 1024


class LoggingSettings(BaseModel):
    level: str = "INFO"
    log_dir: str = "./logs"
    to_file: bool = False
    json_logs: bool = False
    max_log_file_size_mb: int = 20
    backup_count: int = 7


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LENS_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "lens-lyric"
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    media: MediaLimitSettings = Field(default_factory=MediaLimitSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache
def get_settings() -> Settings:
    return Settings()
