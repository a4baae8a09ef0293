from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    # Vision provider: groq | mock
    vision_provider: str = "groq"
    groq_api_key: str | None = None
    groq_base_url: str = "https://api.groq.com/openai/v1"
    request_timeout_seconds: float = 60.0

    primary_model: str = "meta-llama/llama-4-maverick-17b-128e-instruct"
    fallback_model: str = "meta-llama/llama-4-scout-17b-16e-instruct"
    max_attempts: int = 3
    retry_backoff_seconds: float = 0.3
    temperature: float = 0.0
    max_tokens: int = 7000

    max_upload_bytes: int = 10 * 1024 * 1024

    # Client-side normalization
    max_image_dimension: int = 2000
    contrast: float = 1.15
    api_url: str = "http://localhost:8000"


settings = Settings()
