"""
Application settings and configuration management.

Uses pydantic-settings for environment variable loading.
"""

from functools import lru_cache

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "VoicePrep"
    app_version: str = "0.1.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # OpenAI-compatible provider
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"

    # Models
    chat_model: str = "gpt-4o-mini"
    transcription_model: str = "whisper-1"
    transcription_language: str = "ko"
    # Only models that emit transcript.text.delta events support this
    transcription_streaming: bool = False
    tts_model: str = "tts-1"
    tts_voice: str = "alloy"

    # Interview settings
    question_budget: int = Field(default=5, gt=0)
    interview_language: str = "Korean"

    # External call policy
    external_call_timeout_seconds: float = 120.0
    external_call_deadline_seconds: float = 120.0
    retry_max_attempts: int = 3
    retry_backoff_str: str = Field(
        default="3,6",
        validation_alias="retry_backoff_seconds",
    )

    # Finished interviews kept in memory for summary and transcript reads
    finished_session_limit: int = Field(default=100, ge=0)

    # Audio settings
    max_audio_bytes: int = 25 * 1024 * 1024
    simulated_stream_interval_ms: int = 100

    # Session storage
    session_store_backend: str = "memory"  # Options: memory, file
    session_store_dir: str = ".sessions"

    # Delivery webhook (empty disables delivery)
    webhook_url: str = ""
    webhook_timeout_seconds: float = 10.0

    require_mobile_phone_format: bool = True

    # Langfuse tracing
    langfuse_enabled: bool = False
    langfuse_public_key: str = ""
    langfuse_secret_key: str = ""
    langfuse_base_url: str = "https://cloud.langfuse.com"

    # CORS - stored as comma-separated string in env
    # Uses validation_alias to read from CORS_ORIGINS env var
    cors_origins_str: str = Field(
        default="http://localhost:3000,http://localhost:8000",
        validation_alias="cors_origins"
    )

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @computed_field
    @property
    def retry_backoff_seconds(self) -> list[float]:
        """Parse the retry backoff schedule from a comma-separated string."""
        return [float(step.strip()) for step in self.retry_backoff_str.split(",") if step.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
