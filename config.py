"""
Configuration settings for learngen.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Oracle (OpenAI-compatible completion API)
    # ========================================
    openai_api_key: str | None = Field(
        default=None,
        description="API key for the completion endpoint",
    )
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL of an OpenAI-compatible API",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        description="Model used for structured generation",
    )
    openai_timeout_seconds: float = Field(
        default=60.0,
        description="Transport timeout per completion request",
    )

    # ========================================
    # Templates
    # ========================================
    template_dir: str | None = Field(
        default=None,
        description="Directory of template definitions (bundled set if unset)",
    )

    # ========================================
    # Generation Policy
    # ========================================
    generation_default_attempts: int = Field(
        default=1,
        ge=1,
        description="Attempt budget for techniques without an explicit budget",
    )
    generation_attempt_budgets: dict[str, int] = Field(
        default_factory=lambda: {"flashcards_index_it": 2},
        description="Per-technique attempt budgets, e.g. {\"flashcards_index_it\": 2}",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    @field_validator("generation_attempt_budgets")
    @classmethod
    def _budgets_positive(cls, value: dict[str, int]) -> dict[str, int]:
        for technique, budget in value.items():
            if budget < 1:
                raise ValueError(f"attempt budget for {technique} must be at least 1")
        return value

    def has_oracle_configured(self) -> bool:
        """Check if a completion API key is available."""
        return bool(self.openai_api_key)

    def get_attempt_budgets(self) -> dict[str, int]:
        """Return a copy of the per-technique attempt budgets."""
        return dict(self.generation_attempt_budgets)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
