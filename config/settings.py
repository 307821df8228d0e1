"""Pydantic Settings — typed configuration with .env auto-loading."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from config.llm_config import LLMConfig


class Settings(BaseSettings):
    """Application configuration loaded from environment / .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    service_port: int = 5000
    cors_origins: list[str] = ["*"]
    debug: bool = False

    # ── LLM ──────────────────────────────────────────────────
    llm_provider: str = "openai"  # "openai" | "anthropic" | "litellm"
    default_model: str = "gpt-4o-mini"  # Cost-effective, fast
    premium_model: str = "gpt-4o"  # Higher quality, see scripts/evaluate_answer.py --premium

    # ── LLM Generation Defaults ──────────────────────────────
    # Low temperature keeps scoring as deterministic as the provider allows.
    temperature: float = 0.1
    max_tokens: int = 1024
    top_p: float | None = 0.95
    frequency_penalty: float | None = 0.0
    presence_penalty: float | None = 0.0

    # Provider credentials / endpoints
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    anthropic_api_key: str = ""
    anthropic_base_url: str = "https://api.anthropic.com"
    anthropic_version: str = "2023-06-01"

    # ── Evaluation ───────────────────────────────────────────
    max_retries: int = 2
    request_timeout_seconds: float = 30.0  # per attempt
    max_feedback_length: int = 1000
    max_tips_length: int = 1000
    max_concurrent_llm_calls: int = 10  # per worker

    # ── Persistence ──────────────────────────────────────────
    session_store_type: str = "memory"  # "memory" or "redis"
    redis_url: str = ""  # e.g. redis://:password@host:6379/0
    question_bank_dir: str = ""  # empty = bundled data/questions

    # ── Helpers ───────────────────────────────────────────────

    def get_default_llm_config(self) -> LLMConfig:
        """Build an :class:`LLMConfig` from global .env defaults."""
        return LLMConfig(
            provider=self.llm_provider,
            model=self.default_model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            top_p=self.top_p,
            frequency_penalty=self.frequency_penalty,
            presence_penalty=self.presence_penalty,
        )


@lru_cache
def get_settings() -> Settings:
    """Singleton accessor for application settings."""
    return Settings()
