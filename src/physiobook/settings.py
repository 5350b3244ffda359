"""Application settings via environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = ["Settings"]


class Settings(BaseSettings):
    """Central configuration, all values from environment."""

    model_config = SettingsConfigDict(env_prefix="PHYSIOBOOK_")

    # Target environment
    environment: str = "dev"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Therapist matching
    match_default_limit: int = 5
    match_slot_limit: int = 10

    # Pools at least this large are scored on a thread pool
    parallel_scoring_threshold: int = 200
    scoring_workers: int = 4

    # Recommendation model (OpenAI-compatible); empty key disables it
    llm_api_key: str = ""
    llm_base_url: str = "https://api.openai.com/v1"
    llm_model: str = "gpt-4o-mini"
    llm_timeout_seconds: float = 10.0
