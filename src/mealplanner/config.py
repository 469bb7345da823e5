"""
Meal Planner - Configuration and settings.

Settings are read from the environment (and .env) once and cached.
Generation constants that are not deployment-specific live here too.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# Every group gets this many meals beyond what was requested, so the
# household has something to choose from.
EXTRA_MEALS = 2

# Upper bound on meals generated for a single group (after the buffer).
MAX_MEALS_PER_GROUP = 10


class Settings(BaseSettings):
    """
    Application settings.

    Supabase fields are optional so the in-memory backend can run
    without any database configured.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    mealplanner_env: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Storage backend - None means "memory in development, supabase elsewhere"
    job_store_backend: Literal["memory", "supabase"] | None = None

    # Supabase
    supabase_url: str | None = None
    supabase_service_role_key: str | None = None

    # OpenAI
    openai_api_key: str | None = None
    generation_model: str = "gpt-4-turbo"
    generation_temperature: float = 0.7
    generation_max_tokens: int = 4096
    generation_timeout_seconds: float = 180.0  # Large plans can take minutes

    # Prompt logging
    # MEALPLANNER_LOG_PROMPTS=1 - log to local files (dev only)
    mealplanner_log_prompts: bool = False

    # Client polling
    poll_interval_seconds: float = 2.0
    poll_timeout_seconds: float = 300.0

    # Dev user - owns jobs from the `generate` CLI command and file-loaded groups
    dev_user_id: str = "00000000-0000-0000-0000-000000000001"
    # Groups served by the in-memory backend (JSON, same shape as `generate` input)
    dev_groups_file: str | None = None

    @property
    def is_development(self) -> bool:
        return self.mealplanner_env == "development"

    @property
    def is_production(self) -> bool:
        return self.mealplanner_env == "production"

    @property
    def resolved_store_backend(self) -> str:
        """Backend actually in use once the environment default is applied."""
        if self.job_store_backend:
            return self.job_store_backend
        return "memory" if self.is_development else "supabase"

    @property
    def use_mock_generator(self) -> bool:
        """Development without an API key generates canned meals."""
        return self.is_development and not self.openai_api_key


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience singleton - lazy loaded
class _SettingsProxy:
    """Lazy proxy for settings to avoid loading .env at import time."""

    _instance: Settings | None = None

    def __getattr__(self, name: str):
        if self._instance is None:
            self._instance = get_settings()
        return getattr(self._instance, name)


settings = _SettingsProxy()
