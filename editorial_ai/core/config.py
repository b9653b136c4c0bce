from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "Editorial AI Suggestions"
    debug: bool = False

    # API
    frontend_url: str = "http://localhost:3000"

    # Redis (attempt store + dispatch queue)
    redis_url: str = "redis://localhost:6379"
    redis_socket_timeout_seconds: float = 5.0

    # Generation configuration recorded on every attempt
    suggestion_model: str = "gpt-4o-mini"  # env: SUGGESTION_MODEL
    suggestion_prompt_version: str = "v1"

    # A new request within this window is refused unless forced
    suggestion_cooldown_seconds: int = 300

    # Staleness sweep for attempts stuck in "generating"
    suggestion_stale_after_seconds: int = 900
    suggestion_sweep_interval_seconds: int = 60
    suggestion_sweep_enabled: bool = True  # env: SUGGESTION_SWEEP_ENABLED

    # Contact identifiers whose profiles share one visibility scope
    shared_contact_identifiers: list[str] = []

    # Shared secret the generation worker presents on callbacks; empty disables the check
    worker_callback_token: str = ""


@lru_cache
def get_settings() -> Settings:
    return Settings()
