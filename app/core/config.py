"""Application configuration managed via environment variables."""
from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "StudyFlow Scheduling Backend"
    debug: bool = False
    log_level: str = "INFO"
    database_url: str = "postgresql+psycopg2://studyflow@localhost:5432/studyflow"
    opik_enabled: bool = False
    opik_api_key: str | None = None
    opik_project: str = "studyflow"

    scheduler_enabled: bool = False
    scheduler_timezone: str = "UTC"
    drift_job_hour: int = 6
    drift_job_minute: int = 0
    jobs_run_on_startup: bool = False

    max_daily_minutes: int = 720
    recovery_window_days: int = 7
    recovery_anchor_hour: int = 9
    recovery_proposer: Literal["deterministic", "llm"] = "deterministic"
    llm_model: str = "gpt-4o"
    llm_base_url: str | None = None
    llm_timeout_seconds: float = 30.0


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()


settings = get_settings()
