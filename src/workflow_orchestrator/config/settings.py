"""Application settings."""

from functools import lru_cache
import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[3]


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "workflow-orchestrator"
    app_env: str = "dev"
    app_debug: bool = False
    log_level: str = "INFO"
    executor_mode: str = "deterministic"
    database_url: str = ""
    max_attempts: int = Field(default=3, ge=1)
    max_concurrency: int = Field(default=0, ge=0)
    executor_timeout_s: float = Field(default=120.0, ge=0.01)
    executor_max_retries: int = Field(default=2, ge=0)
    executor_backoff_s: float = Field(default=0.0, ge=0.0)
    default_model: str = "gpt-4o-mini"
    llm_provider: str = "openai"
    llm_base_url: str = "https://api.openai.com/v1"
    llm_timeout_s: float = Field(default=60.0, ge=0.5)
    openai_api_key: str = ""

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_ORCHESTRATOR_",
        extra="ignore",
        env_file=(PROJECT_ROOT / ".env", PROJECT_ROOT / ".env.local"),
        env_file_encoding="utf-8",
    )

    def resolved_database_url(self) -> str:
        return self.database_url or os.getenv("ORCHESTRATOR_DATABASE_URL", "")

    def resolved_openai_api_key(self) -> str:
        return self.openai_api_key or os.getenv("OPENAI_API_KEY", "")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
