"""Environment-backed configuration for roadmap allocation."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Allocation policy and telemetry settings loaded from the environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    max_30_day_effort: int = Field(default=6, ge=0, alias="MAX_30_DAY_EFFORT")
    min_30_day_count: int = Field(default=3, ge=0, alias="MIN_30_DAY_COUNT")
    max_per_category_30: int = Field(default=2, ge=0, alias="MAX_PER_CATEGORY_30")
    global_overflow_max: int = Field(default=1, ge=0, alias="GLOBAL_OVERFLOW_MAX")
    critical_category_id: str = Field(default="SECURITY", alias="CRITICAL_CATEGORY_ID")
    critical_threshold: int = Field(default=40, ge=0, le=100, alias="CRITICAL_THRESHOLD")
    ongoing_threshold: int = Field(default=65, ge=0, le=100, alias="ONGOING_THRESHOLD")

    telemetry_webhook_url: str | None = Field(default=None, alias="TEAMS_WEBHOOK_URL")
    telemetry_console: bool = Field(default=False, alias="TELEMETRY_CONSOLE")
    telemetry_timeout: float = Field(default=5.0, gt=0, alias="TELEMETRY_TIMEOUT")


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
