from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Student Savings Ledger API"
    database_url: str = "sqlite:///savings_ledger.db"
    log_level: str = "INFO"
    # IANA zone whose calendar days bound report and summary filters.
    report_timezone: str = "UTC"
    post_max_attempts: int = 20
    sqlite_busy_timeout: float = 30.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SAVINGS_",
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
