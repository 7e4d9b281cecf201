from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    app_name: str = "fieldsales-analytics-api"
    log_level: str = "INFO"
    api_prefix: str = "/api"
    allowed_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://0.0.0.0:3000",
        ]
    )

    database_url: str = "postgresql+psycopg://postgres:postgres@db:5432/fieldsales"
    redis_url: str = "redis://redis:6379/0"
    jwt_secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    refresh_token_expire_days: int = 7

    report_timezone: str = "Europe/Sarajevo"
    visit_order_match_days: int = 7
    churn_inactive_months: int = 3
    churn_list_limit: int = 50
    unvisited_list_limit: int = 100
    top_products_limit: int = 20
    top_clients_limit: int = 10
    clv_list_limit: int = 20
    trending_products_limit: int = 10
    trend_months: int = 6
    recent_items_limit: int = 50
    conversion_target_percent: float = 50.0
    cancellation_reason_marker: str = "--- RAZLOG OTKAZIVANJA ---"
    report_fetch_workers: int = Field(default=1, ge=1)
    report_timeout_seconds: float = Field(default=30.0, gt=0)

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
