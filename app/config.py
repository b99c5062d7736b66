from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = Field(default="sqlite:///./health_check.db")
    app_name: str = "Health Check"
    secret_key: str = Field(default="health-check-secret-key-2025")
    session_cookie: str = "health_check_session"
    session_lifetime_seconds: int = Field(default=24 * 60 * 60, gt=0)
    session_backend: Literal["memory", "database"] = "memory"
    bcrypt_rounds: int = Field(default=10, ge=4, le=31)
    strict_measurement_persistence: bool = False
    rate_limit: str = "100 per 15 minutes"
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()
