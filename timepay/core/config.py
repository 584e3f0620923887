import os
from functools import lru_cache
from pathlib import Path

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    env: str = Field(default="dev", description="Deployment environment")
    app_name: str = "Timepay API"
    database_url: str = Field(
        default="sqlite:///./timepay.db",
        description="Database connection string",
    )
    auto_create_schema: bool = Field(default=True, description="Create tables on startup")
    cors_origins: list[AnyHttpUrl] = []
    log_level: str = "INFO"
    log_json: bool = True
    sentry_dsn: str | None = Field(default=None, description="Sentry DSN for error monitoring")
    otlp_endpoint: str | None = Field(default=None, description="OTLP endpoint for traces/metrics")
    tax_table_dir: Path | None = Field(default=None, description="Directory of <version>.json tax tables")
    tax_table_version: str = "2024"
    data_path: Path = Field(default=Path("data/timepay.json"), description="JSON store used by the CLI")

    model_config = SettingsConfigDict(env_prefix="TIMEPAY_", extra="ignore")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, value: str | list[AnyHttpUrl]) -> list[AnyHttpUrl]:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin]
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings(_env_file=get_settings_env_file())


def get_settings_env_file() -> str | None:
    """Resolve environment-specific env file if it exists."""
    env = os.getenv("TIMEPAY_ENV", "dev")
    env_file = BASE_DIR / f".env.{env}"
    default_file = BASE_DIR / ".env"
    if env_file.exists():
        return str(env_file)
    if default_file.exists():
        return str(default_file)
    return None


settings = get_settings()
