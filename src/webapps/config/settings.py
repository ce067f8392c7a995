# src/webapps/config/settings.py
from functools import lru_cache

from pydantic import Field, validator
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_VARIANTS = ("hello", "routed", "counter")


class Settings(BaseSettings):
    """
    Settings for the sample web applications.

    Every value can be overridden with the upper-cased environment variable,
    e.g. `APP_VARIANT=counter REDIS_HOST=redis`.
    """

    app_variant: str = Field(
        default="routed",
        description="Which sample app to serve: hello, routed or counter"
    )

    greeting: str = Field(
        default="Hello, World!",
        description="Body returned by GET /"
    )

    # Redis counter
    redis_host: str = Field(
        default="redis",
        description="Host name of the Redis service (the Compose service name)"
    )
    redis_port: int = Field(default=6379)
    counter_key: str = Field(
        default="hits",
        description="Redis key incremented on every visit"
    )
    counter_retries: int = Field(
        default=5,
        description="Total INCR attempts, including the first, while Redis is still starting"
    )
    counter_retry_delay: float = Field(default=0.5)

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    @validator('app_variant')
    def validate_app_variant(cls, v):
        if v not in APP_VARIANTS:
            raise ValueError(f"Invalid app_variant: {v}. Must be one of {list(APP_VARIANTS)}")
        return v

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
