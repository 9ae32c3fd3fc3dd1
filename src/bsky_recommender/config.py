"""Configuration management."""
from pathlib import Path
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings."""

    # Bluesky account used to query the API
    identifier: str = Field(
        default="",
        description="Bluesky handle or DID used to log in"
    )
    password: str = Field(
        default="",
        description="Bluesky app password (not the account password)"
    )
    service_url: str = Field(default="https://bsky.social")
    request_timeout: float = Field(default=60.0)

    # Cache settings
    cache_dir: Path = Field(
        default=Path(".cache"),
        description="Root directory of the profile/follows file cache"
    )
    cache_expire_hours: int = Field(default=24)

    # Directory settings
    follows_limit: int = Field(default=1000)
    profiles_batch_size: int = Field(default=25)

    class Config:
        env_prefix = "BSKY_"
        env_file = ".env"


def get_settings() -> Settings:
    """Get settings - environment variables take priority over .env."""
    return Settings()


settings = get_settings()
