from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List, Optional

class Settings(BaseSettings):
    """
    Settings for the Music Tutor API.

    Please do not modify this file directly.
    Instead, create a .env file in the root directory of the project
    and specify the settings you would like to change there.
    For example, if you would like to use a redis server, add the following
    line to the .env file:
    - USE_REDIS=True

    SECRET_KEY has no default and must always be provided. It signs every
    access and refresh token, so it should never be pushed to GitHub.

    SUMMARY:
    - Override settings (if needed) using a .env file
    - Never push the .env file to GitHub (it should be in .gitignore)
    - SECRET_KEY is required
    """

    # Application settings
    app_name: str = "Music Tutor API"
    app_version: str = "1.0.0"

    # Token settings
    access_token_expire_minutes: int = 60 * 24 * 7
    refresh_token_expire_days: int = 30
    secret_key: str
    hash_algorithm: str = "HS256"

    # Logs settings
    logs_dir: str = "logs"
    log_to_file: bool = True

    # Database settings
    db_url: str = "sqlite:///music_tutoring.db" # Default, for local development
    db_echo: bool = False

    # Redis settings
    use_redis: bool = False # Default to not using Redis, change this to True if you have a Redis server set up
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    tutor_cache_seconds: int = 300

    # Rate limiting
    rate_limit_enabled: bool = True
    auth_rate_limit: str = "10/minute"

    # CORS
    cors_origins: List[str] = [
        "http://localhost:19006",
        "http://localhost:8081",
        "http://localhost:3000",
    ]

    # Server
    app_host: str = "0.0.0.0"
    app_port: int = 3000

    # Load settings from .env file
    model_config = SettingsConfigDict(env_file=".env")

@lru_cache() # Cache settings to avoid reading .env file multiple times
def get_settings():
    """
    Use this function as a dependency to get the settings object.
    Dependency injection makes it easy to test endpoints with different settings, simply inject a different settings object.
    """
    return Settings()
