"""Application configuration using pydantic-settings."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    STATE_DIR: str = ".groundwork"
    LOG_LEVEL: str = "INFO"
    SEARCH_THRESHOLD: float = 0.6
    UNDERPERFORMING_THRESHOLD: float = 0.7
    UNDERPERFORMING_MIN_USES: int = 3
    HOST: str = "127.0.0.1"
    PORT: int = 8000

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "env_prefix": "GROUNDWORK_"}


settings = Settings()

