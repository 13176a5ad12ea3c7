"""
Survey Mindset Pipeline - Configuration
"""
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Paths
    BASE_DIR: Path = Path(__file__).parent
    DATA_DIR: Path = Field(default_factory=lambda: Path(__file__).parent / "data")
    LOG_DIR: Optional[Path] = Field(default=None, description="Directory for log files (None = console only)")

    # Database
    DATABASE_URL: str = Field(
        default_factory=lambda: f"sqlite+aiosqlite:///{Path(__file__).parent / 'data' / 'survey.db'}"
    )

    QUESTIONS_FILE: Optional[Path] = Field(default=None, description="JSON question catalog loaded at API startup")

    # API Keys
    OPENAI_API_KEY: str = Field(default="", description="OpenAI API key")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")

    # LLM
    LLM_PROVIDER: str = Field(default="openai")
    LLM_MODEL: str = Field(default="gpt-4")
    LLM_BASE_URL: Optional[str] = Field(default=None, description="Override for OpenAI-compatible endpoints")
    LLM_MAX_TOKENS: int = Field(default=1500)
    LLM_TEMPERATURE: float = Field(default=0.7)
    LLM_TIMEOUT_SECONDS: float = Field(default=60.0)
    LLM_MAX_RETRIES: int = Field(default=2)

    # Queue / worker
    QUEUE_NAME: str = Field(default="submissions")
    WORKER_BATCH_SIZE: int = Field(default=5)
    QUEUE_VISIBILITY_TIMEOUT: int = Field(default=30, description="Seconds a claimed message stays hidden")
    WORKER_INTERVAL_SECONDS: int = Field(default=60)

    # Survey rating scale
    RATING_SCALE_MIN: int = Field(default=1)
    RATING_SCALE_MAX: int = Field(default=5)

    # API
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8000)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


# Global settings instance
settings = Settings()


def ensure_directories():
    """Ensure all required directories exist."""
    dirs = [settings.DATA_DIR]
    if settings.LOG_DIR:
        dirs.append(settings.LOG_DIR)
    for dir_path in dirs:
        dir_path.mkdir(parents=True, exist_ok=True)
