from pathlib import Path
from typing import Any
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Always resolve .env relative to this file (backend/classmate/config.py → backend/.env)
_ENV_FILE = Path(__file__).resolve().parent.parent / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database (psycopg3 dialect: postgresql+psycopg://, sqlite:/// works for local dev)
    database_url: str = "postgresql+psycopg://localhost:5432/classmate"

    # Submissions
    submit_max_retries: int = 3     # optimistic-concurrency retries per attempt

    # Listings
    leaderboard_limit: int = 50
    recent_attempts_limit: int = 10

    # App
    app_env: str = "development"
    log_level: str = "INFO"
    # Space- or comma-separated list of allowed origins.
    # In production set: CORS_ORIGINS=https://your-app.vercel.app
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8080"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors(cls, v: Any) -> Any:
        """Accept a plain string (space- or comma-separated) in addition to a list."""
        if isinstance(v, str):
            # replace commas with spaces, then split on whitespace
            return [o.strip() for o in v.replace(",", " ").split() if o.strip()]
        return v

    @field_validator("submit_max_retries")
    @classmethod
    def _at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("submit_max_retries must be >= 1")
        return v


settings = Settings()
