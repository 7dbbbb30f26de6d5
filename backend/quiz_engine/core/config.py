import json

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Resolve backend root (…/backend/) regardless of current working directory
BASE_DIR = Path(__file__).resolve().parents[2]
ENV_FILE = BASE_DIR / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "Quiz Lifecycle Engine"
    ENV: str = "dev"
    # One origin or several, comma separated
    # Example: "http://localhost:5173,https://example.com"
    BACKEND_CORS_ORIGINS: list[str] = ["http://localhost:5173"]

    # Local SQLite by default; production deployments point this at PostgreSQL.
    DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'quiz_engine.db'}"

    # Seconds to wait for a pooled connection before the store reports
    # PERSISTENCE_TIMEOUT instead of hanging the request.
    DB_POOL_TIMEOUT_SEC: int = 10
    DB_ECHO: bool = False

    LOG_LEVEL: str = "INFO"

    # ===== Authoring rules =====
    # The question form has four answer slots; the first two are mandatory.
    QUIZ_MIN_OPTIONS: int = 2
    QUIZ_MAX_OPTIONS: int = 4
    # Used when a draft is opened without an explicit title.
    DRAFT_TITLE_PREFIX: str = "Quiz for course"

    # Idle drafts and taking sessions are dropped after this many seconds.
    DRAFT_TTL_SEC: int = 24 * 3600
    SESSION_TTL_SEC: int = 2 * 3600

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        if v is None or v == "":
            return []

        if isinstance(v, list):
            return v

        # Accept a JSON list first, fall back to comma separated
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("["):
                try:
                    return json.loads(s)
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in s.split(",") if item.strip()]

        return v


# main.py and db/session.py import this instance
settings = Settings()
