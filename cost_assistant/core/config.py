"""
core/config.py
--------------
Centralised settings management using pydantic-settings.
All configuration is loaded from environment variables / .env file.
This is the single source of truth for application configuration.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── App ──────────────────────────────────────────────────────────────
    APP_NAME: str = "Cloud Cost Assistant"
    APP_ENV: str = "development"
    DEBUG: bool = False

    # ── Security ─────────────────────────────────────────────────────────
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Requests without a bearer token are served as the guest identity
    ALLOW_GUEST: bool = True
    GUEST_USER_ID: str = "guest"

    # ── Database ─────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./cost_assistant.db"

    # ── LLM ──────────────────────────────────────────────────────────────
    OPENAI_API_KEY: str = ""
    # e.g. https://generativelanguage.googleapis.com/v1beta/openai/ for Gemini
    OPENAI_BASE_URL: Optional[str] = None
    LLM_MODEL: str = "gpt-4o-mini"
    LLM_MAX_TOKENS: int = 1024
    LLM_TEMPERATURE: float = 0.7
    LLM_TIMEOUT_SECONDS: float = 60.0

    # File-analysis calls favour completeness over variety
    ANALYSIS_MAX_TOKENS: int = 2048
    ANALYSIS_TEMPERATURE: float = 0.2

    # ── Conversation ─────────────────────────────────────────────────────
    CHAT_HISTORY_WINDOW: int = 12
    RELEVANCE_LLM_CHECK: bool = False

    # ── Uploads ──────────────────────────────────────────────────────────
    MAX_UPLOAD_BYTES: int = 2 * 1024 * 1024

    # ── Tracking ─────────────────────────────────────────────────────────
    MLFLOW_ENABLED: bool = False
    MLFLOW_TRACKING_URI: str = "mlruns"

    # ── CORS ─────────────────────────────────────────────────────────────
    ALLOWED_ORIGINS: List[str] = ["http://localhost:5173"]

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_origins(cls, v):
        if isinstance(v, str):
            import json
            return json.loads(v)
        return v


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings factory.
    Use this everywhere to avoid re-reading .env on every call.
    """
    return Settings()


settings = get_settings()
