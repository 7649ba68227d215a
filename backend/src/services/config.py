"""Application configuration helpers."""

from __future__ import annotations

from functools import lru_cache
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PROJECT_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_DATA_DIR = PROJECT_ROOT / "data"


class AppConfig(BaseModel):
    """Runtime configuration loaded from environment variables."""

    model_config = ConfigDict(frozen=True)

    jwt_secret_key: Optional[str] = Field(
        default=None,
        description="HMAC secret for JWT signing (required for JWT/HTTP auth)",
    )
    enable_local_mode: bool = Field(
        default=True,
        description="Allow local-dev token bypass when running locally",
    )
    local_dev_token: Optional[str] = Field(
        default="local-dev-token",
        description="Static token accepted in local mode for development",
    )
    data_dir: Path = Field(..., description="Directory holding the database and note images")
    require_email_confirmation: bool = Field(
        default=False,
        description="Reject sign-in until the account email has been confirmed",
    )
    llm_api_key: Optional[str] = Field(None, description="API key for the chat completions endpoint")
    llm_api_base: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL of an OpenAI-compatible chat completions API",
    )
    llm_model: str = Field(default="gpt-4o-mini", description="Model used for all note analysis")
    llm_timeout_seconds: float = Field(default=60.0, gt=0)
    google_client_id: Optional[str] = Field(None, description="Google OAuth client ID (Gmail)")
    google_client_secret: Optional[str] = Field(
        None, description="Google OAuth client secret (Gmail)"
    )
    gmail_redirect_uri: str = Field(
        default="http://localhost:5173/gmail-callback",
        description="Redirect URI registered with Google for the Gmail callback route",
    )
    gmail_max_results: int = Field(default=100, ge=1, le=500)
    gmail_fetch_concurrency: int = Field(default=8, ge=1)
    app_url: str = Field(
        default="http://localhost:5173",
        description="Base URL of the web client",
    )

    @field_validator("data_dir", mode="before")
    @classmethod
    def _normalize_data_dir(cls, value: str | Path | None) -> Path:
        if value is None or value == "":
            raise ValueError("DATA_DIR is required")
        if isinstance(value, Path):
            path = value
        else:
            path = Path(value)
        return path.expanduser().resolve()

    @field_validator("jwt_secret_key", mode="before")
    @classmethod
    def _ensure_secret(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip()
        if not cleaned:
            raise ValueError(
                "JWT_SECRET_KEY cannot be empty; unset the variable to disable JWT auth in local mode"
            )
        if len(cleaned) < 16:
            raise ValueError("JWT_SECRET_KEY must be at least 16 characters")
        return cleaned

    @property
    def database_path(self) -> Path:
        return self.data_dir / "notes.db"

    @property
    def image_dir(self) -> Path:
        return self.data_dir / "note_images"


def _read_env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(key, default)


def _read_flag(key: str, default: str) -> bool:
    return (_read_env(key, default) or default).lower() not in {"0", "false", "no"}


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load and cache application configuration."""
    config = AppConfig(
        jwt_secret_key=_read_env("JWT_SECRET_KEY"),
        enable_local_mode=_read_flag("ENABLE_LOCAL_MODE", "true"),
        local_dev_token=_read_env("LOCAL_DEV_TOKEN", "local-dev-token"),
        data_dir=_read_env("DATA_DIR", str(DEFAULT_DATA_DIR)),
        require_email_confirmation=_read_flag("REQUIRE_EMAIL_CONFIRMATION", "false"),
        llm_api_key=_read_env("OPENAI_API_KEY"),
        llm_api_base=_read_env("LLM_API_BASE", "https://api.openai.com/v1"),
        llm_model=_read_env("LLM_MODEL", "gpt-4o-mini"),
        llm_timeout_seconds=float(_read_env("LLM_TIMEOUT_SECONDS", "60")),
        google_client_id=_read_env("GOOGLE_CLIENT_ID"),
        google_client_secret=_read_env("GOOGLE_CLIENT_SECRET"),
        gmail_redirect_uri=_read_env(
            "GMAIL_REDIRECT_URI", "http://localhost:5173/gmail-callback"
        ),
        gmail_max_results=int(_read_env("GMAIL_MAX_RESULTS", "100")),
        gmail_fetch_concurrency=int(_read_env("GMAIL_FETCH_CONCURRENCY", "8")),
        app_url=_read_env("APP_URL", "http://localhost:5173"),
    )
    # Ensure data directories exist for downstream services.
    config.data_dir.mkdir(parents=True, exist_ok=True)
    config.image_dir.mkdir(parents=True, exist_ok=True)
    return config


def reload_config() -> AppConfig:
    """Clear cached config (useful for tests) and reload."""
    get_config.cache_clear()
    return get_config()


__all__ = ["AppConfig", "get_config", "reload_config", "PROJECT_ROOT", "DEFAULT_DATA_DIR"]
