# Fichier: drillcraft/core/config.py
from pydantic_settings import BaseSettings
from typing import Optional, List
from pydantic import ValidationError, field_validator
import sys


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./drillcraft_local.db"
    ENVIRONMENT: str = "development"

    BACKEND_CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:8000",
        "http://127.0.0.1:5173",
    ]

    # Performance instrumentation
    SQLALCHEMY_SLOW_QUERY_THRESHOLD_MS: int = 300
    DATABASE_CONNECTION_MAX_RETRIES: int = 1
    DATABASE_CONNECTION_RETRY_BACKOFF_SECONDS: float = 1.0

    # --- Generation provider ---
    GOOGLE_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.5-flash"
    GENERATION_TIMEOUT_SECONDS: float = 15.0
    GENERATION_TEMPERATURE: float = 0.7
    GENERATION_MAX_OUTPUT_TOKENS: int = 2000
    # Remote generate-drills endpoint; the generator runs in-process when unset.
    GENERATION_SERVICE_URL: Optional[str] = None

    # --- Content store ---
    CONTENT_STORE_BACKEND: str = "sql"  # "sql" | "memory"
    REUSE_POOL_CONTENT: bool = False

    # --- Moderation ---
    DOWNVOTE_THRESHOLD: int = 5
    DOWNVOTE_CEILING: int = 1000

    SPEECH_MAX_LENGTH: int = 500

    class Config:
        env_file = ".env"

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def _normalize_database_url(cls, value: str) -> str:
        """Ensure Postgres URLs use the synchronous driver.

        Managed Postgres providers still hand out ``postgres://`` URLs, an
        alias SQLAlchemy no longer ships. Async driver variants are downgraded
        too because the store runs on a synchronous engine. SQLite and other
        backends are left untouched.
        """

        if not isinstance(value, str):
            return value

        replacements = {
            "postgres://": "postgresql://",
            "postgresql+asyncpg://": "postgresql://",
        }

        for prefix, target in replacements.items():
            if value.startswith(prefix):
                return target + value[len(prefix) :]

        return value

    @field_validator("CONTENT_STORE_BACKEND", mode="before")
    @classmethod
    def _normalize_store_backend(cls, value: str) -> str:
        if not isinstance(value, str):
            return value
        candidate = value.strip().lower()
        if candidate not in {"sql", "memory"}:
            raise ValueError("CONTENT_STORE_BACKEND must be 'sql' or 'memory'")
        return candidate


def _log_settings_validation_error(exc: ValidationError) -> None:
    """Pretty-print missing or invalid environment variables.

    The exception bubbles up during module import, which makes it hard to spot
    the variable responsible, so the structured error payload is printed
    before re-raising.
    """

    header = "Configuration error while loading environment variables:"
    print(header, file=sys.stderr)

    details = exc.errors()
    if details:
        for error in details:
            location = ".".join(str(part) for part in error.get("loc", ()))
            message = error.get("msg", "Unknown validation error")
            type_name = error.get("type")
            hint_parts = [message]
            if type_name:
                hint_parts.append(f"(type={type_name})")
            hint = " ".join(hint_parts)
            print(f"  - {location}: {hint}", file=sys.stderr)
    else:
        print(exc, file=sys.stderr)


try:
    settings = Settings()
except ValidationError as exc:  # pragma: no cover - exercised at runtime
    _log_settings_validation_error(exc)
    raise
